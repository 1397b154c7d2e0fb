"""
Daily circle prompt job.

Posts today's facilitator prompt to every AI-enabled circle that does not
have one yet. Safe to run several times a day: circles that already have
today's prompt are skipped.

Usage:
    Run via CRON:
        5 0 * * * cd /path/to/project && python -m jobs.daily_prompts

    Or run directly:
        python -m jobs.daily_prompts
"""

import asyncio
import logging
import sys
import time

from circle_engine.config import settings
from circle_engine.engine import CircleEngine
from circle_engine.repository import MongoRepository
from common.database import MongoDB

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


async def main():
    """Main entry point for the daily prompt job."""
    try:
        settings.validate_required()
    except ValueError as e:
        logger.error(str(e))
        sys.exit(1)

    mongodb = MongoDB()
    await mongodb.connect(settings.MONGODB_URI, settings.MONGODB_DATABASE)

    try:
        started = time.monotonic()
        engine = CircleEngine(MongoRepository(mongodb.db), settings=settings)
        prompts = await engine.run_daily_prompt_sweep()

        print("\n=== Daily Prompt Job Results ===")
        print(f"Duration: {time.monotonic() - started:.2f} seconds")
        print(f"Prompts Posted: {len(prompts)}")
        for prompt in prompts:
            print(f"  - {prompt.circleId}: {prompt.content}")

    finally:
        await mongodb.disconnect()


if __name__ == "__main__":
    asyncio.run(main())
