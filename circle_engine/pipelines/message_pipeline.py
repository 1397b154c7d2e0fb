"""
Circle message pipeline.

Orchestrates sending messages within circles:
validate -> persist -> broadcast -> (optionally) schedule a facilitator reply.
Facilitator replies come back through the same persist and broadcast steps,
flagged as automated.
"""

import asyncio
import logging
from collections import defaultdict
from typing import Dict, List

from circle_engine.events import EventBus, Topic
from circle_engine.models import CurrentUser, Message, Reaction, new_id
from circle_engine.repository import Repository
from circle_engine.scheduler import Clock
from circle_engine.services.facilitator_responder import FacilitatorResponder
from circle_engine.services.guards import ensure_active_member, require_circle
from circle_engine.services.presence_tracker import PresenceTracker
from common.utils.exceptions import InvalidArgumentException

logger = logging.getLogger(__name__)

MAX_MESSAGE_LENGTH = 500


class MessagePipeline:
    """Sends member and facilitator messages and manages reactions."""

    def __init__(
        self,
        repository: Repository,
        event_bus: EventBus,
        presence: PresenceTracker,
        facilitator: FacilitatorResponder,
        clock: Clock,
        context_window: int = 5,
        max_message_length: int = MAX_MESSAGE_LENGTH,
        facilitator_user_id: str = "facilitator",
        facilitator_display_name: str = "AI Facilitator",
    ):
        self._repository = repository
        self._bus = event_bus
        self._presence = presence
        self._facilitator = facilitator
        self._clock = clock
        self._context_window = context_window
        self._max_message_length = max_message_length
        self._facilitator_user_id = facilitator_user_id
        self._facilitator_display_name = facilitator_display_name
        # circleId -> last sequence number handed out
        self._sequences: Dict[str, int] = {}
        self._sequence_locks: Dict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    async def send(self, circle_id: str, sender: CurrentUser, content: str) -> Message:
        """
        Send a member message to a circle.

        1. Validate content, circle and membership (no side effects on failure)
        2. Persist the message
        3. Clear the sender's typing indicator
        4. Broadcast on the ``message`` topic
        5. Hand off to the facilitator, which may schedule a delayed reply

        Raises:
            InvalidArgumentException: Empty or oversized content, unknown circle
            NotMemberException: Sender has no active membership
        """
        content = self._validate_content(content)
        circle = await require_circle(self._repository, circle_id)
        membership = await ensure_active_member(self._repository, circle_id, sender.id)

        message = await self._persist(
            circle_id=circle_id,
            sender_id=sender.id,
            sender_name=sender.displayName,
            content=content,
            is_automated=False,
        )

        membership.lastActiveAt = message.sentAt
        await self._repository.save_membership(membership)
        self._presence.set_typing(circle_id, sender.id, False)
        self._bus.publish(Topic.MESSAGE, message.model_dump(mode="json"))

        if circle.aiEnabled:
            recent = await self._repository.get_messages_since(
                circle_id, limit=self._context_window
            )
            self._facilitator.maybe_respond(message, recent, self.send_automated)

        return message

    async def send_automated(self, circle_id: str, content: str) -> Message:
        """Post a facilitator message. Never triggers a further reply."""
        content = self._validate_content(content)
        await require_circle(self._repository, circle_id)

        message = await self._persist(
            circle_id=circle_id,
            sender_id=self._facilitator_user_id,
            sender_name=self._facilitator_display_name,
            content=content,
            is_automated=True,
        )
        self._bus.publish(Topic.MESSAGE, message.model_dump(mode="json"))
        return message

    async def add_reaction(self, message_id: str, user_id: str, symbol: str) -> Message:
        """
        React to a message. Each user holds at most one reaction per message.

        Repeating the same symbol is a no-op; a different symbol replaces the
        user's earlier reaction.
        """
        symbol = symbol.strip() if symbol else ""
        if not symbol:
            raise InvalidArgumentException(
                message="Reaction cannot be empty",
                code="EMPTY_REACTION",
            )

        message = await self._repository.get_message(message_id) if message_id else None
        if message is None:
            raise InvalidArgumentException(
                message=f"Unknown message: {message_id}",
                code="MESSAGE_NOT_FOUND",
            )

        existing = next(
            (i for i, r in enumerate(message.reactions) if r.userId == user_id), None
        )
        if existing is not None and message.reactions[existing].reaction == symbol:
            return message

        reaction = Reaction(userId=user_id, reaction=symbol, createdAt=self._clock.now())
        if existing is None:
            message.reactions.append(reaction)
        else:
            message.reactions[existing] = reaction

        await self._repository.save_message(message)

        self._bus.publish(Topic.REACTION, {
            "messageId": message.id,
            "circleId": message.circleId,
            "userId": user_id,
            "reaction": symbol,
            "createdAt": reaction.createdAt.isoformat(),
        })
        return message

    async def list_messages(self, circle_id: str, limit: int = 50) -> List[Message]:
        """Most recent messages of a circle, oldest first."""
        return await self._repository.get_messages_since(circle_id, limit=limit)

    def cancel_pending_replies(self, circle_id: str) -> int:
        return self._facilitator.cancel_pending(circle_id)

    def _validate_content(self, content: str) -> str:
        content = content.strip() if content else ""

        if not content:
            raise InvalidArgumentException(
                message="Message content cannot be empty",
                code="EMPTY_MESSAGE",
            )

        if len(content) > self._max_message_length:
            raise InvalidArgumentException(
                message=f"Message cannot exceed {self._max_message_length} characters",
                code="MESSAGE_TOO_LONG",
            )

        return content

    async def _persist(
        self,
        circle_id: str,
        sender_id: str,
        sender_name: str,
        content: str,
        is_automated: bool,
    ) -> Message:
        message = Message(
            id=new_id("msg"),
            circleId=circle_id,
            senderId=sender_id,
            senderDisplayName=sender_name,
            isAutomated=is_automated,
            content=content,
            sentAt=self._clock.now(),
            sequence=await self._next_sequence(circle_id),
        )

        await self._repository.save_message(message)
        logger.info(
            f"{'Facilitator message' if is_automated else 'Message'} {message.id} "
            f"created in circle {circle_id} by {sender_id}"
        )

        return message

    async def _next_sequence(self, circle_id: str) -> int:
        """
        Next per-circle sequence number.

        The counter is seeded from the latest stored message, so numbering
        continues across restarts. Numbers are unique within one process only.
        """
        async with self._sequence_locks[circle_id]:
            if circle_id not in self._sequences:
                latest = await self._repository.get_messages_since(circle_id, limit=1)
                self._sequences[circle_id] = latest[-1].sequence if latest else 0
            self._sequences[circle_id] += 1
            return self._sequences[circle_id]
