"""Orchestration pipelines."""

from circle_engine.pipelines.message_pipeline import MessagePipeline

__all__ = ["MessagePipeline"]
