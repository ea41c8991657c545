"""Shared types and enumerations."""

from __future__ import annotations

from enum import StrEnum


class Role(StrEnum):
    USER = "user"
    ASSISTANT = "assistant"


class FinishReason(StrEnum):
    STOP = "stop"
    TOOL_USE = "tool_use"


class ThinkingLevel(StrEnum):
    OFF = "off"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class LoopState(StrEnum):
    """States of the multi-round tool-calling loop."""

    AWAITING_MODEL = "awaiting_model"
    MODEL_RESPONDED = "model_responded"
    TOOLS_PENDING = "tools_pending"
    TOOLS_EXECUTED = "tools_executed"
    DONE = "done"
    ABORTED = "aborted"


class BusyPolicy(StrEnum):
    """What to do with a message whose conversation already has a loop in flight."""

    QUEUE = "queue"
    REJECT = "reject"


LOCAL_TOOL_SOURCE = "local"
