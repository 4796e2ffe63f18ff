"""Type definitions for the SketricGen SDK."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class EventType(str, Enum):
    """Event types emitted on a workflow stream.

    The decoder does not interpret them; they are listed for callers that
    dispatch on ``StreamEvent.event_type``.
    """

    RUN_STARTED = "RUN_STARTED"
    TEXT_MESSAGE_START = "TEXT_MESSAGE_START"
    TEXT_MESSAGE_CONTENT = "TEXT_MESSAGE_CONTENT"
    TEXT_MESSAGE_END = "TEXT_MESSAGE_END"
    TOOL_CALL_START = "TOOL_CALL_START"
    TOOL_CALL_END = "TOOL_CALL_END"
    RUN_FINISHED = "RUN_FINISHED"
    RUN_ERROR = "RUN_ERROR"
    CUSTOM = "CUSTOM"


@dataclass
class ChatResponse:
    """Result of a non-streaming workflow run."""

    agent_id: str
    user_id: str
    conversation_id: str
    response: str
    owner: str
    error: bool = False


@dataclass
class StreamEvent:
    """Represents a Server-Sent Event from a streaming workflow run."""

    event_type: str
    data: str  # JSON text, left as received
    id: str | None = None

    def json(self) -> Any:
        """Parse ``data`` as JSON."""
        return json.loads(self.data)


@dataclass(frozen=True)
class WorkflowInvocation:
    """Validated arguments of a single workflow run."""

    agent_id: str
    user_input: str
    stream: bool = False
    conversation_id: str | None = None
    contact_id: str | None = None
    assets: tuple[str, ...] = ()


@dataclass
class PresignedUpload:
    """Single-use storage grant returned by the upload init step."""

    url: str
    fields: dict[str, str] = field(default_factory=dict)
    expires_at: str = ""
    max_file_bytes: int | None = None


@dataclass
class ResolvedFile:
    """File input normalized before any upload request is made."""

    content: bytes
    file_name: str
    content_type: str
    size: int


@dataclass
class UploadResult:
    """Represents an uploaded asset; ``file_id`` goes into ``assets``."""

    file_id: str
    file_size_bytes: int
    content_type: str
    file_name: str
    created_at: str
    url: str
