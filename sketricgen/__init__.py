"""
sketricgen: Python client SDK for SketricGen workflows.

Example usage::

    from sketricgen import SketricGenClient

    async with SketricGenClient(api_key="your-api-key") as client:
        # Run a workflow
        response = await client.run_workflow("agent-123", "Hello!")
        print(response.response)

        # Upload a file and attach it
        upload = await client.files.upload("agent-123", "./document.pdf")
        await client.run_workflow("agent-123", "Summarize this.", assets=[upload.file_id])

        # Stream events via SSE
        async for event in client.run_workflow("agent-123", "Explain.", stream=True):
            print(f"[{event.event_type}] {event.data}")
"""

from sketricgen.client import Files, SketricGenClient
from sketricgen.exceptions import (
    APIError,
    AuthenticationError,
    ConfigurationError,
    ContentTypeError,
    FileSizeError,
    NetworkError,
    RequestTimeoutError,
    UploadError,
    ValidationError,
    WorkflowError,
)
from sketricgen.settings import ClientConfig
from sketricgen.types import (
    ChatResponse,
    EventType,
    PresignedUpload,
    StreamEvent,
    UploadResult,
    WorkflowInvocation,
)
from sketricgen.upload import ALLOWED_CONTENT_TYPES, MAX_FILE_SIZE_BYTES

__all__ = [
    "SketricGenClient",
    "Files",
    "ClientConfig",
    "WorkflowError",
    "APIError",
    "AuthenticationError",
    "ConfigurationError",
    "ContentTypeError",
    "FileSizeError",
    "NetworkError",
    "RequestTimeoutError",
    "UploadError",
    "ValidationError",
    "ChatResponse",
    "EventType",
    "PresignedUpload",
    "StreamEvent",
    "UploadResult",
    "WorkflowInvocation",
    "ALLOWED_CONTENT_TYPES",
    "MAX_FILE_SIZE_BYTES",
]

__version__ = "0.1.0"
