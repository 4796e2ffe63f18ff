"""Asset uploads: input validation and the three-step presigned upload.

1. init      - ask the API for a presigned storage grant
2. transfer  - POST the file straight to storage using the grant's form fields
3. complete  - confirm the upload and receive the final file metadata
"""

from __future__ import annotations

import asyncio
import logging
import os
from collections.abc import AsyncIterable, AsyncIterator, Iterable
from pathlib import Path
from typing import Any, BinaryIO

from sketricgen._http import Transport
from sketricgen.exceptions import (
    ContentTypeError,
    FileSizeError,
    UploadError,
    ValidationError,
)
from sketricgen.settings import ClientConfig
from sketricgen.types import PresignedUpload, ResolvedFile, UploadResult

logger = logging.getLogger(__name__)

MAX_FILE_SIZE_BYTES = 20 * 1024 * 1024

ALLOWED_CONTENT_TYPES = (
    "image/jpeg",
    "image/webp",
    "image/png",
    "application/pdf",
    "image/gif",
)

DEFAULT_CONTENT_TYPE = "application/octet-stream"

_EXTENSION_CONTENT_TYPES = {
    ".pdf": "application/pdf",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".webp": "image/webp",
    ".gif": "image/gif",
}

_READ_CHUNK_SIZE = 64 * 1024

# A path, an in-memory buffer, or a byte stream (binary file object, sync or
# async iterable of bytes).
FileInput = (
    str
    | os.PathLike[str]
    | bytes
    | bytearray
    | memoryview
    | BinaryIO
    | AsyncIterable[bytes]
    | Iterable[bytes]
)


def _require_extension(file_name: str) -> str:
    base = os.path.basename(file_name)
    if "." not in base:
        raise ValidationError('Filename must include an extension (e.g. "doc.pdf")')
    return base


def _require_filename(filename: str | None, kind: str) -> str:
    if not filename or "." not in filename:
        raise ValidationError(f"filename (with extension) is required when file is {kind}")
    return _require_extension(filename)


def _validate_size(size: int) -> None:
    if size <= 0:
        raise FileSizeError("Cannot upload an empty file", size, MAX_FILE_SIZE_BYTES)
    if size > MAX_FILE_SIZE_BYTES:
        raise FileSizeError(
            f"File size {size} exceeds maximum {MAX_FILE_SIZE_BYTES} bytes",
            size,
            MAX_FILE_SIZE_BYTES,
        )


def _validate_content_type(content_type: str) -> None:
    normalized = content_type.lower().split(";")[0].strip()
    if normalized not in ALLOWED_CONTENT_TYPES:
        raise ContentTypeError(
            f'Content type "{content_type}" is not allowed',
            content_type,
            list(ALLOWED_CONTENT_TYPES),
        )


def _explicit_content_type(content_type: str | None) -> str:
    """Buffers and streams: validate an explicit type, otherwise fall back to binary."""
    if content_type:
        _validate_content_type(content_type)
        return content_type
    return DEFAULT_CONTENT_TYPE


async def _resolve_path(file: str | os.PathLike[str], content_type: str | None) -> ResolvedFile:
    path = Path(file)
    try:
        stat = await asyncio.to_thread(path.stat)
    except OSError as exc:
        raise ValidationError(f"Cannot read file {path}: {exc.strerror}") from exc
    _validate_size(stat.st_size)
    file_name = _require_extension(path.name)

    try:
        content = await asyncio.to_thread(path.read_bytes)
    except OSError as exc:
        raise ValidationError(f"Cannot read file {path}: {exc.strerror}") from exc

    resolved_type = content_type or _EXTENSION_CONTENT_TYPES.get(path.suffix.lower())
    if resolved_type:
        _validate_content_type(resolved_type)
    return ResolvedFile(
        content=content,
        file_name=file_name,
        content_type=resolved_type or DEFAULT_CONTENT_TYPE,
        size=stat.st_size,
    )


async def _iter_chunks(stream: Any) -> AsyncIterator[bytes]:
    if hasattr(stream, "read"):
        while True:
            chunk = await asyncio.to_thread(stream.read, _READ_CHUNK_SIZE)
            if not chunk:
                break
            yield chunk
    elif isinstance(stream, AsyncIterable):
        async for chunk in stream:
            yield chunk
    else:
        for chunk in stream:
            yield chunk


async def _read_stream(stream: Any) -> bytes:
    """Read a byte stream, failing as soon as it grows past the size limit."""
    chunks: list[bytes] = []
    total = 0
    async for chunk in _iter_chunks(stream):
        if isinstance(chunk, str):
            chunk = chunk.encode("utf-8")
        total += len(chunk)
        if total > MAX_FILE_SIZE_BYTES:
            raise FileSizeError(
                f"File size exceeds maximum {MAX_FILE_SIZE_BYTES} bytes",
                total,
                MAX_FILE_SIZE_BYTES,
            )
        chunks.append(bytes(chunk))
    return b"".join(chunks)


async def resolve_file_input(
    file: FileInput,
    filename: str | None = None,
    content_type: str | None = None,
) -> ResolvedFile:
    """Validate a path, buffer or stream and load it into a ResolvedFile.

    Paths take their name from the filesystem and may infer the content type
    from the extension. Buffers and streams need an explicit ``filename``.

    Raises:
        ValidationError: Missing filename/extension or unreadable path.
        FileSizeError: Empty file or more than 20 MiB.
        ContentTypeError: Content type outside the allow-list.
    """
    if isinstance(file, (str, os.PathLike)):
        return await _resolve_path(file, content_type)

    if isinstance(file, (bytes, bytearray, memoryview)):
        file_name = _require_filename(filename, "a bytes buffer")
        content = bytes(file)
        _validate_size(len(content))
        return ResolvedFile(
            content=content,
            file_name=file_name,
            content_type=_explicit_content_type(content_type),
            size=len(content),
        )

    if hasattr(file, "read") or isinstance(file, (AsyncIterable, Iterable)):
        file_name = _require_filename(filename, "a stream")
        content = await _read_stream(file)
        _validate_size(len(content))
        return ResolvedFile(
            content=content,
            file_name=file_name,
            content_type=_explicit_content_type(content_type),
            size=len(content),
        )

    raise ValidationError(f"Unsupported file input of type {type(file).__name__}")


async def upload_asset(
    transport: Transport,
    config: ClientConfig,
    agent_id: str,
    file: FileInput,
    *,
    filename: str | None = None,
    content_type: str | None = None,
) -> UploadResult:
    """Upload a file and return its metadata; ``file_id`` can be passed as an asset.

    The three steps run strictly in order and are never retried. A failure
    after init leaves the remote file partially provisioned.

    Raises:
        ValidationError, FileSizeError, ContentTypeError: Bad input; nothing was sent.
        UploadError: One of the upload steps reported failure.
        APIError, NetworkError, RequestTimeoutError: The init or complete call failed.
    """
    agent_id = agent_id.strip() if isinstance(agent_id, str) else ""
    if not agent_id:
        raise ValidationError("agent_id must be non-empty")

    resolved = await resolve_file_input(file, filename, content_type)
    file_name = resolved.file_name

    logger.debug("Initiating upload of %s (%d bytes)", file_name, resolved.size)
    init = await transport.request(
        "POST",
        config.upload_init_url,
        auth="x-api-key",
        json={"agent_id": agent_id, "file_name": file_name},
        timeout=config.upload_timeout,
    )
    grant = _parse_grant(init)
    file_id = init.get("file_id")

    await _transfer(transport, grant, resolved, config.upload_timeout)
    logger.debug("Stored %s as file %s", file_name, file_id)

    complete = await transport.request(
        "POST",
        config.upload_complete_url,
        auth="x-api-key",
        json={"agent_id": agent_id, "file_id": file_id, "file_name": file_name},
        timeout=config.upload_timeout,
    )
    if not isinstance(complete, dict) or not complete.get("success"):
        raise UploadError("Upload complete failed", response=complete)

    return _parse_upload_result(complete, file_id)


async def _transfer(
    transport: Transport,
    grant: PresignedUpload,
    resolved: ResolvedFile,
    timeout: float | None,
) -> None:
    if isinstance(grant.max_file_bytes, int) and 0 < grant.max_file_bytes < resolved.size:
        raise FileSizeError(
            f"File size {resolved.size} exceeds the upload grant limit of {grant.max_file_bytes} bytes",
            resolved.size,
            grant.max_file_bytes,
        )

    # The grant may pin the stored content type; the file part must match it.
    part_type = grant.fields.get("Content-Type", resolved.content_type)
    response = await transport.post_form(
        grant.url,
        fields=grant.fields,
        files={"file": (resolved.file_name, resolved.content, part_type)},
        timeout=timeout,
    )
    if not response.is_success:
        logger.warning("Storage upload to %s failed with status %s", grant.url, response.status_code)
        raise UploadError(
            f"Storage upload failed: {response.status_code} {response.text}",
            response=response.text,
            status_code=response.status_code,
        )


# ---- Parsing helpers ----


def _parse_grant(data: Any) -> PresignedUpload:
    if not isinstance(data, dict) or not data.get("success"):
        raise UploadError("Upload init failed", response=data)
    upload = data.get("upload")
    if not isinstance(upload, dict) or not isinstance(upload.get("url"), str):
        raise UploadError("Upload init failed", response=data)
    fields = upload.get("fields") or {}
    if not isinstance(fields, dict):
        raise UploadError("Upload init failed", response=data)
    return PresignedUpload(
        url=upload["url"],
        fields={str(k): str(v) for k, v in fields.items()},
        expires_at=upload.get("expires_at", ""),
        max_file_bytes=upload.get("max_file_bytes"),
    )


def _parse_upload_result(data: dict[str, Any], file_id: str | None) -> UploadResult:
    return UploadResult(
        file_id=data.get("file_id") or file_id or "",
        file_size_bytes=data.get("file_size_bytes", 0),
        content_type=data.get("content_type", ""),
        file_name=data.get("file_name", ""),
        created_at=data.get("created_at", ""),
        url=data.get("url", ""),
    )
