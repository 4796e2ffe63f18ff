"""SketricGen client implementation using httpx."""

from __future__ import annotations

from collections.abc import AsyncIterator, Awaitable, Sequence
from typing import Any, Literal, overload

import httpx
import pydantic

from sketricgen._http import Transport
from sketricgen.exceptions import ConfigurationError
from sketricgen.settings import ClientConfig
from sketricgen.types import ChatResponse, StreamEvent, UploadResult
from sketricgen.upload import FileInput, upload_asset
from sketricgen.workflow import execute_workflow, stream_workflow, validate_invocation


class Files:
    """File operations, available as ``client.files``."""

    def __init__(self, client: SketricGenClient) -> None:
        self._client = client

    async def upload(
        self,
        agent_id: str,
        file: FileInput,
        *,
        filename: str | None = None,
        content_type: str | None = None,
    ) -> UploadResult:
        """Upload a file for use as a workflow asset.

        Args:
            agent_id: The agent the file belongs to.
            file: A path, a bytes buffer, or a binary stream.
            filename: Required for buffers and streams; must have an extension.
            content_type: Optional; inferred from the extension for paths.

        Returns:
            UploadResult whose ``file_id`` can be passed in ``assets``.
        """
        return await upload_asset(
            self._client._transport,
            self._client.config,
            agent_id,
            file,
            filename=filename,
            content_type=content_type,
        )


class SketricGenClient:
    """Client for running SketricGen workflows and uploading assets.

    Options not passed explicitly are read from ``SKETRICGEN_*`` environment
    variables, then fall back to defaults.

    Args:
        api_key: API key. Falls back to ``SKETRICGEN_API_KEY``.
        config: A ready ClientConfig; when given, ``api_key`` and ``options``
            are ignored.
        transport: Optional httpx transport (e.g. ``httpx.MockTransport`` in tests).
        **options: Any other ClientConfig field (``base_url``,
            ``upload_init_url``, ``upload_complete_url``, ``timeout``,
            ``upload_timeout``, ``max_retries``).
    """

    def __init__(
        self,
        api_key: str | None = None,
        *,
        config: ClientConfig | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        **options: Any,
    ) -> None:
        if config is None:
            if api_key is not None:
                options["api_key"] = api_key
            try:
                config = ClientConfig(**options)
            except pydantic.ValidationError as exc:
                raise ConfigurationError(f"Invalid client configuration: {exc}") from exc
        self._config = config
        if transport is None:
            transport = httpx.AsyncHTTPTransport(retries=config.max_retries)
        self._client = httpx.AsyncClient(transport=transport, timeout=None)
        self._transport = Transport(self._client, config.api_key.get_secret_value())
        self.files = Files(self)

    @classmethod
    def from_env(cls, **overrides: Any) -> SketricGenClient:
        """Create a client from ``SKETRICGEN_*`` environment variables.

        Keyword arguments override individual settings.
        """
        return cls(**overrides)

    @property
    def config(self) -> ClientConfig:
        return self._config

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()

    async def __aenter__(self) -> SketricGenClient:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.aclose()

    # ---- Workflows ----

    @overload
    def run_workflow(
        self,
        agent_id: str,
        user_input: str,
        *,
        stream: Literal[False] = False,
        conversation_id: str | None = None,
        contact_id: str | None = None,
        file_paths: Sequence[FileInput] | None = None,
        assets: Sequence[str] | None = None,
    ) -> Awaitable[ChatResponse]: ...

    @overload
    def run_workflow(
        self,
        agent_id: str,
        user_input: str,
        *,
        stream: Literal[True],
        conversation_id: str | None = None,
        contact_id: str | None = None,
        file_paths: Sequence[FileInput] | None = None,
        assets: Sequence[str] | None = None,
    ) -> AsyncIterator[StreamEvent]: ...

    def run_workflow(
        self,
        agent_id: str,
        user_input: str,
        *,
        stream: bool = False,
        conversation_id: str | None = None,
        contact_id: str | None = None,
        file_paths: Sequence[FileInput] | None = None,
        assets: Sequence[str] | None = None,
    ) -> Awaitable[ChatResponse] | AsyncIterator[StreamEvent]:
        """Run a workflow.

        Arguments are validated immediately, before anything is uploaded or
        sent. Local ``file_paths`` are uploaded one by one and their ids are
        placed ahead of ``assets`` in the request.

        Returns:
            An awaitable ChatResponse, or with ``stream=True`` an async
            iterator of StreamEvent that does its work while being consumed::

                async for event in client.run_workflow(agent_id, text, stream=True):
                    ...

        Raises:
            ValidationError: On invalid arguments, at call time.
        """
        invocation = validate_invocation(
            agent_id,
            user_input,
            stream=stream,
            conversation_id=conversation_id,
            contact_id=contact_id,
            assets=assets,
        )
        paths = list(file_paths or ())
        if stream:
            return stream_workflow(self._transport, self._config, invocation, paths)
        return execute_workflow(self._transport, self._config, invocation, paths)
