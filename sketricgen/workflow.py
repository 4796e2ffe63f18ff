"""Workflow runs: input validation, asset collection and dispatch."""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import AsyncIterator, Sequence
from contextlib import aclosing
from typing import Any

from sketricgen._http import Transport
from sketricgen.exceptions import ValidationError, WorkflowError
from sketricgen.settings import ClientConfig
from sketricgen.streaming import iter_sse
from sketricgen.types import ChatResponse, StreamEvent, WorkflowInvocation
from sketricgen.upload import FileInput, upload_asset

logger = logging.getLogger(__name__)

MAX_USER_INPUT_LENGTH = 10_000
MAX_CONTACT_ID_LENGTH = 255

RUN_WORKFLOW_PATH = "/api/v1/run-workflow"


def validate_invocation(
    agent_id: str,
    user_input: str,
    *,
    stream: bool = False,
    conversation_id: str | None = None,
    contact_id: str | None = None,
    assets: Sequence[str] | None = None,
) -> WorkflowInvocation:
    """Check the run arguments and return them as a WorkflowInvocation.

    Raises:
        ValidationError: If ``agent_id`` is blank, ``user_input`` is empty or
            longer than 10,000 characters, or ``contact_id`` is longer than
            255 characters.
    """
    trimmed_id = agent_id.strip() if isinstance(agent_id, str) else ""
    if not trimmed_id:
        raise ValidationError("agent_id must be non-empty")
    if not isinstance(user_input, str) or not user_input:
        raise ValidationError("user_input must be non-empty")
    if len(user_input) > MAX_USER_INPUT_LENGTH:
        raise ValidationError(
            f"user_input must be at most {MAX_USER_INPUT_LENGTH} characters"
        )
    if contact_id is not None and len(contact_id) > MAX_CONTACT_ID_LENGTH:
        raise ValidationError(
            f"contact_id must be at most {MAX_CONTACT_ID_LENGTH} characters"
        )
    return WorkflowInvocation(
        agent_id=trimmed_id,
        user_input=user_input,
        stream=stream,
        conversation_id=conversation_id,
        contact_id=contact_id,
        assets=tuple(assets or ()),
    )


async def collect_assets(
    transport: Transport,
    config: ClientConfig,
    agent_id: str,
    file_paths: Sequence[FileInput],
    assets: Sequence[str] = (),
) -> list[str]:
    """Upload local files one at a time and return their ids, then ``assets``."""
    collected: list[str] = []
    for path in file_paths:
        result = await upload_asset(transport, config, agent_id, path)
        collected.append(result.file_id)
    collected.extend(assets)
    return collected


def build_payload(invocation: WorkflowInvocation) -> dict[str, Any]:
    """Build the run-workflow request body; optional keys are omitted when empty."""
    payload: dict[str, Any] = {
        "agent_id": invocation.agent_id,
        "user_input": invocation.user_input,
        "stream": invocation.stream,
    }
    if invocation.assets:
        payload["assets"] = list(invocation.assets)
    if invocation.conversation_id:
        payload["conversation_id"] = invocation.conversation_id
    if invocation.contact_id:
        payload["contact_id"] = invocation.contact_id
    return payload


async def _attach_uploads(
    transport: Transport,
    config: ClientConfig,
    invocation: WorkflowInvocation,
    file_paths: Sequence[FileInput],
) -> WorkflowInvocation:
    if not file_paths:
        return invocation
    logger.debug("Uploading %d file(s) for agent %s", len(file_paths), invocation.agent_id)
    assets = await collect_assets(
        transport, config, invocation.agent_id, file_paths, invocation.assets
    )
    return dataclasses.replace(invocation, assets=tuple(assets))


async def execute_workflow(
    transport: Transport,
    config: ClientConfig,
    invocation: WorkflowInvocation,
    file_paths: Sequence[FileInput] = (),
) -> ChatResponse:
    """Run a workflow and wait for its single response."""
    invocation = await _attach_uploads(transport, config, invocation, file_paths)
    logger.debug("Running workflow for agent %s", invocation.agent_id)
    data = await transport.request(
        "POST",
        f"{config.base_url}{RUN_WORKFLOW_PATH}",
        auth="api-key",
        json=build_payload(invocation),
        timeout=config.timeout,
    )
    return _parse_chat_response(data)


async def stream_workflow(
    transport: Transport,
    config: ClientConfig,
    invocation: WorkflowInvocation,
    file_paths: Sequence[FileInput] = (),
) -> AsyncIterator[StreamEvent]:
    """Run a workflow and yield its events as they arrive.

    Nothing is uploaded or sent until iteration starts. The stream has no
    timeout, and closing this generator closes the underlying response.
    """
    invocation = await _attach_uploads(transport, config, invocation, file_paths)
    logger.debug("Streaming workflow for agent %s", invocation.agent_id)
    response = await transport.stream(
        "POST",
        f"{config.base_url}{RUN_WORKFLOW_PATH}",
        auth="api-key",
        json=build_payload(invocation),
        timeout=config.timeout,
        no_timeout=True,
    )
    async with aclosing(iter_sse(transport, response)) as events:
        async for event in events:
            yield event


# ---- Parsing helpers ----


def _parse_chat_response(data: Any) -> ChatResponse:
    if not isinstance(data, dict):
        raise WorkflowError(f"Unexpected run-workflow response: {data!r}")
    return ChatResponse(
        agent_id=data.get("agent_id", ""),
        user_id=data.get("user_id", ""),
        conversation_id=data.get("conversation_id", ""),
        response=data.get("response", ""),
        owner=data.get("owner", ""),
        error=bool(data.get("error", False)),
    )
