"""``sketricgen`` command line: run workflows and upload files.

Credentials and endpoints come from ``SKETRICGEN_*`` environment variables.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from collections.abc import Sequence
from dataclasses import asdict

import httpx

from sketricgen.client import SketricGenClient
from sketricgen.exceptions import WorkflowError
from sketricgen.types import EventType

# Key fields of each event's JSON payload.
EVENT_FIELDS: dict[EventType, tuple[str, str]] = {
    EventType.RUN_STARTED: ("Workflow execution started", "thread_id, run_id"),
    EventType.TEXT_MESSAGE_START: ("Assistant message started", "message_id, role"),
    EventType.TEXT_MESSAGE_CONTENT: ("Text chunk (incremental)", "message_id, delta"),
    EventType.TEXT_MESSAGE_END: ("Assistant message completed", "message_id"),
    EventType.TOOL_CALL_START: ("Tool/function call started", "tool_call_id, tool_call_name"),
    EventType.TOOL_CALL_END: ("Tool/function call completed", "tool_call_id"),
    EventType.RUN_FINISHED: ("Workflow completed", "thread_id, run_id"),
    EventType.RUN_ERROR: ("Workflow error", "message"),
    EventType.CUSTOM: ("Custom event", "varies"),
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sketricgen",
        description="Run SketricGen workflows, upload files, and stream responses.",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Log HTTP activity")
    commands = parser.add_subparsers(dest="command", required=True)

    run = commands.add_parser("run", help="Run a workflow")
    run.add_argument("agent_id", help="The agent ID to run")
    run.add_argument("user_input", help="User message (max 10,000 characters)")
    run.add_argument("--stream", action="store_true", help="Print text as it streams in")
    run.add_argument(
        "--file", dest="files", action="append", default=[], metavar="PATH",
        help="Local file to upload and attach (repeatable)",
    )
    run.add_argument(
        "--asset", dest="assets", action="append", default=[], metavar="FILE_ID",
        help="Previously uploaded file ID to attach (repeatable)",
    )
    run.add_argument("--conversation-id", help="Resume an existing conversation")
    run.add_argument("--contact-id", help="External contact ID (max 255 characters)")

    upload = commands.add_parser("upload", help="Upload a file and print its file ID")
    upload.add_argument("agent_id", help="The agent ID")
    upload.add_argument("path", help="File to upload (jpeg, png, webp, gif or pdf; max 20 MiB)")
    upload.add_argument("--content-type", help="Override the type inferred from the extension")

    commands.add_parser("events", help="List stream event types and their payload fields")
    return parser


async def _run(client: SketricGenClient, args: argparse.Namespace) -> int:
    options = {
        "conversation_id": args.conversation_id,
        "contact_id": args.contact_id,
        "file_paths": args.files,
        "assets": args.assets,
    }
    if not args.stream:
        response = await client.run_workflow(args.agent_id, args.user_input, **options)
        print(response.response)
        return 1 if response.error else 0

    status = 0
    async for event in client.run_workflow(args.agent_id, args.user_input, stream=True, **options):
        try:
            payload = event.json()
        except ValueError:
            continue
        if not isinstance(payload, dict):
            continue
        if event.event_type == EventType.TEXT_MESSAGE_CONTENT:
            sys.stdout.write(payload.get("delta") or "")
            sys.stdout.flush()
        elif event.event_type == EventType.RUN_ERROR:
            print(f"\nerror: {payload.get('message', 'workflow failed')}", file=sys.stderr)
            status = 1
    sys.stdout.write("\n")
    return status


async def _upload(client: SketricGenClient, args: argparse.Namespace) -> int:
    result = await client.files.upload(args.agent_id, args.path, content_type=args.content_type)
    print(json.dumps(asdict(result), indent=2))
    return 0


def _print_events() -> int:
    for event_type, (summary, fields) in EVENT_FIELDS.items():
        print(f"{event_type.value:<22}{summary:<30}{fields}")
    return 0


async def _dispatch(args: argparse.Namespace, transport: httpx.AsyncBaseTransport | None) -> int:
    async with SketricGenClient.from_env(transport=transport) as client:
        if args.command == "run":
            return await _run(client, args)
        return await _upload(client, args)


def main(
    argv: Sequence[str] | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    if args.command == "events":
        return _print_events()

    try:
        return asyncio.run(_dispatch(args, transport))
    except WorkflowError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
