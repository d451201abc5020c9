#!/usr/bin/env python3
"""
run_workflow.py — Run one workflow against the configured remote API.

The attempt is recorded in the local history store exactly as the HTTP API
would record it, so `--history` shows it afterwards.

Usage:
    python scripts/run_workflow.py WORKFLOW_ID [--param key=value ...] [--card-id ID]
    python scripts/run_workflow.py --history [--limit 10]

Environment:
  WORKFLOW_API_TOKEN: bearer token (also settable via --token).
  WORKFLOW_API_BASE_URL: remote API base URL.
  STORAGE_BACKEND / STORAGE_DIR: where history is kept (see src/shared/config.py).
"""

import argparse
import asyncio
import json
import sys

from src.bootstrap import build_container
from src.domain.workflow.exceptions import WorkflowExecutionError
from src.domain.workflow.value_objects.execution_request import ExecutionRequest
from src.domain.workflow.value_objects.execution_result import ExecutionResult
from src.shared.config import settings
from src.shared.logger import configure_logging


def parse_params(pairs: list[str]) -> dict:
    params = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise ValueError(f"Expected key=value, got '{pair}'")
        try:
            params[key] = json.loads(value)
        except ValueError:
            params[key] = value
    return params


def print_progress(result: ExecutionResult) -> None:
    print(f"  ... {result.id} is {result.status.value}")


async def run(args: argparse.Namespace) -> int:
    container = build_container(settings)
    try:
        if args.history:
            for item in container.history_store.query(limit=args.limit):
                status = item.status.value if item.status else "pending"
                print(f"{item.id}  {item.card_title or item.card_id:<24} {status:<10} {item.execution_time_seconds}")
            return 0

        request = ExecutionRequest(
            workflow_id=args.workflow_id,
            parameters=args.parameters,
            credential=args.token,
        )
        try:
            result = await container.execute_workflow.execute(
                card_id=args.card_id or args.workflow_id,
                card_title=args.card_title or args.workflow_id,
                request=request,
                on_progress=print_progress,
            )
        except WorkflowExecutionError as e:
            print(f"Execution failed [{e.kind.value}]: {e.message}", file=sys.stderr)
            return 2 if e.retryable else 1

        print(json.dumps(result.to_dict(), indent=2, ensure_ascii=False))
        return 0
    finally:
        await container.aclose()


def main() -> None:
    parser = argparse.ArgumentParser(description="Run a remote workflow and record it in history")
    parser.add_argument("workflow_id", nargs="?", help="Remote workflow id")
    parser.add_argument("--param", action="append", default=[], help="Workflow parameter as key=value (JSON values allowed)")
    parser.add_argument("--card-id", default=None, help="Card id to file the history item under")
    parser.add_argument("--card-title", default=None, help="Card title to file the history item under")
    parser.add_argument("--token", default=None, help="Bearer token (defaults to WORKFLOW_API_TOKEN)")
    parser.add_argument("--history", action="store_true", help="List recent history items instead of running")
    parser.add_argument("--limit", type=int, default=10, help="Number of history items to list")
    args = parser.parse_args()

    if not args.history and not args.workflow_id:
        parser.error("workflow_id is required unless --history is given")
    try:
        args.parameters = parse_params(args.param)
    except ValueError as e:
        parser.error(str(e))

    configure_logging(settings.LOG_LEVEL, json_output=False)
    sys.exit(asyncio.run(run(args)))


if __name__ == "__main__":
    main()
