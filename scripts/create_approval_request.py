#!/usr/bin/env python3
"""
Create an approval request from the command line.

A quick helper for trying handlers out: the request is created pending, and
recipients then decide through the service or the test suite.  When no
--recipient is given the requester is the only recipient.

Usage:
    python3 scripts/create_approval_request.py "Join group 4" 12 \\
        --action-key project_group.add_member \\
        --payload '{"group_id": 4, "user_id": 12}' \\
        --recipient 7 --recipient 9
"""

import argparse
import json
import sys
from pathlib import Path

# ---------------------------------------------------------------------------
# Project root on sys.path
# ---------------------------------------------------------------------------
ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Create a pending approval request.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("title", nargs="?", help="Title for the approval request")
    parser.add_argument(
        "requested_by", nargs="?", type=int, help="User id that submits the request",
    )
    parser.add_argument(
        "--action-key",
        default="noop",
        help="Action key stored with the request (default: noop)",
    )
    parser.add_argument("--description", default=None, help="Optional description")
    parser.add_argument(
        "--recipient",
        action="append",
        default=[],
        help="Recipient user id (repeatable)",
    )
    parser.add_argument(
        "--payload",
        default=None,
        help="Action payload as a JSON object (default: none)",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Configuration YAML (default: $GRADE_CONFIG_PATH or the bundled set)",
    )
    parser.add_argument(
        "--create-tables",
        action="store_true",
        help="Create missing tables before inserting",
    )
    return parser.parse_args(argv)


def _ask_required(question: str) -> str:
    value = ""
    while not value:
        value = input(f"{question}: ").strip()
    return value


def _recipient_ids(values: list[str], requested_by: int) -> list[int]:
    ids = [int(value) for value in values if value not in (None, "")]
    return ids or [requested_by]


def _payload(raw: str | None) -> dict | None:
    if raw is None:
        return None
    payload = json.loads(raw)
    if not isinstance(payload, dict):
        raise ValueError("--payload must be a JSON object")
    return payload


def main(argv: list[str] | None = None) -> int:
    from grade_config import get_active_config
    from grade_kernel.db.engine import create_tables
    from grade_kernel.logging_config import configure_logging
    from grade_services.workflow import ApprovalWorkflow

    args = _parse_args(argv)
    configure_logging()

    title = args.title or _ask_required("Title")
    requested_by = (
        args.requested_by
        if args.requested_by is not None
        else int(_ask_required("Requested by (user id)"))
    )
    description = args.description or None

    try:
        recipients = _recipient_ids(args.recipient, requested_by)
        payload = _payload(args.payload)
    except ValueError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2

    workflow = ApprovalWorkflow.from_config(get_active_config(args.config))
    if args.create_tables:
        create_tables()

    with workflow.session_scope() as session:
        request = workflow.approval_service(session).create(
            title=title,
            description=description,
            requested_by=requested_by,
            action_key=args.action_key or "noop",
            action_payload=payload,
            recipient_ids=recipients,
        )

    print(f"Created approval request #{request.id}")
    print(f"  Title: {request.title}")
    print(f"  Recipients: {', '.join(str(uid) for uid in request.recipient_ids)}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
