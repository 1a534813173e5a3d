"""Restaurant push notifications maintenance CLI.

Commands meant for cron or one-off operator use.

Usage:
    python src/manage.py process-scheduled                  # Deliver due notifications
    python src/manage.py process-scheduled --as-of 2026-01-01T09:00:00+00:00
    python src/manage.py cleanup-tokens                     # Delete malformed push tokens
"""

import argparse
import asyncio
import sys
from datetime import datetime


def _domain():
    from notifications.domain import notifications

    notifications.init()
    return notifications


def process_scheduled(as_of=None):
    """Deliver every scheduled notification due at ``as_of`` (default: now)."""
    from notifications.config import PushConfig
    from notifications.notification.delivery import process_scheduled_notifications
    from notifications.service import build_push_service

    domain = _domain()
    service = build_push_service(PushConfig.from_env())

    with domain.domain_context():
        processed = asyncio.run(process_scheduled_notifications(service, as_of=as_of))

    print(f"Processed {processed} scheduled notification(s).")
    return processed


def cleanup_tokens(requested_by="manage.py"):
    """Delete every malformed device token registration."""
    from notifications.device.cleanup import CleanupInvalidTokens

    domain = _domain()

    with domain.domain_context():
        result = domain.process(CleanupInvalidTokens(requested_by=requested_by), asynchronous=False)

    print(f"Checked {result['total']} token(s), removed {result['cleaned']}, {result['remaining']} remaining.")
    return result


def main():
    parser = argparse.ArgumentParser(description="Restaurant push notifications maintenance")
    subparsers = parser.add_subparsers(dest="command", required=True)

    scheduled_parser = subparsers.add_parser("process-scheduled", help="Deliver due scheduled notifications")
    scheduled_parser.add_argument(
        "--as-of",
        type=datetime.fromisoformat,
        help="Process as of this ISO-8601 time (default: now)",
    )

    cleanup_parser = subparsers.add_parser("cleanup-tokens", help="Delete malformed push tokens")
    cleanup_parser.add_argument(
        "--requested-by",
        default="manage.py",
        help="Recorded in the cleanup log",
    )

    args = parser.parse_args()

    if args.command == "process-scheduled":
        process_scheduled(as_of=args.as_of)
    elif args.command == "cleanup-tokens":
        cleanup_tokens(requested_by=args.requested_by)
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
