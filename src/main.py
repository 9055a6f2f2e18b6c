"""Command-line maintenance tasks.

Usage:
    python main.py init-db
    python main.py create-admin --name "Ada" --email ada@example.com --password secret
    python main.py send-reminders

``send-reminders`` is meant to be run from cron; it emails every student
with an assignment due within DUE_SOON_DAYS that they have not submitted.
"""

import argparse
import logging
import sys

from config import DUE_SOON_DAYS
from core.database import SessionLocal, init_db
from core.logging_config import setup_logging
from core.dependencies import get_email_service
from utils.assignment_manager import AssignmentManager
from utils.reminders import send_due_reminders
from utils.time_utils import now_utc
from utils.user_manager import UserAlreadyExistsError, UserManager

logger = logging.getLogger(__name__)


def cmd_init_db(args: argparse.Namespace) -> int:
    init_db()
    print("Database tables are ready.")
    return 0


def cmd_create_admin(args: argparse.Namespace) -> int:
    name = args.name.strip()
    email = args.email.strip().lower()
    if not name or not email or not args.password:
        print("Name, email and password are required.", file=sys.stderr)
        return 1

    db = SessionLocal()
    try:
        user = UserManager(db).create_user(
            name=name, email=email, password=args.password, role="admin"
        )
    except UserAlreadyExistsError as e:
        print(str(e), file=sys.stderr)
        return 1
    finally:
        db.close()

    print(f"Created admin {user.email} ({user.user_id})")
    return 0


def cmd_send_reminders(args: argparse.Namespace) -> int:
    now = now_utc()
    db = SessionLocal()
    try:
        due = AssignmentManager(db).list_due_soon(now, days=args.days)
        stats = send_due_reminders(db, get_email_service(), [a for a, _ in due], now)
    finally:
        db.close()

    print(f"Reminders for {len(due)} assignment(s): {stats.sent} sent, {stats.failed} failed")
    return 0 if stats.failed == 0 else 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Coursework Manager maintenance commands")
    subparsers = parser.add_subparsers(dest="command", required=True)

    init_parser = subparsers.add_parser("init-db", help="Create database tables")
    init_parser.set_defaults(func=cmd_init_db)

    admin_parser = subparsers.add_parser("create-admin", help="Create an admin account")
    admin_parser.add_argument("--name", required=True)
    admin_parser.add_argument("--email", required=True)
    admin_parser.add_argument("--password", required=True)
    admin_parser.set_defaults(func=cmd_create_admin)

    remind_parser = subparsers.add_parser(
        "send-reminders", help="Email students about assignments due soon"
    )
    remind_parser.add_argument(
        "--days",
        type=int,
        default=DUE_SOON_DAYS,
        help=f"Look-ahead window in days (default {DUE_SOON_DAYS})",
    )
    remind_parser.set_defaults(func=cmd_send_reminders)
    return parser


def main(argv=None) -> int:
    setup_logging()
    args = build_parser().parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
