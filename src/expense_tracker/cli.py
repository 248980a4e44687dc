"""Command-line interface for Expense Tracker."""

import argparse
import sys
from datetime import UTC, date, datetime
from decimal import Decimal
from pathlib import Path

from expense_tracker import __version__
from expense_tracker.config import DatabaseType, Settings, get_settings
from expense_tracker.container import Container
from expense_tracker.domain.expenses import Expense, ExpenseCategory, ExpenseStatus
from expense_tracker.domain.queries import ExpenseFilter
from expense_tracker.domain.users import User, UserRole
from expense_tracker.exceptions import ExpenseTrackerError, ValidationError
from expense_tracker.logging_config import configure_logging
from expense_tracker.services.auth import PasswordHasher

SEED_PASSWORD = "password123"

SEED_USERS = [
    ("admin@expensetracker.com", "Admin Manager", UserRole.ADMIN),
    ("john.doe@expensetracker.com", "John Doe", UserRole.EMPLOYEE),
    ("jane.smith@expensetracker.com", "Jane Smith", UserRole.EMPLOYEE),
    ("mike.johnson@expensetracker.com", "Mike Johnson", UserRole.EMPLOYEE),
]

# (owner email, amount, category, description, date, status, processed at, reason)
SEED_EXPENSES = [
    ("john.doe", "25.50", "FOOD", "Team lunch at downtown restaurant",
     "2024-07-15", "APPROVED", "2024-07-16T10:30:00", None),
    ("john.doe", "45.00", "TRANSPORT", "Uber to client meeting",
     "2024-07-16", "PENDING", None, None),
    ("john.doe", "120.00", "SOFTWARE", "Monthly subscription for design tools",
     "2024-07-10", "APPROVED", "2024-07-11T09:15:00", None),
    ("john.doe", "85.75", "OFFICE_SUPPLIES", "Printer cartridges and paper",
     "2024-07-05", "REJECTED", "2024-07-06T14:20:00",
     "Please use company supplier for office supplies"),
    ("jane.smith", "75.00", "TRAINING", "Online course certification",
     "2024-07-18", "APPROVED", "2024-07-19T08:45:00", None),
    ("jane.smith", "32.50", "FOOD", "Client dinner",
     "2024-07-19", "PENDING", None, None),
    ("jane.smith", "150.00", "MARKETING", "Conference registration fee",
     "2024-07-12", "APPROVED", "2024-07-13T11:30:00", None),
    ("jane.smith", "28.00", "TRANSPORT", "Parking fees for client visit",
     "2024-07-14", "APPROVED", "2024-07-15T13:10:00", None),
    ("mike.johnson", "200.00", "ACCOMMODATION", "Hotel for business trip",
     "2024-07-20", "PENDING", None, None),
    ("mike.johnson", "65.00", "ENTERTAINMENT", "Team building dinner",
     "2024-07-17", "APPROVED", "2024-07-18T05:30:00", None),
    ("mike.johnson", "90.00", "TRAVEL", "Flight booking fee",
     "2024-07-08", "APPROVED", "2024-07-09T06:45:00", None),
    ("mike.johnson", "15.50", "UTILITIES", "Internet charges for home office",
     "2024-07-11", "PENDING", None, None),
    ("admin", "300.00", "SOFTWARE", "Enterprise software license",
     "2024-07-13", "APPROVED", "2024-07-14T15:00:00", None),
    ("admin", "50.00", "OTHER", "Miscellaneous office expenses",
     "2024-07-09", "APPROVED", "2024-07-10T12:00:00", None),
    ("john.doe", "180.00", "TRAINING", "Workshop attendance",
     "2024-06-15", "APPROVED", "2024-06-16T16:20:00", None),
    ("jane.smith", "95.00", "FOOD", "Client lunch meeting",
     "2024-06-20", "APPROVED", "2024-06-21T10:15:00", None),
    ("mike.johnson", "250.00", "ACCOMMODATION", "Conference hotel stay",
     "2024-05-25", "APPROVED", "2024-05-26T07:30:00", None),
    ("john.doe", "40.00", "TRANSPORT", "Monthly metro pass",
     "2024-06-01", "APPROVED", "2024-06-02T14:45:00", None),
    ("jane.smith", "110.00", "SOFTWARE", "Development tools subscription",
     "2024-05-15", "APPROVED", "2024-05-16T09:00:00", None),
]  # fmt: skip


def _settings_for(args: argparse.Namespace) -> Settings:
    settings = get_settings()
    if getattr(args, "database", None):
        settings = settings.model_copy(update={"sqlite_path": Path(args.database)})
    return settings


def _open_container(args: argparse.Namespace) -> Container:
    return Container(settings=_settings_for(args))


def _uses_sqlite_file(settings: Settings) -> bool:
    return settings.database_type == DatabaseType.SQLITE and str(
        settings.sqlite_path
    ) != ":memory:"


def cmd_init(args: argparse.Namespace) -> int:
    """Initialize a new database."""
    settings = _settings_for(args)
    if _uses_sqlite_file(settings):
        db_path = Path(settings.sqlite_path)
        if db_path.exists() and not args.force:
            print(f"Database already exists at {db_path}")
            print("Use --force to reinitialize (WARNING: will delete existing data)")
            return 1
        if db_path.exists() and args.force:
            db_path.unlink()
        db_path.parent.mkdir(parents=True, exist_ok=True)

    with Container(settings=settings) as container:
        _ = container.database
        print(f"Initialized database at {settings.effective_database_url}")
    return 0


def cmd_seed(args: argparse.Namespace) -> int:
    """Load sample users and expenses."""
    with _open_container(args) as container:
        users = container.user_repository
        expenses = container.expense_repository

        by_handle: dict[str, User] = {}
        created_users = 0
        for email, name, role in SEED_USERS:
            user = users.get_by_email(email)
            if user is None:
                user = User(
                    email=email,
                    name=name,
                    role=role,
                    password_hash=PasswordHasher.hash(SEED_PASSWORD),
                )
                users.add(user)
                created_users += 1
            by_handle[email.split("@")[0]] = user

        admin = by_handle["admin"]
        if users.count_expenses(admin.id) > 0:
            print("Sample data already present; users checked, no expenses added")
            return 0

        for handle, amount, category, description, day, status, processed, reason in (
            SEED_EXPENSES
        ):
            expense = Expense(
                user_id=by_handle[handle].id,
                amount=Decimal(amount),
                category=ExpenseCategory(category),
                description=description,
                date=date.fromisoformat(day),
                status=ExpenseStatus(status),
                rejection_reason=reason,
            )
            if processed:
                expense.processed_at = datetime.fromisoformat(processed).replace(tzinfo=UTC)
                expense.processed_by = admin.id
            expenses.add(expense)

        total = sum(Decimal(row[1]) for row in SEED_EXPENSES)
        print(f"Users created: {created_users}")
        print(f"Expenses created: {len(SEED_EXPENSES)}")
        print(f"Total amount: ${total:.2f}")
        print(f"Sample password for all users: {SEED_PASSWORD}")
    return 0


def cmd_create_user(args: argparse.Namespace) -> int:
    """Create a user (admins allowed)."""
    with _open_container(args) as container:
        try:
            user, _ = container.auth_service.register(
                email=args.email,
                name=args.name,
                password=args.password,
                role=args.role,
                allow_admin=True,
            )
        except ValidationError as e:
            for error in e.errors:
                print(f"Error: {error.field}: {error.message}")
            return 1
        except ExpenseTrackerError as e:
            print(f"Error: {e.message}")
            return 1

        print(f"Created {user.role.value} user {user.email} ({user.id})")
    return 0


def cmd_status(args: argparse.Namespace) -> int:
    """Show database status."""
    settings = _settings_for(args)
    if _uses_sqlite_file(settings) and not Path(settings.sqlite_path).exists():
        print(f"No database found at {settings.sqlite_path}")
        print("Run 'expense-tracker init' to create a new database")
        return 1

    with Container(settings=settings) as container:
        users = list(container.user_repository.list_all())
        repo = container.expense_repository

        print(f"Database: {settings.effective_database_url}")
        print(f"Users: {len(users)}")
        print(f"  Admins: {sum(1 for u in users if u.is_admin)}")
        print(f"Expenses: {repo.count(ExpenseFilter())}")
        for status in ExpenseStatus:
            print(f"  {status.value}: {repo.count(ExpenseFilter(status=status))}")
    return 0


def cmd_serve(args: argparse.Namespace) -> int:
    """Run the HTTP API with uvicorn."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "expense_tracker.api.app:app",
        host=args.host or settings.api_host,
        port=args.port or settings.api_port,
        reload=args.reload or settings.api_reload,
    )
    return 0


def cmd_version(args: argparse.Namespace) -> int:
    """Show version information."""
    print(f"Expense Tracker v{__version__}")
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="expense-tracker",
        description="Expense Tracker - expense submission, approval and analytics",
    )
    parser.add_argument(
        "--database",
        "-d",
        help="Path to SQLite database file",
        default=None,
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # init command
    init_parser = subparsers.add_parser("init", help="Initialize a new database")
    init_parser.add_argument(
        "--force",
        "-f",
        action="store_true",
        help="Force reinitialization (deletes existing data)",
    )
    init_parser.set_defaults(func=cmd_init)

    # seed command
    seed_parser = subparsers.add_parser("seed", help="Load sample users and expenses")
    seed_parser.set_defaults(func=cmd_seed)

    # create-user command
    user_parser = subparsers.add_parser("create-user", help="Create a user")
    user_parser.add_argument("--email", required=True, help="Email address")
    user_parser.add_argument("--name", required=True, help="Display name")
    user_parser.add_argument("--password", required=True, help="Password")
    user_parser.add_argument(
        "--role",
        choices=[r.value for r in UserRole],
        default=UserRole.EMPLOYEE.value,
        help="User role (default: EMPLOYEE)",
    )
    user_parser.set_defaults(func=cmd_create_user)

    # status command
    status_parser = subparsers.add_parser("status", help="Show database status")
    status_parser.set_defaults(func=cmd_status)

    # serve command
    serve_parser = subparsers.add_parser("serve", help="Run the HTTP API")
    serve_parser.add_argument("--host", default=None, help="Bind address")
    serve_parser.add_argument("--port", type=int, default=None, help="Bind port")
    serve_parser.add_argument(
        "--reload", action="store_true", help="Auto-reload on code changes"
    )
    serve_parser.set_defaults(func=cmd_serve)

    # version command
    version_parser = subparsers.add_parser("version", help="Show version")
    version_parser.set_defaults(func=cmd_version)

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    configure_logging(get_settings())
    result: int = args.func(args)
    return result


if __name__ == "__main__":
    sys.exit(main())
