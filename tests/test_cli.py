"""Tests for CLI module."""

from expense_tracker.cli import SEED_EXPENSES, SEED_USERS, cmd_init, cmd_status, main
from expense_tracker.config import get_settings
from expense_tracker.container import Container
from expense_tracker.domain.queries import ExpenseFilter


def _open(db_path) -> Container:
    settings = get_settings().model_copy(update={"sqlite_path": db_path})
    return Container(settings=settings)


class TestCmdInit:
    def test_creates_new_database(self, tmp_path, capsys):
        db_path = tmp_path / "test.db"

        class Args:
            database = str(db_path)
            force = False

        result = cmd_init(Args())

        assert result == 0
        assert db_path.exists()
        assert "Initialized database" in capsys.readouterr().out

    def test_refuses_to_overwrite_existing_without_force(self, tmp_path, capsys):
        db_path = tmp_path / "test.db"
        db_path.write_text("existing")

        class Args:
            database = str(db_path)
            force = False

        result = cmd_init(Args())

        assert result == 1
        assert "already exists" in capsys.readouterr().out
        assert db_path.read_text() == "existing"

    def test_creates_parent_directories(self, tmp_path):
        db_path = tmp_path / "nested" / "dirs" / "test.db"

        result = main(["--database", str(db_path), "init"])

        assert result == 0
        assert db_path.exists()

    def test_force_flag_resets_data(self, tmp_path):
        db_path = tmp_path / "test.db"
        main(["--database", str(db_path), "init"])
        main(["--database", str(db_path), "seed"])

        result = main(["--database", str(db_path), "init", "--force"])

        assert result == 0
        with _open(db_path) as container:
            assert container.expense_repository.count(ExpenseFilter()) == 0


class TestCmdSeed:
    def test_seeds_users_and_expenses(self, tmp_path, capsys):
        db_path = tmp_path / "test.db"

        result = main(["--database", str(db_path), "seed"])

        assert result == 0
        output = capsys.readouterr().out
        assert f"Users created: {len(SEED_USERS)}" in output
        assert f"Expenses created: {len(SEED_EXPENSES)}" in output
        with _open(db_path) as container:
            assert container.expense_repository.count(ExpenseFilter()) == len(SEED_EXPENSES)
            admin = container.user_repository.get_by_email("admin@expensetracker.com")
            assert admin.is_admin

    def test_seed_is_idempotent(self, tmp_path, capsys):
        db_path = tmp_path / "test.db"
        main(["--database", str(db_path), "seed"])
        capsys.readouterr()

        result = main(["--database", str(db_path), "seed"])

        assert result == 0
        assert "already present" in capsys.readouterr().out
        with _open(db_path) as container:
            assert container.expense_repository.count(ExpenseFilter()) == len(SEED_EXPENSES)

    def test_seed_users_can_log_in(self, tmp_path):
        db_path = tmp_path / "test.db"
        main(["--database", str(db_path), "seed"])

        with _open(db_path) as container:
            user, token = container.auth_service.login(
                "john.doe@expensetracker.com", "password123"
            )

        assert user.name == "John Doe"
        assert token


class TestCmdCreateUser:
    def test_creates_admin(self, tmp_path, capsys):
        db_path = tmp_path / "test.db"

        result = main(
            [
                "--database", str(db_path), "create-user",
                "--email", "boss@example.com",
                "--name", "Big Boss",
                "--password", "Password123",
                "--role", "ADMIN",
            ]
        )  # fmt: skip

        assert result == 0
        assert "Created ADMIN user boss@example.com" in capsys.readouterr().out

    def test_reports_validation_errors(self, tmp_path, capsys):
        db_path = tmp_path / "test.db"

        result = main(
            [
                "--database", str(db_path), "create-user",
                "--email", "not-an-email",
                "--name", "Someone",
                "--password", "Password123",
            ]
        )  # fmt: skip

        assert result == 1
        assert "Error: email:" in capsys.readouterr().out

    def test_reports_duplicate(self, tmp_path, capsys):
        db_path = tmp_path / "test.db"
        args = [
            "--database", str(db_path), "create-user",
            "--email", "dup@example.com",
            "--name", "Someone",
            "--password", "Password123",
        ]  # fmt: skip
        main(args)

        result = main(args)

        assert result == 1
        assert "already exists" in capsys.readouterr().out


class TestCmdStatus:
    def test_reports_no_database(self, tmp_path, capsys):
        db_path = tmp_path / "missing.db"

        class Args:
            database = str(db_path)

        result = cmd_status(Args())

        assert result == 1
        assert "No database found" in capsys.readouterr().out

    def test_reports_counts(self, tmp_path, capsys):
        db_path = tmp_path / "test.db"
        main(["--database", str(db_path), "seed"])
        capsys.readouterr()

        result = main(["--database", str(db_path), "status"])

        assert result == 0
        output = capsys.readouterr().out
        assert f"Users: {len(SEED_USERS)}" in output
        assert "Admins: 1" in output
        assert f"Expenses: {len(SEED_EXPENSES)}" in output
        assert "PENDING: 4" in output
        assert "REJECTED: 1" in output


class TestMain:
    def test_no_command_prints_help(self, capsys):
        result = main([])

        assert result == 0
        assert "expense-tracker" in capsys.readouterr().out

    def test_version_command(self, capsys):
        result = main(["version"])

        assert result == 0
        assert "Expense Tracker v" in capsys.readouterr().out
