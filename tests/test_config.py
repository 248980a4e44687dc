"""Tests for application settings."""

from decimal import Decimal

import pytest
from pydantic import ValidationError

from expense_tracker.config import DatabaseType, Environment, Settings


class TestSettings:
    def test_defaults(self, monkeypatch) -> None:
        monkeypatch.delenv("EXPENSE_TRACKER_MAX_EXPENSE_AMOUNT", raising=False)

        settings = Settings(_env_file=None)

        assert settings.database_type == DatabaseType.SQLITE
        assert settings.max_expense_amount == Decimal("50000")
        assert settings.default_page_size == 10
        assert settings.max_page_size == 100
        assert settings.api_prefix == "/api"
        assert settings.allow_self_approval is True
        assert settings.allow_admin_registration is False

    def test_environment_override(self, monkeypatch) -> None:
        monkeypatch.setenv("EXPENSE_TRACKER_MAX_EXPENSE_AMOUNT", "25000")
        monkeypatch.setenv("EXPENSE_TRACKER_ALLOW_SELF_APPROVAL", "false")

        settings = Settings(_env_file=None)

        assert settings.max_expense_amount == Decimal("25000")
        assert settings.allow_self_approval is False

    def test_debug_follows_environment(self) -> None:
        development = Settings(_env_file=None, environment=Environment.DEVELOPMENT)
        testing = Settings(_env_file=None, environment=Environment.TESTING)
        explicit = Settings(_env_file=None, environment=Environment.DEVELOPMENT, debug=False)

        assert development.debug is True
        assert development.is_development
        assert testing.debug is False
        assert explicit.debug is False

    @pytest.mark.parametrize("environment", ["production", "staging"])
    def test_default_secret_rejected_outside_development(self, environment) -> None:
        with pytest.raises(ValidationError, match="Default secret key"):
            Settings(_env_file=None, environment=environment)

    def test_production_with_real_secret(self) -> None:
        settings = Settings(
            _env_file=None, environment="production", secret_key="a-real-secret"
        )

        assert settings.is_production

    def test_effective_database_url(self) -> None:
        sqlite = Settings(_env_file=None, sqlite_path="data/app.db")
        postgres = Settings(
            _env_file=None,
            database_type="postgres",
            database_url="postgresql://u:p@localhost/expenses",
        )

        assert sqlite.effective_database_url == "sqlite:///data/app.db"
        assert postgres.effective_database_url == "postgresql://u:p@localhost/expenses"

    def test_rejects_non_positive_ceiling(self) -> None:
        with pytest.raises(ValidationError):
            Settings(_env_file=None, max_expense_amount=0)

    def test_default_page_size_within_max(self) -> None:
        with pytest.raises(ValidationError, match="default_page_size"):
            Settings(_env_file=None, default_page_size=50, max_page_size=20)

    def test_postgres_requires_url(self) -> None:
        with pytest.raises(ValidationError, match="database_url is required"):
            Settings(_env_file=None, database_type="postgres")
