"""Dependency injection container for Expense Tracker.

Usage:
    from expense_tracker.container import get_container

    container = get_container()
    expense = container.expense_service.get(actor, expense_id)

Tests build a Container directly with in-memory settings, or pass an
already-initialized database.
"""

from functools import cached_property, lru_cache
from typing import TYPE_CHECKING, Any

from expense_tracker.config import DatabaseType, Settings, get_settings
from expense_tracker.logging_config import get_logger

if TYPE_CHECKING:
    from expense_tracker.repositories.interfaces import (
        ExpenseRepository,
        UserRepository,
    )
    from expense_tracker.services.analytics import AnalyticsService
    from expense_tracker.services.auth import AuthService, TokenService
    from expense_tracker.services.authorization import AuthorizationPolicy
    from expense_tracker.services.expenses import ExpenseService
    from expense_tracker.services.query import ExpenseQueryBuilder, ExpenseQueryService

logger = get_logger(__name__)


class Container:
    """Lazily builds and caches the database, repositories and services.

    A supplied ``database`` must already be initialized; the container
    only initializes databases it creates itself.
    """

    def __init__(self, settings: Settings | None = None, database: Any = None) -> None:
        self._settings = settings or get_settings()
        if database is not None:
            self.__dict__["database"] = database
        logger.debug(
            "container_created",
            database_type=self._settings.database_type.value,
            environment=self._settings.environment.value,
        )

    @property
    def settings(self) -> Settings:
        return self._settings

    @cached_property
    def database(self) -> Any:
        if self._settings.database_type == DatabaseType.POSTGRES:
            return self._create_postgres_database()
        return self._create_sqlite_database()

    def _create_sqlite_database(self) -> Any:
        from expense_tracker.repositories.sqlite import SQLiteDatabase

        db_path = str(self._settings.sqlite_path)
        logger.info("initializing_sqlite_database", path=db_path)

        db = SQLiteDatabase(db_path, check_same_thread=False)
        db.initialize()
        return db

    def _create_postgres_database(self) -> Any:
        from expense_tracker.repositories.postgres import PostgresDatabase

        url = self._settings.database_url
        if not url:
            raise ValueError("database_url must be set when database_type is postgres")

        logger.info(
            "initializing_postgres_database",
            # Host only; the URL may carry credentials
            host=url.split("@")[-1].split("/")[0] if "@" in url else "localhost",
        )

        db = PostgresDatabase(url)
        db.initialize()
        return db

    @property
    def _is_postgres(self) -> bool:
        from expense_tracker.repositories.sqlite import SQLiteDatabase

        return not isinstance(self.database, SQLiteDatabase)

    @cached_property
    def user_repository(self) -> "UserRepository":
        if self._is_postgres:
            from expense_tracker.repositories.postgres import PostgresUserRepository

            return PostgresUserRepository(self.database)
        from expense_tracker.repositories.sqlite import SQLiteUserRepository

        return SQLiteUserRepository(self.database)

    @cached_property
    def expense_repository(self) -> "ExpenseRepository":
        if self._is_postgres:
            from expense_tracker.repositories.postgres import PostgresExpenseRepository

            return PostgresExpenseRepository(self.database)
        from expense_tracker.repositories.sqlite import SQLiteExpenseRepository

        return SQLiteExpenseRepository(self.database)

    @cached_property
    def policy(self) -> "AuthorizationPolicy":
        from expense_tracker.services.authorization import AuthorizationPolicy

        return AuthorizationPolicy(allow_self_approval=self._settings.allow_self_approval)

    @cached_property
    def query_builder(self) -> "ExpenseQueryBuilder":
        from expense_tracker.services.query import ExpenseQueryBuilder

        return ExpenseQueryBuilder(
            default_limit=self._settings.default_page_size,
            max_limit=self._settings.max_page_size,
        )

    @cached_property
    def expense_service(self) -> "ExpenseService":
        from expense_tracker.services.expenses import ExpenseService

        return ExpenseService(
            self.expense_repository, self.user_repository, self.policy, self._settings
        )

    @cached_property
    def query_service(self) -> "ExpenseQueryService":
        from expense_tracker.services.query import ExpenseQueryService

        return ExpenseQueryService(self.expense_repository, self.policy, self.query_builder)

    @cached_property
    def analytics_service(self) -> "AnalyticsService":
        from expense_tracker.services.analytics import AnalyticsService

        return AnalyticsService(
            self.expense_repository, self.user_repository, self.policy, self.query_builder
        )

    @cached_property
    def token_service(self) -> "TokenService":
        from expense_tracker.services.auth import TokenService

        return TokenService(self._settings)

    @cached_property
    def auth_service(self) -> "AuthService":
        from expense_tracker.services.auth import AuthService

        return AuthService(self.user_repository, self.token_service, self._settings)

    def close(self) -> None:
        """Close the database if it was ever opened."""
        database = self.__dict__.get("database")
        if database is not None:
            logger.info("closing_database_connection")
            database.close()

    def __enter__(self) -> "Container":
        return self

    def __exit__(self, *args: object) -> None:
        self.close()


_container: Container | None = None


@lru_cache
def get_container() -> Container:
    """Get the global container singleton, created on first access."""
    global _container
    if _container is None:
        _container = Container()
    return _container


def reset_container() -> None:
    """Close and drop the global container."""
    global _container
    if _container is not None:
        _container.close()
        _container = None
    get_container.cache_clear()
