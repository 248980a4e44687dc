"""Authentication service.

Provides:
- User registration and login
- JWT access token issue and verification
- Password hashing and verification
- Profile read/update and password change
"""

import hashlib
import secrets
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from uuid import UUID

from jose import ExpiredSignatureError, JWTError, jwt

from expense_tracker.config import Settings
from expense_tracker.domain.users import Actor, User, UserRole
from expense_tracker.exceptions import (
    AuthenticationError,
    DuplicateUserError,
    FieldError,
    PermissionDeniedError,
    UserNotFoundError,
    ValidationError,
)
from expense_tracker.logging_config import get_logger
from expense_tracker.repositories.interfaces import UserRepository
from expense_tracker.services.validation import (
    validate_email,
    validate_name,
    validate_password,
)

logger = get_logger(__name__)


class PasswordHasher:
    """Secure password hashing using PBKDF2."""

    ALGORITHM = "pbkdf2_sha256"
    ITERATIONS = 600_000  # OWASP 2023 recommendation
    SALT_LENGTH = 32

    @classmethod
    def hash(cls, password: str) -> str:
        """Hash a password.

        Returns:
            Hash string in format: algorithm$iterations$salt$hash
        """
        salt = secrets.token_hex(cls.SALT_LENGTH)
        hash_bytes = hashlib.pbkdf2_hmac(
            "sha256",
            password.encode("utf-8"),
            salt.encode("utf-8"),
            cls.ITERATIONS,
        )
        return f"{cls.ALGORITHM}${cls.ITERATIONS}${salt}${hash_bytes.hex()}"

    @classmethod
    def verify(cls, password: str, hash_string: str | None) -> bool:
        if not hash_string:
            return False
        try:
            algorithm, iterations, salt, stored_hash = hash_string.split("$")
            if algorithm != cls.ALGORITHM:
                return False

            hash_bytes = hashlib.pbkdf2_hmac(
                "sha256",
                password.encode("utf-8"),
                salt.encode("utf-8"),
                int(iterations),
            )
            # Constant-time comparison
            return secrets.compare_digest(hash_bytes.hex(), stored_hash)
        except (ValueError, AttributeError):
            return False


class TokenService:
    """Signed JWT access tokens carrying the user's id, role and email."""

    def __init__(self, settings: Settings) -> None:
        self.secret_key = settings.secret_key
        self.algorithm = settings.jwt_algorithm
        self.access_token_expire_minutes = settings.access_token_expire_minutes

    def create_access_token(self, user: User) -> str:
        now = datetime.now(UTC)
        expires = now + timedelta(minutes=self.access_token_expire_minutes)
        claims = {
            "sub": str(user.id),
            "role": user.role.value,
            "email": user.email,
            "iat": int(now.timestamp()),
            "exp": int(expires.timestamp()),
        }
        token = jwt.encode(claims, self.secret_key, algorithm=self.algorithm)
        logger.debug(
            "access_token_created",
            user_id=str(user.id),
            expires=expires.isoformat(),
        )
        return token

    def decode(self, token: str) -> Actor:
        """Verify a token and return the actor it names.

        Raises:
            AuthenticationError: Bad signature, malformed claims or expiry.
        """
        try:
            claims = jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
        except ExpiredSignatureError as e:
            raise AuthenticationError("Token has expired") from e
        except JWTError as e:
            raise AuthenticationError("Invalid token") from e

        try:
            return Actor(
                id=UUID(claims["sub"]),
                role=UserRole(claims["role"]),
                email=claims.get("email", ""),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise AuthenticationError("Invalid token") from e


@dataclass(frozen=True)
class Profile:
    user: User
    expense_count: int


class AuthService:
    def __init__(
        self,
        user_repo: UserRepository,
        token_service: TokenService,
        settings: Settings,
    ) -> None:
        self._user_repo = user_repo
        self._tokens = token_service
        self._settings = settings

    def register(
        self,
        email: str,
        name: str,
        password: str,
        role: UserRole | str = UserRole.EMPLOYEE,
        *,
        allow_admin: bool | None = None,
    ) -> tuple[User, str]:
        """Create a user and issue a token for them.

        ADMIN registration is refused unless ``allow_admin`` (or, when it is
        None, the ``allow_admin_registration`` setting) permits it.
        """
        errors: list[FieldError] = []
        email = validate_email(email, errors)
        name = validate_name(name, errors)
        validate_password(password, errors)
        try:
            role = UserRole(role)
        except ValueError:
            errors.append(FieldError("role", "Role must be either EMPLOYEE or ADMIN"))
        if errors:
            raise ValidationError(errors=errors)

        if allow_admin is None:
            allow_admin = self._settings.allow_admin_registration
        if role == UserRole.ADMIN and not allow_admin:
            raise PermissionDeniedError(action="register", resource="admin user")

        if self._user_repo.get_by_email(email) is not None:
            raise DuplicateUserError(email)

        user = User(
            email=email,
            name=name,
            role=UserRole(role),
            password_hash=PasswordHasher.hash(password),
        )
        self._user_repo.add(user)
        logger.info("user_registered", user_id=str(user.id), role=user.role.value)
        return user, self._tokens.create_access_token(user)

    def login(self, email: str, password: str) -> tuple[User, str]:
        if not email or not password:
            raise ValidationError(
                errors=[
                    FieldError(f, f"{f.capitalize()} is required")
                    for f, v in (("email", email), ("password", password))
                    if not v
                ]
            )
        user = self._user_repo.get_by_email(email.strip().lower())
        if user is None or not PasswordHasher.verify(password, user.password_hash):
            logger.info("login_failed", email=email.strip().lower())
            raise AuthenticationError("Invalid email or password")

        logger.info("user_logged_in", user_id=str(user.id))
        return user, self._tokens.create_access_token(user)

    def current_user(self, actor: Actor | None) -> User:
        if actor is None:
            raise AuthenticationError()
        user = self._user_repo.get(actor.id)
        if user is None:
            raise UserNotFoundError(actor.id)
        return user

    def get_profile(self, actor: Actor | None) -> Profile:
        user = self.current_user(actor)
        return Profile(user=user, expense_count=self._user_repo.count_expenses(user.id))

    def update_profile(self, actor: Actor | None, name: str) -> User:
        user = self.current_user(actor)
        errors: list[FieldError] = []
        name = validate_name(name, errors)
        if errors:
            raise ValidationError(errors=errors)

        user.rename(name)
        self._user_repo.update(user)
        logger.info("profile_updated", user_id=str(user.id))
        return user

    def change_password(
        self, actor: Actor | None, current_password: str, new_password: str
    ) -> None:
        user = self.current_user(actor)
        errors: list[FieldError] = []
        validate_password(new_password, errors, field="new_password")
        if errors:
            raise ValidationError(errors=errors)
        if not PasswordHasher.verify(current_password or "", user.password_hash):
            raise ValidationError.for_field(
                "current_password", "Current password is incorrect"
            )

        user.set_password_hash(PasswordHasher.hash(new_password))
        self._user_repo.update(user)
        logger.info("password_changed", user_id=str(user.id))

    def refresh_token(self, actor: Actor | None) -> str:
        user = self.current_user(actor)
        return self._tokens.create_access_token(user)
