import logging
import re
import uuid

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from tasktracker.auth.passwords import MAX_PASSWORD_BYTES, hash_password, verify_password
from tasktracker.auth.tokens import TokenService
from tasktracker.core.errors import (
    AccountDeactivationError,
    AuthenticationError,
    ConflictError,
    ValidationError,
)
from tasktracker.models import RegisterRequest, User, get_utc_now

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
MIN_PASSWORD_LENGTH = 8

WEAK_PASSWORD_MESSAGE = (
    "Password is not valid, must be at least 8 digits long, "
    "must contain alpha numeric characters"
)
INVALID_CREDENTIALS_MESSAGE = "Invalid email or password"


def is_valid_email(email: str) -> bool:
    return EMAIL_PATTERN.match(email.strip()) is not None


def is_strong_password(password: str) -> bool:
    return (
        len(password) >= MIN_PASSWORD_LENGTH
        and len(password.encode("utf-8")) <= MAX_PASSWORD_BYTES
        and any(c.isupper() for c in password)
        and any(c.islower() for c in password)
        and any(c.isdigit() for c in password)
    )


class AuthService:
    """Registration, login and user lookup."""

    def __init__(self, db: AsyncSession, tokens: TokenService, bcrypt_rounds: int = 12):
        self.db = db
        self.tokens = tokens
        self.bcrypt_rounds = bcrypt_rounds

    async def find_user_by_email(self, email: str) -> User | None:
        result = await self.db.exec(select(User).where(User.email == email.strip().lower()))
        return result.first()

    async def find_user_by_id(self, user_id: str | uuid.UUID) -> User | None:
        try:
            key = user_id if isinstance(user_id, uuid.UUID) else uuid.UUID(str(user_id))
        except ValueError:
            return None
        return await self.db.get(User, key)

    async def create_user(self, data: RegisterRequest) -> User:
        username = data.username.strip()
        email = data.email.strip().lower()

        if not username:
            raise ValidationError("username, email and password are required and must be strings")
        if not is_valid_email(email):
            raise ValidationError("Invalid email format")
        if not is_strong_password(data.password):
            raise ValidationError(WEAK_PASSWORD_MESSAGE)

        # one query covers both unique fields
        result = await self.db.exec(
            select(User).where(or_(User.email == email, User.username == username))
        )
        existing = result.first()
        if existing is not None:
            if existing.email == email:
                raise ConflictError("User with this email already exists")
            raise ConflictError("Username already exists")

        user = User(
            username=username,
            email=email,
            password_hash=await hash_password(data.password, self.bcrypt_rounds),
        )
        self.db.add(user)
        try:
            await self.db.commit()
        except IntegrityError:
            # lost a race with a concurrent registration
            await self.db.rollback()
            raise ConflictError("User with this email or username already exists")
        await self.db.refresh(user)
        logger.info(f"Registered user {user.id}")
        return user

    async def validate_login(self, email: str, password: str) -> User:
        user = await self.find_user_by_email(email)
        # never reveal which of the two was wrong
        if user is None:
            raise AuthenticationError(INVALID_CREDENTIALS_MESSAGE)
        if not user.is_active:
            raise AccountDeactivationError("Account has been deactivated")
        if not await verify_password(password, user.password_hash):
            raise AuthenticationError(INVALID_CREDENTIALS_MESSAGE)
        return user

    async def login(self, email: str, password: str) -> tuple[User, str]:
        user = await self.validate_login(email, password)
        user.last_login_at = get_utc_now()
        self.db.add(user)
        await self.db.commit()
        await self.db.refresh(user)
        return user, self.tokens.issue(user)
