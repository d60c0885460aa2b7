from fastapi import Depends
from sqlalchemy.ext.asyncio import async_sessionmaker
from sqlmodel.ext.asyncio.session import AsyncSession

from tasktracker.auth.tokens import TokenService, get_token_service
from tasktracker.core.config import Settings, get_settings
from tasktracker.database import get_db, get_session_factory
from tasktracker.services.auth_service import AuthService
from tasktracker.services.task_service import TaskService


def get_auth_service(
    db: AsyncSession = Depends(get_db),
    tokens: TokenService = Depends(get_token_service),
    settings: Settings = Depends(get_settings),
) -> AuthService:
    return AuthService(db, tokens, bcrypt_rounds=settings.bcrypt_rounds)


def get_task_service(
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
) -> TaskService:
    return TaskService(session_factory)
