import uuid
from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi_users import BaseUserManager, FastAPIUsers, UUIDIDMixin
from fastapi_users.authentication import AuthenticationBackend, BearerTransport, JWTStrategy

from core.config import settings
from core.logging_config import get_logger
from core.rbac import can, effective_role
from db.users import User, get_user_db

log = get_logger(component="auth")


class UserManager(UUIDIDMixin, BaseUserManager[User, uuid.UUID]):
    reset_password_token_secret = settings.jwt_secret
    verification_token_secret = settings.jwt_secret

    async def on_after_register(self, user: User, request: Optional[Request] = None):
        log.info("User {} registered with role {}", user.id, user.role)

    async def on_after_forgot_password(self, user: User, token: str, request: Optional[Request] = None):
        log.info("User {} requested a password reset", user.id)


async def get_user_manager(user_db=Depends(get_user_db)):
    yield UserManager(user_db)


bearer_transport = BearerTransport(tokenUrl="auth/jwt/login")


def get_jwt_strategy() -> JWTStrategy:
    return JWTStrategy(secret=settings.jwt_secret, lifetime_seconds=settings.jwt_lifetime_seconds)


auth_backend = AuthenticationBackend(
    name="jwt",
    transport=bearer_transport,
    get_strategy=get_jwt_strategy,
)

fastapi_users = FastAPIUsers[User, uuid.UUID](get_user_manager, [auth_backend])

current_active_user = fastapi_users.current_user(active=True)
current_active_superuser = fastapi_users.current_user(active=True, superuser=True)


def require_permission(action: str, entity: str):
    """Dependency factory: current user if their role may `action` on `entity`, else 403."""

    async def _dependency(user: User = Depends(current_active_user)) -> User:
        role = effective_role(user)
        if not can(role, action, entity):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Permission denied: {role} cannot {action} {entity}",
            )
        return user

    return _dependency


async def require_admin(user: User = Depends(current_active_user)) -> User:
    if effective_role(user) != "admin":
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")
    return user
