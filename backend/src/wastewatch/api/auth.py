"""Authentication and authorization for WasteWatch.

Provides JWT-based authentication, permission checks and the account
endpoints: register, login, logout, profile and password changes.
"""

from datetime import datetime, timedelta, timezone
from typing import Annotated
from uuid import uuid4

import jwt
from fastapi import APIRouter, Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from passlib.context import CryptContext
from pydantic import BaseModel

from ..config import get_settings
from ..logging import get_logger
from ..models.users import (
    AuthResult,
    LoginRequest,
    PasswordChange,
    Permission,
    ProfileUpdate,
    RegisterRequest,
    Role,
    User,
    UserAccount,
)
from ..models.workers import Worker
from ..store import DuplicateAccountError, get_store
from . import (
    AuthenticationError,
    AuthorizationError,
    BadRequestError,
    ok,
)

logger = get_logger(__name__)

# Security scheme
security = HTTPBearer(auto_error=False)

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")

router = APIRouter(prefix="/auth", tags=["auth"])


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    return pwd_context.verify(password, password_hash)


class TokenPayload(BaseModel):
    """JWT token payload."""

    sub: str  # Subject (user ID)
    email: str
    name: str
    role: Role
    jti: str  # Token ID, used for logout revocation
    exp: datetime  # Expiration time
    iat: datetime  # Issued at time


# =========================
# JWT Functions
# =========================


def create_access_token(user: User) -> str:
    """Create a JWT access token for a user.

    Args:
        user: User to create token for

    Returns:
        Encoded JWT token
    """
    settings = get_settings()

    now = datetime.now(timezone.utc)
    payload = TokenPayload(
        sub=user.id,
        email=user.email,
        name=user.name,
        role=user.role,
        jti=uuid4().hex,
        exp=now + timedelta(hours=settings.jwt_expiration_hours),
        iat=now,
    )

    return jwt.encode(
        payload.model_dump(mode="json") | {"exp": payload.exp, "iat": payload.iat},
        settings.jwt_secret,
        algorithm=settings.jwt_algorithm,
    )


def decode_access_token(token: str) -> TokenPayload:
    """Decode and validate a JWT access token.

    Raises:
        AuthenticationError: If token is invalid or expired
    """
    settings = get_settings()

    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
        )
        return TokenPayload(**payload)
    except jwt.ExpiredSignatureError:
        raise AuthenticationError("Token has expired")
    except jwt.InvalidTokenError as e:
        raise AuthenticationError(f"Invalid token: {e}")
    except ValueError:
        raise AuthenticationError("Invalid token payload")


# =========================
# Dependency Injection
# =========================


async def get_current_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> User:
    """Get the current authenticated user.

    Raises:
        AuthenticationError: If not authenticated, the token was revoked, or
            the account no longer exists
    """
    if not credentials:
        raise AuthenticationError("Authentication required")

    payload = decode_access_token(credentials.credentials)
    store = get_store()
    if await store.is_token_revoked(payload.jti):
        raise AuthenticationError("Token has been revoked")

    account = await store.get_user(payload.sub)
    if account is None:
        raise AuthenticationError("Account no longer exists")

    request.state.user_id = account.id
    request.state.token_jti = payload.jti
    request.state.token_exp = payload.exp
    return account.public()


def require_permission(permission: Permission):
    """Create a dependency that requires a permission.

    Usage:
        @router.get("/export", dependencies=[Depends(require_permission(Permission.EXPORT_REPORTS))])
        async def export():
            ...
    """

    async def permission_checker(user: User = Depends(get_current_user)) -> User:
        if not user.can(permission):
            raise AuthorizationError(f"Permission '{permission.value}' required")
        return user

    return permission_checker


def require_any_permission(*permissions: Permission):
    """Dependency that passes when the user holds at least one of ``permissions``."""

    async def permission_checker(user: User = Depends(get_current_user)) -> User:
        if not any(user.can(p) for p in permissions):
            raise AuthorizationError("Access denied")
        return user

    return permission_checker


# Type aliases for cleaner dependency injection
CurrentUser = Annotated[User, Depends(get_current_user)]


# =========================
# Endpoints
# =========================


@router.post("/register", status_code=201)
async def register(request: RegisterRequest) -> dict:
    """Create an account and return a token for it.

    Worker accounts also join the roster for their zone.
    """
    settings = get_settings()
    if request.role == Role.ADMIN and not settings.allow_admin_registration:
        raise AuthorizationError("Admin accounts cannot be self-registered")

    account = UserAccount(
        id=uuid4().hex,
        name=request.name,
        email=request.email,
        phone=request.phone,
        role=request.role,
        password_hash=hash_password(request.password),
    )

    store = get_store()
    try:
        await store.add_user(account)
    except DuplicateAccountError as e:
        raise BadRequestError(str(e))

    if account.role == Role.WORKER:
        await store.add_worker(
            Worker(
                id=account.id,
                name=account.name,
                phone=account.phone,
                email=account.email,
                zone=request.zone,
            )
        )

    logger.info(
        f"Registered {account.role.value} account {account.id}",
        extra={"user_id": account.id, "role": account.role.value, "event": "user_registered"},
    )
    result = AuthResult(token=create_access_token(account.public()), user=account.public())
    return ok(result.to_api(), message="User registered successfully")


@router.post("/login")
async def login(request: LoginRequest) -> dict:
    """Exchange email and password for a token."""
    account = await get_store().get_user_by_email(request.email)
    if account is None or not verify_password(request.password, account.password_hash):
        raise AuthenticationError("Invalid credentials")

    result = AuthResult(token=create_access_token(account.public()), user=account.public())
    return ok(result.to_api(), message="Login successful")


@router.get("/me")
async def me(user: CurrentUser) -> dict:
    """Get the authenticated account."""
    return ok(user.to_api())


@router.put("/profile")
async def update_profile(update: ProfileUpdate, user: CurrentUser) -> dict:
    """Change the caller's name or phone."""
    if update.is_empty:
        raise BadRequestError("Nothing to update")

    store = get_store()
    account = await store.get_user(user.id)
    changes = update.model_dump(exclude_none=True)
    try:
        account = await store.update_user(account.model_copy(update=changes))
    except DuplicateAccountError as e:
        raise BadRequestError(str(e))

    logger.info(
        f"User {user.id} updated profile",
        extra={"user_id": user.id, "fields": sorted(changes), "event": "user_profile_updated"},
    )
    return ok(account.public().to_api(), message="Profile updated successfully")


@router.put("/password")
async def change_password(change: PasswordChange, user: CurrentUser) -> dict:
    """Replace the caller's password after checking the current one.

    Tokens issued before the change stay valid until they expire.
    """
    store = get_store()
    account = await store.get_user(user.id)
    if not verify_password(change.current_password, account.password_hash):
        raise BadRequestError("Current password is incorrect")

    await store.update_user(
        account.model_copy(update={"password_hash": hash_password(change.new_password)})
    )
    logger.info(
        f"User {user.id} changed password",
        extra={"user_id": user.id, "event": "user_password_changed"},
    )
    return ok(message="Password changed successfully")


@router.post("/logout")
async def logout(request: Request, user: CurrentUser) -> dict:
    """Revoke the presented token."""
    await get_store().revoke_token(request.state.token_jti, request.state.token_exp)
    logger.info(
        f"User {user.id} logged out",
        extra={"user_id": user.id, "event": "user_logout"},
    )
    return ok(message="Logged out successfully")
