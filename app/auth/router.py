from typing import Annotated, List
from datetime import timedelta, datetime, timezone
import logging
from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update
from jose import jwt, JWTError

from app.config import settings
from app.database import get_db
from app.auth import schemas, security, dependencies
from app.core.rate_limit import rate_limited
from app.models.user import User
from app.models.auth import RefreshToken
from app.models.gym import Gym, GymMembership
from app.models.enums import Role, MembershipStatus
from app.services.audit_service import AuditService
from app.core.responses import StandardResponse

logger = logging.getLogger(__name__)

router = APIRouter()


def _to_utc_datetime(value: int | float | datetime) -> datetime:
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    return datetime.fromtimestamp(value, tz=timezone.utc)


async def _persist_refresh_token(db: AsyncSession, user_id, refresh_token: str, user_agent: str | None = None) -> str:
    payload = jwt.decode(refresh_token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    jti = payload.get("jti")
    exp = payload.get("exp")
    if not jti or exp is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid refresh token payload")

    db.add(
        RefreshToken(
            user_id=user_id,
            jti=str(jti),
            token_hash=security.hash_token(refresh_token),
            user_agent=(user_agent or "")[:255] or None,
            expires_at=_to_utc_datetime(exp),
        )
    )
    return str(jti)


async def _revoke_all_refresh_tokens(db: AsyncSession, user_id, now: datetime) -> None:
    await db.execute(
        update(RefreshToken)
        .where(RefreshToken.user_id == user_id, RefreshToken.revoked_at.is_(None))
        .values(revoked_at=now)
        .execution_options(synchronize_session=False)
    )


async def _get_user_by_email(db: AsyncSession, email: str) -> User | None:
    result = await db.execute(select(User).where(User.email == email))
    return result.scalar_one_or_none()


def _credentials_exception() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )


def _issue_tokens(user: User) -> tuple[str, str]:
    access_token = security.create_access_token(
        subject=user.email, expires_delta=timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    return access_token, security.create_refresh_token(subject=user.email)


@router.post(
    "/register",
    response_model=StandardResponse[schemas.UserResponse],
    status_code=status.HTTP_201_CREATED,
    dependencies=[rate_limited("register", limit=10)],
)
async def register(
    user_in: schemas.UserCreate,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    if await _get_user_by_email(db, user_in.email):
        raise HTTPException(
            status_code=400,
            detail="The user with this email already exists in the system.",
        )

    user = User(
        email=user_in.email,
        hashed_password=security.get_password_hash(user_in.password),
        full_name=user_in.full_name,
        role=Role.USER,
        is_active=True,
    )
    db.add(user)
    await db.flush()
    await AuditService.log_action(
        db,
        user_id=user.id,
        action="REGISTER_USER",
        target_id=str(user.id),
        details=f"Self-registered {user.email}",
    )
    await db.commit()
    await db.refresh(user)

    return StandardResponse(data=user, message="User registered successfully")

@router.post(
    "/login",
    response_model=StandardResponse[schemas.Token],
    dependencies=[rate_limited("login", limit=20)],
)
async def login(
    login_data: schemas.LoginRequest,
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db)]
):
    user = await _get_user_by_email(db, login_data.email)

    if not user or not security.verify_password(login_data.password, user.hashed_password):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )
    if not user.is_active:
        raise HTTPException(status_code=400, detail="Inactive user")

    access_token, refresh_token = _issue_tokens(user)
    await _persist_refresh_token(db, user.id, refresh_token, request.headers.get("user-agent"))
    await db.commit()

    return StandardResponse(
        data=schemas.Token(access_token=access_token, refresh_token=refresh_token),
        message="Login Successful"
    )

@router.post("/refresh", response_model=StandardResponse[schemas.Token])
async def refresh_token(
    token: Annotated[str, Depends(dependencies.oauth2_scheme)],
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db)]
):
    """Rotate a refresh token. Presenting an already rotated token revokes every session of the user."""
    credentials_exception = _credentials_exception()

    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
        username = payload.get("sub")
        token_type = payload.get("type")
        jti = payload.get("jti")
        if username is None or token_type != "refresh" or jti is None:
            raise credentials_exception
    except JWTError:
        raise credentials_exception

    user = await _get_user_by_email(db, username)
    if user is None or not user.is_active:
        raise credentials_exception

    refresh_stmt = select(RefreshToken).where(
        RefreshToken.user_id == user.id,
        RefreshToken.jti == str(jti),
    )
    token_record = (await db.execute(refresh_stmt)).scalar_one_or_none()
    if token_record is None or token_record.token_hash != security.hash_token(token):
        raise credentials_exception

    now = datetime.now(timezone.utc)
    if not token_record.is_active:
        if token_record.replaced_by_jti is not None:
            logger.warning("Rotated refresh token reused for user %s; revoking all sessions", user.id)
            await _revoke_all_refresh_tokens(db, user.id, now)
            await db.commit()
        raise credentials_exception
    if _to_utc_datetime(token_record.expires_at) <= now:
        raise credentials_exception

    access_token, new_refresh_token = _issue_tokens(user)
    token_record.revoked_at = now
    token_record.replaced_by_jti = await _persist_refresh_token(
        db, user.id, new_refresh_token, request.headers.get("user-agent")
    )
    await db.commit()

    return StandardResponse(
        data=schemas.Token(access_token=access_token, refresh_token=new_refresh_token),
        message="Token Refreshed"
    )

@router.get("/me", response_model=StandardResponse[schemas.UserResponse])
async def read_users_me(
    current_user: Annotated[User, Depends(dependencies.get_current_active_user)],
):
    return StandardResponse(data=current_user)

@router.put("/me/password", response_model=StandardResponse)
async def change_password(
    password_data: schemas.PasswordChange,
    current_user: Annotated[User, Depends(dependencies.get_current_active_user)],
    db: Annotated[AsyncSession, Depends(get_db)]
):
    """Change current user password."""
    if not security.verify_password(password_data.current_password, current_user.hashed_password):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Incorrect current password"
        )

    current_user.hashed_password = security.get_password_hash(password_data.new_password)
    await _revoke_all_refresh_tokens(db, current_user.id, datetime.now(timezone.utc))
    await AuditService.log_action(
        db,
        user_id=current_user.id,
        action="CHANGE_PASSWORD",
        target_id=str(current_user.id),
        details="Password changed successfully",
    )
    await db.commit()

    return StandardResponse(message="Password changed successfully")

@router.get("/my-gyms", response_model=StandardResponse[List[schemas.MyGymResponse]])
async def my_gyms(
    current_user: Annotated[User, Depends(dependencies.get_current_active_user)],
    db: Annotated[AsyncSession, Depends(get_db)]
):
    """Gyms the caller holds an active membership in."""
    stmt = (
        select(GymMembership, Gym)
        .join(Gym, Gym.id == GymMembership.gym_id)
        .where(
            GymMembership.user_id == current_user.id,
            GymMembership.status == MembershipStatus.ACTIVE,
            Gym.is_active.is_(True),
        )
        .order_by(Gym.name)
    )
    rows = (await db.execute(stmt)).all()
    data = [
        schemas.MyGymResponse(gym_id=gym.id, gym_name=gym.name, role=membership.role)
        for membership, gym in rows
    ]
    return StandardResponse(data=data)
