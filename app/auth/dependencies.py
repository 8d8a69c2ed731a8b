import uuid
from dataclasses import dataclass, field
from typing import Annotated, List
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from app.config import settings
from app.database import get_db
from app.models.user import User
from app.models.gym import Gym, GymMembership
from app.auth.schemas import TokenPayload
from app.models.enums import Role, GymRole, MembershipStatus

oauth2_scheme = OAuth2PasswordBearer(tokenUrl=f"{settings.API_V1_STR}/auth/login")


def _coerce_role(value: Role | str) -> Role:
    return value if isinstance(value, Role) else Role(value)

async def get_current_user(
    token: Annotated[str, Depends(oauth2_scheme)],
    db: Annotated[AsyncSession, Depends(get_db)]
) -> User:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
        username = payload.get("sub")
        token_type = payload.get("type")
        if username is None or token_type != "access":
            raise credentials_exception
        token_data = TokenPayload(sub=username, type=token_type)
    except JWTError:
        raise credentials_exception

    stmt = select(User).where(User.email == token_data.sub)
    result = await db.execute(stmt)
    user = result.scalar_one_or_none()

    if user is None:
        raise credentials_exception
    user.role = _coerce_role(user.role)
    return user

async def get_current_active_user(
    current_user: Annotated[User, Depends(get_current_user)]
) -> User:
    if not current_user.is_active:
        raise HTTPException(status_code=400, detail="Inactive user")
    return current_user

class RoleChecker:
    def __init__(self, allowed_roles: List[Role]):
        self.allowed_roles = allowed_roles

    def __call__(self, user: Annotated[User, Depends(get_current_active_user)]):
        user.role = _coerce_role(user.role)
        if user.role not in self.allowed_roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Operation not permitted"
            )
        return user

get_current_admin = RoleChecker([Role.ADMIN])
# Catalog editors: benchmark templates, activity groups/templates
get_current_trainer = RoleChecker([Role.ADMIN, Role.TRAINER])


@dataclass
class GymContext:
    """Resolved gym-scoped principal attached to a request."""

    gym: Gym
    user: User
    user_role: GymRole
    membership: GymMembership | None = None
    is_admin: bool = False
    gym_id: uuid.UUID = field(init=False)

    def __post_init__(self):
        # Kept apart from the ORM instance so it survives session expiry
        self.gym_id = self.gym.id

    @property
    def is_staff(self) -> bool:
        return self.user_role in (GymRole.OWNER, GymRole.TRAINER)

    def meta(self, **extra) -> dict:
        return {"user_role": self.user_role.value, "gym_id": str(self.gym_id), **extra}


class GymAccess:
    """Resolve the caller's role in the gym named by the `gym_id` path parameter.

    System admins always pass and act as OWNER.
    """

    def __init__(self, *allowed_roles: GymRole):
        self.allowed_roles = set(allowed_roles) or set(GymRole)

    async def __call__(
        self,
        gym_id: uuid.UUID,
        user: Annotated[User, Depends(get_current_active_user)],
        db: Annotated[AsyncSession, Depends(get_db)],
    ) -> GymContext:
        gym = await db.get(Gym, gym_id)
        if gym is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Gym not found")

        if user.role == Role.ADMIN:
            return GymContext(gym=gym, user=user, user_role=GymRole.OWNER, is_admin=True)

        stmt = select(GymMembership).where(
            GymMembership.gym_id == gym.id,
            GymMembership.user_id == user.id,
            GymMembership.status == MembershipStatus.ACTIVE,
        )
        membership = (await db.execute(stmt)).scalar_one_or_none()
        if membership is None:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Access denied. You are not a member of this gym.",
            )
        if membership.role not in self.allowed_roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Access denied. Insufficient permissions for this gym.",
            )
        return GymContext(gym=gym, user=user, user_role=membership.role, membership=membership)


require_gym_access = GymAccess()
require_gym_trainer = GymAccess(GymRole.OWNER, GymRole.TRAINER)
require_gym_owner = GymAccess(GymRole.OWNER)
