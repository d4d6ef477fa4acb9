from collections.abc import Callable, Generator, Iterable
from dataclasses import dataclass

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError
from sqlalchemy.orm import Session

from schoolday.core.config import Settings, get_settings
from schoolday.core.security import decode_token
from schoolday.db.session import SessionLocal

security = HTTPBearer()

SCHEDULER_ROLES = ("admin", "scheduler")
ATTENDANCE_ROLES = ("admin", "scheduler", "teacher")


@dataclass(frozen=True)
class Actor:
    """Caller identity taken from token claims; users live in the portal."""

    id: str
    role: str


def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_app_settings() -> Settings:
    return get_settings()


def get_current_actor(credentials: HTTPAuthorizationCredentials = Depends(security)) -> Actor:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        payload = decode_token(credentials.credentials)
    except JWTError as exc:
        raise credentials_exception from exc

    actor_id = payload.get("sub")
    role = payload.get("role")
    if not actor_id or not role:
        raise credentials_exception
    return Actor(id=str(actor_id), role=str(role).lower())


def require_roles(*roles: str) -> Callable[[Actor], Actor]:
    allowed_roles: Iterable[str] = set(roles)

    def role_checker(current_actor: Actor = Depends(get_current_actor)) -> Actor:
        if current_actor.role not in allowed_roles:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Insufficient permissions")
        return current_actor

    return role_checker
