from datetime import datetime
from typing import Optional
from fastapi import Request, Depends
from sqlmodel import Session, select

from .database import get_session
from .errors import Forbidden, Unauthorized
from .models.user import User
from .models.session import UserSession
from .config import SESSION_COOKIE_NAME


async def get_current_user(
    request: Request,
    db: Session = Depends(get_session)
) -> Optional[User]:
    """Get the current logged-in user from session cookie."""
    token = request.cookies.get(SESSION_COOKIE_NAME)
    if not token:
        return None

    statement = select(UserSession).where(UserSession.token == token)
    user_session = db.exec(statement).first()

    if not user_session or not user_session.is_valid(datetime.utcnow()):
        return None

    return db.get(User, user_session.user_id)


async def require_user(
    current_user: Optional[User] = Depends(get_current_user)
) -> User:
    """Require a logged-in user."""
    if not current_user:
        raise Unauthorized("Please log in")
    return current_user


async def require_admin(
    current_user: User = Depends(require_user)
) -> User:
    if not current_user.is_admin:
        raise Forbidden("Admin access required")
    return current_user
