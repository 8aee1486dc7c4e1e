from typing import Optional
from fastapi import APIRouter, Depends, Request, Response, status
from sqlmodel import Session, select

from ..config import SESSION_COOKIE_NAME, SESSION_EXPIRE_DAYS
from ..database import get_session
from ..dependencies import require_user
from ..errors import Conflict, Unauthorized
from ..models.user import User
from ..repositories import UserRepository
from ..schemas import LoginIn, RegisterIn, user_profile
from ..services.auth import authenticate_user, create_session, create_user, delete_session

router = APIRouter(prefix="/api/auth", tags=["auth"])


def _set_session_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        key=SESSION_COOKIE_NAME,
        value=token,
        httponly=True,
        max_age=SESSION_EXPIRE_DAYS * 24 * 60 * 60,
        samesite="lax"
    )


@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(
    payload: RegisterIn,
    response: Response,
    db: Session = Depends(get_session)
):
    existing = db.exec(
        select(User).where(
            (User.username == payload.username) | (User.email == payload.email.strip().lower())
        )
    ).first()
    if existing:
        raise Conflict("Username or email already registered")

    user = create_user(
        db,
        username=payload.username,
        email=payload.email,
        password=payload.password,
        country=payload.country,
        age=payload.age
    )
    UserRepository(db).log_activity(user.id, "Joined the community", "register")
    db.commit()

    _set_session_cookie(response, create_session(db, user.id))
    return user_profile(user)


@router.post("/login")
async def login(
    payload: LoginIn,
    response: Response,
    db: Session = Depends(get_session)
):
    user = authenticate_user(db, payload.username, payload.password)
    if not user:
        raise Unauthorized("Invalid username or password")

    users = UserRepository(db)
    users.log_activity(user.id, "Logged in", "login")
    users.touch(user.id)
    db.commit()
    db.refresh(user)

    _set_session_cookie(response, create_session(db, user.id))
    return user_profile(user)


@router.post("/logout")
async def logout(
    request: Request,
    response: Response,
    db: Session = Depends(get_session)
):
    session_token: Optional[str] = request.cookies.get(SESSION_COOKIE_NAME)
    if session_token:
        delete_session(db, session_token)
    response.delete_cookie(key=SESSION_COOKIE_NAME)
    return {"success": True}


@router.get("/me")
async def me(current_user: User = Depends(require_user)):
    return user_profile(current_user)
