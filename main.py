from fastapi import FastAPI
from contextlib import asynccontextmanager
from sqlmodel import Session, select
from matchday.config import (
    BOOTSTRAP_ADMIN_EMAIL,
    BOOTSTRAP_ADMIN_PASSWORD,
    BOOTSTRAP_ADMIN_USERNAME,
)
from matchday.database import create_db_and_tables, engine
from matchday.errors import add_exception_handlers
from matchday.logging_config import setup_logging
from matchday.models import User
from matchday.services.auth import hash_password


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    setup_logging()
    # Startup: Create database tables
    create_db_and_tables()
    with Session(engine) as db:
        admin_statement = select(User).where(User.username == BOOTSTRAP_ADMIN_USERNAME)
        admin_user = db.exec(admin_statement).first()
        if not admin_user:
            admin_user = User(
                username=BOOTSTRAP_ADMIN_USERNAME,
                email=BOOTSTRAP_ADMIN_EMAIL,
                password_hash=hash_password(BOOTSTRAP_ADMIN_PASSWORD),
                is_admin=True
            )
            db.add(admin_user)
            db.commit()
    yield


# Initialize FastAPI app
app = FastAPI(
    title="Matchday Predictions API",
    description="Vote on matches, predict scores and earn points",
    version="1.0.0",
    lifespan=lifespan
)

add_exception_handlers(app)

# Include routers
from matchday.routers import auth, matches, polls, forums, leaderboard

app.include_router(auth.router, tags=["auth"])
app.include_router(matches.router, tags=["matches"])
app.include_router(polls.router, tags=["polls"])
app.include_router(forums.router, tags=["forums"])
app.include_router(leaderboard.router, tags=["leaderboard"])


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=True)
