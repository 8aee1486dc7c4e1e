import os
from pathlib import Path

# Base directory
BASE_DIR = Path(__file__).resolve().parent.parent

# Database
DATABASE_URL = os.getenv("DATABASE_URL", f"sqlite:///{BASE_DIR}/matchday.db")

# Security
SESSION_COOKIE_NAME = os.getenv("SESSION_COOKIE_NAME", "matchday_session")
SESSION_EXPIRE_DAYS = int(os.getenv("SESSION_EXPIRE_DAYS", "30"))

# Bootstrap admin (in production, use environment variables)
BOOTSTRAP_ADMIN_USERNAME = os.getenv("BOOTSTRAP_ADMIN_USERNAME", "admin")
BOOTSTRAP_ADMIN_EMAIL = os.getenv("BOOTSTRAP_ADMIN_EMAIL", "admin@matchday.local")
BOOTSTRAP_ADMIN_PASSWORD = os.getenv("BOOTSTRAP_ADMIN_PASSWORD", "password")

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Voting closes this many minutes after kickoff (full match plus stoppage time)
VOTING_WINDOW_MINUTES = 100

# Points
MATCH_PREDICTION_POINTS = 100  # exact score on a match
FORUM_PREDICTION_POINTS = 150  # forum head, reconciled when the match is finalized
MANUAL_RESULT_POINTS = 10  # forum head, result entered per prediction

# Poll statistics
STATISTICS_PALETTE = ["#3B82F6", "#10B981", "#F59E0B", "#EF4444", "#8B5CF6", "#EC4899"]
TOP_SCORE_PREDICTIONS = 10
