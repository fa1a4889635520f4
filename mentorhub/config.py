import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./mentorhub.db")

# JWT Configuration - CRITICAL: No default secret in production
JWT_SECRET = os.getenv("JWT_SECRET")
if not JWT_SECRET:
    import warnings

    warnings.warn(
        "JWT_SECRET not set! Using insecure default - DO NOT USE IN PRODUCTION", RuntimeWarning, stacklevel=2
    )
    JWT_SECRET = "INSECURE-DEV-KEY-CHANGE-IN-PRODUCTION"  # noqa: S105 - Dev fallback only

JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "15"))
REFRESH_TOKEN_EXPIRE_DAYS = int(os.getenv("REFRESH_TOKEN_EXPIRE_DAYS", "7"))

# Frontend base URL (also the default CORS origin)
CLIENT_URL = os.getenv("CLIENT_URL", "http://localhost:5173")
ALLOWED_ORIGINS = os.getenv("ALLOWED_ORIGINS", f"{CLIENT_URL},http://localhost:3000").split(",")

# Built single-page app served from the API process in production
CLIENT_BUILD_DIR = os.getenv(
    "CLIENT_BUILD_DIR", str(Path(__file__).resolve().parent.parent / "client" / "dist")
)

# Twilio Video Configuration
# API key/secret sign access tokens; account SID/auth token create rooms
TWILIO_ACCOUNT_SID = os.getenv("TWILIO_ACCOUNT_SID")
TWILIO_AUTH_TOKEN = os.getenv("TWILIO_AUTH_TOKEN")
TWILIO_API_KEY = os.getenv("TWILIO_API_KEY")
TWILIO_API_SECRET = os.getenv("TWILIO_API_SECRET")
VIDEO_TOKEN_TTL_SECONDS = int(os.getenv("VIDEO_TOKEN_TTL_SECONDS", "3600"))

# Payouts
PAYOUT_MINIMUM = float(os.getenv("PAYOUT_MINIMUM", "50"))
# Cron expression (minute hour day month weekday) - default every Monday at 1 AM UTC
PAYOUT_SCHEDULE = os.getenv("PAYOUT_SCHEDULE", "0 1 * * 1")

# Session reminders are sent this many minutes before start
SESSION_REMINDER_WINDOW_MINUTES = int(os.getenv("SESSION_REMINDER_WINDOW_MINUTES", "60"))

SECURITY_HEADERS_ENABLED = os.getenv("SECURITY_HEADERS_ENABLED", "true").lower() == "true"

# Password hashing cost (lower it only for tests)
BCRYPT_ROUNDS = int(os.getenv("BCRYPT_ROUNDS", "12"))

# Uploaded avatars are stored here and served under /uploads
UPLOAD_DIR = os.getenv("UPLOAD_DIR", str(Path(__file__).resolve().parent.parent / "uploads"))
MAX_AVATAR_BYTES = int(os.getenv("MAX_AVATAR_BYTES", str(5 * 1024 * 1024)))
