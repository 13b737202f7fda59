import os

from dotenv import load_dotenv

load_dotenv()

ENVIRONMENT = os.getenv("ENV", "development").lower()
IS_PRODUCTION = ENVIRONMENT == "production"

DEFAULT_DB_URL = "sqlite:///./fittrack.db"
DEFAULT_SESSION_SECRET = "dev-secret-change-in-production"


def _flag(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


if os.getenv("DATABASE_URL"):
    DATABASE_URL = os.environ["DATABASE_URL"]
else:
    if IS_PRODUCTION:
        raise RuntimeError("DATABASE_URL is required in production.")
    DATABASE_URL = DEFAULT_DB_URL

SESSION_SECRET = os.getenv("SESSION_SECRET", "")
if not SESSION_SECRET:
    if IS_PRODUCTION:
        raise RuntimeError("SESSION_SECRET is required in production.")
    SESSION_SECRET = DEFAULT_SESSION_SECRET

SQL_ECHO = _flag("SQL_ECHO", False)
SESSION_TTL_HOURS = int(os.getenv("SESSION_TTL_HOURS", "168"))
COOKIE_SECURE = _flag("COOKIE_SECURE", IS_PRODUCTION)
CORS_ORIGIN = os.getenv("CORS_ORIGIN", "http://localhost:5173")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
SEED_LIBRARY = _flag("SEED_LIBRARY", True)

GOOGLE_CLIENT_ID = os.getenv("GOOGLE_CLIENT_ID", "")
GOOGLE_CLIENT_SECRET = os.getenv("GOOGLE_CLIENT_SECRET", "")
GOOGLE_CALLBACK_URL = os.getenv("GOOGLE_CALLBACK_URL", "")


def google_configured() -> bool:
    return bool(GOOGLE_CLIENT_ID and GOOGLE_CLIENT_SECRET and GOOGLE_CALLBACK_URL)
