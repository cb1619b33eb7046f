import os
from dotenv import load_dotenv

from activity_studio.domain.h5p.models import VALID_DISABLE_FLAGS

# Load .env from the backend directory
load_dotenv(os.path.join(os.path.dirname(__file__), "..", "..", ".env"))


def disable_flag_from_env(name: str, default: str) -> str:
    """Read a none | frame | all flag; anything else is a startup error."""
    value = os.getenv(name, default).strip().lower()
    if value not in VALID_DISABLE_FLAGS:
        raise ValueError(f"{name} must be one of {sorted(VALID_DISABLE_FLAGS)}, got {value!r}")
    return value


SECRET_KEY: str = os.getenv("SECRET_KEY", "activity-studio-dev-secret-change-in-prod")
ALGORITHM: str = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES: int = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "1440"))  # 24h

# Database: stored in backend/data/
BASE_DIR = os.path.dirname(os.path.abspath(__file__))
BACKEND_DIR = os.path.abspath(os.path.join(BASE_DIR, "..", ".."))

DATABASE_PATH: str = os.getenv(
    "DATABASE_PATH",
    os.path.join(BACKEND_DIR, "data", "app.db"),
)

LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

# H5P display behaviour: none | frame | all
H5P_PREVIEW_FLAG: str = disable_flag_from_env("H5P_PREVIEW_FLAG", "none")
H5P_DEFAULT_DISABLE_FLAG: str = disable_flag_from_env("H5P_DEFAULT_DISABLE_FLAG", "none")

# Embed URLs
APP_URL: str = os.getenv("APP_URL", "http://localhost:8000")
H5P_BASE_PATH: str = os.getenv("H5P_BASE_PATH", "/api/h5p")

# Deferred clone jobs
CLONE_DELAY_SECONDS: float = float(os.getenv("CLONE_DELAY_SECONDS", "1"))

# Project.indexing value meaning "approved" for the shared access path
INDEXING_APPROVED: int = int(os.getenv("INDEXING_APPROVED", "3"))

# Notifications: logged only when no webhook is configured
NOTIFY_WEBHOOK_URL: str = os.getenv("NOTIFY_WEBHOOK_URL", "")
NOTIFY_TIMEOUT_SECONDS: float = float(os.getenv("NOTIFY_TIMEOUT_SECONDS", "8"))

# Pending notifications held in memory before new ones are dropped
NOTIFY_QUEUE_SIZE: int = int(os.getenv("NOTIFY_QUEUE_SIZE", "1000"))
