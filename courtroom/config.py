import logging
import os
from typing import List, Optional

from dotenv import load_dotenv
from pydantic import BaseModel

load_dotenv()

logger = logging.getLogger(__name__)

DEFAULT_DB_URL = "sqlite:///./data.db"
DEFAULT_ORIGINS = "http://localhost:3000,http://localhost:5173"


class Settings(BaseModel):
    database_url: str = DEFAULT_DB_URL
    gemini_api_key: Optional[str] = None
    gemini_model: str = "gemini-2.5-flash"
    judge_timeout: float = 30.0
    summary_timeout: float = 20.0
    cors_origins: List[str] = DEFAULT_ORIGINS.split(",")
    log_level: str = "INFO"


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning("ignoring %s=%r, not a number; using %s", name, raw, default)
        return default


def get_settings() -> Settings:
    """Read settings from the environment (and .env, if present).

    Missing values fall back to defaults; a missing API key only switches the
    judge to mocked verdicts.
    """
    origins = os.getenv("CORS_ORIGINS", DEFAULT_ORIGINS)
    return Settings(
        database_url=os.getenv("DATABASE_URL", DEFAULT_DB_URL),
        gemini_api_key=os.getenv("GEMINI_API_KEY") or None,
        gemini_model=os.getenv("GEMINI_MODEL", "gemini-2.5-flash"),
        judge_timeout=_float_env("JUDGE_TIMEOUT", 30.0),
        summary_timeout=_float_env("SUMMARY_TIMEOUT", 20.0),
        cors_origins=[o.strip() for o in origins.split(",") if o.strip()],
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
    )
