# task_manager/config.py
import os
import pathlib
from dataclasses import dataclass, field
from typing import List

from dotenv import load_dotenv, find_dotenv

# .env from project root first, then whatever find_dotenv() locates
ROOT = pathlib.Path(__file__).resolve().parent.parent

env_path = ROOT / ".env"
if not env_path.exists():
    env_path = find_dotenv()

load_dotenv(env_path)


def _env_bool(name: str, default: bool = False) -> bool:
    return os.getenv(name, "1" if default else "0").strip().lower() in ("1", "true", "yes", "on")


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, default))
    except (TypeError, ValueError):
        return default


def _env_list(name: str, default: str) -> List[str]:
    return [item.strip() for item in os.getenv(name, default).split(",") if item.strip()]


@dataclass
class Settings:
    database_url: str = field(default_factory=lambda: os.getenv("DATABASE_URL", "sqlite:///./task_manager.db"))
    sql_echo: bool = field(default_factory=lambda: _env_bool("SQL_ECHO"))

    session_secret: str = field(default_factory=lambda: os.getenv("SESSION_SECRET", "replace_with_a_strong_secret_here"))
    jwt_secret: str = field(default_factory=lambda: os.getenv("JWT_SECRET", os.getenv("SESSION_SECRET", "devsecret123")))
    jwt_algorithm: str = field(default_factory=lambda: os.getenv("JWT_ALGORITHM", "HS256"))
    session_cookie: str = field(default_factory=lambda: os.getenv("SESSION_COOKIE", "access_token"))
    session_days: int = field(default_factory=lambda: _env_int("SESSION_DAYS", 1))
    remember_me_days: int = field(default_factory=lambda: _env_int("REMEMBER_ME_DAYS", 30))
    cookie_secure: bool = field(default_factory=lambda: _env_bool("COOKIE_SECURE"))

    cors_origins: List[str] = field(default_factory=lambda: _env_list(
        "CORS_ORIGINS",
        "http://localhost:3000,http://127.0.0.1:3000,http://localhost:5173,http://127.0.0.1:5173,http://localhost:8000",
    ))

    seed_demo_data: bool = field(default_factory=lambda: _env_bool("SEED_DEMO_DATA"))
    log_level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO").upper())


settings = Settings()
