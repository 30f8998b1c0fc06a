# studysphere/core/config.py
from __future__ import annotations

import os
from typing import List
from pydantic import BaseModel


def _get_bool(env_name: str, default: bool = False) -> bool:
    val = os.getenv(env_name)
    if val is None:
        return default
    return str(val).strip().lower() not in {"0", "false", "no", "off", ""}


def _get_int(env_name: str, default: int) -> int:
    val = os.getenv(env_name)
    if val is None or not val.strip():
        return default
    return int(val)


def _split_csv(env_name: str, default: str = "") -> List[str]:
    raw = os.getenv(env_name, default)
    if not raw:
        return []
    return [s.strip() for s in raw.split(",") if s.strip()]


class Settings(BaseModel):
    # ------------------------- App -------------------------
    APP_NAME: str = os.getenv("APP_NAME", "StudySphere")
    DEBUG: bool = _get_bool("DEBUG", True)
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    # ------------------------- Storage -------------------------
    # "memory" keeps everything for the process lifetime, "database" uses DATABASE_URL
    STORAGE_BACKEND: str = os.getenv("STORAGE_BACKEND", "memory")
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///studysphere.db")

    # ------------------------- Auth -------------------------
    SESSION_SECRET: str = os.getenv("SESSION_SECRET", "studysphere-secret")
    SESSION_MAX_AGE: int = _get_int("SESSION_MAX_AGE", 60 * 60 * 24 * 7)
    BCRYPT_ROUNDS: int = _get_int("BCRYPT_ROUNDS", 10)

    # ------------------------- CORS -------------------------
    # e.g. CORS_ALLOW_ORIGINS="http://localhost:5173,http://127.0.0.1:3000"
    CORS_ALLOW_ORIGINS: List[str] = _split_csv("CORS_ALLOW_ORIGINS", "")

    # ------------------------- Derived flags -------------------------
    @property
    def DB_IS_SQLITE(self) -> bool:
        return self.DATABASE_URL.startswith("sqlite")

    @property
    def SQLALCHEMY_ECHO(self) -> bool:
        return self.DEBUG


settings = Settings()
