import logging

from studysphere.core.config import Settings
from studysphere.storage.base import IStorage
from studysphere.storage.database import DatabaseStorage
from studysphere.storage.memory import MemStorage

log = logging.getLogger(__name__)


def build_storage(settings: Settings) -> IStorage:
    backend = settings.STORAGE_BACKEND.strip().lower()
    if backend == "memory":
        log.info("[storage] using in-memory store (data lives for the process lifetime)")
        return MemStorage()
    if backend == "database":
        log.info("[storage] using database store (sqlite=%s)", settings.DB_IS_SQLITE)
        return DatabaseStorage.from_url(settings.DATABASE_URL, echo=settings.SQLALCHEMY_ECHO)
    raise ValueError(f"Unknown STORAGE_BACKEND {settings.STORAGE_BACKEND!r} (expected 'memory' or 'database')")
