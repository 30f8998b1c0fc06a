import pytest

from studysphere.core.config import Settings
from studysphere.core.security import hash_password, verify_password
from studysphere.storage.database import DatabaseStorage
from studysphere.storage.factory import build_storage
from studysphere.storage.memory import MemStorage


def test_memory_backend_is_the_default():
    assert isinstance(build_storage(Settings(STORAGE_BACKEND="memory")), MemStorage)


def test_database_backend_creates_its_tables():
    store = build_storage(Settings(STORAGE_BACKEND="database", DATABASE_URL="sqlite:///:memory:", DEBUG=False))
    try:
        assert isinstance(store, DatabaseStorage)
        assert store.get_papers() == []
    finally:
        store.close()


def test_unknown_backend_is_rejected():
    with pytest.raises(ValueError):
        build_storage(Settings(STORAGE_BACKEND="redis"))


def test_password_hashing_round_trip():
    hashed = hash_password("correct-horse", rounds=4)
    assert hashed != "correct-horse"
    assert verify_password("correct-horse", hashed)
    assert not verify_password("wrong-horse", hashed)
    assert not verify_password("anything", "not-a-bcrypt-hash")
