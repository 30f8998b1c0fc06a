from fastapi import APIRouter, Depends
from typing import List

from studysphere.models.schemas import StudySession, User
from studysphere.routers.deps import get_storage, require_user
from studysphere.services.community import sessions_for_user
from studysphere.storage.base import IStorage

router = APIRouter(prefix="/api/sessions", tags=["sessions"])


@router.get("/upcoming", response_model=List[StudySession])
def upcoming(user: User = Depends(require_user), storage: IStorage = Depends(get_storage)):
    return storage.get_upcoming_study_sessions(user.id)


@router.get("", response_model=List[StudySession])
def all_sessions(user: User = Depends(require_user), storage: IStorage = Depends(get_storage)):
    return sessions_for_user(storage, user.id)
