from fastapi import APIRouter, Depends, Query
from typing import List, Optional

from studysphere.models.schemas import Activity, User
from studysphere.routers.deps import ensure_self, get_storage, require_user
from studysphere.storage.base import IStorage

router = APIRouter(prefix="/api/activities", tags=["activities"])


@router.get("", response_model=List[Activity])
def recent(limit: Optional[int] = Query(default=None, ge=0), storage: IStorage = Depends(get_storage)):
    return storage.get_recent_activities(limit)


@router.get("/user/{user_id}", response_model=List[Activity])
def for_user(
    user_id: int,
    limit: Optional[int] = Query(default=None, ge=0),
    user: User = Depends(require_user),
    storage: IStorage = Depends(get_storage),
):
    ensure_self(user, user_id, "activities")
    return storage.get_user_activities(user_id, limit)
