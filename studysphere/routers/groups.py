from fastapi import APIRouter, Depends, HTTPException, Response
from typing import List, Optional

from studysphere.models.schemas import (
    MemberIn,
    StudyGroup,
    StudyGroupFilter,
    StudyGroupIn,
    StudyGroupMember,
    StudySession,
    StudySessionIn,
    User,
)
from studysphere.routers.deps import ensure_self, get_storage, require_user
from studysphere.services.community import create_group, is_admin, is_member, join_group, schedule_session
from studysphere.storage.base import IStorage

router = APIRouter(prefix="/api/groups", tags=["groups"])


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _ensure_group(storage: IStorage, group_id: int) -> StudyGroup:
    group = storage.get_study_group(group_id)
    if group is None:
        raise HTTPException(status_code=404, detail="Study group not found")
    return group


# ---------------------------------------------------------------------------
# Groups
# ---------------------------------------------------------------------------

@router.post("", response_model=StudyGroup, status_code=201)
def new_group(payload: StudyGroupIn, user: User = Depends(require_user), storage: IStorage = Depends(get_storage)):
    return create_group(storage, user.id, payload)


@router.get("", response_model=List[StudyGroup])
def list_groups(course: Optional[str] = None, storage: IStorage = Depends(get_storage)):
    return storage.get_study_groups(StudyGroupFilter(course=course))


@router.get("/user/{user_id}", response_model=List[StudyGroup])
def groups_of_user(user_id: int, user: User = Depends(require_user), storage: IStorage = Depends(get_storage)):
    ensure_self(user, user_id, "groups")
    return storage.get_user_study_groups(user_id)


@router.get("/{group_id}", response_model=StudyGroup)
def get_group(group_id: int, storage: IStorage = Depends(get_storage)):
    return _ensure_group(storage, group_id)


# ---------------------------------------------------------------------------
# Members
# ---------------------------------------------------------------------------

@router.post("/{group_id}/members", response_model=StudyGroupMember, status_code=201)
def add_member(
    group_id: int,
    payload: MemberIn,
    user: User = Depends(require_user),
    storage: IStorage = Depends(get_storage),
):
    group = _ensure_group(storage, group_id)
    # duplicate joins are not rejected
    return join_group(storage, group, payload.user_id, payload.is_admin)


@router.get("/{group_id}/members", response_model=List[StudyGroupMember])
def list_members(group_id: int, storage: IStorage = Depends(get_storage)):
    return storage.get_study_group_members(group_id)


@router.delete("/{group_id}/members/{user_id}", status_code=204)
def remove_member(
    group_id: int,
    user_id: int,
    user: User = Depends(require_user),
    storage: IStorage = Depends(get_storage),
):
    if user_id != user.id and not is_admin(storage, group_id, user.id):
        raise HTTPException(status_code=403, detail="You are not authorized to remove this member")
    if not storage.remove_study_group_member(group_id, user_id):
        raise HTTPException(status_code=404, detail="Member not found in group")
    return Response(status_code=204)


# ---------------------------------------------------------------------------
# Sessions
# ---------------------------------------------------------------------------

@router.post("/{group_id}/sessions", response_model=StudySession, status_code=201)
def new_session(
    group_id: int,
    payload: StudySessionIn,
    user: User = Depends(require_user),
    storage: IStorage = Depends(get_storage),
):
    group = _ensure_group(storage, group_id)
    if not is_member(storage, group_id, user.id):
        raise HTTPException(status_code=403, detail="You must be a member of the group to create a session")
    return schedule_session(storage, group, user.id, payload)


@router.get("/{group_id}/sessions", response_model=List[StudySession])
def list_group_sessions(group_id: int, storage: IStorage = Depends(get_storage)):
    return storage.get_study_sessions(group_id)
