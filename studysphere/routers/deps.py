from typing import Optional

from fastapi import Depends, HTTPException, Request

from studysphere.core.config import Settings
from studysphere.models.schemas import User, UserOut
from studysphere.storage.base import IStorage

SESSION_USER_KEY = "user_id"


def get_storage(request: Request) -> IStorage:
    return request.app.state.storage


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def current_user(request: Request, storage: IStorage = Depends(get_storage)) -> Optional[User]:
    user_id = request.session.get(SESSION_USER_KEY)
    if user_id is None:
        return None
    return storage.get_user(int(user_id))


def require_user(user: Optional[User] = Depends(current_user)) -> User:
    if user is None:
        raise HTTPException(status_code=401, detail="You must be logged in to access this resource")
    return user


def ensure_self(user: User, user_id: int, what: str) -> None:
    if user.id != user_id:
        raise HTTPException(status_code=403, detail=f"You are not authorized to view these {what}")


def public_user(user: User) -> UserOut:
    return UserOut.model_validate(user.model_dump(exclude={"password"}))
