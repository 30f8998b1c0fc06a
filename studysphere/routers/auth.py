import logging

from fastapi import APIRouter, Depends, HTTPException, Request, Response

from studysphere.core.config import Settings
from studysphere.core.security import hash_password, verify_password
from studysphere.models.schemas import InsertUser, LoginIn, RegisterIn, User, UserOut, UserUpdate
from studysphere.routers.deps import (
    SESSION_USER_KEY,
    current_user,
    get_settings,
    get_storage,
    public_user,
    require_user,
)
from studysphere.storage.base import IStorage

log = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["auth"])


@router.post("/register", response_model=UserOut, status_code=201)
def register(
    payload: RegisterIn,
    request: Request,
    storage: IStorage = Depends(get_storage),
    settings: Settings = Depends(get_settings),
):
    log.info("[auth] registration attempt username=%s", payload.username)
    # check-then-create, not atomic: two concurrent registrations can both pass
    if storage.get_user_by_username(payload.username):
        log.info("[auth] registration rejected: username %s taken", payload.username)
        raise HTTPException(status_code=400, detail="Username already exists")
    if storage.get_user_by_email(payload.email):
        log.info("[auth] registration rejected: email already registered")
        raise HTTPException(status_code=400, detail="Email already exists")

    data = payload.model_dump()
    data["password"] = hash_password(payload.password, rounds=settings.BCRYPT_ROUNDS)
    user = storage.create_user(InsertUser(**data))
    request.session[SESSION_USER_KEY] = user.id
    log.info("[auth] user #%s registered and logged in", user.id)
    return public_user(user)


def _authenticate(storage: IStorage, login: str, password: str):
    user = storage.get_user_by_email(login) if "@" in login else storage.get_user_by_username(login)
    if user is None:
        log.info("[auth] login failed: no user for %s", login)
        return None
    if not verify_password(password, user.password):
        log.info("[auth] login failed: password mismatch for %s", login)
        return None
    return user


@router.post("/login", response_model=UserOut)
def login(payload: LoginIn, request: Request, storage: IStorage = Depends(get_storage)):
    user = _authenticate(storage, payload.username, payload.password)
    if user is None:
        raise HTTPException(status_code=401, detail="Invalid credentials")
    request.session.clear()
    request.session[SESSION_USER_KEY] = user.id
    log.info("[auth] login ok for user #%s", user.id)
    return public_user(user)


@router.post("/logout")
def logout(request: Request, user=Depends(current_user)):
    if user is not None:
        log.info("[auth] logging out user #%s", user.id)
    request.session.clear()
    return Response(status_code=200)


@router.get("/user", response_model=UserOut)
def me(user: User = Depends(require_user)):
    return public_user(user)


@router.patch("/user/{user_id}", response_model=UserOut)
def update_profile(
    user_id: int,
    payload: UserUpdate,
    user: User = Depends(require_user),
    storage: IStorage = Depends(get_storage),
):
    if user.id != user_id:
        raise HTTPException(status_code=403, detail="You can only update your own profile")
    # points are earned, not edited
    data = payload.model_dump(exclude_unset=True)
    data.pop("points", None)
    changes = UserUpdate(**data)
    if changes.email and changes.email.lower() != user.email.lower():
        if storage.get_user_by_email(changes.email):
            raise HTTPException(status_code=400, detail="Email already exists")
    updated = storage.update_user(user_id, changes)
    if updated is None:
        raise HTTPException(status_code=404, detail="User not found")
    return public_user(updated)
