from fastapi import APIRouter, Depends, HTTPException
from typing import List, Optional

from studysphere.models.schemas import (
    DiscussionPost,
    DiscussionPostFilter,
    DiscussionPostIn,
    DiscussionReply,
    ReplyIn,
    User,
    VoteIn,
)
from studysphere.routers.deps import get_storage, require_user
from studysphere.services.community import reply_to_discussion, start_discussion
from studysphere.storage.base import IStorage

router = APIRouter(prefix="/api/discussions", tags=["discussions"])


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _post_or_404(post: Optional[DiscussionPost]) -> DiscussionPost:
    if post is None:
        raise HTTPException(status_code=404, detail="Discussion post not found")
    return post


def _vote_value(payload: VoteIn) -> int:
    if payload.value not in (1, -1):
        raise HTTPException(status_code=400, detail="Vote value must be 1 or -1")
    return payload.value


# ---------------------------------------------------------------------------
# Posts
# ---------------------------------------------------------------------------

@router.post("", response_model=DiscussionPost, status_code=201)
def create_post(payload: DiscussionPostIn, user: User = Depends(require_user), storage: IStorage = Depends(get_storage)):
    return start_discussion(storage, user.id, payload)


@router.get("", response_model=List[DiscussionPost])
def list_posts(course: Optional[str] = None, tag: Optional[str] = None, storage: IStorage = Depends(get_storage)):
    posts = storage.get_discussion_posts(DiscussionPostFilter(course=course))
    if tag:
        posts = [p for p in posts if tag in p.tags]
    return posts


@router.post("/replies/{reply_id}/vote", response_model=DiscussionReply)
def vote_reply(reply_id: int, payload: VoteIn, user: User = Depends(require_user), storage: IStorage = Depends(get_storage)):
    reply = storage.vote_discussion_reply(reply_id, _vote_value(payload))
    if reply is None:
        raise HTTPException(status_code=404, detail="Reply not found")
    return reply


@router.get("/{post_id}", response_model=DiscussionPost)
def get_post(post_id: int, storage: IStorage = Depends(get_storage)):
    return _post_or_404(storage.get_discussion_post(post_id))


@router.post("/{post_id}/vote", response_model=DiscussionPost)
def vote_post(post_id: int, payload: VoteIn, user: User = Depends(require_user), storage: IStorage = Depends(get_storage)):
    # no per-user dedup: the same user may vote repeatedly
    return _post_or_404(storage.vote_discussion_post(post_id, _vote_value(payload)))


# ---------------------------------------------------------------------------
# Replies
# ---------------------------------------------------------------------------

@router.post("/{post_id}/replies", response_model=DiscussionReply, status_code=201)
def create_reply(
    post_id: int,
    payload: ReplyIn,
    user: User = Depends(require_user),
    storage: IStorage = Depends(get_storage),
):
    post = _post_or_404(storage.get_discussion_post(post_id))
    return reply_to_discussion(storage, user.id, post, payload)


@router.get("/{post_id}/replies", response_model=List[DiscussionReply])
def list_replies(post_id: int, storage: IStorage = Depends(get_storage)):
    return storage.get_discussion_replies(post_id)
