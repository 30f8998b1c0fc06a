"""In-memory storage backend.

Each entity type lives in its own dict keyed by id, with a counter that only
moves forward. One re-entrant lock covers every public call, so a single store
operation is never interleaved with another one from a different request
thread. Multi-step caller flows are still not atomic.
"""
from __future__ import annotations

import functools
import threading
from datetime import datetime
from typing import Callable, Dict, Generic, Iterator, List, Optional, Type, TypeVar

from pydantic import BaseModel

from studysphere.models.schemas import (
    Activity,
    DiscussionPost,
    DiscussionPostFilter,
    DiscussionReply,
    InsertActivity,
    InsertDiscussionPost,
    InsertDiscussionReply,
    InsertPaper,
    InsertStudyGroup,
    InsertStudyGroupMember,
    InsertStudySession,
    InsertUser,
    Paper,
    PaperFilter,
    StudyGroup,
    StudyGroupFilter,
    StudyGroupMember,
    StudySession,
    User,
    UserUpdate,
    as_utc,
)
from studysphere.storage.base import IStorage, filter_fields, newest_first, utcnow

M = TypeVar("M", bound=BaseModel)


class _Collection(Generic[M]):
    """Keyed rows of one entity type plus its id counter."""

    def __init__(self, model: Type[M]):
        self.model = model
        self.rows: Dict[int, M] = {}
        self.next_id = 1

    def insert(self, **fields) -> M:
        row = self.model(id=self.next_id, **fields)
        self.next_id += 1
        self.rows[row.id] = row
        return row.model_copy(deep=True)

    def get(self, row_id: int) -> Optional[M]:
        row = self.rows.get(row_id)
        return row.model_copy(deep=True) if row is not None else None

    def replace(self, row_id: int, **changes) -> Optional[M]:
        row = self.rows.get(row_id)
        if row is None:
            return None
        updated = row.model_copy(update=changes, deep=True)
        self.rows[row_id] = updated
        return updated.model_copy(deep=True)

    def scan(self) -> Iterator[M]:
        # dicts keep insertion order, which is id order
        return iter(list(self.rows.values()))

    def where(self, predicate: Callable[[M], bool]) -> List[M]:
        return [r.model_copy(deep=True) for r in self.scan() if predicate(r)]

    def matching(self, filters: Optional[BaseModel]) -> List[M]:
        wanted = filter_fields(filters)
        return self.where(lambda r: all(getattr(r, k) == v for k, v in wanted.items()))

    def delete(self, row_id: int) -> bool:
        return self.rows.pop(row_id, None) is not None


def _locked(fn):
    @functools.wraps(fn)
    def wrapper(self, *args, **kwargs):
        with self._lock:
            return fn(self, *args, **kwargs)
    return wrapper


class MemStorage(IStorage):
    def __init__(self, clock: Callable[[], datetime] = utcnow):
        self._lock = threading.RLock()
        self._clock = clock
        self._users: _Collection[User] = _Collection(User)
        self._papers: _Collection[Paper] = _Collection(Paper)
        self._posts: _Collection[DiscussionPost] = _Collection(DiscussionPost)
        self._replies: _Collection[DiscussionReply] = _Collection(DiscussionReply)
        self._groups: _Collection[StudyGroup] = _Collection(StudyGroup)
        self._members: _Collection[StudyGroupMember] = _Collection(StudyGroupMember)
        self._sessions: _Collection[StudySession] = _Collection(StudySession)
        self._activities: _Collection[Activity] = _Collection(Activity)

    # ------------------------- Users -------------------------
    @_locked
    def get_user(self, user_id: int) -> Optional[User]:
        return self._users.get(user_id)

    @_locked
    def get_user_by_username(self, username: str) -> Optional[User]:
        wanted = username.lower()
        found = self._users.where(lambda u: u.username.lower() == wanted)
        return found[0] if found else None

    @_locked
    def get_user_by_email(self, email: str) -> Optional[User]:
        wanted = email.lower()
        found = self._users.where(lambda u: u.email.lower() == wanted)
        return found[0] if found else None

    @_locked
    def create_user(self, user: InsertUser) -> User:
        return self._users.insert(**user.model_dump(), points=0, created_at=self._clock())

    @_locked
    def update_user(self, user_id: int, changes: UserUpdate) -> Optional[User]:
        return self._users.replace(user_id, **changes.model_dump(exclude_unset=True))

    # ------------------------- Papers -------------------------
    @_locked
    def create_paper(self, paper: InsertPaper) -> Paper:
        return self._papers.insert(**paper.model_dump(), downloads=0, upload_date=self._clock())

    @_locked
    def get_paper(self, paper_id: int) -> Optional[Paper]:
        return self._papers.get(paper_id)

    @_locked
    def get_papers(self, filters: Optional[PaperFilter] = None) -> List[Paper]:
        return self._papers.matching(filters)

    @_locked
    def increment_paper_downloads(self, paper_id: int) -> Optional[Paper]:
        paper = self._papers.get(paper_id)
        if paper is None:
            return None
        return self._papers.replace(paper_id, downloads=paper.downloads + 1)

    # ------------------------- Discussions -------------------------
    @_locked
    def create_discussion_post(self, post: InsertDiscussionPost) -> DiscussionPost:
        now = self._clock()
        return self._posts.insert(**post.model_dump(), votes=0, created_at=now, updated_at=now)

    @_locked
    def get_discussion_post(self, post_id: int) -> Optional[DiscussionPost]:
        return self._posts.get(post_id)

    @_locked
    def get_discussion_posts(self, filters: Optional[DiscussionPostFilter] = None) -> List[DiscussionPost]:
        return self._posts.matching(filters)

    @_locked
    def create_discussion_reply(self, reply: InsertDiscussionReply) -> DiscussionReply:
        now = self._clock()
        return self._replies.insert(**reply.model_dump(), votes=0, created_at=now, updated_at=now)

    @_locked
    def get_discussion_replies(self, post_id: int) -> List[DiscussionReply]:
        return self._replies.where(lambda r: r.post_id == post_id)

    @_locked
    def vote_discussion_post(self, post_id: int, value: int) -> Optional[DiscussionPost]:
        post = self._posts.get(post_id)
        if post is None:
            return None
        return self._posts.replace(post_id, votes=post.votes + value, updated_at=self._clock())

    @_locked
    def vote_discussion_reply(self, reply_id: int, value: int) -> Optional[DiscussionReply]:
        reply = self._replies.get(reply_id)
        if reply is None:
            return None
        return self._replies.replace(reply_id, votes=reply.votes + value, updated_at=self._clock())

    # ------------------------- Study groups -------------------------
    @_locked
    def create_study_group(self, group: InsertStudyGroup) -> StudyGroup:
        return self._groups.insert(**group.model_dump(), created_at=self._clock())

    @_locked
    def get_study_group(self, group_id: int) -> Optional[StudyGroup]:
        return self._groups.get(group_id)

    @_locked
    def get_study_groups(self, filters: Optional[StudyGroupFilter] = None) -> List[StudyGroup]:
        return self._groups.matching(filters)

    def _group_ids_for(self, user_id: int) -> set:
        return {m.group_id for m in self._members.scan() if m.user_id == user_id}

    @_locked
    def get_user_study_groups(self, user_id: int) -> List[StudyGroup]:
        group_ids = self._group_ids_for(user_id)
        return self._groups.where(lambda g: g.id in group_ids)

    @_locked
    def add_study_group_member(self, member: InsertStudyGroupMember) -> StudyGroupMember:
        return self._members.insert(**member.model_dump(), joined_at=self._clock())

    @_locked
    def get_study_group_members(self, group_id: int) -> List[StudyGroupMember]:
        return self._members.where(lambda m: m.group_id == group_id)

    @_locked
    def remove_study_group_member(self, group_id: int, user_id: int) -> bool:
        for m in self._members.scan():
            if m.group_id == group_id and m.user_id == user_id:
                return self._members.delete(m.id)
        return False

    # ------------------------- Study sessions -------------------------
    @_locked
    def create_study_session(self, session: InsertStudySession) -> StudySession:
        return self._sessions.insert(**session.model_dump(), created_at=self._clock())

    @_locked
    def get_study_session(self, session_id: int) -> Optional[StudySession]:
        return self._sessions.get(session_id)

    @_locked
    def get_study_sessions(self, group_id: int) -> List[StudySession]:
        return self._sessions.where(lambda s: s.group_id == group_id)

    @_locked
    def get_upcoming_study_sessions(self, user_id: int, now: Optional[datetime] = None) -> List[StudySession]:
        now = as_utc(now) if now is not None else self._clock()
        group_ids = self._group_ids_for(user_id)
        upcoming = self._sessions.where(lambda s: s.group_id in group_ids and s.start_time > now)
        return sorted(upcoming, key=lambda s: s.start_time)

    # ------------------------- Activity log -------------------------
    @_locked
    def create_activity(self, activity: InsertActivity) -> Activity:
        return self._activities.insert(**activity.model_dump(), created_at=self._clock())

    @_locked
    def get_user_activities(self, user_id: int, limit: Optional[int] = None) -> List[Activity]:
        return newest_first(self._activities.where(lambda a: a.user_id == user_id), limit)

    @_locked
    def get_recent_activities(self, limit: Optional[int] = None) -> List[Activity]:
        return newest_first(self._activities.where(lambda a: True), limit)
