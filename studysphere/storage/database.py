"""SQLAlchemy-backed storage.

Same contract as the in-memory store; every public call runs in its own
session and commits before returning, so each call is one transaction.
"""
from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Iterator, List, Optional, Type

from sqlalchemy import select, update
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from studysphere.models.db import Base, make_engine, make_session_factory
from studysphere.models.entities import (
    ActivityRow,
    DiscussionPostRow,
    DiscussionReplyRow,
    PaperRow,
    StudyGroupMemberRow,
    StudyGroupRow,
    StudySessionRow,
    UserRow,
)
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

log = logging.getLogger(__name__)

_DATETIME_FIELDS = ("created_at", "updated_at", "upload_date", "joined_at", "start_time", "end_time")


def _aware(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite hands back naive datetimes; everything is stored as UTC
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _to_model(schema, row):
    data = {c.key: getattr(row, c.key) for c in row.__mapper__.column_attrs}
    if "meta" in data:
        data["metadata"] = data.pop("meta") or {}
    for key in _DATETIME_FIELDS:
        if key in data:
            data[key] = _aware(data[key])
    return schema.model_validate(data)


class DatabaseStorage(IStorage):
    def __init__(self, session_factory: sessionmaker, engine: Optional[Engine] = None):
        self._session_factory = session_factory
        self._engine = engine
        # one store call at a time, as with the in-memory backend
        self._lock = threading.RLock()

    @classmethod
    def from_url(cls, database_url: str, echo: bool = False) -> "DatabaseStorage":
        engine = make_engine(database_url, echo=echo)
        Base.metadata.create_all(bind=engine)
        return cls(make_session_factory(engine), engine=engine)

    @contextmanager
    def _session(self) -> Iterator[Session]:
        with self._lock:
            db = self._session_factory()
            try:
                yield db
                db.commit()
            except Exception:
                db.rollback()
                raise
            finally:
                db.close()

    def close(self) -> None:
        if self._engine is not None:
            log.info("[storage] disposing database engine")
            self._engine.dispose()

    # ------------------------- Generic helpers -------------------------
    def _insert(self, row_cls: Type[Base], schema, **fields):
        with self._session() as db:
            row = row_cls(**fields)
            db.add(row)
            db.flush()
            db.refresh(row)
            return _to_model(schema, row)

    def _get(self, row_cls: Type[Base], schema, row_id: int):
        with self._session() as db:
            row = db.get(row_cls, row_id)
            return _to_model(schema, row) if row is not None else None

    def _list(self, row_cls: Type[Base], schema, *criteria) -> list:
        with self._session() as db:
            rows = db.scalars(select(row_cls).where(*criteria).order_by(row_cls.id)).all()
            return [_to_model(schema, r) for r in rows]

    def _matching(self, row_cls: Type[Base], schema, filters) -> list:
        criteria = [getattr(row_cls, k) == v for k, v in filter_fields(filters).items()]
        return self._list(row_cls, schema, *criteria)

    def _bump(self, row_cls: Type[Base], schema, row_id: int, **values):
        # the increment happens in SQL, so the stored value is never read back and rewritten
        with self._session() as db:
            result = db.execute(update(row_cls).where(row_cls.id == row_id).values(**values))
            if result.rowcount == 0:
                return None
            row = db.get(row_cls, row_id, populate_existing=True)
            return _to_model(schema, row)

    def _bump_votes(self, row_cls: Type[Base], schema, row_id: int, value: int):
        return self._bump(row_cls, schema, row_id, votes=row_cls.votes + value, updated_at=utcnow())

    # ------------------------- Users -------------------------
    def get_user(self, user_id: int) -> Optional[User]:
        return self._get(UserRow, User, user_id)

    def _user_where(self, column, value: str) -> Optional[User]:
        # lookup keys are folded in Python; SQLite lower() only handles ASCII
        with self._session() as db:
            row = db.scalars(
                select(UserRow).where(column == value.lower()).order_by(UserRow.id).limit(1)
            ).first()
            return _to_model(User, row) if row is not None else None

    def get_user_by_username(self, username: str) -> Optional[User]:
        return self._user_where(UserRow.username_key, username)

    def get_user_by_email(self, email: str) -> Optional[User]:
        return self._user_where(UserRow.email_key, email)

    def create_user(self, user: InsertUser) -> User:
        return self._insert(
            UserRow, User, **user.model_dump(),
            username_key=user.username.lower(), email_key=user.email.lower(),
            points=0, created_at=utcnow(),
        )

    def update_user(self, user_id: int, changes: UserUpdate) -> Optional[User]:
        with self._session() as db:
            row = db.get(UserRow, user_id)
            if row is None:
                return None
            for key, value in changes.model_dump(exclude_unset=True).items():
                setattr(row, key, value)
            row.email_key = row.email.lower()
            db.flush()
            return _to_model(User, row)

    # ------------------------- Papers -------------------------
    def create_paper(self, paper: InsertPaper) -> Paper:
        return self._insert(PaperRow, Paper, **paper.model_dump(), downloads=0, upload_date=utcnow())

    def get_paper(self, paper_id: int) -> Optional[Paper]:
        return self._get(PaperRow, Paper, paper_id)

    def get_papers(self, filters: Optional[PaperFilter] = None) -> List[Paper]:
        return self._matching(PaperRow, Paper, filters)

    def increment_paper_downloads(self, paper_id: int) -> Optional[Paper]:
        return self._bump(PaperRow, Paper, paper_id, downloads=PaperRow.downloads + 1)

    # ------------------------- Discussions -------------------------
    def create_discussion_post(self, post: InsertDiscussionPost) -> DiscussionPost:
        now = utcnow()
        return self._insert(DiscussionPostRow, DiscussionPost, **post.model_dump(), votes=0, created_at=now, updated_at=now)

    def get_discussion_post(self, post_id: int) -> Optional[DiscussionPost]:
        return self._get(DiscussionPostRow, DiscussionPost, post_id)

    def get_discussion_posts(self, filters: Optional[DiscussionPostFilter] = None) -> List[DiscussionPost]:
        return self._matching(DiscussionPostRow, DiscussionPost, filters)

    def create_discussion_reply(self, reply: InsertDiscussionReply) -> DiscussionReply:
        now = utcnow()
        return self._insert(DiscussionReplyRow, DiscussionReply, **reply.model_dump(), votes=0, created_at=now, updated_at=now)

    def get_discussion_replies(self, post_id: int) -> List[DiscussionReply]:
        return self._list(DiscussionReplyRow, DiscussionReply, DiscussionReplyRow.post_id == post_id)

    def vote_discussion_post(self, post_id: int, value: int) -> Optional[DiscussionPost]:
        return self._bump_votes(DiscussionPostRow, DiscussionPost, post_id, value)

    def vote_discussion_reply(self, reply_id: int, value: int) -> Optional[DiscussionReply]:
        return self._bump_votes(DiscussionReplyRow, DiscussionReply, reply_id, value)

    # ------------------------- Study groups -------------------------
    def create_study_group(self, group: InsertStudyGroup) -> StudyGroup:
        return self._insert(StudyGroupRow, StudyGroup, **group.model_dump(), created_at=utcnow())

    def get_study_group(self, group_id: int) -> Optional[StudyGroup]:
        return self._get(StudyGroupRow, StudyGroup, group_id)

    def get_study_groups(self, filters: Optional[StudyGroupFilter] = None) -> List[StudyGroup]:
        return self._matching(StudyGroupRow, StudyGroup, filters)

    @staticmethod
    def _member_group_ids(user_id: int):
        return select(StudyGroupMemberRow.group_id).where(StudyGroupMemberRow.user_id == user_id)

    def get_user_study_groups(self, user_id: int) -> List[StudyGroup]:
        return self._list(StudyGroupRow, StudyGroup, StudyGroupRow.id.in_(self._member_group_ids(user_id)))

    def add_study_group_member(self, member: InsertStudyGroupMember) -> StudyGroupMember:
        return self._insert(StudyGroupMemberRow, StudyGroupMember, **member.model_dump(), joined_at=utcnow())

    def get_study_group_members(self, group_id: int) -> List[StudyGroupMember]:
        return self._list(StudyGroupMemberRow, StudyGroupMember, StudyGroupMemberRow.group_id == group_id)

    def remove_study_group_member(self, group_id: int, user_id: int) -> bool:
        with self._session() as db:
            row = db.scalars(
                select(StudyGroupMemberRow)
                .where(StudyGroupMemberRow.group_id == group_id, StudyGroupMemberRow.user_id == user_id)
                .order_by(StudyGroupMemberRow.id)
                .limit(1)
            ).first()
            if row is None:
                return False
            db.delete(row)
            return True

    # ------------------------- Study sessions -------------------------
    def create_study_session(self, session: InsertStudySession) -> StudySession:
        return self._insert(StudySessionRow, StudySession, **session.model_dump(), created_at=utcnow())

    def get_study_session(self, session_id: int) -> Optional[StudySession]:
        return self._get(StudySessionRow, StudySession, session_id)

    def get_study_sessions(self, group_id: int) -> List[StudySession]:
        return self._list(StudySessionRow, StudySession, StudySessionRow.group_id == group_id)

    def get_upcoming_study_sessions(self, user_id: int, now: Optional[datetime] = None) -> List[StudySession]:
        now = as_utc(now) if now is not None else utcnow()
        sessions = self._list(
            StudySessionRow, StudySession, StudySessionRow.group_id.in_(self._member_group_ids(user_id))
        )
        # compared in Python: SQLite stores datetimes as text and drops the offset
        return sorted((s for s in sessions if s.start_time > now), key=lambda s: s.start_time)

    # ------------------------- Activity log -------------------------
    def create_activity(self, activity: InsertActivity) -> Activity:
        data = activity.model_dump()
        data["meta"] = data.pop("metadata")
        return self._insert(ActivityRow, Activity, **data, created_at=utcnow())

    def get_user_activities(self, user_id: int, limit: Optional[int] = None) -> List[Activity]:
        return newest_first(self._list(ActivityRow, Activity, ActivityRow.user_id == user_id), limit)

    def get_recent_activities(self, limit: Optional[int] = None) -> List[Activity]:
        return newest_first(self._list(ActivityRow, Activity), limit)
