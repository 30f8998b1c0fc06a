"""Data-access contract shared by every storage backend.

Lookups that find nothing return ``None`` (or ``False`` for removals); they
never raise. Returned records are copies, so callers cannot change stored
state except through the update operations below.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import List, Optional

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
)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def filter_fields(filters: Optional[BaseModel]) -> dict:
    """Field/value pairs a filter actually constrains (unset and None are ignored)."""
    if filters is None:
        return {}
    return filters.model_dump(exclude_none=True)


def newest_first(activities: List[Activity], limit: Optional[int] = None) -> List[Activity]:
    ordered = sorted(activities, key=lambda a: (a.created_at, a.id), reverse=True)
    return ordered[:limit] if limit else ordered


class IStorage(ABC):
    # ------------------------- Users -------------------------
    @abstractmethod
    def get_user(self, user_id: int) -> Optional[User]: ...

    @abstractmethod
    def get_user_by_username(self, username: str) -> Optional[User]: ...

    @abstractmethod
    def get_user_by_email(self, email: str) -> Optional[User]: ...

    @abstractmethod
    def create_user(self, user: InsertUser) -> User: ...

    @abstractmethod
    def update_user(self, user_id: int, changes: UserUpdate) -> Optional[User]: ...

    # ------------------------- Papers -------------------------
    @abstractmethod
    def create_paper(self, paper: InsertPaper) -> Paper: ...

    @abstractmethod
    def get_paper(self, paper_id: int) -> Optional[Paper]: ...

    @abstractmethod
    def get_papers(self, filters: Optional[PaperFilter] = None) -> List[Paper]: ...

    @abstractmethod
    def increment_paper_downloads(self, paper_id: int) -> Optional[Paper]: ...

    # ------------------------- Discussions -------------------------
    @abstractmethod
    def create_discussion_post(self, post: InsertDiscussionPost) -> DiscussionPost: ...

    @abstractmethod
    def get_discussion_post(self, post_id: int) -> Optional[DiscussionPost]: ...

    @abstractmethod
    def get_discussion_posts(self, filters: Optional[DiscussionPostFilter] = None) -> List[DiscussionPost]: ...

    @abstractmethod
    def create_discussion_reply(self, reply: InsertDiscussionReply) -> DiscussionReply: ...

    @abstractmethod
    def get_discussion_replies(self, post_id: int) -> List[DiscussionReply]: ...

    @abstractmethod
    def vote_discussion_post(self, post_id: int, value: int) -> Optional[DiscussionPost]: ...

    @abstractmethod
    def vote_discussion_reply(self, reply_id: int, value: int) -> Optional[DiscussionReply]: ...

    # ------------------------- Study groups -------------------------
    @abstractmethod
    def create_study_group(self, group: InsertStudyGroup) -> StudyGroup: ...

    @abstractmethod
    def get_study_group(self, group_id: int) -> Optional[StudyGroup]: ...

    @abstractmethod
    def get_study_groups(self, filters: Optional[StudyGroupFilter] = None) -> List[StudyGroup]: ...

    @abstractmethod
    def get_user_study_groups(self, user_id: int) -> List[StudyGroup]: ...

    @abstractmethod
    def add_study_group_member(self, member: InsertStudyGroupMember) -> StudyGroupMember: ...

    @abstractmethod
    def get_study_group_members(self, group_id: int) -> List[StudyGroupMember]: ...

    @abstractmethod
    def remove_study_group_member(self, group_id: int, user_id: int) -> bool: ...

    # ------------------------- Study sessions -------------------------
    @abstractmethod
    def create_study_session(self, session: InsertStudySession) -> StudySession: ...

    @abstractmethod
    def get_study_session(self, session_id: int) -> Optional[StudySession]: ...

    @abstractmethod
    def get_study_sessions(self, group_id: int) -> List[StudySession]: ...

    @abstractmethod
    def get_upcoming_study_sessions(self, user_id: int, now: Optional[datetime] = None) -> List[StudySession]: ...

    # ------------------------- Activity log -------------------------
    @abstractmethod
    def create_activity(self, activity: InsertActivity) -> Activity: ...

    @abstractmethod
    def get_user_activities(self, user_id: int, limit: Optional[int] = None) -> List[Activity]: ...

    @abstractmethod
    def get_recent_activities(self, limit: Optional[int] = None) -> List[Activity]: ...

    def close(self) -> None:
        """Release backend resources; the in-memory store has none."""
