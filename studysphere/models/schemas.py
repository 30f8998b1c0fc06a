from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator


def as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class _Record(BaseModel):
    model_config = ConfigDict(from_attributes=True)


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------

class InsertUser(BaseModel):
    username: str = Field(min_length=1)
    password: str
    email: EmailStr
    display_name: str
    institution: str
    year_of_study: Optional[int] = Field(default=None, ge=1)
    bio: Optional[str] = None


class User(_Record):
    id: int
    username: str
    password: str
    email: str
    display_name: str
    institution: str
    year_of_study: Optional[int] = None
    bio: Optional[str] = None
    points: int = 0
    created_at: datetime


class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    username: str
    email: str
    display_name: str
    institution: str
    year_of_study: Optional[int] = None
    bio: Optional[str] = None
    points: int
    created_at: datetime


class UserUpdate(BaseModel):
    display_name: Optional[str] = None
    email: Optional[EmailStr] = None
    bio: Optional[str] = None
    institution: Optional[str] = None
    year_of_study: Optional[int] = Field(default=None, ge=1)
    points: Optional[int] = None

    # only the optional profile fields may be cleared with an explicit null
    @field_validator("display_name", "email", "institution", "points", mode="before")
    @classmethod
    def _not_null(cls, v):
        if v is None:
            raise ValueError("may not be null")
        return v


class RegisterIn(InsertUser):
    password: str = Field(min_length=8)


class LoginIn(BaseModel):
    username: str = Field(min_length=1)
    password: str = Field(min_length=1)


# ---------------------------------------------------------------------------
# Papers
# ---------------------------------------------------------------------------

class PaperIn(BaseModel):
    title: str = Field(min_length=1)
    description: Optional[str] = None
    course: str
    year: int
    institution: str
    file_url: str


class InsertPaper(PaperIn):
    uploader_id: int


class Paper(_Record):
    id: int
    uploader_id: int
    title: str
    description: Optional[str] = None
    course: str
    year: int
    institution: str
    file_url: str
    downloads: int = 0
    upload_date: datetime


class PaperFilter(BaseModel):
    uploader_id: Optional[int] = None
    course: Optional[str] = None
    year: Optional[int] = None
    institution: Optional[str] = None


# ---------------------------------------------------------------------------
# Discussions
# ---------------------------------------------------------------------------

class DiscussionPostIn(BaseModel):
    title: str = Field(min_length=1)
    content: str = Field(min_length=1)
    course: Optional[str] = None
    tags: List[str] = Field(default_factory=list)


class InsertDiscussionPost(DiscussionPostIn):
    author_id: int


class DiscussionPost(_Record):
    id: int
    author_id: int
    title: str
    content: str
    course: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    votes: int = 0
    created_at: datetime
    updated_at: datetime


class DiscussionPostFilter(BaseModel):
    author_id: Optional[int] = None
    course: Optional[str] = None


class ReplyIn(BaseModel):
    content: str = Field(min_length=1)


class InsertDiscussionReply(ReplyIn):
    post_id: int
    author_id: int


class DiscussionReply(_Record):
    id: int
    post_id: int
    author_id: int
    content: str
    votes: int = 0
    created_at: datetime
    updated_at: datetime


class VoteIn(BaseModel):
    value: int


# ---------------------------------------------------------------------------
# Study groups
# ---------------------------------------------------------------------------

class StudyGroupIn(BaseModel):
    name: str = Field(min_length=1)
    description: Optional[str] = None
    course: Optional[str] = None
    color: Optional[str] = None


class InsertStudyGroup(StudyGroupIn):
    creator_id: int


class StudyGroup(_Record):
    id: int
    creator_id: int
    name: str
    description: Optional[str] = None
    course: Optional[str] = None
    color: Optional[str] = None
    created_at: datetime


class StudyGroupFilter(BaseModel):
    creator_id: Optional[int] = None
    course: Optional[str] = None


class MemberIn(BaseModel):
    user_id: int
    is_admin: bool = False


class InsertStudyGroupMember(MemberIn):
    group_id: int


class StudyGroupMember(_Record):
    id: int
    group_id: int
    user_id: int
    is_admin: bool = False
    joined_at: datetime


# ---------------------------------------------------------------------------
# Study sessions
# ---------------------------------------------------------------------------

class StudySessionIn(BaseModel):
    title: str = Field(min_length=1)
    description: Optional[str] = None
    start_time: datetime
    end_time: datetime
    is_virtual: bool = False
    location: Optional[str] = None
    meeting_link: Optional[str] = None

    @field_validator("start_time", "end_time")
    @classmethod
    def _utc(cls, v: datetime) -> datetime:
        return as_utc(v)


class InsertStudySession(StudySessionIn):
    group_id: int
    created_by: int


class StudySession(_Record):
    id: int
    group_id: int
    created_by: int
    title: str
    description: Optional[str] = None
    start_time: datetime
    end_time: datetime
    is_virtual: bool = False
    location: Optional[str] = None
    meeting_link: Optional[str] = None
    created_at: datetime


# ---------------------------------------------------------------------------
# Activity log
# ---------------------------------------------------------------------------

class InsertActivity(BaseModel):
    user_id: int
    type: str
    target_id: int
    target_type: str
    metadata: Dict[str, Any] = Field(default_factory=dict)


class Activity(_Record):
    id: int
    user_id: int
    type: str
    target_id: int
    target_type: str
    metadata: Dict[str, Any] = Field(default_factory=dict)
    created_at: datetime
