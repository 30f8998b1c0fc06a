# studysphere/models/entities.py
from sqlalchemy import JSON, Boolean, Column, DateTime, Integer, String, Text
from .db import Base


class UserRow(Base):
    __tablename__ = "users"
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    username = Column(String, index=True, nullable=False)
    password = Column(String, nullable=False)
    email = Column(String, index=True, nullable=False)
    # casefolded copies for case-insensitive lookups
    username_key = Column(String, index=True, nullable=False)
    email_key = Column(String, index=True, nullable=False)
    display_name = Column(String, nullable=False)
    institution = Column(String, nullable=False)
    year_of_study = Column(Integer, nullable=True)
    bio = Column(Text, nullable=True)
    points = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), nullable=False)


class PaperRow(Base):
    __tablename__ = "papers"
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    uploader_id = Column(Integer, index=True, nullable=False)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    course = Column(String, index=True, nullable=False)
    year = Column(Integer, nullable=False)
    institution = Column(String, nullable=False)
    file_url = Column(String, nullable=False)
    downloads = Column(Integer, nullable=False, default=0)
    upload_date = Column(DateTime(timezone=True), nullable=False)


class DiscussionPostRow(Base):
    __tablename__ = "discussion_posts"
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    author_id = Column(Integer, index=True, nullable=False)
    title = Column(String, nullable=False)
    content = Column(Text, nullable=False)
    course = Column(String, index=True, nullable=True)
    tags = Column(JSON, nullable=False, default=list)
    votes = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)


class DiscussionReplyRow(Base):
    __tablename__ = "discussion_replies"
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    post_id = Column(Integer, index=True, nullable=False)
    author_id = Column(Integer, index=True, nullable=False)
    content = Column(Text, nullable=False)
    votes = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)


class StudyGroupRow(Base):
    __tablename__ = "study_groups"
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    creator_id = Column(Integer, index=True, nullable=False)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    course = Column(String, index=True, nullable=True)
    color = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False)


class StudyGroupMemberRow(Base):
    __tablename__ = "study_group_members"
    # members are the only deletable rows; AUTOINCREMENT keeps SQLite from reusing ids
    __table_args__ = {"sqlite_autoincrement": True}
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    group_id = Column(Integer, index=True, nullable=False)
    user_id = Column(Integer, index=True, nullable=False)
    is_admin = Column(Boolean, nullable=False, default=False, server_default="0")
    joined_at = Column(DateTime(timezone=True), nullable=False)


class StudySessionRow(Base):
    __tablename__ = "study_sessions"
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    group_id = Column(Integer, index=True, nullable=False)
    created_by = Column(Integer, nullable=False)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    start_time = Column(DateTime(timezone=True), index=True, nullable=False)
    end_time = Column(DateTime(timezone=True), nullable=False)
    is_virtual = Column(Boolean, nullable=False, default=False, server_default="0")
    location = Column(String, nullable=True)
    meeting_link = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False)


class ActivityRow(Base):
    __tablename__ = "activities"
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    user_id = Column(Integer, index=True, nullable=False)
    type = Column(String, nullable=False)
    target_id = Column(Integer, nullable=False)
    target_type = Column(String, nullable=False)
    # "metadata" is reserved on declarative classes
    meta = Column("metadata", JSON, nullable=False, default=dict)
    created_at = Column(DateTime(timezone=True), index=True, nullable=False)
