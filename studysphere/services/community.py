from __future__ import annotations

"""
studysphere/services/community.py

Multi-step flows behind the write endpoints:
- create the primary record through the store
- record the matching activity-log entry
- for new groups, enrol the creator as the first admin member

None of these are atomic; a failure half way leaves the earlier steps in place.
"""

from typing import List
import logging

from studysphere.models.schemas import (
    DiscussionPost,
    DiscussionPostIn,
    DiscussionReply,
    InsertActivity,
    InsertDiscussionPost,
    InsertDiscussionReply,
    InsertPaper,
    InsertStudyGroup,
    InsertStudyGroupMember,
    InsertStudySession,
    Paper,
    PaperIn,
    ReplyIn,
    StudyGroup,
    StudyGroupIn,
    StudyGroupMember,
    StudySession,
    StudySessionIn,
)
from studysphere.storage.base import IStorage

log = logging.getLogger(__name__)


def _log_activity(storage: IStorage, user_id: int, kind: str, target_id: int, target_type: str, **metadata) -> None:
    entry = storage.create_activity(InsertActivity(
        user_id=user_id,
        type=kind,
        target_id=target_id,
        target_type=target_type,
        metadata=metadata,
    ))
    log.debug("[activity] #%s %s user=%s %s=%s", entry.id, kind, user_id, target_type, target_id)


def publish_paper(storage: IStorage, uploader_id: int, payload: PaperIn) -> Paper:
    paper = storage.create_paper(InsertPaper(**payload.model_dump(), uploader_id=uploader_id))
    _log_activity(storage, uploader_id, "paper_upload", paper.id, "paper", title=paper.title)
    return paper


def start_discussion(storage: IStorage, author_id: int, payload: DiscussionPostIn) -> DiscussionPost:
    post = storage.create_discussion_post(InsertDiscussionPost(**payload.model_dump(), author_id=author_id))
    _log_activity(storage, author_id, "post_created", post.id, "discussion_post", title=post.title)
    return post


def reply_to_discussion(storage: IStorage, author_id: int, post: DiscussionPost, payload: ReplyIn) -> DiscussionReply:
    # replies are not part of the activity feed
    return storage.create_discussion_reply(
        InsertDiscussionReply(**payload.model_dump(), post_id=post.id, author_id=author_id)
    )


def create_group(storage: IStorage, creator_id: int, payload: StudyGroupIn) -> StudyGroup:
    group = storage.create_study_group(InsertStudyGroup(**payload.model_dump(), creator_id=creator_id))
    storage.add_study_group_member(InsertStudyGroupMember(group_id=group.id, user_id=creator_id, is_admin=True))
    _log_activity(storage, creator_id, "group_created", group.id, "study_group", name=group.name)
    return group


def join_group(storage: IStorage, group: StudyGroup, user_id: int, is_admin: bool = False) -> StudyGroupMember:
    member = storage.add_study_group_member(
        InsertStudyGroupMember(group_id=group.id, user_id=user_id, is_admin=is_admin)
    )
    _log_activity(storage, user_id, "group_joined", group.id, "study_group", name=group.name)
    return member


def is_member(storage: IStorage, group_id: int, user_id: int) -> bool:
    return any(m.user_id == user_id for m in storage.get_study_group_members(group_id))


def is_admin(storage: IStorage, group_id: int, user_id: int) -> bool:
    return any(m.user_id == user_id and m.is_admin for m in storage.get_study_group_members(group_id))


def schedule_session(storage: IStorage, group: StudyGroup, creator_id: int, payload: StudySessionIn) -> StudySession:
    session = storage.create_study_session(
        InsertStudySession(**payload.model_dump(), group_id=group.id, created_by=creator_id)
    )
    _log_activity(
        storage, creator_id, "session_created", session.id, "study_session",
        title=session.title, group_name=group.name,
    )
    return session


def sessions_for_user(storage: IStorage, user_id: int) -> List[StudySession]:
    """Every session of every group the user belongs to, newest start first."""
    sessions: List[StudySession] = []
    for group in storage.get_user_study_groups(user_id):
        sessions.extend(storage.get_study_sessions(group.id))
    sessions.sort(key=lambda s: s.start_time, reverse=True)
    return sessions
