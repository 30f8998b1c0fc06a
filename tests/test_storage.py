"""Store contract, run against the in-memory and the database backend."""
from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta, timezone

import pytest

from conftest import make_group, make_paper, make_post, make_session, make_user
from studysphere.models.schemas import (
    DiscussionPostFilter,
    InsertActivity,
    InsertDiscussionReply,
    InsertStudyGroupMember,
    PaperFilter,
    StudyGroupFilter,
    UserUpdate,
)
from studysphere.storage.database import DatabaseStorage
from studysphere.storage.memory import MemStorage


def _member(storage, group_id, user_id, is_admin=False):
    return storage.add_study_group_member(
        InsertStudyGroupMember(group_id=group_id, user_id=user_id, is_admin=is_admin)
    )


def test_ids_strictly_increase_per_entity_type(storage):
    first = make_paper(storage)
    second = make_paper(storage, title="Calculus II Final")
    post = make_post(storage)
    assert first.id == 1
    assert second.id > first.id
    # counters are independent per type
    assert post.id == 1


def test_get_returns_what_create_returned_and_none_for_unknown_ids(storage):
    paper = make_paper(storage)
    assert storage.get_paper(paper.id) == paper
    assert storage.get_paper(999) is None
    assert storage.get_user(42) is None
    assert storage.get_discussion_post(7) is None
    assert storage.get_study_group(3) is None
    assert storage.get_study_session(3) is None


def test_returned_records_are_copies(storage):
    post = make_post(storage, tags=["calculus"])
    post.tags.append("mutated")
    post.votes = 100
    stored = storage.get_discussion_post(post.id)
    assert stored.tags == ["calculus"]
    assert stored.votes == 0


def test_users_are_found_case_insensitively(storage):
    user = make_user(storage, "Ada", email="Ada@Uni.edu")
    assert user.points == 0
    assert storage.get_user_by_username("aDA").id == user.id
    assert storage.get_user_by_email("ada@uni.EDU").id == user.id
    assert storage.get_user_by_username("grace") is None


def test_user_lookups_fold_non_ascii_case(storage):
    user = make_user(storage, "Ödön", email="odon@uni.edu")
    assert storage.get_user_by_username("ödön").id == user.id
    assert storage.get_user_by_username("ÖDÖN").id == user.id
    assert storage.get_user_by_email("ODON@UNI.EDU").id == user.id


def test_changed_email_is_found_by_its_new_address(storage):
    user = make_user(storage)
    storage.update_user(user.id, UserUpdate(email="Lovelace@Uni.edu"))
    assert storage.get_user_by_email("lovelace@uni.edu").id == user.id
    assert storage.get_user_by_email("ada@uni.edu") is None


def test_store_does_not_enforce_username_uniqueness(storage):
    make_user(storage, "ada")
    dup = make_user(storage, "ada", email="other@uni.edu")
    assert dup.id == 2


def test_update_user_replaces_only_given_fields(storage):
    user = make_user(storage)
    updated = storage.update_user(user.id, UserUpdate(bio="Maths nerd"))
    assert updated.bio == "Maths nerd"
    assert updated.display_name == user.display_name
    assert updated.created_at == user.created_at
    assert storage.get_user(user.id).bio == "Maths nerd"
    assert storage.update_user(999, UserUpdate(bio="x")) is None


def test_update_user_clears_optional_fields_set_to_none(storage):
    user = make_user(storage)
    storage.update_user(user.id, UserUpdate(bio="Maths nerd", year_of_study=2))
    cleared = storage.update_user(user.id, UserUpdate(bio=None, year_of_study=None))
    assert cleared.bio is None
    assert cleared.year_of_study is None
    assert cleared.display_name == user.display_name


def test_list_without_filter_returns_everything_in_creation_order(storage):
    papers = [make_paper(storage, title=f"Paper {i}") for i in range(3)]
    assert [p.id for p in storage.get_papers()] == [p.id for p in papers]
    assert [p.id for p in storage.get_papers(PaperFilter())] == [p.id for p in papers]


def test_filters_match_every_given_field_exactly(storage):
    a = make_paper(storage, course="MATH101", year=2022)
    b = make_paper(storage, course="MATH101", year=2023)
    make_paper(storage, course="PHYS201", year=2023)

    assert [p.id for p in storage.get_papers(PaperFilter(course="MATH101"))] == [a.id, b.id]
    assert [p.id for p in storage.get_papers(PaperFilter(course="MATH101", year=2023))] == [b.id]
    # no substring or case folding at this layer
    assert storage.get_papers(PaperFilter(course="math101")) == []
    assert storage.get_papers(PaperFilter(course="MATH")) == []


def test_post_and_group_filters(storage):
    p1 = make_post(storage, author_id=1, course="MATH101")
    make_post(storage, author_id=2, course="MATH101")
    assert [p.id for p in storage.get_discussion_posts(DiscussionPostFilter(author_id=1))] == [p1.id]

    g1 = make_group(storage, creator_id=1, course="CS50")
    make_group(storage, creator_id=2, course="MATH101")
    assert [g.id for g in storage.get_study_groups(StudyGroupFilter(course="CS50"))] == [g1.id]


def test_increment_downloads(storage):
    paper = make_paper(storage)
    for _ in range(3):
        storage.increment_paper_downloads(paper.id)
    assert storage.get_paper(paper.id).downloads == 3


def test_increment_downloads_on_missing_paper_changes_nothing(storage):
    paper = make_paper(storage)
    assert storage.increment_paper_downloads(paper.id + 1) is None
    assert storage.get_papers() == [paper]


def test_votes_are_unbounded_and_reversible(storage):
    post = make_post(storage)
    assert storage.vote_discussion_post(post.id, 1).votes == 1
    assert storage.vote_discussion_post(post.id, -1).votes == 0
    assert storage.vote_discussion_post(post.id, -1).votes == -1
    assert storage.vote_discussion_post(999, 1) is None


@pytest.fixture(params=["memory", "database", "database-file"])
def threaded_storage(request, tmp_path):
    if request.param == "memory":
        store = MemStorage()
    elif request.param == "database":
        store = DatabaseStorage.from_url("sqlite:///:memory:")
    else:
        store = DatabaseStorage.from_url(f"sqlite:///{tmp_path / 'studysphere.db'}")
    yield store
    store.close()


def test_counters_do_not_lose_concurrent_updates(threaded_storage):
    paper = make_paper(threaded_storage)
    post = make_post(threaded_storage)
    reply = threaded_storage.create_discussion_reply(
        InsertDiscussionReply(post_id=post.id, author_id=1, content="Epsilon-delta.")
    )

    def hammer(_):
        for _ in range(25):
            threaded_storage.increment_paper_downloads(paper.id)
            threaded_storage.vote_discussion_post(post.id, 1)
            threaded_storage.vote_discussion_reply(reply.id, -1)

    with ThreadPoolExecutor(max_workers=8) as pool:
        list(pool.map(hammer, range(8)))

    assert threaded_storage.get_paper(paper.id).downloads == 200
    assert threaded_storage.get_discussion_post(post.id).votes == 200
    assert threaded_storage.get_discussion_replies(post.id)[0].votes == -200


def test_replies_belong_to_their_post(storage):
    post = make_post(storage)
    other = make_post(storage, title="Other")
    r1 = storage.create_discussion_reply(InsertDiscussionReply(post_id=post.id, author_id=2, content="Epsilon-delta."))
    storage.create_discussion_reply(InsertDiscussionReply(post_id=other.id, author_id=2, content="Unrelated"))
    r3 = storage.create_discussion_reply(InsertDiscussionReply(post_id=post.id, author_id=3, content="Also graphs."))

    assert [r.id for r in storage.get_discussion_replies(post.id)] == [r1.id, r3.id]
    assert storage.vote_discussion_reply(r1.id, -1).votes == -1
    assert storage.vote_discussion_reply(999, 1) is None


def test_membership_add_and_remove(storage):
    group = make_group(storage, creator_id=1)
    _member(storage, group.id, 1, is_admin=True)
    _member(storage, group.id, 2)
    assert len(storage.get_study_group_members(group.id)) == 2

    assert storage.remove_study_group_member(group.id, 2) is True
    members = storage.get_study_group_members(group.id)
    assert [(m.user_id, m.is_admin) for m in members] == [(1, True)]


def test_remove_missing_member_reports_false(storage):
    group = make_group(storage)
    _member(storage, group.id, 1)
    assert storage.remove_study_group_member(group.id, 5) is False
    assert storage.remove_study_group_member(group.id + 1, 1) is False
    assert len(storage.get_study_group_members(group.id)) == 1


def test_duplicate_membership_rows_are_removed_one_at_a_time(storage):
    group = make_group(storage)
    _member(storage, group.id, 2)
    _member(storage, group.id, 2)
    assert storage.remove_study_group_member(group.id, 2) is True
    assert len(storage.get_study_group_members(group.id)) == 1


def test_member_ids_are_not_reused_after_removal(storage):
    group = make_group(storage)
    _member(storage, group.id, 1)
    second = _member(storage, group.id, 2)
    storage.remove_study_group_member(group.id, 2)
    third = _member(storage, group.id, 3)
    assert third.id > second.id


def test_user_study_groups(storage):
    g1 = make_group(storage, name="One")
    make_group(storage, name="Two")
    g3 = make_group(storage, name="Three")
    _member(storage, g3.id, 7)
    _member(storage, g1.id, 7)
    _member(storage, g1.id, 7)

    assert [g.id for g in storage.get_user_study_groups(7)] == [g1.id, g3.id]
    assert storage.get_user_study_groups(8) == []


def test_upcoming_sessions_skip_the_past_and_sort_ascending(storage):
    mine = make_group(storage, name="Mine")
    theirs = make_group(storage, name="Theirs")
    _member(storage, mine.id, 1)

    later = make_session(storage, mine.id, starts_in=timedelta(days=3), title="later")
    make_session(storage, mine.id, starts_in=timedelta(days=-1), title="past")
    sooner = make_session(storage, mine.id, starts_in=timedelta(hours=2), title="sooner")
    make_session(storage, theirs.id, starts_in=timedelta(days=1), title="not mine")

    upcoming = storage.get_upcoming_study_sessions(1)
    assert [s.id for s in upcoming] == [sooner.id, later.id]
    assert [s.id for s in storage.get_study_sessions(mine.id)] == [later.id, later.id + 1, sooner.id]


def test_upcoming_sessions_respect_explicit_now(storage):
    group = make_group(storage)
    _member(storage, group.id, 1)
    session = make_session(storage, group.id, starts_in=timedelta(days=2))

    future = datetime.now(timezone.utc) + timedelta(days=5)
    assert storage.get_upcoming_study_sessions(1, now=future) == []
    assert storage.get_upcoming_study_sessions(1)[0].start_time == session.start_time


def test_upcoming_sessions_accept_a_naive_now_as_utc(storage):
    group = make_group(storage)
    _member(storage, group.id, 1)
    session = make_session(storage, group.id, starts_in=timedelta(days=2))

    past = datetime(2020, 1, 1)
    assert [s.id for s in storage.get_upcoming_study_sessions(1, now=past)] == [session.id]
    far = (datetime.now(timezone.utc) + timedelta(days=5)).replace(tzinfo=None)
    assert storage.get_upcoming_study_sessions(1, now=far) == []


def test_activity_feeds_are_newest_first_and_limited(storage):
    for i in range(4):
        storage.create_activity(InsertActivity(
            user_id=1 if i % 2 == 0 else 2,
            type="post_created",
            target_id=i,
            target_type="discussion_post",
            metadata={"title": f"post {i}"},
        ))

    recent = storage.get_recent_activities()
    assert [a.target_id for a in recent] == [3, 2, 1, 0]
    assert [a.target_id for a in storage.get_recent_activities(limit=2)] == [3, 2]
    assert [a.target_id for a in storage.get_user_activities(1)] == [2, 0]
    assert [a.target_id for a in storage.get_user_activities(2, limit=1)] == [3]
    assert recent[0].metadata == {"title": "post 3"}
    # a falsy limit means no limit
    assert len(storage.get_recent_activities(limit=0)) == 4


def test_scenario_group_membership(storage):
    u1 = make_user(storage, "ada")
    u2 = make_user(storage, "grace")
    group = make_group(storage, creator_id=u1.id)
    _member(storage, group.id, u1.id, is_admin=True)
    assert [(m.user_id, m.is_admin) for m in storage.get_study_group_members(group.id)] == [(u1.id, True)]

    _member(storage, group.id, u2.id)
    assert len(storage.get_study_group_members(group.id)) == 2

    storage.remove_study_group_member(group.id, u2.id)
    assert [m.user_id for m in storage.get_study_group_members(group.id)] == [u1.id]
