"""Tests for the public feed, search, leaderboard and quick-add copy."""

from __future__ import annotations

import pytest

from apptrack.errors import ApplicationNotFoundError
from apptrack.models.application import ApplicationStatus
from apptrack.models.explore import PublicApplication
from apptrack.services.explore_service import ExploreService, filter_applications, matches_search


def _row(app_id, user_id, created_at, public=True, **fields):
    row = {
        "id": app_id,
        "user_id": user_id,
        "title": f"{app_id} title",
        "company": "Acme",
        "position": "Engineer",
        "is_public": public,
        "created_at": created_at,
    }
    row.update(fields)
    return row


@pytest.fixture
def seeded(remote):
    remote.tables["applications"].extend([
        _row("a1", "U2", "2026-01-01T00:00:00+00:00", company="Acme Corp", status="applied"),
        _row("a2", "U2", "2026-01-03T00:00:00+00:00", company="Globex", status="interviewing",
             interview_type="video", interview_notes="Went well"),
        _row("a3", "U3", "2026-01-02T00:00:00+00:00", company="Initech", status="rejected"),
        _row("a4", "U3", "2026-01-04T00:00:00+00:00", public=False, company="Secret"),
        _row("a5", "U4", "2026-01-05T00:00:00+00:00", company="Umbrella"),
    ])
    remote.tables["user_profiles"].extend([
        {"user_id": "U2", "username": "ada", "display_name": "Ada L."},
        {"user_id": "U3", "username": "grace", "display_name": "Grace H."},
    ])
    return remote


def _public(**fields):
    base = {"user_id": "U9", "title": "Backend role", "company": "Acme", "position": "Engineer"}
    base.update(fields)
    return PublicApplication.model_validate(base)


def test_matches_search_is_case_insensitive_substring():
    app = _public(company="Acme Corp", display_name="Ada Lovelace")
    assert matches_search(app, "acme")
    assert matches_search(app, "LOVELACE")
    assert matches_search(app, "")
    assert not matches_search(app, "zzzz")


def test_filter_applications_by_status():
    apps = [_public(status="applied"), _public(status="interviewing"), _public(status="draft")]

    assert len(filter_applications(apps, status="all")) == 3
    assert [a.status for a in filter_applications(apps, status="interview")] == [
        ApplicationStatus.INTERVIEW
    ]
    with pytest.raises(ValueError):
        filter_applications(apps, status="ghosted")


@pytest.mark.asyncio
async def test_public_feed_newest_first_with_names(seeded):
    feed = await ExploreService(seeded).public_feed()

    assert [a.id for a in feed] == ["a5", "a2", "a3", "a1"]
    by_id = {a.id: a for a in feed}
    assert by_id["a2"].display_name == "Ada L."
    assert by_id["a3"].username == "grace"
    assert by_id["a5"].username == "Unknown User"


@pytest.mark.asyncio
async def test_public_feed_search_and_status(seeded):
    explore = ExploreService(seeded)

    assert [a.id for a in await explore.public_feed(search="globex")] == ["a2"]
    assert [a.id for a in await explore.public_feed(search="grace")] == ["a3"]
    assert [a.id for a in await explore.public_feed(status="rejected")] == ["a3"]
    assert await explore.public_feed(search="secret") == []


@pytest.mark.asyncio
async def test_leaderboard_ranks_by_public_count(seeded):
    board = await ExploreService(seeded).leaderboard()

    assert [(e.user_id, e.application_count, e.rank) for e in board] == [
        ("U2", 2, 1),
        ("U3", 1, 2),
        ("U4", 1, 3),
    ]
    assert board[0].display_name == "Ada L."
    assert board[2].display_name == "Unknown User"


@pytest.mark.asyncio
async def test_leaderboard_size_limit(seeded):
    board = await ExploreService(seeded).leaderboard(size=1)
    assert [e.user_id for e in board] == ["U2"]


@pytest.mark.asyncio
async def test_copy_public_creates_fresh_draft(seeded, manager):
    result = await ExploreService(seeded).copy_public(manager, "a2")

    copy = result.application
    assert copy.id != "a2"
    assert copy.owner_id == "U1"
    assert copy.status == ApplicationStatus.DRAFT
    assert copy.company == "Globex"
    assert copy.is_public
    assert copy.allow_comments
    assert copy.interview_type is None
    assert copy.interview_notes is None

    mine = (await manager.list_applications()).applications
    assert [a.id for a in mine] == [copy.id]


@pytest.mark.asyncio
async def test_copy_private_application_is_not_found(seeded, manager):
    with pytest.raises(ApplicationNotFoundError):
        await ExploreService(seeded).copy_public(manager, "a4")


@pytest.mark.asyncio
async def test_copy_unreadable_public_row_is_not_found(seeded, manager):
    seeded.tables["applications"].append(
        _row("bad", "U5", "2026-01-06T00:00:00+00:00", status="ghosted")
    )
    with pytest.raises(ApplicationNotFoundError):
        await ExploreService(seeded).copy_public(manager, "bad")
