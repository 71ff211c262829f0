"""Public application feed, search, leaderboard and quick-add copies."""

from __future__ import annotations

import logging
from collections import Counter

from pydantic import ValidationError
from rapidfuzz import fuzz

from apptrack.config import settings
from apptrack.errors import ApplicationNotFoundError
from apptrack.models.application import Application, MutationResult, normalize_status
from apptrack.models.explore import LeaderboardEntry, PublicApplication
from apptrack.services.lifecycle import ApplicationLifecycleManager
from apptrack.services.remote_store import RemoteStore

logger = logging.getLogger(__name__)


def matches_search(app: PublicApplication, term: str, threshold: int | None = None) -> bool:
    """Case-insensitive match against company, position, title and owner names.

    Substrings score 100 under partial_ratio, so plain containment always matches.
    """
    term = term.strip().lower()
    if not term:
        return True
    threshold = settings.search_match_threshold if threshold is None else threshold
    for value in (app.company, app.position, app.title, app.username, app.display_name):
        if value and fuzz.partial_ratio(term, value.lower()) >= threshold:
            return True
    return False


def filter_applications(
    apps: list[PublicApplication],
    search: str | None = None,
    status: str | None = None,
) -> list[PublicApplication]:
    """Apply the search box and status dropdown. ``status='all'`` disables the filter."""
    wanted = None
    if status and status != "all":
        wanted = normalize_status(status)
    return [
        app
        for app in apps
        if (wanted is None or app.status == wanted) and matches_search(app, search or "")
    ]


class ExploreService:
    def __init__(self, remote: RemoteStore) -> None:
        self._remote = remote

    async def _profiles(self, user_ids: list[str]) -> dict[str, dict]:
        if not user_ids:
            return {}
        rows = await self._remote.select(
            settings.profiles_table,
            filters={"user_id": user_ids},
            columns="user_id,username,display_name",
        )
        return {row["user_id"]: row for row in rows if "user_id" in row}

    async def public_feed(
        self, search: str | None = None, status: str | None = None
    ) -> list[PublicApplication]:
        """Public applications from every identity, newest first."""
        rows = await self._remote.select(
            settings.applications_table,
            filters={"is_public": True},
            order="created_at.desc",
        )
        apps: list[Application] = []
        for row in rows:
            try:
                app = Application.model_validate(row)
            except ValidationError as e:
                logger.warning("Skipping unreadable public row %s: %s", row.get("id"), e)
                continue
            if app.is_public:
                apps.append(app)

        profiles = await self._profiles(sorted({a.owner_id for a in apps}))
        decorated = []
        for app in apps:
            profile = profiles.get(app.owner_id, {})
            decorated.append(
                PublicApplication(
                    **app.to_cache(),
                    username=profile.get("username") or "Unknown User",
                    display_name=profile.get("display_name") or "Unknown User",
                )
            )
        return filter_applications(decorated, search, status)

    async def leaderboard(self, size: int | None = None) -> list[LeaderboardEntry]:
        """Identities ranked by number of public applications."""
        size = size or settings.leaderboard_size
        rows = await self._remote.select(
            settings.applications_table, filters={"is_public": True}, columns="user_id"
        )
        counts = Counter(row["user_id"] for row in rows if row.get("user_id"))
        ranked = sorted(counts.items(), key=lambda item: (-item[1], item[0]))[:size]
        profiles = await self._profiles([user_id for user_id, _ in ranked])

        entries = []
        for rank, (user_id, count) in enumerate(ranked, start=1):
            profile = profiles.get(user_id, {})
            entries.append(
                LeaderboardEntry(
                    user_id=user_id,
                    username=profile.get("username") or "Unknown User",
                    display_name=profile.get("display_name") or "Unknown User",
                    application_count=count,
                    rank=rank,
                )
            )
        return entries

    async def copy_public(
        self, manager: ApplicationLifecycleManager, application_id: str
    ) -> MutationResult:
        rows = await self._remote.select(
            settings.applications_table,
            filters={"id": application_id, "is_public": True},
            limit=1,
        )
        if not rows:
            raise ApplicationNotFoundError(application_id)
        try:
            source = Application.model_validate(rows[0])
        except ValidationError as e:
            logger.warning("Public row %s is unreadable, not copying: %s", application_id, e)
            raise ApplicationNotFoundError(application_id) from e
        logger.info("Copying public application %s from %s", source.id, source.owner_id)
        return await manager.copy_from(source)
