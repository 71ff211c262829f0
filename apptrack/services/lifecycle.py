"""Application lifecycle: status state machine plus remote/local store selection.

Every operation reads the identity from the session at call time. Ephemeral
(demo) identities only ever touch the local store. Other identities go to
the remote store first; when it is unreachable the change is written to the
local store instead and the result is flagged as degraded. Local copies of a
record shadow the remote row until the next successful remote write.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from pydantic import ValidationError

from apptrack.config import settings
from apptrack.errors import (
    ApplicationNotFoundError,
    MalformedLocalCacheError,
    MutationInFlightError,
    RemoteUnavailableError,
    ValidationFailedError,
)
from apptrack.models.application import (
    Application,
    ApplicationDraft,
    ApplicationStats,
    ApplicationStatus,
    ApplicationUpdate,
    ListResult,
    MutationResult,
    PersistedIn,
    normalize_status,
    utcnow,
)
from apptrack.models.identity import Identity
from apptrack.services.local_store import LocalStore
from apptrack.services.remote_store import RemoteStore
from apptrack.services.session import SessionContext

logger = logging.getLogger(__name__)

# Forward table used by advance(). set_status() ignores it.
NEXT_STATUS = {
    ApplicationStatus.DRAFT: ApplicationStatus.APPLIED,
    ApplicationStatus.APPLIED: ApplicationStatus.INTERVIEW,
    ApplicationStatus.INTERVIEW: ApplicationStatus.ACCEPTED,
    ApplicationStatus.ACCEPTED: ApplicationStatus.ACCEPTED,
    ApplicationStatus.REJECTED: ApplicationStatus.APPLIED,
}

SAVED_LOCALLY = "Saved locally: the remote store is unavailable"
DELETED_LOCALLY = (
    "Deleted locally: the remote copy is removed once the remote store is reachable"
)
SHOWING_LOCAL = "Showing locally saved applications: the remote store is unavailable"

# Fields that an update may set back to None.
_CLEARABLE_FIELDS = {"interview_date", "interview_type", "interview_status", "interview_notes"}
# Columns never sent in a PATCH.
_IMMUTABLE_COLUMNS = ("id", "user_id", "created_at")


def next_status(status: ApplicationStatus) -> ApplicationStatus:
    return NEXT_STATUS[status]


class InFlightGuard:
    """Rejects a second mutation on a record while the first is outstanding."""

    def __init__(self) -> None:
        self._ids: set[str] = set()

    def is_held(self, application_id: str) -> bool:
        return application_id in self._ids

    @contextmanager
    def hold(self, application_id: str) -> Iterator[None]:
        if application_id in self._ids:
            raise MutationInFlightError(application_id)
        self._ids.add(application_id)
        try:
            yield
        finally:
            self._ids.discard(application_id)


class ApplicationLifecycleManager:
    def __init__(
        self,
        session: SessionContext,
        remote: RemoteStore,
        local: LocalStore,
        guard: InFlightGuard | None = None,
        table: str | None = None,
        cache_key: str | None = None,
    ) -> None:
        self._session = session
        self._remote = remote
        self._local = local
        self._guard = guard or InFlightGuard()
        self._table = table or settings.applications_table
        self._cache_key = cache_key or settings.local_cache_key
        self._unsubscribe = session.subscribe(self._on_identity_change)

    def close(self) -> None:
        self._unsubscribe()

    def _on_identity_change(self, old: Identity | None, new: Identity | None) -> None:
        logger.info(
            "Session identity changed: %s -> %s",
            old.user_id if old else None,
            new.user_id if new else None,
        )

    # -- local fallback store -------------------------------------------------

    def local_key(self, owner_id: str) -> str:
        return f"{self._cache_key}:{owner_id}"

    def _read_local(self, owner_id: str) -> list[Application]:
        key = self.local_key(owner_id)
        try:
            items = self._local.read_array(key)
        except MalformedLocalCacheError:
            logger.error("Local cache %s is corrupt; treating it as empty", key)
            return []

        apps = []
        for item in items:
            try:
                app = Application.model_validate(item)
            except ValidationError as e:
                logger.warning("Skipping unreadable cached application in %s: %s", key, e)
                continue
            if app.owner_id == owner_id:
                apps.append(app)
        return apps

    def _write_local(self, owner_id: str, apps: list[Application]) -> None:
        self._local.write_array(self.local_key(owner_id), [a.to_cache() for a in apps])

    def _save_local(self, app: Application) -> Application:
        app = app.model_copy(update={"local_only": True})
        apps = [a for a in self._read_local(app.owner_id) if a.id != app.id]
        apps.insert(0, app)
        self._write_local(app.owner_id, apps)
        return app

    def _discard_local(self, owner_id: str, application_id: str) -> bool:
        apps = self._read_local(owner_id)
        remaining = [a for a in apps if a.id != application_id]
        if len(remaining) == len(apps):
            return False
        self._write_local(owner_id, remaining)
        return True

    def _find_local(self, owner_id: str, application_id: str) -> Application | None:
        for app in self._read_local(owner_id):
            if app.id == application_id:
                return app
        return None

    # -- deferred deletes -----------------------------------------------------

    def tombstone_key(self, owner_id: str) -> str:
        return f"{self.local_key(owner_id)}:deleted"

    def _read_tombstones(self, owner_id: str) -> set[str]:
        key = self.tombstone_key(owner_id)
        try:
            items = self._local.read_array(key)
        except MalformedLocalCacheError:
            logger.error("Deleted-id list %s is corrupt; dropping it", key)
            return set()
        return {item["id"] for item in items if isinstance(item.get("id"), str)}

    def _write_tombstones(self, owner_id: str, ids: set[str]) -> None:
        key = self.tombstone_key(owner_id)
        if ids:
            self._local.write_array(key, [{"id": i} for i in sorted(ids)])
        else:
            self._local.remove(key)

    async def _flush_tombstones(self, owner_id: str) -> None:
        """Replay deletes that could not reach the remote store earlier."""
        pending = self._read_tombstones(owner_id)
        if not pending:
            return
        try:
            await self._remote.delete(
                self._table, {"id": sorted(pending), "user_id": owner_id}
            )
        except RemoteUnavailableError as e:
            logger.warning("%d deferred deletes still pending: %s", len(pending), e)
            return
        logger.info("Replayed deferred deletes: %s", ", ".join(sorted(pending)))
        self._write_tombstones(owner_id, set())

    # -- remote rows ----------------------------------------------------------

    def _parse_rows(self, rows: list[dict[str, Any]], owner_id: str) -> list[Application]:
        apps = []
        for row in rows:
            try:
                app = Application.model_validate(row)
            except ValidationError as e:
                logger.warning("Skipping unreadable remote row %s: %s", row.get("id"), e)
                continue
            if app.owner_id != owner_id:
                logger.warning("Dropping row %s owned by another identity", app.id)
                continue
            apps.append(app)
        return apps

    @staticmethod
    def _newest_first(apps: list[Application]) -> list[Application]:
        return sorted(apps, key=lambda a: a.created_at, reverse=True)

    async def _load(self, identity: Identity, application_id: str) -> tuple[Application, PersistedIn]:
        """Find a record in the store that currently owns it.

        Raises RemoteUnavailableError when the remote store cannot be asked
        and no local copy exists; the record may well exist.
        """
        if application_id in self._read_tombstones(identity.user_id):
            raise ApplicationNotFoundError(application_id)
        shadow = self._find_local(identity.user_id, application_id)
        if shadow is not None:
            return shadow, PersistedIn.LOCAL
        if identity.is_ephemeral:
            raise ApplicationNotFoundError(application_id)

        try:
            rows = await self._remote.select(
                self._table,
                filters={"id": application_id, "user_id": identity.user_id},
                limit=1,
            )
        except RemoteUnavailableError:
            logger.warning("Remote lookup of %s failed and no local copy exists", application_id)
            raise

        apps = self._parse_rows(rows, identity.user_id)
        if not apps:
            raise ApplicationNotFoundError(application_id)
        return apps[0], PersistedIn.REMOTE

    async def _persist(self, identity: Identity, app: Application, *, is_new: bool = False) -> MutationResult:
        if identity.is_ephemeral:
            return MutationResult(application=self._save_local(app), persisted=PersistedIn.LOCAL)

        row = app.to_row()
        try:
            if is_new:
                saved_row = await self._remote.insert(self._table, row)
            else:
                patch = {k: v for k, v in row.items() if k not in _IMMUTABLE_COLUMNS}
                updated = await self._remote.update(
                    self._table, patch, {"id": app.id, "user_id": app.owner_id}
                )
                if updated:
                    saved_row = updated[0]
                else:
                    # Record so far only existed locally; push it up now.
                    saved_row = await self._remote.insert(self._table, row)
        except RemoteUnavailableError as e:
            logger.warning("Remote write of %s failed, saving locally: %s", app.id, e)
            return MutationResult(
                application=self._save_local(app),
                persisted=PersistedIn.LOCAL,
                degraded=True,
                warning=SAVED_LOCALLY,
            )

        try:
            saved = Application.model_validate(saved_row)
        except ValidationError:
            saved = app.model_copy(update={"local_only": False})
        self._discard_local(app.owner_id, app.id)
        return MutationResult(application=saved, persisted=PersistedIn.REMOTE)

    @staticmethod
    def _touch(app: Application, changes: dict[str, Any]) -> Application:
        data = app.to_cache()
        data.update(changes)
        data["updated_at"] = utcnow()
        return Application.model_validate(data)

    # -- operations -----------------------------------------------------------

    async def list_applications(self, owner_id: str | None = None) -> ListResult:
        """List an identity's applications, newest first.

        Another identity's collection only exposes its public records.
        Remote failures fall back to the local cache with a warning.
        """
        identity = self._session.require_identity()
        owner_id = owner_id or identity.user_id
        own = owner_id == identity.user_id
        local_apps = self._read_local(owner_id) if own else []

        if identity.is_ephemeral:
            return ListResult(
                applications=self._newest_first(local_apps), source=PersistedIn.LOCAL
            )

        deleted: set[str] = set()
        if own:
            await self._flush_tombstones(owner_id)
            deleted = self._read_tombstones(owner_id)

        filters: dict[str, Any] = {"user_id": owner_id}
        if not own:
            filters["is_public"] = True
        try:
            rows = await self._remote.select(self._table, filters=filters, order="created_at.desc")
        except RemoteUnavailableError as e:
            logger.warning("Listing %s from local cache: %s", owner_id, e)
            return ListResult(
                applications=self._newest_first(local_apps),
                source=PersistedIn.LOCAL,
                warning=SHOWING_LOCAL,
            )

        merged = {a.id: a for a in self._parse_rows(rows, owner_id)}
        merged.update({a.id: a for a in local_apps})
        apps = [a for a in merged.values() if (own or a.is_public) and a.id not in deleted]
        return ListResult(applications=self._newest_first(apps), source=PersistedIn.REMOTE)

    async def create(self, draft: ApplicationDraft) -> MutationResult:
        missing = draft.missing_fields()
        if missing:
            raise ValidationFailedError(missing)

        identity = self._session.require_identity()
        now = utcnow()
        fields = draft.model_dump()
        for name in ApplicationDraft.REQUIRED_FIELDS:
            fields[name] = fields[name].strip()
        app = Application(
            owner_id=identity.user_id,
            status=ApplicationStatus.DRAFT,
            created_at=now,
            updated_at=now,
            **fields,
        )

        with self._guard.hold(app.id):
            result = await self._persist(identity, app, is_new=True)
        logger.info(
            "Created application %s (%s at %s) in %s store",
            app.id, app.position, app.company, result.persisted.value,
        )
        return result

    async def advance(self, application_id: str) -> MutationResult:
        """Move a record one step along NEXT_STATUS.

        Advancing an accepted record is a no-op: nothing is written and
        updated_at is left alone.
        """
        identity = self._session.require_identity()
        with self._guard.hold(application_id):
            app, source = await self._load(identity, application_id)
            target = next_status(app.status)
            if target == app.status:
                return MutationResult(application=app, persisted=source, changed=False)
            result = await self._persist(identity, self._touch(app, {"status": target}))
        logger.info("Advanced %s: %s -> %s", application_id, app.status.value, target.value)
        return result

    async def set_status(self, application_id: str, status: ApplicationStatus | str) -> MutationResult:
        """Overwrite the status with any value, regardless of the current one."""
        try:
            target = normalize_status(status)
        except ValueError:
            raise ValidationFailedError(["status"]) from None

        identity = self._session.require_identity()
        with self._guard.hold(application_id):
            app, _ = await self._load(identity, application_id)
            result = await self._persist(identity, self._touch(app, {"status": target}))
        logger.info("Set status of %s: %s -> %s", application_id, app.status.value, target.value)
        return result

    async def update_fields(
        self, application_id: str, changes: ApplicationUpdate | dict[str, Any]
    ) -> MutationResult:
        if isinstance(changes, dict):
            try:
                changes = ApplicationUpdate.model_validate(changes)
            except ValidationError as e:
                raise ValidationFailedError([".".join(map(str, err["loc"])) for err in e.errors()]) from e
        updates = {
            k: v
            for k, v in changes.model_dump(exclude_unset=True).items()
            if v is not None or k in _CLEARABLE_FIELDS
        }
        for name in ApplicationDraft.REQUIRED_FIELDS:
            if isinstance(updates.get(name), str):
                updates[name] = updates[name].strip()

        identity = self._session.require_identity()
        with self._guard.hold(application_id):
            app, source = await self._load(identity, application_id)
            if not updates:
                return MutationResult(application=app, persisted=source, changed=False)

            updated = self._touch(app, updates)
            blank = [n for n in ApplicationDraft.REQUIRED_FIELDS if not getattr(updated, n).strip()]
            if blank:
                raise ValidationFailedError(blank)
            result = await self._persist(identity, updated)
        logger.info("Updated %s fields on %s", ", ".join(sorted(updates)), application_id)
        return result

    async def delete(self, application_id: str) -> MutationResult:
        """Delete a record. Unknown ids succeed with changed=False.

        When the remote store is down the id is remembered locally: it is
        hidden from list and lookups, and the remote delete is replayed by
        the next list call that reaches the remote store.
        """
        identity = self._session.require_identity()
        owner_id = identity.user_id
        with self._guard.hold(application_id):
            removed_local = self._discard_local(owner_id, application_id)
            if identity.is_ephemeral:
                return MutationResult(persisted=PersistedIn.LOCAL, changed=removed_local)

            tombstones = self._read_tombstones(owner_id)
            try:
                rows = await self._remote.delete(
                    self._table, {"id": application_id, "user_id": owner_id}
                )
            except RemoteUnavailableError as e:
                logger.warning("Remote delete of %s failed, deferring it: %s", application_id, e)
                tombstones.add(application_id)
                self._write_tombstones(owner_id, tombstones)
                return MutationResult(
                    persisted=PersistedIn.LOCAL,
                    degraded=True,
                    changed=True,
                    warning=DELETED_LOCALLY,
                )
            if application_id in tombstones:
                tombstones.discard(application_id)
                self._write_tombstones(owner_id, tombstones)
        logger.info("Deleted application %s", application_id)
        return MutationResult(persisted=PersistedIn.REMOTE, changed=bool(rows) or removed_local)

    async def stats(self, owner_id: str | None = None) -> ApplicationStats:
        apps = (await self.list_applications(owner_id)).applications
        counts = {status.value: 0 for status in ApplicationStatus}
        for app in apps:
            counts[app.status.value] += 1
        return ApplicationStats(total=len(apps), **counts)

    async def copy_from(self, source: Application) -> MutationResult:
        """Quick-add another identity's application into the session's collection.

        Interview details are not copied; the copy starts as a public draft.
        """
        title = source.title or f"{source.position or 'Position'} at {source.company or 'Company'}"
        draft = ApplicationDraft(
            title=title,
            company=source.company,
            position=source.position,
            job_description=source.job_description,
            job_link=source.job_link,
            cv_content=source.cv_content,
            cv_data=source.cv_data,
            is_public=True,
            allow_comments=True,
        )
        return await self.create(draft)
