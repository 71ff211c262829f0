from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, ClassVar, Literal

from pydantic import BaseModel, Field, field_validator


class ApplicationStatus(str, Enum):
    DRAFT = "draft"
    APPLIED = "applied"
    INTERVIEW = "interview"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


# Labels written by older clients, migrated to the canonical set on read.
STATUS_ALIASES = {
    "pending": ApplicationStatus.DRAFT,
    "copied": ApplicationStatus.DRAFT,
    "interviewing": ApplicationStatus.INTERVIEW,
}


def normalize_status(value: Any) -> ApplicationStatus:
    """Map a raw status label (canonical or legacy alias) to ApplicationStatus."""
    if isinstance(value, ApplicationStatus):
        return value
    label = str(value).strip().lower()
    if label in STATUS_ALIASES:
        return STATUS_ALIASES[label]
    try:
        return ApplicationStatus(label)
    except ValueError:
        raise ValueError(f"Unknown application status: {value!r}") from None


class PersistedIn(str, Enum):
    REMOTE = "remote"
    LOCAL = "local"


InterviewType = Literal["phone", "video", "onsite", "technical", "behavioral", "final"]
InterviewStatus = Literal["scheduled", "completed", "cancelled", "rescheduled"]


def utcnow() -> str:
    return datetime.now(timezone.utc).isoformat()


class Application(BaseModel):
    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    owner_id: str = Field(alias="user_id")
    title: str = ""
    company: str = ""
    position: str = ""
    job_description: str = ""
    job_link: str = ""
    cv_content: str = ""
    cv_data: dict[str, Any] = Field(default_factory=dict)
    status: ApplicationStatus = ApplicationStatus.DRAFT
    is_public: bool = False
    allow_comments: bool = True
    interview_date: str | None = None
    interview_type: InterviewType | None = None
    interview_status: InterviewStatus | None = None
    interview_notes: str | None = None
    created_at: str = Field(default_factory=utcnow)
    updated_at: str = Field(default_factory=utcnow)
    local_only: bool = Field(False, description="Held only in the local fallback store")

    model_config = {"populate_by_name": True}

    @field_validator(
        "title", "company", "position", "job_description", "job_link", "cv_content",
        mode="before",
    )
    @classmethod
    def _none_to_empty(cls, v: Any) -> Any:
        return "" if v is None else v

    @field_validator("cv_data", mode="before")
    @classmethod
    def _none_to_dict(cls, v: Any) -> Any:
        return {} if v is None else v

    @field_validator("status", mode="before")
    @classmethod
    def _migrate_status(cls, v: Any) -> ApplicationStatus:
        return normalize_status(v)

    def to_row(self) -> dict[str, Any]:
        """Serialize for the remote store (``user_id`` column, no local marker)."""
        return self.model_dump(mode="json", by_alias=True, exclude={"local_only"})

    def to_cache(self) -> dict[str, Any]:
        """Serialize for the local fallback store."""
        return self.model_dump(mode="json")


class ApplicationDraft(BaseModel):
    """Fields supplied by the caller when creating an application."""

    title: str = ""
    company: str = ""
    position: str = ""
    job_description: str = ""
    job_link: str = ""
    cv_content: str = ""
    cv_data: dict[str, Any] = Field(default_factory=dict)
    is_public: bool = False
    allow_comments: bool = True

    REQUIRED_FIELDS: ClassVar[tuple[str, ...]] = ("title", "company", "position")

    def missing_fields(self) -> list[str]:
        return [name for name in self.REQUIRED_FIELDS if not getattr(self, name).strip()]


class ApplicationUpdate(BaseModel):
    """Partial field update. Identity and creation fields are not accepted."""

    title: str | None = None
    company: str | None = None
    position: str | None = None
    job_description: str | None = None
    job_link: str | None = None
    cv_content: str | None = None
    cv_data: dict[str, Any] | None = None
    is_public: bool | None = None
    allow_comments: bool | None = None
    interview_date: str | None = None
    interview_type: InterviewType | None = None
    interview_status: InterviewStatus | None = None
    interview_notes: str | None = None


class StatusChange(BaseModel):
    status: ApplicationStatus

    @field_validator("status", mode="before")
    @classmethod
    def _migrate_status(cls, v: Any) -> ApplicationStatus:
        return normalize_status(v)


class MutationResult(BaseModel):
    application: Application | None = None
    persisted: PersistedIn
    degraded: bool = False
    changed: bool = True
    warning: str | None = None


class ListResult(BaseModel):
    applications: list[Application] = []
    source: PersistedIn
    warning: str | None = None


class ApplicationStats(BaseModel):
    total: int = 0
    draft: int = 0
    applied: int = 0
    interview: int = 0
    accepted: int = 0
    rejected: int = 0
