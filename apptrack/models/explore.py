from __future__ import annotations

from pydantic import BaseModel

from .application import Application


class PublicApplication(Application):
    """A public application decorated with its owner's profile names."""

    username: str = "Unknown User"
    display_name: str = "Unknown User"


class LeaderboardEntry(BaseModel):
    user_id: str
    username: str = "Unknown User"
    display_name: str = "Unknown User"
    application_count: int
    rank: int
