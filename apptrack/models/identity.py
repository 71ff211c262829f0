from __future__ import annotations

from pydantic import BaseModel


class Identity(BaseModel):
    user_id: str
    is_ephemeral: bool = False  # demo identity: data never leaves the local store
    access_token: str | None = None
