from __future__ import annotations

from pydantic import BaseModel


class SuggestionRequest(BaseModel):
    message: str = ""
    section: str = ""
    job_link: str = ""
    github_url: str = ""
    job_posting: str = ""
    sample_resume: str = ""


class SuggestedEdit(BaseModel):
    before: str
    after: str


class Suggestion(BaseModel):
    content: str
    edit: SuggestedEdit | None = None
    # Raw ``suggestions`` payload returned by the proxy endpoint.
    suggestions: list = []
    source: str = "canned"
