"""Writing suggestions for CV sections.

Two modes, chosen by ``settings.suggestion_mode``: ``canned`` picks one of a
fixed set of before/after rewrites at random; ``proxy`` forwards the request
to an external endpoint and returns its ``suggestions`` payload verbatim.
"""

from __future__ import annotations

import logging
import random

import httpx

from apptrack.config import settings
from apptrack.errors import SuggestionUnavailableError
from apptrack.models.suggestion import SuggestedEdit, Suggestion, SuggestionRequest

logger = logging.getLogger(__name__)

CANNED_SUGGESTIONS = [
    Suggestion(
        content="I can help you improve that section! Here's a more professional version:",
        edit=SuggestedEdit(
            before="Worked on various projects and tasks",
            after=(
                "Led cross-functional projects delivering 25% improvement in operational "
                "efficiency while managing stakeholder relationships across 5 departments"
            ),
        ),
    ),
    Suggestion(
        content=(
            "Based on the job description you provided, I recommend emphasizing these key "
            "skills in your experience section. Here's how to make your current experience "
            "more relevant:"
        ),
        edit=SuggestedEdit(
            before="Managed team and projects",
            after=(
                "Spearheaded agile development teams of 8+ engineers, delivering 15+ features "
                "on schedule while maintaining 99.9% system uptime for enterprise clients"
            ),
        ),
    ),
    Suggestion(
        content=(
            "Your summary could be more impactful. Let me suggest a version that better "
            "highlights your achievements:"
        ),
        edit=SuggestedEdit(
            before="Experienced professional with good skills",
            after=(
                "Results-driven software architect with 8+ years of experience building "
                "scalable systems that serve 2M+ users. Proven track record of reducing "
                "infrastructure costs by 40% while improving performance metrics."
            ),
        ),
    ),
]

QUICK_PROMPTS = [
    "Make this sound more professional",
    "Rewrite for a tech job",
    "Add quantifiable achievements",
    "Improve for ATS systems",
    "Make it more concise",
]


class SuggestionService:
    def __init__(
        self,
        rng: random.Random | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._rng = rng or random.Random()
        self._transport = transport

    def canned(self) -> Suggestion:
        return self._rng.choice(CANNED_SUGGESTIONS).model_copy(deep=True)

    async def proxy(self, request: SuggestionRequest) -> Suggestion:
        if not settings.suggestion_url:
            raise SuggestionUnavailableError("No suggestion endpoint configured")

        payload = {
            "jobLink": request.job_link,
            "github_url": request.github_url,
            "job_posting": request.job_posting,
            "sample_resume": request.sample_resume,
            "ATS": "",
            "personal_writeup": "",
        }
        try:
            async with httpx.AsyncClient(
                timeout=settings.remote_timeout, transport=self._transport
            ) as client:
                response = await client.post(settings.suggestion_url, json=payload)
                response.raise_for_status()
                data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error("Suggestion endpoint %s failed: %s", settings.suggestion_url, e)
            raise SuggestionUnavailableError("Failed to fetch suggestions") from e

        raw = data.get("suggestions") if isinstance(data, dict) else None
        if raw is None:
            suggestions = []
        elif isinstance(raw, list):
            suggestions = raw
        else:
            suggestions = [raw]
        return Suggestion(
            content="Suggestions based on your CV and the job posting:",
            suggestions=suggestions,
            source="proxy",
        )

    async def suggest(self, request: SuggestionRequest) -> Suggestion:
        if settings.suggestion_mode == "proxy":
            return await self.proxy(request)
        return self.canned()


suggestion_service = SuggestionService()
