"""Tests for canned and proxied writing suggestions."""

from __future__ import annotations

import json
import random

import httpx
import pytest

from apptrack.config import settings
from apptrack.errors import SuggestionUnavailableError
from apptrack.models.suggestion import SuggestionRequest
from apptrack.services.suggestion_service import CANNED_SUGGESTIONS, SuggestionService


@pytest.fixture
def proxy_settings(monkeypatch):
    monkeypatch.setattr(settings, "suggestion_mode", "proxy")
    monkeypatch.setattr(settings, "suggestion_url", "http://suggest.test/suggest-cv")


@pytest.mark.asyncio
async def test_canned_mode_returns_known_suggestion():
    service = SuggestionService(rng=random.Random(7))
    suggestion = await service.suggest(SuggestionRequest(message="Make it better"))

    assert suggestion.source == "canned"
    assert suggestion.edit is not None
    assert suggestion.content in {s.content for s in CANNED_SUGGESTIONS}


@pytest.mark.asyncio
async def test_canned_returns_copies():
    service = SuggestionService(rng=random.Random(1))
    suggestion = service.canned()
    suggestion.edit.after = "changed"
    assert all(s.edit.after != "changed" for s in CANNED_SUGGESTIONS)


@pytest.mark.asyncio
async def test_proxy_forwards_payload(proxy_settings):
    seen: list[httpx.Request] = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json={"suggestions": ["Use action verbs", "Quantify impact"]})

    service = SuggestionService(transport=httpx.MockTransport(handler))
    suggestion = await service.suggest(
        SuggestionRequest(job_link="http://jobs.test/1", job_posting="Build things", sample_resume="cv")
    )

    assert suggestion.source == "proxy"
    assert suggestion.suggestions == ["Use action verbs", "Quantify impact"]
    body = json.loads(seen[0].content)
    assert body["jobLink"] == "http://jobs.test/1"
    assert body["job_posting"] == "Build things"
    assert body["sample_resume"] == "cv"
    assert str(seen[0].url) == "http://suggest.test/suggest-cv"


@pytest.mark.asyncio
async def test_proxy_wraps_single_suggestion(proxy_settings):
    transport = httpx.MockTransport(lambda request: httpx.Response(200, json={"suggestions": "One tip"}))
    suggestion = await SuggestionService(transport=transport).suggest(SuggestionRequest())
    assert suggestion.suggestions == ["One tip"]


@pytest.mark.asyncio
async def test_proxy_failure_raises(proxy_settings):
    transport = httpx.MockTransport(lambda request: httpx.Response(502))
    with pytest.raises(SuggestionUnavailableError):
        await SuggestionService(transport=transport).suggest(SuggestionRequest())


@pytest.mark.asyncio
async def test_proxy_without_url_raises(monkeypatch):
    monkeypatch.setattr(settings, "suggestion_mode", "proxy")
    monkeypatch.setattr(settings, "suggestion_url", "")
    with pytest.raises(SuggestionUnavailableError):
        await SuggestionService().suggest(SuggestionRequest())
