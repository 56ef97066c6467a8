"""Tests for NarrativeService.

Coverage:
- happy path returns Claude's text (trimmed for penalties)
- every failure mode (API error, timeout, empty body, disabled, no key) returns the fallback
- transient API errors are retried by tenacity
"""

import asyncio
import uuid
from datetime import date
from unittest.mock import AsyncMock, MagicMock

import anthropic
import httpx
import pytest

from studybet.domain.highlight import HighlightData
from studybet.domain.interruption import InterruptionReason
from studybet.domain.penalty import PENALTY_TEXT_MAX_LENGTH, InterruptionSummary, PenaltyContext, render_fallback_text
from studybet.domain.study_day import StarType, StudyDay
from studybet.services.narrative_service import NarrativeService, render_fallback_suggestion

pytestmark = pytest.mark.unit

MODEL = "claude-test-model"


def _response(text: str) -> MagicMock:
    block = MagicMock()
    block.text = text
    response = MagicMock()
    response.content = [block]
    return response


def _client(**create_kwargs) -> MagicMock:
    client = MagicMock()
    client.messages.create = AsyncMock(**create_kwargs)
    return client


@pytest.fixture
def context():
    return PenaltyContext(
        original_pledge="Write the literature review",
        target_duration_seconds=3600,
        actual_duration_seconds=1500,
        final_stamina_percent=62,
        final_gauge_percent=25,
        fail_reason="target time not met",
        interruptions=[
            InterruptionSummary(reason=InterruptionReason.DISTRACTION, duration_seconds=1200, stamina_consumed=9),
        ],
    )


@pytest.fixture
def day():
    day = StudyDay.create(uuid.uuid4(), date(2024, 1, 1))
    day.star_type = StarType.BLACKHOLE
    return day


def make_service(client) -> NarrativeService:
    return NarrativeService(client=client, model=MODEL, timeout_seconds=5.0, enabled=True)


# ============================================================================
# Penalty text
# ============================================================================


async def test_penalty_text_happy_path(context):
    client = _client(return_value=_response("  Dear diary, the phone won again.  "))

    text = await make_service(client).generate_penalty_text(context)

    assert text == "Dear diary, the phone won again."
    call = client.messages.create.call_args
    assert call.kwargs["model"] == MODEL
    prompt = call.kwargs["messages"][0]["content"]
    assert "Write the literature review" in prompt
    assert "Distraction" in prompt


async def test_penalty_text_is_trimmed_to_limit(context):
    client = _client(return_value=_response("z" * 500))

    text = await make_service(client).generate_penalty_text(context)

    assert len(text) == PENALTY_TEXT_MAX_LENGTH


async def test_penalty_text_falls_back_on_api_error(context):
    client = _client(side_effect=RuntimeError("boom"))

    text = await make_service(client).generate_penalty_text(context)

    assert text == render_fallback_text(context)
    assert client.messages.create.call_count == 1


async def test_penalty_text_falls_back_on_timeout(context):
    async def slow(**kwargs):
        await asyncio.sleep(5)

    client = _client(side_effect=slow)
    service = NarrativeService(client=client, model=MODEL, timeout_seconds=0.05, enabled=True)

    text = await service.generate_penalty_text(context)

    assert text == render_fallback_text(context)


async def test_penalty_text_falls_back_on_empty_response(context):
    client = _client(return_value=_response("   "))

    text = await make_service(client).generate_penalty_text(context)

    assert text == render_fallback_text(context)


async def test_transient_error_is_retried(context):
    timeout = anthropic.APITimeoutError(request=httpx.Request("POST", "https://api.anthropic.com/v1/messages"))
    client = _client(side_effect=[timeout, _response("Second time lucky.")])

    text = await make_service(client).generate_penalty_text(context)

    assert text == "Second time lucky."
    assert client.messages.create.call_count == 2


async def test_disabled_service_never_calls_the_api(context):
    client = _client(return_value=_response("unused"))
    service = NarrativeService(client=client, model=MODEL, enabled=False)

    assert service.available is False
    assert await service.generate_penalty_text(context) == render_fallback_text(context)
    client.messages.create.assert_not_called()


async def test_missing_client_uses_fallback(context):
    service = NarrativeService(client=None, enabled=False)
    assert await service.generate_penalty_text(context) == render_fallback_text(context)


# ============================================================================
# Day suggestion
# ============================================================================


async def test_day_suggestion_happy_path(day):
    client = _client(return_value=_response("Start with a 25 minute block."))

    text = await make_service(client).generate_day_suggestion(day, HighlightData())

    assert text == "Start with a 25 minute block."
    prompt = client.messages.create.call_args.kwargs["messages"][0]["content"]
    assert "blackhole" in prompt


async def test_day_suggestion_falls_back_per_star_type(day):
    client = _client(side_effect=RuntimeError("boom"))

    text = await make_service(client).generate_day_suggestion(day, HighlightData())

    assert text == render_fallback_suggestion(day)
    assert "shorter target" in text
