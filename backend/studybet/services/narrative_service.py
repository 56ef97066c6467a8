"""NarrativeService: Claude-written penalty diaries and daily suggestions.

Architecture:
- Direct anthropic.AsyncAnthropic call (client injectable for tests)
- asyncio.wait_for(timeout=settings.narrative_timeout_seconds) wraps each call
- tenacity retry on transient API errors (rate limit, timeout, overload)
- Every public method NEVER raises: on any failure, a missing API key or the
  feature flag being off, the deterministic fallback text is returned
"""

import asyncio
from typing import Any

import anthropic
import structlog
from anthropic._exceptions import OverloadedError
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from studybet.core.config import get_settings
from studybet.core.exceptions import CollaboratorError
from studybet.domain.highlight import HighlightData
from studybet.domain.penalty import PenaltyContext, render_fallback_text, trim_penalty_text
from studybet.domain.study_day import StarType, StudyDay

logger = structlog.get_logger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

PENALTY_MAX_TOKENS: int = 120
SUGGESTION_MAX_TOKENS: int = 160
SUGGESTION_MAX_LENGTH: int = 300

_TRANSIENT_ERRORS = (
    anthropic.RateLimitError,
    anthropic.APITimeoutError,
    anthropic.APIConnectionError,
    OverloadedError,
)

_FALLBACK_SUGGESTIONS: dict[StarType, str] = {
    StarType.SUPERNOVA: "A supernova day. Protect tomorrow's first session the same way you did today's.",
    StarType.SHINING_STAR: "A solid win. Try stretching your longest focus block by ten minutes tomorrow.",
    StarType.BLACKHOLE: "More losses than wins today. Pick a shorter target tomorrow and finish it.",
    StarType.METEORITE: "No wins on the board. One short, winnable session tomorrow restarts the streak.",
}
_DEFAULT_SUGGESTION = "Start tomorrow with one focused session you know you can win."

# ---------------------------------------------------------------------------
# System prompts
# ---------------------------------------------------------------------------

_PENALTY_SYSTEM_PROMPT: str = (
    "You write the 'weak human diary': a first-person, self-deprecating diary line "
    "from someone who just lost a study bet against their own pledge. "
    "Be wry, never cruel. Mention what was pledged and what actually happened. "
    "One or two sentences, at most 180 characters. No hashtags, no emoji."
)

_SUGGESTION_SYSTEM_PROMPT: str = (
    "You are a concise study coach reviewing one day of timed study sessions. "
    "Give one concrete, encouraging suggestion for tomorrow in at most two sentences. "
    "Refer to the day's numbers when useful. No lists, no emoji."
)


# ---------------------------------------------------------------------------
# Fallbacks
# ---------------------------------------------------------------------------


def render_fallback_suggestion(day: StudyDay) -> str:
    return _FALLBACK_SUGGESTIONS.get(day.star_type, _DEFAULT_SUGGESTION)


# ---------------------------------------------------------------------------
# Claude call
# ---------------------------------------------------------------------------


@retry(
    retry=retry_if_exception_type(_TRANSIENT_ERRORS),
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=0.5, min=0.5, max=4),
    reraise=True,
    before_sleep=lambda rs: logger.warning(
        "narrative_retrying",
        attempt=rs.attempt_number,
        sleep_seconds=rs.next_action.sleep,
        error_type=type(rs.outcome.exception()).__name__,
    ),
)
async def _create_message(client: Any, model: str, system: str, content: str, max_tokens: int) -> str:
    """Invoke messages.create() and return the first text block, stripped.

    Raises:
        CollaboratorError: the response carried no text
    """
    response = await client.messages.create(
        model=model,
        max_tokens=max_tokens,
        system=system,
        messages=[{"role": "user", "content": content}],
    )
    text = response.content[0].text.strip() if response.content else ""
    if not text:
        raise CollaboratorError("Empty narrative response")
    return text


# ---------------------------------------------------------------------------
# NarrativeService
# ---------------------------------------------------------------------------


class NarrativeService:
    """Generates AI text for lost bets and finalized days.

    Public API:
        generate_penalty_text(context) -> str
        generate_day_suggestion(day, highlight) -> str

    Never raises. Falls back to deterministic templates on any failure.
    """

    def __init__(
        self,
        client: Any | None = None,
        model: str | None = None,
        timeout_seconds: float | None = None,
        enabled: bool | None = None,
    ):
        settings = get_settings()
        self.model = model or settings.narrative_model
        self.timeout_seconds = timeout_seconds or settings.narrative_timeout_seconds
        self.enabled = settings.narrative_enabled if enabled is None else enabled

        if client is None and self.enabled and settings.anthropic_api_key:
            client = anthropic.AsyncAnthropic(api_key=settings.anthropic_api_key)
        self.client = client

    @property
    def available(self) -> bool:
        return self.enabled and self.client is not None

    async def generate_penalty_text(self, context: PenaltyContext) -> str:
        """Write the diary line for a lost bet. Never raises.

        Args:
            context: Snapshot of the lost session

        Returns:
            Generated text trimmed to the penalty length, or the fallback template
        """
        fallback = render_fallback_text(context)
        if not self.available:
            return fallback

        content = self._penalty_prompt(context)
        try:
            text = await asyncio.wait_for(
                _create_message(self.client, self.model, _PENALTY_SYSTEM_PROMPT, content, PENALTY_MAX_TOKENS),
                timeout=self.timeout_seconds,
            )
        except Exception as exc:
            logger.warning(
                "penalty_text_fallback",
                error=str(exc),
                error_type=type(exc).__name__,
            )
            return fallback

        return trim_penalty_text(text)

    async def generate_day_suggestion(self, day: StudyDay, highlight: HighlightData) -> str:
        """Coach's suggestion for the next day. Never raises."""
        fallback = render_fallback_suggestion(day)
        if not self.available:
            return fallback

        content = self._suggestion_prompt(day, highlight)
        try:
            text = await asyncio.wait_for(
                _create_message(self.client, self.model, _SUGGESTION_SYSTEM_PROMPT, content, SUGGESTION_MAX_TOKENS),
                timeout=self.timeout_seconds,
            )
        except Exception as exc:
            logger.warning(
                "day_suggestion_fallback",
                study_day_id=str(day.id),
                error=str(exc),
                error_type=type(exc).__name__,
            )
            return fallback

        return text[:SUGGESTION_MAX_LENGTH]

    def _penalty_prompt(self, context: PenaltyContext) -> str:
        lines = [
            f"Pledge: {context.original_pledge[:300]}",
            f"Target: {context.target_duration_seconds // 60} minutes",
            f"Actually focused: {context.actual_duration_seconds // 60} minutes",
            f"Final stamina: {context.final_stamina_percent}%",
            f"Longest focus streak: {context.final_gauge_percent}% of target",
            f"Why the bet was lost: {context.fail_reason or 'unknown'}",
        ]
        for summary in context.interruptions:
            lines.append(
                f"- interrupted by {summary.reason.display_name} for {summary.duration_seconds // 60} min "
                f"(-{summary.stamina_consumed} stamina)"
            )
        lines.append("Write today's diary line.")
        return "\n".join(lines)

    def _suggestion_prompt(self, day: StudyDay, highlight: HighlightData) -> str:
        lines = [
            f"Date: {day.study_date.isoformat()}",
            f"Day type: {day.star_type.value if day.star_type else 'none'}",
            f"Sessions: {day.total_sessions} (won {day.win_count}, lost {day.lose_count})",
            f"Total focus: {day.total_focus_seconds // 60} minutes",
            f"Streak: {day.current_streak}",
        ]
        if highlight.mvp_period is not None:
            lines.append(f"Longest focus block: {highlight.mvp_period.duration_seconds // 60} minutes")
        for event in highlight.crisis_events:
            lines.append(f"Costly break: {event.reason.display_name} (-{event.stamina_consumed} stamina)")
        lines.append("Suggest one thing for tomorrow.")
        return "\n".join(lines)
