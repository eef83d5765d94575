"""Narrative collaborators: turn a snapshot plus history into advice text.

Two implementations share the :class:`NarrativeClient` contract:

* :class:`LLMNarrativeClient` asks an LLM provider and fails hard when the
  call fails, times out or returns nothing. It never substitutes local text.
* :class:`LocalNarrativeClient` builds a rule-based analysis offline. It is
  only used when configured explicitly (``NARRATIVE_SOURCE=local``).
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from typing import Protocol, runtime_checkable

from healthhelper.core.llm.provider import LLMProvider
from healthhelper.core.llm.system_prompt import ADVICE_SYSTEM_PROMPT
from healthhelper.core.storage.models import DailySnapshot

logger = logging.getLogger(__name__)

# Thresholds used by the local analysis.
MIN_SLEEP_HOURS = 7.0
MAX_SLEEP_HOURS = 9.0
MIN_WORKOUT_MINUTES = 30
GOOD_WORKOUT_MINUTES = 60
MAX_SEDENTARY_MINUTES = 480  # 8 hours


class NarrativeError(Exception):
    """Raised when the narrative collaborator cannot produce advice."""


@runtime_checkable
class NarrativeClient(Protocol):
    """Produces advice text for today's snapshot and a bounded history."""

    async def create_narrative(
        self,
        today: DailySnapshot,
        history: Sequence[DailySnapshot],
    ) -> str: ...


# ---------------------------------------------------------------------------
# Formatting helpers
# ---------------------------------------------------------------------------

def describe_snapshot(snapshot: DailySnapshot) -> str:
    """One-line description of the metrics present on ``snapshot``."""
    parts: list[str] = []
    if snapshot.sleep is not None:
        parts.append(
            f"Sleep: {snapshot.sleep.hours:.1f}h, quality {snapshot.sleep.quality_score}/10"
        )
    if snapshot.hydration is not None:
        h = snapshot.hydration
        status = "goal met" if h.is_goal_met else "goal not met"
        parts.append(f"Water: {h.consumed_ml:.0f}ml/{h.target_ml:.0f}ml ({status})")
    if snapshot.activity is not None:
        a = snapshot.activity
        parts.append(f"Workout: {a.workout_minutes} min, sedentary: {a.sedentary_minutes} min")
    return ", ".join(parts) if parts else "no metrics recorded"


def build_advice_prompt(today: DailySnapshot, history: Sequence[DailySnapshot]) -> str:
    """Assemble the user message sent to the LLM."""
    lines = [
        f"Please review my health data for the last {len(history)} day(s) "
        "and give me personalised advice.",
        "",
        "Today:",
        describe_snapshot(today),
        "",
        "Recent history:",
    ]
    for snapshot in sorted(history, key=lambda s: s.date, reverse=True):
        lines.append(f"{snapshot.date.isoformat()}: {describe_snapshot(snapshot)}")
    lines += [
        "",
        "Please cover:",
        "1. Overall assessment",
        "2. Sleep quality and suggestions",
        "3. Hydration habits and suggestions",
        "4. Exercise and sitting time",
        "5. Lifestyle recommendations",
        "",
        "Use plain language and concrete, doable steps.",
    ]
    return "\n".join(lines)


# ---------------------------------------------------------------------------
# LLM-backed client
# ---------------------------------------------------------------------------

class LLMNarrativeClient:
    """Generates advice through an :class:`LLMProvider`.

    Failures propagate: provider errors unchanged, ``TimeoutError`` when
    ``timeout_seconds`` elapses, :class:`NarrativeError` on empty output.
    """

    def __init__(
        self,
        provider: LLMProvider,
        *,
        timeout_seconds: float | None = 30.0,
        max_tokens: int = 1500,
        temperature: float = 0.8,
    ) -> None:
        self.provider = provider
        self.timeout_seconds = timeout_seconds
        self.max_tokens = max_tokens
        self.temperature = temperature

    async def create_narrative(
        self,
        today: DailySnapshot,
        history: Sequence[DailySnapshot],
    ) -> str:
        call = self.provider.generate(
            system_message=ADVICE_SYSTEM_PROMPT,
            user_message=build_advice_prompt(today, history),
            max_tokens=self.max_tokens,
            temperature=self.temperature,
        )
        try:
            response = await asyncio.wait_for(call, timeout=self.timeout_seconds)
        except TimeoutError:
            logger.warning("Narrative generation timed out after %.0fs", self.timeout_seconds)
            raise

        logger.info(
            "Narrative LLM call: model=%s, tokens=%d+%d, latency=%.0fms",
            response.model,
            response.input_tokens,
            response.output_tokens,
            response.latency_ms,
        )

        content = response.content.strip()
        if not content:
            raise NarrativeError("The advice service returned an empty response.")
        return content


# ---------------------------------------------------------------------------
# Local rule-based client
# ---------------------------------------------------------------------------

def analyze_day(today: DailySnapshot) -> list[str]:
    """Observations about a single day's metrics."""
    findings: list[str] = []

    if today.sleep is not None:
        hours = today.sleep.hours
        quality = today.sleep.quality_score
        if hours < MIN_SLEEP_HOURS:
            findings.append("Sleep was short; aim for 7-9 hours")
        elif hours > MAX_SLEEP_HOURS:
            findings.append("Sleep ran long; try to keep it within 7-9 hours")
        if quality < 3:
            findings.append("Sleep quality was poor; review your sleep environment and routine")
        elif quality >= 4:
            findings.append("Sleep quality was good, keep it up")

    if today.hydration is not None:
        if today.hydration.is_goal_met:
            findings.append("Hydration goal reached")
        else:
            findings.append(
                f"Hydration goal not met; {today.hydration.remaining_ml:.0f}ml to go"
            )

    if today.activity is not None:
        workout = today.activity.workout_minutes
        if workout < MIN_WORKOUT_MINUTES:
            findings.append("Not enough exercise; aim for at least 30 minutes of cardio")
        elif workout < GOOD_WORKOUT_MINUTES:
            findings.append("Moderate exercise; you can gradually raise the intensity")
        else:
            findings.append("Excellent exercise volume, keep going")
        if today.activity.sedentary_minutes > MAX_SEDENTARY_MINUTES:
            findings.append("Long sitting time; stand up and move for 5 minutes every hour")

    return findings


def personalised_advice(today: DailySnapshot) -> list[str]:
    """Numbered suggestions driven by what is missing or below target."""
    advice: list[str] = []
    sleep_short = today.sleep is None or today.sleep.hours < MIN_SLEEP_HOURS
    if sleep_short:
        advice.append("Switch off screens an hour before bed")
        advice.append("Keep the same bedtime and wake-up time every day")
    if today.hydration is None or not today.hydration.is_goal_met:
        advice.append("Spread your water intake across the day rather than the evening")
        advice.append("Keep a water bottle on your desk as a reminder")
    if today.activity is None or today.activity.sedentary_minutes > MAX_SEDENTARY_MINUTES:
        advice.append("Set an hourly reminder to get up and move")
        advice.append("Try a standing desk for part of the day")
    if today.activity is None or today.activity.workout_minutes < MIN_WORKOUT_MINUTES:
        advice.append("Pick an activity you enjoy: walking, cycling or swimming")
        advice.append("Start small and build up the intensity over time")
    advice.append("Keep logging your data to track improvement")
    advice.append("Stay positive; healthy living is built from small habits")
    return [f"{i}. {line}" for i, line in enumerate(advice, start=1)]


class LocalNarrativeClient:
    """Offline rule-based advice. Selected explicitly, never as a fallback."""

    async def create_narrative(
        self,
        today: DailySnapshot,
        history: Sequence[DailySnapshot],
    ) -> str:
        findings = analyze_day(today)
        lines = [
            "[Today]",
            describe_snapshot(today),
            "",
            "[Analysis]",
            "; ".join(findings) if findings else "Today's numbers look good",
            "",
            "[Last 7 days]",
        ]
        for snapshot in history:
            lines.append(f"- {snapshot.date.strftime('%m-%d')}: {describe_snapshot(snapshot)}")
        lines += ["", "[Suggestions]", *personalised_advice(today)]
        return "\n".join(lines)
