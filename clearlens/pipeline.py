"""
ClearLens — request pipeline

    rate limit → normalize → derive signals → classify → resolve tone
      → shortcut: profile, recovery or acknowledgement (may finish here)
      → compose prompt → completion → sanitize
    memory update fires in the background on every successful answer.

Every collaborator (completion client, memory store, limiter, executor,
clock, randomness) is injected so tests can pin each stage.
"""

import asyncio
import random
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any, Callable, Dict, Optional

from clearlens.api_exceptions import RateLimitError
from clearlens.api_models import InsightRequest
from clearlens.config import Settings
from clearlens.intent import Intent, IntentFlags, allow_pop_culture, classify_intent, detect_flags
from clearlens.llm_client import CompletionClient, choose_temperature
from clearlens.metrics import NormalizedMetrics, display_number, normalize_metrics, normalize_profile, normalize_trends
from clearlens.prompts import PromptContext, compose_prompt
from clearlens.rate_limiter import RateLimiter
from clearlens.sanitizer import SanitizeContext, acknowledgement_reply, sanitize_response
from clearlens.session_memory import MemoryStore, MemoryUpdater, load_memory_safely
from clearlens.shortcuts import ShortcutResponse, try_shortcut
from clearlens.signals import DerivedSignals, derive_signals
from clearlens.structured_logging import logger as slog
from clearlens.tone import CoachSettings, resolve_settings


@dataclass
class PipelineResult:
    insight: str
    intent: Intent
    flags: IntentFlags
    settings: CoachSettings
    metrics: NormalizedMetrics
    signals: DerivedSignals
    local_hour: int
    shortcut: Optional[str] = None
    prompt: Optional[str] = None
    temperature: Optional[float] = None

    def debug_metrics(self) -> Dict[str, str]:
        m = self.metrics

        def fmt(value: Optional[float], suffix: str = "") -> str:
            return "—" if value is None else f"{display_number(value)}{suffix}"

        return {
            "steps": fmt(m.steps),
            "activeCalories": fmt(m.active_calories, " kcal"),
            "basalCalories": fmt(m.basal_calories, " kcal"),
            "totalCaloriesBurned": fmt(m.total_calories_burned, " kcal"),
            "dietaryCalories": fmt(m.dietary_calories, " kcal"),
            "dietaryProteinG": fmt(m.dietary_protein_g, " g"),
            "proteinRemainingG": fmt(m.protein_remaining_g, " g"),
            "workoutMinutes": fmt(m.workout_minutes, " min"),
            "sleepHours": fmt(m.sleep_hours, " h"),
            "restingHeartRate": fmt(m.resting_heart_rate, " bpm"),
            "hrvSdnn": fmt(m.hrv_sdnn, " ms"),
        }

    def debug_signals(self) -> Dict[str, Any]:
        return {
            "intent": self.intent.value,
            "readiness": self.signals.readiness,
            "load": self.signals.load,
            "onTrack": self.signals.on_track,
            "proteinPerMeal": self.signals.protein_per_meal,
            "pressure": self.settings.pressure,
            "temperature": self.temperature,
            "shortcut": self.shortcut,
        }


class InsightPipeline:

    def __init__(
        self,
        settings: Settings,
        completion: CompletionClient,
        memory_store: MemoryStore,
        rate_limiter: Optional[RateLimiter] = None,
        memory_updater: Optional[MemoryUpdater] = None,
        rng: Optional[Callable[[], float]] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.settings = settings
        self.completion = completion
        self.memory_store = memory_store
        self.rate_limiter = rate_limiter or RateLimiter(
            limit=settings.rate_limit_max_requests,
            window_seconds=settings.rate_limit_window_seconds,
        )
        self.memory_updater = memory_updater or MemoryUpdater(memory_store)
        self.rng = rng or random.random
        self.clock = clock or datetime.now

    def _admit(self, user_id: str):
        try:
            self.rate_limiter.check_rate_limit(user_id)
        except RateLimitError:
            slog.log_rate_limit_exceeded("/api/insight", user_id)
            raise

    def _remember(self, request: InsightRequest, memory, metrics: NormalizedMetrics):
        rating = request.feedback.rating if request.feedback else None
        self.memory_updater.submit(request.user_id, memory, metrics.dietary_protein_g, rating)

    async def run(self, request: InsightRequest) -> PipelineResult:
        self._admit(request.user_id)

        metrics = normalize_metrics(request.metrics)
        trends = normalize_trends(request.trends)
        profile = normalize_profile(request.profile)
        local_hour = request.local_hour if request.local_hour is not None else self.clock().hour

        signals = derive_signals(metrics, trends, local_hour)
        intent = classify_intent(request.question)
        flags = detect_flags(request.question, metrics)

        # stores do blocking I/O; keep it off the event loop
        memory = await asyncio.to_thread(load_memory_safely, self.memory_store, request.user_id)
        coach = resolve_settings(request.preferences, memory.last_feedback_sentiment,
                                 intent, signals.on_track)
        coach = replace(
            coach,
            pop_culture=allow_pop_culture(flags, intent, coach.tone, coach.pressure, self.rng),
            humor=not flags.low_mood,
        )

        result = PipelineResult(
            insight="",
            intent=intent,
            flags=flags,
            settings=coach,
            metrics=metrics,
            signals=signals,
            local_hour=local_hour,
        )

        shortcut = try_shortcut(flags, profile, metrics, signals)
        if shortcut is None:
            ack = acknowledgement_reply(request.question, request.chat_history)
            if ack is not None:
                shortcut = ShortcutResponse("ack", ack)
        if shortcut is not None:
            slog.log_shortcut(shortcut.kind, intent.value)
            result.insight = shortcut.text
            result.shortcut = shortcut.kind
            self._remember(request, memory, metrics)
            return result

        prompt = compose_prompt(PromptContext(
            question=request.question,
            lens=request.lens,
            settings=coach,
            intent=intent,
            flags=flags,
            metrics=metrics,
            signals=signals,
            memory=memory,
            history=request.chat_history,
            is_voice=request.is_voice_input,
            birth_date=request.birth_date,
            birth_time=request.birth_time,
            birth_place=request.birth_place,
        ))
        temperature = choose_temperature(intent, coach.pressure, local_hour)

        raw = await self.completion.complete(
            prompt, request.question, temperature, self.settings.max_output_tokens
        )

        result.prompt = prompt
        result.temperature = temperature
        result.insight = sanitize_response(raw, SanitizeContext(
            question=request.question,
            intent=intent,
            metrics=metrics,
            protein_per_meal=signals.protein_per_meal,
            history=request.chat_history,
        ))
        self._remember(request, memory, metrics)
        return result
