"""
ClearLens — Session Memory & Memory Updater

Per-user longitudinal counters (days active, protein streak, last feedback
sentiment, ...).  The pipeline reads a snapshot when a request starts and,
once the answer is ready, hands an updated snapshot to a background executor.
The request path never waits on that write and never sees it fail.

Stores:
  JsonFileMemoryStore   memory/{user}.json  (local default)
  SupabaseMemoryStore   see clearlens/db.py
  InMemoryStore         tests and single-process demos
"""

import os
import re
import json
import logging
import threading
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from dataclasses import dataclass, asdict, replace
from typing import Optional, Dict

from clearlens.api_exceptions import PersistenceError
from clearlens.structured_logging import logger as slog
from clearlens.tone import SENTIMENT_GOOD, SENTIMENT_TOO_MUCH

logger = logging.getLogger(__name__)

PROTEIN_STREAK_THRESHOLD_G = 140


# ──────────────────────────────────────────────
# MODEL
# ──────────────────────────────────────────────

@dataclass(frozen=True)
class CoachMemory:
    days_active: int = 0
    protein_streak_days: int = 0
    favorite_snack: Optional[str] = None
    workout_time_preference: Optional[str] = None
    goal: Optional[str] = None
    last_feedback_sentiment: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "CoachMemory":
        data = data if isinstance(data, dict) else {}

        def count(key: str) -> int:
            try:
                return max(int(data.get(key) or 0), 0)
            except (TypeError, ValueError):
                return 0

        def text(key: str) -> Optional[str]:
            value = data.get(key)
            return value.strip() or None if isinstance(value, str) else None

        return cls(
            days_active=count("days_active"),
            protein_streak_days=count("protein_streak_days"),
            favorite_snack=text("favorite_snack"),
            workout_time_preference=text("workout_time_preference"),
            goal=text("goal"),
            last_feedback_sentiment=text("last_feedback_sentiment"),
        )

    def to_dict(self) -> dict:
        return asdict(self)


# ──────────────────────────────────────────────
# STORAGE
# ──────────────────────────────────────────────

class MemoryStore:
    """Opaque get/set keyed by user id. Implementations raise PersistenceError."""

    def load(self, user_id: str) -> CoachMemory:
        raise NotImplementedError

    def save(self, user_id: str, memory: CoachMemory) -> None:
        raise NotImplementedError


class InMemoryStore(MemoryStore):
    def __init__(self, initial: Optional[Dict[str, CoachMemory]] = None):
        self._data: Dict[str, CoachMemory] = dict(initial or {})
        self._lock = threading.Lock()

    def load(self, user_id: str) -> CoachMemory:
        with self._lock:
            return self._data.get(user_id, CoachMemory())

    def save(self, user_id: str, memory: CoachMemory) -> None:
        with self._lock:
            self._data[user_id] = memory


class JsonFileMemoryStore(MemoryStore):
    """One JSON file per user under `root`."""

    def __init__(self, root: str):
        self.root = root

    def _path(self, user_id: str) -> str:
        safe = re.sub(r"[^\w\-]", "_", (user_id or "default").lower())
        return os.path.join(self.root, f"{safe}.json")

    def load(self, user_id: str) -> CoachMemory:
        path = self._path(user_id)
        if not os.path.exists(path):
            return CoachMemory()
        try:
            with open(path) as fh:
                data = json.load(fh)
        except (OSError, ValueError) as e:
            raise PersistenceError("read", user_id, e) from e
        if not isinstance(data, dict):
            raise PersistenceError("read", user_id, ValueError(f"expected a JSON object, got {type(data).__name__}"))
        return CoachMemory.from_dict(data)

    def save(self, user_id: str, memory: CoachMemory) -> None:
        try:
            os.makedirs(self.root, exist_ok=True)
            path = self._path(user_id)
            tmp = f"{path}.tmp"
            with open(tmp, "w") as fh:
                json.dump(memory.to_dict(), fh, indent=2)
            os.replace(tmp, path)
        except OSError as e:
            raise PersistenceError("write", user_id, e) from e


def load_memory_safely(store: MemoryStore, user_id: str) -> CoachMemory:
    """A failed read degrades to empty memory."""
    try:
        return store.load(user_id)
    except PersistenceError as e:
        logger.warning(f"Memory read failed, continuing without it: {e}")
        return CoachMemory()


# ──────────────────────────────────────────────
# UPDATER
# ──────────────────────────────────────────────

def sentiment_from_feedback(rating: Optional[str]) -> Optional[str]:
    if rating == "negative":
        return SENTIMENT_TOO_MUCH
    if rating == "positive":
        return SENTIMENT_GOOD
    return None


def apply_update(memory: CoachMemory, protein_today_g: Optional[float],
                 feedback_rating: Optional[str] = None) -> CoachMemory:
    if protein_today_g is not None and protein_today_g >= PROTEIN_STREAK_THRESHOLD_G:
        streak = memory.protein_streak_days + 1
    else:
        streak = 0

    sentiment = sentiment_from_feedback(feedback_rating) or memory.last_feedback_sentiment

    return replace(
        memory,
        days_active=memory.days_active + 1,
        protein_streak_days=streak,
        last_feedback_sentiment=sentiment,
    )


class MemoryUpdater:
    """Fire-and-forget writes of the post-response memory snapshot."""

    def __init__(self, store: MemoryStore, executor: Optional[Executor] = None):
        self.store = store
        self.executor = executor or ThreadPoolExecutor(max_workers=2, thread_name_prefix="memory")

    def _write(self, user_id: str, snapshot: CoachMemory,
               protein_today_g: Optional[float], feedback_rating: Optional[str]) -> bool:
        updated = apply_update(snapshot, protein_today_g, feedback_rating)
        try:
            self.store.save(user_id, updated)
        except PersistenceError as e:
            slog.log_memory_write(user_id, success=False, error=str(e))
            return False
        slog.log_memory_write(user_id, success=True)
        return True

    def submit(self, user_id: str, snapshot: CoachMemory,
               protein_today_g: Optional[float], feedback_rating: Optional[str] = None) -> Optional[Future]:
        try:
            future = self.executor.submit(self._write, user_id, snapshot, protein_today_g, feedback_rating)
        except RuntimeError as e:
            # executor already shut down
            slog.log_memory_write(user_id, success=False, error=str(e))
            return None
        future.add_done_callback(lambda f: _log_unexpected(f, user_id))
        return future

    def shutdown(self):
        self.executor.shutdown(wait=True)


def _log_unexpected(future: Future, user_id: str):
    if future.cancelled():
        return
    exc = future.exception()
    if exc is not None:
        slog.log_memory_write(user_id, success=False, error=repr(exc))
