"""Shared fakes and fixtures for the ClearLens test suite."""

from concurrent.futures import Executor, Future
from datetime import datetime

import pytest

from clearlens.api_models import InsightRequest
from clearlens.config import Settings
from clearlens.llm_client import CompletionClient
from clearlens.pipeline import InsightPipeline
from clearlens.rate_limiter import RateLimiter
from clearlens.session_memory import InMemoryStore, MemoryUpdater


class FakeCompletion(CompletionClient):
    """Records every call and replies with a canned completion."""

    model_name = "fake"

    def __init__(self, reply: str = "Grilled chicken and rice gets you there.", error: Exception = None):
        self.reply = reply
        self.error = error
        self.calls = []

    async def complete(self, system_prompt, question, temperature, max_tokens):
        self.calls.append({
            "system_prompt": system_prompt,
            "question": question,
            "temperature": temperature,
            "max_tokens": max_tokens,
        })
        if self.error is not None:
            raise self.error
        return self.reply


class SyncExecutor(Executor):
    """Runs submitted work inline so memory writes can be asserted."""

    def __init__(self):
        self.submitted = 0

    def submit(self, fn, /, *args, **kwargs):
        self.submitted += 1
        future = Future()
        try:
            future.set_result(fn(*args, **kwargs))
        except Exception as exc:
            future.set_exception(exc)
        return future


class FakeClock:
    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


@pytest.fixture
def settings():
    return Settings(env="test", debug=True, model_name="fake-model")


@pytest.fixture
def completion():
    return FakeCompletion()


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def executor():
    return SyncExecutor()


@pytest.fixture
def pipeline(settings, completion, store, executor):
    return InsightPipeline(
        settings=settings,
        completion=completion,
        memory_store=store,
        rate_limiter=RateLimiter(limit=30, window_seconds=60, clock=FakeClock()),
        memory_updater=MemoryUpdater(store, executor=executor),
        rng=lambda: 0.99,
        clock=lambda: datetime(2026, 3, 1, 14, 0),
    )


def make_request(**body) -> InsightRequest:
    body.setdefault("userId", "user_1")
    return InsightRequest.from_body(body)
