"""Completion client: temperature choice, credential checks and failure mapping."""

import asyncio

import ollama
import pytest

from clearlens import secrets_manager as secrets_module
from clearlens.api_exceptions import ConfigurationError, UpstreamError
from clearlens.config import Settings
from clearlens.intent import Intent
from clearlens.llm_client import OllamaCompletionClient, choose_temperature, is_evening
from clearlens.secrets_manager import SecretsManager, completion_credentials, is_loopback_host


class FakeOllama:
    def __init__(self, response=None, error=None, delay=0.0):
        self.response = response
        self.error = error
        self.delay = delay
        self.calls = []

    async def chat(self, **kwargs):
        self.calls.append(kwargs)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.response


@pytest.fixture
def no_api_key(monkeypatch):
    monkeypatch.delenv("OLLAMA_API_KEY", raising=False)
    manager = SecretsManager()
    monkeypatch.setattr(secrets_module, "secrets_manager", manager)
    return manager


def _client(fake, **overrides):
    settings = Settings(model_name="llama3.1:8b", llm_timeout_seconds=overrides.pop("timeout", 5.0))
    return OllamaCompletionClient(settings, client=fake)


# ============================================================================
# TEMPERATURE
# ============================================================================

def test_temperature_by_intent_and_hour():
    assert choose_temperature(Intent.NUMBERS, "high", 20) == 0.2
    assert choose_temperature(Intent.MOTIVATION, "high", 12) == 0.8
    assert choose_temperature(Intent.MOTIVATION, "medium", 12) == 0.6
    assert choose_temperature(Intent.FOOD, "medium", 19) == 0.4
    assert choose_temperature(Intent.GENERAL, "low", 3) == 0.4
    assert choose_temperature(Intent.PROGRESS, "low", 12) == 0.5


def test_evening_window():
    assert is_evening(18) and is_evening(23) and is_evening(4)
    assert not is_evening(5) and not is_evening(17)


# ============================================================================
# CREDENTIALS
# ============================================================================

def test_loopback_detection():
    assert is_loopback_host("http://localhost:11434")
    assert is_loopback_host("127.0.0.1:11434")
    assert not is_loopback_host("https://ollama.com")


def test_remote_host_without_key_is_configuration_error(no_api_key):
    with pytest.raises(ConfigurationError) as exc_info:
        completion_credentials("https://ollama.com", no_api_key)
    assert exc_info.value.missing == "OLLAMA_API_KEY"
    assert "OLLAMA" not in exc_info.value.message


def test_local_host_needs_no_key(no_api_key):
    assert completion_credentials("http://localhost:11434", no_api_key) is None


def test_key_is_returned_when_set(no_api_key):
    no_api_key.rotate_secret("OLLAMA_API_KEY", "sk-test")
    assert completion_credentials("https://ollama.com", no_api_key) == "sk-test"


def test_missing_host_is_configuration_error(no_api_key):
    with pytest.raises(ConfigurationError):
        completion_credentials("", no_api_key)


async def test_client_construction_checks_credentials(no_api_key):
    client = OllamaCompletionClient(Settings(ollama_host="https://ollama.com"))
    with pytest.raises(ConfigurationError):
        await client.complete("system", "question", 0.5, 220)


# ============================================================================
# COMPLETION
# ============================================================================

async def test_successful_completion_sends_prompt_and_options():
    fake = FakeOllama(response={"message": {"role": "assistant", "content": "  Eat salmon.  "}})
    text = await _client(fake).complete("SYSTEM", "what for dinner?", 0.4, 220)
    assert text == "Eat salmon."
    call = fake.calls[0]
    assert call["model"] == "llama3.1:8b"
    assert call["messages"] == [
        {"role": "system", "content": "SYSTEM"},
        {"role": "user", "content": "what for dinner?"},
    ]
    assert call["options"] == {"temperature": 0.4, "num_predict": 220}


async def test_timeout_becomes_upstream_error():
    fake = FakeOllama(response={"message": {"content": "late"}}, delay=1.0)
    with pytest.raises(UpstreamError) as exc_info:
        await _client(fake, timeout=0.01).complete("s", "q", 0.5, 220)
    assert exc_info.value.message == "Failed to generate insight"
    assert "timed out" in exc_info.value.detail


async def test_service_error_becomes_upstream_error():
    fake = FakeOllama(error=ollama.ResponseError("model not found", 404))
    with pytest.raises(UpstreamError) as exc_info:
        await _client(fake).complete("s", "q", 0.5, 220)
    assert "404" in exc_info.value.detail


async def test_transport_error_becomes_upstream_error():
    fake = FakeOllama(error=ConnectionError("refused"))
    with pytest.raises(UpstreamError):
        await _client(fake).complete("s", "q", 0.5, 220)


@pytest.mark.parametrize("payload", [
    {},
    {"message": {}},
    {"message": {"content": "   "}},
    {"message": {"content": None}},
    None,
])
async def test_malformed_or_empty_payload_becomes_upstream_error(payload):
    with pytest.raises(UpstreamError):
        await _client(FakeOllama(response=payload)).complete("s", "q", 0.5, 220)
