"""Pytest fixtures for DSXpert tests."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from dsxpert.dependencies import get_llm_service
from dsxpert.main import create_app
from dsxpert.services import languages
from dsxpert.services.config_manager import ConfigManager
from dsxpert.services.llm_service import LLMService, LLMServiceError


class FakeLLMService(LLMService):
    """Replays queued responses instead of calling a provider.

    Each queued item is either a response string or an exception to raise.
    """

    def __init__(self, responses: list | None = None):
        super().__init__({"provider": "gemini"})
        self.responses = list(responses or [])
        self.prompts: list[str] = []

    def queue(self, *responses) -> None:
        self.responses.extend(responses)

    async def generate_response(self, prompt: str, context: str | None = None) -> str:
        self.prompts.append(prompt)
        if not self.responses:
            raise LLMServiceError("No response queued")
        item = self.responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item


@pytest.fixture
def fake_llm() -> FakeLLMService:
    """A fake LLM with an empty response queue."""
    return FakeLLMService()


@pytest.fixture
def config_manager(tmp_path, monkeypatch) -> ConfigManager:
    """A ConfigManager writing under a temp dir, isolated from the environment."""
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    return ConfigManager(config_dir=tmp_path / "config", load_env=False)


@pytest.fixture
def client(config_manager: ConfigManager, fake_llm: FakeLLMService):
    """A TestClient whose LLM calls go to `fake_llm`."""
    app = create_app(config_manager)
    app.dependency_overrides[get_llm_service] = lambda: fake_llm
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def scratch_tags():
    """Language tags registered by a test; removed from the registry afterwards."""
    tags: list[str] = []
    yield tags
    for tag in tags:
        languages._registry.pop(tag, None)
