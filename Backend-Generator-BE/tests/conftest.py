"""
Shared fixtures: a temp-dir project store with a controllable clock, a fake
LLM client that never touches the network, and a TestClient wired to both.
"""
import json
from datetime import datetime, timedelta, timezone
from typing import AsyncIterator, Dict, List, Optional

import pytest
from fastapi.testclient import TestClient

from src.main import app
from src.run_utils.llm import get_llm_client
from src.run_utils.store import ProjectStore, get_project_store
from src.utils.errors import ProviderError


class StepClock:
    """Returns a strictly increasing UTC time on every call."""

    def __init__(self, start: Optional[datetime] = None, step: timedelta = timedelta(seconds=1)):
        self.now = start or datetime(2025, 1, 1, 12, 0, 0, tzinfo=timezone.utc)
        self.step = step

    def __call__(self) -> datetime:
        current = self.now
        self.now = self.now + self.step
        return current


class FakeLLM:
    """Stands in for LLMClient; replies are queued up front."""

    def __init__(self, replies: Optional[List[str]] = None, error: Optional[Exception] = None):
        self.replies = list(replies or [])
        self.error = error
        self.calls: List[Dict] = []
        self.configured = True

    async def complete(self, model, messages, **kwargs) -> str:
        self.calls.append({"model": model, "messages": messages, **kwargs})
        if self.error:
            raise self.error
        return self.replies.pop(0) if self.replies else ""

    async def complete_stream(self, model, messages, **kwargs) -> AsyncIterator[str]:
        self.calls.append({"model": model, "messages": messages, "stream": True, **kwargs})
        if self.error:
            raise self.error
        for reply in self.replies:
            for i in range(0, len(reply), 4):
                yield reply[i : i + 4]


SAMPLE_PROJECT = {
    "projectName": "todo-api",
    "description": "A small todo REST API",
    "technology": "Node.js",
    "framework": "Express",
    "database": "SQLite",
    "fileTree": {
        "src/": {"type": "directory"},
        "src/app.js": {"type": "file", "content": "const express = require('express');\n"},
        "src/routes/todos.js": {"type": "file", "content": "module.exports = {};\n"},
        "package.json": {"type": "file", "content": "{\"name\": \"todo-api\"}\n"},
        "README.md": {"type": "file", "content": "# todo-api\n\n```bash\nnpm start\n```\n"},
    },
    "dependencies": {"express": "^4.18.2"},
    "devDependencies": {"jest": "^29.7.0"},
    "setupInstructions": ["npm install", "npm start"],
    "apiEndpoints": [{"method": "GET", "path": "/api/todos", "description": "List todos"}],
    "environmentVariables": {"PORT": "3000"},
}


@pytest.fixture
def sample_project() -> Dict:
    return json.loads(json.dumps(SAMPLE_PROJECT))


@pytest.fixture
def clock() -> StepClock:
    return StepClock()


@pytest.fixture
def store(tmp_path, clock) -> ProjectStore:
    return ProjectStore(str(tmp_path / "generated_projects"), clock=clock)


@pytest.fixture
def fake_llm() -> FakeLLM:
    return FakeLLM()


@pytest.fixture
def client(store, fake_llm):
    app.dependency_overrides[get_project_store] = lambda: store
    app.dependency_overrides[get_llm_client] = lambda: fake_llm
    try:
        yield TestClient(app, raise_server_exceptions=False)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def provider_down() -> ProviderError:
    return ProviderError("Service Unavailable", status=503)
