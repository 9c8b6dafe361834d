import os
from types import SimpleNamespace

import pytest

# Must be set before main is imported; settings are read once per process
os.environ.setdefault("GOOGLE_API_KEY", "test-google-key")

from fastapi.testclient import TestClient  # noqa: E402

import main  # noqa: E402
from config import get_settings  # noqa: E402
from vision_module import InferenceSuccess  # noqa: E402

JPEG_BYTES = bytes([0xFF, 0xD8, 0xFF, 0xE0, 0x00, 0x10, 0x4A, 0x46, 0x49, 0x46])


class FakeGateway:
    def __init__(self, outcome=None):
        self.outcome = outcome or InferenceSuccess(content="Looks like a healthy knee joint.")
        self.requests = []

    async def analyze(self, request):
        self.requests.append(request)
        return self.outcome


class FakeCompletions:
    def __init__(self, content="Analysis text", error=None):
        self.content = content
        self.error = error
        self.calls = []

    async def create(self, **kwargs):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        message = SimpleNamespace(content=self.content)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


class FakeClient:
    def __init__(self, completions):
        self.chat = SimpleNamespace(completions=completions)


@pytest.fixture
def settings():
    return get_settings()


@pytest.fixture
def fake_gateway():
    return FakeGateway()


@pytest.fixture
def client(fake_gateway):
    main.app.dependency_overrides[main.get_gateway] = lambda: fake_gateway
    yield TestClient(main.app)
    main.app.dependency_overrides.clear()
