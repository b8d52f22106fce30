import os

os.environ.setdefault("OPENAI_API_KEY", "sk-test")

from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient

from eduportal import storage
from eduportal.main import app
from eduportal.services.qr_scanner import CameraUnavailableError, CaptureDevice


class FakeCaptureDevice(CaptureDevice):
    """Records calls; emit() plays the role of the camera decoding a code."""

    def __init__(self, fail=False):
        self.fail = fail
        self.on_decode = None
        self.start_calls = 0
        self.resume_calls = 0
        self.stop_calls = 0
        self.paused = False
        self.scanning = False

    def start(self, on_decode):
        self.start_calls += 1
        if self.fail:
            raise CameraUnavailableError("permission denied")
        self.on_decode = on_decode
        self.scanning = True

    def pause(self):
        self.paused = True

    def resume(self):
        self.resume_calls += 1
        self.paused = False

    def stop(self):
        self.stop_calls += 1
        self.scanning = False

    @property
    def is_scanning(self):
        return self.scanning

    def emit(self, text):
        self.on_decode(text)


class FakeCompletions:
    def __init__(self, parsed=None, content=None, error=None):
        self.parsed = parsed
        self.content = content
        self.error = error
        self.calls = []

    async def parse(self, **kwargs):
        self.calls.append(kwargs)
        if self.error:
            raise self.error
        message = SimpleNamespace(parsed=self.parsed, refusal=None if self.parsed else "refused")
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])

    async def create(self, **kwargs):
        self.calls.append(kwargs)
        if self.error:
            raise self.error
        message = SimpleNamespace(content=self.content)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


class FakeOpenAI:
    def __init__(self, **kwargs):
        self.completions = FakeCompletions(**kwargs)
        self.chat = SimpleNamespace(completions=self.completions)


@pytest.fixture(autouse=True)
def clean_storage():
    storage.reset()
    yield
    storage.reset()
    app.dependency_overrides.clear()


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def fake_device():
    return FakeCaptureDevice()


@pytest.fixture
def broken_device():
    return FakeCaptureDevice(fail=True)


@pytest.fixture
def fake_llm(monkeypatch):
    """Install a fake OpenAI client on the structured LLM service."""
    from eduportal.services.llm_service import llm_service

    def install(**kwargs):
        fake = FakeOpenAI(**kwargs)
        monkeypatch.setattr(llm_service, "client", fake)
        return fake.completions

    return install
