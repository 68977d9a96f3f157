from __future__ import annotations

from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient

from taskflow.auth import LoginController
from taskflow.main import create_app
from taskflow.models import Task
from taskflow.ratelimit import AttemptTracker, Cooldown
from taskflow.settings import Settings

from .fakes import FakeAuthBackend, FakeClock

BASE_TIME = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)


def make_task(task_id: str, **fields) -> Task:
    """Task with fixed timestamps; any field can be overridden."""
    data = {
        "id": task_id,
        "title": f"Task {task_id}",
        "created_at": BASE_TIME,
        "updated_at": BASE_TIME,
    }
    data.update(fields)
    return Task(**data)


def make_settings(**overrides) -> Settings:
    values = dict(
        auth_backend="memory",
        supabase_url=None,
        supabase_anon_key=None,
        auth_max_attempts=5,
        auth_window_seconds=60.0,
        auth_cooldown_seconds=3.0,
        auth_timeout_seconds=10.0,
        prefers_dark=False,
        cors_allow_origins=["*"],
        log_level="INFO",
    )
    values.update(overrides)
    return Settings(**values)


@pytest.fixture()
def settings() -> Settings:
    return make_settings()


@pytest.fixture()
def client(settings: Settings) -> TestClient:
    """A fresh app per test so store and login state never leak between tests."""
    return TestClient(create_app(settings))


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def backend() -> FakeAuthBackend:
    return FakeAuthBackend()


@pytest.fixture()
def login(backend: FakeAuthBackend, clock: FakeClock) -> LoginController:
    return LoginController(
        backend,
        tracker=AttemptTracker(5, 60.0, clock=clock),
        cooldown=Cooldown(3.0, clock=clock),
    )
