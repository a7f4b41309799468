"""
Pytest Configuration and Fixtures.

This file configures pytest and provides shared fixtures for all tests:
a scripted generation provider, a store in a temp directory, a fixed clock
and sample provider payloads.
"""
import asyncio
import json
from datetime import datetime, timedelta

import pytest

from curioloop.config import Settings
from curioloop.generation.gateway import GenerationGateway
from curioloop.generation.provider import GenerationRequest
from curioloop.progression.engine import ProgressionEngine
from curioloop.storage.store import LearningStore


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "smoke: Smoke tests for CLI commands")


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their location."""
    for item in items:
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
        elif "smoke" in str(item.fspath):
            item.add_marker(pytest.mark.smoke)


# =============================================================================
# Test Doubles
# =============================================================================


class FakeProvider:
    """
    Generation provider with scripted replies per operation.

    Replies are consumed in order. A dict is sent as JSON text, a str as-is,
    and an Exception instance is raised. Setting ``gate`` to an asyncio.Event
    holds every call until the event is set.
    """

    def __init__(self, replies=None):
        self.replies = {op: list(r) for op, r in (replies or {}).items()}
        self.requests: list[GenerationRequest] = []
        self.gate: asyncio.Event | None = None

    def script(self, operation, *replies):
        self.replies.setdefault(operation, []).extend(replies)
        return self

    def calls(self, operation):
        return [r for r in self.requests if r.operation == operation]

    async def generate(self, request: GenerationRequest) -> str:
        self.requests.append(request)
        if self.gate is not None:
            await self.gate.wait()

        queue = self.replies.get(request.operation)
        if not queue:
            raise RuntimeError(f"no scripted reply for {request.operation}")
        reply = queue.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply if isinstance(reply, str) else json.dumps(reply)


class FixedClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


# =============================================================================
# Sample Payloads
# =============================================================================


def make_question(qid, correct_index=0, text=None):
    return {
        "id": qid,
        "type": "mcq",
        "question": text or f"Question {qid}?",
        "options": ["Alpha", "Beta", "Gamma", "Delta"],
        "correctIndex": correct_index,
        "explanation": f"Because of {qid}.",
    }


@pytest.fixture
def diagnostic_payload():
    """Diagnostic quiz reply as the provider sends it."""
    return {
        "status": "ok",
        "topic": "Python",
        "quiz": [
            make_question("q1", 0),
            make_question("q2", 1),
            make_question("q3", 2),
        ],
    }


@pytest.fixture
def plan_payload():
    """Plan reply with statuses the gateway must overwrite."""
    return {
        "estimated_level": "Beginner",
        "strengths": ["syntax"],
        "weaknesses": ["generators"],
        "learning_plan": [
            {
                "chapter_id": 1,
                "title": "Basics",
                "objective": "Variables and types",
                "estimated_time_minutes": 10,
                "difficulty": "easy",
                "topics": ["variables"],
                "status": "completed",
                "score": 90,
            },
            {
                "chapter_id": 2,
                "title": "Control Flow",
                "objective": "Branches and loops",
                "estimated_time_minutes": 15,
                "difficulty": "medium",
                "status": "unlocked",
            },
            {
                "chapter_id": 3,
                "title": "Generators",
                "objective": "Lazy iteration",
                "estimated_time_minutes": 20,
                "difficulty": "Hard",
            },
        ],
    }


@pytest.fixture
def chapter_payload():
    """Chapter content reply."""
    return {
        "chapter_id": 1,
        "title": "Basics",
        "summary": "Names point at objects.",
        "key_points": ["Everything is an object", "Names are references"],
        "example": "x = 1",
        "analogy": "Labels on boxes.",
        "diagram_prompt": "Arrows from names to objects",
        "external_resources": {
            "videos": [
                {
                    "title": "Python basics",
                    "url": "https://www.youtube.com/results?search_query=python+basics",
                    "description": "Search results",
                }
            ],
            "blogs": [],
            "docs": [{"title": "Tutorial", "url": "https://docs.python.org/3/tutorial/", "description": ""}],
        },
        "chapter_quiz": [
            make_question("c1", 0),
            make_question("c2", 0),
            make_question("c3", 0),
        ],
    }


@pytest.fixture
def adapt_payload():
    """Adaptive update reply."""
    return {
        "chapter_id": 1,
        "chapter_score": 67,
        "feedback": "Nice work, review loops.",
        "adjustments": {
            "difficulty_change": "same",
            "added_remedial_content": ["loops"],
            "skipped_future_topics": [],
            "added_advanced_topics": [],
        },
        "updated_plan": [],
    }


# =============================================================================
# Wiring
# =============================================================================


@pytest.fixture
def data_dir(tmp_path):
    return tmp_path / "data"


@pytest.fixture
def settings(data_dir):
    return Settings(data_dir=data_dir, log_level="DEBUG")


@pytest.fixture
def clock():
    return FixedClock(datetime(2024, 3, 14, 9, 30))


@pytest.fixture
def fake_provider():
    return FakeProvider()


@pytest.fixture
def gateway(fake_provider, settings):
    return GenerationGateway(fake_provider, settings)


@pytest.fixture
def store(data_dir):
    return LearningStore(data_dir)


@pytest.fixture
def engine(gateway, store, clock):
    return ProgressionEngine(gateway, store, clock=clock)
