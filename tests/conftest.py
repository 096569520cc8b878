"""Shared fakes for the offline test suite."""

import random
from typing import Any, Callable, Dict, List, Optional, Union

import pytest

from memory.cache import TTLCache
from tools.throttle import RandomDelayThrottle

Outcome = Union[str, BaseException]


class FakeGenerator:
    """Stands in for OllamaTextGenerator.

    ``respond`` is either a fixed string / exception or a callable
    ``(model, prompt) -> str | exception``.
    """

    def __init__(self, respond: Union[Outcome, Callable[[str, str], Outcome]] = "{}") -> None:
        self.respond = respond
        self.calls: List[Dict[str, Any]] = []

    async def __call__(self, model: str, prompt: str, *, system: str = "", json_mode: bool = False) -> str:
        self.calls.append({"model": model, "prompt": prompt, "system": system, "json_mode": json_mode})
        outcome = self.respond(model, prompt) if callable(self.respond) else self.respond
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome

    @property
    def models_called(self) -> List[str]:
        return [call["model"] for call in self.calls]


class StatusError(Exception):
    """Client error carrying an HTTP status, like ollama.ResponseError."""

    def __init__(self, status_code: int, message: str = "") -> None:
        super().__init__(message or f"status {status_code}")
        self.status_code = status_code


class RecordingSleep:
    def __init__(self) -> None:
        self.delays: List[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


class FakeClock:
    def __init__(self, now: float = 1_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def page_html(
    h2: Optional[List[str]] = None,
    h3: Optional[List[str]] = None,
    body: str = "",
    head: str = "",
) -> str:
    """Minimal competitor page with the given headings."""
    h2_html = "".join(f"<h2>{h}</h2>" for h in h2 or [])
    h3_html = "".join(f"<h3>{h}</h3>" for h in h3 or [])
    return (
        f"<html><head><title>Page</title>{head}</head>"
        f"<body>{h2_html}{h3_html}<p>{body}</p></body></html>"
    )


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def throttle(recording_sleep: RecordingSleep) -> RandomDelayThrottle:
    return RandomDelayThrottle(sleep=recording_sleep, rng=random.Random(7))


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def serp_cache(clock: FakeClock) -> TTLCache:
    return TTLCache(900, name="serp-test", clock=clock)
