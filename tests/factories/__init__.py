"""Test factories: a scripted fake service and helpers to wire a harness to it."""

from tests.factories.harness import FakeClock, make_context, make_harness
from tests.factories.service import FakeService, reply

__all__ = [
    "FakeClock",
    "FakeService",
    "make_context",
    "make_harness",
    "reply",
]
