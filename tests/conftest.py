"""
Shared fixtures.
"""

from typing import Callable

import pytest

from fakes import FakeOpenAI


@pytest.fixture
def fake_openai() -> Callable[..., FakeOpenAI]:
    return FakeOpenAI
