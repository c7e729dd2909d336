"""
Shared pytest fixtures.

Test doubles live in helpers.py.
"""

import pytest

from oidmap.config import SessionConfig

from helpers import FakeResolver


@pytest.fixture
def session_config() -> SessionConfig:
    return SessionConfig(target="192.0.2.10", community="public")


@pytest.fixture
def resolver() -> FakeResolver:
    return FakeResolver({"1.3.6.1.2.1.1": "system"})
