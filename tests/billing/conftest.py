"""Expose billing fixtures for pytest."""

from tests.billing._fixtures.shared import *  # noqa: F401,F403
