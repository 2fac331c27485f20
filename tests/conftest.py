"""Shared fixtures for the whole test suite."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import pytest

if TYPE_CHECKING:
    from collections.abc import Iterator


@pytest.fixture(autouse=True)
def _restore_enquery_logger() -> Iterator[None]:
    """Undo CLI logging setup so ``caplog`` keeps seeing package records."""
    logger = logging.getLogger("enquery")
    handlers = list(logger.handlers)
    level = logger.level
    propagate = logger.propagate
    yield
    logger.handlers[:] = handlers
    logger.setLevel(level)
    logger.propagate = propagate
