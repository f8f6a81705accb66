from __future__ import annotations

import logging
from collections.abc import Generator

import pytest

from sqlsplit.splitter import clear_splitter_caches


@pytest.fixture(autouse=True)
def reset_splitter_caches() -> Generator[None, None, None]:
    clear_splitter_caches()
    yield
    clear_splitter_caches()


@pytest.fixture(autouse=True)
def restore_sqlsplit_logger() -> Generator[None, None, None]:
    """The CLI installs handlers on the sqlsplit logger; undo that after each test."""
    logger = logging.getLogger("sqlsplit")
    handlers = logger.handlers[:]
    level = logger.level
    propagate = logger.propagate
    yield
    logger.handlers[:] = handlers
    logger.setLevel(level)
    logger.propagate = propagate
