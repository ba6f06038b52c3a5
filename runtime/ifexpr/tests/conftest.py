"""
Pytest fixtures for the ifexpr runtime tests.
"""

import io
import logging

import pytest

from ifexpr import IFExprConfig, IFExprRuntime


@pytest.fixture
def out():
    """Stream collecting dbg output"""
    return io.StringIO()


@pytest.fixture
def runtime(out):
    return IFExprRuntime(out=out)


@pytest.fixture
def make_runtime(out):
    """Build a runtime with custom limits, sharing the dbg stream"""
    def _make(**overrides):
        return IFExprRuntime(config=IFExprConfig(**overrides), out=out)
    return _make


@pytest.fixture
def ifexpr_logs(monkeypatch, caplog):
    """Route package log records to caplog even after configure_logging()"""
    monkeypatch.setattr(logging.getLogger("ifexpr"), "propagate", True)
    caplog.set_level(logging.DEBUG, logger="ifexpr")
    return caplog


@pytest.fixture(autouse=True)
def _reset_ifexpr_logging():
    """Drop handlers installed by configure_logging() between tests"""
    yield
    from ifexpr import logging_setup

    logger = logging.getLogger("ifexpr")
    for h in list(logger.handlers):
        logger.removeHandler(h)
    logger.setLevel(logging.NOTSET)
    logger.propagate = True
    logging_setup._handler = None
