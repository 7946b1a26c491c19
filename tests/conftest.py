"""Global pytest configuration."""

from __future__ import annotations

import asyncio
import inspect
import os

import pytest

# Reputation lookups must never reach the network or the mock during tests.
os.environ.pop("SAFE_BROWSING_API_KEY", None)
os.environ.pop("SAFE_BROWSING_MOCK", None)


@pytest.hookimpl(tryfirst=True)
def pytest_pyfunc_call(pyfuncitem):  # type: ignore[override]
    if inspect.iscoroutinefunction(pyfuncitem.obj):
        testargs = {
            name: pyfuncitem.funcargs[name] for name in pyfuncitem._fixtureinfo.argnames
        }
        loop = asyncio.new_event_loop()
        try:
            loop.run_until_complete(pyfuncitem.obj(**testargs))
        finally:
            loop.close()
        return True
    return None


def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line("markers", "asyncio: mark test as requiring asyncio support")


@pytest.fixture(autouse=True)
def _reset_metrics():
    from qrguardian.analyzer.metrics import metrics

    metrics.reset()
    yield
    metrics.reset()
