# tests/conftest.py
from __future__ import annotations

import os
import random
from pathlib import Path

import pytest

from src.core.telemetry import TelemetryEmitter
from src.orchestrators.pipeline import DiagnosticPipeline
from src.storage import InMemoryStore, SqliteStore
from src.tools.analysis import MockAnalysisProvider
from src.tools.scraping import MockScrapingProvider
from tests.utils import FIXED_NOW, make_settings


# -------- Global deterministic seed --------
@pytest.fixture(autouse=True, scope="session")
def _seed_session():
    random.seed(1337)
    os.environ.setdefault("PYTHONHASHSEED", "0")
    yield


# -------- Isolation from a developer's .env / LISTING_* env --------
@pytest.fixture(autouse=True)
def _clean_listing_env(monkeypatch, tmp_path: Path):
    for key in list(os.environ):
        if key.startswith("LISTING_"):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.chdir(tmp_path)
    yield


# -------- Stores --------
@pytest.fixture
def memory_store():
    return InMemoryStore()


@pytest.fixture
def sqlite_store():
    store = SqliteStore(":memory:")
    yield store
    store.close()


@pytest.fixture(params=["memory", "sqlite"])
def any_store(request):
    """Runs a test against both SubmissionStore implementations."""
    if request.param == "memory":
        yield InMemoryStore()
        return
    store = SqliteStore(":memory:")
    yield store
    store.close()


# -------- Settings --------
@pytest.fixture
def settings(tmp_path: Path):
    return make_settings(reports_dir=str(tmp_path / "reports"))


# -------- Pipeline --------
@pytest.fixture
def sleeps():
    """Records delays requested by the retry loop instead of sleeping."""
    return []


@pytest.fixture
def pipeline_factory(memory_store, settings, sleeps):
    """
    Callable factory building a DiagnosticPipeline over the in-memory store.

    Usage:
        pipe = pipeline_factory()
        pipe = pipeline_factory(scraper=MockScrapingProvider(fail_times=2))
    """

    def _factory(
        *,
        scraper=None,
        analyzer=None,
        store=None,
        comp_source=None,
        telemetry=None,
        clock=None,
        **setting_overrides,
    ) -> DiagnosticPipeline:
        cfg = settings.model_copy(update=setting_overrides) if setting_overrides else settings
        return DiagnosticPipeline(
            store if store is not None else memory_store,
            scraper if scraper is not None else MockScrapingProvider(),
            analyzer if analyzer is not None else MockAnalysisProvider(),
            cfg,
            telemetry=telemetry or TelemetryEmitter(False),
            comp_source=comp_source,
            clock=clock or (lambda: FIXED_NOW),
            sleep=sleeps.append,
        )

    return _factory


# -------- Pytest markers --------
def pytest_configure(config):
    config.addinivalue_line("markers", "integration: marks integration tests")
