"""
Pytest fixtures and test configuration for quint tests.
"""

import logging
from pathlib import Path

import pytest

from quint.fpf.fsm import FSM
from quint.fpf.preconditions import PreconditionChecker
from quint.fpf.tools import Tools
from quint.logging_config import GATE_LOGGER, setup_quint_logging
from quint.storage import flat_files
from quint.storage.sqlite import SQLiteStore
from quint.types import Holon, Layer


@pytest.fixture(autouse=True)
def isolated_env(tmp_path, monkeypatch):
    """Keep logs and project resolution away from the real home directory."""
    monkeypatch.setenv("QUINT_DATA_DIR", str(tmp_path / "quint-home"))
    monkeypatch.delenv("QUINT_ROOT", raising=False)
    monkeypatch.delenv("QUINT_DB_PATH", raising=False)
    monkeypatch.delenv("QUINT_LOG_LEVEL", raising=False)


@pytest.fixture
def project_root(tmp_path) -> Path:
    root = tmp_path / "project"
    root.mkdir()
    return root


@pytest.fixture
def fpf_dir(project_root) -> Path:
    path = project_root / ".quint"
    path.mkdir(exist_ok=True)
    return path


@pytest.fixture
def knowledge_dir(fpf_dir) -> Path:
    path = fpf_dir / "knowledge"
    flat_files.ensure_tiers(path)
    return path


@pytest.fixture
def fsm(fpf_dir) -> FSM:
    return FSM.load(fpf_dir / "state.json")


@pytest.fixture
def store(fpf_dir) -> SQLiteStore:
    return SQLiteStore(fpf_dir / "quint.db")


@pytest.fixture
def checker(fsm, knowledge_dir) -> PreconditionChecker:
    """Checker without a structured store."""
    return PreconditionChecker(fsm, knowledge_dir)


@pytest.fixture
def store_checker(fsm, knowledge_dir, store) -> PreconditionChecker:
    """Checker backed by a real SQLite store."""
    return PreconditionChecker(fsm, knowledge_dir, store)


@pytest.fixture
def tools(project_root) -> Tools:
    """An initialized project."""
    t = Tools.open(project_root)
    t.init_project()
    return t


@pytest.fixture
def holon_file(knowledge_dir):
    """Factory writing a minimal holon file into a tier."""

    def _make(holon_id: str, layer: Layer = Layer.L0, title: str = "") -> Path:
        holon = Holon(id=holon_id, title=title or holon_id, layer=layer.value, content="x")
        return flat_files.write_holon_file(knowledge_dir, holon)

    return _make


@pytest.fixture
def quint_logging(isolated_env):
    """File logging set up under the isolated data dir, torn down afterwards."""
    yield setup_quint_logging(project="test")
    for name in ("quint", GATE_LOGGER):
        logger = logging.getLogger(name)
        for handler in logger.handlers:
            handler.close()
        logger.handlers.clear()
        logger.setLevel(logging.NOTSET)
    logging.getLogger(GATE_LOGGER).propagate = True
