"""Tests for src/config.py.

config.py executes module-level code at import time, so env vars must be set
BEFORE the module is (re-)imported. We use importlib.reload(config) with
monkeypatch to control env vars and re-evaluate module-level assignments.
"""

import importlib
import logging
from pathlib import Path
from unittest.mock import patch

import pytest


@pytest.fixture(autouse=True)
def reload_config():
    """Reload config after each test to restore module state."""
    import config
    yield config
    importlib.reload(config)


@pytest.fixture
def root_logger():
    """Root logger whose original handlers are restored after the test.

    Tests clear the handlers themselves, in the test body, so handlers that
    pytest attaches while the test runs are removed too.
    """
    root = logging.getLogger()
    saved = root.handlers[:]
    yield root
    for handler in root.handlers:
        if handler not in saved:
            handler.close()
    root.handlers[:] = saved


def _reload(monkeypatch) -> object:
    """Reload config with load_dotenv disabled so .env doesn't override monkeypatched env."""
    import config
    with patch("dotenv.load_dotenv"):
        importlib.reload(config)
    return config


# ---------------------------------------------------------------------------
# WORKSPACE_PATH
# ---------------------------------------------------------------------------


def test_workspace_path_default(monkeypatch):
    monkeypatch.delenv("WORKSPACE_PATH", raising=False)
    config = _reload(monkeypatch)
    assert config.WORKSPACE_PATH == Path("~/Documents/notes").expanduser()


def test_workspace_path_custom(monkeypatch, tmp_path):
    monkeypatch.setenv("WORKSPACE_PATH", str(tmp_path))
    config = _reload(monkeypatch)
    assert config.WORKSPACE_PATH == tmp_path


def test_excluded_dirs_contents(monkeypatch):
    config = _reload(monkeypatch)
    assert {".git", ".obsidian", ".trash", "node_modules"} <= config.EXCLUDED_DIRS


# ---------------------------------------------------------------------------
# Chat settings
# ---------------------------------------------------------------------------


def test_ai_settings_default_empty(monkeypatch):
    for name in ("AI_PROVIDER", "AI_MODEL", "AI_API_KEY", "AI_ACCOUNT_ID", "AI_BASE_URL"):
        monkeypatch.delenv(name, raising=False)
    config = _reload(monkeypatch)
    assert config.AI_PROVIDER == ""
    assert config.AI_MODEL == ""
    assert config.AI_ACCOUNT_ID is None
    assert config.AI_BASE_URL is None


def test_ai_settings_from_env(monkeypatch):
    monkeypatch.setenv("AI_PROVIDER", "ollama")
    monkeypatch.setenv("AI_MODEL", "llama3")
    monkeypatch.setenv("OLLAMA_BASE_URL", "http://gpu-box:11434/v1")
    config = _reload(monkeypatch)
    assert config.AI_PROVIDER == "ollama"
    assert config.AI_MODEL == "llama3"
    assert config.OLLAMA_BASE_URL == "http://gpu-box:11434/v1"


# ---------------------------------------------------------------------------
# Engine limits
# ---------------------------------------------------------------------------


def test_max_agent_steps_default(monkeypatch):
    monkeypatch.delenv("MAX_AGENT_STEPS", raising=False)
    config = _reload(monkeypatch)
    assert config.MAX_AGENT_STEPS == 64


def test_max_agent_steps_clamped(monkeypatch):
    monkeypatch.setenv("MAX_AGENT_STEPS", "0")
    config = _reload(monkeypatch)
    assert config.MAX_AGENT_STEPS == 1


def test_fixed_limits(monkeypatch):
    config = _reload(monkeypatch)
    assert config.MAX_NOTE_CONTEXT_LENGTH == 4000
    assert config.MAX_UNIQUE_NAME_ATTEMPTS == 100
    assert config.MAX_SIBLING_NOTE_NAMES == 30
    assert config.MAX_TITLE_LENGTH == 60


# ---------------------------------------------------------------------------
# setup_logging
# ---------------------------------------------------------------------------


def test_setup_logging_creates_log_dir(tmp_path, monkeypatch, root_logger):
    """setup_logging should create the log directory and add file + stderr handlers."""
    log_dir = tmp_path / "test_logs"
    monkeypatch.setenv("LOG_DIR", str(log_dir))
    config = _reload(monkeypatch)

    # Clear any existing handlers on root logger
    root_logger.handlers.clear()

    config.setup_logging("test")

    assert (log_dir / "test.log").exists()
    # Should have 2 handlers: stderr + file
    assert len(root_logger.handlers) == 2


def test_setup_logging_writes_to_file(tmp_path, monkeypatch, root_logger):
    """Log messages should appear in the log file."""
    log_dir = tmp_path / "test_logs"
    monkeypatch.setenv("LOG_DIR", str(log_dir))
    config = _reload(monkeypatch)
    root_logger.handlers.clear()

    config.setup_logging("test")
    logging.getLogger("test_module").info("hello from test")
    for handler in root_logger.handlers:
        handler.flush()

    assert "hello from test" in (log_dir / "test.log").read_text()


def test_setup_logging_falls_back_on_permission_error(tmp_path, monkeypatch, root_logger):
    """If log dir is not writable, should fall back to stderr-only without raising."""
    blocker = tmp_path / "not_a_dir"
    blocker.write_text("I'm a file")
    monkeypatch.setenv("LOG_DIR", str(blocker / "subdir"))
    config = _reload(monkeypatch)
    root_logger.handlers.clear()

    config.setup_logging("test")

    assert len(root_logger.handlers) == 1
