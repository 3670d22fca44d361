"""Shared configuration for the note batch agent."""

import logging
import os
from logging.handlers import RotatingFileHandler
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

PROJECT_ROOT = Path(__file__).parent.parent

# Workspace path - the root folder whose notes get organized
WORKSPACE_PATH = Path(os.getenv("WORKSPACE_PATH", "~/Documents/notes")).expanduser()

# Directories never offered as move destinations
EXCLUDED_DIRS = {'.venv', '.trash', '.obsidian', '.git', 'node_modules'}

# File extensions treated as notes (compared case-insensitively)
NOTE_EXTENSIONS = (".md",)

# Chat configuration (provider: openai, anthropic, google, ollama, codex_oauth)
AI_PROVIDER = os.getenv("AI_PROVIDER", "")
AI_MODEL = os.getenv("AI_MODEL", "")
AI_API_KEY = os.getenv("AI_API_KEY", "")
AI_ACCOUNT_ID = os.getenv("AI_ACCOUNT_ID") or None
AI_BASE_URL = os.getenv("AI_BASE_URL") or None

# Provider endpoints (all reached through the OpenAI-compatible API)
OPENAI_BASE_URL = os.getenv("OPENAI_BASE_URL", "https://api.openai.com/v1")
ANTHROPIC_BASE_URL = os.getenv("ANTHROPIC_BASE_URL", "https://api.anthropic.com/v1/")
GOOGLE_BASE_URL = os.getenv(
    "GOOGLE_BASE_URL", "https://generativelanguage.googleapis.com/v1beta/openai/"
)
OLLAMA_BASE_URL = os.getenv("OLLAMA_BASE_URL", "http://localhost:11434/v1")
CODEX_BASE_URL = os.getenv("CODEX_BASE_URL", "https://chatgpt.com/backend-api/codex")

# Agent loop
MAX_AGENT_STEPS = max(1, int(os.getenv("MAX_AGENT_STEPS", "64")))
TOOL_TIMEOUT = int(os.getenv("TOOL_TIMEOUT", "60"))  # seconds

# read_note budget - the prompt quotes this figure, keep them in sync
MAX_NOTE_CONTEXT_LENGTH = 4000

# Rename batches
MAX_UNIQUE_NAME_ATTEMPTS = 100
MAX_SIBLING_NOTE_NAMES = 30
MAX_TITLE_LENGTH = 60

# Logging configuration
LOG_DIR = Path(os.getenv("LOG_DIR", str(PROJECT_ROOT / "logs"))).expanduser()
LOG_MAX_BYTES = int(os.getenv("LOG_MAX_BYTES", str(5 * 1024 * 1024)))  # 5 MB
LOG_BACKUP_COUNT = int(os.getenv("LOG_BACKUP_COUNT", "3"))


def setup_logging(name: str) -> None:
    """Configure logging with both stderr and rotating file output.

    Args:
        name: Log file name without extension (e.g. "move_notes").
    """
    fmt = "%(asctime)s %(name)s %(levelname)s %(message)s"
    root = logging.getLogger()
    root.setLevel(logging.INFO)

    stderr_handler = logging.StreamHandler()
    stderr_handler.setFormatter(logging.Formatter(fmt))
    root.addHandler(stderr_handler)

    # Rotating file handler (best-effort, fall back to stderr-only)
    try:
        LOG_DIR.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            LOG_DIR / f"{name}.log",
            maxBytes=LOG_MAX_BYTES,
            backupCount=LOG_BACKUP_COUNT,
            encoding="utf-8",
        )
        file_handler.setFormatter(logging.Formatter(fmt))
        root.addHandler(file_handler)
    except OSError as e:
        root.warning(f"Could not set up file logging: {e}; using stderr only")
