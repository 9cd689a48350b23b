"""Path and environment resolution for quint."""

import logging
import os
import subprocess
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

FPF_DIR_NAME = ".quint"
DEFAULT_DB_NAME = "quint.db"


def get_quint_home() -> Path:
    """Data home for logs and other per-user files.

    ``QUINT_DATA_DIR`` overrides the default ``~/.quint-code``.
    """
    override = os.environ.get("QUINT_DATA_DIR")
    if override:
        return Path(override).expanduser()
    return Path.home() / ".quint-code"


def _get_git_root() -> Optional[str]:
    """Return the git top-level directory for the cwd, if any."""
    try:
        result = subprocess.run(
            ["git", "rev-parse", "--show-toplevel"],
            capture_output=True,
            text=True,
            timeout=2,
        )
    except (OSError, subprocess.SubprocessError) as e:
        logger.debug(f"git root lookup failed: {e}")
        return None
    if result.returncode != 0:
        return None
    root = result.stdout.strip()
    return root or None


def resolve_project_root(explicit: Optional[str] = None) -> Path:
    """Resolve the project root holding the ``.quint`` directory.

    Resolution order:
    1. Explicit argument
    2. ``QUINT_ROOT`` environment variable
    3. Git root of the current directory
    4. Current directory
    """
    if explicit:
        return Path(explicit).expanduser().resolve()

    env_root = os.environ.get("QUINT_ROOT")
    if env_root:
        return Path(env_root).expanduser().resolve()

    git_root = _get_git_root()
    if git_root:
        return Path(git_root)

    return Path(os.getcwd())


def get_fpf_dir(root: Path) -> Path:
    return Path(root) / FPF_DIR_NAME


def get_db_path(root: Path) -> Path:
    """Database location; ``QUINT_DB_PATH`` overrides the project default."""
    override = os.environ.get("QUINT_DB_PATH")
    if override:
        return Path(override).expanduser()
    return get_fpf_dir(root) / DEFAULT_DB_NAME


def slugify(text: str, max_length: int = 60) -> str:
    """Turn a title into a filesystem-safe identifier."""
    chars = []
    for c in text.lower().strip():
        if c.isalnum():
            chars.append(c)
        elif chars and chars[-1] != "-":
            chars.append("-")
    slug = "".join(chars).strip("-")[:max_length].rstrip("-")
    return slug or "holon"


def validate_holon_id(holon_id: str, field_name: str = "holon_id") -> str:
    """Reject ids that would resolve outside a knowledge tier directory.

    Raises:
        ValueError: The id is empty or contains a path component
    """
    if not holon_id or not holon_id.strip():
        raise ValueError(f"{field_name} cannot be empty")
    if "/" in holon_id or "\\" in holon_id:
        raise ValueError(f"{field_name} must not contain path separators")
    if holon_id.strip() in (".", ".."):
        raise ValueError(f"{field_name} must not be a relative path component")
    return holon_id
