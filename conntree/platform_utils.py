"""Platform-related utility functions."""

import logging
import os
from pathlib import Path

APP_NAME = "conntree"

logger = logging.getLogger(__name__)


def _normalize_path(path: str) -> str:
    """Expand user references and return an absolute path."""
    return os.path.abspath(os.path.expanduser(path))


def _home_dir() -> str:
    expanded = os.path.expanduser("~")
    if expanded and expanded != "~":
        return expanded
    try:
        return str(Path.home())
    except Exception:
        logger.warning(
            "Unable to determine the user's home directory; "
            "falling back to the current working directory."
        )
        return os.getcwd()


def _xdg_dir(env_name: str, fallback: str) -> str:
    value = os.environ.get(env_name)
    if value and value.strip():
        return _normalize_path(value)
    return _normalize_path(os.path.join(_home_dir(), fallback))


def get_config_dir() -> str:
    """Return the per-user configuration directory for conntree.

    ``CONNTREE_CONFIG_DIR`` overrides the location entirely; otherwise the
    XDG config home is used.
    """
    override = os.environ.get("CONNTREE_CONFIG_DIR")
    if override:
        return _normalize_path(override)
    return os.path.join(_xdg_dir("XDG_CONFIG_HOME", ".config"), APP_NAME)


def get_data_dir() -> str:
    """Return the per-user data directory for conntree."""
    return os.path.join(_xdg_dir("XDG_DATA_HOME", os.path.join(".local", "share")), APP_NAME)
