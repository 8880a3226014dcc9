"""Workspace identity derivation."""

from __future__ import annotations

import hashlib
import os
from pathlib import Path

NAME_PREFIX = "cyd-"
DIGEST_LENGTH = 12


def workspace_path(path: str | Path | None = None) -> str:
    """Return the absolute workspace path without resolving symlinks.

    Two symlinked spellings of one directory yield two different workspaces;
    the container name follows the path string the user is standing in.
    """
    if path is None:
        return os.path.abspath(os.getcwd())
    return os.path.abspath(os.path.expanduser(str(path)))


def identity_for(path: str) -> str:
    digest = hashlib.sha1(path.encode("utf-8")).hexdigest()[:DIGEST_LENGTH]
    return f"{NAME_PREFIX}{digest}"
