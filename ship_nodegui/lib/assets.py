from __future__ import annotations

import logging
import os
import shutil
from pathlib import Path
from typing import Iterable

logger = logging.getLogger(__name__)


def copy_tree(src: str, dst: str) -> None:
    """Copy the contents of src into dst, keeping symlinks and dotfiles."""

    s = Path(src)
    d = Path(dst)
    if not s.is_dir():
        raise FileNotFoundError(src)

    logger.info("Copy tree %s -> %s", str(s), str(d))
    d.mkdir(parents=True, exist_ok=True)
    for item in sorted(s.rglob("*")):
        rel = item.relative_to(s)
        out = d / rel
        if item.is_symlink():
            out.parent.mkdir(parents=True, exist_ok=True)
            if out.is_symlink() or out.exists():
                out.unlink()
            out.symlink_to(os.readlink(item))
        elif item.is_dir():
            out.mkdir(parents=True, exist_ok=True)
        else:
            out.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy2(item, out)


def is_safe_pattern(pattern: str) -> bool:
    """A removal pattern must stay inside the directory it is applied to."""

    if not pattern.strip():
        return False
    p = Path(pattern)
    if p.is_absolute() or pattern.startswith(("/", "\\")):
        return False
    return ".." not in p.parts


def remove_matching(root: str, patterns: Iterable[str]) -> int:
    """Delete every file or directory under root matching one of the glob patterns.

    Returns the number of removed entries.
    """

    base = Path(root).resolve()
    removed = 0
    for pattern in patterns:
        for match in sorted(base.glob(pattern), key=lambda m: len(m.parts), reverse=True):
            if not (match.is_symlink() or match.exists()):
                # Already gone with a parent directory matched earlier.
                continue
            if base not in match.resolve().parents and not match.is_symlink():
                raise ValueError(f"Refusing to remove {match}: outside {base}")
            if match.is_dir() and not match.is_symlink():
                shutil.rmtree(match)
            else:
                match.unlink()
            removed += 1
    logger.info("Removed %d entries from %s", removed, str(base))
    return removed


def prune_empty_directories(directory: str, *, keep_root: bool = False) -> None:
    """Remove empty directories below (and including) directory, depth first."""

    d = Path(directory)
    for child in d.iterdir():
        if child.is_dir() and not child.is_symlink():
            prune_empty_directories(str(child))
    if not keep_root and not any(d.iterdir()):
        d.rmdir()
