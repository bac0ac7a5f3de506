"""
callgate - File scanning and source loading.

Handles:
- Directory walking with exclusions
- Source file loading with encoding fallback
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator

from .config import LintConfig, should_exclude_path


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SourceFile:
    """A loaded source file with content."""
    path: Path
    text: str


def load_source(path: Path) -> SourceFile:
    """Load a single source file."""
    # Try UTF-8 with BOM first, then UTF-8, then latin-1 (which always succeeds)
    for encoding in ("utf-8-sig", "utf-8", "latin-1"):
        try:
            text = path.read_text(encoding=encoding)
            break
        except UnicodeDecodeError:
            continue
    return SourceFile(path=path, text=text)


def iter_files(cfg: LintConfig) -> Iterator[Path]:
    """Iterate over all source files under root (or the explicit list)."""
    if cfg.explicit_files is not None:
        for path in cfg.explicit_files:
            if path.is_file():
                yield path
            else:
                logger.warning("Skipping %s: not a file", path)
        return

    for path in sorted(cfg.root.rglob("*")):
        if not path.is_file():
            continue
        if should_exclude_path(cfg, path.relative_to(cfg.root)):
            continue
        if path.suffix in cfg.source_exts:
            yield path


def load_sources(cfg: LintConfig) -> list[SourceFile]:
    """Load all source files under root."""
    sources: list[SourceFile] = []
    for path in iter_files(cfg):
        try:
            sources.append(load_source(path))
        except OSError as e:
            logger.warning("Skipping unreadable file %s: %s", path, e)
    logger.debug("Loaded %d source file(s) under %s", len(sources), cfg.root)
    return sources
