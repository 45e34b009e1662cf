"""
Template discovery and output placement.

Patterns use git wildmatch semantics (pathspec): '**' spans directories and
matching is done on POSIX-style paths relative to the input root.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import List

import pathspec

from .config import DEFAULT_GLOB

logger = logging.getLogger(__name__)

__all__ = [
    "TemplateFile",
    "compile_pattern",
    "discover_templates",
    "mirror_output_path",
    "ensure_parent_dir",
]


@dataclass(frozen=True)
class TemplateFile:
    """One discovered template: absolute path and POSIX path relative to the input root."""
    abs_path: Path
    rel_path: str


def compile_pattern(pattern: str) -> pathspec.PathSpec:
    """Compile a glob into a PathSpec; blank means the default '**/*.ftl'."""
    pattern = pattern.strip().replace(os.sep, "/") or DEFAULT_GLOB
    return pathspec.PathSpec.from_lines("gitwildmatch", [pattern])


def discover_templates(root: Path, pattern: str) -> List[TemplateFile]:
    """
    Find files under root matching pattern.

    Returns:
        Matches sorted by relative path
    """
    root = Path(root)
    spec = compile_pattern(pattern)

    files: List[TemplateFile] = []
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames.sort()
        for filename in filenames:
            abs_path = Path(dirpath) / filename
            rel_path = abs_path.relative_to(root).as_posix()
            if spec.match_file(rel_path):
                files.append(TemplateFile(abs_path=abs_path, rel_path=rel_path))

    files.sort(key=lambda f: f.rel_path)
    logger.debug("discovered %d template(s) under %s matching %r", len(files), root, pattern)
    return files


def mirror_output_path(out_root: Path, rel_path: str, ext: str) -> Path:
    """Same relative location under out_root, with the last suffix replaced by ext."""
    rel = Path(rel_path)
    if ext:
        rel = rel.with_suffix(ext) if rel.suffix else rel.with_name(rel.name + ext)
    return Path(out_root) / rel


def ensure_parent_dir(path: Path) -> None:
    """Create the parent directory tree of path."""
    Path(path).parent.mkdir(parents=True, exist_ok=True)
