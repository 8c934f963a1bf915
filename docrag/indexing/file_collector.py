"""
Collect indexable files from files and directory trees.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional, Sequence

logger = logging.getLogger(__name__)

SUPPORTED_EXTENSIONS = (".txt", ".md", ".js", ".ts", ".json", ".py", ".java", ".cpp", ".c", ".h")
MAX_FILE_SIZE = 10 * 1024 * 1024
SKIPPED_DIRS = {"node_modules", "dist", "build"}


@dataclass
class FileInfo:
    path: str
    extension: str
    size: int


class FileCollector:
    """Finds supported files under the given paths (recursively for directories)."""

    def __init__(
        self,
        extensions: Optional[Sequence[str]] = None,
        max_file_size: int = MAX_FILE_SIZE,
    ):
        self.extensions = {e.lower() for e in (extensions or SUPPORTED_EXTENSIONS)}
        self.max_file_size = max_file_size

    def is_supported(self, path: Path, size: int) -> bool:
        if path.suffix.lower() not in self.extensions:
            return False
        if size > self.max_file_size:
            logger.warning("Skipping %s: %s bytes exceeds size limit", path, size)
            return False
        return True

    def _info(self, path: Path) -> Optional[FileInfo]:
        size = path.stat().st_size
        if not self.is_supported(path, size):
            return None
        return FileInfo(path=str(path), extension=path.suffix.lower(), size=size)

    def _walk(self, directory: Path) -> Iterable[FileInfo]:
        try:
            entries = sorted(os.scandir(directory), key=lambda e: e.name)
        except OSError as e:
            logger.warning("Could not read directory %s: %s", directory, e)
            return
        for entry in entries:
            if entry.name.startswith(".") or entry.name in SKIPPED_DIRS:
                continue
            path = Path(entry.path)
            try:
                if entry.is_dir():
                    yield from self._walk(path)
                elif entry.is_file():
                    info = self._info(path)
                    if info is not None:
                        yield info
            except OSError as e:
                logger.warning("Skipping %s: %s", path, e)

    def collect(self, path: str) -> List[FileInfo]:
        """
        Supported files at ``path`` (a file or a directory).

        Raises:
            FileNotFoundError: if ``path`` does not exist.
        """
        target = Path(path).resolve()
        if not target.exists():
            raise FileNotFoundError(f"Path not found: {target}")
        if target.is_dir():
            return list(self._walk(target))
        info = self._info(target)
        return [info] if info is not None else []

    def collect_all(self, paths: Sequence[str]) -> List[FileInfo]:
        """Files from every path, without duplicates, in first-seen order."""
        seen = set()
        files: List[FileInfo] = []
        for path in paths:
            for info in self.collect(path):
                if info.path not in seen:
                    seen.add(info.path)
                    files.append(info)
        logger.info("Collected %s files from %s paths", len(files), len(paths))
        return files
