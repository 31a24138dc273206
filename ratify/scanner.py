from __future__ import annotations
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Iterator, List, Optional, Set

logger = logging.getLogger(__name__)


@dataclass
class ScanError:
	path: Path
	message: str

	def __str__(self) -> str:
		return f"Failed reading directory {self.path}: {self.message}"


@dataclass
class ScanResult:
	root: Path
	paths: Set[str] = field(default_factory=set)
	errors: List[ScanError] = field(default_factory=list)

	def error_for(self, relative: str) -> Optional[ScanError]:
		"""The error of the unreadable directory relative lies under, if any."""
		for err in self.errors:
			directory = relative_path(self.root, err.path)
			if directory == "." or relative.startswith(directory + "/"):
				return err
		return None


def relative_path(root: Path, path: Path) -> str:
	return Path(path).relative_to(root).as_posix()


def iter_entries(root: Path, errors: List[ScanError]) -> Iterator[Path]:
	"""Yield every non-directory entry under root without following directory symlinks."""
	stack = [Path(root)]
	while stack:
		current = stack.pop()
		try:
			with os.scandir(current) as entries:
				for entry in entries:
					try:
						if entry.is_dir(follow_symlinks=False):
							stack.append(Path(entry.path))
							continue
						if entry.is_symlink() and entry.is_dir():
							logger.debug("Skipping symlink to directory %s", entry.path)
							continue
					except OSError as exc:
						# hashing it later reports the error against this path
						logger.debug("Cannot inspect %s: %s", entry.path, exc)
					yield Path(entry.path)
		except OSError as exc:
			logger.warning("Skipping directory %s: %s", current, exc)
			errors.append(ScanError(current, str(exc)))


def scan_tree(root: Path, exclude: Iterable[Path] = ()) -> ScanResult:
	root = Path(root)
	excluded = {Path(p) for p in exclude}
	result = ScanResult(root=root)
	for path in iter_entries(root, result.errors):
		if path in excluded:
			logger.debug("Excluding %s from scan", path)
			continue
		result.paths.add(relative_path(root, path))
	logger.debug("Found %d files under %s", len(result.paths), root)
	return result
