from __future__ import annotations
import logging
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, Iterable, Iterator, List, Optional, Tuple

from ratify.algo import Algorithm
from ratify.errors import (
	AmbiguousAlgorithm,
	CatalogExists,
	CatalogNotFound,
	CatalogReadError,
	CatalogWriteError,
	MalformedCatalog,
)

logger = logging.getLogger(__name__)

SEPARATOR = " *"
ENCODING = "utf-8"
ENCODING_ERRORS = "surrogateescape"


@dataclass
class CatalogEntry:
	relative_path: str
	digest: str

	def to_line(self) -> str:
		return f"{self.digest}{SEPARATOR}{self.relative_path}\n"


class Catalog:
	def __init__(self, root: Path, path: Path, algorithm: Algorithm, entries: Iterable[CatalogEntry] = ()) -> None:
		self.root = Path(root)
		self.path = Path(path)
		self.algorithm = algorithm
		self._entries: Dict[str, str] = {}
		for entry in entries:
			self.set_entry(entry.relative_path, entry.digest)

	def __len__(self) -> int:
		return len(self._entries)

	def __contains__(self, relative_path: str) -> bool:
		return relative_path in self._entries

	def __iter__(self) -> Iterator[CatalogEntry]:
		for relative_path, digest in self._entries.items():
			yield CatalogEntry(relative_path, digest)

	def paths(self) -> List[str]:
		return list(self._entries)

	def get(self, relative_path: str) -> Optional[str]:
		return self._entries.get(relative_path)

	def set_entry(self, relative_path: str, digest: str) -> None:
		# replacing keeps the entry's position in the file
		self._entries[relative_path] = digest.lower()

	def remove_entry(self, relative_path: str) -> None:
		self._entries.pop(relative_path, None)

	def absolute_path(self, relative_path: str) -> Path:
		return self.root.joinpath(*relative_path.split("/"))

	def write(self) -> None:
		"""Replace the catalog file with the current entries in a single rename."""
		directory = self.path.parent
		try:
			fd, tmp_name = tempfile.mkstemp(prefix=f".{self.path.name}.", suffix=".tmp", dir=directory)
		except OSError as exc:
			raise CatalogWriteError(self.path, exc) from exc
		try:
			with os.fdopen(fd, "w", encoding=ENCODING, errors=ENCODING_ERRORS, newline="\n") as handle:
				for entry in self:
					handle.write(entry.to_line())
			os.chmod(tmp_name, _file_mode(self.path))
			os.replace(tmp_name, self.path)
		except BaseException:
			try:
				os.unlink(tmp_name)
			except OSError:
				pass
			raise
		logger.info("Wrote %d entries to %s", len(self), self.path)


def _file_mode(path: Path) -> int:
	try:
		return path.stat().st_mode & 0o777
	except OSError:
		umask = os.umask(0)
		os.umask(umask)
		return 0o666 & ~umask


def catalog_filename(root: Path, algorithm: Algorithm) -> str:
	name = Path(root).name or "signatures"
	return f"{name}.{algorithm}"


def default_catalog_path(root: Path, algorithm: Algorithm) -> Path:
	return Path(root) / catalog_filename(root, algorithm)


def resolve_catalog_file(root: Path, catalog_file: Path) -> Path:
	catalog_file = Path(catalog_file).expanduser()
	if not catalog_file.is_absolute():
		catalog_file = Path(root) / catalog_file
	return Path(os.path.abspath(catalog_file))


def _candidate_paths(root: Path, algorithm: Algorithm) -> List[Path]:
	root = Path(root)
	inside = default_catalog_path(root, algorithm)
	beside = root.parent / catalog_filename(root, algorithm)
	return [inside] if beside == inside else [inside, beside]


def locate_catalog(
	root: Path,
	algorithm: Optional[Algorithm] = None,
	catalog_file: Optional[Path] = None,
) -> Tuple[Path, Algorithm]:
	if catalog_file is not None:
		path = resolve_catalog_file(root, catalog_file)
		algo = algorithm or Algorithm.from_extension(path)
		if algo is None:
			raise AmbiguousAlgorithm(
				f"Failed to detect algorithm from catalog file {path}. "
				"Please specify the algorithm explicitly using -a/--algorithm"
			)
		return path, algo

	algorithms = [algorithm] if algorithm else list(Algorithm)
	for algo in algorithms:
		for path in _candidate_paths(root, algo):
			logger.debug("Searching for %s...", path)
			if path.is_file():
				return path, algo
	if algorithm:
		return default_catalog_path(root, algorithm), algorithm
	raise CatalogNotFound(
		f"Failed to detect a catalog file for {root} "
		f"(looked for {Path(root).name or 'signatures'}.<algorithm>)"
	)


def parse_catalog(lines: Iterable[str], algorithm: Algorithm, source: Path) -> List[CatalogEntry]:
	entries: List[CatalogEntry] = []
	seen = set()
	for lineno, raw in enumerate(lines, start=1):
		line = raw.rstrip("\r\n")
		digest, sep, relative_path = line.partition(SEPARATOR)
		if not sep or not relative_path:
			raise MalformedCatalog(source, lineno, "syntax error (expected '<digest> *<path>')")
		if not algorithm.is_valid_digest(digest):
			raise MalformedCatalog(
				source,
				lineno,
				f"invalid {algorithm} digest {digest!r} (expected {algorithm.digest_len} hex digits)",
			)
		if relative_path in seen:
			raise MalformedCatalog(source, lineno, f"entry {relative_path!r} appears multiple times")
		seen.add(relative_path)
		entries.append(CatalogEntry(relative_path, digest.lower()))
	return entries


def load_catalog(
	root: Path,
	algorithm: Optional[Algorithm] = None,
	catalog_file: Optional[Path] = None,
) -> Catalog:
	root = Path(root)
	path, algo = locate_catalog(root, algorithm, catalog_file)
	logger.debug("Opening catalog file %s (%s)...", path, algo)
	try:
		with path.open("r", encoding=ENCODING, errors=ENCODING_ERRORS, newline="") as handle:
			entries = parse_catalog(handle, algo, path)
	except OSError as exc:
		raise CatalogReadError(path, exc) from exc
	logger.debug("Loaded %d entries from %s", len(entries), path)
	return Catalog(root, path, algo, entries)


def new_catalog(
	root: Path,
	algorithm: Algorithm,
	catalog_file: Optional[Path] = None,
	overwrite: bool = False,
	confirm_overwrite: Optional[Callable[[Path], bool]] = None,
) -> Catalog:
	"""Create an empty catalog for root, refusing to clobber an existing file.

	An existing destination is only replaced when overwrite is set or when
	confirm_overwrite (if given) answers yes for it.
	"""
	root = Path(root)
	if catalog_file is not None:
		path = resolve_catalog_file(root, catalog_file)
	else:
		path = default_catalog_path(root, algorithm)
	if path.exists() and not overwrite:
		if confirm_overwrite is None or not confirm_overwrite(path):
			raise CatalogExists(path)
		logger.info("Overwriting %s", path)
	return Catalog(root, path, algorithm)
