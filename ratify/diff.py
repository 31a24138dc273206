from __future__ import annotations
import logging
import posixpath
import time
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from ratify.algo import Algorithm
from ratify.catalog import Catalog
from ratify.errors import ClassificationFailure, DigestIoError
from ratify.parallel import for_each
from ratify.progress import DigestProgress
from ratify.scanner import ScanError, ScanResult, scan_tree

logger = logging.getLogger(__name__)


class EntryStatus(str, Enum):
	OK = "ok"
	FAIL = "fail"
	MISSING = "missing"
	UNKNOWN = "unknown"


@dataclass
class ClassifiedEntry:
	relative_path: str
	path: Path
	status: EntryStatus
	size: int = 0
	expected_digest: Optional[str] = None
	actual_digest: Optional[str] = None
	error: Optional[str] = None

	@property
	def directory(self) -> str:
		return posixpath.dirname(self.relative_path)


@dataclass
class Partition:
	"""Catalog paths split against a tree scan, before anything is hashed."""
	scan: ScanResult
	present: List[str] = field(default_factory=list)
	missing: List[str] = field(default_factory=list)
	unknown: List[str] = field(default_factory=list)
	unreadable: Dict[str, ScanError] = field(default_factory=dict)


@dataclass
class DiffResult:
	catalog: Catalog
	entries: List[ClassifiedEntry]
	started: float
	finished: float

	def with_status(self, status: EntryStatus) -> List[ClassifiedEntry]:
		return [e for e in self.entries if e.status is status]

	@property
	def ok(self) -> List[ClassifiedEntry]:
		return self.with_status(EntryStatus.OK)

	@property
	def failed(self) -> List[ClassifiedEntry]:
		return self.with_status(EntryStatus.FAIL)

	@property
	def missing(self) -> List[ClassifiedEntry]:
		return self.with_status(EntryStatus.MISSING)

	@property
	def unknown(self) -> List[ClassifiedEntry]:
		return self.with_status(EntryStatus.UNKNOWN)

	@property
	def problems(self) -> List[ClassifiedEntry]:
		return [e for e in self.entries if e.status is not EntryStatus.OK]

	@property
	def total_size(self) -> int:
		return sum(e.size for e in self.entries)

	@property
	def elapsed(self) -> float:
		return self.finished - self.started

	def counts(self) -> Dict[EntryStatus, int]:
		counts = {status: 0 for status in EntryStatus}
		for entry in self.entries:
			counts[entry.status] += 1
		return counts

	def raise_for_status(self) -> None:
		counts = self.counts()
		failed = counts[EntryStatus.FAIL]
		missing = counts[EntryStatus.MISSING]
		unknown = counts[EntryStatus.UNKNOWN]
		if failed or missing or unknown:
			raise ClassificationFailure(failed, missing, unknown)


def partition(catalog: Catalog) -> Partition:
	scan = scan_tree(catalog.root, exclude=[catalog.path])
	part = Partition(scan=scan)
	for relative_path in catalog.paths():
		if relative_path in scan.paths:
			part.present.append(relative_path)
			continue
		err = scan.error_for(relative_path)
		if err is not None:
			part.unreadable[relative_path] = err
		else:
			part.missing.append(relative_path)
	part.unknown = sorted(scan.paths.difference(catalog.paths()))
	return part


def hash_entry(algorithm: Algorithm, path: Path) -> Tuple[int, Optional[str], Optional[DigestIoError]]:
	logger.debug("Checksumming %s...", path)
	try:
		size, digest = algorithm.hash_file(path)
	except DigestIoError as err:
		return 0, None, err
	logger.debug("Checksumming %s complete: %s", path, digest)
	return size, digest, None


def verify_entry(algorithm: Algorithm, relative_path: str, path: Path, expected: str) -> ClassifiedEntry:
	size, digest, err = hash_entry(algorithm, path)
	if err is not None:
		if err.not_found:
			logger.info("%s is missing!", path)
			return ClassifiedEntry(relative_path, path, EntryStatus.MISSING, expected_digest=expected)
		logger.error("%s", err)
		return ClassifiedEntry(relative_path, path, EntryStatus.FAIL, expected_digest=expected, error=str(err.cause))
	status = EntryStatus.OK if digest == expected.lower() else EntryStatus.FAIL
	if status is EntryStatus.FAIL:
		logger.debug("%s: expected %s, got %s", path, expected, digest)
	return ClassifiedEntry(relative_path, path, status, size=size, expected_digest=expected, actual_digest=digest)


def diff_catalog(catalog: Catalog, workers: int = 1, show_progress: Optional[bool] = None) -> DiffResult:
	started = time.monotonic()
	part = partition(catalog)
	algorithm = catalog.algorithm

	def _verify(relative_path: str) -> ClassifiedEntry:
		return verify_entry(algorithm, relative_path, catalog.absolute_path(relative_path), catalog.get(relative_path))

	entries: List[ClassifiedEntry] = []
	with DigestProgress(len(part.present), "Verifying", enabled=show_progress) as progress:
		for entry in for_each(part.present, _verify, workers):
			entries.append(entry)
			progress.advance(entry.size)
	for relative_path in part.missing:
		logger.info("%s is missing!", catalog.absolute_path(relative_path))
		entries.append(ClassifiedEntry(
			relative_path,
			catalog.absolute_path(relative_path),
			EntryStatus.MISSING,
			expected_digest=catalog.get(relative_path),
		))
	for relative_path, err in part.unreadable.items():
		logger.error("Cannot check %s: %s", catalog.absolute_path(relative_path), err)
		entries.append(ClassifiedEntry(
			relative_path,
			catalog.absolute_path(relative_path),
			EntryStatus.FAIL,
			expected_digest=catalog.get(relative_path),
			error=err.message,
		))
	for relative_path in part.unknown:
		entries.append(ClassifiedEntry(relative_path, catalog.absolute_path(relative_path), EntryStatus.UNKNOWN))
	entries.sort(key=lambda e: e.relative_path)
	return DiffResult(catalog=catalog, entries=entries, started=started, finished=time.monotonic())
