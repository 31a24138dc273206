from __future__ import annotations
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional

from ratify.algo import Algorithm
from ratify.catalog import Catalog, load_catalog, new_catalog
from ratify.config import Config
from ratify.diff import DiffResult, diff_catalog, hash_entry, partition
from ratify.errors import AmbiguousAlgorithm, DigestIoError, UnreadableEntries
from ratify.parallel import DEFAULT_WORKERS, for_each
from ratify.progress import DigestProgress
from ratify.reporting import write_report
from ratify.scanner import scan_tree
from ratify.update import Choice, PendingChange, UpdateSession, apply_changes, pending_changes

logger = logging.getLogger(__name__)


@dataclass
class UpdateOutcome:
	pending: int
	selected: int
	applied: int = 0
	committed: bool = False
	skipped: Optional[List[str]] = None

	@property
	def nothing_to_do(self) -> bool:
		return self.selected == 0


def resolve_sign_algorithm(
	algorithm: Optional[Algorithm],
	catalog_file: Optional[Path],
	config: Optional[Config] = None,
) -> Algorithm:
	if algorithm:
		return algorithm
	if catalog_file is not None:
		algo = Algorithm.from_extension(Path(catalog_file))
		if algo:
			return algo
	if config and config.default_sign_algo:
		logger.debug("Using default algorithm %s from config", config.default_sign_algo)
		return config.default_sign_algo
	raise AmbiguousAlgorithm("No algorithm specified. Please specify one using -a/--algorithm (see list-algos)")


def sign_directory(
	root: Path,
	algorithm: Optional[Algorithm] = None,
	catalog_file: Optional[Path] = None,
	overwrite: bool = False,
	confirm_overwrite: Optional[Callable[[Path], bool]] = None,
	workers: int = DEFAULT_WORKERS,
	config: Optional[Config] = None,
	show_progress: Optional[bool] = None,
) -> Catalog:
	"""Hash every file under root into a brand new catalog."""
	root = Path(root).resolve()
	algo = resolve_sign_algorithm(algorithm, catalog_file, config)
	catalog = new_catalog(root, algo, catalog_file, overwrite=overwrite, confirm_overwrite=confirm_overwrite)
	scan = scan_tree(root, exclude=[catalog.path])
	if scan.errors:
		raise UnreadableEntries(scan.errors)
	paths = sorted(scan.paths)

	def _hash(relative_path: str):
		return relative_path, hash_entry(algo, catalog.absolute_path(relative_path))

	digests = {}
	errors: List[DigestIoError] = []
	with DigestProgress(len(paths), "Signing", enabled=show_progress) as progress:
		for relative_path, (size, digest, err) in for_each(paths, _hash, workers):
			progress.advance(size)
			if err is not None:
				logger.error("%s", err)
				errors.append(err)
				continue
			digests[relative_path] = digest
	if errors:
		raise UnreadableEntries(sorted(errors, key=lambda e: str(e.path)))
	for relative_path in paths:
		catalog.set_entry(relative_path, digests[relative_path])
	catalog.write()
	return catalog


def verify_directory(
	root: Path,
	algorithm: Optional[Algorithm] = None,
	catalog_file: Optional[Path] = None,
	report_type: str = "plain",
	report_filename: Optional[Path] = None,
	workers: int = DEFAULT_WORKERS,
	show_progress: Optional[bool] = None,
) -> DiffResult:
	"""Compare root against its catalog, write the report and raise on any drift."""
	catalog = load_catalog(Path(root).resolve(), algorithm, catalog_file)
	result = diff_catalog(catalog, workers=workers, show_progress=show_progress)
	write_report(result, report_type, report_filename)
	result.raise_for_status()
	return result


def append_directory(
	root: Path,
	algorithm: Optional[Algorithm] = None,
	catalog_file: Optional[Path] = None,
	workers: int = DEFAULT_WORKERS,
	show_progress: Optional[bool] = None,
) -> int:
	"""Add entries for files the catalog does not know yet; returns how many were added."""
	catalog = load_catalog(Path(root).resolve(), algorithm, catalog_file)
	part = partition(catalog)
	if not part.unknown:
		logger.info("No unknown files under %s", catalog.root)
		return 0

	def _hash(relative_path: str):
		return relative_path, hash_entry(catalog.algorithm, catalog.absolute_path(relative_path))

	digests = {}
	with DigestProgress(len(part.unknown), "Appending", enabled=show_progress) as progress:
		for relative_path, (size, digest, err) in for_each(part.unknown, _hash, workers):
			progress.advance(size)
			if err is not None:
				logger.error("Not adding %s", err)
				continue
			digests[relative_path] = digest
	for relative_path in sorted(digests):
		logger.debug("Adding %s", relative_path)
		catalog.set_entry(relative_path, digests[relative_path])
	if digests:
		catalog.write()
	return len(digests)


def update_directory(
	root: Path,
	algorithm: Optional[Algorithm] = None,
	catalog_file: Optional[Path] = None,
	confirm: bool = False,
	ask: Optional[Callable[[PendingChange], Choice]] = None,
	proceed: Optional[Callable[[], bool]] = None,
	workers: int = DEFAULT_WORKERS,
	show_progress: Optional[bool] = None,
) -> UpdateOutcome:
	"""Reconcile the catalog with root, asking about each change unless confirm is set.

	ask and proceed are only consulted when confirm is false; they default to
	skipping everything and declining, so a non-interactive caller changes nothing.
	"""
	catalog = load_catalog(Path(root).resolve(), algorithm, catalog_file)
	result = diff_catalog(catalog, workers=workers, show_progress=show_progress)
	session = UpdateSession(pending_changes(result))
	if confirm:
		selected = session.accept_all()
	else:
		selected = session.decide(ask or (lambda change: Choice.SKIP))
	outcome = UpdateOutcome(pending=len(session.changes), selected=len(selected))
	if outcome.nothing_to_do:
		logger.debug("No changes selected for %s", catalog.path)
		return outcome
	if not confirm and not (proceed or (lambda: False))():
		logger.info("Update aborted, %s left unchanged", catalog.path)
		return outcome
	outcome.applied, outcome.skipped = apply_changes(catalog, selected, workers)
	catalog.write()
	outcome.committed = True
	return outcome
