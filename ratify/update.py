"""
Interactive reconciliation of a catalog with the directory it describes.

Every non-ok entry of a diff becomes a pending change. An UpdateSession walks
the changes directory by directory and asks what to do with each one, unless a
standing "directory" or "all" answer already covers it. Nothing touches the
catalog until apply_changes() is called with the selected changes.
"""

from __future__ import annotations
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Iterable, List, Optional, Tuple

from ratify.catalog import Catalog
from ratify.diff import ClassifiedEntry, DiffResult, EntryStatus, hash_entry
from ratify.parallel import for_each

logger = logging.getLogger(__name__)

CHOICE_PROMPT = "[S]kip [U]pdate [D]irectory [A]ll (default: Skip):"
PROCEED_PROMPT = "Proceed with updates? [y/N]:"


class Choice(str, Enum):
	SKIP = "s"
	UPDATE = "u"
	DIRECTORY = "d"
	ALL = "a"


class Decision(Enum):
	SKIP = "skip"
	UPDATE = "update"


class Scope(Enum):
	NONE = "none"
	DIRECTORY = "directory"
	ALL = "all"


_KINDS = {
	EntryStatus.FAIL: "modified",
	EntryStatus.MISSING: "deleted",
	EntryStatus.UNKNOWN: "new file",
}


@dataclass
class PendingChange:
	entry: ClassifiedEntry
	decision: Decision = Decision.SKIP

	@property
	def relative_path(self) -> str:
		return self.entry.relative_path

	@property
	def directory(self) -> str:
		return self.entry.directory

	@property
	def kind(self) -> str:
		return _KINDS[self.entry.status]

	def describe(self) -> str:
		return f"{self.relative_path}: {self.kind}"


def pending_changes(result: DiffResult) -> List[PendingChange]:
	changes: List[PendingChange] = []
	for entry in result.problems:
		if entry.status is EntryStatus.FAIL and entry.actual_digest is None:
			logger.warning("Cannot update %s: %s", entry.path, entry.error or "unreadable")
			continue
		changes.append(PendingChange(entry))
	changes.sort(key=lambda c: (c.directory, c.relative_path))
	return changes


class UpdateSession:
	def __init__(self, changes: Iterable[PendingChange]) -> None:
		self.changes = sorted(changes, key=lambda c: (c.directory, c.relative_path))
		self.scope = Scope.NONE
		self.scope_directory: Optional[str] = None

	def covered(self, change: PendingChange) -> bool:
		if self.scope is Scope.ALL:
			return True
		return self.scope is Scope.DIRECTORY and change.directory == self.scope_directory

	def apply_choice(self, change: PendingChange, choice: Choice) -> None:
		if choice is Choice.SKIP:
			change.decision = Decision.SKIP
			return
		change.decision = Decision.UPDATE
		if choice is Choice.DIRECTORY:
			self.scope = Scope.DIRECTORY
			self.scope_directory = change.directory
		elif choice is Choice.ALL:
			self.scope = Scope.ALL

	def decide(self, ask: Callable[[PendingChange], Choice]) -> List[PendingChange]:
		for change in self.changes:
			if self.covered(change):
				change.decision = Decision.UPDATE
				continue
			self.apply_choice(change, ask(change))
		return self.selected

	def accept_all(self) -> List[PendingChange]:
		self.scope = Scope.ALL
		for change in self.changes:
			change.decision = Decision.UPDATE
		return self.selected

	@property
	def selected(self) -> List[PendingChange]:
		return [c for c in self.changes if c.decision is Decision.UPDATE]


def apply_changes(catalog: Catalog, changes: Iterable[PendingChange], workers: int = 1) -> Tuple[int, List[str]]:
	"""Apply the selected changes to catalog in memory and return (applied, skipped paths)."""
	applied = 0
	skipped: List[str] = []
	new_files: List[PendingChange] = []
	for change in changes:
		entry = change.entry
		if entry.status is EntryStatus.FAIL:
			catalog.set_entry(entry.relative_path, entry.actual_digest)
			applied += 1
		elif entry.status is EntryStatus.MISSING:
			catalog.remove_entry(entry.relative_path)
			applied += 1
		elif entry.status is EntryStatus.UNKNOWN:
			new_files.append(change)

	def _hash(change: PendingChange):
		return change, hash_entry(catalog.algorithm, change.entry.path)

	digests = {}
	for change, (_, digest, err) in for_each(new_files, _hash, workers):
		if err is not None:
			logger.error("Not adding %s: %s", change.entry.path, err)
			skipped.append(change.relative_path)
			continue
		digests[change.relative_path] = digest
	for relative_path in sorted(digests):
		catalog.set_entry(relative_path, digests[relative_path])
		applied += 1
	return applied, skipped
