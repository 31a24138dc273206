from __future__ import annotations
from pathlib import Path
from typing import Sequence


class RatifyError(Exception):
	"""Base class for every error the command line reports and exits non-zero on."""


class DigestIoError(RatifyError):
	def __init__(self, path: Path, cause: OSError) -> None:
		self.path = Path(path)
		self.cause = cause
		reason = cause.strerror or str(cause)
		super().__init__(f"Failed hashing {self.path}: {reason}")

	@property
	def not_found(self) -> bool:
		return isinstance(self.cause, FileNotFoundError)


class CatalogReadError(RatifyError):
	def __init__(self, path: Path, cause: OSError) -> None:
		self.path = Path(path)
		self.cause = cause
		super().__init__(f"Failed opening catalog file {self.path}: {cause.strerror or cause}")


class CatalogWriteError(RatifyError):
	def __init__(self, path: Path, cause: OSError) -> None:
		self.path = Path(path)
		self.cause = cause
		super().__init__(f"Failed opening catalog file {self.path} for writing: {cause.strerror or cause}")


class CatalogNotFound(RatifyError):
	pass


class MalformedCatalog(RatifyError):
	def __init__(self, path: Path, lineno: int, reason: str) -> None:
		self.path = Path(path)
		self.lineno = lineno
		self.reason = reason
		super().__init__(f"{self.path}, line {lineno}: {reason}")


class AmbiguousAlgorithm(RatifyError):
	pass


class CatalogExists(RatifyError):
	def __init__(self, path: Path) -> None:
		self.path = Path(path)
		super().__init__(f"Catalog file {self.path} already exists (use --overwrite to replace it)")


class UnreadableEntries(RatifyError):
	def __init__(self, errors: Sequence[object]) -> None:
		self.errors = list(errors)
		lines = [f"{len(self.errors)} path(s) could not be read, catalog not written:"]
		lines.extend(f"  {err}" for err in self.errors)
		super().__init__("\n".join(lines))


class ConfigError(RatifyError):
	pass


class ClassificationFailure(RatifyError):
	def __init__(self, failed: int, missing: int, unknown: int) -> None:
		self.failed = failed
		self.missing = missing
		self.unknown = unknown
		lines = []
		if failed:
			lines.append("Failed entries found")
		if missing:
			lines.append("Missing entries found")
		if unknown:
			lines.append("Unknown entries found")
		super().__init__("\n".join(lines))
