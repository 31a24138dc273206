from __future__ import annotations
import hashlib
import string
from enum import Enum
from pathlib import Path
from typing import BinaryIO, List, Optional, Tuple

from ratify.errors import DigestIoError

CHUNK_SIZE = 1024 * 1024
_HEX_DIGITS = frozenset(string.hexdigits)


class Algorithm(Enum):
	MD5 = ("md5", 32)
	SHA1 = ("sha1", 40)
	SHA256 = ("sha256", 64)
	SHA512 = ("sha512", 128)

	def __init__(self, label: str, digest_len: int) -> None:
		self.label = label
		self.digest_len = digest_len

	def __str__(self) -> str:
		return self.label

	@classmethod
	def names(cls) -> List[str]:
		return [algo.label for algo in cls]

	@classmethod
	def from_name(cls, name: str) -> "Algorithm":
		wanted = name.strip().lower()
		for algo in cls:
			if algo.label == wanted:
				return algo
		raise ValueError(f"Unknown algorithm {name!r} (expected one of: {', '.join(cls.names())})")

	@classmethod
	def from_extension(cls, path: Path) -> Optional["Algorithm"]:
		"""Deduce the algorithm from the last dot-separated part of a catalog file name."""
		name = Path(path).name
		if "." not in name:
			return None
		extension = name.rsplit(".", 1)[1].lower()
		for algo in cls:
			if algo.label == extension:
				return algo
		return None

	def new(self):
		return hashlib.new(self.label)

	def is_valid_digest(self, digest: str) -> bool:
		return len(digest) == self.digest_len and all(c in _HEX_DIGITS for c in digest)

	def hash_stream(self, stream: BinaryIO, chunk_size: int = CHUNK_SIZE) -> Tuple[int, str]:
		hasher = self.new()
		size = 0
		for chunk in iter(lambda: stream.read(chunk_size), b""):
			hasher.update(chunk)
			size += len(chunk)
		return size, hasher.hexdigest()

	def hash_file(self, path: Path, chunk_size: int = CHUNK_SIZE) -> Tuple[int, str]:
		path = Path(path)
		try:
			with path.open("rb") as handle:
				return self.hash_stream(handle, chunk_size)
		except OSError as exc:
			raise DigestIoError(path, exc) from exc
