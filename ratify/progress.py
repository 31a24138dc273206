from __future__ import annotations
from typing import Optional

from rich.console import Console
from rich.filesize import decimal
from rich.progress import BarColumn, MofNCompleteColumn, Progress, TextColumn, TimeElapsedColumn


class DigestProgress:
	"""Progress bar on stderr for hashing runs; silent unless stderr is a terminal."""

	def __init__(self, total: int, description: str = "Hashing", enabled: Optional[bool] = None) -> None:
		console = Console(stderr=True)
		self.enabled = console.is_terminal if enabled is None else enabled
		self.total = total
		self.description = description
		self.processed_bytes = 0
		self._task = None
		self._progress = Progress(
			TextColumn("[progress.description]{task.description}"),
			BarColumn(bar_width=40),
			MofNCompleteColumn(),
			TextColumn("{task.fields[size]}"),
			TimeElapsedColumn(),
			console=console,
			transient=True,
		)

	def __enter__(self) -> "DigestProgress":
		if self.enabled:
			self._progress.start()
			self._task = self._progress.add_task(self.description, total=self.total, size=decimal(0))
		return self

	def advance(self, size: int = 0) -> None:
		self.processed_bytes += size
		if self._task is not None:
			self._progress.update(self._task, advance=1, size=decimal(self.processed_bytes))

	def __exit__(self, *exc) -> None:
		if self._task is not None:
			self._progress.stop()
