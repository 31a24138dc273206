from __future__ import annotations
import os
from concurrent.futures import ThreadPoolExecutor, as_completed
from itertools import islice
from typing import Callable, Iterable, Iterator, List, TypeVar

T = TypeVar("T")
R = TypeVar("R")

DEFAULT_WORKERS = os.cpu_count() or 1
BATCH_PER_WORKER = 4


def _batched(items: Iterable[T], size: int) -> Iterator[List[T]]:
	it = iter(items)
	while True:
		batch = list(islice(it, size))
		if not batch:
			return
		yield batch


def for_each(items: Iterable[T], handler: Callable[[T], R], workers: int = 1) -> Iterator[R]:
	"""Apply handler to every item, yielding results in completion order.

	With more than one worker, items are submitted in bounded batches so a huge
	tree never has all of its futures alive at once. Handlers are expected to
	turn per-item failures into results rather than raise.
	"""
	if workers <= 1:
		for item in items:
			yield handler(item)
		return
	with ThreadPoolExecutor(max_workers=workers) as pool:
		for batch in _batched(items, workers * BATCH_PER_WORKER):
			futures = [pool.submit(handler, item) for item in batch]
			for future in as_completed(futures):
				yield future.result()
