from __future__ import annotations
import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import click
from rich.console import Console
from rich.filesize import decimal

from ratify.diff import DiffResult, EntryStatus

logger = logging.getLogger(__name__)

REPORT_TYPES = ("plain", "json")

_PLAIN_STATUS = {
	EntryStatus.FAIL: "failed verification",
	EntryStatus.MISSING: "missing",
	EntryStatus.UNKNOWN: "is unknown",
}


def build_json_report(result: DiffResult) -> Dict[str, Any]:
	failed = [
		{"path": str(entry.path), "status": entry.status.value}
		for entry in result.problems
	]
	return {
		"processed": len(result.entries),
		"total_size": result.total_size,
		"failed": failed,
	}


def build_plain_report(result: DiffResult) -> List[str]:
	out: List[str] = []
	for entry in result.problems:
		line = f"* {entry.path} {_PLAIN_STATUS[entry.status]}"
		if entry.error:
			line += f" ({entry.error})"
		out.append(line)
	counts = result.counts()
	out.append(f"{len(result.entries)} entries checked")
	out.append(f"{counts[EntryStatus.OK]} OK")
	if counts[EntryStatus.FAIL]:
		out.append(f"{counts[EntryStatus.FAIL]} entries failed verification")
	if counts[EntryStatus.MISSING]:
		out.append(f"{counts[EntryStatus.MISSING]} entries missing")
	if counts[EntryStatus.UNKNOWN]:
		out.append(f"{counts[EntryStatus.UNKNOWN]} unknown entries")
	elapsed = result.elapsed
	rate = result.total_size / elapsed if elapsed > 0 else 0.0
	out.append(f"{decimal(result.total_size)} done in {elapsed:.2f}s ({rate / 1_000_000:.02f} MB/sec)")
	return out


def export_to_json(report: Dict[str, Any], out_path: Path) -> Path:
	out_path = Path(out_path)
	out_path.write_text(json.dumps(report, ensure_ascii=False, indent=2), encoding="utf-8")
	return out_path


def export_to_txt(lines: List[str], out_path: Path) -> Path:
	out_path = Path(out_path)
	out_path.write_text("\n".join(lines) + "\n", encoding="utf-8")
	return out_path


def write_report(
	result: DiffResult,
	report_type: str = "plain",
	report_filename: Optional[Path] = None,
	console: Optional[Console] = None,
) -> None:
	if report_type == "json":
		report = build_json_report(result)
		if report_filename:
			path = export_to_json(report, Path(report_filename))
			logger.info("Report written to %s", path)
		else:
			click.echo(json.dumps(report, ensure_ascii=False))
		return
	lines = build_plain_report(result)
	if report_filename:
		path = export_to_txt(lines, Path(report_filename))
		logger.info("Report written to %s", path)
		return
	console = console or Console(highlight=False)
	for line in lines:
		console.print(line, markup=False, highlight=False, soft_wrap=True)
