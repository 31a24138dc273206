from __future__ import annotations
import logging
import sys
from contextlib import contextmanager
from pathlib import Path
from typing import Optional

import click
from rich.console import Console

from ratify.algo import Algorithm
from ratify.config import Config, load_config
from ratify.errors import RatifyError
from ratify.parallel import DEFAULT_WORKERS
from ratify.prompts import ask_change, confirm_overwrite, confirm_proceed
from ratify.reporting import REPORT_TYPES
from ratify.workflow import append_directory, sign_directory, update_directory, verify_directory

VERSION = "0.4.0"
LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"

console = Console(highlight=False)
logger = logging.getLogger("ratify")


def setup_logging(verbosity: int = 0) -> None:
	level = logging.DEBUG if verbosity > 0 else logging.INFO
	logging.basicConfig(
		level=level,
		format=LOG_FORMAT,
		handlers=[logging.StreamHandler(sys.stdout)],
		force=True,
	)


@contextmanager
def fatal_errors():
	try:
		yield
	except RatifyError as exc:
		logger.error("%s", exc)
		raise click.ClickException(str(exc)) from exc


def _config(ctx: click.Context) -> Config:
	if "config" not in ctx.obj:
		with fatal_errors():
			ctx.obj["config"] = load_config()
	return ctx.obj["config"]


def _workers(ctx: click.Context, jobs: Optional[int]) -> int:
	if jobs:
		return jobs
	return _config(ctx).workers or DEFAULT_WORKERS


def _algorithm(name: Optional[str]) -> Optional[Algorithm]:
	return Algorithm.from_name(name) if name else None


def _say(message: str) -> None:
	console.print(message, markup=False, soft_wrap=True)


algorithm_option = click.option(
	"-a", "--algorithm", "--algo", "algorithm",
	type=click.Choice(Algorithm.names(), case_sensitive=False),
	help="Hashing algorithm (run list-algos to view available algorithms)",
)
catalog_file_option = click.option(
	"--catalog-file",
	type=click.Path(dir_okay=False, path_type=Path),
	help="Catalog file to use instead of <dirname>.<algorithm> inside the directory; relative paths are resolved against the directory",
)
jobs_option = click.option(
	"-j", "--jobs",
	type=click.IntRange(min=1),
	default=None,
	help="Number of files hashed in parallel (default: number of CPUs)",
)
path_argument = click.argument(
	"path",
	default=".",
	type=click.Path(exists=True, file_okay=False, path_type=Path),
)


@click.group()
@click.version_option(VERSION, prog_name="ratify")
@click.option("-v", "--verbose", "verbosity", count=True, help="Increase log verbosity")
@click.pass_context
def cli(ctx: click.Context, verbosity: int) -> None:
	"""Record and verify checksums of every file in a directory tree."""
	setup_logging(verbosity)
	ctx.ensure_object(dict)


@cli.command("sign")
@algorithm_option
@catalog_file_option
@click.option("--overwrite", is_flag=True, help="Replace an existing catalog file")
@jobs_option
@path_argument
@click.pass_context
def sign(ctx: click.Context, algorithm: Optional[str], catalog_file: Optional[Path], overwrite: bool, jobs: Optional[int], path: Path) -> None:
	"""Creates a new catalog for this directory, signing its contents recursively."""
	with fatal_errors():
		catalog = sign_directory(
			path,
			algorithm=_algorithm(algorithm),
			catalog_file=catalog_file,
			overwrite=overwrite,
			confirm_overwrite=confirm_overwrite,
			workers=_workers(ctx, jobs),
			config=_config(ctx),
		)
	_say(f"Signed {len(catalog)} files into {catalog.path}")


@cli.command("test")
@click.option("--report", "report_type", type=click.Choice(REPORT_TYPES, case_sensitive=False), default="plain", show_default=True, help="Kind of report to generate")
@click.option("--report-filename", type=click.Path(dir_okay=False, path_type=Path), help="File to write the report to (see also --report)")
@algorithm_option
@catalog_file_option
@jobs_option
@path_argument
@click.pass_context
def test(
	ctx: click.Context,
	report_type: str,
	report_filename: Optional[Path],
	algorithm: Optional[str],
	catalog_file: Optional[Path],
	jobs: Optional[int],
	path: Path,
) -> None:
	"""Verifies an existing catalog against the actual directory contents."""
	with fatal_errors():
		verify_directory(
			path,
			algorithm=_algorithm(algorithm),
			catalog_file=catalog_file,
			report_type=report_type.lower(),
			report_filename=report_filename,
			workers=_workers(ctx, jobs),
		)


@cli.command("append")
@algorithm_option
@catalog_file_option
@jobs_option
@path_argument
@click.pass_context
def append(ctx: click.Context, algorithm: Optional[str], catalog_file: Optional[Path], jobs: Optional[int], path: Path) -> None:
	"""Adds entries for unknown files to an already-existing catalog."""
	with fatal_errors():
		added = append_directory(
			path,
			algorithm=_algorithm(algorithm),
			catalog_file=catalog_file,
			workers=_workers(ctx, jobs),
		)
	_say(f"Added {added} new entries" if added else "Nothing to do.")


@cli.command("update")
@algorithm_option
@catalog_file_option
@click.option("--confirm", is_flag=True, help="Accept every change without asking")
@jobs_option
@path_argument
@click.pass_context
def update(ctx: click.Context, algorithm: Optional[str], catalog_file: Optional[Path], confirm: bool, jobs: Optional[int], path: Path) -> None:
	"""Interactively brings the catalog in line with the directory contents."""
	with fatal_errors():
		outcome = update_directory(
			path,
			algorithm=_algorithm(algorithm),
			catalog_file=catalog_file,
			confirm=confirm,
			ask=ask_change,
			proceed=confirm_proceed,
			workers=_workers(ctx, jobs),
		)
	if outcome.nothing_to_do:
		_say("Nothing to do.")
	elif not outcome.committed:
		_say("Aborted; catalog left unchanged.")
	else:
		_say(f"Updated {outcome.applied} entries")
		for relative_path in outcome.skipped or []:
			_say(f"* {relative_path} could not be read and was not added")


@cli.command("list-algos")
def list_algos() -> None:
	"""Lists available hashing algorithms."""
	for name in Algorithm.names():
		click.echo(name)


cli.add_command(sign, "create")
cli.add_command(test, "verify")


def main() -> None:
	cli(obj={})


if __name__ == "__main__":
	main()
