from __future__ import annotations
import sys
from pathlib import Path
from typing import Sequence

import click

from ratify.update import CHOICE_PROMPT, PROCEED_PROMPT, Choice, PendingChange


def stdin_is_terminal() -> bool:
	try:
		return sys.stdin.isatty()
	except (AttributeError, ValueError):
		return False


def ask_key(prompt: str, valid: Sequence[str], default: str) -> str:
	"""Ask until one of valid (or nothing, meaning default) is answered.

	On a terminal a single key press answers; otherwise a whole line is read.
	"""
	while True:
		if stdin_is_terminal():
			click.echo(f"{prompt} ", nl=False)
			key = click.getchar()
			click.echo(key if key.isprintable() else "")
			answer = key.strip().lower()
		else:
			answer = click.prompt(prompt, default="", show_default=False, prompt_suffix=" ").strip().lower()
		if not answer:
			return default
		if answer in valid:
			return answer
		click.echo(f"Please answer one of: {', '.join(valid)}")


def ask_change(change: PendingChange) -> Choice:
	click.echo(change.describe())
	answer = ask_key(CHOICE_PROMPT, [c.value for c in Choice], Choice.SKIP.value)
	return Choice(answer)


def confirm_proceed() -> bool:
	return ask_key(PROCEED_PROMPT, ["y", "n"], "n") == "y"


def confirm_overwrite(path: Path) -> bool:
	if not stdin_is_terminal():
		return False
	return ask_key(f"Catalog file {path} already exists. Overwrite? [y/N]:", ["y", "n"], "n") == "y"
