# pylint: disable=redefined-outer-name
from __future__ import annotations
import logging
import os
from pathlib import Path
from typing import List

import pytest
from click.testing import CliRunner

from ratify.algo import Algorithm
from ratify.cli import cli

TREE = ["a/1", "a/2", "b/3", "b/4", "c"]


def random_data(size: int = 4096) -> bytes:
	return os.urandom(size)


def write_file(path: Path, content: bytes) -> Path:
	path.parent.mkdir(parents=True, exist_ok=True)
	path.write_bytes(content)
	return path


def catalog_lines(path: Path) -> List[str]:
	return path.read_text(encoding="utf-8").splitlines()


def catalog_paths(path: Path) -> List[str]:
	return [line.split(" *", 1)[1] for line in catalog_lines(path)]


@pytest.fixture(autouse=True)
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
	config_path = tmp_path / "ratify.yaml"
	monkeypatch.setenv("RATIFY_CONFIG", str(config_path))
	return config_path


@pytest.fixture(autouse=True)
def reset_logging():
	yield
	root = logging.getLogger()
	for handler in list(root.handlers):
		if type(handler) is logging.StreamHandler:
			root.removeHandler(handler)


@pytest.fixture
def directory(tmp_path: Path) -> Path:
	root = (tmp_path / "dirname").resolve()
	for name in TREE:
		write_file(root / name, random_data())
	return root


@pytest.fixture(params=list(Algorithm), ids=lambda algo: algo.label)
def algorithm(request) -> Algorithm:
	return request.param


@pytest.fixture
def run(monkeypatch: pytest.MonkeyPatch):
	runner = CliRunner()

	def run_func(args: List[str], cwd: Path | None = None, input: str | None = None):
		if cwd is not None:
			monkeypatch.chdir(cwd)
		return runner.invoke(cli, ["-v", *args], input=input, obj={})

	return run_func


@pytest.fixture
def unreadable_dirs(monkeypatch: pytest.MonkeyPatch):
	"""Directories added to the returned set fail to list with EACCES."""
	blocked = set()
	real_scandir = os.scandir

	def scandir(path="."):
		if Path(path) in blocked:
			raise PermissionError(13, "Permission denied", str(path))
		return real_scandir(path)

	monkeypatch.setattr(os, "scandir", scandir)
	return blocked
