from __future__ import annotations
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import yaml

from ratify.algo import Algorithm
from ratify.errors import ConfigError

logger = logging.getLogger(__name__)

CONFIG_ENV = "RATIFY_CONFIG"


@dataclass
class Config:
	default_sign_algo: Optional[Algorithm] = None
	workers: Optional[int] = None


def config_file_path() -> Path:
	override = os.environ.get(CONFIG_ENV)
	if override:
		return Path(override).expanduser()
	return Path.home() / ".config" / "ratify.yaml"


def load_config(path: Optional[Path] = None) -> Config:
	path = Path(path) if path else config_file_path()
	if not path.exists():
		return Config()
	logger.debug("Loading config from %s", path)
	try:
		data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
	except (OSError, yaml.YAMLError) as exc:
		raise ConfigError(f"Failed to read config file {path}: {exc}") from exc
	if not isinstance(data, dict):
		raise ConfigError(f"Failed to parse config file {path}: expected a mapping")

	cfg = Config()
	algo = data.get("default_sign_algo")
	if algo is not None:
		try:
			cfg.default_sign_algo = Algorithm.from_name(str(algo))
		except ValueError as exc:
			raise ConfigError(f"{path}: default_sign_algo: {exc}") from exc
	workers = data.get("workers")
	if workers is not None:
		if isinstance(workers, bool) or not isinstance(workers, int) or workers < 1:
			raise ConfigError(f"{path}: workers must be a positive integer, got {workers!r}")
		cfg.workers = workers
	return cfg
