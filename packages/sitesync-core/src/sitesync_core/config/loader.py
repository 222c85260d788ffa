"""YAML config loading with env var expansion."""

import logging
import os
import re
from pathlib import Path

import yaml
from pydantic import ValidationError

from sitesync_core.errors import ConfigError

from .models import SiteSyncConfig

logger = logging.getLogger(__name__)

_ENV_REF_RE = re.compile(r"\$\{(\w+)\}")


def load_config(cli_path: str | None = None) -> SiteSyncConfig:
    """Load config with resolution order: CLI > project-local > user-global > defaults."""
    config_paths = [
        Path(cli_path) if cli_path else None,
        Path("./sitesync.yaml"),
        Path.home() / ".sitesync" / "config.yaml",
    ]

    if cli_path and not Path(cli_path).exists():
        raise ConfigError(f"Config file not found: {cli_path}")

    for path in config_paths:
        if path and path.exists():
            try:
                with open(path) as f:
                    raw = yaml.safe_load(f)
                if raw is None:
                    continue
                raw = _expand_env_vars(raw)
                return SiteSyncConfig(**raw)
            except yaml.YAMLError as e:
                raise ConfigError(f"Invalid YAML in {path}: {e}") from e
            except ValidationError as e:
                raise ConfigError(f"Invalid config in {path}: {e}") from e

    return SiteSyncConfig()


def _env_value(match: re.Match[str]) -> str:
    name = match.group(1)
    value = os.environ.get(name)
    if value is None:
        logger.warning("Config references unset environment variable %s", name)
        return ""
    return value


def _expand_env_vars(obj: object) -> object:
    """Expand ${VAR} in every string of a parsed YAML tree.

    Keys are left alone; unset variables expand to the empty string.
    """
    if isinstance(obj, dict):
        return {k: _expand_env_vars(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_expand_env_vars(v) for v in obj]
    if isinstance(obj, str):
        return _ENV_REF_RE.sub(_env_value, obj)
    return obj


# Default YAML template for `sitesync config init`
DEFAULT_CONFIG_TEMPLATE = """\
# sitesync.yaml

# Directory scan
scan:
  batch_size: 10               # files hashed concurrently per batch
  ignore_files: [".sitesyncignore", ".gitignore"]   # first match wins
  # project_root: "."          # where ignore files live (default: parent of DIR)

# Content store
store:
  provider: "memory"           # memory | http
  publisher_url: "https://publisher.walrus-testnet.walrus.space"
  aggregator_url: "https://aggregator.walrus-testnet.walrus.space"
  epochs: 1                    # storage duration, 1..200
  timeout: 60
  upload_batch_size: 10

# Ledger
ledger:
  provider: "memory"           # memory | command
  # command: ["site-ledger", "--json"]
  network: "testnet"           # testnet | mainnet
  page_size: 50
  max_mutations_per_tx: 50

# Local deployment state
state:
  directory: ".sitesync"

# Watch mode
watch:
  debounce_seconds: 2.0

# Logging
log_level: "info"              # debug | info | warn | error
log_format: "text"             # text | json
"""
