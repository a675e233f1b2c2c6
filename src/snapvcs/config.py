"""Per-repository configuration.

The configuration is a small JSON document stored at ``.snapvcs/config``.
It pins the compression regime for the lifetime of the repository, since
object ids are computed over the stored (possibly compressed) bytes.
"""

import json
import os
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Optional

from snapvcs.constants import (
    COMPRESSION_ENV_VAR,
    CONFIG_FILE,
    CONFIG_SCHEMA_VERSION,
)
from snapvcs.exceptions import ConfigError, StorageIOError
from snapvcs.storage.fileio import atomic_write

_TRUTHY = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class RepositoryConfig:
    """Settings fixed when a repository is initialized.

    Attributes:
        version: Config schema version
        compression: Whether objects are gzip-compressed before hashing
    """

    version: int = CONFIG_SCHEMA_VERSION
    compression: bool = False


def default_compression() -> bool:
    """Compression default for new repositories, from the environment."""
    value = os.getenv(COMPRESSION_ENV_VAR, "")
    return value.strip().lower() in _TRUTHY


def load_config(repo_dir: Path) -> RepositoryConfig:
    """Load repository configuration.

    A repository without a config file predates it and uses the defaults.

    Raises:
        ConfigError: If the file is corrupted or has an unknown version
    """
    config_path = Path(repo_dir) / CONFIG_FILE
    if not config_path.exists():
        return RepositoryConfig()

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigError(f"Corrupted config file: {e}") from e
    except OSError as e:
        raise StorageIOError(f"Failed to read config file: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError("Corrupted config file: expected a JSON object")

    version = data.get("version")
    if version != CONFIG_SCHEMA_VERSION:
        raise ConfigError(f"Unsupported config version: {version}")

    return RepositoryConfig(
        version=version,
        compression=bool(data.get("compression", False)),
    )


def save_config(repo_dir: Path, config: RepositoryConfig) -> None:
    """Write repository configuration atomically."""
    payload = json.dumps(asdict(config), indent=2) + "\n"
    atomic_write(
        Path(repo_dir) / CONFIG_FILE,
        payload.encode("utf-8"),
        prefix=".tmp_config_",
    )


def resolve_compression(
    stored: RepositoryConfig, requested: Optional[bool]
) -> bool:
    """Return the compression regime to use for an existing repository.

    Raises:
        ConfigError: If ``requested`` contradicts the stored regime
    """
    if requested is None or requested == stored.compression:
        return stored.compression
    raise ConfigError(
        "Compression is fixed per repository "
        f"(stored: {'on' if stored.compression else 'off'}, "
        f"requested: {'on' if requested else 'off'})"
    )
