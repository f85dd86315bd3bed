"""
Configuration for provenance signing and verification.

Supports:
- Defaults suitable for Helm-style chart archives
- YAML file configuration
- Environment variable configuration
- Runtime overrides (CLI flags)
"""

from __future__ import annotations

import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any

import yaml

from provsign.exceptions import ConfigError
from provsign.security import DEFAULT_MAX_FILE_SIZE, SecurityLimits

ENV_PREFIX = "PROVSIGN_"

_TRUE_VALUES = ("1", "true", "yes", "on")

_STR_FIELDS = ("metadata_filename", "excluded_dir", "provenance_suffix", "gpg_binary")
_OPTIONAL_STR_FIELDS = ("gnupghome", "signing_key", "passphrase")


@dataclass(frozen=True)
class ProvenanceConfig:
    """
    Settings shared by the sign and verify paths.

    All fields default to the behaviour of `helm gpg`:
    - metadata_filename: Chart.yaml at `<dir>/Chart.yaml`
    - excluded_dir: subcharts under `charts/` are never inspected
    - interactive: False (batch mode, loopback pinentry)
    """

    # Archive layout
    metadata_filename: str = "Chart.yaml"
    excluded_dir: str = "charts"
    provenance_suffix: str = ".prov"

    # GnuPG
    gnupghome: str | None = None
    gpg_binary: str = "gpg"
    signing_key: str | None = None
    passphrase: str | None = None
    interactive: bool = False

    # Limits
    max_file_size: int = DEFAULT_MAX_FILE_SIZE

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        for name in _STR_FIELDS:
            if not isinstance(getattr(self, name), str):
                raise ConfigError(f"{name} must be a string, got {getattr(self, name)!r}")
        for name in _OPTIONAL_STR_FIELDS:
            value = getattr(self, name)
            if value is not None and not isinstance(value, str):
                raise ConfigError(f"{name} must be a string, got {value!r} (quote it in YAML)")
        if not isinstance(self.interactive, bool):
            raise ConfigError(f"interactive must be true or false, got {self.interactive!r}")
        # bool is an int subclass
        if isinstance(self.max_file_size, bool) or not isinstance(self.max_file_size, int):
            raise ConfigError(f"max_file_size must be an integer, got {self.max_file_size!r}")

        if not self.metadata_filename or "/" in self.metadata_filename:
            raise ConfigError(
                f"metadata_filename must be a bare filename, got {self.metadata_filename!r}"
            )
        if not self.excluded_dir or "/" in self.excluded_dir:
            raise ConfigError(f"excluded_dir must be a single path segment, got {self.excluded_dir!r}")
        if not self.provenance_suffix:
            raise ConfigError("provenance_suffix must not be empty")
        if self.max_file_size < 1:
            raise ConfigError(f"max_file_size must be >= 1, got {self.max_file_size}")

    @property
    def limits(self) -> SecurityLimits:
        """Security limits derived from this configuration."""
        return SecurityLimits(max_file_size=self.max_file_size)

    def provenance_path(self, package_path: Path) -> Path:
        """Default provenance file location for a package (`<pkg>.prov`)."""
        return package_path.parent / f"{package_path.name}{self.provenance_suffix}"

    def with_overrides(self, **overrides: Any) -> ProvenanceConfig:
        """Return a copy with non-None overrides applied."""
        values = {k: v for k, v in overrides.items() if v is not None}
        unknown = set(values) - {f.name for f in fields(self)}
        if unknown:
            raise ConfigError(f"Unknown configuration keys: {', '.join(sorted(unknown))}")
        return replace(self, **values)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary (passphrase redacted)."""
        result = {f.name: getattr(self, f.name) for f in fields(self)}
        if result["passphrase"] is not None:
            result["passphrase"] = "***"
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ProvenanceConfig:
        """Create from dictionary, rejecting unknown keys."""
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ConfigError(f"Unknown configuration keys: {', '.join(sorted(unknown))}")
        try:
            return cls(**data)
        except TypeError as e:
            raise ConfigError(f"Invalid configuration: {e}") from e

    @classmethod
    def from_yaml(cls, path: Path) -> ProvenanceConfig:
        """Load configuration from a YAML file."""
        try:
            with open(path, encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except OSError as e:
            raise ConfigError(f"Cannot read config file {path}: {e}") from e
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in config file {path}: {e}") from e

        if data is None:
            return cls()
        if not isinstance(data, dict):
            raise ConfigError(f"Config file {path} must contain a mapping")
        return cls.from_dict(data)

    @classmethod
    def from_env(cls, base: ProvenanceConfig | None = None) -> ProvenanceConfig:
        """
        Apply environment variables on top of `base` (or defaults).

        Environment variables:
            PROVSIGN_METADATA_FILENAME: Metadata member filename
            PROVSIGN_GNUPGHOME: GnuPG home directory (falls back to GNUPGHOME)
            PROVSIGN_GPG_BINARY: gpg executable
            PROVSIGN_SIGNING_KEY: Signing key id, fingerprint or user id
            PROVSIGN_PASSPHRASE: Passphrase for non-interactive signing
            PROVSIGN_INTERACTIVE: Let the gpg agent prompt (true/false)
            PROVSIGN_MAX_FILE_SIZE: Maximum package size in bytes
        """
        config = base or cls()
        overrides: dict[str, Any] = {
            "metadata_filename": os.getenv(f"{ENV_PREFIX}METADATA_FILENAME"),
            "gnupghome": os.getenv(f"{ENV_PREFIX}GNUPGHOME") or os.getenv("GNUPGHOME"),
            "gpg_binary": os.getenv(f"{ENV_PREFIX}GPG_BINARY"),
            "signing_key": os.getenv(f"{ENV_PREFIX}SIGNING_KEY"),
            "passphrase": os.getenv(f"{ENV_PREFIX}PASSPHRASE"),
        }

        interactive = os.getenv(f"{ENV_PREFIX}INTERACTIVE")
        if interactive is not None:
            overrides["interactive"] = interactive.strip().lower() in _TRUE_VALUES

        max_size = os.getenv(f"{ENV_PREFIX}MAX_FILE_SIZE")
        if max_size is not None:
            try:
                overrides["max_file_size"] = int(max_size)
            except ValueError as e:
                raise ConfigError(f"{ENV_PREFIX}MAX_FILE_SIZE must be an integer, got {max_size!r}") from e

        return config.with_overrides(**overrides)

    @classmethod
    def load(cls, path: Path | None = None) -> ProvenanceConfig:
        """Resolve configuration: defaults, then YAML file, then environment."""
        base = cls.from_yaml(path) if path is not None else cls()
        return cls.from_env(base)
