"""Configuration loading and validation."""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path

from dir_dedupe.index.digest import DEFAULT_DIGEST, DIGESTS
from dir_dedupe.index.store import DEFAULT_SIDECAR_NAME

DEFAULT_CONFIG_PATH = Path("config.json")


class ConfigurationError(Exception):
    """Raised when the run configuration is missing or invalid."""

    def __init__(self, path: Path | None, reason: str) -> None:
        message = reason if path is None else f"{path}: {reason}"
        super().__init__(message)
        self.path = path
        self.reason = reason


@dataclass(slots=True, frozen=True)
class DedupeConfig:
    """Fully validated run configuration."""

    dirs: tuple[Path, ...]
    sidecar_name: str = DEFAULT_SIDECAR_NAME
    digest: str = DEFAULT_DIGEST
    audit_log: Path | None = None

    def to_public_dict(self) -> dict[str, object]:
        """Return a serializable config snapshot."""
        return {
            "dirs": [str(path) for path in self.dirs],
            "sidecar_name": self.sidecar_name,
            "digest": self.digest,
            "audit_log": str(self.audit_log) if self.audit_log is not None else None,
        }


def default_config(dirs: list[str] | tuple[str, ...]) -> DedupeConfig:
    """Build a config with default settings for the given directories."""
    return DedupeConfig(dirs=tuple(Path(item) for item in dirs))


def load_config(path: Path = DEFAULT_CONFIG_PATH) -> DedupeConfig:
    """Load and validate a JSON configuration file."""
    try:
        with path.open("r", encoding="utf-8") as handle:
            payload = json.load(handle)
    except FileNotFoundError as exc:
        raise ConfigurationError(path, "configuration file not found") from exc
    except OSError as exc:
        raise ConfigurationError(path, f"cannot read configuration ({exc.strerror})") from exc
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise ConfigurationError(path, f"invalid JSON ({exc})") from exc
    try:
        config = parse_config(payload)
    except ValueError as exc:
        raise ConfigurationError(path, str(exc)) from exc
    if config.audit_log is not None:
        _check_audit_log(path, config.audit_log)
    return config


def parse_config(payload: object) -> DedupeConfig:
    """Validate a decoded configuration payload; raise ValueError when invalid."""
    if not isinstance(payload, dict):
        raise ValueError("Configuration must contain a top-level object.")
    if "dirs" not in payload:
        raise ValueError("Config field 'dirs' is required.")
    dirs = _tuple_of_strings(payload["dirs"], "dirs")

    sidecar_name = payload.get("sidecar_name", DEFAULT_SIDECAR_NAME)
    if not isinstance(sidecar_name, str) or not _is_bare_name(sidecar_name):
        raise ValueError("Config field 'sidecar_name' must be a plain file name.")

    digest = payload.get("digest", DEFAULT_DIGEST)
    if not isinstance(digest, str) or digest not in DIGESTS:
        known = ", ".join(sorted(DIGESTS))
        raise ValueError(f"Config field 'digest' must be one of: {known}.")

    audit_log: Path | None = None
    raw_audit_log = payload.get("audit_log")
    if raw_audit_log is not None:
        if not isinstance(raw_audit_log, str) or not raw_audit_log:
            raise ValueError("Config field 'audit_log' must be a path string or null.")
        audit_log = Path(raw_audit_log)

    return DedupeConfig(
        dirs=tuple(Path(item) for item in dirs),
        sidecar_name=sidecar_name,
        digest=digest,
        audit_log=audit_log,
    )


def _tuple_of_strings(value: object, field: str) -> tuple[str, ...]:
    if not isinstance(value, list):
        raise ValueError(f"Config field '{field}' must be a list of strings.")
    output: list[str] = []
    for item in value:
        if not isinstance(item, str) or not item:
            raise ValueError(f"Config field '{field}' must contain only non-empty strings.")
        output.append(item)
    return tuple(output)


def _check_audit_log(config_path: Path, audit_log: Path) -> None:
    if audit_log.is_dir():
        raise ConfigurationError(
            config_path, f"Config field 'audit_log' points at a directory: {audit_log}."
        )
    for parent in audit_log.parents:
        if parent.exists():
            if not parent.is_dir():
                raise ConfigurationError(
                    config_path, f"Config field 'audit_log' has a non-directory parent: {parent}."
                )
            break


def _is_bare_name(name: str) -> bool:
    if name in {"", ".", ".."}:
        return False
    return "/" not in name and "\\" not in name
