from __future__ import annotations
from pathlib import Path

from pydantic import ValidationError

from simout.io.errors import OutputConfigError
from .schemas import Config

try:
    import tomllib  # py311+
except ModuleNotFoundError:  # pragma: no cover
    import tomli as tomllib  # py<=310


def load_config(path: str | Path) -> Config:
    """
    Load a run configuration from TOML.

    Unreadable files, TOML syntax errors and schema violations all surface as
    OutputConfigError naming the file, since the run cannot start without it.
    """
    p = Path(path)
    try:
        text = p.read_text()
    except OSError as exc:
        raise OutputConfigError(f"Cannot read config '{p}': {exc}") from exc
    try:
        data = tomllib.loads(text)
    except tomllib.TOMLDecodeError as exc:
        raise OutputConfigError(f"Config '{p}' is not valid TOML: {exc}") from exc
    try:
        return Config(**data)
    except ValidationError as exc:
        raise OutputConfigError(f"Config '{p}' failed validation:\n{exc}") from exc


def snapshot_config_toml(path: str | Path) -> str:
    """Return the raw TOML text for embedding in the simulation-conditions record."""
    return Path(path).read_text()
