"""Unified configuration loaded from .curate.toml, env vars, and CLI flags.

Loading order: defaults → TOML file → env vars → CLI flags.

Every relative path in ``[paths]`` is resolved against the curate home
directory, which is ``$CURATE_HOME`` or the current directory.
"""

from __future__ import annotations

import logging
import os
import tomllib
from pathlib import Path

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

CONFIG_FILENAME = ".curate.toml"
HOME_ENV_VAR = "CURATE_HOME"


class PathsConfig(BaseModel):
    """[paths] section."""

    inbox: str = "inbox.tsv"
    rules: str = "rules.tsv"
    header: str = "templates/header.md"
    digests: str = "digests"
    archive: str = "archive"


class DigestSectionConfig(BaseModel):
    """[digest] section."""

    group_tags: bool = False
    html: bool = False
    include_header: bool = True
    front_matter: bool = False
    section: str = ""


class TitlesConfig(BaseModel):
    """[titles] section."""

    timeout: int = 6
    fetch_by_default: bool = False


class CurateConfig(BaseModel):
    """Top-level configuration for a curate home directory."""

    home: Path = Field(default_factory=lambda: Path("."))
    paths: PathsConfig = Field(default_factory=PathsConfig)
    digest: DigestSectionConfig = Field(default_factory=DigestSectionConfig)
    titles: TitlesConfig = Field(default_factory=TitlesConfig)

    def _resolve(self, raw: str) -> Path:
        p = Path(raw).expanduser()
        return p if p.is_absolute() else self.home / p

    @property
    def inbox_path(self) -> Path:
        return self._resolve(self.paths.inbox)

    @property
    def rules_path(self) -> Path:
        return self._resolve(self.paths.rules)

    @property
    def header_path(self) -> Path:
        return self._resolve(self.paths.header)

    @property
    def digests_dir(self) -> Path:
        return self._resolve(self.paths.digests)

    @property
    def archive_dir(self) -> Path:
        return self._resolve(self.paths.archive)


def load_config(home: str | Path | None = None) -> CurateConfig:
    """Load configuration for a curate home directory.

    Search order for the home directory:
    1. Explicit ``home`` argument (if provided)
    2. ``$CURATE_HOME``
    3. The current directory

    ``.curate.toml`` inside the home directory is read when present, then
    environment variables are overlaid.

    Args:
        home: Explicit home directory.

    Returns:
        Merged CurateConfig.
    """
    if home is None:
        home = os.environ.get(HOME_ENV_VAR) or "."
    home_path = Path(home).expanduser()

    data: dict[str, object] = {}
    candidate = home_path / CONFIG_FILENAME
    if candidate.exists():
        data = _load_toml(candidate)
        logger.info("Loaded config from %s", candidate)

    data["home"] = home_path
    config = CurateConfig.model_validate(data)

    return _apply_env_vars(config)


def merge_cli_overrides(config: CurateConfig, **cli_kwargs: object) -> CurateConfig:
    """Overlay explicitly-set CLI flags onto the config.

    Only overrides values where the CLI flag was explicitly provided
    (i.e., not None).
    """
    data = config.model_dump()

    mapping: dict[str, tuple[str, str]] = {
        "group_tags": ("digest", "group_tags"),
        "html": ("digest", "html"),
        "include_header": ("digest", "include_header"),
        "front_matter": ("digest", "front_matter"),
        "section": ("digest", "section"),
        "title_timeout": ("titles", "timeout"),
    }

    for key, value in cli_kwargs.items():
        if value is None:
            continue
        if key in mapping:
            section, field = mapping[key]
            data[section][field] = value

    return CurateConfig.model_validate(data)


def _load_toml(path: Path) -> dict[str, object]:
    """Load a TOML file and return the data dict."""
    try:
        with open(path, "rb") as f:
            return tomllib.load(f)
    except (tomllib.TOMLDecodeError, OSError) as exc:
        logger.warning("Failed to parse %s: %s", path, exc)
        return {}


def _apply_env_vars(config: CurateConfig) -> CurateConfig:
    """Apply environment variable overrides to config."""
    data = config.model_dump()

    env_mapping: dict[str, tuple[str, str]] = {
        "CURATE_INBOX": ("paths", "inbox"),
        "CURATE_RULES": ("paths", "rules"),
        "CURATE_HEADER": ("paths", "header"),
        "CURATE_DIGESTS_DIR": ("paths", "digests"),
        "CURATE_ARCHIVE_DIR": ("paths", "archive"),
    }

    for env_var, (section, field) in env_mapping.items():
        value = os.environ.get(env_var)
        if value is not None:
            data[section][field] = value

    timeout_raw = os.environ.get("CURATE_TITLE_TIMEOUT")
    if timeout_raw is not None:
        try:
            data["titles"]["timeout"] = int(timeout_raw)
        except ValueError:
            logger.warning("Ignoring non-integer CURATE_TITLE_TIMEOUT=%r", timeout_raw)

    return CurateConfig.model_validate(data)
