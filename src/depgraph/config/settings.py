"""DepgraphSettings: env vars, TOML config and host arguments in one object.

Priority chain (highest to lowest):
  1. Init kwargs  -> supplied by the host per invocation
  2. Env vars     -> ``DEPGRAPH_*`` prefix, ``__`` for nested sections
  3. TOML file    -> ``depgraph.toml`` discovered via walk-up
  4. Code defaults -> baked into the section models
"""

from __future__ import annotations

import threading
import tomllib
from pathlib import Path
from typing import Any

from pydantic import Field
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource

from depgraph.config.discovery import find_config
from depgraph.config.models import ArtifactsConfig, LogConfig, PackagesConfig
from depgraph.domain.errors import ConfigError


class TomlSettingsSource(PydanticBaseSettingsSource):
    """Read settings from a ``depgraph.toml`` file."""

    def __init__(self, settings_cls: type[BaseSettings], toml_path: Path | None) -> None:
        super().__init__(settings_cls)
        self._data: dict[str, Any] = {}
        if toml_path and toml_path.is_file():
            try:
                self._data = tomllib.loads(toml_path.read_text(encoding="utf-8"))
            except tomllib.TOMLDecodeError as exc:
                msg = f"Invalid TOML in {toml_path}: {exc}"
                raise ConfigError(msg) from exc

    def get_field_value(self, field: Any, field_name: str) -> tuple[Any, str, bool]:
        val = self._data.get(field_name)
        return val, field_name, field_name in self._data

    def __call__(self) -> dict[str, Any]:
        return self._data


# TOML path handed to settings_customise_sources during construction.
_tls = threading.local()


class DepgraphSettings(BaseSettings):
    """Frozen settings for one invocation.

    Attributes:
        root: Working-directory root; module paths are made relative to it.
        config_path: The TOML file that was loaded, if any.
    """

    model_config = {
        "frozen": True,
        "env_prefix": "DEPGRAPH_",
        "env_nested_delimiter": "__",
    }

    root: Path = Field(default_factory=Path.cwd)
    config_path: Path | None = None

    verbose: bool = False
    log_json: bool = False

    log: LogConfig = Field(default_factory=LogConfig)
    artifacts: ArtifactsConfig = Field(default_factory=ArtifactsConfig)
    packages: PackagesConfig = Field(default_factory=PackagesConfig)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Insert the TOML source between env vars and defaults."""
        toml_path = getattr(_tls, "toml_path", None)
        return (
            init_settings,
            env_settings,
            TomlSettingsSource(settings_cls, toml_path),
        )

    @classmethod
    def load(
        cls,
        *,
        root: Path | None = None,
        config_path: str | Path | None = None,
        **overrides: Any,
    ) -> DepgraphSettings:
        """Build settings for an invocation.

        Discovers ``depgraph.toml`` by walking up from *root* unless an
        explicit *config_path* is given. Without an explicit *root*, the
        config file's directory (or the cwd) is the root.
        """
        toml_path: Path | None = None
        if config_path:
            p = Path(config_path)
            if p.is_file():
                toml_path = p
        else:
            toml_path = find_config(root)

        resolved_root = root
        if resolved_root is None:
            resolved_root = toml_path.parent if toml_path else Path.cwd()

        _tls.toml_path = toml_path
        try:
            return cls(root=resolved_root, config_path=toml_path, **overrides)
        finally:
            _tls.toml_path = None

    @property
    def log_dir(self) -> Path:
        """Directory holding the graph log and artifacts."""
        return self.root / self.log.dir

    @property
    def log_path(self) -> Path:
        """Full path of the graph log file."""
        return self.log_dir / self.log.filename

    @property
    def retry_delay(self) -> float:
        """Delay between open retries, in seconds."""
        return self.log.retry_delay_ms / 1000
