"""Unified settings — CLI flags, env vars, and TOML config in one object.

Priority chain (highest to lowest):
  1. Init kwargs  — CLI flags passed by Click
  2. Env vars     — ``REFNET_*`` prefix (``REFNET_LAYOUT__MARGIN=30``)
  3. TOML file    — ``refnet.toml`` discovered via walk-up
  4. Code defaults — baked into the section models

:func:`refnet.config.discovery.locate_config` picks the TOML file and root.
"""

from __future__ import annotations

import threading
import tomllib
from pathlib import Path
from typing import Any

from pydantic import Field
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource

from refnet.config.discovery import locate_config
from refnet.config.models import (
    InteractionConfig,
    LayoutConfig,
    NetworkConfig,
    SimulationConfig,
    StoreConfig,
)


class TomlSettingsSource(PydanticBaseSettingsSource):
    """Read settings from a ``refnet.toml`` file."""

    def __init__(self, settings_cls: type[BaseSettings], toml_path: Path | None) -> None:
        super().__init__(settings_cls)
        self._data: dict[str, Any] = {}
        if toml_path and toml_path.is_file():
            raw = toml_path.read_text(encoding="utf-8")
            try:
                self._data = tomllib.loads(raw)
            except tomllib.TOMLDecodeError as exc:
                import click

                msg = f"Invalid TOML in {toml_path}: {exc}"
                raise click.ClickException(msg) from exc

    def get_field_value(self, field: Any, field_name: str) -> tuple[Any, str, bool]:
        val = self._data.get(field_name)
        return val, field_name, field_name in self._data

    def __call__(self) -> dict[str, Any]:
        return self._data


# TOML path handed to settings_customise_sources during construction.
_tls = threading.local()


class RefnetSettings(BaseSettings):
    """Settings for the refnet CLI and services.

    Attributes:
        root: Directory relative paths (the store database) resolve
            against — the parent of ``refnet.toml``, or CWD.
        config_path: The TOML file in effect, if any.
    """

    model_config = {
        "frozen": True,
        "env_prefix": "REFNET_",
        "env_nested_delimiter": "__",
    }

    root: Path = Field(default_factory=Path.cwd)
    config_path: Path | None = None

    # --- CLI flags ---
    json_output: bool = False
    quiet: bool = False
    verbose: bool = False
    log_json: bool = False

    # --- TOML sections ---
    network: NetworkConfig = Field(default_factory=NetworkConfig)
    layout: LayoutConfig = Field(default_factory=LayoutConfig)
    simulation: SimulationConfig = Field(default_factory=SimulationConfig)
    interaction: InteractionConfig = Field(default_factory=InteractionConfig)
    store: StoreConfig = Field(default_factory=StoreConfig)

    @property
    def database_path(self) -> Path:
        db = Path(self.store.database)
        return db if db.is_absolute() else self.root / db

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
    def from_cli(
        cls,
        *,
        config_path: str | None = None,
        root: Path | None = None,
        **cli_flags: Any,
    ) -> RefnetSettings:
        """Construct settings from a CLI invocation.

        Discovers ``refnet.toml`` via walk-up (or explicit *config_path*),
        resolves *root* from the config file's parent directory, and
        merges CLI flags as highest-priority overrides.
        """
        location = locate_config(config_path, root)
        _tls.toml_path = location.path
        try:
            return cls(root=location.root, config_path=location.path, **cli_flags)
        finally:
            _tls.toml_path = None
