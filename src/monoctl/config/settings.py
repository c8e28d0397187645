"""Layered command options and process-wide runtime settings.

Priority chain for :class:`CommandOptions` (highest to lowest):
  1. Init kwargs: CLI values forwarded by Click
  2. ``[command.<name>]``: the running command's own section
  3. ``[command.<inherited>]``: one per inherited command, in order
  4. Global keys: top-level keys of ``monoctl.toml``
  5. Environment defaults: terminal/CI detection

For every key the highest layer that defines it wins; ``None`` means
"not defined". Each layer below init kwargs is a
:class:`MappingSettingsSource` injected through
``settings_customise_sources``.

:class:`RuntimeSettings` reads process-wide switches from the environment.
"""

from __future__ import annotations

import threading
from collections.abc import Iterable, Mapping
from typing import Any

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource

MOST_VERBOSE_LEVEL = "silly"


def defined(values: Mapping[str, Any] | None) -> dict[str, Any]:
    """Drop keys whose value is None so they do not mask lower layers."""
    if not values:
        return {}
    return {key: value for key, value in values.items() if value is not None}


class MappingSettingsSource(PydanticBaseSettingsSource):
    """A fixed mapping as one layer of the option chain."""

    def __init__(
        self,
        settings_cls: type[BaseSettings],
        data: Mapping[str, Any],
        label: str = "mapping",
    ) -> None:
        super().__init__(settings_cls)
        self._data = defined(data)
        self.label = label

    def get_field_value(self, field: Any, field_name: str) -> tuple[Any, str, bool]:
        """Return ``(value, field_name, value_is_complex)``."""
        val = self._data.get(field_name)
        return val, field_name, False

    def __call__(self) -> dict[str, Any]:
        return dict(self._data)

    def __repr__(self) -> str:
        return f"MappingSettingsSource(label={self.label!r}, keys={sorted(self._data)})"


# Thread-local storage for the lower layers during construction.
_tls = threading.local()


class CommandOptions(BaseSettings):
    """Fully resolved options of one command run.

    Known options are typed; anything else a command accepts is stored as an
    extra and read through :meth:`get`.
    """

    model_config = {"frozen": True, "extra": "allow"}

    ci: bool | None = None
    progress: bool | None = None
    loglevel: str | None = None
    verbose: bool | None = None
    concurrency: int | str | None = None
    sort: bool | None = None
    max_buffer: int | None = None
    since: str | None = None
    independent: bool | None = None
    npm_client: str | None = None
    use_workspaces: bool | None = None
    stream: bool | None = None
    registry: str | None = None

    @model_validator(mode="before")
    @classmethod
    def _verbose_forces_loglevel(cls, data: Any) -> Any:
        if isinstance(data, dict) and data.get("verbose"):
            if data.get("loglevel") != MOST_VERBOSE_LEVEL:
                data = {**data, "loglevel": "verbose"}
        return data

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """CLI kwargs first, then the layers staged by :meth:`resolve`."""
        layers: Iterable[tuple[str, Mapping[str, Any]]] = getattr(_tls, "layers", ())
        return (
            init_settings,
            *(MappingSettingsSource(settings_cls, data, label) for label, data in layers),
        )

    @classmethod
    def resolve(
        cls,
        cli: Mapping[str, Any] | None = None,
        *,
        command_config: Mapping[str, Any] | None = None,
        inherited_configs: Iterable[Mapping[str, Any] | None] = (),
        global_config: Mapping[str, Any] | None = None,
        env_defaults: Mapping[str, Any] | None = None,
    ) -> CommandOptions:
        """Merge all option layers into one frozen object."""
        layers: list[tuple[str, Mapping[str, Any]]] = [("command", defined(command_config))]
        layers.extend(
            (f"inherited[{index}]", defined(config))
            for index, config in enumerate(inherited_configs)
        )
        layers.append(("global", defined(global_config)))
        layers.append(("environment", defined(env_defaults)))

        _tls.layers = layers
        try:
            return cls(**defined(cli))
        finally:
            _tls.layers = ()

    def get(self, key: str, default: Any = None) -> Any:
        """Look up a typed or extra option; ``default`` when undefined."""
        if key in type(self).model_fields:
            value = getattr(self, key)
        else:
            value = (self.model_extra or {}).get(key)
        return default if value is None else value

    def as_dict(self) -> dict[str, Any]:
        """All defined options, typed and extra."""
        return defined(self.model_dump())


class RuntimeSettings(BaseSettings):
    """Process-wide switches read from the environment.

    Attributes:
        corepack_root: Set by corepack when it manages the package manager.
            Its presence turns on the dispatcher shim.
    """

    model_config = {"frozen": True, "extra": "ignore"}

    corepack_root: str | None = Field(default=None, validation_alias="COREPACK_ROOT")

    @property
    def dispatcher_enabled(self) -> bool:
        return self.corepack_root is not None
