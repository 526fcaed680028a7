"""Configuration loading and live reload for the BigQuery CLI."""

from __future__ import annotations

import os
import threading
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Callable, Mapping, MutableMapping

import yaml

from bq_cli.bq_query.types import OutputFormat

from . import paths
from .exceptions import ConfigurationError

SETTINGS_SECTION = "bigquery"


@dataclass(frozen=True, slots=True)
class QuerySettings:
    """Typed snapshot of the ``bigquery`` settings section."""

    source_path: Path
    key_filename: str = ""
    project_id: str = ""
    use_legacy_sql: bool = False
    location: str = "US"
    maximum_bytes_billed: int | None = None
    preserve_focus: bool = True
    output_format: OutputFormat = OutputFormat.JSON
    pretty_print_json: bool = True

    def with_output_format(self, output_format: OutputFormat | str) -> QuerySettings:
        """Return a copy rendering results in ``output_format``."""
        return replace(self, output_format=OutputFormat.parse(output_format))


def _default_settings() -> dict[str, Any]:
    return {
        "keyFilename": "",
        "projectId": "",
        "useLegacySql": False,
        "location": "US",
        "maximumBytesBilled": None,
        "preserveFocus": True,
        "outputFormat": "json",
        "prettyPrintJSON": True,
    }


ENV_OVERRIDE_SPEC: dict[str, tuple[str, type]] = {
    "keyFilename": ("BQCLI_KEY_FILENAME", str),
    "projectId": ("BQCLI_PROJECT_ID", str),
    "useLegacySql": ("BQCLI_USE_LEGACY_SQL", bool),
    "location": ("BQCLI_LOCATION", str),
    "maximumBytesBilled": ("BQCLI_MAXIMUM_BYTES_BILLED", int),
    "preserveFocus": ("BQCLI_PRESERVE_FOCUS", bool),
    "outputFormat": ("BQCLI_OUTPUT_FORMAT", str),
    "prettyPrintJSON": ("BQCLI_PRETTY_PRINT_JSON", bool),
}


def load_settings(
    config_path: str | Path | None = None,
    env: Mapping[str, str] | None = None,
) -> QuerySettings:
    """Load settings from defaults, the YAML settings store, and env overrides."""
    env = dict(os.environ if env is None else env)
    resolved_config_path = _resolve_config_path(config_path, env)
    section = _load_section(resolved_config_path)
    merged = {**_default_settings(), **section}
    merged = _apply_env_overrides(merged, env)
    return _build_settings(merged, resolved_config_path)


def _resolve_config_path(config_path: str | Path | None, env: Mapping[str, str]) -> Path:
    if config_path:
        return paths.resolve_path(config_path)
    return paths.default_config_path(env=env)


def _load_section(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    try:
        with path.open("r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle) or {}
    except OSError as exc:
        raise ConfigurationError(f"Failed to read settings at {path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Settings file at {path} is not valid YAML: {exc}") from exc
    if not isinstance(data, MutableMapping):
        raise ConfigurationError(f"Settings file at {path} must define a mapping root object.")
    section = data.get(SETTINGS_SECTION) or {}
    if not isinstance(section, MutableMapping):
        raise ConfigurationError(f"Settings section '{SETTINGS_SECTION}' in {path} must be a mapping.")
    return dict(section)


def _apply_env_overrides(settings: dict[str, Any], env: Mapping[str, str]) -> dict[str, Any]:
    result = dict(settings)
    for key, (env_key, expected_type) in ENV_OVERRIDE_SPEC.items():
        if env_key not in env:
            continue
        raw_value = env[env_key]
        try:
            result[key] = _coerce_env_value(raw_value, expected_type)
        except ValueError as exc:
            raise ConfigurationError(
                f"Environment override {env_key} has invalid value '{raw_value}': {exc}"
            ) from exc
    return result


def _coerce_env_value(raw: str, expected_type: type) -> Any:
    cleaned = raw.strip()
    if expected_type is bool:
        return _coerce_bool(cleaned)
    if expected_type is int:
        return int(cleaned) if cleaned else None
    return cleaned


def _coerce_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    lowered = str(value).strip().lower()
    if lowered in {"1", "true", "yes", "on"}:
        return True
    if lowered in {"0", "false", "no", "off"}:
        return False
    raise ValueError("expected boolean (true/false)")


def _coerce_bytes_limit(value: Any) -> int | None:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    if isinstance(value, bool):
        raise ValueError("expected an integer byte count")
    limit = int(value)
    if limit < 0:
        raise ValueError("byte limit cannot be negative")
    return limit


def _build_settings(data: Mapping[str, Any], source_path: Path) -> QuerySettings:
    try:
        key_filename = str(data["keyFilename"] or "")
        return QuerySettings(
            source_path=source_path,
            key_filename=str(paths.resolve_path(key_filename)) if key_filename else "",
            project_id=str(data["projectId"] or ""),
            use_legacy_sql=_coerce_bool(data["useLegacySql"]),
            location=str(data["location"] or "US"),
            maximum_bytes_billed=_coerce_bytes_limit(data["maximumBytesBilled"]),
            preserve_focus=_coerce_bool(data["preserveFocus"]),
            output_format=OutputFormat.parse(data["outputFormat"]),
            pretty_print_json=_coerce_bool(data["prettyPrintJSON"]),
        )
    except (KeyError, TypeError, ValueError) as exc:
        raise ConfigurationError(f"Invalid settings in {source_path}: {exc}") from exc


SettingsListener = Callable[[QuerySettings], None]


class ConfigurationManager:
    """Owns the current settings record and swaps it wholesale on reload.

    Readers call :attr:`current` and get a frozen record; a reload builds the new
    record completely before publishing it, so a reader sees either the old or
    the new settings and never a mix. A reload that fails leaves the previous
    record in place.
    """

    def __init__(
        self,
        config_path: str | Path | None = None,
        env: Mapping[str, str] | None = None,
        *,
        settings: QuerySettings | None = None,
    ) -> None:
        self._config_path = config_path
        self._env = env
        self._lock = threading.Lock()
        self._listeners: list[SettingsListener] = []
        self._settings = settings if settings is not None else load_settings(config_path, env)
        self._stamp = _file_stamp(self._settings.source_path)

    @property
    def current(self) -> QuerySettings:
        return self._settings

    def subscribe(self, listener: SettingsListener) -> None:
        """Register a callback invoked with the new settings after every reload."""
        with self._lock:
            self._listeners.append(listener)

    def reload(self) -> QuerySettings:
        """Re-read the settings store and publish the result."""
        settings = load_settings(self._config_path, self._env)
        stamp = _file_stamp(settings.source_path)
        with self._lock:
            self._settings = settings
            self._stamp = stamp
            listeners = list(self._listeners)
        for listener in listeners:
            listener(settings)
        return settings

    def refresh_if_changed(self) -> bool:
        """Reload when the settings file changed since the last load."""
        if _file_stamp(self._settings.source_path) == self._stamp:
            return False
        self.reload()
        return True


def _file_stamp(path: Path) -> tuple[int, int] | None:
    try:
        stat = path.stat()
    except FileNotFoundError:
        return None
    except OSError as exc:
        raise ConfigurationError(f"Failed to read settings at {path}: {exc}") from exc
    return (stat.st_mtime_ns, stat.st_size)
