"""Typed parser for config.toml sections into immutable app settings."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Mapping

from app_config_schema import (
    DEFAULT_IDENTITY_FILE,
    AppConfig,
    AppConfigurationError,
    BackendSettings,
    ClockSettings,
    IdentitySettings,
    NotifierSettings,
    UIServerSettings,
)


def parse_app_config(
    raw: Mapping[str, Any],
    *,
    base_dir: Path,
    source_file: str,
) -> AppConfig:
    """Parse raw TOML mappings into strongly typed application settings."""
    return AppConfig(
        backend=_parse_backend_settings(_section(raw, "backend")),
        clock=_parse_clock_settings(_section(raw, "clock")),
        notifier=_parse_notifier_settings(_section(raw, "notifier"), base_dir=base_dir),
        identity=_parse_identity_settings(_section(raw, "identity"), base_dir=base_dir),
        ui_server=_parse_ui_server_settings(_section(raw, "ui_server")),
        source_file=source_file,
    )


def _parse_backend_settings(section: Mapping[str, Any]) -> BackendSettings:
    _forbid_secret_fields(section, "backend", ("api_token", "token"))
    return BackendSettings(
        base_url=_required_str(section, "base_url", "backend"),
        timeout_seconds=_as_float(
            section.get("timeout_seconds", 10.0),
            "backend.timeout_seconds",
        ),
        read_retries=_as_int(section.get("read_retries", 2), "backend.read_retries"),
        retry_initial_delay_seconds=_as_float(
            section.get("retry_initial_delay_seconds", 0.5),
            "backend.retry_initial_delay_seconds",
        ),
    )


def _parse_clock_settings(section: Mapping[str, Any]) -> ClockSettings:
    interval = _as_int(section.get("tick_interval_ms", 300), "clock.tick_interval_ms")
    if not 10 <= interval <= 1000:
        raise AppConfigurationError(
            f"clock.tick_interval_ms must be in [10, 1000], got: {interval}"
        )
    return ClockSettings(tick_interval_ms=interval)


def _parse_notifier_settings(
    section: Mapping[str, Any],
    *,
    base_dir: Path,
) -> NotifierSettings:
    volume = _as_float(section.get("volume", 0.6), "notifier.volume")
    if not 0.0 <= volume <= 1.0:
        raise AppConfigurationError(f"notifier.volume must be in [0, 1], got: {volume}")
    return NotifierSettings(
        enabled=_as_bool(section.get("enabled", True), "notifier.enabled"),
        cue_file=_resolve_path(
            base_dir,
            _as_str(section.get("cue_file", ""), "notifier.cue_file"),
        ),
        output_device=(
            _as_int(section.get("output_device"), "notifier.output_device")
            if "output_device" in section
            else None
        ),
        volume=volume,
    )


def _parse_identity_settings(
    section: Mapping[str, Any],
    *,
    base_dir: Path,
) -> IdentitySettings:
    store_file = _as_str(
        section.get("store_file", DEFAULT_IDENTITY_FILE),
        "identity.store_file",
    )
    return IdentitySettings(
        store_file=_resolve_path(base_dir, store_file or DEFAULT_IDENTITY_FILE),
    )


def _parse_ui_server_settings(section: Mapping[str, Any]) -> UIServerSettings:
    return UIServerSettings(
        enabled=_as_bool(section.get("enabled", False), "ui_server.enabled"),
        host=_as_str(section.get("host", "127.0.0.1"), "ui_server.host"),
        port=_as_int(section.get("port", 8765), "ui_server.port"),
    )


def _section(root: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    raw = root.get(name, {})
    if raw is None:
        return {}
    if not isinstance(raw, Mapping):
        raise AppConfigurationError(f"[{name}] must be a table.")
    return raw


def _required_str(section: Mapping[str, Any], field: str, section_name: str) -> str:
    value = section.get(field)
    text = _as_str(value, f"{section_name}.{field}")
    if not text:
        raise AppConfigurationError(f"{section_name}.{field} is required.")
    return text


def _as_str(value: Any, field: str) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value.strip()
    raise AppConfigurationError(f"{field} must be a string.")


def _as_bool(value: Any, field: str) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in ("true", "1", "yes", "on"):
            return True
        if lowered in ("false", "0", "no", "off"):
            return False
    raise AppConfigurationError(f"{field} must be a boolean.")


def _as_int(value: Any, field: str) -> int:
    if isinstance(value, bool):
        raise AppConfigurationError(f"{field} must be an integer.")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError as error:
            raise AppConfigurationError(f"{field} must be an integer.") from error
    raise AppConfigurationError(f"{field} must be an integer.")


def _as_float(value: Any, field: str) -> float:
    if isinstance(value, bool):
        raise AppConfigurationError(f"{field} must be a float.")
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError as error:
            raise AppConfigurationError(f"{field} must be a float.") from error
    raise AppConfigurationError(f"{field} must be a float.")


def _resolve_path(base_dir: Path, raw: str) -> str:
    if not raw:
        return ""
    path = Path(raw).expanduser()
    if not path.is_absolute():
        path = (base_dir / path).resolve()
    return str(path)


def _forbid_secret_fields(
    section: Mapping[str, Any],
    section_name: str,
    fields: tuple[str, ...],
) -> None:
    present = [field for field in fields if field in section]
    if present:
        joined = ", ".join(f"{section_name}.{field}" for field in present)
        raise AppConfigurationError(
            f"Secret values must not be stored in config.toml: {joined}. "
            "Move them to environment variables."
        )
