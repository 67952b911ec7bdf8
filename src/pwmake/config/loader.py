"""Layered configuration: defaults < config file < environment < command line."""

from __future__ import annotations

from dataclasses import asdict, dataclass, fields, replace
from pathlib import Path
from typing import Any, Mapping

import yaml

try:
    import tomllib  # type: ignore[attr-defined]
except ModuleNotFoundError:  # pragma: no cover
    import tomli as tomllib  # type: ignore[no-redef]

from ..contracts.validate import validate
from ..core.errors import ConfigError, ScriptError
from ..makefile.parser import DEFAULT_MAKEFILE

CONFIG_SCHEMA = "pwmake.config.v1"
CONFIG_FILES = ("pwmake.toml", ".pwmake.yaml", ".pwmake.yml", "pyproject.toml")
ENV_KEYS = {
    "PWMAKE_FILE": "file",
    "PWMAKE_SHELL": "shell",
    "PWMAKE_SHELL_PATH": "shell_path",
    "PWMAKE_ERROR_ACTION": "error_action",
    "PWMAKE_LOG_JSON": "log_json",
}
_TRUTHY = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class MakeConfig:
    file: str = DEFAULT_MAKEFILE
    shell: str = "sh"
    shell_path: str = "/bin/sh"
    error_action: str = "stop"
    delimiter: str = " "
    target_delimiter: str = ":"
    force_trailing_comment_stripping: bool = False
    log_json: bool = False
    max_expansion_depth: int = 100
    source: str = "defaults"

    def with_overrides(self, **values: Any) -> "MakeConfig":
        known = {f.name for f in fields(self)}
        updates = {key: value for key, value in values.items() if key in known and value is not None}
        if not updates:
            return self
        payload = {k: v for k, v in {**asdict(self), **updates}.items() if k != "source"}
        _validate(payload, "command line")
        return replace(self, **updates)


def _validate(payload: Mapping[str, Any], source: str) -> None:
    try:
        validate(CONFIG_SCHEMA, dict(payload))
    except ScriptError as exc:
        raise ConfigError(f"invalid configuration from {source}: {exc}") from exc


def _read_file(path: Path) -> dict[str, Any]:
    text = path.read_text(encoding="utf-8")
    try:
        if path.suffix in {".yaml", ".yml"}:
            data = yaml.safe_load(text) or {}
        else:
            data = tomllib.loads(text)
    except (yaml.YAMLError, tomllib.TOMLDecodeError) as exc:
        raise ConfigError(f"cannot parse {path.name}: {exc}") from exc
    if path.name == "pyproject.toml":
        data = data.get("tool", {}).get("pwmake", {})
    if not isinstance(data, dict):
        raise ConfigError(f"{path.name}: configuration root must be a mapping")
    return {str(key).replace("-", "_"): value for key, value in data.items()}


def find_config_file(cwd: Path) -> Path | None:
    for name in CONFIG_FILES:
        candidate = cwd / name
        if not candidate.is_file():
            continue
        if name == "pyproject.toml" and not _read_file(candidate):
            continue
        return candidate
    return None


def _env_values(env: Mapping[str, str]) -> dict[str, Any]:
    values: dict[str, Any] = {}
    for env_name, key in ENV_KEYS.items():
        raw = env.get(env_name)
        if raw is None or not raw.strip():
            continue
        values[key] = raw.strip().lower() in _TRUTHY if key == "log_json" else raw.strip()
    return values


def load_config(cwd: Path, env: Mapping[str, str] | None = None) -> MakeConfig:
    payload: dict[str, Any] = {}
    sources: list[str] = []
    path = find_config_file(cwd)
    if path is not None:
        payload.update(_read_file(path))
        _validate(payload, path.name)
        sources.append(path.name)
    env_values = _env_values(env or {})
    if env_values:
        payload.update(env_values)
        _validate(payload, "environment")
        sources.append("environment")
    return MakeConfig(**payload, source="+".join(sources) or "defaults")
