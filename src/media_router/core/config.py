from __future__ import annotations

import dataclasses
import logging
import os
from pathlib import Path
from typing import Any, Mapping, Optional

import yaml
from dotenv import load_dotenv

logger = logging.getLogger("media_router.core.config")

CONFIG_FILENAME = "media-router.yml"
DEFAULT_BACKEND_URL = "http://127.0.0.1:8000"
DEFAULT_BRIDGE_URL = "http://127.0.0.1:3000"
DEFAULT_OPENROUTER_BASE_URL = "https://openrouter.ai/api/v1"
DEFAULT_OPENROUTER_MODEL = "mistralai/mistral-7b-instruct:free"
DEFAULT_OPENROUTER_REFERRER = "http://localhost"
DEFAULT_OPENROUTER_TITLE = "RQ Assistente"
DEFAULT_HTTP_TIMEOUT_SECONDS = 10.0
DEFAULT_ASSISTANT_TIMEOUT_SECONDS = 20.0
DEFAULT_ONBOARDING_COOLDOWN_SECONDS = 60 * 60
DEFAULT_SERVER_HOST = "127.0.0.1"
DEFAULT_SERVER_PORT = 8080
DEFAULT_LOG_PATH = "logs/media-router.log"
DEFAULT_LOG_MAX_BYTES = 5 * 1024 * 1024
DEFAULT_LOG_BACKUP_COUNT = 3
DEFAULT_MEDIA_DIR = "media"

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off", ""}
_LOG_LEVELS = ("critical", "error", "warning", "info", "debug")
_LOG_LEVEL_ALIASES = {"warn": "warning", "fatal": "critical", "trace": "debug"}


class ConfigError(Exception):
    """Raised when the router configuration is invalid."""


@dataclasses.dataclass(frozen=True)
class LogConfig:
    level: str
    path: Optional[Path]
    max_bytes: int
    backup_count: int


@dataclasses.dataclass(frozen=True)
class BackendConfig:
    base_url: str
    timeout_seconds: float


@dataclasses.dataclass(frozen=True)
class BridgeConfig:
    base_url: str
    timeout_seconds: float


@dataclasses.dataclass(frozen=True)
class AssistantConfig:
    api_key: Optional[str]
    model: str
    base_url: str
    referrer: str
    title: str
    timeout_seconds: float

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)


@dataclasses.dataclass(frozen=True)
class ServerConfig:
    host: str
    port: int


@dataclasses.dataclass(frozen=True)
class RouterConfig:
    root: Path
    allow_from_me: bool
    backend: BackendConfig
    bridge: BridgeConfig
    assistant: AssistantConfig
    server: ServerConfig
    log: LogConfig
    media_dir: Path
    onboarding_cooldown_seconds: float
    handler_plugins: tuple[str, ...]

    @classmethod
    def from_raw(
        cls,
        raw: Optional[Mapping[str, Any]],
        *,
        root: Path,
        env: Optional[Mapping[str, str]] = None,
    ) -> "RouterConfig":
        cfg: Mapping[str, Any] = raw if isinstance(raw, Mapping) else {}
        source = env if env is not None else os.environ

        backend_cfg = _section(cfg, "backend")
        bridge_cfg = _section(cfg, "bridge")
        assistant_cfg = _section(cfg, "assistant")
        server_cfg = _section(cfg, "server")
        log_cfg = _section(cfg, "log")
        media_cfg = _section(cfg, "media")
        onboarding_cfg = _section(cfg, "onboarding")
        handlers_cfg = _section(cfg, "handlers")

        backend = BackendConfig(
            base_url=_parse_url(
                _env_or(source, "BACKEND_URL", backend_cfg.get("base_url")),
                default=DEFAULT_BACKEND_URL,
                key="backend.base_url",
            ),
            timeout_seconds=_parse_positive_float(
                backend_cfg.get("timeout_seconds"),
                default=DEFAULT_HTTP_TIMEOUT_SECONDS,
                key="backend.timeout_seconds",
            ),
        )
        bridge = BridgeConfig(
            base_url=_parse_url(
                _env_or(source, "WHATSAPP_BRIDGE_URL", bridge_cfg.get("base_url")),
                default=DEFAULT_BRIDGE_URL,
                key="bridge.base_url",
            ),
            timeout_seconds=_parse_positive_float(
                bridge_cfg.get("timeout_seconds"),
                default=DEFAULT_HTTP_TIMEOUT_SECONDS,
                key="bridge.timeout_seconds",
            ),
        )
        api_key_raw = _env_or(source, "OPENROUTER_API_KEY", assistant_cfg.get("api_key"))
        api_key = str(api_key_raw).strip() if api_key_raw is not None else ""
        assistant = AssistantConfig(
            api_key=api_key or None,
            model=_parse_str(
                _env_or(source, "OPENROUTER_MODEL", assistant_cfg.get("model")),
                default=DEFAULT_OPENROUTER_MODEL,
            ),
            base_url=_parse_url(
                assistant_cfg.get("base_url"),
                default=DEFAULT_OPENROUTER_BASE_URL,
                key="assistant.base_url",
            ),
            referrer=_parse_str(
                _env_or(source, "OPENROUTER_REFERRER", assistant_cfg.get("referrer")),
                default=DEFAULT_OPENROUTER_REFERRER,
            ),
            title=_parse_str(
                _env_or(source, "OPENROUTER_TITLE", assistant_cfg.get("title")),
                default=DEFAULT_OPENROUTER_TITLE,
            ),
            timeout_seconds=_parse_positive_float(
                assistant_cfg.get("timeout_seconds"),
                default=DEFAULT_ASSISTANT_TIMEOUT_SECONDS,
                key="assistant.timeout_seconds",
            ),
        )
        server = ServerConfig(
            host=_parse_str(server_cfg.get("host"), default=DEFAULT_SERVER_HOST),
            port=_parse_port(_env_or(source, "PORT", server_cfg.get("port"))),
        )
        log_path_raw = log_cfg.get("path", DEFAULT_LOG_PATH)
        log = LogConfig(
            level=_parse_log_level(_env_or(source, "LOG_LEVEL", log_cfg.get("level"))),
            path=(root / str(log_path_raw)).resolve() if log_path_raw else None,
            max_bytes=_parse_positive_int(
                log_cfg.get("max_bytes"),
                default=DEFAULT_LOG_MAX_BYTES,
                key="log.max_bytes",
            ),
            backup_count=_parse_positive_int(
                log_cfg.get("backup_count"),
                default=DEFAULT_LOG_BACKUP_COUNT,
                key="log.backup_count",
            ),
        )
        media_dir = _parse_str(
            _env_or(source, "MEDIA_DIR", media_cfg.get("dir")),
            default=DEFAULT_MEDIA_DIR,
        )
        plugins_raw = handlers_cfg.get("plugins") or []
        if not isinstance(plugins_raw, (list, tuple)):
            raise ConfigError("handlers.plugins must be a list of import paths")
        plugins = tuple(str(item).strip() for item in plugins_raw if str(item).strip())
        for plugin in plugins:
            if ":" not in plugin:
                raise ConfigError(
                    f"handlers.plugins entry {plugin!r} must look like 'module:attribute'"
                )

        return cls(
            root=root,
            allow_from_me=_parse_bool(
                _env_or(source, "ALLOW_FROM_ME", cfg.get("allow_from_me")),
                default=False,
                key="allow_from_me",
            ),
            backend=backend,
            bridge=bridge,
            assistant=assistant,
            server=server,
            log=log,
            media_dir=(root / media_dir).resolve(),
            onboarding_cooldown_seconds=_parse_positive_float(
                onboarding_cfg.get("cooldown_seconds"),
                default=DEFAULT_ONBOARDING_COOLDOWN_SECONDS,
                key="onboarding.cooldown_seconds",
            ),
            handler_plugins=plugins,
        )

    def redacted(self) -> dict[str, Any]:
        """Return a plain dict of the config with secrets masked."""

        data = dataclasses.asdict(self)
        api_key = self.assistant.api_key
        if api_key:
            data["assistant"]["api_key"] = f"{api_key[:10]}..."
        return _stringify_paths(data)


def load_dotenv_for_root(root: Path) -> None:
    """
    Best-effort load of environment variables for the provided root.

    Only ``root/.env`` is consulted so the result does not depend on the
    process working directory.
    """
    candidate = root.resolve() / ".env"
    try:
        if candidate.exists():
            load_dotenv(dotenv_path=candidate, override=False)
            logger.debug("Loaded .env from %s", candidate)
    except OSError as exc:
        logger.debug("Failed to load .env file: %s", exc)


def load_config(
    root: Optional[Path] = None, *, env: Optional[Mapping[str, str]] = None
) -> RouterConfig:
    root = (root or Path.cwd()).resolve()
    if env is None:
        load_dotenv_for_root(root)
    data = _load_yaml_dict(root / CONFIG_FILENAME)
    return RouterConfig.from_raw(data, root=root, env=env)


def _load_yaml_dict(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    try:
        loaded = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid YAML in {path}: {exc}") from exc
    except OSError as exc:
        raise ConfigError(f"Unable to read {path}: {exc}") from exc
    if loaded is None:
        return {}
    if not isinstance(loaded, dict):
        raise ConfigError(f"{path} must contain a mapping at the top level")
    return loaded


def _section(cfg: Mapping[str, Any], key: str) -> Mapping[str, Any]:
    value = cfg.get(key)
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise ConfigError(f"{key} must be a mapping")
    return value


def _env_or(source: Mapping[str, str], key: str, fallback: Any) -> Any:
    value = source.get(key)
    if value is None or str(value).strip() == "":
        return fallback
    return value


def _parse_str(value: Any, *, default: str) -> str:
    if value is None:
        return default
    text = str(value).strip()
    return text or default


def _parse_url(value: Any, *, default: str, key: str) -> str:
    url = _parse_str(value, default=default).rstrip("/")
    if not url.startswith(("http://", "https://")):
        raise ConfigError(f"{key} must be an http(s) URL, got {url!r}")
    return url


def _parse_bool(value: Any, *, default: bool, key: str) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE_VALUES:
        return True
    if text in _FALSE_VALUES:
        return False
    raise ConfigError(f"{key} must be a boolean, got {value!r}")


def _parse_positive_float(value: Any, *, default: float, key: str) -> float:
    if value is None:
        return float(default)
    try:
        parsed = float(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"{key} must be a number") from exc
    if parsed <= 0:
        raise ConfigError(f"{key} must be > 0")
    return parsed


def _parse_positive_int(value: Any, *, default: int, key: str) -> int:
    if value is None:
        return default
    try:
        parsed = int(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"{key} must be an integer") from exc
    if parsed <= 0:
        raise ConfigError(f"{key} must be > 0")
    return parsed


def _parse_log_level(value: Any) -> str:
    level = _parse_str(value, default="info").lower()
    level = _LOG_LEVEL_ALIASES.get(level, level)
    if level not in _LOG_LEVELS:
        raise ConfigError(
            f"log.level must be one of {', '.join(_LOG_LEVELS)}, got {value!r}"
        )
    return level


def _parse_port(value: Any) -> int:
    port = _parse_positive_int(value, default=DEFAULT_SERVER_PORT, key="server.port")
    if port > 65535:
        raise ConfigError("server.port must be <= 65535")
    return port


def _stringify_paths(value: Any) -> Any:
    if isinstance(value, Path):
        return str(value)
    if isinstance(value, dict):
        return {key: _stringify_paths(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_stringify_paths(item) for item in value]
    return value
