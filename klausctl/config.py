"""Configuration types for klausctl and loading them from YAML files."""

from __future__ import annotations

import json
from dataclasses import dataclass, field, fields, is_dataclass
from typing import Any, Callable

import yaml

from klausctl.paths import default_paths, expand_path

DEFAULT_IMAGE = "gsoci.azurecr.io/giantswarm/klaus:latest"
DEFAULT_PORT = 8080
DEFAULT_PERMISSION_MODE = "bypassPermissions"

VALID_PERMISSION_MODES = (
    "default",
    "acceptEdits",
    "bypassPermissions",
    "dontAsk",
    "plan",
    "delegate",
)
VALID_EFFORT_LEVELS = ("low", "medium", "high")

_Decoder = Callable[[Any, str], Any]


class ConfigError(ValueError):
    """Raised when a configuration cannot be read, parsed or validated."""


def _quote(value: str) -> str:
    return json.dumps(value, ensure_ascii=False)


def _join(where: str, key: Any) -> str:
    return f"{where}.{key}" if where else str(key)


def _type_error(where: str, expected: str, value: Any) -> ConfigError:
    return ConfigError(f"{where}: expected {expected}, got {type(value).__name__}")


# --- decoders -------------------------------------------------------------


def _as_str(value: Any, where: str) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    raise _type_error(where, "a string", value)


def _as_int(value: Any, where: str) -> int:
    if isinstance(value, bool):
        raise _type_error(where, "an integer", value)
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    raise _type_error(where, "an integer", value)


def _as_float(value: Any, where: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise _type_error(where, "a number", value)
    return float(value)


def _as_bool(value: Any, where: str) -> bool:
    if not isinstance(value, bool):
        raise _type_error(where, "a boolean", value)
    return value


def _as_any(value: Any, where: str) -> Any:
    return value


def _list_of(decode: _Decoder) -> _Decoder:
    def decoder(value: Any, where: str) -> list:
        if not isinstance(value, list):
            raise _type_error(where, "a list", value)
        return [decode(item, f"{where}[{i}]") for i, item in enumerate(value)]

    return decoder


def _map_of(decode: _Decoder) -> _Decoder:
    def decoder(value: Any, where: str) -> dict:
        if not isinstance(value, dict):
            raise _type_error(where, "a mapping", value)
        return {str(k): decode(v, _join(where, k)) for k, v in value.items()}

    return decoder


def _struct(cls: type) -> _Decoder:
    return lambda value, where: _decode_struct(cls, value, where)


def _decode_struct(cls: type, value: Any, where: str) -> Any:
    if not isinstance(value, dict):
        raise _type_error(where or "document", "a mapping", value)
    kwargs = {}
    for f in fields(cls):
        if not f.init or "key" not in f.metadata:
            continue
        key = f.metadata["key"]
        raw = value.get(key)
        if raw is None:
            continue
        kwargs[f.name] = f.metadata["decode"](raw, _join(where, key))
    return cls(**kwargs)


# --- encoding -------------------------------------------------------------


def _is_empty(value: Any) -> bool:
    if value is None:
        return True
    if is_dataclass(value) and not isinstance(value, type):
        return all(
            _field_empty(f, getattr(value, f.name))
            for f in fields(value)
            if "key" in f.metadata
        )
    if isinstance(value, bool):
        return not value
    if isinstance(value, (int, float)):
        return value == 0
    if isinstance(value, (str, list, tuple, dict)):
        return len(value) == 0
    return False


def _field_empty(f: Any, value: Any) -> bool:
    if f.metadata.get("omit") == "nil":
        return value is None
    return _is_empty(value)


def _encode(value: Any) -> Any:
    if is_dataclass(value) and not isinstance(value, type):
        return _encode_struct(value)
    if isinstance(value, dict):
        return {k: _encode(value[k]) for k in sorted(value, key=str)}
    if isinstance(value, (list, tuple)):
        return [_encode(item) for item in value]
    return value


def _encode_struct(obj: Any) -> dict[str, Any]:
    out: dict[str, Any] = {}
    for f in fields(obj):
        if "key" not in f.metadata:
            continue
        value = getattr(obj, f.name)
        if f.metadata["omit"] and _field_empty(f, value):
            continue
        out[f.metadata["key"]] = _encode(value)
    return out


def _field(
    key: str,
    decode: _Decoder,
    default: Any = None,
    *,
    factory: Callable[[], Any] | None = None,
    omit: bool | str = True,
) -> Any:
    meta = {"key": key, "decode": decode, "omit": omit}
    if factory is not None:
        return field(default_factory=factory, metadata=meta)
    return field(default=default, metadata=meta)


_STR_LIST = _list_of(_as_str)
_STR_MAP = _map_of(_as_str)
_ANY_MAP = _map_of(_as_any)


# --- configuration types --------------------------------------------------


@dataclass
class Hook:
    """A single hook action."""

    type: str = _field("type", _as_str, "", omit=False)
    command: str = _field("command", _as_str, "", omit=False)
    timeout: int = _field("timeout", _as_int, 0)


@dataclass
class HookMatcher:
    """A hook matcher entry for settings.json."""

    matcher: str = _field("matcher", _as_str, "", omit=False)
    hooks: list[Hook] = _field("hooks", _list_of(_struct(Hook)), factory=list, omit=False)


@dataclass
class Plugin:
    """A reference to an OCI plugin artifact."""

    repository: str = _field("repository", _as_str, "", omit=False)
    tag: str = _field("tag", _as_str, "")
    digest: str = _field("digest", _as_str, "")


@dataclass
class Skill:
    """An inline skill rendered as a SKILL.md file."""

    description: str = _field("description", _as_str, "")
    content: str = _field("content", _as_str, "", omit=False)
    disable_model_invocation: bool = _field("disableModelInvocation", _as_bool, False)
    user_invocable: bool = _field("userInvocable", _as_bool, False)
    allowed_tools: str = _field("allowedTools", _as_str, "")
    model: str = _field("model", _as_str, "")
    context: Any = _field("context", _as_any, None)
    agent: str = _field("agent", _as_str, "")
    argument_hint: str = _field("argumentHint", _as_str, "")


@dataclass
class AgentFile:
    """A markdown-format subagent definition."""

    content: str = _field("content", _as_str, "", omit=False)


@dataclass
class AgentConfig:
    """A JSON-format subagent definition."""

    description: str = _field("description", _as_str, "", omit=False)
    prompt: str = _field("prompt", _as_str, "", omit=False)
    tools: list[str] = _field("tools", _STR_LIST, factory=list)
    disallowed_tools: list[str] = _field("disallowedTools", _STR_LIST, factory=list)
    model: str = _field("model", _as_str, "")
    permission_mode: str = _field("permissionMode", _as_str, "")
    max_turns: int = _field("maxTurns", _as_int, 0)
    skills: list[str] = _field("skills", _STR_LIST, factory=list)
    mcp_servers: dict[str, Any] = _field("mcpServers", _ANY_MAP, factory=dict)
    hooks: dict[str, Any] = _field("hooks", _ANY_MAP, factory=dict)
    memory: str = _field("memory", _as_str, "")


@dataclass
class ClaudeConfig:
    """Claude Code agent configuration."""

    model: str = _field("model", _as_str, "")
    system_prompt: str = _field("systemPrompt", _as_str, "")
    append_system_prompt: str = _field("appendSystemPrompt", _as_str, "")
    max_turns: int = _field("maxTurns", _as_int, 0)
    permission_mode: str = _field("permissionMode", _as_str, "")
    max_budget_usd: float = _field("maxBudgetUsd", _as_float, 0.0)
    effort: str = _field("effort", _as_str, "")
    fallback_model: str = _field("fallbackModel", _as_str, "")
    tools: list[str] = _field("tools", _STR_LIST, factory=list)
    allowed_tools: list[str] = _field("allowedTools", _STR_LIST, factory=list)
    disallowed_tools: list[str] = _field("disallowedTools", _STR_LIST, factory=list)
    strict_mcp_config: bool = _field("strictMcpConfig", _as_bool, False)
    mcp_timeout: int = _field("mcpTimeout", _as_int, 0)
    max_mcp_output_tokens: int = _field("maxMcpOutputTokens", _as_int, 0)
    active_agent: str = _field("activeAgent", _as_str, "")
    persistent_mode: bool = _field("persistentMode", _as_bool, False)
    no_session_persistence: bool | None = _field(
        "noSessionPersistence", _as_bool, None, omit="nil"
    )
    include_partial_messages: bool = _field("includePartialMessages", _as_bool, False)
    json_schema: str = _field("jsonSchema", _as_str, "")
    settings_file: str = _field("settingsFile", _as_str, "")
    setting_sources: str = _field("settingSources", _as_str, "")
    load_additional_dirs_memory: bool | None = _field(
        "loadAdditionalDirsMemory", _as_bool, None, omit="nil"
    )
    add_dirs: list[str] = _field("addDirs", _STR_LIST, factory=list)
    plugin_dirs: list[str] = _field("pluginDirs", _STR_LIST, factory=list)


@dataclass
class Config:
    """The klausctl configuration, mirroring the Helm chart values."""

    runtime: str = _field("runtime", _as_str, "")
    personality: str = _field("personality", _as_str, "")
    image: str = _field("image", _as_str, "", omit=False)
    toolchain: str = _field("toolchain", _as_str, "")
    workspace: str = _field("workspace", _as_str, "", omit=False)
    port: int = _field("port", _as_int, 0, omit=False)
    claude: ClaudeConfig = _field("claude", _struct(ClaudeConfig), factory=ClaudeConfig)
    skills: dict[str, Skill] = _field("skills", _map_of(_struct(Skill)), factory=dict)
    agent_files: dict[str, AgentFile] = _field(
        "agentFiles", _map_of(_struct(AgentFile)), factory=dict
    )
    agents: dict[str, AgentConfig] = _field(
        "agents", _map_of(_struct(AgentConfig)), factory=dict
    )
    hooks: dict[str, list[HookMatcher]] = _field(
        "hooks", _map_of(_list_of(_struct(HookMatcher))), factory=dict
    )
    hook_scripts: dict[str, str] = _field("hookScripts", _STR_MAP, factory=dict)
    mcp_servers: dict[str, Any] = _field("mcpServers", _ANY_MAP, factory=dict)
    plugins: list[Plugin] = _field("plugins", _list_of(_struct(Plugin)), factory=list)
    env_forward: list[str] = _field("envForward", _STR_LIST, factory=list)
    env_vars: dict[str, str] = _field("envVars", _STR_MAP, factory=dict)
    secret_env_vars: dict[str, str] = _field("secretEnvVars", _STR_MAP, factory=dict)
    secret_files: dict[str, str] = _field("secretFiles", _STR_MAP, factory=dict)
    mcp_server_refs: list[str] = _field("mcpServerRefs", _STR_LIST, factory=list)
    _image_from_config: bool = field(default=False, init=False, repr=False, compare=False)

    @property
    def image_explicitly_set(self) -> bool:
        """Whether the image was set in the config file before defaults applied."""
        return self._image_from_config

    def apply_defaults(self) -> None:
        """Fill in default values for unset fields."""
        if not self.image:
            self.image = DEFAULT_IMAGE
        if self.port == 0:
            self.port = DEFAULT_PORT
        if not self.claude.permission_mode:
            self.claude.permission_mode = DEFAULT_PERMISSION_MODE
        if self.claude.no_session_persistence is None:
            self.claude.no_session_persistence = True
        if self.claude.load_additional_dirs_memory is None:
            self.claude.load_additional_dirs_memory = True

    def validate(self) -> None:
        """Raise ConfigError if the configuration is invalid."""
        if not self.workspace:
            raise ConfigError("workspace is required")
        if not 1 <= self.port <= 65535:
            raise ConfigError(f"port must be between 1 and 65535, got {self.port}")
        if self.runtime and self.runtime not in ("docker", "podman"):
            raise ConfigError(
                f"runtime must be 'docker' or 'podman', got {_quote(self.runtime)}"
            )
        if self.claude.permission_mode:
            _validate_one_of(
                "permission mode", self.claude.permission_mode, VALID_PERMISSION_MODES
            )
        if self.claude.effort:
            _validate_one_of("effort level", self.claude.effort, VALID_EFFORT_LEVELS)
        if self.claude.max_turns < 0:
            raise ConfigError(f"maxTurns must be >= 0, got {self.claude.max_turns}")
        if self.hooks and self.claude.settings_file:
            raise ConfigError(
                "hooks and claude.settingsFile are mutually exclusive; use one or the other"
            )
        if self.claude.max_budget_usd < 0:
            raise ConfigError(
                f"maxBudgetUsd must be >= 0, got {self.claude.max_budget_usd:f}"
            )
        if self.personality:
            if self.personality.strip() != self.personality:
                raise ConfigError(
                    "personality reference must not have leading/trailing whitespace"
                )
            if "/" not in self.personality:
                raise ConfigError(
                    f"personality {_quote(self.personality)} does not look like a valid "
                    "OCI reference (expected registry/path format)"
                )
        if any(not plugin.repository for plugin in self.plugins):
            raise ConfigError("plugin repository is required")

    def to_dict(self) -> dict[str, Any]:
        """Return the configuration as plain data keyed by its YAML names."""
        return _encode_struct(self)

    def marshal(self) -> str:
        """Serialize the configuration to YAML text."""
        return yaml.safe_dump(
            self.to_dict(), sort_keys=False, default_flow_style=False, allow_unicode=True
        )


def _validate_one_of(name: str, value: str, valid: tuple[str, ...]) -> None:
    if value not in valid:
        raise ConfigError(
            f"invalid {name} {_quote(value)}; valid values: {', '.join(valid)}"
        )


def load(path: str = "") -> Config:
    """Read, default and validate a config file; the default path is used when empty."""
    if not path:
        path = default_paths().config_file
    path = expand_path(path)

    try:
        with open(path, encoding="utf-8") as fh:
            text = fh.read()
    except FileNotFoundError as exc:
        raise ConfigError(
            f"config file not found: {path}\nRun 'klausctl config init' to create one"
        ) from exc
    except OSError as exc:
        raise ConfigError(f"reading config: {exc}") from exc

    try:
        data = yaml.safe_load(text)
        cfg = _decode_struct(Config, {} if data is None else data, "")
    except (yaml.YAMLError, ConfigError) as exc:
        raise ConfigError(f"parsing config: {exc}") from exc

    cfg._image_from_config = bool(cfg.image)
    cfg.apply_defaults()

    try:
        cfg.validate()
    except ConfigError as exc:
        raise ConfigError(f"invalid config: {exc}") from exc
    return cfg


def default_config() -> Config:
    """Return a configuration with all defaults applied; workspace is left unset."""
    cfg = Config()
    cfg.apply_defaults()
    return cfg