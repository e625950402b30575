"""Build per-instance configurations from create-time options."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, TextIO

import yaml

from klausctl.config import Config, ConfigError, Plugin, default_config
from klausctl.paths import (
    Paths,
    expand_path,
    resolve_personality_ref,
    resolve_plugin_ref,
    resolve_toolchain_ref,
    split_name_suffix,
    validate_instance_name,
)

FIRST_PORT = 8080
LAST_PORT = 65535


@dataclass
class ResolvedPersonality:
    """Values taken from a resolved personality and merged into a config."""

    plugins: list[Plugin] = field(default_factory=list)
    image: str = ""


PersonalityResolver = Callable[[str, Optional[TextIO]], ResolvedPersonality]


@dataclass
class CreateOptions:
    """User-facing parameters for creating an instance."""

    name: str = ""
    workspace: str = ""
    personality: str = ""
    toolchain: str = ""
    plugins: list[str] = field(default_factory=list)
    port: int = 0

    env_vars: dict[str, str] = field(default_factory=dict)
    env_forward: list[str] = field(default_factory=list)
    mcp_servers: dict[str, Any] = field(default_factory=dict)
    secret_env_vars: dict[str, str] = field(default_factory=dict)
    secret_files: dict[str, str] = field(default_factory=dict)
    mcp_server_refs: list[str] = field(default_factory=list)
    max_budget_usd: Optional[float] = None
    permission_mode: str = ""
    model: str = ""
    system_prompt: str = ""

    output: Optional[TextIO] = None
    resolve_personality: Optional[PersonalityResolver] = None


def generate_instance_config(paths: Paths, opts: CreateOptions) -> Config:
    """Build and validate the configuration for a new named instance."""
    validate_instance_name(opts.name)

    workspace = expand_path(opts.workspace)
    try:
        is_dir = os.path.isdir(workspace)
        os.stat(workspace)
    except OSError as exc:
        raise ConfigError(f"checking workspace directory: {exc}") from exc
    if not is_dir:
        raise ConfigError(f"workspace path is not a directory: {workspace}")

    cfg = default_config()
    cfg.workspace = workspace

    toolchain_explicit = bool(opts.toolchain)
    if opts.personality:
        cfg.personality = resolve_personality_ref(opts.personality)
    if toolchain_explicit:
        cfg.toolchain = resolve_toolchain_ref(opts.toolchain)
        cfg.image = cfg.toolchain

    cfg.plugins.extend(parse_plugin_ref(ref) for ref in opts.plugins)

    if opts.port > 0:
        if opts.port in used_ports(paths):
            raise ConfigError(
                f"port {opts.port} is already used by another instance; choose a "
                "different --port or omit --port for auto-selection"
            )
        cfg.port = opts.port
    else:
        cfg.port = next_available_port(paths, FIRST_PORT)

    if cfg.personality and opts.resolve_personality is not None:
        try:
            resolved = opts.resolve_personality(cfg.personality, opts.output)
        except Exception as exc:
            raise ConfigError(f"resolving personality: {exc}") from exc
        cfg.plugins = merge_plugins(resolved.plugins, cfg.plugins)
        if not toolchain_explicit and resolved.image:
            cfg.image = resolved.image

    _apply_create_overrides(cfg, opts)
    cfg.validate()
    return cfg


def _apply_create_overrides(cfg: Config, opts: CreateOptions) -> None:
    cfg.env_vars.update(opts.env_vars)
    if opts.env_forward:
        cfg.env_forward = sorted(set(cfg.env_forward) | set(opts.env_forward))
    cfg.mcp_servers.update(opts.mcp_servers)
    cfg.secret_env_vars.update(opts.secret_env_vars)
    cfg.secret_files.update(opts.secret_files)
    if opts.mcp_server_refs:
        cfg.mcp_server_refs = sorted(set(cfg.mcp_server_refs) | set(opts.mcp_server_refs))

    if opts.max_budget_usd is not None:
        cfg.claude.max_budget_usd = float(opts.max_budget_usd)
    if opts.permission_mode:
        cfg.claude.permission_mode = opts.permission_mode
    if opts.model:
        cfg.claude.model = opts.model
    if opts.system_prompt:
        cfg.claude.system_prompt = opts.system_prompt


def next_available_port(paths: Paths, start: int) -> int:
    """Return the lowest port at or above start not used by any instance."""
    used = used_ports(paths)
    for port in range(start, LAST_PORT + 1):
        if port not in used:
            return port
    raise ConfigError(f"no available ports in range {start}-{LAST_PORT}")


def _port_from(path: str, parse: Callable[[str], Any]) -> int:
    try:
        with open(path, encoding="utf-8") as fh:
            data = parse(fh.read())
    except (OSError, ValueError, yaml.YAMLError):
        return 0
    if not isinstance(data, dict):
        return 0
    port = data.get("port")
    if isinstance(port, bool) or not isinstance(port, int):
        return 0
    return port


def used_ports(paths: Paths) -> set[int]:
    """Return the ports recorded in instance state and config files."""
    try:
        with os.scandir(paths.instances_dir) as it:
            entries = list(it)
    except FileNotFoundError:
        return set()
    except OSError as exc:
        raise ConfigError(f"reading instances directory: {exc}") from exc

    used: set[int] = set()
    for entry in entries:
        if not entry.is_dir():
            continue
        inst_dir = os.path.join(paths.instances_dir, entry.name)
        for filename, parse in (("instance.json", json.loads), ("config.yaml", yaml.safe_load)):
            port = _port_from(os.path.join(inst_dir, filename), parse)
            if port > 0:
                used.add(port)
    return used


def parse_plugin_ref(ref: str) -> Plugin:
    """Resolve a plugin reference into repository, tag and digest."""
    repository, suffix = split_name_suffix(resolve_plugin_ref(ref))
    plugin = Plugin(repository=repository)
    if suffix.startswith(":"):
        plugin.tag = suffix[1:]
    elif suffix.startswith("@"):
        plugin.digest = suffix[1:]
    return plugin


def merge_plugins(personality_plugins: list[Plugin], user_plugins: list[Plugin]) -> list[Plugin]:
    """Append personality plugins to user plugins, skipping repeated repositories."""
    if not personality_plugins:
        return user_plugins
    merged = list(user_plugins)
    seen = {p.repository for p in user_plugins}
    for plugin in personality_plugins:
        if plugin.repository in seen:
            continue
        seen.add(plugin.repository)
        merged.append(plugin)
    return merged