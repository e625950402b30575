"""Filesystem layout, instance naming and short artifact reference expansion."""

from __future__ import annotations

import os
import re
from dataclasses import dataclass
from pathlib import Path

DEFAULT_PLUGIN_REGISTRY = "gsoci.azurecr.io/giantswarm/klaus-plugins"
DEFAULT_PERSONALITY_REGISTRY = "gsoci.azurecr.io/giantswarm/klaus-personalities"
DEFAULT_TOOLCHAIN_REGISTRY = "gsoci.azurecr.io/giantswarm/klaus-toolchains"

_INSTANCE_NAME_RE = re.compile(r"[a-zA-Z]([a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?")


@dataclass
class Paths:
    """Filesystem paths used by klausctl, optionally scoped to one instance."""

    config_dir: str = ""
    config_file: str = ""
    instances_dir: str = ""
    instance_dir: str = ""
    rendered_dir: str = ""
    extensions_dir: str = ""
    plugins_dir: str = ""
    personalities_dir: str = ""
    instance_file: str = ""
    secrets_file: str = ""
    mcp_servers_file: str = ""

    def for_instance(self, name: str) -> Paths:
        """Return a copy of these paths scoped to the named instance directory."""
        instance_name = name.strip() or "default"
        inst_dir = os.path.join(self.instances_dir, instance_name)
        return Paths(
            config_dir=self.config_dir,
            config_file=os.path.join(inst_dir, "config.yaml"),
            instances_dir=self.instances_dir,
            instance_dir=inst_dir,
            rendered_dir=os.path.join(inst_dir, "rendered"),
            extensions_dir=os.path.join(inst_dir, "rendered", "extensions"),
            plugins_dir=self.plugins_dir,
            personalities_dir=self.personalities_dir,
            instance_file=os.path.join(inst_dir, "instance.json"),
            secrets_file=self.secrets_file,
            mcp_servers_file=self.mcp_servers_file,
        )


def _config_home() -> str:
    xdg = os.environ.get("XDG_CONFIG_HOME", "")
    if xdg:
        return xdg
    try:
        home = str(Path.home())
    except (RuntimeError, KeyError, OSError) as exc:
        raise RuntimeError(f"determining home directory: {exc}") from exc
    return os.path.join(home, ".config")


def default_paths() -> Paths:
    """Return the default paths following XDG conventions."""
    try:
        config_home = _config_home()
    except RuntimeError as exc:
        raise RuntimeError(f"determining config directory: {exc}") from exc
    base = os.path.join(config_home, "klausctl")
    instances_dir = os.path.join(base, "instances")
    default_dir = os.path.join(instances_dir, "default")
    return Paths(
        config_dir=base,
        config_file=os.path.join(default_dir, "config.yaml"),
        instances_dir=instances_dir,
        instance_dir=default_dir,
        rendered_dir=os.path.join(default_dir, "rendered"),
        extensions_dir=os.path.join(default_dir, "rendered", "extensions"),
        plugins_dir=os.path.join(base, "plugins"),
        personalities_dir=os.path.join(base, "personalities"),
        instance_file=os.path.join(default_dir, "instance.json"),
        secrets_file=os.path.join(base, "secrets.yaml"),
        mcp_servers_file=os.path.join(base, "mcpservers.yaml"),
    )


def expand_path(path: str) -> str:
    """Expand a leading ``~`` or ``~/`` to the home directory; ``~user`` is left alone."""
    if path == "~" or path.startswith("~/"):
        try:
            home = str(Path.home())
        except (RuntimeError, KeyError, OSError):
            return path
        if path == "~":
            return home
        return os.path.normpath(os.path.join(home, path[2:]))
    return path


def ensure_dir(path: str) -> None:
    """Create a directory and its parents if they do not exist."""
    os.makedirs(path, mode=0o755, exist_ok=True)


def validate_instance_name(name: str) -> None:
    """Raise ValueError unless the name is a valid DNS-label style instance name."""
    if not _INSTANCE_NAME_RE.fullmatch(name):
        raise ValueError(
            f"invalid instance name {name!r}: must start with a letter, contain only "
            "alphanumeric characters or '-', and be <= 63 characters"
        )


def split_name_suffix(ref: str) -> tuple[str, str]:
    """Split a reference into its name and its ``@digest`` or ``:tag`` suffix."""
    at = ref.find("@")
    if at >= 0:
        return ref[:at], ref[at:]
    colon = ref.rfind(":")
    if colon >= 0:
        return ref[:colon], ref[colon:]
    return ref, ""


def _expand_artifact_ref(ref: str, base: str) -> str:
    ref = ref.strip()
    if not ref or "/" in ref:
        return ref
    name, suffix = split_name_suffix(ref)
    return f"{base}/{name}{suffix}"


def resolve_personality_ref(ref: str) -> str:
    """Expand a short personality name to a full repository path."""
    return _expand_artifact_ref(ref, DEFAULT_PERSONALITY_REGISTRY)


def resolve_toolchain_ref(ref: str) -> str:
    """Expand a short toolchain name to a full repository path."""
    return _expand_artifact_ref(ref, DEFAULT_TOOLCHAIN_REGISTRY)


def resolve_plugin_ref(ref: str) -> str:
    """Expand a short plugin name to a full repository path."""
    return _expand_artifact_ref(ref, DEFAULT_PLUGIN_REGISTRY)