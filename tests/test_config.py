import re

import pytest
import yaml

from klausctl.config import (
    ClaudeConfig,
    Config,
    ConfigError,
    Hook,
    HookMatcher,
    Plugin,
    Skill,
    default_config,
    load,
)


def write(tmp_path, content):
    path = tmp_path / "config.yaml"
    path.write_text(content, encoding="utf-8")
    return str(path)


def test_load_valid_config(tmp_path):
    path = write(
        tmp_path,
        """
image: ghcr.io/giantswarm/klaus:v1.0.0
workspace: /tmp/test-workspace
port: 9090
claude:
  model: sonnet
  permissionMode: default
  effort: high
  maxTurns: 10
  maxBudgetUsd: 5.0
""",
    )
    cfg = load(path)
    assert cfg.image == "ghcr.io/giantswarm/klaus:v1.0.0"
    assert cfg.workspace == "/tmp/test-workspace"
    assert cfg.port == 9090
    assert cfg.claude.model == "sonnet"
    assert cfg.claude.permission_mode == "default"
    assert cfg.claude.effort == "high"
    assert cfg.claude.max_turns == 10
    assert cfg.claude.max_budget_usd == 5.0


def test_load_applies_defaults(tmp_path):
    cfg = load(write(tmp_path, "workspace: /tmp/test"))
    assert cfg.image == "gsoci.azurecr.io/giantswarm/klaus:latest"
    assert cfg.port == 8080
    assert cfg.claude.permission_mode == "bypassPermissions"
    assert cfg.claude.no_session_persistence is True
    assert cfg.claude.load_additional_dirs_memory is True


def test_load_missing_file():
    with pytest.raises(ConfigError, match="config file not found"):
        load("/nonexistent/config.yaml")


def test_load_invalid_yaml(tmp_path):
    with pytest.raises(ConfigError, match="parsing config"):
        load(write(tmp_path, "workspace: [unclosed"))


def test_load_wrong_type(tmp_path):
    with pytest.raises(ConfigError, match="parsing config"):
        load(write(tmp_path, "workspace: /tmp\nport: [1, 2]\n"))


def test_load_invalid_config_is_wrapped(tmp_path):
    with pytest.raises(ConfigError, match="invalid config: workspace is required"):
        load(write(tmp_path, "port: 9090\n"))


_HOOKS = {
    "PreToolUse": [
        HookMatcher(matcher="Bash", hooks=[Hook(type="command", command="/bin/true")])
    ]
}


@pytest.mark.parametrize(
    "cfg, message",
    [
        (Config(port=8080), "workspace is required"),
        (Config(workspace="/tmp", port=0), "port must be between"),
        (Config(workspace="/tmp", port=70000), "port must be between"),
        (Config(workspace="/tmp", port=8080, runtime="containerd"), "runtime must be"),
        (
            Config(workspace="/tmp", port=8080, claude=ClaudeConfig(permission_mode="invalid")),
            "invalid permission mode",
        ),
        (
            Config(workspace="/tmp", port=8080, claude=ClaudeConfig(effort="extreme")),
            "invalid effort level",
        ),
        (
            Config(workspace="/tmp", port=8080, claude=ClaudeConfig(max_turns=-1)),
            "maxTurns must be >= 0",
        ),
        (
            Config(workspace="/tmp", port=8080, claude=ClaudeConfig(max_budget_usd=-1.0)),
            "maxBudgetUsd must be >= 0",
        ),
        (
            Config(workspace="/tmp", port=8080, plugins=[Plugin(tag="v1.0.0")]),
            "plugin repository is required",
        ),
        (
            Config(
                workspace="/tmp",
                port=8080,
                hooks=_HOOKS,
                claude=ClaudeConfig(settings_file="/path/to/settings.json"),
            ),
            "mutually exclusive",
        ),
        (
            Config(
                workspace="/tmp",
                port=8080,
                personality=" gsoci.azurecr.io/giantswarm/klaus-personalities/sre:v1 ",
            ),
            "whitespace",
        ),
        (
            Config(workspace="/tmp", port=8080, personality="sre:v1"),
            "does not look like a valid OCI reference",
        ),
    ],
)
def test_validate_errors(cfg, message):
    with pytest.raises(ConfigError, match=re.escape(message)):
        cfg.validate()


@pytest.mark.parametrize(
    "cfg",
    [
        Config(workspace="/tmp", port=8080, plugins=[Plugin(repository="example.com/plugin")]),
        Config(
            workspace="/tmp",
            port=8080,
            personality="gsoci.azurecr.io/giantswarm/klaus-personalities/sre:v1.0.0",
        ),
        Config(workspace="/tmp", port=8080),
        Config(
            workspace="/tmp",
            port=8080,
            runtime="docker",
            claude=ClaudeConfig(
                permission_mode="bypassPermissions",
                effort="medium",
                max_turns=5,
                max_budget_usd=10.0,
            ),
            plugins=[Plugin(repository="example.com/plugin", tag="v1.0.0")],
        ),
    ],
)
def test_validate_accepts(cfg):
    assert cfg.validate() is None


def test_validate_message_values():
    with pytest.raises(ConfigError) as info:
        Config(workspace="/tmp", port=70000).validate()
    assert str(info.value) == "port must be between 1 and 65535, got 70000"


def test_validate_one_of_lists_valid_values():
    cfg = Config(workspace="/tmp", port=8080, claude=ClaudeConfig(effort="extreme"))
    with pytest.raises(ConfigError) as info:
        cfg.validate()
    assert str(info.value) == 'invalid effort level "extreme"; valid values: low, medium, high'


def test_load_personality_field(tmp_path):
    cfg = load(
        write(
            tmp_path,
            "workspace: /tmp/test\n"
            "personality: gsoci.azurecr.io/giantswarm/klaus-personalities/sre:v1.0.0\n",
        )
    )
    assert cfg.personality == "gsoci.azurecr.io/giantswarm/klaus-personalities/sre:v1.0.0"


def test_image_explicitly_set_true(tmp_path):
    cfg = load(
        write(
            tmp_path,
            "workspace: /tmp/test\nimage: gsoci.azurecr.io/giantswarm/klaus-toolchains/go:1.0.0\n",
        )
    )
    assert cfg.image_explicitly_set is True


def test_image_explicitly_set_false(tmp_path):
    cfg = load(write(tmp_path, "workspace: /tmp/test"))
    assert cfg.image_explicitly_set is False
    assert cfg.image == "gsoci.azurecr.io/giantswarm/klaus:latest"


def test_marshal_not_empty():
    cfg = default_config()
    cfg.workspace = "/tmp/test"
    data = cfg.marshal()
    assert len(data) > 0
    assert yaml.safe_load(data)["workspace"] == "/tmp/test"


def test_to_dict_omits_empty_fields():
    cfg = default_config()
    cfg.workspace = "/tmp/test"
    data = cfg.to_dict()
    assert data["image"] == "gsoci.azurecr.io/giantswarm/klaus:latest"
    assert data["port"] == 8080
    assert "runtime" not in data
    assert "plugins" not in data
    assert data["claude"] == {
        "permissionMode": "bypassPermissions",
        "noSessionPersistence": True,
        "loadAdditionalDirsMemory": True,
    }


def test_marshal_round_trip(tmp_path):
    cfg = default_config()
    cfg.workspace = "/tmp/test"
    cfg.claude.no_session_persistence = False
    cfg.plugins = [Plugin(repository="example.com/plugin", tag="v1")]
    cfg.skills = {"review": Skill(description="Review code", content="# Review")}
    cfg.hooks = _HOOKS
    cfg.env_vars = {"B": "2", "A": "1"}
    cfg.mcp_servers = {"github": {"type": "http", "url": "https://api.example.com/mcp/"}}

    path = write(tmp_path, cfg.marshal())
    loaded = load(path)
    assert loaded == cfg
    assert loaded.claude.no_session_persistence is False
    assert loaded.hooks["PreToolUse"][0].hooks[0].command == "/bin/true"


def test_default_config_values():
    cfg = default_config()
    assert cfg.workspace == ""
    assert cfg.port == 8080
    assert cfg.claude.permission_mode == "bypassPermissions"
    with pytest.raises(ConfigError, match="workspace is required"):
        cfg.validate()