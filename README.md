# klausctl

Building blocks for running klaus agent instances on your own machine: the
on-disk layout of named instances, their YAML configuration, generating a new
instance's configuration, and the JSON results that instance tools hand back.

## Installation

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Command line

```
klausctl version
```

prints the version, commit and build date (`dev`, `none` and `unknown`
unless set with `klausctl.cli.set_build_info`). Run without a command,
`klausctl` prints its help. `version` is the only command.

## Layout on disk (`klausctl.paths`)

All files live below `$XDG_CONFIG_HOME/klausctl`, or `~/.config/klausctl`
when the variable is unset. Each named instance has its own directory under
`instances/`, holding `config.yaml`, `instance.json` and `rendered/`.
Plugins, personalities, `secrets.yaml` and `mcpservers.yaml` are shared.

```python
from klausctl.paths import default_paths, validate_instance_name, ensure_dir

paths = default_paths()           # a Paths dataclass, scoped to "default"
validate_instance_name("dev-1")   # ValueError unless a DNS-label style name
dev = paths.for_instance("dev")   # a blank name means "default"
ensure_dir(dev.instance_dir)
```

`expand_path` expands a leading `~` or `~/` (not `~user`).
`resolve_personality_ref`, `resolve_toolchain_ref` and `resolve_plugin_ref`
expand short names such as `sre:v1` to full repository references under the
default registries; references containing `/` are returned unchanged, and no
tag is added. `split_name_suffix` splits off an `@digest` or `:tag` suffix.

## Configuration (`klausctl.config`)

```python
from klausctl.config import load, default_config, ConfigError

try:
    cfg = load(dev.config_file)   # an empty path means the default config file
except ConfigError as exc:
    print(exc)
```

`load` reads the YAML file, records whether an image was given
(`Config.image_explicitly_set`), applies the defaults and validates. The
defaults are the image `gsoci.azurecr.io/giantswarm/klaus:latest`, port 8080,
permission mode `bypassPermissions`, and `no_session_persistence` and
`load_additional_dirs_memory` switched on. `Config.validate` raises
`ConfigError` when the workspace is missing, the port is outside 1–65535,
the runtime is not `docker` or `podman`, the permission mode or effort level
is unknown, `max_turns` or `max_budget_usd` is negative, hooks and
`claude.settings_file` are both set, the personality has surrounding
whitespace or no `/`, or a plugin has no repository.

`default_config()` returns a `Config` with defaults applied but no workspace.
`Config.to_dict()` gives the data under its YAML key names, leaving out empty
optional fields, and `Config.marshal()` returns it as YAML text. The nested
types are `ClaudeConfig`, `Skill`, `AgentFile`, `AgentConfig`, `HookMatcher`,
`Hook` and `Plugin`.

## Generating an instance configuration (`klausctl.generate`)

```python
from klausctl.generate import CreateOptions, generate_instance_config

cfg = generate_instance_config(
    paths,
    CreateOptions(name="dev", workspace="~/src/project", personality="sre", toolchain="go"),
)
```

The name is validated, the workspace must be an existing directory, and short
references are expanded; a toolchain also becomes the image. Plugin
references are turned into `Plugin` values by `parse_plugin_ref`. Without a
port, `next_available_port` picks the lowest port from 8080 not recorded in
any instance's `instance.json` or `config.yaml` (`used_ports`); an explicit
port already in use raises `ConfigError`.

If `resolve_personality` is given, it is called as
`resolve_personality(ref, output)` and must return a `ResolvedPersonality`.
Its plugins are appended behind yours without repeating a repository
(`merge_plugins`), and its image is used unless a toolchain was given. After
that the overrides are applied: env vars, MCP servers, secret env vars and
secret files are merged in; `env_forward` and `mcp_server_refs` are merged,
sorted and de-duplicated; `max_budget_usd` (including 0), `permission_mode`,
`model` and `system_prompt` replace the defaults. The result is validated.

## Tool results (`klausctl.results`, `klausctl.formatting`)

`ToolResult` holds a list of content items and an `is_error` flag.
`text_result` and `error_result` wrap one `TextContent`; `json_result`
serialises a value (dataclasses included) as indented JSON text.
`extract_text` joins the text items with newlines, `parse_status_field`
returns the `status` field of a JSON reply or else the whole text, and
`is_terminal_status` is true for `completed`, `error` and `failed`.
`ServerContext` carries the `Paths` and offers `instance_paths(name)` and
`load_instance_config(name)`.

`format_duration` takes seconds or a `timedelta` and renders `30s`, `2m30s`,
`1h30m` or `1d1h`.

## What this package does not do

It does not talk to a container runtime: it does not pull images, start,
stop, list or remove containers, read their logs, or send prompts to a
running agent. It does not record or read the state of started instances, and
it does not move files from an older single-instance layout. It does not pull
or cache plugins or personalities, render settings files, or run a tool
server; it provides the configuration, layout and result types such tools
would use.