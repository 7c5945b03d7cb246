# codecontext

`codecontext` scans a project directory and writes a single document. The
document holds the folder structure of the project and the text of its files.
It is useful for reviews, for snapshots of a code base, or as input to other
tools. The output can be JSON, XML, TOML or Markdown.

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

Scan the current directory and write `context_<dir>.json`:

```
codecontext
```

Scan a path, pick a format and name the output file:

```
codecontext path/to/project -f markdown -o context.md
```

`codecontext generate [path]` takes the same options. It also takes a set of
`--git-*` options and `--include-metadata`. Those values are merged into the
configuration, where `config show` displays them.

Main options:

| Option | Meaning |
| --- | --- |
| `-o, --output` | output file (default `context_<name>.<format>`, or `.md` for markdown) |
| `-f, --format` | `json` (default), `xml`, `toml`, `markdown` or `md` |
| `-e, --exclude` | exclusion patterns, repeatable or comma separated, e.g. `*.log`, `node_modules/` |
| `-i, --include` | inclusion patterns, e.g. `*.go`, `docs/*.md` |
| `-d, --max-depth` | `0` = this directory only, `1` = one level down, `-1` = no limit |
| `-s, --max-size` | largest file size in bytes (`0` = no limit) |
| `--hidden` | include hidden files |
| `--exclude-binary / --no-exclude-binary` | leave out files that contain NUL bytes (on by default) |
| `-m, --multiple-files` | process only the given files or directories |
| `-p, --pattern-file` | add exclusion patterns from a `.gitignore`-style file |
| `--encoding` | stored in the configuration; the output file is always written as UTF-8 |
| `-c, --config` | load settings from a YAML file |
| `-v, --verbose` | print details while scanning |
| `--version` | print the version |

A scan stops with an error when more than 1000 files match. If the command
fails, it prints `error: …` to stderr and exits with status 1.

To show the settings in effect:

```
codecontext config show
```

## Configuration

Command-line options take precedence over the configuration.

- Configuration file: a YAML file given with `-c`. Without `-c`, the command
  uses `config.yaml` in the current directory if that file exists. Otherwise it
  uses the built-in defaults. It does not accept any other file format.
- Environment: a `.env` file in the current directory is loaded first.
  Variables that are already set are not overwritten. When a configuration file
  is loaded, variables with the prefix `CODE_CONTEXT_` override its values.
  Examples are `CODE_CONTEXT_DEFAULT_FORMAT`, `CODE_CONTEXT_MAX_FILE_SIZE`
  (`10MB`, `512KB`, …), `CODE_CONTEXT_MAX_DEPTH` and
  `CODE_CONTEXT_EXCLUDE_PATTERNS` (comma separated).

## Library use

```python
from codecontext.config import ConfigManager
from codecontext.models import WalkOptions
from codecontext.walker import FileSystemWalker

manager = ConfigManager()
manager.load("config.yaml")

walker = FileSystemWalker()
walker.set_config(manager.get())
data = walker.walk(".", WalkOptions(max_depth=-1, exclude_patterns=[".git/", "*.log"]))

print(manager.generate_output(data, "markdown"))
```

Modules:

- `codecontext.models`: configuration and result dataclasses (`Config`,
  `FileInfo`, `FolderInfo`, `ContextData`, `WalkOptions`), plus
  `config_to_dict`, `config_from_dict` and `context_to_dict`.
- `codecontext.env`: loads `.env` files and reads typed environment values.
  Also provides `parse_file_size`.
- `codecontext.config`: `ConfigManager` (load, validate, reload, save as YAML,
  render output, build output file names), `load_config`,
  `get_default_config`, `escape_xml`.
- `codecontext.walker`: `FileSystemWalker`, a filtered, depth-limited scanner.
  Errors are raised as `WalkError`.
- `codecontext.fsutils`: small filesystem helpers such as extensions, sizes,
  copying and directory totals.
- `codecontext.cli`: the `codecontext` command (`main`).

## What it does not do

- It does not analyse Git repositories. The `--git-*` options only set
  configuration values.
- It does not run security scans. The security settings are kept in the
  configuration, but nothing acts on them.
- `--content` and `--hash` are accepted but change nothing. The document holds
  file text in every case, and no hashes are computed.