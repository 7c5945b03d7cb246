"""Command-line interface: scan a project and write its context document."""

from __future__ import annotations

import argparse
import os
import sys
from pathlib import Path
from typing import Iterable, Sequence

from codecontext import env
from codecontext.config import DEFAULT_CONFIG_FILE, ConfigError, ConfigManager
from codecontext.models import Config, WalkOptions
from codecontext.walker import FileSystemWalker, WalkError

VERSION = "1.0.0"
VALID_FORMATS = ("json", "xml", "toml", "markdown", "md")
_COMMANDS = ("generate", "config")

_BOOL_FLAGS = frozenset(
    {
        "verbose",
        "hidden",
        "content",
        "hash",
        "exclude-binary",
        "git-enabled",
        "git-logs",
        "git-diffs",
        "git-stats",
        "include-metadata",
    }
)
_TRUE_WORDS = frozenset({"1", "t", "T", "TRUE", "true", "True"})
_FALSE_WORDS = frozenset({"0", "f", "F", "FALSE", "false", "False"})

_GIT_DEFAULTS = {
    "git_enabled": False,
    "git_logs": False,
    "git_log_count": 50,
    "git_diffs": False,
    "git_diff_format": "unified",
    "git_stats": False,
    "git_time_period": "1y",
    "git_authors": None,
    "git_paths": None,
    "git_since": "",
    "git_until": "",
    "include_metadata": False,
}


class _CommandError(Exception):
    """A command failed; the message is shown to the user."""


def is_valid_format(format: str) -> bool:
    """True for the output formats the generator accepts."""
    return format in VALID_FORMATS


def read_pattern_file(pattern_file: str | os.PathLike[str]) -> list[str]:
    """Read .gitignore-style patterns, normalising separators for this platform.

    Blank lines and lines starting with "#" are skipped.
    """
    text = Path(pattern_file).read_text(encoding="utf-8")
    patterns: list[str] = []
    for raw in text.split("\n"):
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        if os.sep == "\\":
            line = line.replace("/", "\\").replace("\\\\", "\\")
        else:
            line = line.replace("\\", "/").replace("//", "/")
        patterns.append(line)
    return patterns


def generate_config_output(config: Config) -> str:
    """Render a readable summary of the configuration."""
    out = config.output
    filters = config.filters
    git = config.git
    lines = [
        "Current configuration:",
        "==================",
        "",
        f"Default format: {out.default_format}",
        f"Output directory: {out.output_dir}",
        f"Filename template: {out.filename_template}",
        "",
        "File processing:",
        f"  Max file size: {filters.max_file_size}",
        f"  Max depth: {filters.max_depth}",
        f"  Follow symlinks: {str(filters.follow_symlinks).lower()}",
        f"  Exclude binary files: {str(filters.exclude_binary).lower()}",
    ]
    if filters.exclude_patterns:
        lines.append("  Exclude patterns:")
        lines.extend(f"    - {pattern}" for pattern in filters.exclude_patterns)
    if filters.include_patterns:
        lines.append("  Include patterns:")
        lines.extend(f"    - {pattern}" for pattern in filters.include_patterns)

    lines += ["", "Git integration:", f"  Enabled: {str(git.enabled).lower()}"]
    if git.enabled:
        lines.append(f"  Include commit history: {str(git.include_logs).lower()}")
        if git.include_logs:
            lines.append(f"  Commit history count: {git.log_count}")
        lines.append(f"  Include diffs: {str(git.include_diffs).lower()}")
        if git.include_diffs:
            lines.append(f"  Diff format: {git.diff_format}")
        lines.append(f"  Include statistics: {str(git.stats.enabled).lower()}")
        if git.stats.enabled:
            lines.append(f"  Statistics period: {git.stats.time_period}")
            lines.append(f"  Top authors: {git.stats.authors_top}")
            lines.append(f"  Top files: {git.stats.files_top}")
        if git.filters.authors:
            lines.append("  Author filter:")
            lines.extend(f"    - {author}" for author in git.filters.authors)
        if git.filters.paths:
            lines.append("  Path filter:")
            lines.extend(f"    - {path}" for path in git.filters.paths)
        if git.filters.since:
            lines.append(f"  Since: {git.filters.since}")
        if git.filters.until:
            lines.append(f"  Until: {git.filters.until}")
    return "\n".join(lines) + "\n"


def _normalise_bool_flags(tokens: Iterable[str]) -> list[str]:
    """Turn "--flag=false" into "--no-flag" and "--flag=true" into "--flag"."""
    result = []
    for token in tokens:
        name, sep, value = token.partition("=")
        if sep and name.startswith("--") and name[2:] in _BOOL_FLAGS:
            if value in _TRUE_WORDS:
                token = name
            elif value in _FALSE_WORDS:
                token = "--no-" + name[2:]
        result.append(token)
    return result


def _split_command(tokens: list[str]) -> tuple[str | None, list[str]]:
    index = 0
    while index < len(tokens):
        token = tokens[index]
        if token in ("-c", "--config"):
            index += 2
        elif token.startswith("--config=") or (token.startswith("-c") and len(token) > 2):
            index += 1
        elif token in ("-v", "--verbose", "--no-verbose"):
            index += 1
        else:
            break
    if index < len(tokens) and tokens[index] in _COMMANDS:
        return tokens[index], tokens[:index] + tokens[index + 1 :]
    return None, tokens


def _add_global_flags(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("-c", "--config", default="", help="configuration file path")
    parser.add_argument(
        "-v", "--verbose", action=argparse.BooleanOptionalAction, default=False, help="verbose output"
    )


def _add_generate_flags(parser: argparse.ArgumentParser) -> None:
    bool_flag = argparse.BooleanOptionalAction
    parser.add_argument("path", nargs="?", default=None, help="path to scan")
    parser.add_argument("-o", "--output", default="", help="output file path")
    parser.add_argument("-f", "--format", default="json", help="output format (json, xml, toml, markdown)")
    parser.add_argument("-e", "--exclude", action="append", default=None, help="exclude patterns")
    parser.add_argument("-i", "--include", action="append", default=None, help="include patterns")
    parser.add_argument("--hidden", action=bool_flag, default=False, help="include hidden files")
    parser.add_argument(
        "-d", "--max-depth", type=int, default=0,
        help="max depth (0 current directory only, -1 unlimited)",
    )
    parser.add_argument("-s", "--max-size", type=int, default=0, help="max file size in bytes (0 unlimited)")
    parser.add_argument("-C", "--content", action=bool_flag, default=True, help="include file content")
    parser.add_argument("-H", "--hash", action=bool_flag, default=False, help="include file hashes")
    parser.add_argument("--exclude-binary", action=bool_flag, default=True, help="exclude binary files")
    parser.add_argument("--encoding", default="utf-8", help="output encoding")
    parser.add_argument("-m", "--multiple-files", action="append", default=None, help="files to process")
    parser.add_argument("-p", "--pattern-file", default="", help="read exclude patterns from a file")


def _add_git_flags(parser: argparse.ArgumentParser) -> None:
    bool_flag = argparse.BooleanOptionalAction
    parser.add_argument("--git-enabled", action=bool_flag, default=False)
    parser.add_argument("--git-logs", action=bool_flag, default=False)
    parser.add_argument("--git-log-count", type=int, default=50)
    parser.add_argument("--git-diffs", action=bool_flag, default=False)
    parser.add_argument("--git-diff-format", default="unified")
    parser.add_argument("--git-stats", action=bool_flag, default=False)
    parser.add_argument("--git-time-period", default="1y")
    parser.add_argument("--git-authors", action="append", default=None)
    parser.add_argument("--git-paths", action="append", default=None)
    parser.add_argument("--git-since", default="")
    parser.add_argument("--git-until", default="")
    parser.add_argument("--include-metadata", action=bool_flag, default=False)


def _build_parser(command: str | None) -> argparse.ArgumentParser:
    prog = "codecontext" if command is None else f"codecontext {command}"
    parser = argparse.ArgumentParser(
        prog=prog, description="Generate a structured document of a code project."
    )
    _add_global_flags(parser)
    if command is None:
        parser.add_argument("--version", action="version", version=VERSION)
        _add_generate_flags(parser)
        parser.set_defaults(**_GIT_DEFAULTS)
    elif command == "generate":
        _add_generate_flags(parser)
        _add_git_flags(parser)
    else:
        parser.add_argument("action", nargs="?", choices=["show"], help="show the current configuration")
    return parser


def _split_list(values: list[str] | None) -> list[str]:
    return [item for value in values or [] for item in value.split(",") if item]


def _go_list(values: Sequence[object]) -> str:
    return "[" + " ".join(str(value) for value in values) + "]"


def _base_name(path: str) -> str:
    stripped = path.rstrip("/" + (os.altsep or "") + os.sep)
    if not stripped:
        return os.sep if path else "."
    return os.path.basename(stripped)


def _normalise_line_endings(text: str) -> str:
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    return text.replace("\n", os.linesep) if os.linesep != "\n" else text


def _format_file_size(size: int) -> str:
    value = float(size)
    for unit in ("B", "KB", "MB", "GB"):
        if value < 1024:
            return f"{size} B" if unit == "B" else f"{value:.2f} {unit}"
        value /= 1024
    return f"{value:.2f} TB"


def _load_configuration(config_path: str) -> Config:
    try:
        env.load_env("")
    except OSError as exc:
        print(f"warning: failed to load .env file: {exc}", file=sys.stderr)
    manager = ConfigManager()
    if config_path:
        try:
            manager.load(config_path)
        except ConfigError as exc:
            raise _CommandError(f"failed to load configuration file: {exc}") from exc
    else:
        try:
            manager.load(DEFAULT_CONFIG_FILE)
        except ConfigError:
            pass
    return manager.get()


def _merge_git_flags(cfg: Config, args: argparse.Namespace) -> None:
    git = cfg.git
    if args.git_enabled:
        git.enabled = True
    if args.git_logs:
        git.include_logs = True
    if args.git_log_count > 0 and args.git_log_count != 50:
        git.log_count = args.git_log_count
    if args.git_diffs:
        git.include_diffs = True
    if args.git_diff_format and args.git_diff_format != "unified":
        git.diff_format = args.git_diff_format
    if args.git_stats:
        git.stats.enabled = True
    if args.git_time_period and args.git_time_period != "1y":
        git.stats.time_period = args.git_time_period
    if authors := _split_list(args.git_authors):
        git.filters.authors = authors
    if paths := _split_list(args.git_paths):
        git.filters.paths = paths
    if args.git_since:
        git.filters.since = args.git_since
    if args.git_until:
        git.filters.until = args.git_until


def _run_generate(args: argparse.Namespace, cfg: Config) -> None:
    verbose = args.verbose
    exclude = _split_list(args.exclude)
    include = _split_list(args.include)
    multiple_files = _split_list(args.multiple_files)
    max_depth = args.max_depth
    max_size = args.max_size
    hidden = args.hidden
    exclude_binary = args.exclude_binary
    fmt = args.format

    path = multiple_files[0] if multiple_files else (args.path or ".")

    if args.pattern_file:
        try:
            exclude = exclude + read_pattern_file(args.pattern_file)
        except OSError as exc:
            raise _CommandError(f"failed to read pattern file: {exc}") from exc

    filters = cfg.filters
    if not exclude and filters.exclude_patterns:
        exclude = list(filters.exclude_patterns)
    if not include and filters.include_patterns:
        include = list(filters.include_patterns)
    if max_depth == 0:
        max_depth = filters.max_depth
    if max_size == 0 and filters.max_file_size:
        parsed = env.parse_file_size(filters.max_file_size)
        if parsed > 0:
            max_size = parsed
    if not hidden and cfg.file_processing.include_hidden:
        hidden = True
    if not exclude_binary and filters.exclude_binary:
        exclude_binary = True

    if args.encoding and args.encoding != "utf-8":
        cfg.output.encoding = args.encoding
    _merge_git_flags(cfg, args)
    if args.include_metadata:
        cfg.output.include_metadata = True

    if not is_valid_format(fmt):
        raise _CommandError(f"invalid output format: {fmt}")

    if verbose:
        if multiple_files:
            print(f"processing files: {_go_list(multiple_files)}")
        else:
            print(f"scanning path: {path} (max depth: {max_depth})")
        print(f"exclude patterns: {_go_list(exclude)}")
        print(f"max depth: {max_depth}, max file size: {max_size}")

    options = WalkOptions(
        max_depth=max_depth,
        max_file_size=max_size,
        exclude_patterns=exclude,
        include_patterns=include,
        follow_symlinks=False,
        show_hidden=hidden,
        exclude_binary=exclude_binary,
        multiple_files=multiple_files,
        pattern_file=args.pattern_file,
    )
    walker = FileSystemWalker(cfg)
    try:
        result = walker.walk(path, options)
    except WalkError as exc:
        raise _CommandError(f"scan failed: {exc}") from exc

    if verbose:
        print(f"scan complete: {result.file_count} files, {result.folder_count} folders")

    result.metadata["root_path"] = path
    try:
        text = ConfigManager(cfg).generate_output(result, "markdown" if fmt == "md" else fmt)
    except ConfigError as exc:
        raise _CommandError(f"failed to format output: {exc}") from exc
    payload = _normalise_line_endings(text).encode("utf-8")

    if args.output:
        try:
            Path(args.output).write_bytes(payload)
        except OSError as exc:
            raise _CommandError(f"failed to write output file: {exc}") from exc
        if verbose:
            print(f"output written: {args.output}")
        return

    if multiple_files:
        base = _base_name(multiple_files[0])
        base = base[: len(base) - len(os.path.splitext(base)[1])] if os.path.splitext(base)[1] else base
    else:
        base = _base_name(path)
    extension = "md" if fmt == "markdown" else fmt
    default_output = f"context_{base}.{extension}"
    try:
        Path(default_output).write_bytes(payload)
    except OSError as exc:
        raise _CommandError(f"failed to write default output file: {exc}") from exc
    print(f"Generated code context file: {default_output}")
    print(f"Contains {result.file_count} files, {result.folder_count} folders")
    print(f"Total size: {_format_file_size(result.total_size)}")


def main(argv: Sequence[str] | None = None) -> int:
    """Run the command line; returns the process exit code."""
    tokens = _normalise_bool_flags(sys.argv[1:] if argv is None else argv)
    command, rest = _split_command(tokens)
    parser = _build_parser(command)
    args = parser.parse_args(rest)
    try:
        cfg = _load_configuration(args.config)
        if command == "config":
            if args.action is None:
                parser.print_help()
            else:
                print(generate_config_output(cfg))
        else:
            _run_generate(args, cfg)
    except _CommandError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())