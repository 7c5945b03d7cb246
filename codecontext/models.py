"""Configuration and scan-result data models with plain-dict conversion."""

import copy
from dataclasses import dataclass, field, fields, is_dataclass
from datetime import datetime
from typing import Any, Mapping, Optional, get_args, get_origin


def _at(*path: str) -> dict[str, Any]:
    """Field metadata placing a value at a nested key path in plain dicts."""
    return {"path": path}


@dataclass
class FileProcessingConfig:
    include_hidden: bool = False
    include_content: bool = False
    include_hash: bool = False


@dataclass
class DetectorConfig:
    credentials: bool = False
    sql_injection: bool = False
    xss: bool = False
    path_traversal: bool = False
    quality: bool = False


@dataclass
class SecurityConfig:
    enabled: bool = False
    fail_on_critical: bool = False
    scan_level: str = ""
    report_format: str = ""
    detectors: DetectorConfig = field(default_factory=DetectorConfig)


@dataclass
class FormatConfig:
    enabled: bool = False
    structure: dict[str, Any] = field(default_factory=dict)
    fields: dict[str, str] = field(default_factory=dict)
    formatting: dict[str, Any] = field(default_factory=dict)


@dataclass
class XMLFormattingConfig:
    indent: str = ""
    declaration: bool = False
    encoding: str = ""


@dataclass
class XMLFormatConfig:
    enabled: bool = False
    structure: dict[str, Any] = field(default_factory=dict)
    fields: dict[str, str] = field(default_factory=dict)
    root_tag: str = ""
    file_tag: str = ""
    files_tag: str = ""
    folder_tag: str = ""
    formatting: XMLFormattingConfig = field(default_factory=XMLFormattingConfig)


@dataclass
class FormatsConfig:
    xml: XMLFormatConfig = field(default_factory=XMLFormatConfig)
    json: FormatConfig = field(default_factory=FormatConfig)
    toml: FormatConfig = field(default_factory=FormatConfig)
    markdown: FormatConfig = field(default_factory=FormatConfig)


@dataclass
class FieldsConfig:
    custom_names: dict[str, str] = field(default_factory=dict)
    filter_include: list[str] = field(default_factory=list, metadata=_at("filter", "include"))
    filter_exclude: list[str] = field(default_factory=list, metadata=_at("filter", "exclude"))
    max_length: int = field(default=0, metadata=_at("processing", "max_length"))
    add_line_numbers: bool = field(default=False, metadata=_at("processing", "add_line_numbers"))
    trim_whitespace: bool = field(default=False, metadata=_at("processing", "trim_whitespace"))
    code_highlight: bool = field(default=False, metadata=_at("processing", "code_highlight"))


@dataclass
class FiltersConfig:
    max_file_size: str = ""
    exclude_patterns: list[str] = field(default_factory=list)
    include_patterns: list[str] = field(default_factory=list)
    max_depth: int = 0
    follow_symlinks: bool = False
    exclude_binary: bool = False


@dataclass
class OutputConfig:
    format: str = ""
    output_dir: str = ""
    encoding: str = ""
    default_format: str = ""
    filename_template: str = ""
    timestamp_format: str = ""
    include_metadata: bool = False


@dataclass
class GitStatsConfig:
    enabled: bool = False
    time_period: str = ""
    authors_top: int = 0
    files_top: int = 0


@dataclass
class GitFiltersConfig:
    authors: list[str] = field(default_factory=list)
    paths: list[str] = field(default_factory=list)
    since: str = ""
    until: str = ""


@dataclass
class GitIntegrationConfig:
    enabled: bool = False
    include_logs: bool = False
    log_count: int = 0
    include_diffs: bool = False
    diff_format: str = ""
    stats: GitStatsConfig = field(default_factory=GitStatsConfig)
    filters: GitFiltersConfig = field(default_factory=GitFiltersConfig)


@dataclass
class Config:
    """Complete application configuration; defaults are empty values."""

    file_processing: FileProcessingConfig = field(default_factory=FileProcessingConfig)
    security: SecurityConfig = field(default_factory=SecurityConfig)
    formats: FormatsConfig = field(default_factory=FormatsConfig)
    fields: FieldsConfig = field(default_factory=FieldsConfig)
    filters: FiltersConfig = field(default_factory=FiltersConfig)
    output: OutputConfig = field(default_factory=OutputConfig)
    git: GitIntegrationConfig = field(default_factory=GitIntegrationConfig)


@dataclass
class FileInfo:
    path: str = ""
    name: str = ""
    content: str = ""
    size: int = 0
    mod_time: Optional[datetime] = None
    is_dir: bool = False
    is_hidden: bool = False
    is_binary: bool = False


@dataclass
class FolderInfo:
    path: str = ""
    name: str = ""
    mod_time: Optional[datetime] = None
    files: list[FileInfo] = field(default_factory=list)
    folders: list["FolderInfo"] = field(default_factory=list)
    is_hidden: bool = False
    size: int = 0
    count: int = 0


@dataclass
class ContextData:
    files: list[FileInfo] = field(default_factory=list)
    folders: list[FolderInfo] = field(default_factory=list)
    file_count: int = 0
    folder_count: int = 0
    total_size: int = 0
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass
class WalkOptions:
    max_depth: int = 0
    max_file_size: int = 0
    exclude_patterns: list[str] = field(default_factory=list)
    include_patterns: list[str] = field(default_factory=list)
    follow_symlinks: bool = False
    show_hidden: bool = False
    exclude_binary: bool = False
    multiple_files: list[str] = field(default_factory=list)
    selected_files: list[str] = field(default_factory=list)
    pattern_file: str = ""


_MISSING = object()


def _key_path(f) -> tuple[str, ...]:
    return f.metadata.get("path", (f.name,))


def _section_to_dict(obj: Any) -> dict[str, Any]:
    out: dict[str, Any] = {}
    for f in fields(obj):
        value = getattr(obj, f.name)
        if is_dataclass(value):
            value = _section_to_dict(value)
        else:
            value = copy.deepcopy(value)
        *parents, leaf = _key_path(f)
        target = out
        for part in parents:
            target = target.setdefault(part, {})
        target[leaf] = value
    return out


def _lookup(data: Mapping[str, Any], path: tuple[str, ...], where: str) -> Any:
    current: Any = data
    for depth, part in enumerate(path):
        if current is None:
            return _MISSING
        if not isinstance(current, Mapping):
            name = ".".join(filter(None, (where, *path[:depth])))
            raise ValueError(f"{name}: expected a mapping, got {type(current).__name__}")
        if part not in current:
            return _MISSING
        current = current[part]
    return current


def _coerce(tp: Any, value: Any, name: str) -> Any:
    if isinstance(tp, type) and is_dataclass(tp):
        return _section_from_dict(tp, value, name)
    if tp is bool:
        if isinstance(value, bool):
            return value
        raise ValueError(f"{name}: expected a boolean, got {value!r}")
    if tp is int:
        if isinstance(value, int) and not isinstance(value, bool):
            return value
        raise ValueError(f"{name}: expected an integer, got {value!r}")
    if tp is str:
        if isinstance(value, str):
            return value
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        raise ValueError(f"{name}: expected a string, got {value!r}")
    origin = get_origin(tp)
    if origin is list:
        if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
            raise ValueError(f"{name}: expected a list of strings, got {value!r}")
        return list(value)
    if origin is dict:
        if not isinstance(value, Mapping):
            raise ValueError(f"{name}: expected a mapping, got {value!r}")
        value_type = get_args(tp)[1]
        if value_type is str and not all(isinstance(v, str) for v in value.values()):
            raise ValueError(f"{name}: expected string values, got {value!r}")
        return {str(k): copy.deepcopy(v) for k, v in value.items()}
    raise TypeError(f"{name}: unsupported field type {tp!r}")


def _section_from_dict(cls: type, data: Any, where: str) -> Any:
    if data is None:
        return cls()
    if not isinstance(data, Mapping):
        raise ValueError(f"{where or 'config'}: expected a mapping, got {type(data).__name__}")
    kwargs: dict[str, Any] = {}
    for f in fields(cls):
        path = _key_path(f)
        value = _lookup(data, path, where)
        if value is _MISSING or value is None:
            continue
        name = ".".join(filter(None, (where, *path)))
        kwargs[f.name] = _coerce(f.type, value, name)
    return cls(**kwargs)


def config_to_dict(config: Config) -> dict[str, Any]:
    """Return the configuration as nested plain data keyed like the YAML file."""
    return _section_to_dict(config)


def config_from_dict(data: Optional[Mapping[str, Any]]) -> Config:
    """Build a configuration from nested plain data; unknown keys are ignored.

    Raises ValueError when a value has the wrong type.
    """
    return _section_from_dict(Config, data, "")


def _plain(value: Any) -> Any:
    if is_dataclass(value) and not isinstance(value, type):
        return {
            f.name: _plain(getattr(value, f.name))
            for f in fields(value)
            if getattr(value, f.name) is not None
        }
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Mapping):
        return {str(k): _plain(v) for k, v in value.items() if v is not None}
    if isinstance(value, (list, tuple)):
        return [_plain(item) for item in value]
    return value


def context_to_dict(data: ContextData) -> dict[str, Any]:
    """Return scan results as plain data; unset values are left out."""
    return _plain(data)