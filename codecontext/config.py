"""Configuration management: defaults, YAML loading, overrides and output rendering."""

from __future__ import annotations

import json
import os
import re
import sys
import threading
from datetime import datetime
from pathlib import Path
from typing import Any

import tomli_w
import yaml

from codecontext import env
from codecontext.models import (
    Config,
    ContextData,
    DetectorConfig,
    FieldsConfig,
    FileProcessingConfig,
    FiltersConfig,
    FormatConfig,
    FormatsConfig,
    GitFiltersConfig,
    GitIntegrationConfig,
    GitStatsConfig,
    OutputConfig,
    SecurityConfig,
    XMLFormatConfig,
    XMLFormattingConfig,
    config_from_dict,
    config_to_dict,
    context_to_dict,
)

DEFAULT_CONFIG_FILE = "config.yaml"
DEFAULT_FILENAME_TEMPLATE = "context_{{.timestamp}}.{{.extension}}"
DEFAULT_TIMESTAMP_FORMAT = "20060102_150405"

FORMAT_XML = "xml"
FORMAT_JSON = "json"
FORMAT_TOML = "toml"
FORMAT_MARKDOWN = "markdown"

_ENV_FIELD_NAMES = {
    env.ENV_DEFAULT_FORMAT: "default_format",
    env.ENV_OUTPUT_DIR: "output_dir",
    env.ENV_FILENAME_TEMPLATE: "filename_template",
    env.ENV_TIMESTAMP_FORMAT: "timestamp_format",
    env.ENV_MAX_FILE_SIZE: "max_file_size",
    env.ENV_MAX_DEPTH: "max_depth",
    env.ENV_INCLUDE_HIDDEN: "include_hidden",
    env.ENV_FOLLOW_SYMLINKS: "follow_symlinks",
    env.ENV_EXCLUDE_BINARY: "exclude_binary",
    env.ENV_EXCLUDE_PATTERNS: "exclude_patterns",
    env.ENV_ENCODING: "encoding",
    env.ENV_INCLUDE_METADATA: "include_metadata",
    env.ENV_SECURITY_ENABLED: "security_enabled",
    env.ENV_SECURITY_FAIL_ON_CRITICAL: "security_fail_on_critical",
    env.ENV_SECURITY_SCAN_LEVEL: "security_scan_level",
    env.ENV_SECURITY_REPORT_FORMAT: "security_report_format",
    env.ENV_SECURITY_DETECT_CREDENTIALS: "security_detect_credentials",
    env.ENV_SECURITY_DETECT_SQL_INJECTION: "security_detect_sql_injection",
    env.ENV_SECURITY_DETECT_XSS: "security_detect_xss",
    env.ENV_SECURITY_DETECT_PATH_TRAVERSAL: "security_detect_path_traversal",
    env.ENV_SECURITY_DETECT_QUALITY: "security_detect_quality",
}

# Reference-time layout tokens, longest first so that e.g. "2006" wins over "06".
_LAYOUT_TOKENS = {
    "January": "%B",
    "Monday": "%A",
    "-0700": "%z",
    "2006": "%Y",
    "Jan": "%b",
    "Mon": "%a",
    "MST": "%Z",
    "15": "%H",
    "01": "%m",
    "02": "%d",
    "03": "%I",
    "04": "%M",
    "05": "%S",
    "06": "%y",
    "PM": "%p",
}
_LAYOUT_SPLIT = re.compile("(" + "|".join(map(re.escape, _LAYOUT_TOKENS)) + ")")


class ConfigError(Exception):
    """Raised when configuration cannot be loaded, validated, saved or rendered."""


def _strftime_pattern(layout: str) -> str:
    parts = _LAYOUT_SPLIT.split(layout)
    return "".join(
        _LAYOUT_TOKENS[part] if index % 2 else part.replace("%", "%%")
        for index, part in enumerate(parts)
    )


def _format_timestamp(moment: datetime, layout: str) -> str:
    return moment.strftime(_strftime_pattern(layout))


def _display(value: Any) -> str:
    if value is None:
        return "<nil>"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, tuple)):
        return "[" + " ".join(_display(item) for item in value) + "]"
    if isinstance(value, dict):
        return "map[" + " ".join(f"{k}:{_display(v)}" for k, v in value.items()) + "]"
    return str(value)


def escape_xml(s: str) -> str:
    """Escape the five XML special characters."""
    return (
        s.replace("&", "&amp;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
        .replace('"', "&quot;")
        .replace("'", "&apos;")
    )


class ConfigManager:
    """Holds the active configuration and renders scan results with it."""

    def __init__(self, config: Config | None = None) -> None:
        self._config = config if config is not None else get_default_config()
        self._config_path = ""
        self._lock = threading.RLock()

    def load(self, config_path: str | os.PathLike[str] = "") -> None:
        """Load a YAML configuration; a missing file selects the defaults."""
        with self._lock:
            path = os.fspath(config_path) or DEFAULT_CONFIG_FILE
            try:
                env.load_env("")
            except OSError as exc:
                print(f"warning: failed to load .env file: {exc}", file=sys.stderr)

            if not os.path.exists(path):
                self._config = get_default_config()
                self._config_path = path
                return

            config = load_config(path)
            self._apply_env_overrides(config)
            _apply_format_specific_config(config, path)
            self._config = config
            self._config_path = path

    def get(self) -> Config:
        """Return the active configuration object."""
        with self._lock:
            return self._config

    def validate(self) -> None:
        """Raise ConfigError if the active configuration is unusable."""
        with self._lock:
            formats = self._config.formats
            if not any(
                (formats.xml.enabled, formats.json.enabled, formats.toml.enabled, formats.markdown.enabled)
            ):
                raise ConfigError("at least one output format must be enabled")
            if not self._config.output.filename_template:
                raise ConfigError("filename template must not be empty")
            pattern = _strftime_pattern(self._config.output.timestamp_format)
            try:
                datetime.strptime(datetime.now().astimezone().strftime(pattern), pattern)
            except ValueError as exc:
                raise ConfigError(f"invalid timestamp format: {exc}") from exc

    def reload(self) -> None:
        """Load the configuration again from the last loaded path."""
        if not self._config_path:
            raise ConfigError("configuration file path is not set")
        self.load(self._config_path)

    def save(self, config_path: str | os.PathLike[str], format: str) -> None:
        """Write the configuration to a file; only YAML is supported."""
        with self._lock:
            if format not in ("yaml", "yml"):
                raise ConfigError(f"unsupported format: {format}, use YAML")
            text = yaml.safe_dump(
                config_to_dict(self._config), allow_unicode=True, sort_keys=False
            )
            Path(config_path).write_text(text, encoding="utf-8")

    def get_env_overrides(self) -> dict[str, str]:
        """Return non-empty environment settings keyed by configuration field name."""
        env_vars = env.get_all_env_vars()
        return {
            field_name: env_vars[env_key]
            for env_key, field_name in _ENV_FIELD_NAMES.items()
            if env_vars.get(env_key)
        }

    def _apply_env_overrides(self, config: Config) -> None:
        if default_format := env.get_default_format():
            config.output.default_format = default_format
        if output_dir := env.get_output_dir():
            config.output.output_dir = output_dir

        security = config.security
        security.enabled = env.get_security_enabled()
        security.fail_on_critical = env.get_security_fail_on_critical()
        security.scan_level = env.get_security_scan_level()
        security.report_format = env.get_security_report_format()
        security.detectors.credentials = env.get_security_detect_credentials()
        security.detectors.sql_injection = env.get_security_detect_sql_injection()
        security.detectors.xss = env.get_security_detect_xss()
        security.detectors.path_traversal = env.get_security_detect_path_traversal()
        security.detectors.quality = env.get_security_detect_quality()

        if filename_template := env.get_filename_template():
            config.output.filename_template = filename_template
        if timestamp_format := env.get_timestamp_format():
            config.output.timestamp_format = timestamp_format
        if max_file_size := env.get_max_file_size():
            config.filters.max_file_size = max_file_size
        config.filters.max_depth = env.get_max_depth()
        if exclude_patterns := env.get_exclude_patterns():
            config.filters.exclude_patterns = exclude_patterns.split(",")
        config.filters.follow_symlinks = env.get_follow_symlinks()
        config.filters.exclude_binary = env.get_exclude_binary()
        if encoding := env.get_encoding():
            config.output.encoding = encoding
        config.output.include_metadata = env.get_include_metadata()

    def generate_output(self, data: ContextData, format: str) -> str:
        """Render scan results in the given format."""
        with self._lock:
            renderers = {
                FORMAT_XML: self._generate_xml,
                FORMAT_JSON: self._generate_json,
                FORMAT_TOML: self._generate_toml,
                FORMAT_MARKDOWN: self._generate_markdown,
            }
            renderer = renderers.get(format.lower())
            if renderer is None:
                raise ConfigError(f"unsupported format: {format}")
            return renderer(data)

    def get_output_filename(self, format: str) -> str:
        """Build an output file name from the template, a timestamp and the extension."""
        with self._lock:
            template = self._config.output.filename_template or DEFAULT_FILENAME_TEMPLATE
            now = datetime.now().astimezone()
            timestamp = _format_timestamp(now, self._config.output.timestamp_format)
            if not timestamp:
                timestamp = _format_timestamp(now, DEFAULT_TIMESTAMP_FORMAT)
            return template.replace("{{.timestamp}}", timestamp).replace("{{.extension}}", format)

    def _generate_xml(self, data: ContextData) -> str:
        xml = self._config.formats.xml
        path_field = xml.fields.get("path") or "path"
        content_field = xml.fields.get("content") or "content"
        filename_field = xml.fields.get("filename") or "filename"
        root_tag = xml.root_tag or "context"
        files_tag = xml.files_tag or "files"
        file_tag = xml.file_tag or "file"
        folder_tag = xml.folder_tag or "folder"

        lines: list[str] = []
        if xml.formatting.declaration:
            encoding = xml.formatting.encoding or "UTF-8"
            lines.append(f'<?xml version="1.0" encoding="{encoding}"?>')
        lines.append(f"<{root_tag}>")

        if data.metadata:
            lines.append("  <metadata>")
            lines.extend(
                f"    <{key}>{_display(value)}</{key}>" for key, value in data.metadata.items()
            )
            lines.append("  </metadata>")

        if data.files:
            lines.append(f"  <{files_tag}>")
            for file in data.files:
                lines.append(f"    <{file_tag}>")
                lines.append(f"      <{path_field}>{escape_xml(file.path)}</{path_field}>")
                if file.content:
                    lines.append(
                        f"      <{content_field}><![CDATA[{file.content}]]></{content_field}>"
                    )
                lines.append(f"    </{file_tag}>")
            lines.append(f"  </{files_tag}>")

        for folder in data.folders:
            lines.append(f"  <{folder_tag}>")
            lines.append(f"    <{path_field}>{escape_xml(folder.path)}</{path_field}>")
            if folder.files:
                lines.append(f"    <{files_tag}>")
                for file in folder.files:
                    lines.append(f"      <{file_tag}>")
                    lines.append(
                        f"        <{filename_field}>{escape_xml(file.name)}</{filename_field}>"
                    )
                    if file.content:
                        lines.append(
                            f"        <{content_field}><![CDATA[{file.content}]]></{content_field}>"
                        )
                    lines.append(f"      </{file_tag}>")
                lines.append(f"    </{files_tag}>")
            lines.append(f"  </{folder_tag}>")

        lines.append(f"</{root_tag}>")
        return "\n".join(lines)

    def _generate_markdown(self, data: ContextData) -> str:
        parts: list[str] = []
        for file in data.files:
            parts.append(f"## 文件: {file.path}\n\n```\n{file.content}\n```\n\n")
        for folder in data.folders:
            parts.append(f"### 文件夹: {folder.path}\n\n")
            for file in folder.files:
                parts.append(f"#### 文件: {file.name}\n\n```\n{file.content}\n```\n\n")
        return "".join(parts)

    def _generate_json(self, data: ContextData) -> str:
        try:
            return json.dumps(context_to_dict(data), indent=2, ensure_ascii=False, default=str)
        except (TypeError, ValueError) as exc:
            raise ConfigError(f"JSON generation failed: {exc}") from exc

    def _generate_toml(self, data: ContextData) -> str:
        try:
            return tomli_w.dumps(context_to_dict(data))
        except (TypeError, ValueError) as exc:
            raise ConfigError(f"TOML generation failed: {exc}") from exc


def load_config(config_path: str | os.PathLike[str]) -> Config:
    """Read a YAML configuration file into a Config; raises ConfigError on failure."""
    path = os.fspath(config_path)
    try:
        text = Path(path).read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"failed to read configuration file: {exc}") from exc

    ext = os.path.splitext(path)[1].lower()
    if ext not in (".yaml", ".yml"):
        raise ConfigError(f"unsupported configuration file format: {ext}, use YAML")

    try:
        raw = yaml.safe_load(text)
        config = config_from_dict(raw)
    except yaml.YAMLError as exc:
        raise ConfigError(f"YAML parsing failed: {exc}") from exc
    except ValueError as exc:
        raise ConfigError(f"invalid configuration: {exc}") from exc

    _apply_format_specific_config(config, path)
    return config


def _apply_format_specific_config(config: Config, config_path: str) -> None:
    name = os.path.basename(config_path).lower()
    formats = config.formats
    if "xml" in name:
        if formats.xml.enabled:
            config.output.default_format = FORMAT_XML
    elif "json" in name:
        if formats.json.enabled:
            config.output.default_format = FORMAT_JSON
    elif "toml" in name:
        if formats.toml.enabled:
            config.output.default_format = FORMAT_TOML
    elif "markdown" in name or "md" in name:
        if formats.markdown.enabled:
            config.output.default_format = FORMAT_MARKDOWN


def get_default_config() -> Config:
    """Return a fresh configuration filled with the built-in defaults."""
    standard_fields = {"path": "path", "content": "content", "filename": "filename"}
    return Config(
        file_processing=FileProcessingConfig(
            include_hidden=False, include_content=True, include_hash=False
        ),
        security=SecurityConfig(
            enabled=False,
            scan_level="standard",
            fail_on_critical=False,
            report_format="text",
            detectors=DetectorConfig(),
        ),
        formats=FormatsConfig(
            xml=XMLFormatConfig(
                enabled=True,
                fields=dict(standard_fields),
                root_tag="context",
                file_tag="file",
                files_tag="files",
                folder_tag="folder",
                formatting=XMLFormattingConfig(indent="  ", declaration=True, encoding="UTF-8"),
            ),
            json=FormatConfig(
                enabled=True,
                structure={"file": "file", "folder": "folder"},
                fields=dict(standard_fields),
            ),
            toml=FormatConfig(
                enabled=True,
                structure={"file_section": "file", "folder_section": "folder"},
                fields=dict(standard_fields),
            ),
            markdown=FormatConfig(
                enabled=True,
                structure={"file_header": "##", "folder_header": "###", "code_block": "```"},
                formatting={"separator": "\n\n", "add_toc": False, "code_language": True},
            ),
        ),
        fields=FieldsConfig(
            custom_names={"filepath": "path", "filecontent": "content", "filename": "name"},
            filter_include=[],
            filter_exclude=[],
            max_length=0,
            add_line_numbers=False,
            trim_whitespace=True,
            code_highlight=False,
        ),
        filters=FiltersConfig(
            max_file_size="10MB",
            exclude_patterns=[".git", "node_modules", "*.exe", "*.dll"],
            include_patterns=[],
            max_depth=0,
            follow_symlinks=False,
            exclude_binary=False,
        ),
        output=OutputConfig(
            format="json",
            output_dir="./output",
            encoding="utf-8",
            default_format="xml",
            filename_template=DEFAULT_FILENAME_TEMPLATE,
            include_metadata=False,
        ),
        git=GitIntegrationConfig(
            enabled=False,
            include_logs=False,
            log_count=50,
            include_diffs=False,
            diff_format="unified",
            stats=GitStatsConfig(enabled=False, time_period="1y", authors_top=10, files_top=20),
            filters=GitFiltersConfig(authors=[], paths=[], since="", until=""),
        ),
    )