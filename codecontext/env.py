"""Loading of .env files and typed access to environment settings."""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Any, MutableMapping

from dotenv import load_dotenv

ENV_PREFIX = "CODE_CONTEXT_"

ENV_DEFAULT_FORMAT = ENV_PREFIX + "DEFAULT_FORMAT"

ENV_OUTPUT_DIR = ENV_PREFIX + "OUTPUT_DIR"
ENV_FILENAME_TEMPLATE = ENV_PREFIX + "FILENAME_TEMPLATE"
ENV_TIMESTAMP_FORMAT = ENV_PREFIX + "TIMESTAMP_FORMAT"

ENV_MAX_FILE_SIZE = ENV_PREFIX + "MAX_FILE_SIZE"
ENV_MAX_DEPTH = ENV_PREFIX + "MAX_DEPTH"
ENV_INCLUDE_HIDDEN = ENV_PREFIX + "INCLUDE_HIDDEN"
ENV_FOLLOW_SYMLINKS = ENV_PREFIX + "FOLLOW_SYMLINKS"
ENV_EXCLUDE_BINARY = ENV_PREFIX + "EXCLUDE_BINARY"
ENV_EXCLUDE_PATTERNS = ENV_PREFIX + "EXCLUDE_PATTERNS"

ENV_ENCODING = ENV_PREFIX + "ENCODING"
ENV_INCLUDE_METADATA = ENV_PREFIX + "INCLUDE_METADATA"

ENV_SECURITY_ENABLED = ENV_PREFIX + "SECURITY_ENABLED"
ENV_SECURITY_FAIL_ON_CRITICAL = ENV_PREFIX + "SECURITY_FAIL_ON_CRITICAL"
ENV_SECURITY_SCAN_LEVEL = ENV_PREFIX + "SECURITY_SCAN_LEVEL"
ENV_SECURITY_REPORT_FORMAT = ENV_PREFIX + "SECURITY_REPORT_FORMAT"
ENV_SECURITY_DETECT_CREDENTIALS = ENV_PREFIX + "SECURITY_DETECT_CREDENTIALS"
ENV_SECURITY_DETECT_SQL_INJECTION = ENV_PREFIX + "SECURITY_DETECT_SQL_INJECTION"
ENV_SECURITY_DETECT_XSS = ENV_PREFIX + "SECURITY_DETECT_XSS"
ENV_SECURITY_DETECT_PATH_TRAVERSAL = ENV_PREFIX + "SECURITY_DETECT_PATH_TRAVERSAL"
ENV_SECURITY_DETECT_QUALITY = ENV_PREFIX + "SECURITY_DETECT_QUALITY"

_TRUE_WORDS = frozenset({"1", "t", "T", "TRUE", "true", "True"})
_FALSE_WORDS = frozenset({"0", "f", "F", "FALSE", "false", "False"})
_INTEGER = re.compile(r"[+-]?[0-9]+")
_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1

_SIZE_UNITS = {
    "": 1,
    "B": 1,
    "KB": 1024,
    "MB": 1024**2,
    "GB": 1024**3,
}

_STRING_SETTINGS = (
    (ENV_DEFAULT_FORMAT, "xml"),
    (ENV_OUTPUT_DIR, ""),
    (ENV_FILENAME_TEMPLATE, ""),
    (ENV_TIMESTAMP_FORMAT, ""),
    (ENV_ENCODING, "utf-8"),
    (ENV_MAX_FILE_SIZE, ""),
    (ENV_MAX_DEPTH, ""),
    (ENV_EXCLUDE_PATTERNS, ""),
    (ENV_SECURITY_SCAN_LEVEL, "standard"),
    (ENV_SECURITY_REPORT_FORMAT, "text"),
)

_BOOL_SETTINGS = (
    (ENV_INCLUDE_METADATA, False),
    (ENV_INCLUDE_HIDDEN, False),
    (ENV_FOLLOW_SYMLINKS, False),
    (ENV_EXCLUDE_BINARY, True),
    (ENV_SECURITY_ENABLED, False),
    (ENV_SECURITY_FAIL_ON_CRITICAL, False),
    (ENV_SECURITY_DETECT_CREDENTIALS, False),
    (ENV_SECURITY_DETECT_SQL_INJECTION, False),
    (ENV_SECURITY_DETECT_XSS, False),
    (ENV_SECURITY_DETECT_PATH_TRAVERSAL, False),
    (ENV_SECURITY_DETECT_QUALITY, False),
)


def load_env(env_path: str | os.PathLike[str] | None = "") -> None:
    """Load variables from a .env file; a missing file is not an error.

    Variables already present in the environment are kept.
    """
    path = Path(env_path or ".env")
    if not path.exists():
        return
    load_dotenv(dotenv_path=path, override=False)


def _parse_int64(text: str) -> int | None:
    if not _INTEGER.fullmatch(text):
        return None
    value = int(text)
    if not _INT64_MIN <= value <= _INT64_MAX:
        return None
    return value


def get_env_with_default(key: str, default_value: str) -> str:
    """Return the variable's value, or the default when unset or empty."""
    return os.environ.get(key) or default_value


def get_env_bool(key: str, default_value: bool) -> bool:
    """Return the variable as a boolean, or the default if unset or invalid."""
    value = os.environ.get(key, "")
    if value in _TRUE_WORDS:
        return True
    if value in _FALSE_WORDS:
        return False
    return default_value


def get_env_int(key: str, default_value: int) -> int:
    """Return the variable as an integer, or the default if unset or invalid."""
    value = os.environ.get(key, "")
    parsed = _parse_int64(value) if value else None
    return default_value if parsed is None else parsed


def get_env_int64(key: str, default_value: int) -> int:
    """Return the variable as a 64-bit integer, or the default if unset or invalid."""
    return get_env_int(key, default_value)


def parse_file_size(size_str: str) -> int:
    """Parse sizes such as "10MB" or "1 KB" into bytes; 0 when unparseable.

    Unknown units count as bytes.
    """
    text = size_str.upper().strip()
    if not text:
        return 0

    digits = []
    unit = ""
    for index, char in enumerate(text):
        if "0" <= char <= "9":
            digits.append(char)
        else:
            unit = text[index:].strip()
            break

    if not digits:
        return 0
    size = _parse_int64("".join(digits))
    if size is None:
        return 0
    return size * _SIZE_UNITS.get(unit, 1)


def get_all_env_vars() -> dict[str, str]:
    """Return every known setting with its effective value as text."""
    settings = {key: get_env_with_default(key, default) for key, default in _STRING_SETTINGS}
    settings.update(
        (key, str(get_env_bool(key, default)).lower()) for key, default in _BOOL_SETTINGS
    )
    return settings


def get_default_format() -> str:
    return get_env_with_default(ENV_DEFAULT_FORMAT, "xml")


def get_output_dir() -> str:
    return get_env_with_default(ENV_OUTPUT_DIR, "")


def get_filename_template() -> str:
    return get_env_with_default(ENV_FILENAME_TEMPLATE, "")


def get_timestamp_format() -> str:
    return get_env_with_default(ENV_TIMESTAMP_FORMAT, "")


def get_max_file_size() -> str:
    return get_env_with_default(ENV_MAX_FILE_SIZE, "10MB")


def get_max_depth() -> int:
    return get_env_int(ENV_MAX_DEPTH, 0)


def get_include_hidden() -> bool:
    return get_env_bool(ENV_INCLUDE_HIDDEN, False)


def get_follow_symlinks() -> bool:
    return get_env_bool(ENV_FOLLOW_SYMLINKS, False)


def get_exclude_binary() -> bool:
    return get_env_bool(ENV_EXCLUDE_BINARY, True)


def get_encoding() -> str:
    return get_env_with_default(ENV_ENCODING, "utf-8")


def get_include_metadata() -> bool:
    return get_env_bool(ENV_INCLUDE_METADATA, False)


def get_exclude_patterns() -> str:
    return get_env_with_default(ENV_EXCLUDE_PATTERNS, "")


def get_security_enabled() -> bool:
    return get_env_bool(ENV_SECURITY_ENABLED, False)


def get_security_fail_on_critical() -> bool:
    return get_env_bool(ENV_SECURITY_FAIL_ON_CRITICAL, False)


def get_security_scan_level() -> str:
    return get_env_with_default(ENV_SECURITY_SCAN_LEVEL, "standard")


def get_security_report_format() -> str:
    return get_env_with_default(ENV_SECURITY_REPORT_FORMAT, "text")


def get_security_detect_credentials() -> bool:
    return get_env_bool(ENV_SECURITY_DETECT_CREDENTIALS, False)


def get_security_detect_sql_injection() -> bool:
    return get_env_bool(ENV_SECURITY_DETECT_SQL_INJECTION, False)


def get_security_detect_xss() -> bool:
    return get_env_bool(ENV_SECURITY_DETECT_XSS, False)


def get_security_detect_path_traversal() -> bool:
    return get_env_bool(ENV_SECURITY_DETECT_PATH_TRAVERSAL, False)


def get_security_detect_quality() -> bool:
    return get_env_bool(ENV_SECURITY_DETECT_QUALITY, False)


def apply_env_overrides(config: MutableMapping[str, Any]) -> None:
    """Copy every non-empty setting into the mapping, keyed by variable name."""
    for key, value in get_all_env_vars().items():
        if value:
            config[key] = value