import os

import pytest

from codecontext import env

ALL_KEYS = [
    env.ENV_DEFAULT_FORMAT,
    env.ENV_OUTPUT_DIR,
    env.ENV_FILENAME_TEMPLATE,
    env.ENV_TIMESTAMP_FORMAT,
    env.ENV_MAX_FILE_SIZE,
    env.ENV_MAX_DEPTH,
    env.ENV_INCLUDE_HIDDEN,
    env.ENV_FOLLOW_SYMLINKS,
    env.ENV_EXCLUDE_BINARY,
    env.ENV_EXCLUDE_PATTERNS,
]


def _clear(monkeypatch, *keys):
    # setenv first so that undo removes any value the test leaves behind
    for key in keys:
        monkeypatch.setenv(key, "")
        monkeypatch.delenv(key)


@pytest.fixture
def clean(monkeypatch):
    _clear(monkeypatch, *ALL_KEYS, "TEST_KEY_1", "TEST_KEY_2")
    return monkeypatch


def test_load_env_missing_file(clean, tmp_path):
    clean.chdir(tmp_path)
    assert env.load_env("") is None
    assert "TEST_KEY_1" not in os.environ


def test_load_env_default_file(clean, tmp_path):
    clean.chdir(tmp_path)
    (tmp_path / ".env").write_text("TEST_KEY_1=value1\nTEST_KEY_2=value2\n")
    result = env.load_env(".env")
    assert result is None
    assert os.environ["TEST_KEY_1"] == "value1"
    assert os.environ["TEST_KEY_2"] == "value2"


def test_load_env_named_file(clean, tmp_path):
    clean.chdir(tmp_path)
    (tmp_path / "test.env").write_text("CODE_CONTEXT_DEFAULT_FORMAT=json\n")
    result = env.load_env("test.env")
    assert result is None
    assert os.environ["CODE_CONTEXT_DEFAULT_FORMAT"] == "json"
    assert env.get_default_format() == "json"


def test_load_env_keeps_existing_values(clean, tmp_path):
    clean.setenv("TEST_KEY_1", "kept")
    path = tmp_path / "vars.env"
    path.write_text("TEST_KEY_1=value1\n")
    result = env.load_env(path)
    assert result is None
    assert env.get_env_with_default("TEST_KEY_1", "missing") == "kept"


def test_load_env_directory_fails(tmp_path):
    with pytest.raises(OSError):
        env.load_env(tmp_path)


@pytest.mark.parametrize(
    "key, default, set_value, expected",
    [
        ("TEST_ENV_VAR", "default", "actual", "actual"),
        ("TEST_ENV_VAR_NOT_EXIST", "default", None, "default"),
        ("TEST_ENV_VAR", "default", "", "default"),
    ],
)
def test_get_env_with_default(monkeypatch, key, default, set_value, expected):
    _clear(monkeypatch, key)
    if set_value is not None:
        monkeypatch.setenv(key, set_value)
    assert env.get_env_with_default(key, default) == expected


@pytest.mark.parametrize(
    "key, default, set_value, expected",
    [
        ("TEST_BOOL_VAR", False, "true", True),
        ("TEST_BOOL_VAR", True, "false", False),
        ("TEST_BOOL_VAR", False, "1", True),
        ("TEST_BOOL_VAR", True, "0", False),
        ("TEST_BOOL_VAR_NOT_EXIST", True, None, True),
        ("TEST_BOOL_VAR", True, "invalid", True),
    ],
)
def test_get_env_bool(monkeypatch, key, default, set_value, expected):
    _clear(monkeypatch, key)
    if set_value is not None:
        monkeypatch.setenv(key, set_value)
    assert env.get_env_bool(key, default) is expected


@pytest.mark.parametrize(
    "key, default, set_value, expected",
    [
        ("TEST_INT_VAR", 10, "42", 42),
        ("TEST_INT_VAR", 10, "-5", -5),
        ("TEST_INT_VAR_NOT_EXIST", 10, None, 10),
        ("TEST_INT_VAR", 10, "invalid", 10),
    ],
)
def test_get_env_int(monkeypatch, key, default, set_value, expected):
    _clear(monkeypatch, key)
    if set_value is not None:
        monkeypatch.setenv(key, set_value)
    assert env.get_env_int(key, default) == expected


@pytest.mark.parametrize(
    "key, default, set_value, expected",
    [
        ("TEST_INT64_VAR", 100, "9223372036854775807", 9223372036854775807),
        ("TEST_INT64_VAR", 100, "-9223372036854775808", -9223372036854775808),
        ("TEST_INT64_VAR_NOT_EXIST", 100, None, 100),
        ("TEST_INT64_VAR", 100, "invalid", 100),
        ("TEST_INT64_VAR", 100, "9223372036854775808", 100),
    ],
)
def test_get_env_int64(monkeypatch, key, default, set_value, expected):
    _clear(monkeypatch, key)
    if set_value is not None:
        monkeypatch.setenv(key, set_value)
    assert env.get_env_int64(key, default) == expected


@pytest.mark.parametrize(
    "size_str, expected",
    [
        ("", 0),
        ("1024", 1024),
        ("10KB", 10 * 1024),
        ("5MB", 5 * 1024 * 1024),
        ("2GB", 2 * 1024 * 1024 * 1024),
        ("10mb", 10 * 1024 * 1024),
        ("  10 MB  ", 10 * 1024 * 1024),
        ("MB", 0),
        ("10TB", 10),
    ],
)
def test_parse_file_size(size_str, expected):
    assert env.parse_file_size(size_str) == expected


def test_get_all_env_vars(clean):
    clean.setenv(env.ENV_DEFAULT_FORMAT, "json")
    clean.setenv(env.ENV_OUTPUT_DIR, "/tmp/output")
    clean.setenv(env.ENV_MAX_FILE_SIZE, "20MB")
    clean.setenv(env.ENV_MAX_DEPTH, "5")
    clean.setenv(env.ENV_INCLUDE_HIDDEN, "true")
    clean.setenv(env.ENV_FOLLOW_SYMLINKS, "true")
    clean.setenv(env.ENV_EXCLUDE_BINARY, "false")
    clean.setenv(env.ENV_EXCLUDE_PATTERNS, "*.tmp,*.log")

    result = env.get_all_env_vars()
    assert result[env.ENV_DEFAULT_FORMAT] == "json"
    assert result[env.ENV_OUTPUT_DIR] == "/tmp/output"
    assert result[env.ENV_MAX_FILE_SIZE] == "20MB"
    assert result[env.ENV_MAX_DEPTH] == "5"
    assert result[env.ENV_INCLUDE_HIDDEN] == "true"
    assert result[env.ENV_FOLLOW_SYMLINKS] == "true"
    assert result[env.ENV_EXCLUDE_BINARY] == "false"
    assert result[env.ENV_EXCLUDE_PATTERNS] == "*.tmp,*.log"


def test_apply_env_overrides(clean):
    clean.setenv(env.ENV_DEFAULT_FORMAT, "toml")
    clean.setenv(env.ENV_OUTPUT_DIR, "/test/output")
    clean.setenv(env.ENV_MAX_FILE_SIZE, "50MB")
    config = {}
    env.apply_env_overrides(config)
    assert config[env.ENV_DEFAULT_FORMAT] == "toml"
    assert config[env.ENV_OUTPUT_DIR] == "/test/output"
    assert config[env.ENV_MAX_FILE_SIZE] == "50MB"
    assert env.ENV_FILENAME_TEMPLATE not in config


def test_string_getters(clean):
    clean.setenv(env.ENV_DEFAULT_FORMAT, "markdown")
    clean.setenv(env.ENV_OUTPUT_DIR, "/custom/output")
    clean.setenv(env.ENV_FILENAME_TEMPLATE, "custom_{{.timestamp}}.{{.extension}}")
    clean.setenv(env.ENV_TIMESTAMP_FORMAT, "2006-01-02")
    clean.setenv(env.ENV_MAX_FILE_SIZE, "15MB")
    clean.setenv(env.ENV_EXCLUDE_PATTERNS, "*.cache,*.temp")
    assert env.get_default_format() == "markdown"
    assert env.get_output_dir() == "/custom/output"
    assert env.get_filename_template() == "custom_{{.timestamp}}.{{.extension}}"
    assert env.get_timestamp_format() == "2006-01-02"
    assert env.get_max_file_size() == "15MB"
    assert env.get_exclude_patterns() == "*.cache,*.temp"


def test_int_getter(clean):
    clean.setenv(env.ENV_MAX_DEPTH, "10")
    assert env.get_max_depth() == 10


def test_bool_getters(clean):
    clean.setenv(env.ENV_INCLUDE_HIDDEN, "false")
    clean.setenv(env.ENV_FOLLOW_SYMLINKS, "true")
    clean.setenv(env.ENV_EXCLUDE_BINARY, "false")
    assert env.get_include_hidden() is False
    assert env.get_follow_symlinks() is True
    assert env.get_exclude_binary() is False


def test_default_values(clean):
    assert env.get_default_format() == "xml"
    assert env.get_output_dir() == ""
    assert env.get_filename_template() == ""
    assert env.get_timestamp_format() == ""
    assert env.get_max_file_size() == "10MB"
    assert env.get_max_depth() == 0
    assert env.get_include_hidden() is False
    assert env.get_follow_symlinks() is False
    assert env.get_exclude_binary() is True
    assert env.get_exclude_patterns() == ""


@pytest.mark.parametrize(
    "variable, getter, value",
    [
        ("CODE_CONTEXT_DEFAULT_FORMAT", env.get_default_format, "json"),
        ("CODE_CONTEXT_OUTPUT_DIR", env.get_output_dir, "/out"),
        ("CODE_CONTEXT_FILENAME_TEMPLATE", env.get_filename_template, "name"),
        ("CODE_CONTEXT_TIMESTAMP_FORMAT", env.get_timestamp_format, "2006"),
        ("CODE_CONTEXT_MAX_FILE_SIZE", env.get_max_file_size, "1KB"),
        ("CODE_CONTEXT_MAX_DEPTH", env.get_max_depth, 7),
        ("CODE_CONTEXT_INCLUDE_HIDDEN", env.get_include_hidden, True),
        ("CODE_CONTEXT_FOLLOW_SYMLINKS", env.get_follow_symlinks, True),
        ("CODE_CONTEXT_EXCLUDE_BINARY", env.get_exclude_binary, False),
        ("CODE_CONTEXT_EXCLUDE_PATTERNS", env.get_exclude_patterns, "*.tmp"),
    ],
)
def test_variable_names(clean, variable, getter, value):
    text = str(value).lower() if isinstance(value, bool) else str(value)
    clean.setenv(variable, text)
    assert getter() == value


def test_security_getters(monkeypatch):
    _clear(monkeypatch, env.ENV_SECURITY_ENABLED, env.ENV_SECURITY_SCAN_LEVEL,
           env.ENV_SECURITY_REPORT_FORMAT, env.ENV_SECURITY_DETECT_XSS)
    assert env.get_security_enabled() is False
    assert env.get_security_scan_level() == "standard"
    assert env.get_security_report_format() == "text"
    monkeypatch.setenv(env.ENV_SECURITY_ENABLED, "true")
    monkeypatch.setenv(env.ENV_SECURITY_DETECT_XSS, "1")
    assert env.get_security_enabled() is True
    assert env.get_security_detect_xss() is True