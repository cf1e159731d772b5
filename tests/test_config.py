from __future__ import annotations

from pathlib import Path
from unittest.mock import patch

import pytest

from monoship.config import (
    MonoshipConfig,
    apply_npmrc,
    discover_config_file,
    load_config,
    read_npmrc,
    _parse_section,
    _pyproject_has_monoship_section,
    _read_toml,
)
from monoship.exceptions import ConfigError


@pytest.mark.unit
class TestMonoshipConfig:
    """Tests for MonoshipConfig dataclass."""

    def test_default_initialization(self) -> None:
        """Test MonoshipConfig initializes with correct defaults."""
        config = MonoshipConfig()

        assert config.registry == "https://registry.npmjs.org"
        assert config.bump == "minor"
        assert config.version_policy == "max"
        assert config.conflict_policy == "error"
        assert config.output_root is None
        assert config.include_source_maps is True
        assert config.include_declarations is True
        assert config.timeout == 30
        assert config.token is None
        assert config.source_path is None

    def test_to_log_dict_hides_token(self) -> None:
        """Test the token is reported only as present."""
        config = MonoshipConfig(token="s3cret", output_root=Path("/tmp/out"))

        result = config.to_log_dict()

        assert result["token"] == "<set>"
        assert "s3cret" not in str(result)
        assert result["output_root"] == str(Path("/tmp/out"))
        assert "source_path" not in result

    def test_repr_hides_token(self) -> None:
        """Test the token never shows up in repr."""
        assert "s3cret" not in repr(MonoshipConfig(token="s3cret"))


@pytest.mark.unit
class TestDiscoverConfigFile:
    """Tests for discover_config_file function."""

    def test_explicit_path_priority(self, tmp_path: Path) -> None:
        """Test explicit path is used when provided and exists."""
        config_file = tmp_path / "custom.toml"
        config_file.write_text("[monoship]\n", encoding="utf-8")
        (tmp_path / "monoship.toml").write_text("[monoship]\n", encoding="utf-8")

        with patch("monoship.config.Path.cwd", return_value=tmp_path):
            result = discover_config_file(config_file)

        assert result == config_file.resolve()

    def test_explicit_path_not_found_raises_error(self, tmp_path: Path) -> None:
        """Test ConfigError raised when explicit path doesn't exist."""
        with pytest.raises(ConfigError, match="not found"):
            discover_config_file(tmp_path / "missing.toml")

    def test_discovers_monoship_toml(self, tmp_path: Path) -> None:
        """Test monoship.toml in the working directory is found."""
        config_file = tmp_path / "monoship.toml"
        config_file.write_text("[monoship]\n", encoding="utf-8")

        with patch("monoship.config.Path.cwd", return_value=tmp_path):
            assert discover_config_file() == config_file

    def test_discovers_pyproject_toml_with_section(self, tmp_path: Path) -> None:
        """Test pyproject.toml is used when it has [tool.monoship]."""
        pyproject = tmp_path / "pyproject.toml"
        pyproject.write_text("[tool.monoship]\nbump = 'patch'\n", encoding="utf-8")

        with patch("monoship.config.Path.cwd", return_value=tmp_path):
            assert discover_config_file() == pyproject

    def test_ignores_pyproject_toml_without_section(self, tmp_path: Path) -> None:
        """Test pyproject.toml without the section is skipped."""
        (tmp_path / "pyproject.toml").write_text("[tool.black]\n", encoding="utf-8")

        with patch("monoship.config.Path.cwd", return_value=tmp_path):
            assert discover_config_file() is None

    def test_precedence_order(self, tmp_path: Path) -> None:
        """Test monoship.toml wins over pyproject.toml."""
        monoship_toml = tmp_path / "monoship.toml"
        monoship_toml.write_text("[monoship]\n", encoding="utf-8")
        (tmp_path / "pyproject.toml").write_text("[tool.monoship]\n", encoding="utf-8")

        with patch("monoship.config.Path.cwd", return_value=tmp_path):
            assert discover_config_file() == monoship_toml


@pytest.mark.unit
class TestPyprojectHasMonoshipSection:
    """Tests for _pyproject_has_monoship_section."""

    def test_true_when_section_exists(self, tmp_path: Path) -> None:
        """Test the section is detected."""
        path = tmp_path / "pyproject.toml"
        path.write_text("[tool.monoship]\n", encoding="utf-8")

        assert _pyproject_has_monoship_section(path) is True

    def test_false_when_section_missing(self, tmp_path: Path) -> None:
        """Test other tools' sections do not count."""
        path = tmp_path / "pyproject.toml"
        path.write_text("[project]\nname = 'x'\n", encoding="utf-8")

        assert _pyproject_has_monoship_section(path) is False

    def test_false_on_parse_errors(self, tmp_path: Path) -> None:
        """Test a broken pyproject.toml is treated as having no section."""
        path = tmp_path / "pyproject.toml"
        path.write_text("[tool.monoship\n", encoding="utf-8")

        assert _pyproject_has_monoship_section(path) is False


@pytest.mark.unit
class TestReadToml:
    """Tests for _read_toml."""

    def test_reads_valid_toml(self, tmp_path: Path) -> None:
        """Test TOML is parsed into a dict."""
        path = tmp_path / "monoship.toml"
        path.write_text("[monoship]\ntimeout = 10\n", encoding="utf-8")

        assert _read_toml(path) == {"monoship": {"timeout": 10}}

    def test_invalid_toml(self, tmp_path: Path) -> None:
        """Test invalid TOML raises ConfigError."""
        path = tmp_path / "monoship.toml"
        path.write_text("timeout = = 1\n", encoding="utf-8")

        with pytest.raises(ConfigError, match="Invalid TOML"):
            _read_toml(path)

    def test_missing_file(self, tmp_path: Path) -> None:
        """Test unreadable files raise ConfigError."""
        with pytest.raises(ConfigError, match="Cannot read"):
            _read_toml(tmp_path / "missing.toml")


@pytest.mark.unit
class TestParseSection:
    """Tests for _parse_section."""

    def test_empty_section(self) -> None:
        """Test an empty table yields defaults."""
        assert _parse_section({}, config_path="x.toml") == MonoshipConfig()

    def test_all_options(self) -> None:
        """Test every option is parsed."""
        config = _parse_section(
            {
                "registry": "https://npm.example.com",
                "bump": "patch",
                "version_policy": "independent",
                "conflict_policy": "warn",
                "output_root": "build/out",
                "include_source_maps": False,
                "include_declarations": False,
                "timeout": 10,
            },
            config_path="x.toml",
        )

        assert config.registry == "https://npm.example.com"
        assert config.bump == "patch"
        assert config.version_policy == "independent"
        assert config.conflict_policy == "warn"
        assert config.output_root == Path("build/out")
        assert config.include_source_maps is False
        assert config.include_declarations is False
        assert config.timeout == 10

    def test_explicit_version_bump(self) -> None:
        """Test an explicit version is a valid bump."""
        assert _parse_section({"bump": "2.0.0"}, config_path="x.toml").bump == "2.0.0"

    def test_package_bump(self) -> None:
        """Test the package keyword is a valid bump."""
        assert _parse_section({"bump": "package"}, config_path="x.toml").bump == "package"

    def test_unknown_keys(self) -> None:
        """Test unknown keys are rejected and listed."""
        with pytest.raises(ConfigError, match="Unknown configuration keys: color, token"):
            _parse_section({"token": "x", "color": True}, config_path="x.toml")

    @pytest.mark.parametrize(
        "option, value",
        [
            ("registry", 1),
            ("include_source_maps", "yes"),
            ("timeout", "10"),
            ("timeout", True),
        ],
    )
    def test_wrong_type(self, option: str, value: object) -> None:
        """Test values of the wrong type are rejected."""
        with pytest.raises(ConfigError, match=f"{option} must be") as exc_info:
            _parse_section({option: value}, config_path="x.toml")

        assert exc_info.value.option == option

    @pytest.mark.parametrize(
        "option, value",
        [
            ("version_policy", "min"),
            ("conflict_policy", "ignore"),
            ("bump", "huge"),
            ("timeout", 0),
        ],
    )
    def test_disallowed_value(self, option: str, value: object) -> None:
        """Test values outside the allowed set are rejected."""
        with pytest.raises(ConfigError) as exc_info:
            _parse_section({option: value}, config_path="x.toml")

        assert exc_info.value.option == option


@pytest.mark.unit
class TestLoadConfig:
    """Tests for load_config."""

    def test_defaults_when_no_config_found(self, tmp_path: Path) -> None:
        """Test defaults are returned without a file."""
        with patch("monoship.config.Path.cwd", return_value=tmp_path):
            config = load_config(environ={})

        assert config == MonoshipConfig()

    def test_loads_monoship_toml(self, tmp_path: Path) -> None:
        """Test the [monoship] table is read."""
        path = tmp_path / "monoship.toml"
        path.write_text("[monoship]\nconflict_policy = 'warn'\n", encoding="utf-8")

        with patch("monoship.config.Path.cwd", return_value=tmp_path):
            config = load_config(environ={})

        assert config.conflict_policy == "warn"
        assert config.source_path == path

    def test_loads_pyproject_toml(self, tmp_path: Path) -> None:
        """Test the [tool.monoship] table is read."""
        path = tmp_path / "pyproject.toml"
        path.write_text("[tool.monoship]\nbump = 'major'\n", encoding="utf-8")

        with patch("monoship.config.Path.cwd", return_value=tmp_path):
            config = load_config(environ={})

        assert config.bump == "major"

    def test_loads_explicit_path(self, tmp_path: Path) -> None:
        """Test an explicit file is read."""
        path = tmp_path / "release.toml"
        path.write_text("[monoship]\ntimeout = 5\n", encoding="utf-8")

        config = load_config(path, environ={})

        assert config.timeout == 5
        assert config.source_path == path.resolve()

    def test_environment_overrides_file(self, tmp_path: Path) -> None:
        """Test the registry and token come from the environment."""
        path = tmp_path / "monoship.toml"
        path.write_text("[monoship]\nregistry = 'https://file.example'\n", encoding="utf-8")

        config = load_config(
            path,
            environ={
                "MONOSHIP_REGISTRY": "https://env.example",
                "MONOSHIP_REGISTRY_TOKEN": "s3cret",
            },
        )

        assert config.registry == "https://env.example"
        assert config.token == "s3cret"

    def test_section_must_be_table(self, tmp_path: Path) -> None:
        """Test a non-table section is rejected."""
        path = tmp_path / "monoship.toml"
        path.write_text("monoship = 1\n", encoding="utf-8")

        with pytest.raises(ConfigError, match="must be a table"):
            load_config(path, environ={})

    def test_invalid_file(self, tmp_path: Path) -> None:
        """Test validation errors propagate."""
        path = tmp_path / "monoship.toml"
        path.write_text("[monoship]\nbogus = 1\n", encoding="utf-8")

        with pytest.raises(ConfigError, match="Unknown configuration keys"):
            load_config(path, environ={})


@pytest.mark.unit
class TestReadNpmrc:
    """Tests for read_npmrc."""

    def test_key_values(self, tmp_path: Path) -> None:
        """Test comments are skipped and quotes removed."""
        path = tmp_path / ".npmrc"
        path.write_text(
            "# comment\n; another\n\nregistry = https://npm.example.com/\n"
            'always-auth="true"\nnot a setting\n',
            encoding="utf-8",
        )

        assert read_npmrc(path, environ={}) == {
            "registry": "https://npm.example.com/",
            "always-auth": "true",
        }

    def test_env_references_expanded(self, tmp_path: Path) -> None:
        """Test ${VAR} references are taken from the environment."""
        path = tmp_path / ".npmrc"
        path.write_text("//npm.example.com/:_authToken=${NPM_TOKEN}\n", encoding="utf-8")

        values = read_npmrc(path, environ={"NPM_TOKEN": "abc"})

        assert values == {"//npm.example.com/:_authToken": "abc"}

    def test_unset_env_reference(self, tmp_path: Path) -> None:
        """Test a reference to an unset variable raises ConfigError."""
        path = tmp_path / ".npmrc"
        path.write_text("//npm.example.com/:_authToken=${NPM_TOKEN}\n", encoding="utf-8")

        with pytest.raises(ConfigError, match=r"\$\{NPM_TOKEN\}"):
            read_npmrc(path, environ={})


@pytest.mark.unit
class TestApplyNpmrc:
    """Tests for apply_npmrc."""

    def test_missing_file(self, tmp_path: Path) -> None:
        """Test a missing .npmrc leaves the config alone."""
        config = MonoshipConfig()

        assert apply_npmrc(config, tmp_path / ".npmrc", environ={}) is False
        assert config == MonoshipConfig()

    def test_registry_and_matching_token(self, tmp_path: Path) -> None:
        """Test the registry is adopted along with the token for its host."""
        path = tmp_path / ".npmrc"
        path.write_text(
            "registry=https://npm.example.com/\n"
            "//registry.npmjs.org/:_authToken=public\n"
            "//npm.example.com/:_authToken=private\n",
            encoding="utf-8",
        )
        config = MonoshipConfig()

        assert apply_npmrc(config, path, environ={}) is True
        assert config.registry == "https://npm.example.com/"
        assert config.token == "private"

    def test_token_for_registry_path(self, tmp_path: Path) -> None:
        """Test the most specific path prefix of the registry wins."""
        path = tmp_path / ".npmrc"
        path.write_text(
            "//npm.example.com/:_authToken=host\n"
            "//npm.example.com/api/npm/:_authToken=scoped\n",
            encoding="utf-8",
        )
        config = MonoshipConfig(registry="https://npm.example.com/api/npm")

        apply_npmrc(config, path, environ={})

        assert config.token == "scoped"

    def test_configured_values_win(self, tmp_path: Path) -> None:
        """Test a registry and token already set are kept."""
        path = tmp_path / ".npmrc"
        path.write_text(
            "registry=https://npm.example.com/\n//file.example/:_authToken=from-npmrc\n",
            encoding="utf-8",
        )
        config = MonoshipConfig(registry="https://file.example", token="from-env")

        apply_npmrc(config, path, environ={})

        assert config.registry == "https://file.example"
        assert config.token == "from-env"

    def test_token_for_configured_registry(self, tmp_path: Path) -> None:
        """Test the token is matched against a registry set elsewhere."""
        path = tmp_path / ".npmrc"
        path.write_text("//file.example/:_authToken=from-npmrc\n", encoding="utf-8")
        config = MonoshipConfig(registry="https://file.example")

        apply_npmrc(config, path, environ={})

        assert config.token == "from-npmrc"
