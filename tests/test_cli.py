from __future__ import annotations

from pathlib import Path
from unittest.mock import patch

import pytest

from monoship import __version__
from monoship.cli import main
from monoship.exceptions import ConfigError


@pytest.fixture(autouse=True)
def plain_environment(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("NO_COLOR", "1")
    monkeypatch.delenv("MONOSHIP_CONFIG", raising=False)
    monkeypatch.delenv("MONOSHIP_REGISTRY", raising=False)
    monkeypatch.delenv("MONOSHIP_REGISTRY_TOKEN", raising=False)
    monkeypatch.chdir(tmp_path)


@pytest.mark.unit
class TestCliMain:
    """Tests for monoship.cli.main exit codes."""

    def test_version(self, capsys: pytest.CaptureFixture) -> None:
        """Test --version prints the version and exits 0."""
        assert main(["--version"]) == 0
        assert f"monoship {__version__}" in capsys.readouterr().out

    def test_help(self, capsys: pytest.CaptureFixture) -> None:
        """Test --help lists both commands."""
        assert main(["--help"]) == 0

        out = capsys.readouterr().out
        assert "assemble" in out
        assert "publish" in out

    def test_unknown_command_is_usage_error(self) -> None:
        """Test an unknown command exits 2."""
        assert main(["frobnicate"]) == 2

    def test_missing_argument_is_usage_error(self) -> None:
        """Test a command without PACKAGE_DIR exits 2."""
        assert main(["assemble"]) == 2

    def test_monoship_error_exits_one(self) -> None:
        """Test application errors are reported and exit 1."""
        with patch("monoship.cli.load_config", side_effect=ConfigError("broken config")):
            with patch("monoship.cli.print_error") as print_error:
                assert main(["assemble", "."]) == 1

        print_error.assert_called_once()
        assert "broken config" in print_error.call_args.args[0]

    def test_unexpected_error_exits_one(self) -> None:
        """Test unexpected exceptions are reported and exit 1."""
        with patch("monoship.cli.load_config", side_effect=RuntimeError("boom")):
            with patch("monoship.cli.print_error") as print_error:
                assert main(["assemble", "."]) == 1

        assert print_error.call_args.args[0] == "Unexpected error: boom"

    def test_keyboard_interrupt_exits_130(self) -> None:
        """Test Ctrl+C exits 130."""
        with patch("monoship.cli.load_config", side_effect=KeyboardInterrupt):
            with patch("monoship.cli.print_warning"):
                assert main(["assemble", "."]) == 130

    def test_invalid_config_file(self, tmp_path: Path) -> None:
        """Test a config file with unknown keys exits 1."""
        config = tmp_path / "monoship.toml"
        config.write_text("[monoship]\nbogus = true\n", encoding="utf-8")

        with patch("monoship.cli.print_error") as print_error:
            assert main(["-c", str(config), "assemble", "."]) == 1

        assert "Unknown configuration keys" in print_error.call_args.args[0]
