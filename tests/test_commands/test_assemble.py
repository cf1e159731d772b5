from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Callable, Dict, List

import httpx
import pytest
from click.testing import CliRunner

from conftest import MonorepoBuilder
from monoship.cli import cli
from monoship.utils.http import HTTPClient
from monoship.exceptions import ManifestError, UnresolvableSpecifierError, VersionConflictError


@pytest.fixture
def runner(monkeypatch: pytest.MonkeyPatch) -> CliRunner:
    """CliRunner with plain output and no registry settings from the environment."""
    monkeypatch.setenv("NO_COLOR", "1")
    monkeypatch.delenv("MONOSHIP_REGISTRY", raising=False)
    monkeypatch.delenv("MONOSHIP_REGISTRY_TOKEN", raising=False)
    monkeypatch.delenv("MONOSHIP_CONFIG", raising=False)
    return CliRunner()


def _patch_http(
    monkeypatch: pytest.MonkeyPatch,
    handler: Callable[[httpx.Request], httpx.Response],
) -> List[httpx.Request]:
    requests: List[httpx.Request] = []

    def record(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return handler(request)

    def factory(**kwargs: Any) -> HTTPClient:
        return HTTPClient(transport=httpx.MockTransport(record), max_retries=0, **kwargs)

    monkeypatch.setattr("monoship.commands.assemble.HTTPClient", factory)
    return requests


@pytest.mark.integration
class TestAssembleCommand:
    """Tests for the assemble command."""

    def test_assembles_app(
        self, runner: CliRunner, app_and_lib: MonorepoBuilder, tmp_path: Path
    ) -> None:
        """Test app is assembled with lib folded in and the source version kept."""
        out = tmp_path / "out"

        result = runner.invoke(
            cli, ["assemble", str(app_and_lib.root / "packages" / "app"), "-o", str(out)]
        )

        assert result.exit_code == 0, result.output
        unit_dir = out / "__app"
        index = (unit_dir / "dist" / "index.js").read_text(encoding="utf-8")
        assert 'from "../deps/__lib/dist/index.js"' in index
        manifest = json.loads((unit_dir / "package.json").read_text(encoding="utf-8"))
        assert manifest["version"] == "1.0.0"
        assert "Assembled Packages" in result.output

    def test_json_output(
        self, runner: CliRunner, app_and_lib: MonorepoBuilder, tmp_path: Path
    ) -> None:
        """Test --format json lists each unit with its internal dependencies."""
        result = runner.invoke(
            cli,
            [
                "assemble",
                str(app_and_lib.root / "packages" / "app"),
                "-o",
                str(tmp_path / "out"),
                "--format",
                "json",
            ],
        )

        assert result.exit_code == 0, result.output
        data = json.loads(result.stdout)
        assert data[0]["package"] == "app"
        assert data[0]["internal_dependencies"] == ["lib"]
        assert data[0]["state"] == "unpublished"

    def test_explicit_version_skips_registry(
        self,
        runner: CliRunner,
        app_and_lib: MonorepoBuilder,
        tmp_path: Path,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        """Test --bump with a version writes it without any registry request."""
        requests = _patch_http(monkeypatch, lambda request: httpx.Response(500))
        out = tmp_path / "out"

        result = runner.invoke(
            cli,
            ["assemble", str(app_and_lib.root / "packages" / "app"), "-o", str(out), "-b", "3.0.0"],
        )

        assert result.exit_code == 0, result.output
        manifest = json.loads((out / "__app" / "package.json").read_text(encoding="utf-8"))
        assert manifest["version"] == "3.0.0"
        assert requests == []

    def test_bump_reads_registry(
        self,
        runner: CliRunner,
        app_and_lib: MonorepoBuilder,
        tmp_path: Path,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        """Test a bump keyword is applied to the registry's latest version."""
        latest: Dict[str, Any] = {"dist-tags": {"latest": "1.4.2"}}
        requests = _patch_http(monkeypatch, lambda request: httpx.Response(200, json=latest))
        out = tmp_path / "out"

        result = runner.invoke(
            cli,
            ["assemble", str(app_and_lib.root / "packages" / "app"), "-o", str(out), "-b", "minor"],
        )

        assert result.exit_code == 0, result.output
        manifest = json.loads((out / "__app" / "package.json").read_text(encoding="utf-8"))
        assert manifest["version"] == "1.5.0"
        assert [request.method for request in requests] == ["GET"]

    def test_monorepo_npmrc_supplies_registry(
        self,
        runner: CliRunner,
        app_and_lib: MonorepoBuilder,
        tmp_path: Path,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        """Test the root .npmrc picks the registry and its token for version reads."""
        latest: Dict[str, Any] = {"dist-tags": {"latest": "2.0.0"}}
        requests = _patch_http(monkeypatch, lambda request: httpx.Response(200, json=latest))
        app_and_lib.write_text(
            ".npmrc",
            "registry=https://npm.example.com/\n//npm.example.com/:_authToken=s3cret\n",
        )
        out = tmp_path / "out"

        result = runner.invoke(
            cli,
            ["assemble", str(app_and_lib.root / "packages" / "app"), "-o", str(out), "-b", "patch"],
        )

        assert result.exit_code == 0, result.output
        assert [request.url.host for request in requests] == ["npm.example.com"]
        assert requests[0].headers["Authorization"] == "Bearer s3cret"
        assert not (out / "__app" / ".npmrc").exists()

    def test_package_bump_uses_declared_versions(
        self,
        runner: CliRunner,
        monorepo: MonorepoBuilder,
        tmp_path: Path,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        """Test --bump package publishes the highest package.json version of the batch."""
        requests = _patch_http(monkeypatch, lambda request: httpx.Response(500))
        app1 = monorepo.package("@test/app1", directory="app1", version="1.2.3")
        app2 = monorepo.package("@test/app2", directory="app2", version="5.6.7")
        out = tmp_path / "out"

        result = runner.invoke(
            cli, ["assemble", str(app1), str(app2), "-o", str(out), "-b", "package"]
        )

        assert result.exit_code == 0, result.output
        for unit_dir in ("__test__app1", "__test__app2"):
            manifest = json.loads((out / unit_dir / "package.json").read_text(encoding="utf-8"))
            assert manifest["version"] == "5.6.7"
        assert requests == []

    def test_package_bump_without_version(
        self, runner: CliRunner, monorepo: MonorepoBuilder, tmp_path: Path
    ) -> None:
        """Test --bump package fails when package.json declares no version."""
        app = monorepo.package("@test/app", directory="app", version=None)
        out = tmp_path / "out"

        result = runner.invoke(cli, ["assemble", str(app), "-o", str(out), "-b", "package"])

        assert isinstance(result.exception, ManifestError)
        assert 'No version found in package.json for "@test/app"' in str(result.exception)
        assert not (out / "__test__app").exists()

    def test_invalid_bump(
        self, runner: CliRunner, app_and_lib: MonorepoBuilder, tmp_path: Path
    ) -> None:
        """Test an invalid --bump fails before anything is written."""
        out = tmp_path / "out"

        result = runner.invoke(
            cli,
            ["assemble", str(app_and_lib.root / "packages" / "app"), "-o", str(out), "-b", "huge"],
        )

        assert result.exit_code != 0
        assert not out.exists()

    def test_version_conflict(
        self, runner: CliRunner, monorepo: MonorepoBuilder, tmp_path: Path
    ) -> None:
        """Test conflicting third-party versions abort without writing."""
        monorepo.package("lib", dependencies={"lodash": "^4.17.0"})
        app = monorepo.package("app", dependencies={"lib": "workspace:*", "lodash": "^3.10.0"})
        out = tmp_path / "out"

        result = runner.invoke(cli, ["assemble", str(app), "-o", str(out)])

        assert result.exit_code == 1
        assert isinstance(result.exception, VersionConflictError)
        assert not out.exists()

    def test_warn_policy_from_config(
        self, runner: CliRunner, monorepo: MonorepoBuilder, tmp_path: Path
    ) -> None:
        """Test conflict_policy = "warn" in the config file downgrades conflicts."""
        monorepo.package("lib", dependencies={"lodash": "^4.17.0"})
        app = monorepo.package("app", dependencies={"lib": "workspace:*", "lodash": "^3.10.0"})
        config = tmp_path / "monoship.toml"
        config.write_text('[monoship]\nconflict_policy = "warn"\n', encoding="utf-8")
        out = tmp_path / "out"

        result = runner.invoke(cli, ["-c", str(config), "assemble", str(app), "-o", str(out)])

        assert result.exit_code == 0, result.output
        assert "[WARNING]" in result.output
        manifest = json.loads((out / "__app" / "package.json").read_text(encoding="utf-8"))
        assert manifest["dependencies"]["lodash"] == "^4.17.0"

    def test_unresolvable_import(
        self, runner: CliRunner, monorepo: MonorepoBuilder, tmp_path: Path
    ) -> None:
        """Test a computed dynamic import aborts the command."""
        monorepo.package("lib", sources={"dist/index.js": "export {};\n"})
        app = monorepo.package(
            "app",
            dependencies={"lib": "workspace:*"},
            sources={"dist/index.js": "await import(process.env.X);\n"},
        )

        result = runner.invoke(cli, ["assemble", str(app), "-o", str(tmp_path / "out")])

        assert isinstance(result.exception, UnresolvableSpecifierError)

    def test_missing_package_dir(self, runner: CliRunner, tmp_path: Path) -> None:
        """Test a nonexistent PACKAGE_DIR is a usage error."""
        result = runner.invoke(cli, ["assemble", str(tmp_path / "nope")])

        assert result.exit_code == 2
