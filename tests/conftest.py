from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, Generator, Optional

import pytest

from monoship.utils.console import reconfigure_console
from monoship.utils.logger import disable_logging


class MonorepoBuilder:
    """Writes a throwaway JavaScript monorepo under ``tmp_path``."""

    def __init__(self, root: Path) -> None:
        self.root = root
        self.root.mkdir(parents=True, exist_ok=True)
        self.write_json("package.json", {"name": "root", "private": True, "workspaces": ["packages/*"]})

    def write_json(self, rel_path: str, data: Any) -> Path:
        path = self.root / rel_path
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(data, indent=2) + "\n", encoding="utf-8")
        return path

    def write_text(self, rel_path: str, text: str) -> Path:
        path = self.root / rel_path
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
        return path

    def package(
        self,
        name: str,
        *,
        directory: Optional[str] = None,
        sources: Optional[Dict[str, str]] = None,
        **manifest: Any,
    ) -> Path:
        """Create ``packages/<directory>`` with a manifest and source files.

        ``type`` defaults to ``module`` and ``main`` to ``dist/index.js``.
        """
        directory = directory or name.split("/")[-1]
        package_dir = self.root / "packages" / directory
        data: Dict[str, Any] = {"name": name, "version": "1.0.0"}
        data.setdefault("type", "module")
        data.setdefault("main", "dist/index.js")
        data.update(manifest)
        self.write_json(f"packages/{directory}/package.json", data)
        for rel_path, text in (sources or {}).items():
            self.write_text(f"packages/{directory}/{rel_path}", text)
        return package_dir


@pytest.fixture
def monorepo(tmp_path: Path) -> MonorepoBuilder:
    """An empty monorepo with ``workspaces: ["packages/*"]``."""
    return MonorepoBuilder(tmp_path / "repo")


@pytest.fixture
def app_and_lib(monorepo: MonorepoBuilder) -> MonorepoBuilder:
    """``app`` depends on ``lib``; ``lib`` exports ``greet``."""
    monorepo.package(
        "lib",
        sources={"dist/index.js": 'export function greet(name) {\n  return `hi ${name}`;\n}\n'},
    )
    monorepo.package(
        "app",
        dependencies={"lib": "workspace:*", "chalk": "^5.0.0"},
        sources={
            "dist/index.js": 'import { greet } from "lib";\nimport chalk from "chalk";\n'
            "console.log(chalk.green(greet('x')));\n",
        },
    )
    return monorepo


@pytest.fixture(autouse=True)
def reset_output() -> Generator[None, None, None]:
    """Keep console and logging singletons independent between tests."""
    reconfigure_console()
    yield
    reconfigure_console()
    disable_logging()


