"""Assemble command implementation for monoship.

Builds one self-contained, publishable directory per requested package
without touching the registry's dist-tags. Internal workspace
dependencies are copied under ``deps/`` and every import of them is
rewritten to a relative path.

The command orchestrates the core pipeline:

1. **prepare_batch** — discovers the workspace, validates publish names,
   resolves closures and plans each unit (nothing is written yet).
2. **resolve_versions** — only with ``--bump``; reads the registry for
   bump keywords, never for explicit versions.
3. **write_batch** — copies files, rewrites specifiers, writes manifests.

Typical usage::

    # Assemble into a temporary directory, keeping source versions
    $ monoship assemble packages/app

    # Assemble two packages with an explicit version
    $ monoship assemble packages/app packages/cli --bump 2.0.0 --output-root out
"""

from __future__ import annotations

import json
import asyncio
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import click

from monoship.config import MonoshipConfig, apply_npmrc
from monoship.models.publish import PublishUnit
from monoship.context import pass_context, MonoshipContext
from monoship.constants import NPMRC_FILE, VERSION_POLICY_INDEPENDENT
from monoship.core import (
    NpmRegistry,
    PackageAssembler,
    PreparedBatch,
    VersionSpecifier,
    parse_version_specifier,
    prepare_batch,
    resolve_versions,
    write_batch,
)
from monoship.core.pipeline import default_output_root
from monoship.utils import (
    HTTPClient,
    colorize_bump,
    colorize_state,
    get_logger,
    print_blank,
    print_success,
    print_table,
    print_tree,
    print_warning,
)

logger = get_logger("commands.assemble")

#: Path type shared by every PACKAGE_DIR argument.
PACKAGE_DIR = click.Path(exists=True, file_okay=False, path_type=Path)


@click.command()
@click.argument("package_dirs", nargs=-1, required=True, type=PACKAGE_DIR)
@click.option(
    "--output-root",
    "-o",
    type=click.Path(file_okay=False, path_type=Path),
    help="Directory receiving one subdirectory per package (default: a temporary directory).",
)
@click.option(
    "--monorepo-root",
    type=PACKAGE_DIR,
    help="Workspace root (default: discovered from the first package).",
)
@click.option(
    "--bump",
    "-b",
    help=(
        "major, minor, patch, package (the package.json version) or an explicit "
        "version. Keeps source versions when omitted."
    ),
)
@click.option(
    "--independent",
    is_flag=True,
    help="Bump each package from its own published version.",
)
@click.option(
    "--format",
    "-f",
    type=click.Choice(["table", "json"], case_sensitive=False),
    default="table",
    help="Output format.",
)
@pass_context
def assemble(
    ctx: MonoshipContext,
    package_dirs: Tuple[Path, ...],
    output_root: Optional[Path],
    monorepo_root: Optional[Path],
    bump: Optional[str],
    independent: bool,
    format: str,
) -> None:
    """Assemble PACKAGE_DIR... into publishable directories.

    Every error (unknown packages, cycles, version conflicts, CommonJS
    files, unresolvable imports) is reported before anything is written.
    """
    specifier = parse_version_specifier(bump) if bump else None
    config = ctx.override(output_root=output_root)
    prepared = asyncio.run(
        _assemble_async(
            config,
            list(package_dirs),
            monorepo_root=monorepo_root,
            specifier=specifier,
            independent=independent,
        )
    )

    if format == "json":
        click.echo(json.dumps([_unit_json(prepared, unit) for unit in prepared.units], indent=2))
        return

    display_units(prepared.units, title="Assembled Packages")
    display_closures(prepared)
    for unit in prepared.units:
        print_success(f"{unit.publish_name} assembled in {unit.output_dir}")


# ---------------------------------------------------------------------------
# Shared orchestration (also used by ``publish``)
# ---------------------------------------------------------------------------


def build_assembler(config: MonoshipConfig) -> PackageAssembler:
    return PackageAssembler(
        include_source_maps=config.include_source_maps,
        include_declarations=config.include_declarations,
    )


def prepare(
    config: MonoshipConfig,
    package_dirs: List[Path],
    *,
    monorepo_root: Optional[Path],
) -> PreparedBatch:
    """Run the write-free half of the pipeline and report diagnostics.

    Units go under ``config.output_root``, or a fresh temporary directory
    when none is configured. Registry settings still unset in ``config``
    are then taken from the monorepo root's ``.npmrc``.
    """
    prepared = prepare_batch(
        package_dirs,
        output_root=config.output_root or default_output_root(),
        monorepo_root=monorepo_root,
        conflict_policy=config.conflict_policy,
        assembler=build_assembler(config),
    )
    if apply_npmrc(config, prepared.workspace.root / NPMRC_FILE):
        logger.info("Read registry settings from %s", prepared.workspace.root / NPMRC_FILE)
    for conflict in prepared.diagnostics:
        print_warning(f"Version conflict, using {conflict.highest().version}: {conflict}")
    logger.info(
        "Build order: %s", ", ".join(package.name for package in prepared.build_order)
    )
    return prepared


def version_policy(config: MonoshipConfig, independent: bool) -> str:
    return VERSION_POLICY_INDEPENDENT if independent else config.version_policy


async def _assemble_async(
    config: MonoshipConfig,
    package_dirs: List[Path],
    *,
    monorepo_root: Optional[Path],
    specifier: Optional[VersionSpecifier],
    independent: bool,
) -> PreparedBatch:
    prepared = prepare(config, package_dirs, monorepo_root=monorepo_root)

    if specifier is not None:
        async with HTTPClient(timeout=config.timeout, token=config.token) as http:
            registry = NpmRegistry(http, config.registry)
            await resolve_versions(
                prepared.units,
                specifier,
                registry,
                policy=version_policy(config, independent),
            )

    write_batch(prepared)
    return prepared


# ---------------------------------------------------------------------------
# Display
# ---------------------------------------------------------------------------


def _unit_json(prepared: PreparedBatch, unit: PublishUnit) -> Dict[str, Any]:
    closure = next(c for c in prepared.closures if c.subject_name == unit.package_name)
    data = unit.to_json()
    data["internal_dependencies"] = [pkg.name for pkg in closure.internal_dependencies]
    return data


def display_units(units: List[PublishUnit], *, title: str) -> None:
    """Render units as a Rich table."""
    rows = [
        {
            "Package": unit.package_name,
            "Publish As": unit.publish_name,
            "Current": unit.current_version or "-",
            "Version": unit.version or "-",
            "Change": colorize_bump(unit.update_type) if unit.current_version else "-",
            "State": colorize_state(unit.state.value),
        }
        for unit in units
    ]
    print_table(
        rows,
        title=title,
        column_styles={
            "Package": {"style": "bold cyan", "no_wrap": True},
            "Publish As": {"no_wrap": True},
            "Current": {"justify": "center", "style": "dim"},
            "Version": {"justify": "center", "style": "bold green"},
            "Change": {"justify": "center"},
            "State": {"justify": "center"},
        },
    )
    print_blank()


def display_closures(prepared: PreparedBatch) -> None:
    """Show where each unit's internal dependencies were folded in."""
    for plan, unit in zip(prepared.plans, prepared.units):
        children = [
            f"{location.name} [dim]→ {location.prefix}/[/dim]"
            for location in plan.layout
            if location.prefix
        ]
        print_tree(f"[bold]{unit.publish_name}[/bold]@{unit.version or '-'}", children)
