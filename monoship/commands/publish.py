"""Publish command implementation for monoship.

Assembles the requested packages, resolves their versions against the
registry and publishes them as one batch:

1. every unit is published under the ``pending`` dist-tag;
2. only when all of them succeeded is ``latest`` moved, unit by unit.

A failure while publishing leaves ``latest`` untouched for the whole
batch, so consumers never see half of a release.

Typical usage::

    # Minor bump shared by both packages
    $ monoship publish packages/app packages/cli --bump minor

    # Each package bumped from its own published version
    $ monoship publish packages/app packages/cli --bump patch --independent

    # Preview without publishing
    $ monoship publish packages/app --dry-run
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import List, Optional, Tuple

import click

from monoship.config import MonoshipConfig
from monoship.exceptions import RegistryError
from monoship.models.publish import PublishBatch
from monoship.context import pass_context, MonoshipContext
from monoship.core import (
    NpmRegistry,
    VersionSpecifier,
    parse_version_specifier,
    publish_batch,
    resolve_versions,
    write_batch,
)
from monoship.commands.assemble import PACKAGE_DIR, display_units, prepare, version_policy
from monoship.utils import (
    HTTPClient,
    confirm,
    get_logger,
    print_error,
    print_info,
    print_success,
    print_warning,
    write_json_file,
)

logger = get_logger("commands.publish")


@click.command()
@click.argument("package_dirs", nargs=-1, required=True, type=PACKAGE_DIR)
@click.option(
    "--bump",
    "-b",
    help=(
        "major, minor, patch, package (the package.json version) or an explicit "
        "version (default from config: minor)."
    ),
)
@click.option(
    "--independent",
    is_flag=True,
    help="Bump each package from its own published version.",
)
@click.option(
    "--registry",
    help="Registry URL (overrides config and MONOSHIP_REGISTRY).",
)
@click.option(
    "--output-root",
    "-o",
    type=click.Path(file_okay=False, path_type=Path),
    help="Directory receiving the assembled packages (default: a temporary directory).",
)
@click.option(
    "--monorepo-root",
    type=PACKAGE_DIR,
    help="Workspace root (default: discovered from the first package).",
)
@click.option(
    "--dry-run",
    is_flag=True,
    help="Assemble and resolve versions without publishing.",
)
@click.option(
    "--yes",
    "-y",
    is_flag=True,
    help="Skip confirmation prompt.",
)
@click.option(
    "--output-file",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Write the batch result as JSON to this file.",
)
@pass_context
def publish(
    ctx: MonoshipContext,
    package_dirs: Tuple[Path, ...],
    bump: Optional[str],
    independent: bool,
    registry: Optional[str],
    output_root: Optional[Path],
    monorepo_root: Optional[Path],
    dry_run: bool,
    yes: bool,
    output_file: Optional[Path],
) -> None:
    """Assemble PACKAGE_DIR... and publish them as one batch.

    Exits with status 1 when any package fails to publish; in that case
    ``latest`` was not moved for any package of the batch.
    """
    config = ctx.override(registry=registry, output_root=output_root)

    # Reject a bad bump value before anything else happens
    specifier = parse_version_specifier(bump or config.bump)

    asyncio.run(
        _publish_async(
            config,
            list(package_dirs),
            specifier=specifier,
            independent=independent,
            monorepo_root=monorepo_root,
            dry_run=dry_run,
            skip_confirm=yes,
            output_file=output_file,
        )
    )


# ---------------------------------------------------------------------------
# Async orchestration
# ---------------------------------------------------------------------------


async def _publish_async(
    config: MonoshipConfig,
    package_dirs: List[Path],
    *,
    specifier: VersionSpecifier,
    independent: bool,
    monorepo_root: Optional[Path],
    dry_run: bool,
    skip_confirm: bool,
    output_file: Optional[Path],
) -> Optional[PublishBatch]:
    """Async implementation of the publish command.

    Returns:
        The published batch, or ``None`` if the user declined.

    Raises:
        MonoshipError: Resolution, assembly or publishing failed.
    """
    # ── Step 1: Resolve and plan (no writes) ──────────────────────────
    prepared = prepare(config, package_dirs, monorepo_root=monorepo_root)

    async with HTTPClient(timeout=config.timeout, token=config.token) as http:
        registry = NpmRegistry(http, config.registry)

        # ── Step 2: Resolve versions ──────────────────────────────────
        await resolve_versions(
            prepared.units,
            specifier,
            registry,
            policy=version_policy(config, independent),
        )

        # ── Step 3: Assemble ──────────────────────────────────────────
        write_batch(prepared)
        display_units(prepared.units, title="Publish Plan")

        if dry_run:
            batch = await publish_batch(prepared.units, registry, dry_run=True)
            print_warning("Dry run mode - nothing was published")
            _write_report(output_file, batch)
            return batch

        # ── Step 4: Confirm ───────────────────────────────────────────
        if not skip_confirm and not confirm(
            f"Publish {len(prepared.units)} package(s) to {config.registry}?", default=False
        ):
            logger.info("Publish cancelled by user")
            print_warning("Publish cancelled")
            return None

        # ── Step 5: Two-phase publish ─────────────────────────────────
        try:
            batch = await publish_batch(prepared.units, registry)
        except RegistryError:
            failed = PublishBatch(units=prepared.units)
            display_units(failed.units, title="Publish Result")
            _write_report(output_file, failed)
            raise

    for unit in batch.units:
        print_success(f"Published {unit.publish_name}@{unit.version}")
    print_info(f"Resolved version(s): {', '.join(sorted({str(u.version) for u in batch}))}")
    _write_report(output_file, batch)
    return batch


def _write_report(output_file: Optional[Path], batch: PublishBatch) -> None:
    if output_file is None:
        return
    write_json_file(output_file, batch.to_json())
    logger.info("Wrote batch report to %s", output_file)
    if batch.failed_units:
        print_error(f"{len(batch.failed_units)} package(s) failed; see {output_file}")
