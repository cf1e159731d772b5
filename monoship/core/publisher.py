"""Two-phase batch publishing for monoship.

Units that are released together must become visible together. The
publisher therefore splits a release into two phases:

1. **pending**: every unit is published under the ``pending`` dist-tag,
   one after another. The first failure stops the batch.
2. **promote**: only when every unit reached ``pending`` is ``latest``
   moved to the new version, unit by unit.

A failure in phase one leaves ``latest`` untouched for every unit of the
batch, including the ones that were already published as ``pending``.
Registry writes are never retried.
"""

from __future__ import annotations

from typing import Sequence

from monoship.core.registry import Registry
from monoship.utils.logger import get_logger
from monoship.exceptions import NetworkError, RegistryError
from monoship.constants import LATEST_TAG, PENDING_TAG
from monoship.models.publish import PublishBatch, PublishState, PublishUnit

logger = get_logger("publisher")

__all__ = ["publish_batch"]


async def publish_batch(
    units: Sequence[PublishUnit],
    registry: Registry,
    *,
    dry_run: bool = False,
) -> PublishBatch:
    """Publish ``units`` as one all-or-nothing batch.

    Args:
        units: Assembled units with resolved versions, in publish order.
        registry: Registry to publish to.
        dry_run: Log what would be published without contacting the
            registry.

    Returns:
        The completed :class:`PublishBatch` (``promoted`` is True unless
        ``dry_run``).

    Raises:
        RegistryError: A unit failed to publish (``latest`` was not moved
            for any unit), or a ``latest`` move failed.
    """
    batch = PublishBatch(units=list(units), dry_run=dry_run)

    for unit in batch.units:
        if unit.version is None:
            raise ValueError(f"No version resolved for {unit.publish_name}")
        if unit.state is not PublishState.UNPUBLISHED:
            raise ValueError(f"{unit.publish_name} was already submitted ({unit.state.value})")

    if dry_run:
        for unit in batch.units:
            logger.info("[dry-run] Would publish %s@%s", unit.publish_name, unit.version)
        return batch

    # Phase one: publish everything as pending.
    for unit in batch.units:
        try:
            await registry.publish(unit, PENDING_TAG)
        except NetworkError as exc:
            unit.mark_failed(exc.message)
            pending = [other.publish_name for other in batch.pending_units]
            logger.error(
                "Publishing %s@%s failed; %s left untouched",
                unit.publish_name,
                unit.version,
                LATEST_TAG,
            )
            error = RegistryError(
                f'Publishing "{unit.publish_name}@{unit.version}" failed: {exc.message}. '
                f'"{LATEST_TAG}" was not moved for any package of the batch',
                package_name=unit.publish_name,
                operation="publish",
                url=exc.url,
                status_code=exc.status_code,
            )
            if pending:
                error.details["pending"] = ", ".join(pending)
            raise error from exc
        unit.mark_pending()
        logger.debug("%s@%s is pending", unit.publish_name, unit.version)

    # Phase two: promote.
    for unit in batch.units:
        assert unit.version is not None
        await registry.move_tag(unit.publish_name, LATEST_TAG, unit.version)
        unit.mark_latest()

    batch.promoted = True
    logger.info("Promoted %d package(s) to %s", len(batch), LATEST_TAG)
    return batch
