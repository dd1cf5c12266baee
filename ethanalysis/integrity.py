"""Checks on stored beacon data for missing slots and missing parent blocks."""

from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.engine import Connection

from ethanalysis.schema import beacon_blocks, beacon_states

logger = logging.getLogger(__name__)


class BeaconStateGapError(Exception):
    """Raised when stored beacon states or blocks have a gap."""


def check_beacon_state_gaps(connection: Connection) -> tuple[int, int]:
    """Check that stored slots are contiguous and every block's parent was seen before it.

    Returns the number of states and blocks checked; raises BeaconStateGapError on a gap.
    """
    logger.info("checking for gaps in beacon states")

    states_checked = 0
    last_slot: int | None = None
    for slot in connection.execute(
        select(beacon_states.c.slot).order_by(beacon_states.c.slot.asc())
    ).scalars():
        if last_slot is not None and last_slot != slot - 1:
            raise BeaconStateGapError(f"last slot: {last_slot}, current slot: {slot}")
        last_slot = slot
        states_checked += 1

    logger.info("done checking beacon state slots for gaps")

    rows = connection.execute(
        select(beacon_blocks.c.block_root, beacon_blocks.c.parent_root)
        .select_from(
            beacon_states.join(
                beacon_blocks, beacon_states.c.state_root == beacon_blocks.c.state_root
            )
        )
        .order_by(beacon_states.c.slot.asc())
    )

    hashes: set[str] = set()
    blocks_checked = 0
    for block_root, parent_root in rows:
        hashes.add(block_root)
        if parent_root not in hashes:
            raise BeaconStateGapError(
                f'block_root {block_root}, parent_root "{parent_root}", missing'
            )
        blocks_checked += 1

    logger.info("done checking beacon blocks hashes for gaps")

    return states_checked, blocks_checked