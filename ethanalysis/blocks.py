"""Storage and retrieval of beacon blocks."""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy import delete, exists, insert, select, update
from sqlalchemy.engine import Connection, Row

from ethanalysis.node import BeaconBlock, BeaconHeaderSignedEnvelope
from ethanalysis.schema import beacon_blocks, beacon_states
from ethanalysis.slot import Slot

GENESIS_PARENT_ROOT = "0x0000000000000000000000000000000000000000000000000000000000000000"

_I64_MIN = -(2**63)
_I64_MAX = 2**63 - 1


def _to_i64(gwei: int) -> int:
    if not _I64_MIN <= gwei <= _I64_MAX:
        raise OverflowError(f"gwei amount {gwei} does not fit in 64 bits")
    return gwei


@dataclass(frozen=True)
class DbBlock:
    """A beacon block as stored in the database."""

    block_root: str
    deposit_sum: int
    deposit_sum_aggregated: int
    parent_root: str
    block_hash: str | None
    state_root: str


def _block_from_row(row: Row) -> DbBlock:
    return DbBlock(
        block_root=row.block_root,
        deposit_sum=row.deposit_sum,
        deposit_sum_aggregated=row.deposit_sum_aggregated,
        parent_root=row.parent_root,
        block_hash=row.block_hash,
        state_root=row.state_root,
    )


def _blocks_with_slots():
    return select(beacon_blocks).join(
        beacon_states, beacon_blocks.c.state_root == beacon_states.c.state_root
    )


def get_deposit_sum_from_block_root(connection: Connection, block_root: str) -> int:
    """Return the aggregated deposit sum of a stored block; raise NoResultFound if absent."""
    return connection.execute(
        select(beacon_blocks.c.deposit_sum_aggregated).where(
            beacon_blocks.c.block_root == block_root
        )
    ).scalar_one()


def get_is_hash_known(connection: Connection, block_root: str) -> bool:
    """True when the block root is stored or is the genesis parent root."""
    if block_root == GENESIS_PARENT_ROOT:
        return True
    return bool(
        connection.execute(
            select(exists().where(beacon_blocks.c.block_root == block_root))
        ).scalar_one()
    )


def store_block(
    connection: Connection,
    block: BeaconBlock,
    deposit_sum: int,
    deposit_sum_aggregated: int,
    header: BeaconHeaderSignedEnvelope,
) -> None:
    """Store a block with its deposit sums."""
    connection.execute(
        insert(beacon_blocks).values(
            block_hash=block.block_hash,
            block_root=header.root,
            deposit_sum=_to_i64(deposit_sum),
            deposit_sum_aggregated=_to_i64(deposit_sum_aggregated),
            parent_root=header.parent_root,
            state_root=header.state_root,
        )
    )


def _state_roots_where(condition):
    return select(beacon_states.c.state_root).where(condition)


def delete_blocks(connection: Connection, greater_than_or_equal: Slot) -> None:
    """Delete every block whose state is at or after the given slot."""
    connection.execute(
        delete(beacon_blocks).where(
            beacon_blocks.c.state_root.in_(
                _state_roots_where(beacon_states.c.slot >= int(greater_than_or_equal))
            )
        )
    )


def delete_block(connection: Connection, slot: Slot) -> None:
    """Delete the block whose state is at exactly the given slot."""
    connection.execute(
        delete(beacon_blocks).where(
            beacon_blocks.c.state_root.in_(
                _state_roots_where(beacon_states.c.slot == int(slot))
            )
        )
    )


def get_block_before_slot(connection: Connection, less_than: Slot) -> DbBlock:
    """Return the last block before a slot; raise NoResultFound if there is none."""
    row = connection.execute(
        _blocks_with_slots()
        .where(beacon_states.c.slot < int(less_than))
        .order_by(beacon_states.c.slot.desc())
        .limit(1)
    ).one()
    return _block_from_row(row)


def update_block_hash(connection: Connection, block_root: str, block_hash: str) -> None:
    """Set the execution block hash of a stored block."""
    connection.execute(
        update(beacon_blocks)
        .where(beacon_blocks.c.block_root == block_root)
        .values(block_hash=block_hash)
    )


def get_block_by_slot(connection: Connection, slot: Slot) -> DbBlock | None:
    """Return the block at a slot, or None when the slot has no stored block."""
    row = connection.execute(
        _blocks_with_slots().where(beacon_states.c.slot == int(slot))
    ).one_or_none()
    return None if row is None else _block_from_row(row)