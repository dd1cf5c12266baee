"""Deposit sums of beacon blocks."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from sqlalchemy import select
from sqlalchemy.engine import Connection

from ethanalysis import blocks
from ethanalysis.node import BeaconBlock
from ethanalysis.schema import beacon_blocks
from ethanalysis.slot import Slot


@dataclass(frozen=True)
class BeaconDepositsSum:
    """The aggregated deposits sum at a slot, in Gwei."""

    deposits_sum: int
    slot: Slot

    def to_json(self) -> dict[str, Any]:
        return {"depositsSum": self.deposits_sum, "slot": self.slot.number}

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> BeaconDepositsSum:
        return cls(deposits_sum=int(data["depositsSum"]), slot=Slot(int(data["slot"])))


def get_deposit_sum_from_block(block: BeaconBlock) -> int:
    """Sum the deposits contained in a block."""
    return sum(block.deposits)


def get_deposit_sum_aggregated(connection: Connection, block: BeaconBlock) -> int:
    """Return all deposits up to and including this block."""
    if block.slot == Slot.GENESIS:
        parent_deposit_sum_aggregated = 0
    else:
        parent_deposit_sum_aggregated = blocks.get_deposit_sum_from_block_root(
            connection, block.parent_root
        )
    return parent_deposit_sum_aggregated + get_deposit_sum_from_block(block)


def get_deposits_sum_by_state_root(connection: Connection, state_root: str) -> int:
    """Return the aggregated deposit sum of the block with this state root.

    Raises NoResultFound when no such block is stored.
    """
    return connection.execute(
        select(beacon_blocks.c.deposit_sum_aggregated).where(
            beacon_blocks.c.state_root == state_root
        )
    ).scalar_one()