"""Building blocks for syncing beacon states: slot ranges, head events and sync data."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Iterator, Protocol

from sqlalchemy.engine import Connection

from ethanalysis.node import (
    BeaconBlock,
    BeaconHeaderSignedEnvelope,
    StateRoot,
    ValidatorBalance,
)
from ethanalysis.slot import Slot, slot_from_string
from ethanalysis.states import get_state_root_by_slot

logger = logging.getLogger(__name__)

BLOCK_LAG_LIMIT = timedelta(minutes=5)


class _SyncSource(Protocol):
    def get_header_by_slot(self, slot: Slot) -> BeaconHeaderSignedEnvelope | None: ...

    def get_state_root_by_slot(self, slot: Slot) -> StateRoot | None: ...

    def get_block_by_block_root(self, block_root: str) -> BeaconBlock | None: ...

    def get_validator_balances(self, state_root: str) -> list[ValidatorBalance] | None: ...

    def get_last_header(self) -> BeaconHeaderSignedEnvelope: ...


class SlotReorgedError(Exception):
    """Raised when a slot's state root changed on-chain while we were syncing it."""

    def __init__(self, state_root: StateRoot) -> None:
        super().__init__(
            "slot reorged during gather_sync_data phase, "
            f"can't continue sync of current state_root {state_root}"
        )
        self.state_root = state_root


@dataclass(frozen=True)
class SlotRange:
    """An inclusive range of slots."""

    greater_than_or_equal: Slot
    less_than_or_equal: Slot

    def __post_init__(self) -> None:
        if self.greater_than_or_equal > self.less_than_or_equal:
            raise ValueError("tried to create slot range with negative range")

    def __iter__(self) -> Iterator[Slot]:
        for number in range(self.greater_than_or_equal.number, self.less_than_or_equal.number + 1):
            yield Slot(number)


@dataclass(frozen=True)
class HeadEvent:
    """A new head of the chain as announced by the node's event stream."""

    slot: Slot
    block: str
    state: str

    @classmethod
    def from_json(cls, data: str | dict[str, Any]) -> HeadEvent:
        """Decode a head event, given as JSON text or an already parsed object."""
        if isinstance(data, str):
            data = json.loads(data)
        return cls(slot=slot_from_string(data["slot"]), block=data["block"], state=data["state"])

    @classmethod
    def from_header(cls, envelope: BeaconHeaderSignedEnvelope) -> HeadEvent:
        """Describe a header as the head event announcing it."""
        return cls(slot=envelope.slot, block=envelope.root, state=envelope.state_root)


@dataclass(frozen=True)
class SyncData:
    """Everything fetched from the node to store one slot."""

    header_block_tuple: tuple[BeaconHeaderSignedEnvelope, BeaconBlock] | None
    validator_balances: list[ValidatorBalance] | None


def slots_to_emit(last_slot: Slot, head_slot: Slot) -> list[Slot]:
    """Return the slots to sync on receiving a new head, filling any forward gap first."""
    slots: list[Slot] = []
    if head_slot > last_slot and head_slot != last_slot + 1:
        logger.debug("head slot %s is more than one ahead of last_slot %s", head_slot, last_slot)
        slots.extend(SlotRange(last_slot + 1, head_slot - 1))
    slots.append(head_slot)
    return slots


def gather_sync_data(
    beacon_node: _SyncSource, state_root: StateRoot, slot: Slot, sync_lag: timedelta
) -> SyncData:
    """Fetch the header, block and validator balances needed to store a slot.

    The node does not say whether a header is missing because the slot was missed or because
    our state root was dropped, so the state root is checked again after fetching the header.
    When the sync lags too far behind the head, validator balances are skipped.
    """
    header = beacon_node.get_header_by_slot(slot)

    state_root_check = beacon_node.get_state_root_by_slot(slot)
    if state_root_check is None:
        raise LookupError(f"expect state_root to be available for currently syncing slot {slot}")
    if state_root != state_root_check:
        raise SlotReorgedError(state_root)

    header_block_tuple = None
    if header is not None:
        block = beacon_node.get_block_by_block_root(header.root)
        if block is None:
            raise LookupError(
                f"expect a block to be available for currently syncing block_root {header.root}"
            )
        header_block_tuple = (header, block)

    if sync_lag > BLOCK_LAG_LIMIT:
        logger.warning(
            "block lag %s over limit, skipping get_validator_balances", sync_lag
        )
        validator_balances = None
    else:
        validator_balances = beacon_node.get_validator_balances(state_root)
        if validator_balances is None:
            raise LookupError(
                f"expect validator balances to exist for given state_root {state_root}"
            )

    return SyncData(header_block_tuple=header_block_tuple, validator_balances=validator_balances)


def get_sync_lag(beacon_node: _SyncSource, syncing_slot: Slot) -> timedelta:
    """Return how far the slot being synced is behind the head of the chain."""
    last_on_chain_slot = beacon_node.get_last_header().slot
    return last_on_chain_slot.date_time() - syncing_slot.date_time()


def _on_chain_state_root(beacon_node: _SyncSource, slot: Slot) -> StateRoot | None:
    header = beacon_node.get_header_by_slot(slot)
    return None if header is None else header.state_root


def find_last_matching_slot(
    connection: Connection, beacon_node: _SyncSource, starting_candidate: Slot
) -> Slot:
    """Search backwards from the candidate for a slot whose stored and on-chain roots match."""
    candidate_slot = starting_candidate
    while True:
        stored_state_root = get_state_root_by_slot(connection, candidate_slot)
        on_chain_state_root = _on_chain_state_root(beacon_node, candidate_slot)
        if stored_state_root is not None and stored_state_root == on_chain_state_root:
            logger.debug(
                "stored and on-chain state_root match: %s", stored_state_root
            )
            break
        candidate_slot = candidate_slot - 1

    logger.debug("found a state match between stored and on-chain at slot %s", candidate_slot)
    return candidate_slot