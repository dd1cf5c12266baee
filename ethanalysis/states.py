"""Storage and retrieval of beacon states."""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy import delete, insert, select
from sqlalchemy.engine import Connection

from ethanalysis.schema import beacon_states
from ethanalysis.slot import Slot


@dataclass(frozen=True)
class BeaconState:
    """A stored beacon state: a slot and its state root."""

    slot: Slot
    state_root: str


def get_last_state(connection: Connection) -> BeaconState | None:
    """Return the state with the highest slot, or None when none is stored."""
    row = connection.execute(
        select(beacon_states.c.state_root, beacon_states.c.slot)
        .order_by(beacon_states.c.slot.desc())
        .limit(1)
    ).first()
    if row is None:
        return None
    return BeaconState(slot=Slot(row.slot), state_root=row.state_root)


def store_state(connection: Connection, state_root: str, slot: Slot) -> None:
    """Store a state root for a slot."""
    connection.execute(
        insert(beacon_states).values(state_root=state_root, slot=int(slot))
    )


def get_state_root_by_slot(connection: Connection, slot: Slot) -> str | None:
    """Return the state root stored for a slot, or None."""
    return connection.execute(
        select(beacon_states.c.state_root).where(beacon_states.c.slot == int(slot))
    ).scalar_one_or_none()


def delete_states(connection: Connection, greater_than_or_equal: Slot) -> None:
    """Delete every state at or after the given slot."""
    connection.execute(
        delete(beacon_states).where(beacon_states.c.slot >= int(greater_than_or_equal))
    )


def delete_state(connection: Connection, slot: Slot) -> None:
    """Delete the state at exactly the given slot."""
    connection.execute(delete(beacon_states).where(beacon_states.c.slot == int(slot)))