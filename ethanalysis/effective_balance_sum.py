"""Sums of validator effective balances per beacon state."""

from __future__ import annotations

from typing import Protocol

from sqlalchemy import select, update
from sqlalchemy.engine import Connection

from ethanalysis.node import StateRoot, Validator
from ethanalysis.schema import beacon_states

_I64_MIN = -(2**63)
_I64_MAX = 2**63 - 1


class _ValidatorSource(Protocol):
    def get_validators_by_state(self, state_root: str) -> list[Validator]: ...


def get_effective_balance_sum(beacon_node: _ValidatorSource, state_root: StateRoot) -> int:
    """Sum the effective balances of all validators at a state, in Gwei."""
    validators = beacon_node.get_validators_by_state(state_root)
    return sum(validator.effective_balance for validator in validators)


def get_stored_effective_balance_sum(connection: Connection, state_root: StateRoot) -> int | None:
    """Return the stored sum for a state, or None when none was stored.

    The state itself must be stored; NoResultFound is raised otherwise.
    """
    return connection.execute(
        select(beacon_states.c.effective_balance_sum).where(
            beacon_states.c.state_root == state_root
        )
    ).scalar_one()


def get_last_stored_effective_balance_sum(connection: Connection) -> int:
    """Return the sum stored for the highest slot that has one; raise NoResultFound if none."""
    return connection.execute(
        select(beacon_states.c.effective_balance_sum)
        .where(beacon_states.c.effective_balance_sum.is_not(None))
        .order_by(beacon_states.c.slot.desc())
        .limit(1)
    ).scalar_one()


def store_effective_balance_sum(
    connection: Connection, effective_balance_sum: int, state_root: StateRoot
) -> None:
    """Store the effective balance sum on a stored state."""
    if not _I64_MIN <= effective_balance_sum <= _I64_MAX:
        raise OverflowError(
            f"gwei amount {effective_balance_sum} does not fit in 64 bits"
        )
    connection.execute(
        update(beacon_states)
        .where(beacon_states.c.state_root == state_root)
        .values(effective_balance_sum=effective_balance_sum)
    )