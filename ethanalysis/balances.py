"""Validator balance sums per beacon state, and backfilling them from a beacon node."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, time, timezone
from typing import Any, Iterable, Protocol

from sqlalchemy import Table, delete, insert, select
from sqlalchemy.engine import Connection

from ethanalysis.node import Validator, ValidatorBalance
from ethanalysis.schema import beacon_states, beacon_validators_balance
from ethanalysis.slot import FIRST_POST_LONDON_SLOT, Slot
from ethanalysis.states import get_last_state

logger = logging.getLogger(__name__)

_I64_MIN = -(2**63)
_I64_MAX = 2**63 - 1


class _ValidatorSource(Protocol):
    def get_validators_by_state(self, state_root: str) -> list[Validator]: ...


class _BalanceSource(Protocol):
    def get_validator_balances(self, state_root: str) -> list[ValidatorBalance] | None: ...


@dataclass(frozen=True)
class GweiInTime:
    """A Gwei amount at a unix timestamp (seconds)."""

    t: int
    v: int

    def to_json(self) -> dict[str, int]:
        return {"t": self.t, "v": self.v}


@dataclass(frozen=True)
class BeaconBalancesSum:
    """The sum of all validator balances at a slot, in Gwei."""

    slot: Slot
    balances_sum: int

    def to_json(self) -> dict[str, Any]:
        return {"slot": self.slot.number, "balancesSum": self.balances_sum}

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> BeaconBalancesSum:
        return cls(slot=Slot(int(data["slot"])), balances_sum=int(data["balancesSum"]))


def _to_i64(gwei: int) -> int:
    if not _I64_MIN <= gwei <= _I64_MAX:
        raise OverflowError(f"gwei amount {gwei} does not fit in 64 bits")
    return gwei


def _as_utc(timestamp: datetime) -> datetime:
    if timestamp.tzinfo is None:
        return timestamp.replace(tzinfo=timezone.utc)
    return timestamp.astimezone(timezone.utc)


def _gwei_by_start_of_day(connection: Connection, table: Table) -> list[GweiInTime]:
    """Return the earliest amount of each UTC day in table, stamped at the start of that day."""
    rows = connection.execute(
        select(table.c.timestamp, table.c.gwei).order_by(table.c.timestamp.asc())
    )
    result: list[GweiInTime] = []
    last_day: datetime | None = None
    for timestamp, gwei in rows:
        day = datetime.combine(_as_utc(timestamp).date(), time(), tzinfo=timezone.utc)
        if day != last_day:
            result.append(GweiInTime(t=int(day.timestamp()), v=gwei))
            last_day = day
    return result


def sum_validator_balances(validator_balances: Iterable[ValidatorBalance]) -> int:
    """Sum the balances of the given validators."""
    return sum(validator_balance.balance for validator_balance in validator_balances)


def store_validators_balance(
    connection: Connection, state_root: str, slot: Slot, gwei: int
) -> None:
    """Store the validator balances sum for a state."""
    connection.execute(
        insert(beacon_validators_balance).values(
            timestamp=slot.date_time(),
            state_root=state_root,
            gwei=_to_i64(gwei),
        )
    )


def get_last_effective_balance_sum(connection: Connection, beacon_node: _ValidatorSource) -> int:
    """Sum the effective balances of all validators at the last stored state."""
    last_state = get_last_state(connection)
    if last_state is None:
        raise LookupError(
            "can't calculate a last effective balance with an empty beacon_states table"
        )
    validators = beacon_node.get_validators_by_state(last_state.state_root)
    return sum(validator.effective_balance for validator in validators)


def get_validator_balances_by_start_of_day(connection: Connection) -> list[GweiInTime]:
    """Return the first stored balances sum of each day, stamped at the start of the day."""
    return _gwei_by_start_of_day(connection, beacon_validators_balance)


def _state_roots_where(condition):
    return select(beacon_states.c.state_root).where(condition)


def delete_validator_sums(connection: Connection, greater_than_or_equal: Slot) -> None:
    """Delete the balance sums of every state at or after the given slot."""
    connection.execute(
        delete(beacon_validators_balance).where(
            beacon_validators_balance.c.state_root.in_(
                _state_roots_where(beacon_states.c.slot >= int(greater_than_or_equal))
            )
        )
    )


def delete_validator_sum(connection: Connection, slot: Slot) -> None:
    """Delete the balance sum of the state at exactly the given slot."""
    connection.execute(
        delete(beacon_validators_balance).where(
            beacon_validators_balance.c.state_root.in_(
                _state_roots_where(beacon_states.c.slot == int(slot))
            )
        )
    )


def get_balances_by_state_root(connection: Connection, state_root: str) -> int | None:
    """Return the balances sum stored for a state root, or None."""
    return connection.execute(
        select(beacon_validators_balance.c.gwei).where(
            beacon_validators_balance.c.state_root == state_root
        )
    ).scalar_one_or_none()


def backfill_balances(
    connection: Connection, beacon_node: _BalanceSource, daily_only: bool
) -> int:
    """Fetch and store balance sums for post-London states that lack one.

    Works from the newest slot backwards. With daily_only, only the first slot of each day is
    filled. Returns the number of states filled.
    """
    rows = connection.execute(
        select(beacon_states.c.state_root, beacon_states.c.slot)
        .select_from(
            beacon_states.outerjoin(
                beacon_validators_balance,
                beacon_states.c.state_root == beacon_validators_balance.c.state_root,
            )
        )
        .where(beacon_states.c.slot >= int(FIRST_POST_LONDON_SLOT))
        .where(beacon_validators_balance.c.state_root.is_(None))
        .order_by(beacon_states.c.slot.desc())
    ).all()

    todo = [
        (row.state_root, Slot(row.slot))
        for row in rows
        if not daily_only or Slot(row.slot).is_first_of_day()
    ]

    for done, (state_root, slot) in enumerate(todo, start=1):
        logger.debug("getting validator balances for slot %s", slot)
        validator_balances = beacon_node.get_validator_balances(state_root)
        if validator_balances is None:
            raise LookupError(f"expect validator balances to exist for historic state {state_root}")
        store_validators_balance(
            connection, state_root, slot, sum_validator_balances(validator_balances)
        )
        logger.info("backfill-beacon-balances %d/%d", done, len(todo))

    return len(todo)