"""Issuance on the beacon chain: validator balances minus deposits."""

from __future__ import annotations

import abc
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

from sqlalchemy import delete, insert, select
from sqlalchemy.engine import Connection
from sqlalchemy.exc import NoResultFound

from ethanalysis.balances import GweiInTime, _as_utc, _gwei_by_start_of_day
from ethanalysis.schema import beacon_issuance, beacon_states
from ethanalysis.slot import Slot

SLOTS_PER_MINUTE = 5
MINUTES_PER_HOUR = 60
HOURS_PER_DAY = 24
DAYS_PER_WEEK = 7
SLOTS_PER_WEEK = float(SLOTS_PER_MINUTE * MINUTES_PER_HOUR * HOURS_PER_DAY * DAYS_PER_WEEK)

_DAY7_MAX_DISTANCE_SECONDS = 86400

_I64_MIN = -(2**63)
_I64_MAX = 2**63 - 1


def _to_i64(gwei: int) -> int:
    if not _I64_MIN <= gwei <= _I64_MAX:
        raise OverflowError(f"gwei amount {gwei} does not fit in 64 bits")
    return gwei


def store_issuance(connection: Connection, state_root: str, slot: Slot, gwei: int) -> None:
    """Store the issuance up to a state."""
    connection.execute(
        insert(beacon_issuance).values(
            timestamp=slot.date_time(),
            state_root=state_root,
            gwei=_to_i64(gwei),
        )
    )


def calc_issuance(validator_balances_sum_gwei: int, deposit_sum_aggregated: int) -> int:
    """Issuance is what validators hold beyond what was deposited."""
    return validator_balances_sum_gwei - deposit_sum_aggregated


def get_issuance_by_start_of_day(connection: Connection) -> list[GweiInTime]:
    """Return the first stored issuance of each day, stamped at the start of the day."""
    return _gwei_by_start_of_day(connection, beacon_issuance)


def get_current_issuance(connection: Connection) -> int:
    """Return the most recent issuance; raise NoResultFound when none is stored."""
    return connection.execute(
        select(beacon_issuance.c.gwei).order_by(beacon_issuance.c.timestamp.desc()).limit(1)
    ).scalar_one()


def _state_roots_where(condition):
    return select(beacon_states.c.state_root).where(condition)


def delete_issuances(connection: Connection, greater_than_or_equal: Slot) -> None:
    """Delete the issuance of every state at or after the given slot."""
    connection.execute(
        delete(beacon_issuance).where(
            beacon_issuance.c.state_root.in_(
                _state_roots_where(beacon_states.c.slot >= int(greater_than_or_equal))
            )
        )
    )


def delete_issuance(connection: Connection, slot: Slot) -> None:
    """Delete the issuance of the state at exactly the given slot."""
    connection.execute(
        delete(beacon_issuance).where(
            beacon_issuance.c.state_root.in_(
                _state_roots_where(beacon_states.c.slot == int(slot))
            )
        )
    )


def get_day7_ago_issuance(connection: Connection, now: datetime | None = None) -> int:
    """Return the issuance stored closest to seven days before now, within one day of it.

    Raises NoResultFound when nothing is stored within that day.
    """
    now = datetime.now(timezone.utc) if now is None else _as_utc(now)
    target = now - timedelta(days=7)
    window = timedelta(seconds=_DAY7_MAX_DISTANCE_SECONDS)
    rows = connection.execute(
        select(beacon_issuance.c.timestamp, beacon_issuance.c.gwei).where(
            beacon_issuance.c.timestamp.between(target - window, target + window)
        )
    ).all()

    candidates = [
        (abs((_as_utc(timestamp) - target).total_seconds()), gwei) for timestamp, gwei in rows
    ]
    candidates = [c for c in candidates if c[0] <= _DAY7_MAX_DISTANCE_SECONDS]
    if not candidates:
        raise NoResultFound("no issuance stored within a day of seven days ago")
    return min(candidates, key=lambda candidate: candidate[0])[1]


class IssuanceStore(abc.ABC):
    """Source of the current and week-old issuance."""

    @abc.abstractmethod
    def get_current_issuance(self) -> int: ...

    @abc.abstractmethod
    def get_day7_ago_issuance(self) -> int: ...


class IssuanceStoreDb(IssuanceStore):
    """An issuance store backed by the database."""

    def __init__(self, connection: Connection, now: datetime | None = None) -> None:
        self.connection = connection
        self.now = now

    def get_current_issuance(self) -> int:
        return get_current_issuance(self.connection)

    def get_day7_ago_issuance(self) -> int:
        return get_day7_ago_issuance(self.connection, self.now)


def get_last_week_issuance(issuance_store: IssuanceStore) -> int:
    """Return the issuance over the past week."""
    return issuance_store.get_current_issuance() - issuance_store.get_day7_ago_issuance()


def get_issuance_per_slot_estimate(issuance_store: IssuanceStore) -> float:
    """Estimate issuance per slot from last week's issuance."""
    return get_last_week_issuance(issuance_store) / SLOTS_PER_WEEK


@dataclass(frozen=True)
class IssuanceEstimate:
    """An estimate of issuance per slot, as of a slot."""

    slot: Slot
    timestamp: datetime
    issuance_per_slot_gwei: float

    def to_json(self) -> dict[str, Any]:
        timestamp = _as_utc(self.timestamp).isoformat().replace("+00:00", "Z")
        return {
            "slot": self.slot.number,
            "timestamp": timestamp,
            "issuance_per_slot_gwei": self.issuance_per_slot_gwei,
        }