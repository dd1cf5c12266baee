"""Table definitions for the beacon chain data we store."""

from __future__ import annotations

from sqlalchemy import (
    BigInteger,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    MetaData,
    Table,
    Text,
)
from sqlalchemy.engine import Connection

metadata = MetaData()

beacon_states = Table(
    "beacon_states",
    metadata,
    Column("state_root", Text, primary_key=True),
    Column("slot", Integer, nullable=False),
    Column("effective_balance_sum", BigInteger, nullable=True),
    Index("beacon_states_slot_idx", "slot"),
)

beacon_blocks = Table(
    "beacon_blocks",
    metadata,
    Column("block_root", Text, primary_key=True),
    Column(
        "state_root",
        Text,
        ForeignKey("beacon_states.state_root"),
        nullable=False,
        unique=True,
    ),
    Column("parent_root", Text, nullable=False),
    Column("deposit_sum", BigInteger, nullable=False),
    Column("deposit_sum_aggregated", BigInteger, nullable=False),
    Column("block_hash", Text, nullable=True),
)

beacon_validators_balance = Table(
    "beacon_validators_balance",
    metadata,
    Column("timestamp", DateTime(timezone=True), nullable=False),
    Column(
        "state_root",
        Text,
        ForeignKey("beacon_states.state_root"),
        primary_key=True,
    ),
    Column("gwei", BigInteger, nullable=False),
)

beacon_issuance = Table(
    "beacon_issuance",
    metadata,
    Column("timestamp", DateTime(timezone=True), nullable=False),
    Column(
        "state_root",
        Text,
        ForeignKey("beacon_states.state_root"),
        primary_key=True,
    ),
    Column("gwei", BigInteger, nullable=False),
)


def create_tables(connection: Connection) -> None:
    """Create every table that does not exist yet."""
    metadata.create_all(connection, checkfirst=True)