from datetime import timedelta

import pytest
from sqlalchemy import create_engine

from ethanalysis.node import BeaconBlock, BeaconHeader, BeaconHeaderSignedEnvelope, ValidatorBalance
from ethanalysis.schema import create_tables
from ethanalysis.slot import Slot
from ethanalysis.states import store_state
from ethanalysis.sync import (
    BLOCK_LAG_LIMIT,
    HeadEvent,
    SlotRange,
    SlotReorgedError,
    find_last_matching_slot,
    gather_sync_data,
    get_sync_lag,
    slots_to_emit,
)

GENESIS_PARENT = "0x" + "0" * 64


def make_header(test_id, slot):
    return BeaconHeaderSignedEnvelope(
        root=f"0x{test_id}_block_root",
        header=BeaconHeader(
            slot=Slot(slot),
            parent_root=GENESIS_PARENT,
            state_root=f"0x{test_id}_state_root",
        ),
    )


class FakeNode:
    def __init__(self, headers=(), state_roots=None, blocks=None, balances=None, last=None):
        self.headers = {h.slot: h for h in headers}
        self.state_roots = state_roots or {}
        self.blocks = blocks or {}
        self.balances = balances or {}
        self.last = last
        self.balance_calls = 0

    def get_header_by_slot(self, slot):
        return self.headers.get(slot)

    def get_state_root_by_slot(self, slot):
        return self.state_roots.get(slot)

    def get_block_by_block_root(self, block_root):
        return self.blocks.get(block_root)

    def get_validator_balances(self, state_root):
        self.balance_calls += 1
        return self.balances.get(state_root)

    def get_last_header(self):
        return self.last


@pytest.fixture
def connection():
    engine = create_engine("sqlite://")
    with engine.begin() as conn:
        create_tables(conn)
        yield conn


def test_slot_range_iterable():
    assert list(SlotRange(Slot(1), Slot(4))) == [Slot(1), Slot(2), Slot(3), Slot(4)]


def test_slot_range_single():
    assert list(SlotRange(Slot(7), Slot(7))) == [Slot(7)]


def test_slot_range_negative_raises():
    with pytest.raises(ValueError):
        SlotRange(Slot(5), Slot(4))


def test_head_event_from_json_text():
    event = HeadEvent.from_json('{"slot": "4", "block": "0xblock", "state": "0xstate"}')
    assert event == HeadEvent(slot=Slot(4), block="0xblock", state="0xstate")


def test_head_event_from_header():
    header = make_header("head", 12)
    assert HeadEvent.from_header(header) == HeadEvent(
        slot=Slot(12), block="0xhead_block_root", state="0xhead_state_root"
    )


def test_slots_to_emit_next_slot():
    assert slots_to_emit(Slot(10), Slot(11)) == [Slot(11)]


def test_slots_to_emit_fills_gap():
    assert slots_to_emit(Slot(10), Slot(14)) == [Slot(11), Slot(12), Slot(13), Slot(14)]


def test_slots_to_emit_older_head():
    assert slots_to_emit(Slot(10), Slot(8)) == [Slot(8)]


def test_get_sync_lag():
    node = FakeNode(last=make_header("last", 10))
    assert get_sync_lag(node, Slot(5)) == timedelta(seconds=60)


def test_gather_sync_data_with_block_and_balances():
    header = make_header("gather", 3)
    block = BeaconBlock(
        deposits=[], parent_root=GENESIS_PARENT, slot=Slot(3), state_root=header.state_root
    )
    balances = [ValidatorBalance(10), ValidatorBalance(20)]
    node = FakeNode(
        headers=[header],
        state_roots={Slot(3): header.state_root},
        blocks={header.root: block},
        balances={header.state_root: balances},
    )
    data = gather_sync_data(node, header.state_root, Slot(3), timedelta(0))
    assert data.header_block_tuple == (header, block)
    assert data.validator_balances == balances


def test_gather_sync_data_missed_slot_and_lag_skips_balances():
    node = FakeNode(state_roots={Slot(3): "0xroot"})
    data = gather_sync_data(node, "0xroot", Slot(3), BLOCK_LAG_LIMIT + timedelta(seconds=1))
    assert data.header_block_tuple is None
    assert data.validator_balances is None
    assert node.balance_calls == 0


def test_gather_sync_data_reorg_raises():
    node = FakeNode(state_roots={Slot(3): "0xother"})
    with pytest.raises(SlotReorgedError):
        gather_sync_data(node, "0xroot", Slot(3), timedelta(0))


def test_gather_sync_data_missing_block_raises():
    header = make_header("noblock", 3)
    node = FakeNode(headers=[header], state_roots={Slot(3): header.state_root})
    with pytest.raises(LookupError):
        gather_sync_data(node, header.state_root, Slot(3), timedelta(0))


def test_find_last_matching_slot(connection):
    store_state(connection, "0xa", Slot(0))
    store_state(connection, "0xb", Slot(1))
    store_state(connection, "0xstale", Slot(2))
    headers = [
        BeaconHeaderSignedEnvelope("0xr0", BeaconHeader(Slot(0), GENESIS_PARENT, "0xa")),
        BeaconHeaderSignedEnvelope("0xr1", BeaconHeader(Slot(1), "0xr0", "0xb")),
        BeaconHeaderSignedEnvelope("0xr2", BeaconHeader(Slot(2), "0xr1", "0xnew")),
    ]
    node = FakeNode(headers=headers)
    assert find_last_matching_slot(connection, node, Slot(2)) == Slot(1)


def test_find_last_matching_slot_immediate(connection):
    store_state(connection, "0xa", Slot(0))
    node = FakeNode(
        headers=[BeaconHeaderSignedEnvelope("0xr0", BeaconHeader(Slot(0), GENESIS_PARENT, "0xa"))]
    )
    assert find_last_matching_slot(connection, node, Slot(0)) == Slot(0)