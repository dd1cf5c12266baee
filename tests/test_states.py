import pytest
from sqlalchemy import create_engine

from ethanalysis.schema import create_tables
from ethanalysis.slot import Slot
from ethanalysis.states import (
    BeaconState,
    delete_state,
    delete_states,
    get_last_state,
    get_state_root_by_slot,
    store_state,
)


@pytest.fixture
def connection():
    engine = create_engine("sqlite://")
    with engine.connect() as conn:
        create_tables(conn)
        yield conn
    engine.dispose()


def test_store_state(connection):
    store_state(connection, "0xstate_root", Slot(0))
    state = get_last_state(connection)
    assert state == BeaconState(slot=Slot(0), state_root="0xstate_root")


def test_get_last_state(connection):
    store_state(connection, "0xstate_root_1", Slot(0))
    store_state(connection, "0xstate_root_2", Slot(1))
    state = get_last_state(connection)
    assert state == BeaconState(slot=Slot(1), state_root="0xstate_root_2")


def test_get_last_state_empty(connection):
    assert get_last_state(connection) is None


def test_delete_states(connection):
    store_state(connection, "0xstate_root", Slot(0))
    assert get_last_state(connection) == BeaconState(Slot(0), "0xstate_root")
    delete_states(connection, Slot(0))
    assert get_last_state(connection) is None


def test_delete_states_keeps_earlier(connection):
    store_state(connection, "0xa", Slot(0))
    store_state(connection, "0xb", Slot(1))
    store_state(connection, "0xc", Slot(2))
    delete_states(connection, Slot(1))
    assert get_last_state(connection) == BeaconState(Slot(0), "0xa")


def test_delete_state_only_that_slot(connection):
    store_state(connection, "0xa", Slot(0))
    store_state(connection, "0xb", Slot(1))
    store_state(connection, "0xc", Slot(2))
    delete_state(connection, Slot(1))
    assert get_state_root_by_slot(connection, Slot(1)) is None
    assert get_state_root_by_slot(connection, Slot(0)) == "0xa"
    assert get_state_root_by_slot(connection, Slot(2)) == "0xc"


def test_get_state_root_by_slot(connection):
    store_state(connection, "0xtest", Slot(0))
    assert get_state_root_by_slot(connection, Slot(0)) == "0xtest"


def test_get_state_root_by_slot_missing(connection):
    assert get_state_root_by_slot(connection, Slot(5)) is None