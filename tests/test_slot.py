from datetime import datetime, timedelta, timezone

import pytest

from ethanalysis.slot import (
    GENESIS_TIMESTAMP,
    FIRST_POST_MERGE_SLOT,
    Slot,
    slot_from_string,
)


def _utc(text):
    return datetime.fromisoformat(text.replace("Z", "+00:00"))


def test_first_of_day_genesis():
    assert Slot(0).is_first_of_day()


def test_first_of_day():
    assert Slot(3599).is_first_of_day()


def test_not_first_of_day():
    assert not Slot(1).is_first_of_day()
    assert not Slot(3598).is_first_of_day()
    assert not Slot(3600).is_first_of_day()


def test_get_timestamp():
    assert Slot(0).date_time() == _utc("2020-12-01T12:00:23Z")
    assert Slot(3599).date_time() == _utc("2020-12-02T00:00:11Z")


def test_first_of_minute_genesis():
    assert Slot(0).is_first_of_minute()


def test_first_of_minute():
    assert Slot(4).is_first_of_minute()


def test_not_first_of_minute():
    assert not Slot(3).is_first_of_minute()
    assert not Slot(5).is_first_of_minute()


def test_genesis_constant_matches_timestamp():
    assert Slot.GENESIS.date_time() == GENESIS_TIMESTAMP


@pytest.mark.parametrize("number", [0, 1, 3599, 1229, 4_000_000])
def test_from_date_time_round_trip(number):
    assert Slot.from_date_time(Slot(number).date_time()) == Slot(number)


def test_from_date_time_unaligned_is_none():
    assert Slot.from_date_time(Slot(10).date_time() + timedelta(seconds=5)) is None


def test_from_date_time_rounded_down():
    moment = Slot(10).date_time() + timedelta(seconds=11, microseconds=500)
    assert Slot.from_date_time_rounded_down(moment) == Slot(10)
    assert Slot.from_date_time_rounded_down(Slot(11).date_time()) == Slot(11)


def test_from_date_time_rounded_down_is_not_after():
    moment = datetime(2023, 1, 1, 5, 6, 7, tzinfo=timezone.utc)
    slot = Slot.from_date_time_rounded_down(moment)
    assert slot.date_time() <= moment < (slot + 1).date_time()


def test_arithmetic():
    assert Slot(3) + 1 == Slot(4)
    assert Slot(3) - 1 == Slot(2)
    assert Slot(3) * 2 == Slot(6)
    assert Slot(7) % 5 == Slot(2)
    assert Slot(-7) % 5 == Slot(-2)


def test_ordering_and_str():
    assert Slot(1) < Slot(2)
    assert str(Slot(1229)) == "1229"
    assert int(FIRST_POST_MERGE_SLOT) == 4700013


def test_parse():
    assert Slot.parse("1229") == Slot(1229)
    assert slot_from_string("4700013") == FIRST_POST_MERGE_SLOT


@pytest.mark.parametrize("text", ["abc", "", " 12", "1.5", "1_000", "99999999999"])
def test_parse_invalid(text):
    with pytest.raises(ValueError):
        slot_from_string(text)


def test_out_of_range_slot():
    with pytest.raises(OverflowError):
        Slot(2**31)