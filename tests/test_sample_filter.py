from waypoint_core.buffer import LocalBuffer
from waypoint_core.geo import haversine_m
from waypoint_core.sample_filter import (
    SampleFilter, REJECT_ACCURACY, REJECT_DISTANCE, REJECT_STALE, ACCEPTED,
)

from conftest import make_fix, walk


def _filter(store):
    buf = LocalBuffer(store)
    return SampleFilter(buf, store), buf


def test_haversine_small_longitude_step_at_equator():
    d = haversine_m(0.0, 0.0, 0.0, 0.0001)
    assert 11.0 < d < 11.2


def test_first_fix_is_accepted(store):
    f, buf = _filter(store)
    rec = f.submit(make_fix(0.0))
    assert rec is not None
    assert len(buf) == 1
    assert f.last_accepted == rec


def test_low_accuracy_rejected(store):
    f, buf = _filter(store)
    assert f.evaluate(make_fix(0.0, acc=50.1)) == REJECT_ACCURACY
    assert f.submit(make_fix(0.0, acc=80.0)) is None
    assert len(buf) == 0
    # exactly at the limit is fine
    assert f.evaluate(make_fix(0.0, acc=50.0)) == ACCEPTED


def test_near_duplicate_point_rejected(store):
    f, buf = _filter(store)
    f.submit(make_fix(0.0, lat=0.0, lng=0.0, acc=10))
    second = make_fix(1.0, lat=0.0, lng=0.0001, acc=10)  # ~11 m away
    assert f.evaluate(second) == REJECT_DISTANCE
    assert f.submit(second) is None
    assert len(buf) == 1


def test_backwards_or_equal_timestamp_rejected(store):
    f, buf = _filter(store)
    f.submit(make_fix(10.0))
    far = 0.01  # ~1.1 km, displacement is not the reason
    assert f.evaluate(make_fix(10.0, lat=far)) == REJECT_STALE
    assert f.evaluate(make_fix(9.0, lat=far)) == REJECT_STALE
    assert f.submit(make_fix(9.5, lat=far)) is None
    assert len(buf) == 1


def test_accepted_records_are_spaced_and_ordered(store):
    f, buf = _filter(store)
    fixes = walk(10, step_m=8.0)  # every other fix is 16 m from the last accepted
    for fix in fixes:
        f.submit(fix)
    records = buf.snapshot()
    assert len(records) == 5
    for a, b in zip(records, records[1:]):
        assert a.timestamp < b.timestamp
        assert haversine_m(a.latitude, a.longitude, b.latitude, b.longitude) >= 15.0


def test_last_accepted_survives_restart(store):
    f, _ = _filter(store)
    f.submit(make_fix(100.0))

    f2, _ = _filter(store)
    assert f2.last_accepted is not None
    assert f2.evaluate(make_fix(50.0, lat=1.0)) == REJECT_STALE


def test_floor_defaults_to_zero(store):
    f, _ = _filter(store)
    rec = f.submit(make_fix(0.0, floor=None))
    assert rec.floor == 0
    rec = f.submit(make_fix(1.0, lat=0.01, floor=3))
    assert rec.floor == 3
