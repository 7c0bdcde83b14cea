import logging
import threading

from waypoint_core.duty_cycle import DutyCycleController, CONTINUE, EXIT_IDLE
from waypoint_core.notifier import Notifier
from waypoint_core.position_source import QueuePositionSource
from waypoint_core.state import DutyCycleState

from conftest import DEG_PER_M, make_fix

KMH = 1 / 3.6  # multiply km/h by this to get m/s


def _controller(source=None, tracking=True, high_density=True, notes=None):
    seen, exits = [], []
    sink = (lambda t, m: notes.append(m)) if notes is not None else (lambda t, m: None)
    ctl = DutyCycleController(
        source or QueuePositionSource(poll_interval=0.05),
        tracking_enabled=lambda: tracking,
        high_density=lambda: high_density,
        on_fix=seen.append,
        on_exit=lambda: exits.append(True),
        notifier=Notifier(lambda: True, sink),
    )
    return ctl, seen, exits


def _fresh(ctl):
    ctl.state = DutyCycleState(loop_started_at=0.0)
    return ctl


def test_in_vehicle_set_at_speed_and_cleared_after_timeout_in_band():
    ctl, _, _ = _controller()
    _fresh(ctl)
    assert ctl.step(make_fix(0.0, speed=35 * KMH)) == CONTINUE
    assert ctl.state.in_vehicle is True

    assert ctl.step(make_fix(181.0, lat=0.01, speed=20 * KMH)) == CONTINUE
    assert ctl.state.in_vehicle is False


def test_in_vehicle_kept_inside_timeout_or_outside_band():
    ctl, _, _ = _controller()
    _fresh(ctl)
    ctl.step(make_fix(0.0, speed=35 * KMH))

    ctl.step(make_fix(100.0, lat=0.01, speed=20 * KMH))   # too soon
    assert ctl.state.in_vehicle is True
    ctl.step(make_fix(200.0, lat=0.02, speed=3 * KMH))    # below the band
    assert ctl.state.in_vehicle is True
    ctl.step(make_fix(210.0, lat=0.03, speed=29 * KMH))   # in band, past timeout
    assert ctl.state.in_vehicle is False


def test_fast_sample_restarts_vehicle_timeout():
    ctl, _, _ = _controller()
    _fresh(ctl)
    ctl.step(make_fix(0.0, speed=40 * KMH))
    ctl.step(make_fix(150.0, lat=0.01, speed=40 * KMH))
    ctl.step(make_fix(200.0, lat=0.02, speed=20 * KMH))  # only 50 s since last fast
    assert ctl.state.in_vehicle is True


def test_foot_idle_timeout_exits():
    ctl, _, _ = _controller()
    _fresh(ctl)
    ctl.step(make_fix(0.0, speed=0.0))
    # jitter inside the 20 m radius does not count as movement
    assert ctl.step(make_fix(30.0, lat=5 * DEG_PER_M, speed=0.5)) == CONTINUE
    assert ctl.step(make_fix(60.0, lat=3 * DEG_PER_M, speed=0.5)) == CONTINUE
    assert ctl.step(make_fix(61.0, lat=4 * DEG_PER_M, speed=0.5)) == EXIT_IDLE


def test_vehicle_gets_longer_idle_leash():
    ctl, _, _ = _controller()
    _fresh(ctl)
    ctl.step(make_fix(0.0, speed=50 * KMH))       # in vehicle, anchored at t=0
    assert ctl.step(make_fix(120.0, speed=0.0)) == CONTINUE
    assert ctl.step(make_fix(300.0, speed=0.0)) == CONTINUE
    assert ctl.step(make_fix(301.0, speed=0.0)) == EXIT_IDLE


def test_moving_resets_anchor():
    ctl, _, _ = _controller()
    _fresh(ctl)
    ctl.step(make_fix(0.0, speed=0.0))
    ctl.step(make_fix(50.0, lat=25 * DEG_PER_M, speed=0.0))  # left the radius
    assert ctl.state.last_moved_at == 50.0
    ctl.step(make_fix(100.0, lat=26 * DEG_PER_M, speed=12 * KMH))  # fast enough
    assert ctl.state.last_moved_at == 100.0
    assert ctl.step(make_fix(150.0, lat=27 * DEG_PER_M, speed=0.0)) == CONTINUE


def test_start_requires_tracking_and_high_density():
    ctl, _, _ = _controller(high_density=False)
    assert ctl.request_start() is False
    ctl, _, _ = _controller(tracking=False)
    assert ctl.request_start() is False


def test_loop_runs_once_and_flushes_on_idle_exit(caplog):
    caplog.set_level(logging.INFO, logger="waypoint")
    source = QueuePositionSource(poll_interval=0.05)
    notes = []
    ctl, seen, exits = _controller(source, notes=notes)

    assert ctl.request_start() is True
    assert ctl.request_start() is False  # single flight

    source.push_live(
        make_fix(0.0, speed=1.0),
        make_fix(10.0, lat=30 * DEG_PER_M, speed=1.0),
        make_fix(80.0, lat=31 * DEG_PER_M, speed=0.0),  # 70 s idle on foot → exit
        make_fix(90.0, lat=90 * DEG_PER_M, speed=1.0),  # never consumed
    )
    assert ctl.join(5)
    assert [f.timestamp for f in seen] == [0.0, 10.0]
    assert exits == [True]
    assert notes == ["Starting Updates", "Stopping Updates"]
    assert "(3 fixes)" in caplog.text


def test_stop_request_ends_loop_cooperatively():
    source = QueuePositionSource(poll_interval=0.05)
    ctl, seen, exits = _controller(source)
    ctl.request_start()
    source.push_live(make_fix(0.0))
    ctl.request_stop()
    assert ctl.join(5)
    assert exits == [True]
    # a fresh start is possible afterwards
    assert ctl.request_start() is True
    ctl.request_stop()
    assert ctl.join(5)


def test_tracking_disabled_mid_loop_exits():
    source = QueuePositionSource(poll_interval=0.05)
    flag = {"on": True}
    seen = []
    ctl = DutyCycleController(
        source, lambda: flag["on"], lambda: True, seen.append, lambda: None,
        Notifier(lambda: False),
    )
    ctl.request_start()
    source.push_live(make_fix(0.0))
    flag["on"] = False
    source.push_live(make_fix(5.0, lat=0.01))
    assert ctl.join(5)
    assert len(seen) <= 1


def test_source_failure_ends_loop_and_still_flushes():
    source = QueuePositionSource(poll_interval=0.05)
    ctl, seen, exits = _controller(source)
    ctl.request_start()
    source.fail_live(RuntimeError("gps off"))
    assert ctl.join(5)
    assert exits == [True]


def test_unauthorized_source_ends_loop():
    source = QueuePositionSource(poll_interval=0.05, authorized=False)
    ctl, seen, exits = _controller(source)
    ctl.request_start()
    assert ctl.join(5)
    assert exits == [True]
    assert not ctl.is_running


def test_concurrent_start_requests_spawn_one_loop():
    source = QueuePositionSource(poll_interval=0.05)
    ctl, _, _ = _controller(source)
    results = []
    barrier = threading.Barrier(8)

    def hammer():
        barrier.wait()
        results.append(ctl.request_start())

    threads = [threading.Thread(target=hammer) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert results.count(True) == 1
    ctl.request_stop()
    assert ctl.join(5)
