import math

import pytest

from evgaze.autosaccade import (
    EventRateMonitor,
    SaccadeConfig,
    center_of_mass,
    event_rate,
    saccade_trajectory,
)
from evgaze.gabor import AddressEvent


def test_config_adds_leading_slash():
    config = SaccadeConfig(name="autoSaccade", robot_name="icub")
    assert config.name == "/autoSaccade"
    assert config.robot_name == "/icub"
    assert not config.simulated


def test_config_defaults_are_simulated():
    config = SaccadeConfig()
    assert config.simulated
    assert config.min_vps == 75000.0


def test_config_rejects_empty_name():
    with pytest.raises(ValueError):
        SaccadeConfig(name="")


def test_monitor_ignores_events_when_not_reading():
    monitor = EventRateMonitor()
    monitor.on_events([AddressEvent(1, 2, stamp=5)])
    assert monitor.pop_count() == 0
    assert monitor.take_events() == []


def test_monitor_collects_and_counts():
    monitor = EventRateMonitor()
    monitor.start(0.0)
    events = [AddressEvent(1, 2, stamp=5), AddressEvent(3, 4, stamp=9)]
    monitor.on_events(events)
    assert monitor.latest_stamp() == 9
    assert monitor.take_events() == events
    assert monitor.take_events() == []
    assert monitor.pop_count() == 2
    assert monitor.pop_count() == 0


def test_monitor_rate_is_count_over_elapsed():
    monitor = EventRateMonitor()
    monitor.start(10.0)
    monitor.on_events([AddressEvent(0, 0, stamp=i) for i in range(6)])
    rate = monitor.stop(12.0)
    assert rate == 6 / 2.0
    assert monitor.rate == rate
    assert not monitor.reading
    assert monitor.pop_count() == 0


def test_monitor_stop_errors():
    monitor = EventRateMonitor()
    with pytest.raises(RuntimeError):
        monitor.stop(1.0)
    monitor.start(5.0)
    with pytest.raises(ValueError):
        monitor.stop(5.0)


def test_start_clears_previous_events():
    monitor = EventRateMonitor()
    monitor.start(0.0)
    monitor.on_events([AddressEvent(1, 1)])
    monitor.start(1.0)
    assert monitor.take_events() == []


def test_center_of_mass_empty_is_none():
    assert center_of_mass([], 0, 304, 240) is None


def test_center_of_mass_flips_origin():
    result = center_of_mass([AddressEvent(0, 0, channel=0)], 0, 304, 240)
    assert result == ((303, 239), None)


def test_center_of_mass_symmetric_events():
    events = [AddressEvent(10, 20, channel=1), AddressEvent(30, 40, channel=1)]
    left, right = center_of_mass(events, 0, 100, 100)
    assert left is None
    single = center_of_mass([AddressEvent(20, 30, channel=1)], 0, 100, 100)[1]
    assert right == single


def test_center_of_mass_threshold():
    events = [AddressEvent(5, 5, channel=0)] * 3
    assert center_of_mass(events, 6, 50, 50) == (None, None)
    assert center_of_mass(events, 5, 50, 50)[0] == (44, 44)


def test_saccade_trajectory_on_ellipse():
    points = list(saccade_trajectory())
    assert points[0] == (1.0, 0.0)
    assert len(points) >= 72
    for tilt, pan in points:
        assert tilt**2 + (pan / 2) ** 2 == pytest.approx(1.0)


def test_saccade_trajectory_step_must_be_positive():
    with pytest.raises(ValueError):
        list(saccade_trajectory(0.0))


def test_event_rate_nonpositive_period_is_zero():
    assert event_rate(100, 5, 5) == 0.0
    assert event_rate(100, 4, 5) == 0.0


def test_event_rate_worked_example():
    assert event_rate(8, 10_000_000, 0) == pytest.approx(1.0)


def test_event_rate_scales_with_count():
    assert event_rate(20, 1000, 0) == pytest.approx(2 * event_rate(10, 1000, 0))
    assert math.isfinite(event_rate(1, 1, 0))