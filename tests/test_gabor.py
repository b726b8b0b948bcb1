import math

import pytest

from evgaze.gabor import AddressEvent, GaborFilter


def make_filter(disparity=0.0, orientation=0.0, complex_gabor=True):
    gabor = GaborFilter()
    gabor.set_center(64, 64)
    gabor.set_parameters(4.0, 6.0, orientation, disparity)
    gabor.set_complex(complex_gabor)
    return gabor


def test_fresh_filter_has_zero_response():
    assert GaborFilter().response() == 0.0


def test_event_at_centre_gives_unit_response():
    gabor = make_filter(complex_gabor=False)
    gabor.process(AddressEvent(64, 64, 0))
    assert gabor.response() == pytest.approx(1.0)


def test_complex_event_at_centre_gives_unit_energy():
    gabor = make_filter()
    gabor.process(AddressEvent(64, 64, 0))
    assert gabor.response() == pytest.approx(1.0)


def test_gain_scales_response():
    gabor = make_filter(complex_gabor=False)
    gabor.process(AddressEvent(66, 63, 0), gain=3.0)
    single = make_filter(complex_gabor=False)
    single.process(AddressEvent(66, 63, 0))
    assert gabor.response() == pytest.approx(3.0 * single.response())


def test_negative_gain_removes_event():
    gabor = make_filter(complex_gabor=False)
    event = AddressEvent(67, 61, 1)
    gabor.process(event)
    gabor.process(event, gain=-1.0)
    assert gabor.response() == pytest.approx(0.0, abs=1e-12)


def test_reset_clears_response():
    gabor = make_filter()
    gabor.process_all([AddressEvent(64, 64, 0), AddressEvent(65, 64, 1)])
    assert gabor.response() > 0
    gabor.reset()
    assert gabor.response() == 0.0


def test_right_channel_shifted_by_disparity():
    shifted = make_filter(disparity=3.0, complex_gabor=False)
    shifted.process(AddressEvent(64, 64, 1))
    left = make_filter(disparity=3.0, complex_gabor=False)
    left.process(AddressEvent(67, 64, 0))
    assert shifted.response() == pytest.approx(left.response())


def test_left_channel_ignores_disparity():
    a = make_filter(disparity=5.0, complex_gabor=False)
    b = make_filter(disparity=0.0, complex_gabor=False)
    for gabor in (a, b):
        gabor.process(AddressEvent(66, 65, 0))
    assert a.response() == pytest.approx(b.response())


def test_process_all_matches_individual_processing():
    events = [AddressEvent(60, 62, 0), AddressEvent(70, 66, 1), AddressEvent(64, 69, 0)]
    together = make_filter(disparity=2.0)
    together.process_all(events)
    separately = make_filter(disparity=2.0)
    for event in events:
        separately.process(event)
    assert together.response() == pytest.approx(separately.response())


def test_envelope_decays_across_orientation():
    near = make_filter()
    near.process(AddressEvent(64, 65, 0))
    far = make_filter()
    far.process(AddressEvent(64, 76, 0))
    assert far.response() < near.response()


def test_rotated_filter_equivalent_to_rotated_event():
    horizontal = make_filter(complex_gabor=False)
    horizontal.process(AddressEvent(67, 64, 0))
    vertical = make_filter(orientation=math.pi / 2, complex_gabor=False)
    vertical.process(AddressEvent(64, 67, 0))
    assert vertical.response() == pytest.approx(horizontal.response())


def test_complex_energy_is_non_negative():
    gabor = make_filter(disparity=4.0)
    gabor.process_all([AddressEvent(61, 64, 1), AddressEvent(68, 64, 0)], gain=-1.0)
    assert gabor.response() >= 0.0


def test_invalid_sigma_rejected():
    with pytest.raises(ValueError):
        GaborFilter().set_parameters(0.0, 6.0, 0.0, 0.0)


def test_invalid_stds_per_lambda_rejected():
    with pytest.raises(ValueError):
        GaborFilter().set_parameters(2.0, -1.0, 0.0, 0.0)


def test_process_without_parameters_rejected():
    with pytest.raises(ValueError):
        GaborFilter().process(AddressEvent(0, 0, 0))