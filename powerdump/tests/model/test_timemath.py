from __future__ import annotations

import pytest

from powerdump.model.timemath import (
    Instant,
    TimeMode,
    format_duration,
    latencies,
    subtract,
)


def test_subtract_without_borrow():
    assert subtract(Instant(5, 300), Instant(3, 100)) == Instant(2, 200)
    assert subtract(Instant(5, 900), Instant(3, 100)) == Instant(2, 800)


def test_subtract_equal_nanos_is_not_a_borrow():
    assert subtract(Instant(5, 100), Instant(3, 100)) == Instant(2, 0)


def test_subtract_legacy_borrow_keeps_seconds():
    assert subtract(Instant(5, 100), Instant(3, 200)) == Instant(2, 999_999_900)


def test_subtract_legacy_is_default():
    assert subtract(Instant(5, 100), Instant(3, 200)) == subtract(
        Instant(5, 100), Instant(3, 200), TimeMode.LEGACY
    )


def test_subtract_corrected_borrow_takes_a_second():
    assert subtract(Instant(5, 100), Instant(3, 200), TimeMode.CORRECTED) == Instant(1, 999_999_900)
    # accepts the plain string value too
    assert subtract(Instant(5, 100), Instant(3, 200), "corrected") == Instant(1, 999_999_900)


def test_corrected_only_differs_on_borrow():
    a, b = Instant(9, 500), Instant(4, 499)
    assert subtract(a, b, TimeMode.CORRECTED) == subtract(a, b, TimeMode.LEGACY) == Instant(5, 1)


def test_from_micros_scales_to_nanos():
    assert Instant.from_micros(7, 250) == Instant(7, 250_000)


def test_instant_ordering_is_lexicographic():
    assert Instant(1, 999) < Instant(2, 0)
    assert Instant(2, 1) > Instant(2, 0)
    assert sorted([Instant(2, 5), Instant(1, 7), Instant(2, 1)]) == [
        Instant(1, 7),
        Instant(2, 1),
        Instant(2, 5),
    ]


def test_is_unset():
    assert Instant(0, 0).is_unset
    assert not Instant(0, 1).is_unset
    assert not Instant(1, 0).is_unset


def test_format_duration_zero_pads_nanos():
    assert format_duration(Instant(2, 200)) == "2.000000200"
    assert format_duration(Instant(0, 999_999_900)) == "0.999999900"


def test_latencies_mix_nano_and_micro_sources():
    triggered = Instant(100, 900_000_000)
    received = Instant.from_micros(101, 100_000)   # 101.1 s
    dumped = Instant.from_micros(101, 600_000)     # 101.6 s

    lat = latencies(triggered, received, dumped)
    # borrow: nanos 1e9 - 0.9e9 + 0.1e9, seconds untouched
    assert lat.received == Instant(1, 200_000_000)
    assert lat.dump == Instant(0, 500_000_000)
    assert lat.total == Instant(1, 700_000_000)

    fixed = latencies(triggered, received, dumped, TimeMode.CORRECTED)
    assert fixed.received == Instant(0, 200_000_000)
    assert fixed.total == Instant(0, 700_000_000)


def test_invalid_mode_raises():
    with pytest.raises(ValueError):
        subtract(Instant(1, 0), Instant(0, 1), "sloppy")


def test_borrow_with_large_nanos_gap():
    # Borrow rule as in historical reports; the often-quoted {5,100} - {3,900} = {2,200}
    # contradicts that rule. Legacy mode keeps 2 whole seconds.
    assert subtract(Instant(5, 100), Instant(3, 900)) == Instant(2, 999_999_200)
