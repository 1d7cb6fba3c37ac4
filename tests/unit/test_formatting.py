import math

import pytest

from topollama.services.formatting import SIZE_UNITS, format_size


def test_missing_values_render_as_dash():
    assert format_size(None) == "-"
    assert format_size(float("nan")) == "-"


def test_zero_bytes():
    assert format_size(0) == "0 B"


@pytest.mark.parametrize(
    "num_bytes,expected",
    [
        (1, "1 B"),
        (1023, "1023 B"),
        (1024, "1.0 KB"),
        (1536, "1.5 KB"),
        (1024**2, "1.0 MB"),
        (int(4.2 * 1024**3), "4.2 GB"),
        (1024**4, "1.0 TB"),
    ],
)
def test_unit_selection(num_bytes, expected):
    assert format_size(num_bytes) == expected


def test_terabytes_is_the_largest_unit():
    assert format_size(2048 * 1024**4) == "2048.0 TB"


@pytest.mark.parametrize("num_bytes", [7, 999, 4096, 123456, 987654321, 21474836480, 3 * 1024**4 + 17])
def test_reparse_within_a_tenth_of_a_unit(num_bytes):
    value, unit = format_size(num_bytes).split()
    index = SIZE_UNITS.index(unit)
    assert index == min(int(math.log(num_bytes) / math.log(1024) + 1e-9), len(SIZE_UNITS) - 1)
    assert abs(float(value) * 1024**index - num_bytes) <= 0.05 * 1024**index
