"""Natural ordering unit tests."""

from __future__ import annotations

import itertools
from functools import cmp_to_key

import pytest

from infrabase.utils.natsort import natsorted, natural_cmp, natural_key

SAMPLES = [
    "", "0", "1", "01", "001", "2", "10", "a", "A", "b", "B", "a1", "a01",
    "a2", "a10", "A1", "host", "host1", "host01", "host2", "host10", "host10a",
    "host10b", "host-1", "Host2", "x1y", "x1Y", "x10y", "v01", "v1", "v1.2", "v1.10",
]


class TestNaturalOrder:
    def test_numbers_by_value(self):
        assert natsorted(["host10", "host2", "host1"]) == ["host1", "host2", "host10"]

    def test_multiple_numeric_runs(self):
        assert natsorted(["v1.10", "v1.2", "v10.1", "v2.0"]) == ["v1.2", "v1.10", "v2.0", "v10.1"]

    def test_case_insensitive_then_raw(self):
        assert natsorted(["b", "a", "A"]) == ["A", "a", "b"]
        assert natsorted(["host2", "host10", "Host1"]) == ["Host1", "host2", "host10"]

    def test_leading_zeros_break_ties(self):
        assert natural_cmp("v01", "v1") == -1
        assert natural_cmp("v1", "v01") == 1
        assert natsorted(["v1", "v001", "v01", "v2"]) == ["v001", "v01", "v1", "v2"]

    def test_leading_zero_tie_decided_at_its_run(self):
        # The tie on the digit run settles the order before later runs are looked at
        assert natural_cmp("v01b", "v1a") == -1
        assert natural_cmp("v1a", "v01b") == 1
        assert natsorted(["v1a", "v01b", "v01a"]) == ["v01a", "v01b", "v1a"]

    def test_casefold_decides_before_raw_case(self):
        assert natural_cmp("aA", "Ab") == -1
        assert natural_cmp("Ab", "ab") == -1

    def test_digit_run_before_text_run(self):
        assert natural_cmp("1", "a") == -1
        assert natural_cmp("x1", "xa") == -1

    def test_prefix_sorts_first(self):
        assert natural_cmp("host", "host1") == -1
        assert natural_cmp("", "a") == -1
        assert natural_cmp("", "0") == -1

    def test_empty_strings_equal(self):
        assert natural_cmp("", "") == 0
        assert natsorted(["b", "", "a"]) == ["", "a", "b"]

    def test_huge_numbers(self):
        small = "n" + "9" * 5000
        large = "n1" + "0" * 5000
        assert natural_cmp(small, large) == -1

    def test_non_ascii_digits_are_text(self):
        # Only ASCII 0-9 form numeric runs
        assert natural_key("١") == ((1, 0, "١", "١"),)

    def test_key_and_reverse(self):
        records = [{"name": "db10"}, {"name": "db9"}, {"name": "db100"}]
        ordered = natsorted(records, key=lambda r: r["name"])
        assert [r["name"] for r in ordered] == ["db9", "db10", "db100"]
        reverse = natsorted(records, key=lambda r: r["name"], reverse=True)
        assert [r["name"] for r in reverse] == ["db100", "db10", "db9"]


class TestTotalOrder:
    def test_zero_only_for_equal_strings(self):
        for a, b in itertools.product(SAMPLES, repeat=2):
            assert (natural_cmp(a, b) == 0) == (a == b), (a, b)

    def test_antisymmetric(self):
        for a, b in itertools.product(SAMPLES, repeat=2):
            assert natural_cmp(a, b) == -natural_cmp(b, a), (a, b)

    def test_transitive(self):
        for a, b, c in itertools.product(SAMPLES, repeat=3):
            if natural_cmp(a, b) <= 0 and natural_cmp(b, c) <= 0:
                assert natural_cmp(a, c) <= 0, (a, b, c)

    @pytest.mark.parametrize("seed", range(3))
    def test_sort_is_deterministic(self, seed: int):
        shuffled = SAMPLES[seed:] + SAMPLES[:seed]
        expected = sorted(SAMPLES, key=cmp_to_key(natural_cmp))
        assert natsorted(shuffled) == expected
        assert natsorted(reversed(shuffled)) == expected
