"""Tests for size, duration and CPU parsing."""

import pytest

from convoy.errors import BuildError
from convoy.utils.units import parse_byte_size, parse_cpu, parse_duration


class TestByteSize:
    """Test byte size parsing."""

    def test_binary_suffixes(self):
        """Test Mi and Gi suffixes."""
        assert parse_byte_size("64Mi") == 67108864
        assert parse_byte_size("2Gi") == 2147483648

    def test_plain_integer(self):
        """Test bare byte counts."""
        assert parse_byte_size("1048576") == 1048576
        assert parse_byte_size(512) == 512

    @pytest.mark.parametrize("value", ["64MB", "abc", "1.5Gi", "-1", "Mi", "\u00b2Mi", "\u00b2"])
    def test_invalid(self, value):
        """Test that unsupported forms are rejected."""
        with pytest.raises(BuildError):
            parse_byte_size(value)


class TestDuration:
    """Test duration parsing."""

    def test_simple_units(self):
        assert parse_duration("30s") == 30_000_000_000
        assert parse_duration("500ms") == 500_000_000
        assert parse_duration("2h") == 7200 * 10**9

    def test_compound(self):
        """Test durations with several components."""
        assert parse_duration("1m30s") == 90 * 10**9
        assert parse_duration("1.5s") == 1_500_000_000

    def test_zero(self):
        assert parse_duration("0") == 0

    @pytest.mark.parametrize("value", ["", "10", "5x", "s"])
    def test_invalid(self, value):
        with pytest.raises(BuildError):
            parse_duration(value)


class TestCpu:
    """Test CPU quantity parsing."""

    def test_decimal(self):
        assert parse_cpu("1.5") == 1_500_000_000
        assert parse_cpu("2") == 2_000_000_000

    def test_millicores(self):
        assert parse_cpu("500m") == 500_000_000

    def test_invalid(self):
        with pytest.raises(BuildError):
            parse_cpu("lots")
