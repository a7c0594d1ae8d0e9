"""Tests for identifier sequences — monotonic and collision-free."""

import pytest

from taskbazaar.ids import IdSequence


class TestIdSequence:
    def test_monotonic(self) -> None:
        seq = IdSequence("T")
        assert seq.next() == "T-00000001"
        assert seq.next() == "T-00000002"
        assert seq.last_issued == 2

    def test_rapid_calls_never_collide(self) -> None:
        seq = IdSequence("L")
        ids = [seq.next() for _ in range(1000)]
        assert len(set(ids)) == 1000

    def test_skip_past_existing(self) -> None:
        seq = IdSequence("T")
        seq.skip_past(["t1", "T-00000007", "T-abc", "U-00000099"])
        assert seq.next() == "T-00000008"

    def test_invalid_construction(self) -> None:
        with pytest.raises(ValueError):
            IdSequence("")
        with pytest.raises(ValueError):
            IdSequence("T", start=-1)
