"""Tests for request schema helpers."""

import pytest

from flowtrack.schemas import parse_shipment_refs


class TestParseShipmentRefs:
    """Tests for shipment reference normalization."""

    def test_splits_string(self):
        assert parse_shipment_refs("HAWB1,HAWB2\nHAWB3; HAWB4") == ["HAWB1", "HAWB2", "HAWB3", "HAWB4"]

    def test_strips_list_items(self):
        assert parse_shipment_refs(["  HAWB1 ", "", "HAWB2"]) == ["HAWB1", "HAWB2"]

    def test_none_items_are_not_refs(self):
        """Test that a None element never becomes the reference "None"."""
        assert parse_shipment_refs([None, "HAWB1", None]) == ["HAWB1"]

    @pytest.mark.parametrize("value", [None, "", [], [None], [None, 42]])
    def test_nothing_usable(self, value):
        assert parse_shipment_refs(value) == []
