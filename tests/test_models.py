"""
Unit tests for order decoding and validation.
"""

import json
from datetime import datetime, timezone

import pytest

from order_service.errors import DecodeError
from order_service.models import Order, decode_order


class TestDecodeOrder:
    """Test cases for decode_order."""

    def test_decode_valid_payload(self, order_payload):
        order = decode_order(json.dumps(order_payload).encode())

        assert order.order_uid == "b563feb7b2b84b6test"
        assert order.delivery.city == "Kiryat Mozkin"
        assert order.payment.amount == 1817
        assert order.items[0].brand == "Vivienne Sabo"
        assert order.date_created == datetime(2021, 11, 26, 6, 22, 19, tzinfo=timezone.utc)

    def test_decode_accepts_str(self, order_payload):
        assert decode_order(json.dumps(order_payload)).order_uid == order_payload["order_uid"]

    def test_non_json_payload(self):
        with pytest.raises(DecodeError):
            decode_order(b"not json at all")

    def test_missing_order_uid(self, order_payload):
        del order_payload["order_uid"]

        with pytest.raises(DecodeError) as exc_info:
            decode_order(json.dumps(order_payload))

        locations = [err["loc"] for err in exc_info.value.details["errors"]]
        assert "order_uid" in locations

    def test_order_uid_too_long(self, order_payload):
        order_payload["order_uid"] = "x" * 20

        with pytest.raises(DecodeError):
            decode_order(json.dumps(order_payload))

    def test_empty_order_uid(self, order_payload):
        order_payload["order_uid"] = ""

        with pytest.raises(DecodeError):
            decode_order(json.dumps(order_payload))

    def test_wrong_nested_type(self, order_payload):
        order_payload["items"][0]["price"] = "expensive"

        with pytest.raises(DecodeError) as exc_info:
            decode_order(json.dumps(order_payload))

        assert exc_info.value.details["errors"][0]["loc"] == "items.0.price"

    def test_missing_payment(self, order_payload):
        del order_payload["payment"]

        with pytest.raises(DecodeError):
            decode_order(json.dumps(order_payload))

    def test_json_array_is_rejected(self):
        with pytest.raises(DecodeError):
            decode_order(b"[1, 2, 3]")

    def test_serialized_document_round_trips(self, make_order):
        order = make_order()

        assert Order.model_validate(order.model_dump(mode="json")) == order
