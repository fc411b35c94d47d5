"""
models.py — Data Models for Order Documents

This module defines the order document that travels over the message bus,
is persisted by the repository and served through the cache.
It uses Pydantic models so that every inbound document is validated on decode
instead of being accepted in an arbitrary shape.

Models:
    - Delivery: Recipient and address information.
    - Payment: Payment details, all amounts in minor currency units.
    - Item: A single line item of an order.
    - Order: The complete order document, keyed by `order_uid`.
"""

from datetime import datetime
from typing import List, Union

from pydantic import BaseModel, Field, ValidationError

from .errors import DecodeError

ORDER_UID_MAX_LENGTH = 19


class Delivery(BaseModel):
    """
    Delivery information of an order.

    Attributes:
        name (str): Recipient name.
        phone (str): Recipient phone number.
        zip (str): Postal code.
        city (str): City.
        address (str): Street address.
        region (str): Region or state.
        email (str): Recipient e-mail address.
    """
    name: str = ""
    phone: str = ""
    zip: str = ""
    city: str = ""
    address: str = ""
    region: str = ""
    email: str = ""


class Payment(BaseModel):
    """
    Payment information of an order. All amounts are integers in minor units (e.g. cents).
    """
    transaction: str = ""
    request_id: str = ""
    currency: str = ""
    provider: str = ""
    amount: int = Field(0, ge=0)
    payment_dt: int = 0
    bank: str = ""
    delivery_cost: int = Field(0, ge=0)
    goods_total: int = Field(0, ge=0)
    custom_fee: int = Field(0, ge=0)


class Item(BaseModel):
    """A single line item. Prices are integers in minor units."""
    chrt_id: int
    track_number: str = ""
    price: int = Field(0, ge=0)
    rid: str = ""
    name: str = ""
    sale: int = 0
    size: str = ""
    total_price: int = Field(0, ge=0)
    nm_id: int = 0
    brand: str = ""
    status: int = 0


class Order(BaseModel):
    """
    Represents one customer order as received from the message bus.

    The repository treats the document as an opaque JSON value stored next to
    its primary key, so the whole model is serialized with `model_dump(mode="json")`.

    Attributes:
        order_uid (str): Globally unique order identifier (1-19 characters).
        delivery (Delivery): Delivery information.
        payment (Payment): Payment information.
        items (List[Item]): Ordered line items.
        date_created (datetime): Creation timestamp.
    """
    order_uid: str = Field(..., min_length=1, max_length=ORDER_UID_MAX_LENGTH)
    track_number: str = ""
    entry: str = ""
    delivery: Delivery
    payment: Payment
    items: List[Item] = []
    locale: str = ""
    internal_signature: str = ""
    customer_id: str = ""
    delivery_service: str = ""
    shardkey: str = ""
    sm_id: int = 0
    date_created: datetime
    oof_shard: str = ""


def decode_order(body: Union[bytes, str]) -> Order:
    """
    Decodes a raw message body into an Order.

    Args:
        body (bytes | str): JSON payload as delivered by the bus or an HTTP client.

    Returns:
        Order: The validated order document.

    Raises:
        DecodeError: If the payload is not JSON or does not match the order schema.
    """
    try:
        return Order.model_validate_json(body)
    except ValidationError as e:
        # Kompakte Fehlerliste statt des kompletten Payloads ins Log
        errors = [
            {"loc": ".".join(str(part) for part in err["loc"]), "msg": err["msg"]}
            for err in e.errors()
        ]
        raise DecodeError("Order payload could not be decoded", details={"errors": errors}) from e
