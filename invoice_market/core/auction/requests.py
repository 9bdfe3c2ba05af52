"""
Inbound request models.

Invoice listings arrive from a form, so every field may be a string, a
number or missing. The pydantic model normalizes them; its errors are
translated into the marketplace ValidationError.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator
from pydantic import ValidationError as PydanticValidationError

from invoice_market.core.errors import ValidationError
from invoice_market.utils.validation import (
    MAX_TITLE_LENGTH,
    parse_amount,
    validate_timestamp,
)


class InvoiceRequest(BaseModel):
    """Validated input for AuctionEngine.create_invoice."""

    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    owner_id: Any
    title: str = Field(min_length=1, max_length=MAX_TITLE_LENGTH)
    face_amount: Decimal
    bidding_end_at: float
    auto_accept_highest: bool = False
    min_bid: Decimal = Decimal("0")

    @field_validator("owner_id")
    @classmethod
    def _owner_present(cls, value: Any) -> Any:
        if value is None:
            raise ValueError("owner_id is required")
        return value

    @field_validator("face_amount", mode="before")
    @classmethod
    def _parse_face_amount(cls, value: Any) -> Decimal:
        try:
            amount = parse_amount(value, "face_amount")
        except ValidationError as e:
            raise ValueError(e.message) from None
        if amount <= 0:
            raise ValueError(f"face_amount must be > 0, got {amount}")
        return amount

    @field_validator("bidding_end_at", mode="before")
    @classmethod
    def _parse_end(cls, value: Any) -> float:
        if isinstance(value, datetime):
            return value.timestamp()
        is_valid, error = validate_timestamp(value, "bidding_end_at")
        if not is_valid:
            raise ValueError(error)
        return float(value)

    @field_validator("min_bid", mode="before")
    @classmethod
    def _parse_min_bid(cls, value: Any, info: ValidationInfo) -> Decimal:
        # Only meaningful in auto-accept mode; ignored otherwise
        if not info.data.get("auto_accept_highest"):
            return Decimal("0")
        if value is None or value == "":
            return Decimal("0")
        try:
            amount = parse_amount(value, "min_bid")
        except ValidationError as e:
            raise ValueError(e.message) from None
        if amount < 0:
            raise ValueError(f"min_bid must be >= 0, got {amount}")
        return amount


def build_invoice_request(**fields: Any) -> InvoiceRequest:
    """
    Validate raw listing fields.

    Raises:
        ValidationError: with every field problem joined into one message
    """
    try:
        return InvoiceRequest(**fields)
    except PydanticValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}"
            for err in e.errors()
        )
        raise ValidationError(f"Invalid invoice: {problems}") from None
