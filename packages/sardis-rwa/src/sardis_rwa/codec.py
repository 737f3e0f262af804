"""ABI codec for the watch registration report.

The consumer contract decodes the report as

    (uint256 fractions, string brand, string model, string serial, uint256 pricePerFraction)

Field order and widths are a compatibility contract with the on-chain consumer
and must not change.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass

from eth_abi import decode, encode
from eth_abi.exceptions import EncodingError as ABIEncodingError

from .exceptions import EncodingError
from .models import UINT256_MAX, EncodedRecord, RegistrationRequest

logger = logging.getLogger(__name__)

REGISTRATION_ABI_TYPES: tuple[str, ...] = ("uint256", "string", "string", "string", "uint256")
REGISTRATION_ABI_SIGNATURE = (
    "uint256 fractions, string brand, string model, string serial, uint256 pricePerFraction"
)


@dataclass(frozen=True)
class DecodedRegistration:
    """Registration fields as the consumer contract sees them."""
    fractions: int
    brand: str
    model: str
    serial: str
    price_per_fraction: int


def _check_uint256(name: str, value: int) -> None:
    if value < 0 or value > UINT256_MAX:
        raise EncodingError(
            f"{name} does not fit in uint256",
            details={"field": name},
        )


def encode_registration(request: RegistrationRequest) -> EncodedRecord:
    """Encode a validated registration into the consumer's report layout.

    Deterministic: equal requests always produce byte-identical output.

    Raises:
        EncodingError: A numeric field overflows uint256 or a value cannot be encoded
    """
    _check_uint256("totalFractions", request.total_fractions)
    _check_uint256("pricePerFractionWei", request.price_per_fraction_wei)

    try:
        data = encode(
            list(REGISTRATION_ABI_TYPES),
            [
                request.total_fractions,
                request.brand,
                request.model,
                request.serial,
                request.price_per_fraction_wei,
            ],
        )
    except (ABIEncodingError, TypeError, ValueError) as e:
        raise EncodingError(f"Failed to encode registration report: {e}") from e

    logger.debug(f"Encoded report data: {data.hex()[:64]}... ({len(data)} bytes)")
    return EncodedRecord(data=data)


def decode_registration(record: EncodedRecord | bytes) -> DecodedRegistration:
    """Decode a report the way the consumer contract does."""
    data = record.data if isinstance(record, EncodedRecord) else record
    try:
        fractions, brand, model, serial, price = decode(list(REGISTRATION_ABI_TYPES), data)
    except Exception as e:
        raise EncodingError(f"Malformed registration report: {e}") from e
    return DecodedRegistration(
        fractions=fractions,
        brand=brand,
        model=model,
        serial=serial,
        price_per_fraction=price,
    )
