"""Data models for watch registration.

The inbound request is a pydantic model so the trigger payload is validated
once at the edge; everything downstream of validation is a frozen dataclass
owned by a single pipeline run.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, StrictStr, field_validator, model_validator
from web3 import Web3

TX_HASH_LENGTH = 32
ZERO_TX_HASH = b"\x00" * TX_HASH_LENGTH

_DECIMAL_DIGITS = re.compile(r"[0-9]+")

UINT256_MAX = 2**256 - 1
UINT256_MAX_DIGITS = len(str(UINT256_MAX))


def parse_decimal_integer(text: str) -> int:
    """Parse a base-10 integer string of any length.

    Strings with more significant digits than any uint256 are not converted
    (`int()` caps string conversion length); they come back as
    `UINT256_MAX + 1` with their sign, so range checks still see an overflow.
    """
    negative = text.startswith("-")
    digits = text.lstrip("+-").lstrip("0")
    if len(digits) > UINT256_MAX_DIGITS:
        value = UINT256_MAX + 1
    else:
        value = int(digits) if digits else 0
    return -value if negative else value


class RegistrationRequest(BaseModel):
    """A luxury watch registration, as received from the HTTP trigger.

    Wire names follow the trigger payload (`watchBrand`, `pricePerFractionWei`, ...);
    Python code may use the field names directly.
    """

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        extra="ignore",
        protected_namespaces=(),
    )

    brand: StrictStr = Field(alias="watchBrand")
    model: StrictStr = Field(alias="watchModel")
    serial: StrictStr = Field(alias="watchSerial")
    total_fractions: int = Field(alias="totalFractions", ge=1)
    price_per_fraction_wei: int = Field(alias="pricePerFractionWei", ge=0)
    appraisal_source: Optional[StrictStr] = Field(default=None, alias="appraisalSource")

    @model_validator(mode="before")
    @classmethod
    def require_wei_string_on_wire(cls, data: Any) -> Any:
        """The wire form carries wei as a decimal string to survive JSON number precision."""
        if isinstance(data, dict) and "pricePerFractionWei" in data:
            if not isinstance(data["pricePerFractionWei"], str):
                raise ValueError("pricePerFractionWei must be a string of decimal digits")
        return data

    @field_validator("price_per_fraction_wei", mode="before")
    @classmethod
    def parse_wei(cls, v: Any) -> Any:
        if isinstance(v, bool):
            raise ValueError("pricePerFractionWei must be an integer")
        if isinstance(v, str):
            value = v.strip()
            if not _DECIMAL_DIGITS.fullmatch(value):
                raise ValueError("pricePerFractionWei must be a string of decimal digits")
            return parse_decimal_integer(value)
        return v

    @field_validator("total_fractions", mode="before")
    @classmethod
    def parse_fractions(cls, v: Any) -> Any:
        """JSON has a single number type: integral floats such as 1e3 are accepted."""
        if isinstance(v, bool) or not isinstance(v, (int, float)):
            raise ValueError("totalFractions must be a number")
        if isinstance(v, float):
            if not v.is_integer():
                raise ValueError("totalFractions must be a whole number")
            return int(v)
        return v

    def to_log_dict(self) -> dict[str, Any]:
        return {
            "brand": self.brand,
            "model": self.model,
            "serial": self.serial,
            "total_fractions": self.total_fractions,
            "price_per_fraction_wei": str(self.price_per_fraction_wei),
            "appraisal_source": self.appraisal_source,
        }


@dataclass(frozen=True)
class AuthenticityVerdict:
    """Outcome of an authenticity check for one serial."""
    authenticated: bool
    estimated_value_usd: Decimal
    certifying_authority: Optional[str] = None


@dataclass(frozen=True)
class EncodedRecord:
    """ABI-encoded registration, exactly as the consumer contract decodes it."""
    data: bytes

    def hex(self) -> str:
        return "0x" + self.data.hex()

    @property
    def digest(self) -> bytes:
        return bytes(Web3.keccak(self.data))

    def __len__(self) -> int:
        return len(self.data)


@dataclass(frozen=True)
class AttestationRequest:
    """How the signer quorum should encode, sign and hash a report."""
    encoder_name: str = "evm"
    signing_algo: str = "ecdsa"
    hashing_algo: str = "keccak256"


@dataclass(frozen=True)
class AttestedRecord:
    """An encoded record plus the quorum signatures binding it."""
    raw_report: bytes
    report_context: bytes
    signatures: tuple[bytes, ...]
    digest: bytes
    signers: tuple[str, ...] = ()
    request: AttestationRequest = field(default_factory=AttestationRequest)


@dataclass(frozen=True)
class GasConfig:
    """Gas settings for the on-chain write."""
    gas_limit: int

    def __post_init__(self) -> None:
        if self.gas_limit <= 0:
            raise ValueError(f"gas_limit must be positive, got {self.gas_limit}")


class TxStatus(str, Enum):
    """Outcome reported by the ledger submission collaborator."""
    SUCCESS = "SUCCESS"
    REVERTED = "REVERTED"
    FATAL = "FATAL"


@dataclass(frozen=True)
class WriteReportReply:
    """Raw reply of a ledger write."""
    tx_status: TxStatus
    tx_hash: Optional[bytes] = None
    error_message: Optional[str] = None


@dataclass(frozen=True)
class SubmissionResult:
    """Terminal result of a successful pipeline run."""
    status: TxStatus
    tx_hash: bytes = ZERO_TX_HASH
    error_detail: Optional[str] = None

    def __post_init__(self) -> None:
        if len(self.tx_hash) != TX_HASH_LENGTH:
            raise ValueError(
                f"tx_hash must be {TX_HASH_LENGTH} bytes, got {len(self.tx_hash)}"
            )

    @property
    def tx_hash_hex(self) -> str:
        return "0x" + self.tx_hash.hex()

    @property
    def has_sentinel_hash(self) -> bool:
        return self.tx_hash == ZERO_TX_HASH
