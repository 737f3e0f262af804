"""Off-chain authenticity checks for watches.

`AuthenticityValidator` is the port the pipeline depends on. Two adapters:

- ReferenceTableValidator: fixed reference table with an auto-approve fallback
  for unknown serials. A stand-in oracle for development; it never rejects.
- HTTPAppraisalOracle: queries an appraisal service over HTTP and can return
  a negative verdict. Fail-closed on transport errors.
"""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from decimal import Decimal, InvalidOperation
from types import MappingProxyType
from typing import Mapping, Optional
from urllib.parse import quote

import httpx

from .models import AuthenticityVerdict

logger = logging.getLogger(__name__)


DEFAULT_ESTIMATED_VALUE_USD = Decimal("10000")

REFERENCE_APPRAISALS: Mapping[str, AuthenticityVerdict] = MappingProxyType({
    "RLX-116500-ABC123": AuthenticityVerdict(
        authenticated=True,
        estimated_value_usd=Decimal("35000"),
        certifying_authority="WatchCert Labs",
    ),
    "AP-15500ST-XYZ789": AuthenticityVerdict(
        authenticated=True,
        estimated_value_usd=Decimal("45000"),
        certifying_authority="Horology Auth Inc",
    ),
    "PP-5711A-DEF456": AuthenticityVerdict(
        authenticated=True,
        estimated_value_usd=Decimal("120000"),
        certifying_authority="WatchCert Labs",
    ),
})

DEFAULT_VERDICT = AuthenticityVerdict(
    authenticated=True,
    estimated_value_usd=DEFAULT_ESTIMATED_VALUE_USD,
    certifying_authority=None,
)


class AuthenticityValidator(ABC):
    """Maps an asset serial to an authenticity verdict.

    Implementations must be total: failures to reach a backing service are
    expressed as a verdict, never raised.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Validator name (e.g., 'reference_table', 'http_oracle')."""
        ...

    @abstractmethod
    async def validate(self, serial: str) -> AuthenticityVerdict:
        """Return the verdict for `serial`."""
        ...

    async def close(self) -> None:
        """Release any connections held by the validator."""
        return None


class ReferenceTableValidator(AuthenticityValidator):
    """Reference-table lookup that auto-approves unknown serials."""

    def __init__(
        self,
        table: Optional[Mapping[str, AuthenticityVerdict]] = None,
        default_verdict: AuthenticityVerdict = DEFAULT_VERDICT,
    ) -> None:
        self._table = MappingProxyType(dict(table)) if table is not None else REFERENCE_APPRAISALS
        self._default = default_verdict

    @property
    def name(self) -> str:
        return "reference_table"

    async def validate(self, serial: str) -> AuthenticityVerdict:
        verdict = self._table.get(serial)
        if verdict is not None:
            logger.info(
                f"Watch {serial} found in appraisal table: "
                f"value=${verdict.estimated_value_usd:,} USD "
                f"certified_by={verdict.certifying_authority} status=AUTHENTICATED"
            )
            return verdict

        # TODO: reject unknown serials once the appraisal oracle is the default validator
        logger.warning(
            f"Watch serial {serial!r} not in appraisal table; auto-approving with "
            f"default estimated value ${self._default.estimated_value_usd:,} USD"
        )
        return self._default


class HTTPAppraisalOracle(AuthenticityValidator):
    """Authenticity check against an external appraisal service.

    Expects `GET {base_url}/appraisals/{serial}` to answer with
    `{"authenticated": bool, "valueUSD": number, "certifiedBy": str | null}`.
    """

    def __init__(
        self,
        base_url: str,
        api_key: Optional[str] = None,
        timeout_seconds: float = 10.0,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._api_key = api_key
        self._timeout = timeout_seconds
        self._http_client = http_client

    @property
    def name(self) -> str:
        return "http_oracle"

    async def _get_client(self) -> httpx.AsyncClient:
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=self._timeout)
        return self._http_client

    def _rejected(self, serial: str, reason: str) -> AuthenticityVerdict:
        logger.warning(f"Appraisal oracle rejected {serial!r}: {reason}")
        return AuthenticityVerdict(
            authenticated=False,
            estimated_value_usd=Decimal("0"),
            certifying_authority=None,
        )

    async def validate(self, serial: str) -> AuthenticityVerdict:
        headers = {"Accept": "application/json"}
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"

        url = f"{self._base_url}/appraisals/{quote(serial, safe='')}"
        client = await self._get_client()
        try:
            response = await client.get(url, headers=headers)
        except httpx.HTTPError as e:
            return self._rejected(serial, f"oracle unreachable: {e}")

        if response.status_code == 404:
            return self._rejected(serial, "serial unknown to oracle")
        if response.status_code >= 400:
            return self._rejected(serial, f"oracle returned HTTP {response.status_code}")

        try:
            body = response.json()
            authenticated = body.get("authenticated") is True
            value = Decimal(str(body.get("valueUSD", 0)))
        except (ValueError, AttributeError, InvalidOperation) as e:
            return self._rejected(serial, f"malformed oracle response: {e}")

        certified_by = body.get("certifiedBy")
        if not authenticated:
            return self._rejected(serial, "oracle verdict is not authenticated")

        logger.info(f"Appraisal oracle authenticated {serial!r} (certified_by={certified_by})")
        return AuthenticityVerdict(
            authenticated=True,
            estimated_value_usd=value,
            certifying_authority=certified_by if isinstance(certified_by, str) else None,
        )

    async def close(self) -> None:
        if self._http_client:
            await self._http_client.aclose()
            self._http_client = None
