"""HTTP trigger adapter for watch registration.

Decodes the raw trigger payload into a `RegistrationRequest`, runs the
registration pipeline and maps the outcome onto the trigger contract:
a human-readable summary on success, one `RegistrationFailedError` otherwise.
"""
from __future__ import annotations

import json
from typing import Any

from pydantic import ValidationError

from .exceptions import InvalidRequestError, RegistrationFailedError
from .logging_utils import get_logger
from .models import RegistrationRequest, parse_decimal_integer
from .pipeline import RegistrationPipeline

logger = get_logger(__name__)


def _format_validation_error(error: ValidationError) -> str:
    parts = []
    for item in error.errors(include_url=False):
        location = ".".join(str(p) for p in item.get("loc", ())) or "payload"
        parts.append(f"{location}: {item.get('msg')}")
    return "; ".join(parts)


def parse_registration_payload(raw_payload: bytes) -> RegistrationRequest:
    """Parse and validate a raw trigger payload.

    Raises:
        InvalidRequestError: Payload is empty, not UTF-8 JSON, or fails the schema
    """
    if not raw_payload:
        raise InvalidRequestError("HTTP trigger payload is required")

    try:
        payload: Any = json.loads(raw_payload.decode("utf-8"), parse_int=parse_decimal_integer)
    except UnicodeDecodeError as e:
        raise InvalidRequestError(f"Payload is not valid UTF-8: {e}") from e
    except ValueError as e:
        raise InvalidRequestError(f"Payload is not valid JSON: {e}") from e

    if not isinstance(payload, dict):
        raise InvalidRequestError("Payload must be a JSON object")

    try:
        return RegistrationRequest.model_validate(payload)
    except ValidationError as e:
        raise InvalidRequestError(
            _format_validation_error(e),
            details={"errors": [
                {"loc": list(err.get("loc", ())), "msg": err.get("msg")}
                for err in e.errors(include_url=False)
            ]},
        ) from e


def format_summary(request: RegistrationRequest, tx_hash_hex: str) -> str:
    return (
        f"Watch registered and tokenized: {request.brand} {request.model} "
        f"({request.total_fractions} fractions) - TX: {tx_hash_hex}"
    )


class HTTPTriggerAdapter:
    """Entry point invoked by the hosting runtime for each HTTP trigger event."""

    def __init__(self, pipeline: RegistrationPipeline) -> None:
        self._pipeline = pipeline

    async def handle(self, raw_payload: bytes) -> str:
        """Process one registration payload.

        Returns:
            Summary with brand, model, fraction count and hex transaction hash

        Raises:
            RegistrationFailedError: Any failure, wrapping the taxonomy error
        """
        with logger.context(operation="watch_registration"):
            logger.info("Raw HTTP trigger received", payload_size=len(raw_payload or b""))
            try:
                request = parse_registration_payload(raw_payload)
                logger.info("Parsed watch payload", **request.to_log_dict())

                outcome = await self._pipeline.run(request)
                result = outcome.unwrap()
            except Exception as e:
                failure = RegistrationFailedError(e)
                logger.error(failure.message, error_code=failure.error_code)
                raise failure from e

            logger.info(
                "Watch tokenization complete",
                serial=request.serial,
                total_fractions=request.total_fractions,
                tx_hash=result.tx_hash_hex,
            )
            return format_summary(request, result.tx_hash_hex)
