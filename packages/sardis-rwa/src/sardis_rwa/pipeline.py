"""Registration pipeline: appraisal -> encoding -> attestation -> submission.

Each run walks a fixed sequence of stages:

    RECEIVED -> VALIDATING -> VALIDATED -> ENCODING -> ENCODED
             -> ATTESTING -> ATTESTED -> SUBMITTING -> SUBMITTED

and any working stage may move to FAILED. Stage results are returned as a
`PipelineOutcome` (success or a tagged `StageFailure`) instead of unwinding
through nested exception handlers, so callers can tell which stage failed
without parsing messages. `register()` is the raising convenience on top.

There are no retries: the first collaborator failure ends the run.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from .appraisal import AuthenticityValidator
from .attestation import AttestationPort
from .codec import encode_registration
from .exceptions import (
    AppraisalRejectedError,
    AttestationError,
    EncodingError,
    InvalidRequestError,
    RWAException,
    SubmissionFailedError,
)
from .ledger import LedgerClientPort
from .logging_utils import get_logger
from .models import (
    TX_HASH_LENGTH,
    ZERO_TX_HASH,
    AttestationRequest,
    AttestedRecord,
    AuthenticityVerdict,
    EncodedRecord,
    GasConfig,
    RegistrationRequest,
    SubmissionResult,
    TxStatus,
)

logger = get_logger(__name__)

REPORT_ATTESTATION = AttestationRequest(
    encoder_name="evm",
    signing_algo="ecdsa",
    hashing_algo="keccak256",
)


class PipelineStage(str, Enum):
    RECEIVED = "received"
    VALIDATING = "validating"
    VALIDATED = "validated"
    ENCODING = "encoding"
    ENCODED = "encoded"
    ATTESTING = "attesting"
    ATTESTED = "attested"
    SUBMITTING = "submitting"
    SUBMITTED = "submitted"
    FAILED = "failed"


class FailureKind(str, Enum):
    INVALID_REQUEST = "INVALID_REQUEST"
    APPRAISAL_REJECTED = "APPRAISAL_REJECTED"
    ENCODING_ERROR = "ENCODING_ERROR"
    ATTESTATION_ERROR = "ATTESTATION_ERROR"
    SUBMISSION_FAILED = "SUBMISSION_FAILED"


_NEXT_STAGE: Dict[PipelineStage, PipelineStage] = {
    PipelineStage.RECEIVED: PipelineStage.VALIDATING,
    PipelineStage.VALIDATING: PipelineStage.VALIDATED,
    PipelineStage.VALIDATED: PipelineStage.ENCODING,
    PipelineStage.ENCODING: PipelineStage.ENCODED,
    PipelineStage.ENCODED: PipelineStage.ATTESTING,
    PipelineStage.ATTESTING: PipelineStage.ATTESTED,
    PipelineStage.ATTESTED: PipelineStage.SUBMITTING,
    PipelineStage.SUBMITTING: PipelineStage.SUBMITTED,
}

TERMINAL_STAGES = frozenset({PipelineStage.SUBMITTED, PipelineStage.FAILED})


class InvalidStageTransition(RuntimeError):
    """A stage transition outside the fixed sequence was attempted."""


def can_transition(current: PipelineStage, target: PipelineStage) -> bool:
    if current in TERMINAL_STAGES:
        return False
    if target == PipelineStage.FAILED:
        return True
    return _NEXT_STAGE.get(current) == target


@dataclass(frozen=True)
class StageFailure:
    """Why and where a run stopped."""
    stage: PipelineStage
    kind: FailureKind
    detail: str
    context: Dict[str, Any] = field(default_factory=dict)

    def to_exception(self) -> RWAException:
        details = {"stage": self.stage.value, **self.context}
        if self.kind == FailureKind.INVALID_REQUEST:
            return InvalidRequestError(self.detail, details=details)
        if self.kind == FailureKind.APPRAISAL_REJECTED:
            return AppraisalRejectedError(
                self.context.get("serial", ""),
                reason=self.context.get("reason"),
                details=details,
            )
        if self.kind == FailureKind.ENCODING_ERROR:
            return EncodingError(self.detail, details=details)
        if self.kind == FailureKind.ATTESTATION_ERROR:
            return AttestationError(self.detail, details=details)
        return SubmissionFailedError(
            self.detail,
            status=self.context.get("status"),
            details=details,
        )


@dataclass(frozen=True)
class PipelineOutcome:
    """Terminal outcome of one run, with the stages it visited."""
    stage: PipelineStage
    stages: Tuple[PipelineStage, ...]
    result: Optional[SubmissionResult] = None
    failure: Optional[StageFailure] = None
    verdict: Optional[AuthenticityVerdict] = None
    encoded: Optional[EncodedRecord] = None

    @property
    def ok(self) -> bool:
        return self.stage == PipelineStage.SUBMITTED and self.result is not None

    def unwrap(self) -> SubmissionResult:
        """Return the result, raising the taxonomy error of a failed run."""
        if self.failure is not None:
            raise self.failure.to_exception()
        if self.result is None:
            raise RuntimeError(f"Pipeline ended in non-terminal stage {self.stage.value}")
        return self.result


class _Run:
    """Mutable state of a single run; never shared between invocations."""

    def __init__(self) -> None:
        self.stage = PipelineStage.RECEIVED
        self.stages: list[PipelineStage] = [PipelineStage.RECEIVED]
        self.verdict: Optional[AuthenticityVerdict] = None
        self.encoded: Optional[EncodedRecord] = None

    def advance(self, target: PipelineStage) -> None:
        if not can_transition(self.stage, target):
            raise InvalidStageTransition(f"{self.stage.value} -> {target.value}")
        self.stage = target
        self.stages.append(target)

    def fail(self, kind: FailureKind, detail: str, **context: Any) -> PipelineOutcome:
        failed_at = self.stage
        self.advance(PipelineStage.FAILED)
        failure = StageFailure(stage=failed_at, kind=kind, detail=detail, context=context)
        logger.error(
            f"Registration failed at {failed_at.value}: {detail}",
            **{**context, "stage": failed_at.value, "kind": kind.value},
        )
        return self._outcome(failure=failure)

    def succeed(self, result: SubmissionResult) -> PipelineOutcome:
        self.advance(PipelineStage.SUBMITTED)
        return self._outcome(result=result)

    def _outcome(
        self,
        result: Optional[SubmissionResult] = None,
        failure: Optional[StageFailure] = None,
    ) -> PipelineOutcome:
        return PipelineOutcome(
            stage=self.stage,
            stages=tuple(self.stages),
            result=result,
            failure=failure,
            verdict=self.verdict,
            encoded=self.encoded,
        )


def _describe(error: BaseException) -> str:
    return getattr(error, "message", None) or str(error) or type(error).__name__


class RegistrationPipeline:
    """Turns a validated registration into an on-chain report.

    Args:
        validator: Authenticity check gating the submission
        attestor: Produces the quorum attestation over the encoded report
        ledger: Delivers the attested report to the receiver contract
        receiver_address: Consumer contract receiving the report
        gas_config: Gas settings for the write
    """

    def __init__(
        self,
        validator: AuthenticityValidator,
        attestor: AttestationPort,
        ledger: LedgerClientPort,
        receiver_address: str,
        gas_config: GasConfig,
    ) -> None:
        self._validator = validator
        self._attestor = attestor
        self._ledger = ledger
        self._receiver = receiver_address
        self._gas_config = gas_config

    @property
    def receiver_address(self) -> str:
        return self._receiver

    async def run(self, request: RegistrationRequest) -> PipelineOutcome:
        """Run every stage; collaborator failures end up in the outcome, not raised."""
        run = _Run()

        # Validating
        run.advance(PipelineStage.VALIDATING)
        logger.info("Checking off-chain watch authentication", serial=request.serial)
        try:
            verdict = await self._validator.validate(request.serial)
        except Exception as e:
            # Fail closed: a validator that cannot answer never authenticates
            reason = _describe(e)
            return run.fail(
                FailureKind.APPRAISAL_REJECTED,
                f"Appraisal validation failed for serial: {request.serial} ({reason})",
                serial=request.serial,
                reason=reason,
            )
        run.verdict = verdict
        if not verdict.authenticated:
            return run.fail(
                FailureKind.APPRAISAL_REJECTED,
                f"Appraisal validation failed for serial: {request.serial}",
                serial=request.serial,
            )
        run.advance(PipelineStage.VALIDATED)
        logger.info(
            "Watch authenticated",
            serial=request.serial,
            estimated_value_usd=str(verdict.estimated_value_usd),
            certifying_authority=verdict.certifying_authority,
        )

        # Encoding
        run.advance(PipelineStage.ENCODING)
        try:
            encoded = encode_registration(request)
        except EncodingError as e:
            return run.fail(FailureKind.ENCODING_ERROR, e.message, **e.details)
        run.encoded = encoded
        run.advance(PipelineStage.ENCODED)
        logger.debug("Encoded registration report", size=len(encoded), digest="0x" + encoded.digest.hex())

        # Attesting
        run.advance(PipelineStage.ATTESTING)
        try:
            attested = await self._attestor.attest(encoded, REPORT_ATTESTATION)
        except Exception as e:
            return run.fail(FailureKind.ATTESTATION_ERROR, _describe(e))
        if attested.raw_report != encoded.data:
            return run.fail(
                FailureKind.ATTESTATION_ERROR,
                "Attested report does not match the encoded record",
            )
        run.advance(PipelineStage.ATTESTED)
        logger.info("Report attested", signatures=len(attested.signatures))

        # Submitting
        run.advance(PipelineStage.SUBMITTING)
        logger.info(
            "Submitting on-chain registration",
            receiver=self._receiver,
            gas_limit=self._gas_config.gas_limit,
            total_fractions=request.total_fractions,
        )
        return await self._submit(run, attested)

    async def _submit(self, run: _Run, attested: AttestedRecord) -> PipelineOutcome:
        try:
            reply = await self._ledger.write_report(attested, self._receiver, self._gas_config)
        except Exception as e:
            return run.fail(FailureKind.SUBMISSION_FAILED, _describe(e))

        try:
            status = TxStatus(reply.tx_status)
        except ValueError:
            return run.fail(
                FailureKind.SUBMISSION_FAILED,
                reply.error_message or str(reply.tx_status),
                status=str(reply.tx_status),
            )
        if status != TxStatus.SUCCESS:
            detail = reply.error_message or status.value
            return run.fail(FailureKind.SUBMISSION_FAILED, detail, status=status.value)

        if reply.tx_hash:
            tx_hash = bytes(reply.tx_hash)
            if len(tx_hash) != TX_HASH_LENGTH:
                return run.fail(
                    FailureKind.SUBMISSION_FAILED,
                    f"Malformed transaction hash: 0x{tx_hash.hex()}",
                )
        else:
            logger.warning("Ledger reported success without a transaction hash; using zero hash")
            tx_hash = ZERO_TX_HASH

        result = SubmissionResult(status=status, tx_hash=tx_hash)
        logger.info("Report delivered to consumer", tx_hash=result.tx_hash_hex)
        return run.succeed(result)

    async def register(self, request: RegistrationRequest) -> SubmissionResult:
        """Run the pipeline and return its result.

        Raises:
            AppraisalRejectedError: Authenticity verdict was negative
            EncodingError: Report could not be encoded
            AttestationError: Attestation collaborator failed
            SubmissionFailedError: Ledger returned a non-success status or failed
        """
        outcome = await self.run(request)
        return outcome.unwrap()

    async def close(self) -> None:
        """Close the validator and ledger connections."""
        await self._validator.close()
        await self._ledger.close()
