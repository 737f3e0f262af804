"""Quorum attestation of encoded reports.

The pipeline depends on `AttestationPort` only. `LocalQuorumAttestor` stands in
for the signer network during development and simulation: it holds N ECDSA
keys and produces f+1 signatures (f = (N - 1) // 3) over

    keccak256(keccak256(raw_report) || report_context)

where report_context = config_digest (32 bytes) || sequence number (uint256).
"""
from __future__ import annotations

import itertools
import logging
import secrets
import threading
from abc import ABC, abstractmethod
from typing import Iterable, Optional, Sequence

from eth_abi import encode
from eth_account import Account
from eth_account.messages import encode_defunct
from web3 import Web3

from .exceptions import AttestationError
from .models import AttestationRequest, AttestedRecord, EncodedRecord

logger = logging.getLogger(__name__)

SUPPORTED_ENCODERS = frozenset({"evm"})
SUPPORTED_SIGNING_ALGOS = frozenset({"ecdsa"})
SUPPORTED_HASHING_ALGOS = frozenset({"keccak256"})


class AttestationPort(ABC):
    """Abstract interface for report attestation providers."""

    @abstractmethod
    async def attest(
        self,
        record: EncodedRecord,
        request: AttestationRequest,
    ) -> AttestedRecord:
        """Produce a quorum attestation binding the exact bytes of `record`."""
        pass


def default_quorum(signer_count: int) -> int:
    """f + 1 signatures, tolerating f = (n - 1) // 3 faulty signers."""
    if signer_count < 1:
        raise ValueError("At least one signer is required")
    return (signer_count - 1) // 3 + 1


def config_digest(signer_addresses: Iterable[str]) -> bytes:
    """Digest identifying a signer set, independent of ordering."""
    ordered = sorted(Web3.to_checksum_address(a) for a in signer_addresses)
    return bytes(Web3.keccak(encode(["address[]"], [ordered])))


def report_digest(raw_report: bytes, report_context: bytes) -> bytes:
    return bytes(Web3.keccak(bytes(Web3.keccak(raw_report)) + report_context))


class LocalQuorumAttestor(AttestationPort):
    """Local stand-in for the signer network.

    Args:
        private_keys: Hex private keys of the signers. Random keys are generated
            when omitted (simulation only).
        quorum: Signatures required per report; defaults to f + 1.
    """

    def __init__(
        self,
        private_keys: Optional[Sequence[str]] = None,
        quorum: Optional[int] = None,
        signer_count: int = 4,
    ) -> None:
        keys = list(private_keys) if private_keys else [
            "0x" + secrets.token_hex(32) for _ in range(signer_count)
        ]
        self._accounts = [Account.from_key(k) for k in keys]
        self._quorum = quorum if quorum is not None else default_quorum(len(self._accounts))
        if not 1 <= self._quorum <= len(self._accounts):
            raise ValueError(
                f"quorum must be between 1 and {len(self._accounts)}, got {self._quorum}"
            )
        self._config_digest = config_digest(self.signer_addresses)
        self._sequence = itertools.count(1)
        self._lock = threading.Lock()

    @property
    def signer_addresses(self) -> list[str]:
        return [acct.address for acct in self._accounts]

    @property
    def quorum(self) -> int:
        return self._quorum

    def _next_sequence(self) -> int:
        with self._lock:
            return next(self._sequence)

    @staticmethod
    def _check_request(request: AttestationRequest) -> None:
        if request.encoder_name not in SUPPORTED_ENCODERS:
            raise AttestationError(f"Unsupported encoder: {request.encoder_name}")
        if request.signing_algo not in SUPPORTED_SIGNING_ALGOS:
            raise AttestationError(f"Unsupported signing algorithm: {request.signing_algo}")
        if request.hashing_algo not in SUPPORTED_HASHING_ALGOS:
            raise AttestationError(f"Unsupported hashing algorithm: {request.hashing_algo}")

    async def attest(
        self,
        record: EncodedRecord,
        request: AttestationRequest,
    ) -> AttestedRecord:
        self._check_request(request)
        if not record.data:
            raise AttestationError("Refusing to attest an empty report")

        report_context = self._config_digest + encode(["uint256"], [self._next_sequence()])
        digest = report_digest(record.data, report_context)

        signable = encode_defunct(primitive=digest)
        signers = self._accounts[: self._quorum]
        signatures = tuple(bytes(acct.sign_message(signable).signature) for acct in signers)

        logger.info(
            f"Attested report digest=0x{digest.hex()[:16]}... "
            f"signatures={len(signatures)}/{len(self._accounts)}"
        )
        return AttestedRecord(
            raw_report=record.data,
            report_context=report_context,
            signatures=signatures,
            digest=digest,
            signers=tuple(acct.address for acct in signers),
            request=request,
        )


def verify_attestation(
    record: AttestedRecord,
    allowed_signers: Iterable[str],
    quorum: int,
) -> bool:
    """Check that `record` carries `quorum` distinct signatures from `allowed_signers`."""
    if report_digest(record.raw_report, record.report_context) != record.digest:
        return False

    allowed = {Web3.to_checksum_address(a) for a in allowed_signers}
    signable = encode_defunct(primitive=record.digest)
    recovered: set[str] = set()
    for signature in record.signatures:
        try:
            signer = Account.recover_message(signable, signature=signature)
        except Exception as e:
            logger.warning(f"Signature recovery failed: {e}")
            return False
        if signer not in allowed or signer in recovered:
            return False
        recovered.add(signer)
    return len(recovered) >= quorum
