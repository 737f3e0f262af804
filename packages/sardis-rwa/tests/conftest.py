"""
Pytest configuration for sardis-rwa tests.
"""
from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Optional

import pytest

# Add package source to path
package_src = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(package_src))

from sardis_rwa.appraisal import AuthenticityValidator, ReferenceTableValidator
from sardis_rwa.attestation import AttestationPort
from sardis_rwa.ledger import LedgerClientPort
from sardis_rwa.models import (
    AttestationRequest,
    AttestedRecord,
    AuthenticityVerdict,
    EncodedRecord,
    GasConfig,
    TxStatus,
    WriteReportReply,
)
from sardis_rwa.pipeline import RegistrationPipeline
from sardis_rwa.trigger import HTTPTriggerAdapter

# Foundry default dev keys; never funded outside local chains
DEV_PRIVATE_KEYS = [
    "0xac0974bec39a17e36ba4a6b4d238ff944bacb478cbed5efcae784d7bf4f2ff80",
    "0x59c6995e998f97a5a0044966f0945389dc9e86dae88c7a8412f4603b6b78690d",
    "0x5de4111afa1a4b94908f83103eb1f1706367c2e68ca870fc3fb9a804cdab365a",
    "0x7c852118294e51e653712a81e05800f419141751be58f605c371e15141b007a6",
]

CONSUMER_ADDRESS = "0x5FbDB2315678afecb367f032d93F642f64180aa3"
WATCH_TOKEN_ADDRESS = "0xe7f1725E7734CE288F8367e1Bb143E90bb3F0512"
FORWARDER_ADDRESS = "0x9fE46736679d2D9a65F0992F2272dE9f3c7fa6e0"
STUB_TX_HASH = bytes.fromhex("ab" * 32)


class SpyValidator(AuthenticityValidator):
    """Wraps another validator and records every verdict."""

    def __init__(self, inner: Optional[AuthenticityValidator] = None) -> None:
        self.inner = inner or ReferenceTableValidator()
        self.calls: list[str] = []
        self.verdicts: list[AuthenticityVerdict] = []

    @property
    def name(self) -> str:
        return "spy"

    async def validate(self, serial: str) -> AuthenticityVerdict:
        self.calls.append(serial)
        verdict = await self.inner.validate(serial)
        self.verdicts.append(verdict)
        return verdict


class FixedVerdictValidator(AuthenticityValidator):
    def __init__(self, verdict: AuthenticityVerdict) -> None:
        self.verdict = verdict
        self.calls: list[str] = []

    @property
    def name(self) -> str:
        return "fixed"

    async def validate(self, serial: str) -> AuthenticityVerdict:
        self.calls.append(serial)
        return self.verdict


class StubAttestor(AttestationPort):
    def __init__(self, error: Optional[Exception] = None) -> None:
        self.error = error
        self.calls: list[tuple[EncodedRecord, AttestationRequest]] = []

    async def attest(self, record: EncodedRecord, request: AttestationRequest) -> AttestedRecord:
        self.calls.append((record, request))
        if self.error is not None:
            raise self.error
        return AttestedRecord(
            raw_report=record.data,
            report_context=b"\x00" * 64,
            signatures=(b"\x01" * 65,),
            digest=record.digest,
        )


class StubLedger(LedgerClientPort):
    def __init__(
        self,
        reply: Optional[WriteReportReply] = None,
        error: Optional[Exception] = None,
    ) -> None:
        self.reply = reply or WriteReportReply(tx_status=TxStatus.SUCCESS, tx_hash=STUB_TX_HASH)
        self.error = error
        self.calls: list[tuple[AttestedRecord, str, GasConfig]] = []

    async def write_report(
        self,
        record: AttestedRecord,
        receiver: str,
        gas_config: GasConfig,
    ) -> WriteReportReply:
        self.calls.append((record, receiver, gas_config))
        if self.error is not None:
            raise self.error
        return self.reply


@pytest.fixture
def rolex_payload() -> dict:
    return {
        "watchBrand": "Rolex",
        "watchModel": "Submariner",
        "watchSerial": "RLX-116500-ABC123",
        "totalFractions": 1000,
        "pricePerFractionWei": "1000000000000000",
    }


@pytest.fixture
def rolex_payload_bytes(rolex_payload) -> bytes:
    return json.dumps(rolex_payload).encode("utf-8")


@pytest.fixture
def spy_validator() -> SpyValidator:
    return SpyValidator()


@pytest.fixture
def stub_attestor() -> StubAttestor:
    return StubAttestor()


@pytest.fixture
def stub_ledger() -> StubLedger:
    return StubLedger()


@pytest.fixture
def make_pipeline(spy_validator, stub_attestor, stub_ledger):
    """Build a pipeline; collaborators default to the spy/stub fixtures."""

    def _make(validator=None, attestor=None, ledger=None, gas_limit: int = 500_000):
        return RegistrationPipeline(
            validator=validator or spy_validator,
            attestor=attestor or stub_attestor,
            ledger=ledger or stub_ledger,
            receiver_address=CONSUMER_ADDRESS,
            gas_config=GasConfig(gas_limit=gas_limit),
        )

    return _make


@pytest.fixture
def adapter(make_pipeline) -> HTTPTriggerAdapter:
    return HTTPTriggerAdapter(make_pipeline())


@pytest.fixture
def workflow_config() -> dict:
    return {
        "evms": [
            {
                "luxuryWatchAddress": WATCH_TOKEN_ADDRESS,
                "consumerAddress": CONSUMER_ADDRESS,
                "chainSelectorName": "ethereum-testnet-sepolia",
                "gasLimit": "500000",
            }
        ]
    }


@pytest.fixture
def config_file(tmp_path, workflow_config) -> Path:
    path = tmp_path / "config.json"
    path.write_text(json.dumps(workflow_config))
    return path
