"""Real-world asset registration: appraisal, report encoding, attestation and submission."""

from .appraisal import (
    AuthenticityValidator,
    HTTPAppraisalOracle,
    ReferenceTableValidator,
    REFERENCE_APPRAISALS,
)
from .attestation import AttestationPort, LocalQuorumAttestor, verify_attestation
from .codec import decode_registration, encode_registration
from .config import EVMConfig, WorkflowSettings, load_settings
from .exceptions import (
    AppraisalRejectedError,
    AttestationError,
    ConfigurationError,
    EncodingError,
    InvalidRequestError,
    NetworkNotFoundError,
    RegistrationFailedError,
    RWAException,
    SubmissionFailedError,
)
from .ledger import ForwarderLedgerClient, LedgerClientPort, SimulatedLedgerClient
from .models import (
    AttestationRequest,
    AttestedRecord,
    AuthenticityVerdict,
    EncodedRecord,
    GasConfig,
    RegistrationRequest,
    SubmissionResult,
    TxStatus,
    WriteReportReply,
    ZERO_TX_HASH,
)
from .networks import Network, get_network
from .pipeline import FailureKind, PipelineOutcome, PipelineStage, RegistrationPipeline, StageFailure
from .trigger import HTTPTriggerAdapter, parse_registration_payload
from .workflow import WorkflowHandler, WorkflowRunner, init_workflow

__version__ = "0.1.0"

__all__ = [
    "AuthenticityValidator",
    "HTTPAppraisalOracle",
    "ReferenceTableValidator",
    "REFERENCE_APPRAISALS",
    "AttestationPort",
    "LocalQuorumAttestor",
    "verify_attestation",
    "decode_registration",
    "encode_registration",
    "EVMConfig",
    "WorkflowSettings",
    "load_settings",
    "AppraisalRejectedError",
    "AttestationError",
    "ConfigurationError",
    "EncodingError",
    "InvalidRequestError",
    "NetworkNotFoundError",
    "RegistrationFailedError",
    "RWAException",
    "SubmissionFailedError",
    "ForwarderLedgerClient",
    "LedgerClientPort",
    "SimulatedLedgerClient",
    "AttestationRequest",
    "AttestedRecord",
    "AuthenticityVerdict",
    "EncodedRecord",
    "GasConfig",
    "RegistrationRequest",
    "SubmissionResult",
    "TxStatus",
    "WriteReportReply",
    "ZERO_TX_HASH",
    "Network",
    "get_network",
    "FailureKind",
    "PipelineOutcome",
    "PipelineStage",
    "RegistrationPipeline",
    "StageFailure",
    "HTTPTriggerAdapter",
    "parse_registration_payload",
    "WorkflowHandler",
    "WorkflowRunner",
    "init_workflow",
]
