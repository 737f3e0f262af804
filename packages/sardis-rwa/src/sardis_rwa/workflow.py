"""Workflow bootstrap.

Reads the workflow settings, resolves the target network, builds the
collaborators and registers the HTTP trigger handler. Everything built here
is created once and shared read-only across invocations.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, List, Optional

from .appraisal import AuthenticityValidator, HTTPAppraisalOracle, ReferenceTableValidator
from .attestation import AttestationPort, LocalQuorumAttestor
from .config import WorkflowSettings
from .exceptions import ConfigurationError, NetworkNotFoundError
from .ledger import ForwarderLedgerClient, LedgerClientPort, SimulatedLedgerClient
from .models import GasConfig
from .networks import Network, get_network
from .pipeline import RegistrationPipeline
from .trigger import HTTPTriggerAdapter

logger = logging.getLogger(__name__)

HTTP_TRIGGER = "http"


@dataclass(frozen=True)
class WorkflowHandler:
    """A trigger binding registered with the runtime."""
    trigger: str
    callback: Callable[[bytes], Awaitable[str]]
    network: Network
    pipeline: RegistrationPipeline


def resolve_network(settings: WorkflowSettings) -> Network:
    chain_selector_name = settings.primary_evm.chain_selector_name
    network = get_network(
        chain_selector_name,
        chain_family="evm",
        is_testnet=settings.is_testnet,
    )
    if network is None:
        raise NetworkNotFoundError(chain_selector_name)
    return network


def build_validator(settings: WorkflowSettings) -> AuthenticityValidator:
    if settings.oracle_url:
        return HTTPAppraisalOracle(settings.oracle_url, api_key=settings.oracle_api_key or None)
    return ReferenceTableValidator()


def build_attestor(settings: WorkflowSettings) -> AttestationPort:
    try:
        return LocalQuorumAttestor(
            private_keys=settings.attestor_private_keys or None,
            quorum=settings.attestation_quorum,
        )
    except ValueError as e:
        raise ConfigurationError(f"Invalid attestation signer config: {e}") from e


def build_ledger_client(settings: WorkflowSettings, network: Network) -> LedgerClientPort:
    if settings.chain_mode == "simulated":
        logger.info(f"Using simulated ledger for {network.display_name}")
        return SimulatedLedgerClient()

    try:
        client = ForwarderLedgerClient(
            rpc_url=settings.rpc_url,
            forwarder_address=settings.forwarder_address,
            private_key=settings.transmitter_private_key,
            chain_id=network.chain_id,
            receipt_timeout_seconds=settings.receipt_timeout_seconds,
        )
    except ValueError as e:
        raise ConfigurationError(f"Invalid forwarder config: {e}") from e
    logger.info(
        f"Using forwarder {settings.forwarder_address} on {network.display_name} "
        f"(chain_id={network.chain_id}, transmitter={client.transmitter_address})"
    )
    return client


def init_workflow(
    settings: WorkflowSettings,
    validator: Optional[AuthenticityValidator] = None,
    attestor: Optional[AttestationPort] = None,
    ledger: Optional[LedgerClientPort] = None,
) -> List[WorkflowHandler]:
    """Build the collaborators and return the workflow's trigger bindings.

    Collaborators passed in explicitly take precedence over the ones the
    settings describe.

    Raises:
        NetworkNotFoundError: The first evms entry names an unknown chain
        ConfigurationError: Signer or forwarder settings are invalid
    """
    network = resolve_network(settings)
    evm = settings.primary_evm

    pipeline = RegistrationPipeline(
        validator=validator or build_validator(settings),
        attestor=attestor or build_attestor(settings),
        ledger=ledger or build_ledger_client(settings, network),
        receiver_address=evm.consumer_address,
        gas_config=GasConfig(gas_limit=evm.gas_limit),
    )
    adapter = HTTPTriggerAdapter(pipeline)

    return [
        WorkflowHandler(
            trigger=HTTP_TRIGGER,
            callback=adapter.handle,
            network=network,
            pipeline=pipeline,
        )
    ]


class WorkflowRunner:
    """Dispatches trigger events to registered handlers."""

    def __init__(self, handlers: List[WorkflowHandler]) -> None:
        self._handlers: Dict[str, WorkflowHandler] = {h.trigger: h for h in handlers}

    @classmethod
    def from_settings(cls, settings: WorkflowSettings, **collaborators) -> "WorkflowRunner":
        return cls(init_workflow(settings, **collaborators))

    def handler(self, trigger: str = HTTP_TRIGGER) -> WorkflowHandler:
        try:
            return self._handlers[trigger]
        except KeyError:
            raise ConfigurationError(f"No handler registered for trigger: {trigger}") from None

    async def dispatch(self, payload: bytes, trigger: str = HTTP_TRIGGER) -> str:
        return await self.handler(trigger).callback(payload)

    async def close(self) -> None:
        """Close every handler's collaborators; call once the runner is done."""
        for handler in self._handlers.values():
            await handler.pipeline.close()
