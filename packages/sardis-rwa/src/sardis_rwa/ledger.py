"""Ledger submission of attested reports.

The pipeline depends on `LedgerClientPort` only:

- SimulatedLedgerClient: in-memory, always succeeds. Development and tests.
- ForwarderLedgerClient: signs and broadcasts a call to the forwarder
  contract's `report(address,bytes,bytes,bytes[])`, which verifies the quorum
  signatures and delivers the report to the receiver (consumer) contract.
"""
from __future__ import annotations

import asyncio
import logging
import secrets
import time
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, AsyncIterator, Dict, List, Optional

import httpx
from eth_abi import encode
from eth_account import Account
from web3 import Web3

from .models import AttestedRecord, GasConfig, TxStatus, WriteReportReply

logger = logging.getLogger(__name__)

FORWARDER_REPORT_SIGNATURE = "report(address,bytes,bytes,bytes[])"
_FORWARDER_REPORT_SELECTOR = Web3.keccak(text=FORWARDER_REPORT_SIGNATURE)[:4]


class LedgerClientPort(ABC):
    """Abstract interface for delivering attested reports to a chain."""

    @abstractmethod
    async def write_report(
        self,
        record: AttestedRecord,
        receiver: str,
        gas_config: GasConfig,
    ) -> WriteReportReply:
        """Deliver `record` to `receiver` and report the transaction outcome."""
        pass

    async def close(self) -> None:
        """Release any connections held by the client."""
        return None


@dataclass
class SubmittedReport:
    """A report accepted by the simulated ledger."""
    receiver: str
    record: AttestedRecord
    gas_limit: int
    tx_hash: bytes


class SimulatedLedgerClient(LedgerClientPort):
    """Simulated ledger for development."""

    def __init__(self) -> None:
        self.submitted: List[SubmittedReport] = []

    async def write_report(
        self,
        record: AttestedRecord,
        receiver: str,
        gas_config: GasConfig,
    ) -> WriteReportReply:
        tx_hash = secrets.token_bytes(32)
        self.submitted.append(
            SubmittedReport(
                receiver=receiver,
                record=record,
                gas_limit=gas_config.gas_limit,
                tx_hash=tx_hash,
            )
        )
        logger.info(f"[SIMULATED] Report delivered to {receiver} -> 0x{tx_hash.hex()}")
        return WriteReportReply(tx_status=TxStatus.SUCCESS, tx_hash=tx_hash)


class RPCError(Exception):
    """JSON-RPC error returned by the node."""

    def __init__(self, method: str, error: Any) -> None:
        self.method = method
        self.error = error
        message = error.get("message", error) if isinstance(error, dict) else error
        super().__init__(f"RPC error in {method}: {message}")


class ForwarderRPCClient:
    """Minimal JSON-RPC client for the calls the forwarder write needs."""

    def __init__(
        self,
        rpc_url: str,
        timeout_seconds: float = 30.0,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._rpc_url = rpc_url
        self._timeout = timeout_seconds
        self._http_client = http_client
        self._request_id = 0

    async def _get_client(self) -> httpx.AsyncClient:
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=self._timeout)
        return self._http_client

    async def _call(self, method: str, params: Optional[List[Any]] = None) -> Any:
        self._request_id += 1
        payload = {
            "jsonrpc": "2.0",
            "id": self._request_id,
            "method": method,
            "params": params or [],
        }

        client = await self._get_client()
        response = await client.post(
            self._rpc_url,
            json=payload,
            headers={"Content-Type": "application/json"},
        )
        response.raise_for_status()
        result = response.json()

        if "error" in result:
            raise RPCError(method, result["error"])

        return result.get("result")

    async def get_gas_price(self) -> int:
        result = await self._call("eth_gasPrice")
        return int(result, 16)

    async def get_nonce(self, address: str) -> int:
        result = await self._call("eth_getTransactionCount", [address, "pending"])
        return int(result, 16)

    async def send_raw_transaction(self, signed_tx: str) -> str:
        return await self._call("eth_sendRawTransaction", [signed_tx])

    async def get_transaction_receipt(self, tx_hash: str) -> Optional[Dict[str, Any]]:
        return await self._call("eth_getTransactionReceipt", [tx_hash])

    async def close(self) -> None:
        if self._http_client:
            await self._http_client.aclose()
            self._http_client = None


class TransmitterNonceManager:
    """Hands out nonces for a single transmitter account.

    The lock is held from nonce selection until the node has accepted the
    broadcast, so concurrent writes through one client never share a nonce.
    The next nonce is the larger of the node's pending count and the last
    reserved nonce + 1; after a failed broadcast the local counter is dropped
    and the node is trusted again.
    """

    def __init__(self, rpc: ForwarderRPCClient, address: str) -> None:
        self._rpc = rpc
        self._address = address
        self._lock = asyncio.Lock()
        self._next_nonce: Optional[int] = None

    @asynccontextmanager
    async def reserve(self) -> AsyncIterator[int]:
        async with self._lock:
            chain_nonce = await self._rpc.get_nonce(self._address)
            if self._next_nonce is None:
                nonce = chain_nonce
            else:
                nonce = max(chain_nonce, self._next_nonce)

            try:
                yield nonce
            except BaseException:
                self._next_nonce = None
                logger.info(f"Released nonce {nonce} for {self._address}")
                raise

            self._next_nonce = nonce + 1
            logger.debug(f"Used nonce {nonce} for {self._address}")


def encode_forwarder_report(receiver: str, record: AttestedRecord) -> bytes:
    """Encode forwarder `report(receiver, rawReport, reportContext, signatures)` calldata."""
    params = encode(
        ["address", "bytes", "bytes", "bytes[]"],
        [
            Web3.to_checksum_address(receiver),
            record.raw_report,
            record.report_context,
            list(record.signatures),
        ],
    )
    return bytes(_FORWARDER_REPORT_SELECTOR) + params


class ForwarderLedgerClient(LedgerClientPort):
    """Live ledger client writing through the forwarder contract."""

    def __init__(
        self,
        rpc_url: str,
        forwarder_address: str,
        private_key: str,
        chain_id: int,
        receipt_timeout_seconds: float = 120.0,
        poll_interval_seconds: float = 2.0,
        rpc_client: Optional[ForwarderRPCClient] = None,
    ) -> None:
        self._rpc = rpc_client or ForwarderRPCClient(rpc_url)
        self._forwarder = Web3.to_checksum_address(forwarder_address)
        self._account = Account.from_key(private_key)
        self._nonces = TransmitterNonceManager(self._rpc, self._account.address)
        self._chain_id = chain_id
        self._receipt_timeout = receipt_timeout_seconds
        self._poll_interval = poll_interval_seconds

    @property
    def transmitter_address(self) -> str:
        return self._account.address

    async def _wait_for_receipt(self, tx_hash: str) -> Dict[str, Any]:
        deadline = time.monotonic() + self._receipt_timeout
        while True:
            receipt = await self._rpc.get_transaction_receipt(tx_hash)
            if receipt:
                return receipt
            if time.monotonic() >= deadline:
                raise TimeoutError(
                    f"Transaction {tx_hash} not mined after {self._receipt_timeout}s"
                )
            await asyncio.sleep(self._poll_interval)

    async def write_report(
        self,
        record: AttestedRecord,
        receiver: str,
        gas_config: GasConfig,
    ) -> WriteReportReply:
        if not Web3.is_address(receiver):
            return WriteReportReply(
                tx_status=TxStatus.FATAL,
                error_message=f"Invalid receiver address: {receiver}",
            )

        calldata = encode_forwarder_report(receiver, record)
        tx_hash: Optional[str] = None
        try:
            async with self._nonces.reserve() as nonce:
                gas_price = await self._rpc.get_gas_price()
                tx = {
                    "to": self._forwarder,
                    "value": 0,
                    "data": calldata,
                    "gas": gas_config.gas_limit,
                    "gasPrice": gas_price,
                    "nonce": nonce,
                    "chainId": self._chain_id,
                }
                signed = self._account.sign_transaction(tx)

                logger.info(
                    f"Broadcasting report to {receiver} via forwarder {self._forwarder} "
                    f"(nonce={nonce}, gas_limit={gas_config.gas_limit})"
                )
                tx_hash = await self._rpc.send_raw_transaction(Web3.to_hex(signed.raw_transaction))

            receipt = await self._wait_for_receipt(tx_hash)
        except TimeoutError as e:
            logger.error(str(e))
            return WriteReportReply(
                tx_status=TxStatus.FATAL,
                tx_hash=bytes.fromhex(tx_hash[2:]) if tx_hash else None,
                error_message=str(e),
            )
        except (RPCError, httpx.HTTPError, ValueError) as e:
            logger.error(f"Forwarder write failed: {e}")
            return WriteReportReply(tx_status=TxStatus.FATAL, error_message=str(e))

        tx_hash_bytes = bytes.fromhex(tx_hash[2:])
        if int(receipt.get("status", "0x0"), 16) == 1:
            logger.info(f"Report delivered in block {receipt.get('blockNumber')}: {tx_hash}")
            return WriteReportReply(tx_status=TxStatus.SUCCESS, tx_hash=tx_hash_bytes)

        logger.warning(f"Forwarder transaction reverted: {tx_hash}")
        return WriteReportReply(
            tx_status=TxStatus.REVERTED,
            tx_hash=tx_hash_bytes,
            error_message="execution reverted",
        )

    async def close(self) -> None:
        await self._rpc.close()
