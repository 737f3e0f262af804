"""Chain selector registry.

Workflow configs name their target chain by chain selector name
(e.g. "ethereum-testnet-sepolia"). This module resolves the name to the
numeric selector and EVM chain id the ledger client needs.
"""
from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping, Optional


@dataclass(frozen=True)
class Network:
    """A resolved EVM network."""
    chain_selector_name: str
    chain_selector: int
    chain_id: int
    display_name: str
    is_testnet: bool
    explorer_url: str = ""

    def tx_url(self, tx_hash_hex: str) -> str:
        if not self.explorer_url:
            return ""
        return f"{self.explorer_url}/tx/{tx_hash_hex}"


NETWORKS: Mapping[str, Network] = MappingProxyType({
    n.chain_selector_name: n
    for n in (
        Network(
            chain_selector_name="ethereum-mainnet",
            chain_selector=5009297550715157269,
            chain_id=1,
            display_name="Ethereum",
            is_testnet=False,
            explorer_url="https://etherscan.io",
        ),
        Network(
            chain_selector_name="ethereum-testnet-sepolia",
            chain_selector=16015286601757825753,
            chain_id=11155111,
            display_name="Ethereum Sepolia",
            is_testnet=True,
            explorer_url="https://sepolia.etherscan.io",
        ),
        Network(
            chain_selector_name="ethereum-mainnet-base-1",
            chain_selector=15971525489660198786,
            chain_id=8453,
            display_name="Base",
            is_testnet=False,
            explorer_url="https://basescan.org",
        ),
        Network(
            chain_selector_name="ethereum-testnet-sepolia-base-1",
            chain_selector=10344971235874465080,
            chain_id=84532,
            display_name="Base Sepolia",
            is_testnet=True,
            explorer_url="https://sepolia.basescan.org",
        ),
        Network(
            chain_selector_name="ethereum-testnet-sepolia-arbitrum-1",
            chain_selector=3478487238524512106,
            chain_id=421614,
            display_name="Arbitrum Sepolia",
            is_testnet=True,
            explorer_url="https://sepolia.arbiscan.io",
        ),
        Network(
            chain_selector_name="polygon-testnet-amoy",
            chain_selector=16281711391670634445,
            chain_id=80002,
            display_name="Polygon Amoy",
            is_testnet=True,
            explorer_url="https://amoy.polygonscan.com",
        ),
    )
})

SUPPORTED_CHAIN_FAMILIES = frozenset({"evm"})


def get_network(
    chain_selector_name: str,
    chain_family: str = "evm",
    is_testnet: Optional[bool] = None,
) -> Optional[Network]:
    """Resolve a chain selector name.

    Returns None when the family is unsupported, the name is unknown, or the
    network's testnet flag does not match `is_testnet` (when given).
    """
    if chain_family not in SUPPORTED_CHAIN_FAMILIES:
        return None
    network = NETWORKS.get(chain_selector_name)
    if network is None:
        return None
    if is_testnet is not None and network.is_testnet != is_testnet:
        return None
    return network


def list_networks(testnet_only: bool = False) -> list[Network]:
    return [n for n in NETWORKS.values() if n.is_testnet or not testnet_only]
