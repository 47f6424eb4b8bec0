"""
Chain Registry - Static chain table and endpoint resolution.

Supported chains:
- Ethereum (eth-mainnet)
- Base (base-mainnet)
- Arbitrum (arb-mainnet)
- Polygon (polygon-mainnet)
- Sepolia (eth-sepolia)
- Base Sepolia (base-sepolia)

The endpoint URL embeds the provider credential as a path segment; it must
never be logged or echoed back to callers.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from evm_tx_history.config import CredentialSource, EnvCredentialSource
from evm_tx_history.exceptions import MissingCredentialError, UnsupportedChainError
from evm_tx_history.logging_utils import mask_url
from evm_tx_history.models import Chain


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ChainConfig:
    """Static per-chain configuration."""
    chain_id: int
    credential_key: str
    network_slug: str
    native_symbol: str = "ETH"


@dataclass(frozen=True)
class ResolvedChain:
    """Chain config with its credential-bearing endpoint."""
    config: ChainConfig
    endpoint_url: str
    credential_key: str

    @property
    def chain_id(self) -> int:
        return self.config.chain_id

    def __repr__(self) -> str:
        return (
            f"ResolvedChain(chain_id={self.chain_id}, "
            f"endpoint_url={mask_url(self.endpoint_url)!r}, "
            f"credential_key={self.credential_key!r})"
        )


# Every Chain member must have an entry; checked at import below
CHAIN_CONFIGS: dict[Chain, ChainConfig] = {
    Chain.ETHEREUM: ChainConfig(1, "ALCHEMY_KEY_ETH", "eth-mainnet"),
    Chain.BASE: ChainConfig(8453, "ALCHEMY_KEY_BASE", "base-mainnet"),
    Chain.ARBITRUM: ChainConfig(42161, "ALCHEMY_KEY_ARB", "arb-mainnet"),
    Chain.POLYGON: ChainConfig(137, "ALCHEMY_KEY_POLY", "polygon-mainnet", "POL"),
    Chain.SEPOLIA: ChainConfig(11155111, "ALCHEMY_KEY_SEPOLIA", "eth-sepolia"),
    Chain.BASE_SEPOLIA: ChainConfig(84532, "ALCHEMY_KEY_BASE_SEPOLIA", "base-sepolia"),
}

_missing = set(Chain) - set(CHAIN_CONFIGS)
if _missing:
    raise RuntimeError(f"Chain table incomplete: {sorted(c.name for c in _missing)}")


ENDPOINT_TEMPLATE = "https://{network}.g.alchemy.com/v2/{credential}"


class ChainRegistry:
    """
    Resolves chain ids to provider endpoints.

    Usage:
        registry = ChainRegistry(EnvCredentialSource())
        resolved = registry.resolve_chain(1)
        # resolved.endpoint_url carries the secret - do not log it
    """

    def __init__(
        self,
        credentials: Optional[CredentialSource] = None,
        configs: Optional[dict[Chain, ChainConfig]] = None,
    ) -> None:
        self._credentials = credentials if credentials is not None else EnvCredentialSource()
        self._configs = dict(configs if configs is not None else CHAIN_CONFIGS)

    @staticmethod
    def to_chain(chain_id: int) -> Optional[Chain]:
        """Map a raw chain id to the enum, or None if unsupported."""
        if isinstance(chain_id, bool):
            return None
        try:
            return Chain(chain_id)
        except ValueError:
            return None

    def supported_chain_ids(self) -> list[int]:
        return sorted(int(chain) for chain in self._configs)

    def is_supported(self, chain_id: int) -> bool:
        chain = self.to_chain(chain_id)
        return chain is not None and chain in self._configs

    def get_config(self, chain_id: int) -> ChainConfig:
        """
        Look up static config without touching credentials.

        Raises:
            UnsupportedChainError: If chain id is unknown
        """
        if not self.is_supported(chain_id):
            raise UnsupportedChainError(
                message=f"Unsupported chainId: {chain_id}",
                chain_id=chain_id if isinstance(chain_id, int) else None,
                supported_chains=self.supported_chain_ids(),
            )
        return self._configs[self.to_chain(chain_id)]

    def resolve_chain(self, chain_id: int) -> ResolvedChain:
        """
        Resolve chain id to endpoint URL and credential key.

        Raises:
            UnsupportedChainError: If chain id is unknown
            MissingCredentialError: If the credential is not configured
        """
        config = self.get_config(chain_id)
        credential = self._credentials.get(config.credential_key)
        if not credential:
            raise MissingCredentialError(
                message=f"Alchemy API key not configured for chainId: {config.chain_id}",
                chain_id=config.chain_id,
                credential_key=config.credential_key,
            )

        endpoint_url = ENDPOINT_TEMPLATE.format(
            network=config.network_slug,
            credential=credential,
        )
        logger.debug(f"[chains] Resolved chain {config.chain_id} -> {mask_url(endpoint_url)}")
        return ResolvedChain(
            config=config,
            endpoint_url=endpoint_url,
            credential_key=config.credential_key,
        )
