"""OracleConfig: Immutable deployment settings shared by every query.

A config is built once at startup and passed by reference to the adapters.
Nothing in the engine mutates it.

.. code-block:: python

    >>> config = DEFAULT_DEPLOYMENTS["mainnet"]
    >>> config.cl_pool_fee
    3000
    >>> config.is_usd_equivalent("0xa0b86991c6218b36c1d19d4a2e9eb0ce3606eb48")
    True
"""

from __future__ import annotations

from dataclasses import dataclass, field

from web3 import Web3

# Fee tiers (in hundredths of a bip) that concentrated-liquidity factories enable.
CL_FEE_TIERS = (100, 500, 3000, 10000)

# Chainlink Feed Registry denominations.
DENOMINATION_USD = "0x0000000000000000000000000000000000000348"
DENOMINATION_ETH = "0xEeeeeEeeeEeEeeEeEeEeeEEEeeeeEeeeeeeeEEeE"


@dataclass(frozen=True)
class OracleConfig:
    """Deployment-time configuration of the oracle.

    :ivar registry: Feed registry contract address.
    :ivar cl_factory: Concentrated-liquidity pool factory address.
    :ivar cl_pool_fee: Canonical fee tier used to locate pools.
    :ivar cp_factory_a: First constant-product factory (candidate cp-A).
    :ivar cp_factory_b: Second constant-product factory (candidate cp-B).
    :ivar native_asset: Wrapped native gas asset, used as routing base.
    :ivar usd_equivalents: Tokens priced as exactly one US dollar.
    """

    registry: str
    cl_factory: str
    cl_pool_fee: int
    cp_factory_a: str
    cp_factory_b: str
    native_asset: str
    usd_equivalents: frozenset[str] = field(default_factory=frozenset)

    def __post_init__(self) -> None:
        """Checksum all addresses and validate the fee tier.

        :raises ValueError: If an address is malformed or the fee tier unknown.
        """
        if self.cl_pool_fee not in CL_FEE_TIERS:
            raise ValueError(
                f"cl_pool_fee must be one of {CL_FEE_TIERS}, got {self.cl_pool_fee}"
            )
        for name in ("registry", "cl_factory", "cp_factory_a", "cp_factory_b", "native_asset"):
            object.__setattr__(self, name, Web3.to_checksum_address(getattr(self, name)))
        object.__setattr__(
            self,
            "usd_equivalents",
            frozenset(Web3.to_checksum_address(a) for a in self.usd_equivalents),
        )

    @property
    def cp_factories(self) -> tuple[str, str]:
        """Constant-product factories known to this instance, in candidate order."""
        return self.cp_factory_a, self.cp_factory_b

    def is_usd_equivalent(self, token: str) -> bool:
        """Check whether a token is treated as a USD-equivalent stable token.

        :param token: Token address (any casing).
        :returns: True if the token is in the configured stable set.
        """
        return Web3.to_checksum_address(token) in self.usd_equivalents

    def feed_key(self, token: str) -> str:
        """Map a token to the key the feed registry prices it under.

        :param token: Token address.
        :returns: ETH denomination for the native asset, USD denomination for
            USD-equivalents, or the token address itself.
        """
        token = Web3.to_checksum_address(token)
        if token == self.native_asset:
            return Web3.to_checksum_address(DENOMINATION_ETH)
        if token in self.usd_equivalents:
            return Web3.to_checksum_address(DENOMINATION_USD)
        return token


# Known deployments, keyed by network name.
DEFAULT_DEPLOYMENTS: dict[str, OracleConfig] = {
    "mainnet": OracleConfig(
        registry="0x47Fb2585D2C56Fe188D0E6ec628a38b74fCeeeDf",
        cl_factory="0x1F98431c8aD98523631AE4a59f267346ea31F984",
        cl_pool_fee=3000,
        cp_factory_a="0x5C69bEe701ef814a2B6a3EDD4B1652CB9cc5aA6f",
        cp_factory_b="0xC0AEe478e3658e2610c5F7A4A2E1777cE9e4f2Ac",
        native_asset="0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2",
        usd_equivalents=frozenset(
            {
                "0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48",  # USDC
                "0xdAC17F958D2ee523a2206206994597C13D831ec7",  # USDT
                "0x6B175474E89094C44Da98b954EedeAC495271d0F",  # DAI
            }
        ),
    ),
}
