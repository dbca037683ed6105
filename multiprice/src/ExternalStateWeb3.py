"""ExternalStateWeb3: External state read from a chain through web3.

All calls made through one pinned instance share the same block
identifier, so a query sees the registry answers, pool prices and tick
buffers exactly as they were at that block.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from web3 import Web3
from web3.exceptions import ContractLogicError

from .ContractUtility import ContractUtility
from .errors import InsufficientHistory
from .ExternalState import ExternalState, FeedAnswer

if TYPE_CHECKING:
    from web3.contract import Contract
    from web3.types import BlockIdentifier

logger = logging.getLogger(__name__)

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"

# Revert reason of the pool oracle when the target predates its history.
OBSERVATION_TOO_OLD = "OLD"


class ExternalStateWeb3(ExternalState):
    """External state backed by contract calls.

    :ivar w3: Web3 instance.
    :ivar block_identifier: Block every read is evaluated at.
    :ivar registry_address: Checksummed feed registry address.
    """

    def __init__(
        self,
        w3: Web3,
        registry: str,
        block_identifier: BlockIdentifier = "latest",
        abis: dict[str, list] | None = None,
    ) -> None:
        """Initialize the reader.

        :param w3: Web3 instance connected to the target chain.
        :param registry: Feed registry contract address.
        :param block_identifier: Block to read at (default: "latest").
        :param abis: Already loaded ABIs keyed by contract name; loaded
            from the package when omitted.
        """
        self.w3 = w3
        self.block_identifier = block_identifier
        self._abis: dict[str, list] = abis or {
            name: ContractUtility.get_abi(name)
            for name in (
                "ERC20",
                "FeedRegistry",
                "UniswapV3Factory",
                "UniswapV3Pool",
                "UniswapV2Factory",
                "UniswapV2Pair",
            )
        }
        self.registry_address = Web3.to_checksum_address(registry)
        self.registry: Contract = self._contract(self.registry_address, "FeedRegistry")

    def pinned(self) -> ExternalStateWeb3:
        """Return a reader pinned to the current block number.

        :returns: New reader whose reads all target the same block.
        """
        block_number = self.w3.eth.block_number
        logger.debug(f"Pinning external state reads to block {block_number}")
        return ExternalStateWeb3(
            self.w3, self.registry_address, block_identifier=block_number, abis=self._abis
        )

    def _contract(self, address: str, abi_name: str) -> Contract:
        return self.w3.eth.contract(
            address=Web3.to_checksum_address(address), abi=self._abis[abi_name]
        )

    def _call(self, fn):
        return fn.call(block_identifier=self.block_identifier)

    @staticmethod
    def _non_zero(address: str) -> str | None:
        if address == ZERO_ADDRESS:
            return None
        return Web3.to_checksum_address(address)

    def decimals(self, token: str) -> int:
        """Fetch ERC-20 decimals.

        :param token: Token address.
        :returns: Number of decimals.
        """
        return self._call(self._contract(token, "ERC20").functions.decimals())

    def latest_feed_answer(self, base: str, quote: str) -> FeedAnswer | None:
        """Fetch the latest round of a registry feed.

        The registry reverts for pairs it has no feed for; that is reported
        as a missing feed rather than an error.

        :param base: Base asset or denomination address.
        :param quote: Quote asset or denomination address.
        :returns: Latest answer, or None if the feed does not exist.
        """
        functions = self.registry.functions
        try:
            _, answer, _, updated_at, _ = self._call(functions.latestRoundData(base, quote))
            decimals = self._call(functions.decimals(base, quote))
        except ContractLogicError as e:
            logger.debug(f"No registry feed for {base}/{quote}: {e}")
            return None
        return FeedAnswer(answer=answer, decimals=decimals, updated_at=updated_at)

    def cl_pool(self, factory: str, token_a: str, token_b: str, fee: int) -> str | None:
        """Look up a pool with ``getPool``.

        :param factory: Pool factory address.
        :param token_a: One token of the pair.
        :param token_b: The other token of the pair.
        :param fee: Fee tier.
        :returns: Pool address, or None if the factory returns the zero address.
        """
        contract = self._contract(factory, "UniswapV3Factory")
        return self._non_zero(self._call(contract.functions.getPool(token_a, token_b, fee)))

    def cl_sqrt_price(self, pool: str) -> int:
        """Read ``sqrtPriceX96`` from ``slot0``.

        :param pool: Pool address.
        :returns: Current sqrt price.
        """
        slot0 = self._call(self._contract(pool, "UniswapV3Pool").functions.slot0())
        return slot0[0]

    def cl_observe(self, pool: str, seconds_agos: list[int]) -> list[int]:
        """Call ``observe`` on the pool.

        :param pool: Pool address.
        :param seconds_agos: Offsets in seconds from the current block time.
        :returns: Tick cumulatives, one per offset.
        :raises InsufficientHistory: If the pool reverts with ``OLD``.
        """
        contract = self._contract(pool, "UniswapV3Pool")
        try:
            tick_cumulatives, _ = self._call(contract.functions.observe(seconds_agos))
        except ContractLogicError as e:
            if OBSERVATION_TOO_OLD in str(e):
                raise InsufficientHistory("old observation", f"pool {pool}") from e
            raise
        return list(tick_cumulatives)

    def cp_pair(self, factory: str, token_a: str, token_b: str) -> str | None:
        """Look up a pair with ``getPair``.

        :param factory: Pair factory address.
        :param token_a: One token of the pair.
        :param token_b: The other token of the pair.
        :returns: Pair address, or None if the factory returns the zero address.
        """
        contract = self._contract(factory, "UniswapV2Factory")
        return self._non_zero(self._call(contract.functions.getPair(token_a, token_b)))

    def cp_reserves(self, pair: str) -> tuple[int, int]:
        """Read reserves with ``getReserves``.

        :param pair: Pair address.
        :returns: ``(reserve0, reserve1)``.
        """
        reserve0, reserve1, _ = self._call(
            self._contract(pair, "UniswapV2Pair").functions.getReserves()
        )
        return reserve0, reserve1
