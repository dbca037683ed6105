"""Shared fixtures: a mainnet-like snapshot with feeds, CL pools and CP pairs."""

from decimal import Decimal
from types import SimpleNamespace

import pytest

from multiprice.src.ExternalStateSnapshot import ExternalStateSnapshot
from multiprice.src.MultipriceOracle import MultipriceOracle
from multiprice.src.OracleConfig import DEFAULT_DEPLOYMENTS, DENOMINATION_ETH, DENOMINATION_USD

SNAPSHOT_TIME = 1_700_000_000

WETH = "0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2"
USDC = "0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48"
USDT = "0xdAC17F958D2ee523a2206206994597C13D831ec7"
DAI = "0x6B175474E89094C44Da98b954EedeAC495271d0F"
WBTC = "0x2260FAC5E5542a773Aa44fBCfeDf7C193bc2C599"
SNX = "0xC011a73ee8576Fb46F5E1c5751cA3B9Fe0af2a6F"
YFI = "0x0bc529c00C6401aEF6D220BE8C6Ea1667F6Ad93e"
ONE_INCH = "0x111111111117dC0aa78b770fA6A738034120C302"


@pytest.fixture
def tokens() -> SimpleNamespace:
    """Mainnet token addresses used throughout the tests."""
    return SimpleNamespace(
        WETH=WETH,
        USDC=USDC,
        USDT=USDT,
        DAI=DAI,
        WBTC=WBTC,
        SNX=SNX,
        YFI=YFI,
        ONE_INCH=ONE_INCH,
        ETH=DENOMINATION_ETH,
        USD=DENOMINATION_USD,
    )


@pytest.fixture
def config():
    return DEFAULT_DEPLOYMENTS["mainnet"]


@pytest.fixture
def empty_snapshot() -> ExternalStateSnapshot:
    """Snapshot with token decimals registered but no markets."""
    snapshot = ExternalStateSnapshot(timestamp=SNAPSHOT_TIME)
    for token, decimals in (
        (WETH, 18),
        (USDC, 6),
        (USDT, 6),
        (DAI, 18),
        (WBTC, 8),
        (SNX, 18),
        (YFI, 18),
        (ONE_INCH, 18),
    ):
        snapshot.add_token(token, decimals)
    return snapshot


@pytest.fixture
def snapshot(empty_snapshot: ExternalStateSnapshot, config) -> ExternalStateSnapshot:
    """Snapshot with markets for every source family.

    Registry feeds:
        ETH/USD 2850, WBTC/USD 40250, SNX/USD 14.5, YFI/ETH 3.5 (no 1INCH feed)
    CL pools (canonical fee tier):
        WETH/USDC 2849.5 (TWAP 2849.7), WBTC/WETH 14.06 (TWAP 40200/2850),
        SNX/WETH 0.005 with only 10 minutes of history
    CP pairs, factory A:
        USDC/WETH 2849, WBTC/WETH 14.04
    CP pairs, factory B:
        USDC/WETH 2849.6, WBTC/WETH 14.05
    """
    s = empty_snapshot

    s.add_feed(DENOMINATION_ETH, DENOMINATION_USD, 2850_00000000)
    s.add_feed(WBTC, DENOMINATION_USD, 40250_00000000)
    s.add_feed(SNX, DENOMINATION_USD, 14_50000000)
    s.add_feed(YFI, DENOMINATION_ETH, 3_500000000000000000, decimals=18)

    fee = config.cl_pool_fee
    s.add_cl_pool(
        config.cl_factory, WETH, USDC, fee, price=Decimal("2849.5"), twap_price=Decimal("2849.7")
    )
    s.add_cl_pool(
        config.cl_factory,
        WBTC,
        WETH,
        fee,
        price=Decimal("14.06"),
        twap_price=Decimal(40200) / Decimal(2850),
    )
    s.add_cl_pool(config.cl_factory, SNX, WETH, fee, price=Decimal("0.005"), history_seconds=600)

    s.add_cp_pair(config.cp_factory_a, USDC, 28_490_000 * 10**6, WETH, 10_000 * 10**18)
    s.add_cp_pair(config.cp_factory_a, WBTC, 1_000 * 10**8, WETH, 14_040 * 10**18)
    s.add_cp_pair(config.cp_factory_b, USDC, 28_496_000 * 10**6, WETH, 10_000 * 10**18)
    s.add_cp_pair(config.cp_factory_b, WBTC, 1_000 * 10**8, WETH, 14_050 * 10**18)
    return s


@pytest.fixture
def oracle(config, snapshot: ExternalStateSnapshot) -> MultipriceOracle:
    return MultipriceOracle(config, snapshot)
