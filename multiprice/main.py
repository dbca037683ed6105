#!/usr/bin/env python3
"""Multiprice Oracle.

Quotes a conservative exchange rate between two tokens by combining a
feed registry, concentrated-liquidity pools and constant-product pools,
read from a live chain.

Configure via env vars or command-line flags (flags take precedence).
"""

import argparse
import logging
import os
import sys
from dataclasses import replace
from decimal import Decimal, InvalidOperation

from .src.errors import OracleError
from .src.MultipriceOracle import DEFAULT_TWAP_PERIOD, MultipriceOracle
from .src.OracleConfig import DEFAULT_DEPLOYMENTS, OracleConfig
from .src.Selector import CANONICAL_ORDER

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)

MODES = ["combined", "feed", "cl-spot", "cl-twap", "cp-a", "cp-b"]


def parse_address_list(value: str | None) -> list[str]:
    """Parse a comma-separated list of addresses.

    :param value: Comma-separated string, or None.
    :returns: List of stripped, non-empty entries.
    """
    if not value:
        return []
    return [a.strip() for a in value.split(",") if a.strip()]


def parse_fraction(value: str) -> int:
    """Parse a buffer fraction ("0.01" for 1%) into an 18-decimal integer.

    :param value: Decimal fraction string.
    :returns: Fraction scaled by 10**18.
    :raises argparse.ArgumentTypeError: If the value is not a number.
    """
    try:
        return int(Decimal(value).scaleb(18))
    except (InvalidOperation, OverflowError, ValueError) as e:
        raise argparse.ArgumentTypeError(f"invalid fraction: {value}") from e


def build_config(args: argparse.Namespace) -> OracleConfig:
    """Build the deployment config from the network default and overrides.

    :param args: Parsed command-line arguments.
    :returns: Deployment configuration.
    :raises ValueError: If the network has no default and overrides are incomplete.
    """
    overrides = {
        "registry": args.registry,
        "cl_factory": args.cl_factory,
        "cl_pool_fee": args.cl_pool_fee,
        "cp_factory_a": args.cp_factory_a,
        "cp_factory_b": args.cp_factory_b,
        "native_asset": args.native_asset,
    }
    usd_equivalents = parse_address_list(args.usd_equivalents)
    if usd_equivalents:
        overrides["usd_equivalents"] = frozenset(usd_equivalents)
    overrides = {k: v for k, v in overrides.items() if v is not None}

    base = DEFAULT_DEPLOYMENTS.get(args.network)
    if base is not None:
        return replace(base, **overrides)
    return OracleConfig(**overrides)


def main() -> None:
    """Main entry point for the Multiprice Oracle CLI."""
    parser = argparse.ArgumentParser(
        description="Multiprice Oracle: conservative multi-source exchange rates",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=f"""
Modes:
  {', '.join(MODES)}

Examples:
  # 10 WETH in USDC, all sources, 30min TWAP
  python -m multiprice.main \\
      --asset-in 0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2 --amount-in 10 \\
      --asset-out 0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48

  # Registry only, with a 1% buffer
  python -m multiprice.main --asset-in ... --amount-in 10 --asset-out ... \\
      --inclusion 0b00001 --buffer 0.01

Environment variables (CLI args take precedence):
  NETWORK, RPC_URL, FEED_REGISTRY, CL_FACTORY, CL_POOL_FEE, CP_FACTORY_A,
  CP_FACTORY_B, NATIVE_ASSET, USD_EQUIVALENTS, TWAP_PERIOD, BUFFER, INCLUSION
""",
    )

    parser.add_argument("--asset-in", dest="asset_in", required=True, help="Input token address")
    parser.add_argument(
        "--amount-in",
        dest="amount_in",
        required=True,
        help="Input amount in whole token units (e.g., 10 or 0.5)",
    )
    parser.add_argument("--asset-out", dest="asset_out", required=True, help="Output token address")

    parser.add_argument(
        "--mode",
        choices=MODES,
        default="combined",
        help="Which source to query (default: combined)",
    )

    parser.add_argument(
        "--network",
        type=str,
        help="Network to connect to (default: mainnet)",
        default=os.environ.get("NETWORK") or "mainnet",
    )

    parser.add_argument(
        "--rpc-url",
        dest="rpc_url",
        type=str,
        help="RPC endpoint (overrides the network default)",
        default=os.environ.get("RPC_URL"),
    )

    parser.add_argument(
        "--registry",
        type=str,
        help="Feed registry address",
        default=os.environ.get("FEED_REGISTRY"),
    )

    parser.add_argument(
        "--cl-factory",
        dest="cl_factory",
        type=str,
        help="Concentrated-liquidity factory address",
        default=os.environ.get("CL_FACTORY"),
    )

    parser.add_argument(
        "--cl-pool-fee",
        dest="cl_pool_fee",
        type=int,
        help="Concentrated-liquidity fee tier (100, 500, 3000, 10000)",
        default=os.environ.get("CL_POOL_FEE") or None,
    )

    parser.add_argument(
        "--cp-factory-a",
        dest="cp_factory_a",
        type=str,
        help="First constant-product factory address",
        default=os.environ.get("CP_FACTORY_A"),
    )

    parser.add_argument(
        "--cp-factory-b",
        dest="cp_factory_b",
        type=str,
        help="Second constant-product factory address",
        default=os.environ.get("CP_FACTORY_B"),
    )

    parser.add_argument(
        "--native-asset",
        dest="native_asset",
        type=str,
        help="Wrapped native asset address (routing base)",
        default=os.environ.get("NATIVE_ASSET"),
    )

    parser.add_argument(
        "--usd-equivalents",
        dest="usd_equivalents",
        type=str,
        help="Comma-separated USD-equivalent token addresses",
        default=os.environ.get("USD_EQUIVALENTS"),
    )

    parser.add_argument(
        "--twap-period",
        dest="twap_period",
        type=int,
        help=f"TWAP window in seconds (default: {DEFAULT_TWAP_PERIOD})",
        default=os.environ.get("TWAP_PERIOD") or str(DEFAULT_TWAP_PERIOD),
    )

    parser.add_argument(
        "--buffer",
        type=parse_fraction,
        help="Registry buffer as a fraction, e.g. 0.01 for 1%% (default: 0)",
        default=os.environ.get("BUFFER") or "0",
    )

    parser.add_argument(
        "--inclusion",
        type=lambda v: int(v, 0),
        help="Inclusion bitmap, e.g. 0b11111 (default: all sources)",
        default=os.environ.get("INCLUSION") or "0b11111",
    )

    parser.add_argument(
        "--lenient",
        action="store_true",
        help="Drop unavailable sources from combined quotes instead of failing",
    )

    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose (DEBUG) logging",
    )

    args = parser.parse_args()

    # Configure logging level
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    if args.twap_period < 1:
        parser.error("--twap-period must be at least 1 second")

    try:
        config = build_config(args)
    except (TypeError, ValueError) as e:
        parser.error(f"Invalid configuration: {e}")

    try:
        Decimal(args.amount_in)
    except InvalidOperation:
        parser.error(f"Invalid amount: {args.amount_in}")

    # Log configuration
    logger.info("=" * 60)
    logger.info("Multiprice Oracle")
    logger.info("=" * 60)
    logger.info(f"Network:           {args.network}")
    logger.info(f"Feed Registry:     {config.registry}")
    logger.info(f"CL Factory:        {config.cl_factory} (fee {config.cl_pool_fee})")
    logger.info(f"CP Factories:      {', '.join(config.cp_factories)}")
    logger.info(f"Native Asset:      {config.native_asset}")
    logger.info(f"USD Equivalents:   {', '.join(sorted(config.usd_equivalents))}")
    logger.info(f"Mode:              {args.mode}")
    if args.mode == "combined":
        logger.info(f"Inclusion:         {args.inclusion:#07b}")
        logger.info(f"Buffer:            {args.buffer}")
    logger.info(f"TWAP Period:       {args.twap_period}s")
    logger.info("=" * 60)

    try:
        oracle = MultipriceOracle.from_network(
            args.network, config=config, rpc_url=args.rpc_url, strict=not args.lenient
        )
        asset_in = oracle.asset(args.asset_in)
        asset_out = oracle.asset(args.asset_out)
        amount_in = asset_in.to_amount(args.amount_in)

        if args.mode == "combined":
            result = oracle.combined_quote(
                asset_in.address,
                amount_in,
                asset_out.address,
                buffer=args.buffer,
                window=args.twap_period,
                inclusion=args.inclusion,
            )
            for source in CANONICAL_ORDER:
                logger.info(f"  {source.value:<18} {asset_out.format_amount(result.get(source))}")
            logger.info(
                f"Selected {result.source.value}: "
                f"{asset_out.format_amount(result.value)}"
            )
        else:
            if args.mode == "feed":
                amount_out = oracle.feed_quote(asset_in.address, amount_in, asset_out.address)
            elif args.mode == "cl-spot":
                amount_out = oracle.cl_pool_spot_quote(asset_in.address, amount_in, asset_out.address)
            elif args.mode == "cl-twap":
                amount_out = oracle.cl_pool_twap_quote(
                    asset_in.address, amount_in, asset_out.address, args.twap_period
                )
            else:
                factory = config.cp_factory_a if args.mode == "cp-a" else config.cp_factory_b
                amount_out = oracle.cp_pool_spot_quote(
                    factory, asset_in.address, amount_in, asset_out.address
                )
            logger.info(f"{args.mode}: {asset_out.format_amount(amount_out)}")
    except KeyboardInterrupt:
        logger.info("Interrupted")
    except OracleError as e:
        logger.error(f"Quote failed ({type(e).__name__}): {e}")
        sys.exit(1)
    except Exception as e:
        logger.error(f"Fatal error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
