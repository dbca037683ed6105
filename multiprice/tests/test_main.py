"""Unit tests for the command-line entry point."""

import argparse
import logging
import sys
from unittest.mock import patch

import pytest

from multiprice.main import build_config, main, parse_address_list, parse_fraction
from multiprice.src.OracleConfig import DEFAULT_DEPLOYMENTS

ENV_VARS = (
    "NETWORK",
    "RPC_URL",
    "FEED_REGISTRY",
    "CL_FACTORY",
    "CL_POOL_FEE",
    "CP_FACTORY_A",
    "CP_FACTORY_B",
    "NATIVE_ASSET",
    "USD_EQUIVALENTS",
    "TWAP_PERIOD",
    "BUFFER",
    "INCLUSION",
)


def make_args(**overrides) -> argparse.Namespace:
    values = {
        "network": "mainnet",
        "registry": None,
        "cl_factory": None,
        "cl_pool_fee": None,
        "cp_factory_a": None,
        "cp_factory_b": None,
        "native_asset": None,
        "usd_equivalents": None,
    }
    values.update(overrides)
    return argparse.Namespace(**values)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch) -> None:
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


class TestParsers:
    """Test argument parsing helpers."""

    def test_parse_address_list(self) -> None:
        """Comma-separated addresses are split and trimmed."""
        assert parse_address_list(None) == []
        assert parse_address_list("") == []
        assert parse_address_list(" 0xa , ,0xb") == ["0xa", "0xb"]

    def test_parse_fraction(self) -> None:
        """Fractions scale to 18 decimals."""
        assert parse_fraction("0") == 0
        assert parse_fraction("0.01") == 10**16
        assert parse_fraction("1") == 10**18

    def test_parse_fraction_invalid(self) -> None:
        """Non-numeric fractions are argument errors."""
        with pytest.raises(argparse.ArgumentTypeError, match="invalid fraction"):
            parse_fraction("one percent")

    def test_parse_fraction_non_finite(self) -> None:
        """Infinite and NaN fractions are rejected as argument errors."""
        for value in ("inf", "-Infinity", "nan"):
            with pytest.raises(argparse.ArgumentTypeError, match="invalid fraction"):
                parse_fraction(value)


class TestBuildConfig:
    """Test deployment config resolution."""

    def test_network_default(self) -> None:
        """Without overrides the network deployment is used."""
        assert build_config(make_args()) == DEFAULT_DEPLOYMENTS["mainnet"]

    def test_overrides(self) -> None:
        """Overrides replace single fields of the deployment."""
        usdc = "0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48"
        config = build_config(make_args(cl_pool_fee=500, usd_equivalents=usdc))
        assert config.cl_pool_fee == 500
        assert config.usd_equivalents == frozenset({usdc})
        assert config.registry == DEFAULT_DEPLOYMENTS["mainnet"].registry

    def test_unknown_network_requires_all_fields(self) -> None:
        """Unknown networks need every address."""
        with pytest.raises(TypeError):
            build_config(make_args(network="http://localhost:8545"))

    def test_unknown_network_with_all_fields(self) -> None:
        """Unknown networks work with a full set of addresses."""
        mainnet = DEFAULT_DEPLOYMENTS["mainnet"]
        config = build_config(
            make_args(
                network="http://localhost:8545",
                registry=mainnet.registry,
                cl_factory=mainnet.cl_factory,
                cl_pool_fee=3000,
                cp_factory_a=mainnet.cp_factory_a,
                cp_factory_b=mainnet.cp_factory_b,
                native_asset=mainnet.native_asset,
            )
        )
        assert config.usd_equivalents == frozenset()


class TestMain:
    """Test the CLI end to end over a snapshot."""

    def run(self, monkeypatch, oracle, *argv: str):
        monkeypatch.setattr(sys, "argv", ["multiprice", *argv])
        with patch("multiprice.main.MultipriceOracle.from_network", return_value=oracle) as from_network:
            main()
        return from_network

    def test_combined(self, monkeypatch, oracle, tokens, caplog) -> None:
        """The combined mode logs the selected source."""
        with caplog.at_level(logging.INFO):
            from_network = self.run(
                monkeypatch,
                oracle,
                "--asset-in", tokens.WETH,
                "--amount-in", "10",
                "--asset-out", tokens.USDC,
            )
        from_network.assert_called_once()
        assert from_network.call_args.kwargs["strict"] is True
        assert "Selected cp_spot_a: 28490.000000" in caplog.text

    def test_single_source_mode(self, monkeypatch, oracle, tokens, caplog) -> None:
        """Single-source modes log their quote."""
        with caplog.at_level(logging.INFO):
            self.run(
                monkeypatch,
                oracle,
                "--asset-in", tokens.WETH,
                "--amount-in", "10",
                "--asset-out", tokens.USDC,
                "--mode", "cp-b",
            )
        assert "cp-b: 28496.000000" in caplog.text

    def test_env_configuration(self, monkeypatch, oracle, tokens, caplog) -> None:
        """Inclusion and buffer come from the environment."""
        monkeypatch.setenv("INCLUSION", "0b00001")
        monkeypatch.setenv("BUFFER", "0.01")
        with caplog.at_level(logging.INFO):
            self.run(
                monkeypatch,
                oracle,
                "--asset-in", tokens.WBTC,
                "--amount-in", "10",
                "--asset-out", tokens.USDC,
            )
        assert "Selected registry_buffered: 398475.000000" in caplog.text

    def test_lenient_flag(self, monkeypatch, oracle, tokens) -> None:
        """--lenient builds a lenient oracle."""
        from_network = self.run(
            monkeypatch,
            oracle,
            "--asset-in", tokens.WETH,
            "--amount-in", "1",
            "--asset-out", tokens.USDC,
            "--lenient",
        )
        assert from_network.call_args.kwargs["strict"] is False

    def test_quote_failure_exits(self, monkeypatch, oracle, tokens, caplog) -> None:
        """Quote failures exit with status 1."""
        with pytest.raises(SystemExit) as exc_info:
            self.run(
                monkeypatch,
                oracle,
                "--asset-in", tokens.ONE_INCH,
                "--amount-in", "1",
                "--asset-out", tokens.USDC,
                "--mode", "feed",
            )
        assert exc_info.value.code == 1
        assert "SourceUnavailable" in caplog.text

    def test_invalid_inclusion_exits(self, monkeypatch, oracle, tokens, caplog) -> None:
        """Invalid masks exit with status 1."""
        with pytest.raises(SystemExit) as exc_info:
            self.run(
                monkeypatch,
                oracle,
                "--asset-in", tokens.WETH,
                "--amount-in", "1",
                "--asset-out", tokens.USDC,
                "--inclusion", "32",
            )
        assert exc_info.value.code == 1
        assert "inclusion bitmap invalid" in caplog.text

    def test_invalid_amount_is_usage_error(self, monkeypatch, oracle, tokens) -> None:
        """Non-numeric amounts are usage errors."""
        with pytest.raises(SystemExit) as exc_info:
            self.run(
                monkeypatch,
                oracle,
                "--asset-in", tokens.WETH,
                "--amount-in", "ten",
                "--asset-out", tokens.USDC,
            )
        assert exc_info.value.code == 2

    def test_invalid_buffer_env_is_usage_error(self, monkeypatch, oracle, tokens) -> None:
        """A malformed BUFFER variable is reported by argparse, not as a traceback."""
        monkeypatch.setenv("BUFFER", "one percent")
        with pytest.raises(SystemExit) as exc_info:
            self.run(
                monkeypatch,
                oracle,
                "--asset-in", tokens.WETH,
                "--amount-in", "1",
                "--asset-out", tokens.USDC,
            )
        assert exc_info.value.code == 2

    def test_infinite_buffer_is_usage_error(self, monkeypatch, oracle, tokens) -> None:
        """An infinite buffer is rejected by argparse."""
        with pytest.raises(SystemExit) as exc_info:
            self.run(
                monkeypatch,
                oracle,
                "--asset-in", tokens.WETH,
                "--amount-in", "1",
                "--asset-out", tokens.USDC,
                "--buffer", "inf",
            )
        assert exc_info.value.code == 2
