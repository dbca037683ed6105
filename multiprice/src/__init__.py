"""
Multiprice Oracle - Conservative exchange rates from several price references

This module resolves a rate between two tokens from independent sources:
- FeedAdapter: Aggregated feed registry, with a buffered variant
- ClPoolAdapter: Concentrated-liquidity pools, spot and TWAP
- CpPoolAdapter: Constant-product pools of any compatible factory
- Router: Direct-or-via-base routing shared by all adapters
- Selector: Minimum over enabled candidates with deterministic tie-breaks
- MultipriceOracle: Stateless query entrypoints
"""

from .Asset import Asset
from .errors import InsufficientHistory, InvalidParameter, OracleError, SourceUnavailable
from .ExternalState import ExternalState, FeedAnswer
from .ExternalStateSnapshot import ExternalStateSnapshot
from .ExternalStateWeb3 import ExternalStateWeb3
from .MultipriceOracle import DEFAULT_TWAP_PERIOD, MultipriceOracle
from .OracleConfig import DEFAULT_DEPLOYMENTS, OracleConfig
from .Router import Route, RoutedQuote, route
from .Selector import AggregateResult, Inclusion, SourceId

__all__ = [
    "AggregateResult",
    "Asset",
    "DEFAULT_DEPLOYMENTS",
    "DEFAULT_TWAP_PERIOD",
    "ExternalState",
    "ExternalStateSnapshot",
    "ExternalStateWeb3",
    "FeedAnswer",
    "Inclusion",
    "InsufficientHistory",
    "InvalidParameter",
    "MultipriceOracle",
    "OracleConfig",
    "OracleError",
    "Route",
    "RoutedQuote",
    "SourceId",
    "SourceUnavailable",
    "route",
]
