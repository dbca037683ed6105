"""Price adapters, one per source family.

- FeedAdapter: aggregated feed registry (plain and buffered)
- ClPoolAdapter: concentrated-liquidity pools (spot and TWAP)
- CpPoolAdapter: constant-product pools, for any compatible factory
"""

from .base import BaseAdapter
from .cl_pool import ClPoolAdapter
from .cp_pool import CpPoolAdapter
from .feed import BUFFER_SCALE, FeedAdapter, apply_buffer, check_buffer

__all__ = [
    "BaseAdapter",
    "BUFFER_SCALE",
    "ClPoolAdapter",
    "CpPoolAdapter",
    "FeedAdapter",
    "apply_buffer",
    "check_buffer",
]
