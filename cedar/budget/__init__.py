"""Budget aggregation and currency normalization package."""

from cedar.budget.aggregator import DEFAULT_TOP_N, rank_categories, summarize
from cedar.budget.currency import (
    LBP_TO_USD_RATE,
    REFERENCE_CURRENCY,
    describe_amount,
    format_lbp,
    format_usd,
    normalize,
    to_lbp,
)

__all__ = [
    "DEFAULT_TOP_N",
    "LBP_TO_USD_RATE",
    "REFERENCE_CURRENCY",
    "describe_amount",
    "format_lbp",
    "format_usd",
    "normalize",
    "rank_categories",
    "summarize",
    "to_lbp",
]
