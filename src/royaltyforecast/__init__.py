"""Royalty analytics and forecasting engine."""

from .engine import run_engine
from .errors import (
    EmptyEntitySetError,
    InvalidGrowthRateError,
    InvalidRangeError,
    NonFiniteValueError,
    RoyaltyEngineError,
)

__all__ = [
    "run_engine",
    "RoyaltyEngineError",
    "InvalidRangeError",
    "InvalidGrowthRateError",
    "EmptyEntitySetError",
    "NonFiniteValueError",
]

__version__ = "0.1.0"
