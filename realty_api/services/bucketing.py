"""
Fixed histogram ranges for dashboard metrics.

Each scheme partitions [0, inf) into ordered, labeled ranges. Price ranges are
half-open on the right ([lo, hi)); the mortgage and days-on-market ranges are
closed on the right ((lo, hi], the first range also including 0). Update
frequency uses descending inclusive thresholds instead of ranges.

Negative finite values fall into the lowest bucket. Non-finite values
raise ValueError.
"""
from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, Iterable, Optional, Tuple, Union
import math

Number = Union[int, float, Decimal]

@dataclass(frozen=True)
class BucketRange:
    label: str
    minimum: float
    maximum: Optional[float]  # None means unbounded

@dataclass(frozen=True)
class BucketScheme:
    name: str
    ranges: Tuple[BucketRange, ...]
    upper_inclusive: bool

    @property
    def labels(self) -> Tuple[str, ...]:
        return tuple(r.label for r in self.ranges)

    def classify(self, value: Number) -> str:
        value = _finite(value, self.name)
        for bucket in self.ranges:
            if bucket.maximum is None:
                return bucket.label
            if value < bucket.maximum or (self.upper_inclusive and value == bucket.maximum):
                return bucket.label
        # Unreachable while the last range is unbounded
        return self.ranges[-1].label

def _finite(value: Number, metric: str) -> float:
    number = float(value)
    if not math.isfinite(number):
        raise ValueError(f"Cannot bucket non-finite {metric} value: {value!r}")
    return number

PRICE_SCHEME = BucketScheme(
    name="price",
    ranges=(
        BucketRange("0-250k", 0, 250_000),
        BucketRange("250k-500k", 250_000, 500_000),
        BucketRange("500k-750k", 500_000, 750_000),
        BucketRange("750k-1M", 750_000, 1_000_000),
        BucketRange("1M+", 1_000_000, None),
    ),
    upper_inclusive=False,
)

MORTGAGE_AGE_SCHEME = BucketScheme(
    name="mortgage age",
    ranges=(
        BucketRange("0-5 years", 0, 5),
        BucketRange("5-10 years", 5, 10),
        BucketRange("10-15 years", 10, 15),
        BucketRange("15-20 years", 15, 20),
        BucketRange("20+ years", 20, None),
    ),
    upper_inclusive=True,
)

MORTGAGE_BALANCE_SCHEME = BucketScheme(
    name="mortgage balance",
    ranges=(
        BucketRange("0-100k", 0, 100_000),
        BucketRange("100k-250k", 100_000, 250_000),
        BucketRange("250k-500k", 250_000, 500_000),
        BucketRange("500k+", 500_000, None),
    ),
    upper_inclusive=True,
)

INTEREST_RATE_SCHEME = BucketScheme(
    name="interest rate",
    ranges=(
        BucketRange("0-3%", 0, 3),
        BucketRange("3-4%", 3, 4),
        BucketRange("4-5%", 4, 5),
        BucketRange("5-6%", 5, 6),
        BucketRange("6%+", 6, None),
    ),
    upper_inclusive=True,
)

DAYS_ON_MARKET_SCHEME = BucketScheme(
    name="days on market",
    ranges=(
        BucketRange("0-30 days", 0, 30),
        BucketRange("30-60 days", 30, 60),
        BucketRange("60-90 days", 60, 90),
        BucketRange("90+ days", 90, None),
    ),
    upper_inclusive=True,
)

# Updates per day, highest threshold first
UPDATE_FREQUENCY_THRESHOLDS: Tuple[Tuple[float, str], ...] = (
    (1.0, "Daily"),
    (0.25, "Weekly"),
    (0.033, "Monthly"),
)
UPDATE_FREQUENCY_FALLBACK = "Quarterly"
UPDATE_FREQUENCY_LABELS: Tuple[str, ...] = tuple(
    label for _, label in UPDATE_FREQUENCY_THRESHOLDS
) + (UPDATE_FREQUENCY_FALLBACK,)

def bucket_price(price: Number) -> str:
    return PRICE_SCHEME.classify(price)

def bucket_mortgage_age(years: Number) -> str:
    return MORTGAGE_AGE_SCHEME.classify(years)

def bucket_mortgage_balance(balance: Number) -> str:
    return MORTGAGE_BALANCE_SCHEME.classify(balance)

def bucket_interest_rate(rate: Number) -> str:
    return INTEREST_RATE_SCHEME.classify(rate)

def bucket_days_on_market(days: Number) -> str:
    return DAYS_ON_MARKET_SCHEME.classify(days)

def bucket_update_frequency(updates_per_day: Number) -> str:
    """First threshold (in descending order) the frequency reaches wins."""
    frequency = _finite(updates_per_day, "update frequency")
    for threshold, label in UPDATE_FREQUENCY_THRESHOLDS:
        if frequency >= threshold:
            return label
    return UPDATE_FREQUENCY_FALLBACK

def empty_tally(labels: Iterable[str]) -> Dict[str, int]:
    """Label -> 0 for every label, in order."""
    return {label: 0 for label in labels}

def tally(labels: Iterable[str], values: Iterable[Number], classify) -> Dict[str, int]:
    """
    Count values per bucket label.

    The result always holds every label in its fixed order, so labels with no
    values are reported as 0.
    """
    counts = empty_tally(labels)
    for value in values:
        counts[classify(value)] += 1
    return counts
