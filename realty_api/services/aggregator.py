"""
Dashboard aggregation.

Pulls scalar aggregates, populations and grouped counts from the listing store
in a single concurrent fan-out, then buckets and averages in process to build
the DashboardData payload. Nothing is cached between calls.
"""
from datetime import date, datetime, timedelta, timezone
from typing import Callable, Dict, Iterable, List, Optional
import asyncio
import logging

from realty_api.config import Settings
from realty_api.schemas.dashboard import (
    ActiveListingRow,
    ChartData,
    CreationCount,
    DashboardData,
    DashboardMetrics,
    ListingLifecycle,
    ListingTrends,
    LoanTypeCount,
    MortgageAnalytics,
    MortgageRow,
    StatusCount,
    TimeSeriesData
)
from realty_api.services.bucketing import (
    DAYS_ON_MARKET_SCHEME,
    INTEREST_RATE_SCHEME,
    MORTGAGE_AGE_SCHEME,
    MORTGAGE_BALANCE_SCHEME,
    PRICE_SCHEME,
    UPDATE_FREQUENCY_LABELS,
    bucket_days_on_market,
    bucket_interest_rate,
    bucket_mortgage_age,
    bucket_mortgage_balance,
    bucket_update_frequency,
    tally
)
from realty_api.store import ListingStore

logger = logging.getLogger(__name__)

DAY = timedelta(days=1)
SECONDS_PER_YEAR = 365 * 24 * 60 * 60
UNKNOWN_LOAN_TYPE = "Unknown"

def as_utc(moment: datetime) -> datetime:
    """Naive timestamps from the store are UTC."""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)

def whole_days(start: datetime, end: datetime) -> int:
    return (as_utc(end) - as_utc(start)) // DAY

def days_on_market(listing: ActiveListingRow, now: datetime) -> int:
    """
    Whole days from creation to the last status change, or to now when the
    listing has no status change. A status change recorded before creation
    is treated as missing.
    """
    end = listing.last_status_change or now
    if as_utc(end) < as_utc(listing.created_at):
        logger.warning(
            "Listing status change %s precedes creation %s, using current time",
            listing.last_status_change,
            listing.created_at
        )
        end = now
    return max(0, whole_days(listing.created_at, end))

def listing_age_days(listing: ActiveListingRow, now: datetime) -> int:
    """Whole days from creation to now, ignoring status changes."""
    return max(0, whole_days(listing.created_at, now))

def update_frequency(listing: ActiveListingRow, now: datetime) -> float:
    """Days since the last update per day of listing age (age floored at 1 day)."""
    last_update = listing.updated_at or listing.created_at
    days_since_update = max(0, whole_days(last_update, now))
    days_listed = max(1, whole_days(listing.created_at, now))
    return days_since_update / days_listed

def mortgage_age_years(mortgage: MortgageRow, now: datetime) -> float:
    return (as_utc(now) - as_utc(mortgage.origination_date)).total_seconds() / SECONDS_PER_YEAR

def average(values: List[float]) -> float:
    """Mean rounded to 2 decimals; 0 for an empty population."""
    if not values:
        return 0.0
    return round(sum(values) / len(values), 2)

def week_start(moment: datetime) -> date:
    """Sunday that starts the (UTC) calendar week containing moment."""
    day = as_utc(moment).date()
    return day - timedelta(days=(day.weekday() + 1) % 7)

def weekly_key(moment: datetime) -> str:
    return week_start(moment).isoformat()

def monthly_key(moment: datetime) -> str:
    return as_utc(moment).strftime("%Y-%m")

def group_time_series(
    rows: Iterable[CreationCount],
    key: Callable[[datetime], str]
) -> TimeSeriesData:
    """Sum counts per period key and sort ascending by key."""
    totals: Dict[str, int] = {}
    for row in rows:
        period = key(row.created_at)
        totals[period] = totals.get(period, 0) + row.count
    dates = sorted(totals)
    return TimeSeriesData(dates=dates, values=[totals[d] for d in dates])

def loan_type_chart(rows: List[LoanTypeCount], top_n: int) -> ChartData:
    top = sorted(rows, key=lambda r: r.count, reverse=True)[:top_n]
    return ChartData(
        labels=[r.loan_type or UNKNOWN_LOAN_TYPE for r in top],
        values=[r.count for r in top]
    )

def status_chart(rows: List[StatusCount]) -> ChartData:
    return ChartData(labels=[r.status for r in rows], values=[r.count for r in rows])

def mortgage_analytics(mortgages: List[MortgageRow], now: datetime) -> MortgageAnalytics:
    return MortgageAnalytics(
        age_distribution=ChartData.from_counts(tally(
            MORTGAGE_AGE_SCHEME.labels,
            (mortgage_age_years(m, now) for m in mortgages),
            bucket_mortgage_age
        )),
        balance_distribution=ChartData.from_counts(tally(
            MORTGAGE_BALANCE_SCHEME.labels,
            (m.current_balance for m in mortgages),
            bucket_mortgage_balance
        )),
        interest_rate_distribution=ChartData.from_counts(tally(
            INTEREST_RATE_SCHEME.labels,
            (m.interest_rate for m in mortgages),
            bucket_interest_rate
        ))
    )

class DashboardAggregator:
    """Builds the dashboard payload from the current store contents."""

    def __init__(self, store: ListingStore, settings: Settings):
        self.store = store
        self.new_listing_window = timedelta(days=settings.NEW_LISTING_WINDOW_DAYS)
        self.weekly_window = timedelta(days=settings.WEEKLY_TREND_WINDOW_DAYS)
        self.monthly_window = timedelta(days=settings.MONTHLY_TREND_WINDOW_DAYS)
        self.loan_type_top_n = settings.LOAN_TYPE_TOP_N

    async def price_distribution(self) -> ChartData:
        counts = await asyncio.gather(*(
            self.store.count_active_listings_in_price_range(r.minimum, r.maximum)
            for r in PRICE_SCHEME.ranges
        ))
        return ChartData(labels=list(PRICE_SCHEME.labels), values=list(counts))

    async def build(self, now: Optional[datetime] = None) -> DashboardData:
        """
        Compute the full dashboard.

        All store reads are issued concurrently; the first failure propagates
        and no partial payload is produced.
        """
        now = as_utc(now) if now else datetime.now(timezone.utc)
        logger.info("Building dashboard data as of %s", now.isoformat())

        (
            total_active,
            average_price,
            new_listings,
            active_listings,
            mortgages,
            loan_types,
            price_distribution,
            weekly_counts,
            monthly_counts,
            statuses,
        ) = await asyncio.gather(
            self.store.count_active_listings(),
            self.store.average_active_price(),
            self.store.count_active_listings_created_since(now - self.new_listing_window),
            self.store.fetch_active_listing_lifecycles(),
            self.store.fetch_mortgages(),
            self.store.loan_type_distribution(self.loan_type_top_n),
            self.price_distribution(),
            self.store.creation_counts_since(now - self.weekly_window),
            self.store.creation_counts_since(now - self.monthly_window),
            self.store.status_distribution(),
        )

        if not active_listings:
            logger.info("No active listings, lifecycle averages default to 0")

        market_days = [days_on_market(listing, now) for listing in active_listings]
        listed_days = [listing_age_days(listing, now) for listing in active_listings]
        frequencies = [update_frequency(listing, now) for listing in active_listings]

        data = DashboardData(
            total_listings=total_active,
            metrics=DashboardMetrics(
                average_price=round(average_price, 2),
                average_days_on_market=average(market_days),
                average_update_frequency=average(frequencies),
                total_new_listings_last_30_days=new_listings
            ),
            assumable_listings=loan_type_chart(loan_types, self.loan_type_top_n),
            price_distribution=price_distribution,
            listing_trends=ListingTrends(
                weekly=group_time_series(weekly_counts, weekly_key),
                monthly=group_time_series(monthly_counts, monthly_key)
            ),
            mortgage_analytics=mortgage_analytics(mortgages, now),
            geographic_data=[],
            listing_lifecycle=ListingLifecycle(
                status_distribution=status_chart(statuses),
                days_on_market_by_type=ChartData.from_counts(tally(
                    DAYS_ON_MARKET_SCHEME.labels, listed_days, bucket_days_on_market
                )),
                update_frequency=ChartData.from_counts(tally(
                    UPDATE_FREQUENCY_LABELS, frequencies, bucket_update_frequency
                ))
            )
        )

        logger.info(
            "Dashboard built: %d active listings, %d mortgages",
            total_active,
            len(mortgages)
        )
        logger.debug("Dashboard payload: %s", data)
        return data
