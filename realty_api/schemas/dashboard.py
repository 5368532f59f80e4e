from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional
from datetime import datetime
from decimal import Decimal

from realty_api.models.base import CamelModel

# Rows read from the store

class ActiveListingRow(BaseModel):
    """Lifecycle columns of an active listing"""
    created_at: datetime
    updated_at: Optional[datetime] = None
    last_status_change: Optional[datetime] = None
    denormalized_assumable_loan_type: Optional[str] = None

class MortgageRow(BaseModel):
    """Assumable mortgage columns used for distributions"""
    current_balance: Decimal
    interest_rate: Decimal
    origination_date: datetime
    remaining_term: Optional[int] = None

class LoanTypeCount(BaseModel):
    loan_type: Optional[str] = None
    count: int

class StatusCount(BaseModel):
    status: str
    count: int

class CreationCount(BaseModel):
    """Number of listings sharing one creation timestamp"""
    created_at: datetime
    count: int

# Payload sections

class ChartData(CamelModel):
    """Index-aligned labels and values"""
    labels: List[str] = Field(default_factory=list)
    values: List[int] = Field(default_factory=list)

    @classmethod
    def from_counts(cls, counts: Dict[str, int]) -> "ChartData":
        return cls(labels=list(counts.keys()), values=list(counts.values()))

class TimeSeriesData(CamelModel):
    """Date keys sorted ascending with their counts; empty periods are absent"""
    dates: List[str] = Field(default_factory=list)
    values: List[int] = Field(default_factory=list)

class DashboardMetrics(CamelModel):
    average_price: float
    average_days_on_market: float
    average_update_frequency: float
    total_new_listings_last_30_days: int = Field(..., alias="totalNewListingsLast30Days")

class ListingTrends(CamelModel):
    weekly: TimeSeriesData
    monthly: TimeSeriesData

class MortgageAnalytics(CamelModel):
    age_distribution: ChartData
    balance_distribution: ChartData
    interest_rate_distribution: ChartData

class ListingLifecycle(CamelModel):
    status_distribution: ChartData
    days_on_market_by_type: ChartData
    update_frequency: ChartData

class DashboardData(CamelModel):
    """Complete analytics payload, recomputed on every request"""
    total_listings: int
    metrics: DashboardMetrics
    assumable_listings: ChartData
    price_distribution: ChartData
    listing_trends: ListingTrends
    mortgage_analytics: MortgageAnalytics
    geographic_data: List[Dict[str, Any]] = Field(default_factory=list)
    listing_lifecycle: ListingLifecycle

class DashboardResponse(CamelModel):
    data: DashboardData
