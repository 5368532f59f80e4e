from fastapi import APIRouter, Depends, status
import logging

from realty_api.config import Settings, get_settings
from realty_api.errors import ApiError, StoreError
from realty_api.schemas.dashboard import DashboardResponse
from realty_api.services.aggregator import DashboardAggregator
from realty_api.store import ListingStore, get_store

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="",
    tags=["dashboard"],
    responses={
        500: {"description": "Aggregation failed"}
    }
)

@router.get(
    "/dashboard",
    response_model=DashboardResponse,
    summary="Get dashboard analytics",
    description="""
    Computes the complete market analytics payload from the current store contents.

    Includes:
    - Active listing count, average price, average days on market and update frequency
    - Top assumable loan types among active listings
    - Price distribution across fixed ranges
    - Weekly (90 days) and monthly (365 days) listing creation trends
    - Mortgage age, balance and interest rate distributions
    - Listing status, days-on-market and update-frequency distributions

    The payload is recomputed on every request. Any store failure fails the whole request.
    """
)
async def get_dashboard(
    store: ListingStore = Depends(get_store),
    settings: Settings = Depends(get_settings)
) -> DashboardResponse:
    """Build the dashboard payload"""
    try:
        data = await DashboardAggregator(store, settings).build()
        return DashboardResponse(data=data)
    except StoreError as e:
        logger.error("Dashboard data fetch error: %s", str(e))
        raise ApiError(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "Failed to fetch dashboard data",
            details=str(e),
            code=e.code
        ) from e
    except Exception as e:
        logger.error("Dashboard aggregation failed: %s", str(e), exc_info=True)
        raise ApiError(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "Failed to fetch dashboard data",
            details=str(e)
        ) from e
