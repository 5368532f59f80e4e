from datetime import datetime
from typing import Any, Dict, List, Optional
import base64
import json
import logging

from fastapi import Request
from supabase._async.client import AsyncClient as SupabaseClient, create_client

from realty_api.config import Settings
from realty_api.schemas.dashboard import (
    ActiveListingRow,
    CreationCount,
    LoanTypeCount,
    MortgageRow,
    StatusCount
)
from realty_api.schemas.listing import (
    ACTIVE_STATUS,
    RECENT_LISTING_COLUMNS,
    SEARCH_COLUMNS
)
from realty_api.errors import StoreError
from realty_api.utils.supabase_utils import handle_supabase_operation

logger = logging.getLogger(__name__)

LISTINGS_TABLE = "listings"
MORTGAGES_TABLE = "assumable_mortgages"

def is_service_role_key(key: str) -> bool:
    """Check the role claim of a Supabase JWT key."""
    try:
        segment = key.split('.')[1]
        payload = json.loads(base64.urlsafe_b64decode(segment + '=' * (-len(segment) % 4)))
    except (IndexError, ValueError):
        return False
    return isinstance(payload, dict) and payload.get("role") == "service_role"

class ListingStore:
    """
    Read/write access to listings and assumable mortgages in Supabase.

    Constructed once by the application lifespan, which calls connect() on
    startup and close() on shutdown. Routers receive it through get_store.
    A ready client can be passed in directly, in which case connect() is a no-op.
    """

    def __init__(self, settings: Settings, client: Optional[SupabaseClient] = None):
        self.settings = settings
        self._client = client
        self._owns_client = client is None

    @property
    def client(self) -> SupabaseClient:
        if self._client is None:
            raise RuntimeError("ListingStore is not connected")
        return self._client

    @property
    def is_connected(self) -> bool:
        return self._client is not None

    async def connect(self) -> None:
        if self._client is not None:
            return
        if self.settings.REQUIRE_SERVICE_ROLE_KEY and not is_service_role_key(self.settings.SUPABASE_KEY):
            raise ValueError("Invalid Supabase key - must be a service role key")
        try:
            logger.info("Initializing Supabase client for %s", self.settings.SUPABASE_URL)
            self._client = await create_client(
                self.settings.SUPABASE_URL,
                self.settings.SUPABASE_KEY
            )
            self._owns_client = True
        except Exception as e:
            logger.error(f"Failed to initialize Supabase client: {str(e)}")
            raise

    async def close(self) -> None:
        if self._client is None:
            return
        try:
            if self._owns_client:
                await self._client.postgrest.aclose()
        except Exception as e:
            logger.error(f"Error during Supabase cleanup: {str(e)}")
        finally:
            self._client = None

    # Dashboard scalars

    async def count_active_listings(self) -> int:
        result = await handle_supabase_operation(
            "count active listings",
            self.client.table(LISTINGS_TABLE)
                .select("id", count="exact")
                .eq("status", ACTIVE_STATUS)
                .execute(),
            "Failed to count active listings"
        )
        return result.count or 0

    async def count_active_listings_created_since(self, since: datetime) -> int:
        result = await handle_supabase_operation(
            "count new active listings",
            self.client.table(LISTINGS_TABLE)
                .select("id", count="exact")
                .eq("status", ACTIVE_STATUS)
                .gte("created_at", since.isoformat())
                .execute(),
            "Failed to count new active listings"
        )
        return result.count or 0

    async def count_active_listings_in_price_range(
        self,
        minimum: float,
        maximum: Optional[float]
    ) -> int:
        """Count active listings priced in [minimum, maximum); maximum None is unbounded."""
        query = self.client.table(LISTINGS_TABLE) \
            .select("id", count="exact") \
            .eq("status", ACTIVE_STATUS) \
            .gte("price", minimum)
        if maximum is not None:
            query = query.lt("price", maximum)
        result = await handle_supabase_operation(
            f"count active listings priced from {minimum}",
            query.execute(),
            "Failed to count listings in price range"
        )
        return result.count or 0

    async def average_active_price(self) -> float:
        result = await handle_supabase_operation(
            "average active listing price",
            self.client.rpc("get_average_active_price", {}).execute(),
            "Failed to compute average listing price"
        )
        return float(result.data) if result.data is not None else 0.0

    # Dashboard populations

    async def fetch_active_listing_lifecycles(self) -> List[ActiveListingRow]:
        result = await handle_supabase_operation(
            "fetch active listing lifecycles",
            self.client.table(LISTINGS_TABLE)
                .select("created_at, updated_at, last_status_change, denormalized_assumable_loan_type")
                .eq("status", ACTIVE_STATUS)
                .execute(),
            "Failed to fetch active listings"
        )
        return [ActiveListingRow(**row) for row in result.data or []]

    async def fetch_mortgages(self) -> List[MortgageRow]:
        result = await handle_supabase_operation(
            "fetch assumable mortgages",
            self.client.table(MORTGAGES_TABLE)
                .select("current_balance, interest_rate, origination_date, remaining_term")
                .execute(),
            "Failed to fetch assumable mortgages"
        )
        return [MortgageRow(**row) for row in result.data or []]

    async def loan_type_distribution(self, top_n: int) -> List[LoanTypeCount]:
        result = await handle_supabase_operation(
            "group active listings by loan type",
            self.client.rpc("get_loan_type_distribution", {"top_n": top_n}).execute(),
            "Failed to fetch loan type distribution"
        )
        return [LoanTypeCount(**row) for row in result.data or []]

    async def status_distribution(self) -> List[StatusCount]:
        result = await handle_supabase_operation(
            "group listings by status",
            self.client.rpc("get_listing_status_distribution", {}).execute(),
            "Failed to fetch status distribution"
        )
        return [StatusCount(**row) for row in result.data or []]

    async def creation_counts_since(self, since: datetime) -> List[CreationCount]:
        result = await handle_supabase_operation(
            "count listings per creation timestamp",
            self.client.rpc(
                "get_listing_creation_counts",
                {"start_date": since.isoformat()}
            ).execute(),
            "Failed to fetch listing creation counts"
        )
        return [CreationCount(**row) for row in result.data or []]

    # Listing CRUD

    async def list_listings(self) -> List[Dict[str, Any]]:
        result = await handle_supabase_operation(
            "list listings",
            self.client.table(LISTINGS_TABLE)
                .select("*")
                .order("created_at", desc=True)
                .execute(),
            "Failed to list listings"
        )
        return result.data or []

    async def get_listing(self, listing_id: str) -> Optional[Dict[str, Any]]:
        result = await handle_supabase_operation(
            f"fetch listing {listing_id}",
            self.client.table(LISTINGS_TABLE)
                .select("*")
                .eq("id", listing_id)
                .limit(1)
                .execute(),
            f"Failed to fetch listing {listing_id}"
        )
        return result.data[0] if result.data else None

    async def search_listings(self, text: str) -> List[Dict[str, Any]]:
        # PostgREST reserves these characters inside or() filters
        term = "".join(ch for ch in text if ch not in ",()*%").strip()
        if not term:
            return await self.list_listings()
        condition = ",".join(f"{column}.ilike.*{term}*" for column in SEARCH_COLUMNS)
        result = await handle_supabase_operation(
            f"search listings for '{term}'",
            self.client.table(LISTINGS_TABLE)
                .select("*")
                .or_(condition)
                .order("created_at", desc=True)
                .execute(),
            "Failed to search listings"
        )
        return result.data or []

    async def create_listing(self, values: Dict[str, Any]) -> Dict[str, Any]:
        result = await handle_supabase_operation(
            "create listing",
            self.client.table(LISTINGS_TABLE).insert(values).execute(),
            "Failed to create listing"
        )
        if not result.data:
            _raise_no_rows("create listing")
        return result.data[0]

    async def update_listing(self, listing_id: str, values: Dict[str, Any]) -> Dict[str, Any]:
        result = await handle_supabase_operation(
            f"update listing {listing_id}",
            self.client.table(LISTINGS_TABLE)
                .update(values)
                .eq("id", listing_id)
                .execute(),
            f"Failed to update listing {listing_id}"
        )
        if not result.data:
            _raise_no_rows(f"update listing {listing_id}")
        return result.data[0]

    async def delete_listing(self, listing_id: str) -> None:
        await handle_supabase_operation(
            f"delete listing {listing_id}",
            self.client.table(LISTINGS_TABLE)
                .delete()
                .eq("id", listing_id)
                .execute(),
            f"Failed to delete listing {listing_id}"
        )

    async def recent_listings(self, limit: int) -> List[Dict[str, Any]]:
        result = await handle_supabase_operation(
            "fetch recent listings",
            self.client.table(LISTINGS_TABLE)
                .select(RECENT_LISTING_COLUMNS)
                .order("created_at", desc=True)
                .limit(limit)
                .execute(),
            "Failed to fetch recent listings"
        )
        return result.data or []

def _raise_no_rows(operation: str):
    logger.error(f"No data returned after {operation}")
    raise StoreError(operation, f"No rows returned by {operation}")

def get_store(request: Request) -> ListingStore:
    """Dependency returning the store owned by the running application."""
    return request.app.state.store
