from fastapi import APIRouter, Depends, Query, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.routing import APIRoute
from typing import Callable, List, Optional, Union
import logging

from realty_api.config import Settings, get_settings
from realty_api.errors import ApiError, validation_error_details
from realty_api.schemas.listing import (
    ListingCreate,
    ListingResponse,
    ListingUpdate,
    MessageResponse,
    RecentListing
)
from realty_api.store import ListingStore, get_store

logger = logging.getLogger(__name__)

FETCH_FAILED = "Failed to fetch listings"
FETCH_RECENT_FAILED = "Failed to fetch recent listings"
CREATE_FAILED = "Failed to create listing"
UPDATE_FAILED = "Failed to update listing"
DELETE_FAILED = "Failed to delete listing"

class ListingsRoute(APIRoute):
    """Reports malformed requests as the endpoint's 500 failure instead of a 422."""

    def get_route_handler(self) -> Callable:
        handler = super().get_route_handler()
        if "POST" in self.methods:
            failure = CREATE_FAILED
        elif "PUT" in self.methods:
            failure = UPDATE_FAILED
        elif "DELETE" in self.methods:
            failure = DELETE_FAILED
        elif self.path.endswith("/recent"):
            failure = FETCH_RECENT_FAILED
        else:
            failure = FETCH_FAILED

        async def route_handler(request: Request):
            try:
                return await handler(request)
            except RequestValidationError as e:
                details = validation_error_details(e)
                logger.warning(
                    "Invalid listings request",
                    extra={"path": request.url.path, "method": request.method, "errors": details}
                )
                raise ApiError(status.HTTP_500_INTERNAL_SERVER_ERROR, failure, details=details) from e

        return route_handler

router = APIRouter(
    prefix="/listings",
    tags=["listings"],
    route_class=ListingsRoute,
    responses={
        500: {"description": "Internal server error"}
    }
)

# Read
@router.get(
    "",
    response_model=Union[ListingResponse, List[ListingResponse], None],
    summary="Fetch listings",
    description="""
    Fetches listings in one of three modes:
    - id: a single listing by ID (null if it does not exist)
    - query: listings whose address, city, state, zip code or property type match the text
    - neither: all listings, newest first
    """
)
async def get_listings(
    id: Optional[str] = Query(None, description="Fetch a single listing by ID"),
    query: Optional[str] = Query(None, description="Search text"),
    store: ListingStore = Depends(get_store)
) -> Union[ListingResponse, List[ListingResponse], None]:
    """Fetch one, matching, or all listings."""
    try:
        if id:
            listing = await store.get_listing(id)
            if listing is None:
                logger.info(f"Listing {id} not found")
                return None
            return ListingResponse(**listing)

        if query:
            rows = await store.search_listings(query)
            logger.info(f"Found {len(rows)} listings matching '{query}'")
            return [ListingResponse(**row) for row in rows]

        rows = await store.list_listings()
        logger.info(f"Found {len(rows)} listings")
        return [ListingResponse(**row) for row in rows]
    except Exception as e:
        logger.error("Error fetching listings: %s", str(e))
        raise ApiError(status.HTTP_500_INTERNAL_SERVER_ERROR, FETCH_FAILED) from e

@router.get(
    "/recent",
    response_model=List[RecentListing],
    summary="Most recent listings",
    description="""
    Returns the 10 most recently created listings, newest first, with a fixed set of fields:
    id, address, city, state, price, bedrooms, bathrooms, squareFeet, propertyType,
    photoUrls, status and createdAt.
    """
)
async def get_recent_listings(
    store: ListingStore = Depends(get_store),
    settings: Settings = Depends(get_settings)
) -> List[RecentListing]:
    try:
        rows = await store.recent_listings(settings.RECENT_LISTINGS_LIMIT)
        return [RecentListing(**row) for row in rows]
    except Exception as e:
        logger.error("Error fetching recent listings: %s", str(e))
        raise ApiError(status.HTTP_500_INTERNAL_SERVER_ERROR, FETCH_RECENT_FAILED) from e

# Create
@router.post(
    "",
    response_model=ListingResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a listing"
)
async def create_listing(
    listing: ListingCreate,
    store: ListingStore = Depends(get_store)
) -> ListingResponse:
    """Create a new listing."""
    try:
        created = await store.create_listing(listing.model_dump(mode="json"))
        response = ListingResponse(**created)
    except Exception as e:
        logger.error("Error creating listing: %s", str(e))
        raise ApiError(status.HTTP_500_INTERNAL_SERVER_ERROR, CREATE_FAILED) from e

    logger.info(f"Successfully created listing {response.id}")
    return response

# Update
@router.put(
    "",
    response_model=ListingResponse,
    summary="Update a listing",
    description="""
    Updates the listing identified by the id in the body. Only fields present in the
    body are written.
    """
)
async def update_listing(
    listing: ListingUpdate,
    store: ListingStore = Depends(get_store)
) -> ListingResponse:
    """Update an existing listing."""
    update_data = listing.model_dump(mode="json", exclude_unset=True, exclude={"id"})
    logger.info(
        "Updating listing",
        extra={
            "listing_id": listing.id,
            "fields_to_update": list(update_data.keys())
        }
    )

    try:
        if not update_data:
            existing = await store.get_listing(listing.id)
            if existing is None:
                raise LookupError(f"Listing {listing.id} not found")
            return ListingResponse(**existing)
        updated = await store.update_listing(listing.id, update_data)
        response = ListingResponse(**updated)
    except Exception as e:
        logger.error("Error updating listing %s: %s", listing.id, str(e))
        raise ApiError(status.HTTP_500_INTERNAL_SERVER_ERROR, UPDATE_FAILED) from e

    logger.info(f"Successfully updated listing {listing.id}")
    return response

# Delete
@router.delete(
    "",
    response_model=MessageResponse,
    summary="Delete a listing",
    responses={400: {"description": "ID is required"}}
)
async def delete_listing(
    id: Optional[str] = Query(None, description="ID of the listing to delete"),
    store: ListingStore = Depends(get_store)
) -> MessageResponse:
    """Delete a listing by ID."""
    if not id:
        raise ApiError(status.HTTP_400_BAD_REQUEST, "ID is required")

    try:
        await store.delete_listing(id)
    except Exception as e:
        logger.error("Error deleting listing %s: %s", id, str(e))
        raise ApiError(status.HTTP_500_INTERNAL_SERVER_ERROR, DELETE_FAILED) from e

    logger.info(f"Successfully deleted listing {id}")
    return MessageResponse(message="Listing deleted successfully")
