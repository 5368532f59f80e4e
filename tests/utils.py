"""Common test data for unit tests."""
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Dict

# Saturday
NOW = datetime(2024, 6, 15, 12, 0, tzinfo=timezone.utc)

def iso(moment: datetime) -> str:
    return moment.isoformat()

def make_listing(**overrides) -> Dict[str, Any]:
    """Listing row as stored in the listings table."""
    created_at = overrides.pop("created_at", NOW - timedelta(days=10))
    row = {
        "id": uuid.uuid4().hex,
        "address": "123 Main St",
        "city": "Austin",
        "state": "TX",
        "zip_code": "78701",
        "price": 350000,
        "bedrooms": 3,
        "bathrooms": 2,
        "square_feet": 1800,
        "property_type": "SINGLE_FAMILY",
        "photo_urls": ["https://example.com/1.jpg"],
        "description": None,
        "latitude": None,
        "longitude": None,
        "status": "ACTIVE",
        "denormalized_assumable_loan_type": None,
        "created_at": iso(created_at),
        "updated_at": iso(created_at),
        "last_status_change": None,
    }
    for key, value in overrides.items():
        row[key] = iso(value) if isinstance(value, datetime) else value
    return row

def make_mortgage(**overrides) -> Dict[str, Any]:
    """Row of the assumable_mortgages table."""
    origination = overrides.pop("origination_date", NOW - timedelta(days=365 * 3))
    row = {
        "id": uuid.uuid4().hex,
        "listing_id": None,
        "loan_type": "FHA",
        "current_balance": "200000.00",
        "interest_rate": "3.25",
        "origination_date": iso(origination),
        "remaining_term": 300,
    }
    row.update(overrides)
    return row

