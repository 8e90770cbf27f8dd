"""Faker-based data generators for Locust load test scenarios.

Payloads match the field names expected by the API's Pydantic request
schemas. Coordinates are scattered around central Bengaluru so the
nearest-partner resolver always has candidates within a few kilometres.
"""

import random
import uuid

from faker import Faker

fake = Faker("en_IN")

CITY_CENTRE = (12.9716, 77.5946)

_PRODUCTS = [
    ("Ragi Flour", 90.0),
    ("Filter Coffee Powder", 240.0),
    ("Idli Batter", 80.0),
    ("Alphonso Mangoes", 450.0),
    ("Desi Ghee", 620.0),
    ("Curry Leaves", 15.0),
    ("Toor Dal", 160.0),
]


def unique_customer_id() -> str:
    """Generate customer ids like 'cust-lt-a1b2c3d4'."""
    return f"cust-lt-{uuid.uuid4().hex[:8]}"


def nearby_point(spread_km: float = 5.0) -> tuple[float, float]:
    """A (latitude, longitude) within roughly ``spread_km`` of the city centre."""
    degrees = spread_km / 111.0
    return (
        round(CITY_CENTRE[0] + random.uniform(-degrees, degrees), 6),
        round(CITY_CENTRE[1] + random.uniform(-degrees, degrees), 6),
    )


def vendor_data() -> dict:
    latitude, longitude = nearby_point()
    return {
        "business_name": f"{fake.last_name()} Provisions",
        "phone": fake.phone_number(),
        "latitude": latitude,
        "longitude": longitude,
    }


def partner_data() -> dict:
    return {
        "full_name": fake.name(),
        "phone": fake.phone_number(),
        "vehicle_type": random.choice(["bicycle", "scooter", "motorcycle"]),
        "vehicle_number": f"KA-{random.randint(1, 60):02d}-{fake.bothify('??').upper()}-{random.randint(1000, 9999)}",
    }


def location_data(spread_km: float = 5.0) -> dict:
    latitude, longitude = nearby_point(spread_km)
    return {"latitude": latitude, "longitude": longitude}


def address_data() -> dict:
    latitude, longitude = nearby_point(8.0)
    return {
        "full_address": fake.street_address(),
        "city": "Bengaluru",
        "state": "Karnataka",
        "pincode": f"560{random.randint(1, 99):03d}",
        "label": random.choice(["Home", "Work", "Parents"]),
        "latitude": latitude,
        "longitude": longitude,
    }


def order_data(vendor_id: str, address_id: str, item_count: int = 0) -> dict:
    """Checkout payload with 1-4 distinct products unless ``item_count`` is given."""
    count = item_count or random.randint(1, 4)
    products = random.sample(_PRODUCTS, k=min(count, len(_PRODUCTS)))
    return {
        "vendor_id": vendor_id,
        "address_id": address_id,
        "items": [
            {
                "product_id": f"prod-{name.lower().replace(' ', '-')}",
                "product_name": name,
                "unit_price": price,
                "quantity": random.randint(1, 3),
            }
            for name, price in products
        ],
        "payment_method": random.choice(["upi", "card", "cash"]),
    }
