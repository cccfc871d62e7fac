"""Built-in sample inventory.

Served when the vehicle table cannot be read (or is empty) so the public
pages stay usable while the backend is unavailable.
"""

from __future__ import annotations

from apexauto._constants import DEFAULT_VEHICLE_IMAGE
from apexauto.models.vehicle import Vehicle

_SAMPLE_ROWS: list[dict[str, object]] = [
    {
        "id": "1",
        "make": "BMW",
        "model": "M3",
        "year": 2022,
        "price": 85000,
        "mileage": 15000,
        "vin": "WBA3B1C50DF123456",
        "status": "available",
        "specs": {"hp": 473, "torque": 600, "acceleration": "4.1s"},
        "features": ["Premium Sound", "Navigation", "Heated Seats"],
        "tags": ["NEW", "FEATURED"],
        "description": "High-performance luxury sedan",
    },
    {
        "id": "2",
        "make": "Mercedes",
        "model": "C63 AMG",
        "year": 2021,
        "price": 92000,
        "mileage": 8500,
        "vin": "WDD2050461F123456",
        "status": "available",
        "specs": {"hp": 503, "torque": 700, "acceleration": "3.9s"},
        "features": ["AMG Performance", "Premium Interior", "Sport Exhaust"],
        "tags": ["PERFORMANCE"],
        "description": "AMG performance sedan",
    },
    {
        "id": "3",
        "make": "PORSCHE",
        "model": "911 Turbo S",
        "year": 2023,
        "price": 245000,
        "mileage": 2500,
        "vin": "WP0AB2A99NS123456",
        "status": "available",
        "specs": {"hp": 640, "torque": 800, "acceleration": "2.7s"},
        "features": ["Sport Chrono", "Carbon Fiber", "Premium Audio"],
        "tags": ["NEW", "LUXURY"],
        "description": "Ultimate sports car",
    },
    {
        "id": "4",
        "make": "FERRARI",
        "model": "F8 Tributo",
        "year": 2022,
        "price": 325000,
        "mileage": 1200,
        "vin": "ZFF9A2A5000123456",
        "status": "available",
        "specs": {"hp": 710, "torque": 770, "acceleration": "2.9s"},
        "features": ["Carbon Fiber", "Racing Seats", "Track Package"],
        "tags": ["EXOTIC", "PERFORMANCE"],
        "description": "Exotic supercar",
    },
    {
        "id": "5",
        "make": "LAMBORGHINI",
        "model": "Huracan",
        "year": 2023,
        "price": 280000,
        "mileage": 800,
        "vin": "ZHWUC1ZF5NLA123456",
        "status": "available",
        "specs": {"hp": 630, "torque": 600, "acceleration": "3.2s"},
        "features": ["All-Wheel Drive", "Carbon Package", "Sport Exhaust"],
        "tags": ["NEW", "EXOTIC"],
        "description": "Italian supercar excellence",
    },
    {
        "id": "6",
        "make": "AUDI",
        "model": "RS6 Avant",
        "year": 2022,
        "price": 125000,
        "mileage": 12000,
        "vin": "WAUZZZ4G5NN123456",
        "status": "available",
        "specs": {"hp": 591, "torque": 800, "acceleration": "3.6s"},
        "features": ["Quattro AWD", "Sport Differential", "Air Suspension"],
        "tags": ["PERFORMANCE", "WAGON"],
        "description": "High-performance wagon",
    },
]

SAMPLE_VEHICLES: tuple[Vehicle, ...] = tuple(
    Vehicle.model_validate({**row, "images": [DEFAULT_VEHICLE_IMAGE]}) for row in _SAMPLE_ROWS
)
