"""
Driver Registry
===============
Driver candidate collaborator for the logistics stage.

The registry owns driver locations and reports each candidate's distance
to the delivery target; the logistics stage only filters and ranks.
"""

import math
from abc import ABC, abstractmethod
from typing import Optional

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field

from src.models.enums import DeliveryMode, DriverStatus, VehicleType


class DriverCandidate(BaseModel):
    """Driver as reported by the registry for one query."""

    model_config = ConfigDict(frozen=True)

    driver_id: str
    name: str = ""
    capacity_kg: float = Field(gt=0)
    rating: float = Field(ge=0, le=5)
    vehicle_type: VehicleType
    status: DriverStatus = DriverStatus.AVAILABLE
    location: str = ""
    distance_km: Optional[float] = Field(default=None, ge=0)
    pickup_eta_hours: float = Field(default=0.0, ge=0)


class DriverRegistry(ABC):
    """Driver registry query contract."""

    name: str = "driver_registry"

    @abstractmethod
    async def query(
        self,
        location: str,
        min_capacity_kg: float,
        mode: DeliveryMode,
    ) -> list[DriverCandidate]:
        """Candidates near location; empty list when none are registered."""
        pass


# Approximate coordinates (lat, lon) of common delivery targets
KNOWN_LOCATIONS: dict[str, tuple[float, float]] = {
    "mumbai": (19.076, 72.877),
    "pune": (18.520, 73.856),
    "nashik": (19.997, 73.790),
    "nagpur": (21.146, 79.088),
    "delhi": (28.704, 77.102),
    "bangalore": (12.972, 77.594),
    "bengaluru": (12.972, 77.594),
    "kolar": (13.136, 78.129),
    "mysore": (12.296, 76.639),
    "mysuru": (12.296, 76.639),
    "hubli": (15.365, 75.124),
    "hyderabad": (17.385, 78.487),
    "chennai": (13.083, 80.271),
    "kolkata": (22.573, 88.364),
    "ahmedabad": (23.023, 72.571),
}


def haversine_km(a: tuple[float, float], b: tuple[float, float]) -> float:
    """Great-circle distance between two (lat, lon) points."""
    lat1, lon1 = map(math.radians, a)
    lat2, lon2 = map(math.radians, b)
    h = (
        math.sin((lat2 - lat1) / 2) ** 2
        + math.cos(lat1) * math.cos(lat2) * math.sin((lon2 - lon1) / 2) ** 2
    )
    return 2 * 6371.0 * math.asin(math.sqrt(h))


class DriverRecord(BaseModel):
    """Registered driver with a home position."""

    driver_id: str
    name: str = ""
    capacity_kg: float = Field(gt=0)
    rating: float = Field(ge=0, le=5)
    vehicle_type: VehicleType
    status: DriverStatus = DriverStatus.AVAILABLE
    location: str
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    pickup_eta_hours: float = 0.0

    @property
    def coordinates(self) -> Optional[tuple[float, float]]:
        if self.latitude is not None and self.longitude is not None:
            return (self.latitude, self.longitude)
        return KNOWN_LOCATIONS.get(self.location.strip().lower())


class InMemoryDriverRegistry(DriverRegistry):
    """
    Registry backed by a list of DriverRecord.

    Usage:
        registry = InMemoryDriverRegistry([DriverRecord(...), ...])
        candidates = await registry.query("Mumbai", 110, DeliveryMode.STANDARD)
    """

    name = "in_memory_drivers"

    def __init__(
        self,
        drivers: Optional[list[DriverRecord]] = None,
        locations: Optional[dict[str, tuple[float, float]]] = None,
    ):
        self._drivers = list(drivers or [])
        self._locations = {**KNOWN_LOCATIONS, **{k.lower(): v for k, v in (locations or {}).items()}}

    async def query(
        self,
        location: str,
        min_capacity_kg: float,
        mode: DeliveryMode,
    ) -> list[DriverCandidate]:
        target = self._locations.get(location.strip().lower())
        if target is None:
            logger.debug(f"No coordinates for '{location}', distances unknown")

        candidates = []
        for driver in self._drivers:
            if driver.capacity_kg < min_capacity_kg:
                continue

            distance = None
            origin = driver.coordinates or self._locations.get(driver.location.strip().lower())
            if target is not None and origin is not None:
                distance = round(haversine_km(origin, target), 1)

            candidates.append(DriverCandidate(
                driver_id=driver.driver_id,
                name=driver.name,
                capacity_kg=driver.capacity_kg,
                rating=driver.rating,
                vehicle_type=driver.vehicle_type,
                status=driver.status,
                location=driver.location,
                distance_km=distance,
                pickup_eta_hours=driver.pickup_eta_hours,
            ))

        return candidates


def sample_fleet() -> list[DriverRecord]:
    """Demo fleet used when running on mock data."""
    rows = [
        ("DRV-001", "Ramesh Patil", 500, 4.6, VehicleType.REEFER_TRUCK, "Pune"),
        ("DRV-002", "Suresh Kumar", 250, 4.2, VehicleType.INSULATED_VAN, "Mumbai"),
        ("DRV-003", "Anil Shinde", 1000, 3.8, VehicleType.OPEN_TRUCK, "Nashik"),
        ("DRV-004", "Manjunath Gowda", 300, 4.8, VehicleType.REEFER_TRUCK, "Kolar"),
        ("DRV-005", "Ravi Naik", 150, 4.0, VehicleType.MINI_TRUCK, "Bangalore"),
        ("DRV-006", "Srinivas Rao", 800, 4.4, VehicleType.INSULATED_VAN, "Hyderabad"),
        ("DRV-007", "Prakash Jadhav", 120, 2.9, VehicleType.MINI_TRUCK, "Mumbai"),
        ("DRV-008", "Venkatesh Reddy", 600, 4.1, VehicleType.OPEN_TRUCK, "Mysore"),
    ]
    return [
        DriverRecord(
            driver_id=driver_id,
            name=name,
            capacity_kg=capacity,
            rating=rating,
            vehicle_type=vehicle,
            location=location,
        )
        for driver_id, name, capacity, rating, vehicle, location in rows
    ]
