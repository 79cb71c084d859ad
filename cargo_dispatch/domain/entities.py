"""Value objects shared by the engine and the API layer."""

from __future__ import annotations

from dataclasses import dataclass

from .errors import InvalidInput


@dataclass(frozen=True)
class Location:
    latitude: float
    longitude: float

    def validate(self, label: str) -> None:
        if self.latitude is None or self.longitude is None:
            raise InvalidInput(f"{label} coordinates are required")
        if not -90 <= self.latitude <= 90 or not -180 <= self.longitude <= 180:
            raise InvalidInput(
                f"{label} coordinates are out of range",
                {"latitude": self.latitude, "longitude": self.longitude},
            )


@dataclass(frozen=True)
class Stop:
    """A pickup or destination: free-text address plus coordinates."""

    address: str
    location: Location

    @classmethod
    def of(cls, address: str, latitude: float, longitude: float) -> "Stop":
        return cls(address, Location(latitude, longitude))

    def validate(self, label: str) -> None:
        if not self.address or not self.address.strip():
            raise InvalidInput(f"{label} address is required")
        self.location.validate(label)
