"""Company attribution and geolocation client."""

from .service import AttributionClient

__all__ = ["AttributionClient"]
