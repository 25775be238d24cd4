from __future__ import annotations

import logging

from ..errors import InvalidLocation
from .reference_data import LocationRecord, ReferenceDataProvider

logger = logging.getLogger(__name__)


class LocationResolver:
    def __init__(self, reference_data: ReferenceDataProvider) -> None:
        self.reference_data = reference_data

    def resolve(self, city: str, state: str) -> LocationRecord:
        location = self.reference_data.find_location(city, state)
        if location is None:
            logger.info("Location lookup failed: city=%r state=%r", city, state)
            raise InvalidLocation(city, state)
        return location
