# Overview: Service-layer operations for locations.

from __future__ import annotations

from ..extensions import db
from ..models import Location
from .concurrency import atomic, run_with_retry
from .errors import InvalidInputError
from .results import Result, capture


def create_location(*, name: str, address: str | None = None) -> Result:
    """
    Create a location. Names are unique (case-sensitive).

    Location management is an admin/bootstrap concern (CLI); no audit actor
    is required.
    """
    def _op():
        with atomic():
            if not isinstance(name, str) or not name.strip():
                raise InvalidInputError("Name is required")
            clean = name.strip()
            if Location.query.filter_by(name=clean).first() is not None:
                raise InvalidInputError(f"Location '{clean}' already exists")

            location = Location(name=clean, address=address)
            db.session.add(location)
            db.session.flush()
            return location

    return capture(lambda: run_with_retry(_op))


def get_location(location_id: int) -> Location | None:
    return db.session.get(Location, location_id)


def list_locations(active_only: bool = True) -> list[Location]:
    query = Location.query
    if active_only:
        query = query.filter_by(is_active=True)
    return query.order_by(Location.name.asc()).all()
