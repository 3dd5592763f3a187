"""
Location updates and stop-sharing for employee records.
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from src.db.store import EmployeeStore, EmployeeNotFoundError
from src.geocoding.nominatim import GeocodeCache
from src.models.employee import Employee, UNKNOWN_CITY

logger = logging.getLogger(__name__)

CONFLICT_WINDOW = 10 * 60


class SharingConflictError(Exception):
    """The employee id is already being shared from somewhere else."""


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def format_timestamp(moment: datetime) -> str:
    return moment.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_timestamp(value: str) -> Optional[datetime]:
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def format_coordinate(value: float) -> str:
    text = f"{value:.7f}".rstrip("0").rstrip(".")
    return "0" if text == "-0" else text


class LocationService:
    def __init__(
        self,
        store: EmployeeStore,
        geocoder: GeocodeCache,
        clock: Callable[[], datetime] = utc_now,
        conflict_guard: bool = False,
        conflict_window: float = CONFLICT_WINDOW,
    ):
        self.store = store
        self.geocoder = geocoder
        self.clock = clock
        self.conflict_guard = conflict_guard
        self.conflict_window = timedelta(seconds=conflict_window)

    def exists(self, employee_id: str) -> bool:
        return self.store.exists(employee_id)

    def _check_conflict(self, employee: Employee, now: datetime):
        if not self.conflict_guard or not employee.is_sharing:
            return
        last_seen = parse_timestamp(employee.last_seen)
        if last_seen is None:
            return
        if now - last_seen < self.conflict_window:
            logger.warning(f"Rejected location update for {employee.id}: already shared at {employee.last_seen}")
            raise SharingConflictError(employee.id)

    def update_location(self, employee_id: str, latitude: float, longitude: float) -> str:
        """
        Record a new position for an existing employee and return the resolved city.

        Raises EmployeeNotFoundError for unknown ids (no record is created) and
        SharingConflictError when the conflict guard is enabled and the record was
        updated within the window. Geocoding problems never raise: the city falls back
        to "Unknown".
        """
        employee = self.store.get(employee_id)
        if employee is None:
            raise EmployeeNotFoundError(employee_id)
        # Checked before geocoding to avoid a wasted upstream call, then again under the lock
        self._check_conflict(employee, self.clock())

        city = self.geocoder.lookup(latitude, longitude)

        def apply(record: Employee):
            now = self.clock()
            self._check_conflict(record, now)
            record.latitude = format_coordinate(latitude)
            record.longitude = format_coordinate(longitude)
            record.city = city
            record.last_seen = format_timestamp(now)

        self.store.modify(employee_id, apply)
        logger.info(f"Location updated for {employee_id}: ({latitude}, {longitude}) in {city}")
        return city

    def stop_sharing(self, employee_id: str) -> bool:
        """Clear the live location fields. Unknown ids are a no-op; returns whether a record changed."""

        def clear(record: Employee):
            record.latitude = ""
            record.longitude = ""
            record.city = UNKNOWN_CITY
            record.last_seen = ""

        try:
            self.store.modify(employee_id, clear)
        except EmployeeNotFoundError:
            logger.info(f"Stop sharing requested for unknown employee {employee_id}")
            return False

        logger.info(f"Employee {employee_id} stopped sharing")
        return True
