"""
Employee record store backed by a delimited text file.

The file has a header row followed by one row per employee. Name, email and city are
always quoted with embedded quotes doubled; the other columns are written bare. Every
save rewrites the whole file.

All read-modify-write cycles go through one re-entrant lock so that concurrent requests
serialize instead of silently overwriting each other. Saves go to a temporary sibling
file which then replaces the original, so a crash mid-write leaves the previous
contents intact.
"""
import csv
import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Callable, List, Optional

from src.models.employee import Employee, FIELDNAMES

logger = logging.getLogger(__name__)

HEADER = ",".join(FIELDNAMES)


class StoreError(Exception):
    """The backing file could not be read or written."""


class DuplicateEmployeeError(Exception):
    pass


class EmployeeNotFoundError(Exception):
    pass


def _quote(value: str) -> str:
    return '"' + value.replace('"', '""') + '"'


def _bare(value: str) -> str:
    if any(c in value for c in ',"\r\n'):
        return _quote(value)
    return value


def format_row(employee: Employee) -> str:
    return ",".join([
        _bare(employee.id),
        _quote(employee.name),
        _quote(employee.email),
        _bare(employee.latitude),
        _bare(employee.longitude),
        _quote(employee.city),
        _bare(employee.last_seen),
    ])


def parse_rows(rows) -> List[Employee]:
    """Turn csv rows (header included) into employees, dropping malformed rows."""
    employees = []
    seen = set()

    for line_number, row in enumerate(rows, start=1):
        if line_number == 1:
            continue
        if len(row) < len(FIELDNAMES):
            if row:
                logger.warning(f"Skipping malformed row {line_number}: expected {len(FIELDNAMES)} fields, got {len(row)}")
            continue

        employee_id = row[0].strip()
        if not employee_id:
            logger.warning(f"Skipping row {line_number} with empty id")
            continue
        if employee_id in seen:
            logger.warning(f"Skipping row {line_number}: duplicate id {employee_id}")
            continue
        seen.add(employee_id)

        employees.append(Employee(
            id=employee_id,
            name=row[1],
            email=row[2],
            latitude=row[3],
            longitude=row[4],
            city=row[5],
            last_seen=row[6],
        ))

    return employees


class EmployeeStore:
    def __init__(self, path):
        self.path = Path(path)
        self._lock = threading.RLock()

    def ensure_file(self):
        """Create the data directory and a header-only file if they are missing."""
        with self._lock:
            try:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                if not self.path.exists():
                    self.path.write_text(HEADER + "\n", encoding="utf-8")
                    logger.info(f"Created initial employees file: {self.path}")
            except OSError as e:
                raise StoreError(f"Could not initialise {self.path}: {e}") from e

    def load(self) -> List[Employee]:
        with self._lock:
            try:
                # newline="" lets the csv reader accept LF, CRLF and bare CR endings
                with open(self.path, newline="", encoding="utf-8") as f:
                    return parse_rows(csv.reader(f))
            except FileNotFoundError:
                return []
            except (OSError, UnicodeDecodeError, csv.Error) as e:
                logger.error(f"Error reading employees file {self.path}: {e}")
                raise StoreError(f"Could not read employees file: {e}") from e

    def save(self, employees: List[Employee]):
        lines = [HEADER] + [format_row(employee) for employee in employees]
        content = "\n".join(lines) + "\n"

        with self._lock:
            tmp_name = None
            try:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                with tempfile.NamedTemporaryFile(
                    "w",
                    encoding="utf-8",
                    newline="",
                    dir=self.path.parent,
                    prefix=".employees-",
                    suffix=".tmp",
                    delete=False,
                ) as tmp:
                    tmp_name = tmp.name
                    tmp.write(content)
                os.replace(tmp_name, self.path)
            except OSError as e:
                if tmp_name and os.path.exists(tmp_name):
                    os.unlink(tmp_name)
                logger.error(f"Error writing employees file {self.path}: {e}")
                raise StoreError(f"Could not write employees file: {e}") from e

    def all(self) -> List[Employee]:
        return self.load()

    def get(self, employee_id: str) -> Optional[Employee]:
        for employee in self.load():
            if employee.id == employee_id:
                return employee
        return None

    def exists(self, employee_id: str) -> bool:
        return self.get(employee_id) is not None

    def create(self, employee: Employee) -> Employee:
        with self._lock:
            employees = self.load()
            if any(existing.id == employee.id for existing in employees):
                raise DuplicateEmployeeError(employee.id)
            employees.append(employee)
            self.save(employees)
        logger.info(f"Created employee {employee.id}")
        return employee

    def modify(self, employee_id: str, change: Callable[[Employee], None]) -> Employee:
        """
        Apply `change` to the stored record in place and persist the whole file.

        The callable runs under the write lock and may raise to abort the update, in
        which case nothing is written.
        """
        with self._lock:
            employees = self.load()
            for employee in employees:
                if employee.id == employee_id:
                    change(employee)
                    self.save(employees)
                    return employee
        raise EmployeeNotFoundError(employee_id)
