"""
Mock data and fixtures for Stalesweep tests.

Provides device records that mirror directory API payloads and a fake
directory client that records the calls the cleanup workflow makes.
"""
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Iterable, List, Optional

from stalesweep.exceptions import APIError, NotFoundError
from stalesweep.models import DeviceRecord

BASE_TIME = datetime(2024, 6, 1, 12, 0, 0, tzinfo=timezone.utc)


def create_device_payload(
    device_id: str = "dev-0001",
    display_name: str = "LAPTOP-0001",
    last_sign_in: Optional[str] = "2023-12-01T08:30:00Z",
    operating_system: str = "Windows",
) -> Dict[str, Any]:
    """Create a device object shaped like a directory API response row."""
    return {
        "id": device_id,
        "displayName": display_name,
        "approximateLastSignInDateTime": last_sign_in,
        "operatingSystem": operating_system,
    }


def create_mock_device(
    device_id: str = "dev-0001",
    display_name: str = "LAPTOP-0001",
    last_sign_in: Optional[datetime] = BASE_TIME - timedelta(days=200),
    operating_system: str = "Windows",
) -> DeviceRecord:
    return DeviceRecord(
        id=device_id,
        display_name=display_name,
        approximate_last_sign_in=last_sign_in,
        operating_system=operating_system,
    )


def create_mock_devices(count: int) -> List[DeviceRecord]:
    """Create ``count`` stale devices with distinct ids and staggered sign-ins."""
    return [
        create_mock_device(
            device_id=f"dev-{i:04d}",
            display_name=f"LAPTOP-{i:04d}",
            last_sign_in=None if i % 7 == 0 else BASE_TIME - timedelta(days=100 + i),
        )
        for i in range(1, count + 1)
    ]


class FakeDirectoryClient:
    """In-memory stand-in for DirectoryClient."""

    def __init__(
        self,
        records: Iterable[DeviceRecord] = (),
        not_found_ids: Iterable[str] = (),
        failing_ids: Iterable[str] = (),
        list_error: Optional[Exception] = None,
        interrupt_on: Optional[str] = None,
    ):
        self.records = list(records)
        self.not_found_ids = set(not_found_ids)
        self.failing_ids = set(failing_ids)
        self.list_error = list_error
        self.interrupt_on = interrupt_on
        self.list_calls: List[str] = []
        self.deleted: List[str] = []
        self.closed = False

    def list_stale(self, cutoff: str) -> List[DeviceRecord]:
        self.list_calls.append(cutoff)
        if self.list_error is not None:
            raise self.list_error
        return list(self.records)

    def delete(self, device_id: str) -> None:
        if device_id == self.interrupt_on:
            raise KeyboardInterrupt()
        if device_id in self.not_found_ids:
            raise NotFoundError(
                "DELETE: object not found",
                details="Resource does not exist or one of its queried "
                "reference-property objects are not present.",
                status_code=404,
                error_code="Request_ResourceNotFound",
            )
        if device_id in self.failing_ids:
            raise APIError("DELETE failed", details="Insufficient privileges", status_code=500)
        self.deleted.append(device_id)

    def close(self) -> None:
        self.closed = True

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()
