"""
Services layer for the clinic appointments service.
"""

from .availability import AvailabilityEngine
from .directory import Directory, DirectoryClient, InMemoryDirectory
from .notifications import NotificationService
from .schedule import ScheduleResolver
from .store import ReservationStore, SlotConflictError

__all__ = [
    "AvailabilityEngine",
    "Directory",
    "DirectoryClient",
    "InMemoryDirectory",
    "NotificationService",
    "ScheduleResolver",
    "ReservationStore",
    "SlotConflictError",
]
