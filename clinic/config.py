"""
Configuration management for the clinic appointments service.

This module provides centralized configuration using Pydantic settings
for type-safe environment variable management.
"""

from functools import lru_cache
from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application Configuration
    app_name: str = Field(default="Clinic Appointments API", alias="APP_NAME")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Directory Configuration
    directory_seed_path: Optional[str] = Field(default=None, alias="DIRECTORY_SEED_PATH")
    directory_api_url: Optional[str] = Field(default=None, alias="DIRECTORY_API_URL")
    directory_api_timeout: int = Field(default=10, alias="DIRECTORY_API_TIMEOUT")
    connection_pool_size: int = Field(default=50, alias="CONNECTION_POOL_SIZE")

    # Notification Configuration
    notification_webhook_url: Optional[str] = Field(
        default=None, alias="NOTIFICATION_WEBHOOK_URL"
    )

    # Server Configuration
    api_host: str = Field(default="0.0.0.0", alias="API_HOST")
    api_port: int = Field(default=8080, alias="API_PORT")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once,
    improving performance for repeated access.
    """
    return Settings()


# Weekday names as produced by date.strftime("%A"), indexed by date.weekday()
WEEKDAY_NAMES: List[str] = [
    "Monday",
    "Tuesday",
    "Wednesday",
    "Thursday",
    "Friday",
    "Saturday",
    "Sunday",
]

# Stored schedules use 12-hour clock times ("1:00 PM"); the API uses 24-hour "HH:MM"
TIME_FORMAT = "%H:%M"


# Sample directory data used when no seed file or remote directory is configured
SCHEDULE_TIME_SLOTS: List[str] = [
    "10:00 AM",
    "11:00 AM",
    "12:00 PM",
    "1:00 PM",
    "2:00 PM",
    "3:00 PM",
    "4:00 PM",
    "5:00 PM",
]

# Medical tests run on fixed day pairs, never on Fridays
SCHEDULE_DAY_PAIRS: List[List[str]] = [
    ["Saturday", "Tuesday"],
    ["Sunday", "Wednesday"],
    ["Monday", "Thursday"],
]

DOCTOR_CATALOG: List[dict] = [
    {
        "id": 1,
        "name": "Dr. Sarah Ahmed",
        "specialization": "Cardiology",
        "schedule": {
            "Sunday": ["9:00 AM", "10:00 AM", "11:00 AM"],
            "Tuesday": ["1:00 PM", "2:00 PM", "3:00 PM"],
            "Wednesday": ["1:00 PM", "2:00 PM"],
        },
    },
    {
        "id": 2,
        "name": "Dr. Omar Hassan",
        "specialization": "Dermatology",
        "schedule": {
            "Monday": ["9:00 AM", "9:30 AM", "10:00 AM", "10:30 AM"],
            "Thursday": ["4:00 PM", "5:00 PM", "6:00 PM"],
        },
    },
    {
        "id": 3,
        "name": "Dr. Lina Mostafa",
        "specialization": "Pediatrics",
        "schedule": None,
    },
]

MEDICAL_TEST_NAMES: List[str] = [
    "Blood Test",
    "Urine Test",
    "X-Ray",
    "MRI Scan",
    "Ultrasound",
    "ECG",
    "Blood Sugar Test",
    "Lipid Profile",
    "Liver Function Test",
    "Kidney Function Test",
]


def build_medical_test_catalog() -> List[dict]:
    """Build the sample medical tests, cycling through the fixed day pairs."""
    catalog = []
    for index, name in enumerate(MEDICAL_TEST_NAMES):
        days = SCHEDULE_DAY_PAIRS[index % len(SCHEDULE_DAY_PAIRS)]
        catalog.append(
            {
                "id": index + 1,
                "name": name,
                "schedule": {day: list(SCHEDULE_TIME_SLOTS) for day in days},
            }
        )
    return catalog


MEDICAL_TEST_CATALOG: List[dict] = build_medical_test_catalog()

SAMPLE_PATIENTS: List[dict] = [
    {"id": 7, "name": "Mona Ali", "api_token": "patient-7-token"},
    {"id": 9, "name": "Karim Nabil", "api_token": "patient-9-token"},
]
