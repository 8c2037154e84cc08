"""
Directory Service - Read-only access to providers and patients.

Doctors, medical tests and patients are managed elsewhere; the
appointment core only reads them. Two implementations are provided:
an in-memory directory seeded from the sample catalog or a JSON file,
and an async HTTP client for a remote directory service.
"""

import json
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Iterable, Optional
from urllib.parse import quote

import httpx
from loguru import logger

from clinic.config import DOCTOR_CATALOG, MEDICAL_TEST_CATALOG, SAMPLE_PATIENTS, get_settings
from clinic.models.provider import Patient, Provider, ProviderKind, ProviderRef, RawSchedule

# URL segment per provider kind on the remote directory API
PROVIDER_PATHS = {
    ProviderKind.DOCTOR: "doctors",
    ProviderKind.MEDICAL_TEST: "medical-tests",
}


class Directory(ABC):
    """Read-only lookups the appointment core needs."""

    @abstractmethod
    async def get_provider(self, ref: ProviderRef) -> Optional[Provider]:
        """Get a provider, or None if it does not exist."""

    @abstractmethod
    async def get_patient_by_token(self, token: str) -> Optional[Patient]:
        """Resolve an API token to its patient."""

    async def provider_exists(self, ref: ProviderRef) -> bool:
        return await self.get_provider(ref) is not None

    async def get_provider_schedule(self, ref: ProviderRef) -> Optional[RawSchedule]:
        """
        Get a provider's stored schedule.

        Returns None if the provider does not exist. An existing provider
        without a schedule yields an empty mapping.
        """
        provider = await self.get_provider(ref)
        if provider is None:
            return None
        return provider.schedule if provider.schedule is not None else {}

    async def close(self) -> None:
        """Release any resources held by the directory."""


class InMemoryDirectory(Directory):
    """
    Directory backed by plain dictionaries.

    Used for local runs and tests; seeded from the sample catalog
    unless a seed file is given.
    """

    def __init__(
        self,
        doctors: Iterable[Provider] = (),
        medical_tests: Iterable[Provider] = (),
        patients: Iterable[Patient] = (),
    ):
        self._providers: Dict[ProviderRef, Provider] = {}
        self._patients: Dict[int, Patient] = {}
        for provider in list(doctors) + list(medical_tests):
            self.add_provider(provider)
        for patient in patients:
            self.add_patient(patient)

    @classmethod
    def from_records(
        cls,
        doctors: Iterable[dict],
        medical_tests: Iterable[dict],
        patients: Iterable[dict],
    ) -> "InMemoryDirectory":
        """Build a directory from raw catalog records."""
        return cls(
            doctors=[Provider(kind=ProviderKind.DOCTOR, **record) for record in doctors],
            medical_tests=[
                Provider(kind=ProviderKind.MEDICAL_TEST, **record) for record in medical_tests
            ],
            patients=[Patient(**record) for record in patients],
        )

    @classmethod
    def from_sample_catalog(cls) -> "InMemoryDirectory":
        return cls.from_records(DOCTOR_CATALOG, MEDICAL_TEST_CATALOG, SAMPLE_PATIENTS)

    @classmethod
    def from_file(cls, path: str) -> "InMemoryDirectory":
        """
        Load a directory from a JSON seed file.

        The file holds "doctors", "medical_tests" and "patients" lists
        shaped like the sample catalog records.
        """
        data = json.loads(Path(path).read_text(encoding="utf-8"))
        directory = cls.from_records(
            data.get("doctors", []),
            data.get("medical_tests", []),
            data.get("patients", []),
        )
        logger.info(
            f"Loaded directory from {path}: {len(directory._providers)} providers, "
            f"{len(directory._patients)} patients"
        )
        return directory

    def add_provider(self, provider: Provider) -> None:
        self._providers[provider.ref] = provider

    def add_patient(self, patient: Patient) -> None:
        self._patients[patient.id] = patient

    async def get_provider(self, ref: ProviderRef) -> Optional[Provider]:
        return self._providers.get(ref)

    async def get_patient_by_token(self, token: str) -> Optional[Patient]:
        for patient in self._patients.values():
            if patient.api_token and patient.api_token == token:
                return patient
        return None


class DirectoryClient(Directory):
    """
    Async client for a remote directory API.

    Implements connection pooling for efficient concurrent requests.
    A 404 from the remote service means "not found"; any other HTTP
    failure is logged and re-raised.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.settings = get_settings()
        self._base_url = base_url or self.settings.directory_api_url
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client with connection pooling."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self._base_url,
                timeout=httpx.Timeout(self.settings.directory_api_timeout),
                limits=httpx.Limits(
                    max_connections=self.settings.connection_pool_size,
                    max_keepalive_connections=self.settings.connection_pool_size // 2,
                ),
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def _get_json(self, path: str) -> Optional[dict]:
        client = await self._get_client()
        try:
            response = await client.get(path)
            if response.status_code == 404:
                return None
            response.raise_for_status()
            return response.json()

        except httpx.HTTPStatusError as e:
            logger.error(f"HTTP error fetching {path} from directory: {e}")
            raise
        except httpx.RequestError as e:
            logger.error(f"Request error fetching {path} from directory: {e}")
            raise

    async def get_provider(self, ref: ProviderRef) -> Optional[Provider]:
        data = await self._get_json(f"/api/v1/{PROVIDER_PATHS[ref.kind]}/{ref.id}")
        if data is None:
            return None
        data["kind"] = ref.kind
        return Provider(**data)

    async def get_patient_by_token(self, token: str) -> Optional[Patient]:
        data = await self._get_json(f"/api/v1/patients/by-token/{quote(token, safe='')}")
        if data is None:
            return None
        return Patient(**data)


def create_directory() -> Directory:
    """Build the directory selected by settings."""
    settings = get_settings()
    if settings.directory_api_url:
        logger.info(f"Using remote directory at {settings.directory_api_url}")
        return DirectoryClient()
    if settings.directory_seed_path:
        return InMemoryDirectory.from_file(settings.directory_seed_path)
    return InMemoryDirectory.from_sample_catalog()
