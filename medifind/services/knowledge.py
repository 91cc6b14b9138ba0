"""Client for the generative-AI knowledge service (Gemini REST API).

Every call asks the model for JSON matching a fixed schema with an explicit
``found`` flag, and the reply is validated with pydantic. A model that cannot
answer says ``found: false`` instead of us sniffing its prose for apologies.
"""
from __future__ import annotations

import logging
from typing import Any, Optional, Protocol, TypeVar

import httpx
from pydantic import BaseModel, ValidationError, model_validator

from medifind.core.config import get_settings
from medifind.schemas.pharmacies import Location, MedicineInfo

logger = logging.getLogger(__name__)

PayloadT = TypeVar("PayloadT", bound=BaseModel)


class KnowledgeServiceError(Exception):
    """The knowledge service failed or returned something unusable."""


class KnowledgeService(Protocol):
    async def describe_medicine(self, name: str) -> Optional[MedicineInfo]:
        ...


class _MedicinePayload(BaseModel):
    found: bool
    description: Optional[str] = None
    primaryUse: Optional[str] = None
    commonForms: Optional[str] = None

    @model_validator(mode="after")
    def _require_fields_when_found(self) -> "_MedicinePayload":
        if self.found and not (self.description and self.description.strip()):
            raise ValueError("description is required when found is true")
        return self


class _GeocodePayload(BaseModel):
    found: bool
    lat: Optional[float] = None
    lng: Optional[float] = None

    @model_validator(mode="after")
    def _require_coordinates_when_found(self) -> "_GeocodePayload":
        if self.found and (self.lat is None or self.lng is None):
            raise ValueError("lat and lng are required when found is true")
        return self


class _PlacePayload(BaseModel):
    found: bool
    name: Optional[str] = None


_MEDICINE_SCHEMA: dict[str, Any] = {
    "type": "OBJECT",
    "properties": {
        "found": {"type": "BOOLEAN", "description": "False when there is no reliable information."},
        "description": {"type": "STRING", "description": "One short paragraph for a layperson."},
        "primaryUse": {"type": "STRING", "description": "What the medicine treats."},
        "commonForms": {"type": "STRING", "description": "Common forms, e.g. tablets, syrup."},
    },
    "required": ["found"],
}

_GEOCODE_SCHEMA: dict[str, Any] = {
    "type": "OBJECT",
    "properties": {
        "found": {"type": "BOOLEAN"},
        "lat": {"type": "NUMBER", "description": "The latitude of the address."},
        "lng": {"type": "NUMBER", "description": "The longitude of the address."},
    },
    "required": ["found"],
}

_PLACE_SCHEMA: dict[str, Any] = {
    "type": "OBJECT",
    "properties": {
        "found": {"type": "BOOLEAN"},
        "name": {"type": "STRING", "description": "Neighbourhood and city, e.g. 'Koramangala, Bengaluru'."},
    },
    "required": ["found"],
}


class GeminiKnowledgeClient:
    """Knowledge service backed by Gemini ``generateContent`` with JSON output."""

    def __init__(
        self,
        api_key: str,
        *,
        model: str = "gemini-2.5-flash",
        base_url: str = "https://generativelanguage.googleapis.com/v1beta",
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._api_key = api_key
        self._model = model
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._transport = transport

    async def _generate(
        self,
        prompt: str,
        schema: dict[str, Any],
        payload_model: type[PayloadT],
        *,
        temperature: float = 0.2,
    ) -> PayloadT:
        url = f"{self._base_url}/models/{self._model}:generateContent"
        body = {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": {
                "responseMimeType": "application/json",
                "responseSchema": schema,
                "temperature": temperature,
            },
        }
        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                response = await client.post(url, json=body, headers={"x-goog-api-key": self._api_key})
                response.raise_for_status()
            data = response.json()
            text = data["candidates"][0]["content"]["parts"][0]["text"]
            return payload_model.model_validate_json(text)
        except httpx.HTTPError as exc:
            raise KnowledgeServiceError(f"Knowledge service request failed: {exc}") from exc
        except (KeyError, IndexError, TypeError, ValueError) as exc:
            # ValidationError and JSONDecodeError are both ValueErrors
            raise KnowledgeServiceError(f"Malformed knowledge service response: {exc}") from exc

    async def describe_medicine(self, name: str) -> Optional[MedicineInfo]:
        """Return a short description of a medicine, or None when the model has none."""
        prompt = (
            f'Describe the medicine "{name}" for a layperson: what it is, its primary use '
            "and its common forms. If you have no reliable information about it, set found to false."
        )
        payload = await self._generate(prompt, _MEDICINE_SCHEMA, _MedicinePayload, temperature=0.4)
        if not payload.found:
            return None
        return MedicineInfo(
            description=payload.description.strip(),
            primary_use=(payload.primaryUse or "").strip(),
            common_forms=(payload.commonForms or "").strip(),
        )

    async def geocode_address(self, address: str) -> Location:
        """Convert a street address to coordinates.

        Raises:
            KnowledgeServiceError: If the address cannot be resolved
        """
        prompt = (
            "You are a geocoding API. Convert this address to latitude and longitude: "
            f'"{address}". If you cannot determine the coordinates, set found to false.'
        )
        payload = await self._generate(prompt, _GEOCODE_SCHEMA, _GeocodePayload, temperature=0.0)
        if not payload.found:
            raise KnowledgeServiceError(f"Could not geocode address: {address}")
        try:
            return Location(lat=payload.lat, lng=payload.lng)
        except ValidationError as exc:
            raise KnowledgeServiceError(f"Geocoder returned invalid coordinates for {address}") from exc

    async def reverse_geocode(self, lat: float, lng: float) -> str:
        """Return a short human-readable place name for coordinates.

        Raises:
            KnowledgeServiceError: If no place name is available
        """
        prompt = (
            f"Give the neighbourhood and city for latitude {lat}, longitude {lng}. "
            "If you cannot determine it, set found to false."
        )
        payload = await self._generate(prompt, _PLACE_SCHEMA, _PlacePayload, temperature=0.0)
        if not payload.found or not payload.name or not payload.name.strip():
            raise KnowledgeServiceError(f"Could not reverse geocode {lat},{lng}")
        return payload.name.strip()


def get_knowledge_service() -> Optional[GeminiKnowledgeClient]:
    """FastAPI dependency; None when no API key is configured."""
    settings = get_settings()
    if not settings.gemini_api_key:
        logger.debug("GEMINI_API_KEY not set; knowledge service disabled")
        return None
    return GeminiKnowledgeClient(
        settings.gemini_api_key,
        model=settings.gemini_model,
        base_url=settings.gemini_base_url,
        timeout=settings.gemini_timeout_seconds,
    )


__all__ = [
    "KnowledgeService",
    "KnowledgeServiceError",
    "GeminiKnowledgeClient",
    "get_knowledge_service",
]
