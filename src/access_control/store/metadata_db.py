"""HTTP client for a remote metadata-db concept store."""

from __future__ import annotations

from datetime import datetime
from typing import Any

import httpx
import structlog

from access_control.errors import ConflictError, DependencyError, NotFoundError
from access_control.store.protocols import Concept

logger = structlog.get_logger()

_SERVICE = "metadata-db"


def _concept_from_json(data: dict[str, Any]) -> Concept:
    revision_date = data.get("revision-date")
    concept = Concept(
        concept_type=data["concept-type"],
        concept_id=data["concept-id"],
        revision_id=int(data["revision-id"]),
        provider_id=data["provider-id"],
        native_id=data["native-id"],
        metadata=data.get("metadata") or None,
        deleted=bool(data.get("deleted", False)),
        user_id=data.get("user-id"),
    )
    if revision_date:
        concept.revision_date = datetime.fromisoformat(revision_date.replace("Z", "+00:00"))
    return concept


class MetadataDbClient:
    """Async metadata-db client. Transport and 5xx failures raise DependencyError."""

    def __init__(self, base_url: str, timeout: float = 30.0):
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._http_client: httpx.AsyncClient | None = None

    async def _get_http_client(self) -> httpx.AsyncClient:
        if self._http_client is None or self._http_client.is_closed:
            self._http_client = httpx.AsyncClient(timeout=self._timeout)
        return self._http_client

    async def _request(
        self,
        method: str,
        path: str,
        passthrough: tuple[int, ...] = (),
        **kwargs: Any,
    ) -> httpx.Response:
        """Send a request; error statuses not listed in ``passthrough`` raise DependencyError."""
        client = await self._get_http_client()
        try:
            response = await client.request(method, f"{self._base_url}{path}", **kwargs)
        except httpx.HTTPError as e:
            logger.error("metadata_db_unreachable", path=path, error=str(e))
            raise DependencyError(_SERVICE, str(e)) from e
        if response.status_code >= 400 and response.status_code not in passthrough:
            logger.error("metadata_db_failed", path=path, status=response.status_code)
            raise DependencyError(_SERVICE, f"HTTP {response.status_code} from {path}")
        return response

    async def get_providers(self) -> list[str]:
        response = await self._request("GET", "/providers")
        return [p["provider-id"] for p in response.json()]

    async def provider_exists(self, provider_id: str) -> bool:
        return provider_id in await self.get_providers()

    async def find_collections(self, provider_id: str, entry_title: str) -> list[dict[str, Any]]:
        response = await self._request(
            "GET",
            "/concepts/search/collections",
            params={"provider-id": provider_id, "entry-title": entry_title, "latest": "true"},
        )
        return response.json()

    async def collection_exists(self, provider_id: str, entry_title: str) -> bool:
        return bool(await self.find_collections(provider_id, entry_title))

    async def save_concept(
        self,
        concept_type: str,
        provider_id: str,
        native_id: str,
        metadata: dict[str, Any],
        user_id: str | None = None,
        concept_id: str | None = None,
    ) -> Concept:
        body: dict[str, Any] = {
            "concept-type": concept_type,
            "provider-id": provider_id,
            "native-id": native_id,
            "metadata": metadata,
            "format": "application/json",
        }
        if user_id:
            body["user-id"] = user_id
        if concept_id:
            body["concept-id"] = concept_id

        response = await self._request("POST", "/concepts", passthrough=(404, 409), json=body)
        if response.status_code == 409:
            raise ConflictError(response.json().get("errors", ["Concept conflict"]))
        if response.status_code == 404:
            raise NotFoundError(response.json().get("errors", ["Concept not found"]))
        saved = response.json()
        return Concept(
            concept_type=concept_type,
            concept_id=saved["concept-id"],
            revision_id=int(saved["revision-id"]),
            provider_id=provider_id,
            native_id=native_id,
            metadata=metadata,
            user_id=user_id,
        )

    async def get_latest_concept(self, concept_id: str) -> Concept | None:
        response = await self._request("GET", f"/concepts/{concept_id}", passthrough=(404,))
        if response.status_code == 404:
            return None
        return _concept_from_json(response.json())

    async def find_latest_concepts(self, concept_type: str) -> list[Concept]:
        response = await self._request(
            "GET", f"/concepts/search/{concept_type}s", params={"latest": "true"}
        )
        concepts = [_concept_from_json(c) for c in response.json()]
        return [c for c in concepts if not c.deleted]

    async def delete_concept(self, concept_id: str, user_id: str | None = None) -> Concept:
        latest = await self.get_latest_concept(concept_id)
        if latest is None or latest.deleted:
            raise NotFoundError(f"Concept with concept-id [{concept_id}] could not be found.")
        params = {"user-id": user_id} if user_id else None
        response = await self._request("DELETE", f"/concepts/{concept_id}", params=params)
        deleted = response.json()
        return Concept(
            concept_type=latest.concept_type,
            concept_id=concept_id,
            revision_id=int(deleted["revision-id"]),
            provider_id=latest.provider_id,
            native_id=latest.native_id,
            metadata=None,
            deleted=True,
            user_id=user_id,
        )

    async def close(self) -> None:
        if self._http_client and not self._http_client.is_closed:
            await self._http_client.aclose()
