"""HTTP client for the roadmap REST API."""

from collections.abc import Sequence
from typing import Any

import httpx

from roadmap_admin.core.config import Settings, get_settings
from roadmap_admin.core.errors import FetchFailed
from roadmap_admin.core.logging import get_logger
from roadmap_admin.schemas.roadmap import ReorderPayload
from roadmap_admin.services.tree_ops import CHILD_FIELDS, NodePath

logger = get_logger(__name__)


def collection_path(parent_path: NodePath) -> str:
    """URL of the sibling collection under ``parent_path``.

    ``()`` → ``/roadmaps``, ``("r1",)`` → ``/roadmaps/r1/levels``,
    ``("r1", "l1")`` → ``/roadmaps/r1/levels/l1/milestones`` and so on.
    """
    url = "/roadmaps"
    for depth, node_id in enumerate(parent_path):
        url += f"/{node_id}/{CHILD_FIELDS[depth]}"
    return url


class RoadmapApiClient:
    """Async client for the roadmap collaborator API.

    Every transport error or non-2xx response is raised as ``FetchFailed``.
    """

    def __init__(
        self,
        base_url: str,
        token: str | None = None,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.client = httpx.AsyncClient(
            base_url=self.base_url,
            headers=self._headers(),
            timeout=timeout,
            transport=transport,
        )

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "RoadmapApiClient":
        settings = settings or get_settings()
        return cls(settings.API_BASE_URL, token=settings.API_TOKEN, timeout=settings.REQUEST_TIMEOUT)

    def _headers(self) -> dict:
        """Build request headers."""
        headers = {"Content-Type": "application/json", "Accept": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    async def _request(self, method: str, path: str, json: Any = None) -> Any:
        try:
            res = await self.client.request(method, path, json=json)
            res.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.warning(
                "API call rejected",
                method=method,
                path=path,
                status_code=e.response.status_code,
            )
            raise FetchFailed(
                f"{method} {path} failed with status {e.response.status_code}",
                status_code=e.response.status_code,
            ) from e
        except httpx.HTTPError as e:
            logger.warning("API call failed", method=method, path=path, error=str(e))
            raise FetchFailed(f"{method} {path} failed: {e}") from e

        if not res.content:
            return None
        try:
            return res.json()
        except ValueError as e:
            raise FetchFailed(f"{method} {path} returned a non-JSON body") from e

    # Roadmaps

    async def list_roadmaps(self) -> list[dict]:
        """``GET /roadmaps``: every roadmap with its full nested tree."""
        data = await self._request("GET", "/roadmaps")
        if not isinstance(data, list):
            raise FetchFailed("GET /roadmaps did not return a list")
        return data

    async def save_roadmap(self, body: dict) -> Any:
        """``POST /roadmaps``: create, or update when ``body`` has an id."""
        return await self._request("POST", "/roadmaps", json=body)

    async def patch_roadmap(self, roadmap_id: str, fields: dict) -> Any:
        """``PATCH /roadmaps/{id}``: partial update of roadmap-level fields."""
        return await self._request("PATCH", f"/roadmaps/{roadmap_id}", json=fields)

    async def delete_roadmap(self, roadmap_id: str) -> None:
        await self._request("DELETE", f"/roadmaps/{roadmap_id}")

    async def get_stats(self) -> dict:
        """``GET /roadmaps/stats``: aggregate counts."""
        return await self._request("GET", "/roadmaps/stats")

    # Nested collections (levels, milestones, challenges)

    async def list_children(self, parent_path: NodePath) -> list[dict]:
        data = await self._request("GET", collection_path(parent_path))
        if not isinstance(data, list):
            raise FetchFailed(f"GET {collection_path(parent_path)} did not return a list")
        return data

    async def save_child(self, parent_path: NodePath, body: dict) -> Any:
        """POST a child; the server creates it, or updates it when ``body`` has an id.

        The response is either the saved entity or the whole sibling list.
        """
        return await self._request("POST", collection_path(parent_path), json=body)

    async def delete_child(self, parent_path: NodePath, child_id: str) -> None:
        await self._request("DELETE", f"{collection_path(parent_path)}/{child_id}")

    async def reorder_children(self, parent_path: NodePath, payload: ReorderPayload) -> Any:
        return await self._request(
            "POST", f"{collection_path(parent_path)}/reorder", json=payload.model_dump()
        )

    async def delete_entity(self, path: NodePath) -> None:
        """Delete the node at ``path`` through its collection endpoint."""
        if len(path) == 1:
            await self.delete_roadmap(path[0])
        else:
            await self.delete_child(path[:-1], path[-1])

    async def aclose(self) -> None:
        """Close client."""
        await self.client.aclose()

    async def __aenter__(self) -> "RoadmapApiClient":
        return self

    async def __aexit__(self, *exc_info: Sequence[Any]) -> None:
        await self.aclose()
