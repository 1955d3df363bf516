"""HTTP client for the Bookmarks API."""
import os
from typing import Any
from uuid import UUID

import httpx
from pydantic import TypeAdapter, ValidationError

from client.exceptions import FetchFailedError
from schemas.bookmark import BookmarkResponse

_bookmark_list = TypeAdapter(list[BookmarkResponse])


def get_api_base_url() -> str:
    """Get the API base URL from environment."""
    return os.getenv("BOOKMARKS_API_URL", "http://localhost:8000")


def get_default_timeout() -> float:
    """Get the default request timeout."""
    return float(os.getenv("BOOKMARKS_API_TIMEOUT", "30.0"))


def build_http_client(token: str | None = None) -> httpx.AsyncClient:
    """Create an AsyncClient pointed at the API, sending the bearer token if given."""
    headers = {"Authorization": f"Bearer {token}"} if token else {}
    return httpx.AsyncClient(
        base_url=get_api_base_url(),
        headers=headers,
        timeout=get_default_timeout(),
    )


class BookmarksApiClient:
    """
    Identity provider, query service and mutation entry points over HTTP.

    Mutations only write; their results reach any open view through the
    change feed.
    """

    def __init__(self, client: httpx.AsyncClient) -> None:
        self._client = client

    @property
    def http(self) -> httpx.AsyncClient:
        """Underlying httpx client (shared with the SSE feed)."""
        return self._client

    async def current_identity(self) -> UUID | None:
        """
        Return the signed-in user's id, or None if the API rejects the credentials.

        Raises:
            FetchFailedError: If the identity lookup itself fails.
        """
        try:
            response = await self._client.get("/users/me")
            if response.status_code == 401:
                return None
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise FetchFailedError(_error_detail(e.response)) from e
        except httpx.HTTPError as e:
            raise FetchFailedError(str(e) or type(e).__name__) from e
        return UUID(response.json()["id"])

    async def list_where(self, owner: UUID) -> list[BookmarkResponse]:
        """
        Fetch owner's bookmarks, newest first.

        The API scopes the list to the authenticated user; rows for any other
        owner in the response are treated as a failed fetch.

        Raises:
            FetchFailedError: On transport errors, non-2xx responses, or a
                malformed body.
        """
        try:
            response = await self._client.get("/bookmarks/")
            response.raise_for_status()
            records = _bookmark_list.validate_json(response.content)
        except httpx.HTTPStatusError as e:
            raise FetchFailedError(_error_detail(e.response)) from e
        except httpx.HTTPError as e:
            raise FetchFailedError(str(e) or type(e).__name__) from e
        except ValidationError as e:
            raise FetchFailedError(f"unexpected response body: {e}") from e

        foreign = [record.id for record in records if record.user_id != owner]
        if foreign:
            raise FetchFailedError(f"{len(foreign)} bookmark(s) belong to another user")
        return records

    async def create_bookmark(self, title: str, url: str) -> BookmarkResponse:
        """Create a bookmark."""
        return await self._send("POST", "/bookmarks/", {"title": title, "url": url})

    async def update_bookmark(
        self,
        bookmark_id: UUID,
        title: str | None = None,
        url: str | None = None,
    ) -> BookmarkResponse:
        """Update a bookmark's title and/or url."""
        payload: dict[str, Any] = {}
        if title is not None:
            payload["title"] = title
        if url is not None:
            payload["url"] = url
        return await self._send("PATCH", f"/bookmarks/{bookmark_id}", payload)

    async def delete_bookmark(self, bookmark_id: UUID) -> None:
        """Delete a bookmark."""
        response = await self._client.delete(f"/bookmarks/{bookmark_id}")
        response.raise_for_status()

    async def _send(self, method: str, path: str, payload: dict[str, Any]) -> BookmarkResponse:
        response = await self._client.request(method, path, json=payload)
        response.raise_for_status()
        return BookmarkResponse.model_validate_json(response.content)


def _error_detail(response: httpx.Response) -> str:
    """Extract the `detail` message from an error response, falling back to the status."""
    try:
        body = response.json()
    except ValueError:
        body = None
    detail = body.get("detail") if isinstance(body, dict) else None
    if isinstance(detail, str) and detail:
        return detail
    return f"HTTP {response.status_code}"
