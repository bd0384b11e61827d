"""Google Drive v3 REST client over aiohttp.

Implements the RemoteStore capability. Credentials come from config; an
expired access token is refreshed once on HTTP 401 using the refresh token.
Acquiring the first refresh token (the OAuth consent flow) happens elsewhere.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import TYPE_CHECKING, Any

import aiohttp

from drivedesk.drive.base import (
    FOLDER_MIME,
    GOOGLE_DOC_MIME,
    ROOT_ID,
    EntryKind,
    StoreEntry,
    TransportError,
)

if TYPE_CHECKING:
    from drivedesk.config import DriveConfig

logger = logging.getLogger(__name__)

DRIVE_BASE_URL = "https://www.googleapis.com/drive/v3"
OAUTH_TOKEN_URL = "https://oauth2.googleapis.com/token"

ENTRY_FIELDS = "id,name,mimeType,size,modifiedTime,parents"
LIST_FIELDS = f"nextPageToken,files({ENTRY_FIELDS})"
PAGE_SIZE = 1000

# Native Google formats cannot be downloaded with alt=media.
EXPORT_MIME = {
    GOOGLE_DOC_MIME: "text/plain",
    "application/vnd.google-apps.spreadsheet": "text/csv",
    "application/vnd.google-apps.presentation": "text/plain",
}


def escape_query_value(value: str) -> str:
    """Escape a literal for use inside a single-quoted Drive query string."""
    return value.replace("\\", "\\\\").replace("'", "\\'")


def build_query(
    *,
    name: str | None = None,
    name_contains: str | None = None,
    kind: EntryKind | None = None,
    parent_id: str | None = None,
) -> str:
    """Compose a Drive `q` expression. Trashed entries are always excluded."""
    clauses = []
    if name is not None:
        clauses.append(f"name = '{escape_query_value(name)}'")
    if name_contains is not None:
        clauses.append(f"name contains '{escape_query_value(name_contains)}'")
    if kind is EntryKind.FOLDER:
        clauses.append(f"mimeType = '{FOLDER_MIME}'")
    elif kind is EntryKind.FILE:
        clauses.append(f"mimeType != '{FOLDER_MIME}'")
    if parent_id is not None:
        clauses.append(f"'{escape_query_value(parent_id)}' in parents")
    clauses.append("trashed = false")
    return " and ".join(clauses)


def parse_entry(data: dict[str, Any]) -> StoreEntry:
    """Drive `files` resource → StoreEntry."""
    mime = data.get("mimeType", "")
    size = data.get("size")
    modified = data.get("modifiedTime")
    modified_at = None
    if modified:
        try:
            modified_at = datetime.fromisoformat(modified.replace("Z", "+00:00"))
        except ValueError:
            modified_at = None
    return StoreEntry(
        id=data["id"],
        name=data.get("name", ""),
        kind=EntryKind.FOLDER if mime == FOLDER_MIME else EntryKind.FILE,
        mime_type=mime,
        size_bytes=int(size) if size is not None else None,
        modified_at=modified_at,
        parent_ids=frozenset(data.get("parents", [])),
    )


class GoogleDriveClient:
    """RemoteStore backed by the Google Drive v3 API."""

    def __init__(self, config: DriveConfig, session: aiohttp.ClientSession | None = None) -> None:
        self._config = config
        self._access_token = config.access_token
        self._session = session
        self._owns_session = session is None
        self._root_id: str | None = None

    @property
    def name(self) -> str:
        return "google_drive"

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self._config.timeout)
            )
            self._owns_session = True
        return self._session

    async def close(self) -> None:
        if self._owns_session and self._session and not self._session.closed:
            await self._session.close()

    # ── Auth ──────────────────────────────────────────────────

    async def _refresh_access_token(self) -> None:
        if not self._config.refresh_token:
            raise TransportError("Google Drive access expired and no refresh token is configured")

        session = await self._get_session()
        payload = {
            "client_id": self._config.client_id,
            "client_secret": self._config.client_secret,
            "refresh_token": self._config.refresh_token,
            "grant_type": "refresh_token",
        }
        try:
            async with session.post(OAUTH_TOKEN_URL, data=payload) as resp:
                status = resp.status
                body = await resp.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            raise TransportError(f"Token refresh failed: {e!r}") from e

        if not isinstance(body, dict):
            raise TransportError("Token refresh failed: unexpected response", status)
        if status != 200 or not body.get("access_token"):
            raise TransportError(f"Token refresh failed: {body.get('error', status)}", status)

        self._access_token = body["access_token"]
        logger.info("Refreshed Google Drive access token")

    # ── Request core ──────────────────────────────────────────

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
        raw: bool = False,
    ) -> Any:
        """Send one API call. Returns parsed JSON, bytes when raw, or None for 204."""
        session = await self._get_session()
        url = DRIVE_BASE_URL + path

        if not self._access_token:
            await self._refresh_access_token()

        for attempt in range(2):
            headers = {"Authorization": f"Bearer {self._access_token}"}
            try:
                async with session.request(
                    method, url, params=params, json=json, headers=headers
                ) as resp:
                    if resp.status == 401 and attempt == 0:
                        logger.info("Drive returned 401, refreshing token")
                        await self._refresh_access_token()
                        continue
                    if resp.status >= 400:
                        raise TransportError(await _error_message(resp), resp.status)
                    if resp.status == 204:
                        return None
                    if raw:
                        return await resp.read()
                    return await resp.json(content_type=None)
            except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
                # aiohttp signals an expired ClientTimeout with a bare TimeoutError.
                raise TransportError(f"Google Drive request failed: {e!r}") from e
        raise TransportError("Google Drive rejected the refreshed credentials", 401)

    async def _list(self, query: str, order_by: str | None = None) -> list[StoreEntry]:
        params: dict[str, Any] = {"q": query, "fields": LIST_FIELDS, "pageSize": PAGE_SIZE}
        if order_by:
            params["orderBy"] = order_by
        entries: list[StoreEntry] = []
        while True:
            data = await self._request("GET", "/files", params=params)
            entries.extend(parse_entry(f) for f in data.get("files", []))
            token = data.get("nextPageToken")
            if not token:
                return entries
            params = {**params, "pageToken": token}

    # ── RemoteStore ───────────────────────────────────────────

    async def list_children(
        self, parent_id: str, kind: EntryKind | None = None
    ) -> list[StoreEntry]:
        return await self._list(build_query(kind=kind, parent_id=parent_id), order_by="name")

    async def find_by_name(
        self,
        name: str,
        kind: EntryKind | None = None,
        *,
        exact: bool = True,
        parent_id: str | None = None,
    ) -> list[StoreEntry]:
        # Drive's `contains` operator is case-insensitive, so it narrows the
        # fallback scan without dropping any case variant.
        if exact:
            query = build_query(name=name, kind=kind, parent_id=parent_id)
        else:
            query = build_query(name_contains=name, kind=kind, parent_id=parent_id)
        return await self._list(query)

    async def fetch_content(self, entry: StoreEntry) -> str:
        export_mime = EXPORT_MIME.get(entry.mime_type)
        if export_mime:
            data = await self._request(
                "GET", f"/files/{entry.id}/export", params={"mimeType": export_mime}, raw=True
            )
        else:
            data = await self._request(
                "GET", f"/files/{entry.id}", params={"alt": "media"}, raw=True
            )
        return data.decode("utf-8", errors="replace")

    async def delete(self, entry_id: str) -> None:
        await self._request("DELETE", f"/files/{entry_id}")

    async def root_folder_id(self) -> str:
        """Real id of My Drive. Entry `parents` carry this id, never the `root` alias."""
        if self._root_id is None:
            data = await self._request("GET", f"/files/{ROOT_ID}", params={"fields": "id"})
            self._root_id = data["id"]
        return self._root_id

    async def reparent(
        self, entry_id: str, add_parent: str, remove_parents: list[str]
    ) -> StoreEntry:
        if add_parent == ROOT_ID:
            add_parent = await self.root_folder_id()
        remove = [p for p in remove_parents if p not in (add_parent, ROOT_ID)]
        params = {"addParents": add_parent, "fields": ENTRY_FIELDS}
        if remove:
            params["removeParents"] = ",".join(remove)
        data = await self._request("PATCH", f"/files/{entry_id}", params=params, json={})
        return parse_entry(data)

    async def health_check(self) -> bool:
        try:
            await self._request("GET", "/about", params={"fields": "user"})
            return True
        except TransportError:
            return False


async def _error_message(resp: aiohttp.ClientResponse) -> str:
    try:
        body = await resp.json(content_type=None)
        message = body.get("error", {}).get("message", "")
    except (ValueError, aiohttp.ContentTypeError, AttributeError):
        message = ""
    return f"Google Drive API error {resp.status}: {message or resp.reason}"

