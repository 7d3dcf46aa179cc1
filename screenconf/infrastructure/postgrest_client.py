"""
PostgREST (Supabase) client implementing the screen store.

Single-row reads use the ``application/vnd.pgrst.object+json`` media type;
PostgREST answers 406 with code PGRST116 when no row matches, which is
reported as RowNotFoundError. Upserts use
``Prefer: resolution=merge-duplicates`` with an explicit ``on_conflict``.
"""

from typing import Any, List, Optional, Sequence

import httpx

from screenconf.config.settings import ScreenConfigSettings, get_settings
from screenconf.core.exceptions import RowNotFoundError, StoreFailureError
from screenconf.core.logging import get_logger
from screenconf.domain.repositories.base import EVENT_SCREEN_CONFLICT_TARGET, Row

logger = get_logger(__name__)

SINGLE_OBJECT = "application/vnd.pgrst.object+json"
NOT_FOUND_CODE = "PGRST116"
UPSERT_PREFER = "resolution=merge-duplicates,return=representation"


class PostgrestScreenStore:
    """ScreenStore speaking to a PostgREST endpoint over HTTP."""

    def __init__(
        self,
        settings: Optional[ScreenConfigSettings] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.settings = settings or get_settings()
        self.screens_table = self.settings.screens_table
        self.event_screens_table = self.settings.event_screens_table
        self._client = client or httpx.AsyncClient(
            base_url=self.settings.rest_base_url,
            headers=self._auth_headers(self.settings.supabase_key),
            timeout=self.settings.request_timeout,
        )

    @staticmethod
    def _auth_headers(api_key: str) -> dict[str, str]:
        if not api_key:
            return {}
        return {"apikey": api_key, "Authorization": f"Bearer {api_key}"}

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        try:
            return await self._client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            logger.error("Store request failed", method=method, path=path, error=str(e))
            raise StoreFailureError(
                f"Store request failed: {e}",
                details={"method": method, "path": path},
            ) from e

    @staticmethod
    def _error_payload(response: httpx.Response) -> dict:
        try:
            payload = response.json()
        except ValueError:
            return {"message": response.text}
        return payload if isinstance(payload, dict) else {"message": str(payload)}

    def _raise_for_status(self, response: httpx.Response, operation: str) -> None:
        if response.is_success:
            return
        payload = self._error_payload(response)
        logger.error(
            "Store returned an error",
            operation=operation,
            status_code=response.status_code,
            code=payload.get("code"),
            message=payload.get("message"),
        )
        raise StoreFailureError(
            f"Store {operation} failed ({response.status_code}): {payload.get('message')}",
            details={"status_code": response.status_code, **payload},
        )

    @staticmethod
    def _single(payload: Any) -> Row:
        if isinstance(payload, list):
            return payload[0] if payload else {}
        return payload

    async def read_screen(self, screen_id: str) -> Row:
        response = await self._request(
            "GET",
            f"/{self.screens_table}",
            params={"select": "*", "id": f"eq.{screen_id}"},
            headers={"Accept": SINGLE_OBJECT},
        )
        if response.status_code == 406:
            if self._error_payload(response).get("code") == NOT_FOUND_CODE:
                raise RowNotFoundError(self.screens_table, screen_id)
        self._raise_for_status(response, "read")
        return response.json()

    async def upsert_screen(self, row: Row) -> Row:
        response = await self._request(
            "POST",
            f"/{self.screens_table}",
            params={"on_conflict": "id"},
            json=row,
            headers={"Prefer": UPSERT_PREFER},
        )
        self._raise_for_status(response, "upsert")
        return self._single(response.json())

    async def list_screens(
        self, screen_keys: Optional[Sequence[str]] = None
    ) -> List[Row]:
        params = {"select": "*", "order": "name"}
        if screen_keys is not None:
            params["screen_key"] = f"in.({','.join(screen_keys)})"
        response = await self._request("GET", f"/{self.screens_table}", params=params)
        self._raise_for_status(response, "list")
        return response.json()

    async def upsert_event_screen(
        self,
        row: Row,
        on_conflict: Sequence[str] = EVENT_SCREEN_CONFLICT_TARGET,
    ) -> Row:
        response = await self._request(
            "POST",
            f"/{self.event_screens_table}",
            params={"on_conflict": ",".join(on_conflict)},
            json=row,
            headers={"Prefer": UPSERT_PREFER},
        )
        self._raise_for_status(response, "upsert_event_screen")
        return self._single(response.json())

    async def aclose(self) -> None:
        await self._client.aclose()
