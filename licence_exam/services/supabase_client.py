"""
services/supabase_client.py

Minimal async client for the hosted database's REST (PostgREST) endpoint.
Only what the exam needs: filtered select and single-row insert.

Every transport or HTTP failure is raised as StoreError so callers deal with
one error type.
"""

import logging
from typing import Any, Dict, List, Optional

import httpx

from licence_exam.errors import StoreError

logger = logging.getLogger(__name__)


class SupabaseClient:
    def __init__(
        self,
        url: str,
        api_key: str,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        if not url or not api_key:
            raise ValueError("hosted database URL and key are required")
        self._client = httpx.AsyncClient(
            base_url=f"{url.rstrip('/')}/rest/v1",
            headers={
                "apikey": api_key,
                "Authorization": f"Bearer {api_key}",
                "Content-Type": "application/json",
            },
            timeout=timeout,
            transport=transport,
        )

    async def select(
        self,
        table: str,
        filters: Optional[Dict[str, Any]] = None,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """SELECT * FROM table WHERE col = value AND ... (equality filters only)."""
        params: Dict[str, str] = {"select": "*"}
        for column, value in (filters or {}).items():
            params[column] = f"eq.{value}"
        if limit is not None:
            params["limit"] = str(limit)

        try:
            resp = await self._client.get(f"/{table}", params=params)
            resp.raise_for_status()
            rows = resp.json()
        except httpx.HTTPStatusError as e:
            logger.error(f"select {table} failed: HTTP {e.response.status_code}")
            raise StoreError(f"select {table} failed", status_code=e.response.status_code) from e
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"select {table} failed: {type(e).__name__}: {e}")
            raise StoreError(f"select {table} failed: {e}") from e

        if not isinstance(rows, list):
            raise StoreError(f"select {table}: unexpected response body")
        return rows

    async def insert(self, table: str, row: Dict[str, Any]) -> None:
        """INSERT one row. Response body is not requested."""
        try:
            resp = await self._client.post(
                f"/{table}", json=row, headers={"Prefer": "return=minimal"}
            )
            resp.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.error(f"insert {table} failed: HTTP {e.response.status_code}")
            raise StoreError(f"insert {table} failed", status_code=e.response.status_code) from e
        except httpx.HTTPError as e:
            logger.error(f"insert {table} failed: {type(e).__name__}: {e}")
            raise StoreError(f"insert {table} failed: {e}") from e

    async def aclose(self) -> None:
        await self._client.aclose()
