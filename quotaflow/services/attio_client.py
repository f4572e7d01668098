"""
Attio REST API client.

Handles listing workspace members and deal records (offset-paginated
query endpoint with won-filter fallback).

API docs: https://developers.attio.com/reference
"""

import json
import logging
from typing import Any, List, Optional

import httpx

from quotaflow.config import Settings, settings as default_settings
from quotaflow.services.attio_parser import (
    get_deals_array,
    get_members_array,
    parse_member_email,
    parse_member_record,
)
from quotaflow.schemas.attio import ParsedMember
from quotaflow.services.errors import AttioAPIError, AttioNotConfiguredError

logger = logging.getLogger(__name__)


class AttioClient:
    """Client for the Attio REST API."""

    def __init__(
        self,
        config: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.config = config or default_settings
        self.base_url = self.config.attio_api_base_url.rstrip("/")
        self.api_key = self.config.attio_api_key
        self._transport = transport

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    def _headers(self) -> dict:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
            "accept": "application/json",
        }

    async def _request(self, method: str, path: str, body: Optional[dict] = None) -> Any:
        """
        Send a request and return the decoded JSON body.

        Raises:
            AttioNotConfiguredError: no API key
            AttioAPIError: non-2xx response or transport failure
        """
        if not self.is_configured:
            raise AttioNotConfiguredError()

        url = f"{self.base_url}{path}"
        try:
            async with httpx.AsyncClient(
                timeout=self.config.attio_timeout_seconds,
                transport=self._transport,
            ) as client:
                response = await client.request(method, url, headers=self._headers(), json=body)
        except httpx.HTTPError as e:
            logger.error(f"Attio {method} {path} failed: {e}")
            raise AttioAPIError(None, str(e)) from e

        if not response.is_success:
            logger.warning(f"Attio {method} {path}: status={response.status_code}")
            raise AttioAPIError(response.status_code, response.text[:1000])

        try:
            return response.json()
        except json.JSONDecodeError as e:
            raise AttioAPIError(response.status_code, f"invalid JSON: {response.text[:200]}") from e

    # ── Workspace members ──

    async def list_workspace_members_raw(self) -> List[Any]:
        data = await self._request("GET", self.config.attio_workspace_members_path)
        return get_members_array(data)

    async def find_workspace_member_by_email(self, email: str) -> Optional[ParsedMember]:
        """Best-effort lookup: list members and match by lowercased email."""
        normalized = (email or "").strip().lower()
        if not normalized:
            return None

        for raw in await self.list_workspace_members_raw():
            if not isinstance(raw, dict):
                continue
            if parse_member_email(raw) == normalized:
                return parse_member_record(raw)
        return None

    # ── Deals ──

    async def list_deals_raw(self) -> List[Any]:
        """
        Fetch all deal records.

        Query-style paths are POSTed with offset pagination until a short
        page or attio_max_pages. If Attio rejects the won filter (400/422)
        the page is retried once without it and the rest of the listing
        stays unfiltered.
        """
        path = self.config.attio_deals_path
        if not path.endswith("/query"):
            data = await self._request("GET", path)
            return get_deals_array(data)

        page_size = self.config.attio_page_size
        include = self.config.deals_query_include
        won_filter = self.config.won_filter if self.config.attio_deals_only_won else None

        all_deals: List[Any] = []
        offset = 0
        for page in range(self.config.attio_max_pages):
            body: dict = {"limit": page_size, "offset": offset, "include": include}
            if won_filter:
                body["filter"] = won_filter

            try:
                data = await self._request("POST", path, body)
            except AttioAPIError as e:
                if not (won_filter and e.is_filter_rejection):
                    raise
                logger.warning("Attio deals query filter rejected; falling back to unfiltered query")
                won_filter = None
                body.pop("filter", None)
                data = await self._request("POST", path, body)

            batch = get_deals_array(data)
            all_deals.extend(batch)
            logger.info(
                f"Attio deals page {page + 1}: offset={offset}, got {len(batch)}, "
                f"total so far {len(all_deals)}"
            )

            if len(batch) < page_size:
                break
            offset += page_size
        else:
            logger.warning(f"Attio deals listing stopped at max pages ({self.config.attio_max_pages})")

        return all_deals
