# Copyright 2025 Gowtham Rao <rao@ohdsi.org>
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
"""Provides a class to extract clinical trial data from the ClinicalTrials.gov API."""

import logging
from typing import Any

import httpx

from .config import SyncConfig
from .exceptions import RegistryFetchError, UnknownTenantError

logger = logging.getLogger(__name__)

USER_AGENT = "py-sync-ctgov/0.1.0"


class CtgovExtractor:
    """Extractor for fetching studies from the ClinicalTrials.gov v2 API."""

    SEARCH_URL = "https://clinicaltrials.gov/api/v2/studies"

    def __init__(
        self,
        config: SyncConfig,
        client: httpx.AsyncClient | None = None,
        search_url: str | None = None,
    ) -> None:
        """Initialize the extractor with the run configuration and an optional HTTP client."""
        self.config = config
        self.search_url = search_url or self.SEARCH_URL
        self.client = client or httpx.AsyncClient(
            headers={"User-Agent": USER_AGENT},
            follow_redirects=True,
            timeout=30.0,
        )

    def build_query(self, tenant_key: str) -> str:
        """OR-join the tenant's required terms into a ``query.cond`` expression."""
        profile = self.config.profiles.get(tenant_key)
        if profile is None:
            raise UnknownTenantError(tenant_key)
        return " OR ".join(profile.required)

    async def _get_page(self, query: str, page_token: str | None) -> dict[str, Any]:
        """Fetch a single page of search results."""
        params: dict[str, Any] = {
            "query.cond": query,
            "pageSize": self.config.page_size,
        }
        if page_token:
            params["pageToken"] = page_token

        try:
            response = await self.client.get(self.search_url, params=params)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPError as e:
            logger.error("Failed to fetch studies page: %s", e)
            raise RegistryFetchError(f"Registry request failed: {e}") from e

    async def fetch_all(self, tenant_key: str) -> list[dict[str, Any]]:
        """Fetch the studies matching a tenant's search terms.

        Pages are requested until the registry stops returning a
        ``nextPageToken`` or ``max_studies`` results have accumulated. The
        result is truncated to ``max_studies``, so it is a bounded sample
        rather than an exhaustive listing.

        Raises:
            RegistryFetchError: if any page request fails. No partial
                result is returned.
        """
        query = self.build_query(tenant_key)
        cap = self.config.max_studies
        studies: list[dict[str, Any]] = []
        page_token: str | None = None

        while True:
            data = await self._get_page(query, page_token)
            studies.extend(data.get("studies") or [])
            page_token = data.get("nextPageToken")
            logger.debug("Fetched %d studies so far for %s", len(studies), tenant_key)
            if not page_token or len(studies) >= cap:
                break

        if len(studies) > cap:
            logger.info("Truncating %d fetched studies to the cap of %d", len(studies), cap)
        return studies[:cap]

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self.client.aclose()
