"""
Mont Blanc refuge provider (for-system planning API).

The refuges along the Tour du Mont Blanc publish their planning through
``etape-rest.for-system.com``. The endpoint answers with JSONP (or plain
JSON) of the form::

    [{"datemini": "2025-06-01", "planning": [{"d": 0, "s": 12, "f": 0}, ...]}]

where ``d`` is a day offset from ``datemini``, ``s`` the free spots and
``f`` a closed flag. A refuge is modelled as a single sub-resource.
"""

import json
import logging
import re
from datetime import date, timedelta
from typing import Any, List, Optional

import httpx

from hutwatch.config import settings
from hutwatch.providers.base import (
    AvailabilityDate,
    DateRange,
    ScrapeProvider,
    ScrapeRequest,
    ScrapeResult,
    SubResourceAvailability,
    TargetId,
)
from hutwatch.providers.exceptions import NetworkError, ParsingError, ProviderTimeoutError
from hutwatch.utils.retry import api_retry

logger = logging.getLogger(__name__)

_JSON_ARRAY = re.compile(r"\[.*\]", re.DOTALL)


class MontBlancProvider(ScrapeProvider):
    """Provider for Tour du Mont Blanc refuges."""

    PROVIDER_NAME = "montblanc"
    PROVIDER_TYPE = "api"

    API_URL = "https://etape-rest.for-system.com/index.aspx"
    REFERER = "https://www.montourdumontblanc.com/"
    SUB_RESOURCE_NAME = "Refuge"

    def __init__(
        self,
        timeout: Optional[int] = None,
        user_agent: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        super().__init__(timeout=timeout if timeout is not None else settings.http_timeout)
        self.user_agent = user_agent or settings.user_agent
        self.transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @classmethod
    def build_url(cls, target_id: TargetId) -> str:
        return f"{cls.API_URL}?ref=json-planning-refuge&q={target_id}"

    async def initialize(self) -> None:
        self._client = httpx.AsyncClient(
            timeout=self.timeout,
            headers={"User-Agent": self.user_agent, "Referer": self.REFERER},
            transport=self.transport,
        )

    async def cleanup(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def scrape(self, request: ScrapeRequest) -> ScrapeResult:
        if self._client is None:
            raise RuntimeError("MontBlancProvider.scrape() called before initialize()")

        # The planning is always relative to today, whatever window is asked for
        today = date.today()
        body = await self._fetch_planning(request.target_id, today)
        dates = self.parse_planning(body, today=today, date_range=request.date_range)

        sub_resources = self._filter_sub_resources(
            [SubResourceAvailability(name=self.SUB_RESOURCE_NAME, external_id=str(request.target_id), dates=dates)],
            request.sub_resources,
        )
        if not sub_resources:
            return self._failed_result(
                request, f"Refuge {request.target_id} has no sub-resource matching {request.sub_resources}"
            )

        result = ScrapeResult(metadata=self._metadata(request, success=True), sub_resources=sub_resources)
        self.logger.info(
            f"Refuge {request.target_id}: {len(dates)} days, {result.availability_records} available"
        )
        return result

    async def _fetch_planning(self, refuge_id: TargetId, today: date) -> str:
        params = {"ref": "json-planning-refuge", "q": f"{refuge_id},{today.isoformat()}"}
        try:
            response = await self._request(params)
        except httpx.TimeoutException as e:
            raise ProviderTimeoutError(
                f"Planning request for refuge {refuge_id} timed out",
                provider_name=self.PROVIDER_NAME,
                timeout_seconds=self.timeout,
                operation="json-planning-refuge",
                original_error=e,
            ) from e
        except httpx.RequestError as e:
            raise NetworkError(
                f"Planning request for refuge {refuge_id} failed: {e}",
                provider_name=self.PROVIDER_NAME,
                url=self.API_URL,
                original_error=e,
            ) from e

        if response.status_code >= 400:
            raise NetworkError(
                f"HTTP {response.status_code} from planning API",
                provider_name=self.PROVIDER_NAME,
                status_code=response.status_code,
                url=str(response.request.url),
            )
        return response.text

    @api_retry(max_attempts=3, min_wait_seconds=1, max_wait_seconds=8)
    async def _request(self, params: dict) -> httpx.Response:
        return await self._client.get(self.API_URL, params=params)

    @classmethod
    def parse_planning(
        cls,
        body: str,
        today: Optional[date] = None,
        date_range: Optional[DateRange] = None,
    ) -> List[AvailabilityDate]:
        """
        Parse a JSONP/JSON planning response.

        Args:
            body: Raw response text
            today: Days before this one are skipped (defaults to date.today())
            date_range: Optional window to restrict the days to

        Returns:
            One AvailabilityDate per planned day, available when ``f == 0``
            and ``s > 0``

        Raises:
            ParsingError: If the body holds no usable planning
        """
        today = today or date.today()
        data = cls._decode(body)

        if not isinstance(data, list) or not data or not isinstance(data[0], dict):
            raise ParsingError(
                "Planning response holds no refuge data",
                provider_name=cls.PROVIDER_NAME,
                payload_excerpt=body[:200],
            )

        refuge = data[0]
        try:
            base_date = date.fromisoformat(str(refuge["datemini"])[:10])
        except (KeyError, ValueError) as e:
            raise ParsingError(
                "Planning response has no valid datemini",
                provider_name=cls.PROVIDER_NAME,
                payload_excerpt=body[:200],
                original_error=e,
            ) from e

        dates: List[AvailabilityDate] = []
        for record in refuge.get("planning") or []:
            day = base_date + timedelta(days=int(record.get("d", 0)))
            if day < today:
                continue
            if date_range is not None and day not in date_range:
                continue

            spots = int(record.get("s") or 0)
            available = record.get("f") == 0 and spots > 0
            dates.append(
                AvailabilityDate(
                    day=day,
                    available=available,
                    can_checkin=available,
                    can_checkout=available,
                    free_places=spots,
                )
            )
        return dates

    @classmethod
    def _decode(cls, body: str) -> Any:
        match = _JSON_ARRAY.search(body)
        candidate = match.group(0) if match else body
        try:
            return json.loads(candidate)
        except ValueError as e:
            raise ParsingError(
                "Planning response is neither JSON nor JSONP",
                provider_name=cls.PROVIDER_NAME,
                payload_excerpt=body[:200],
                original_error=e,
            ) from e
