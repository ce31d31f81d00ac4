"""
hut-reservation.org availability provider.

hut-reservation.org is the booking system of most Alpine club huts (SAC,
DAV, OeAV, CAI). Availability comes from the JSON API behind the booking
wizard; no browser is needed:

1. ``GET /reservation/book-hut/{id}/wizard`` sets the ``XSRF-TOKEN`` cookie
2. ``GET /api/v1/reservation/hutInfo/{id}`` returns the hut name and its
   bed categories (dormitory, rooms, winter room...)
3. ``GET /api/v1/reservation/getHutAvailability?hutId={id}&step=WIZARD``
   with the ``x-xsrf-token`` header returns one entry per day with the
   free beds per category

Each bed category becomes one sub-resource of the scrape result.
"""

import logging
from datetime import date
from typing import Any, Dict, List, Optional

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
from hutwatch.providers.exceptions import (
    AuthenticationError,
    NetworkError,
    ParsingError,
    ProviderTimeoutError,
    RateLimitError,
)
from hutwatch.utils.retry import api_retry

logger = logging.getLogger(__name__)


class HutReservationProvider(ScrapeProvider):
    """
    Provider for huts booked through hut-reservation.org.

    Examples:
        >>> async with HutReservationProvider() as provider:
        ...     result = await provider.scrape(request)
        >>> print(f"{result.availability_records} bookable category-days")
    """

    PROVIDER_NAME = "hut-reservation"
    PROVIDER_TYPE = "api"

    BASE_URL = "https://www.hut-reservation.org"
    WIZARD_PATH = "/reservation/book-hut/{hut_id}/wizard"
    HUT_INFO_ENDPOINT = "/api/v1/reservation/hutInfo/{hut_id}"
    AVAILABILITY_ENDPOINT = "/api/v1/reservation/getHutAvailability"
    XSRF_COOKIE = "XSRF-TOKEN"
    CLOSED_STATUS = "CLOSED"
    PREFERRED_LANGUAGE = "EN"

    def __init__(
        self,
        timeout: Optional[int] = None,
        user_agent: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the provider.

        Args:
            timeout: HTTP timeout in seconds (defaults to settings.http_timeout)
            user_agent: User agent header (defaults to settings.user_agent)
            transport: Optional httpx transport, used by tests to mock the API
        """
        super().__init__(timeout=timeout if timeout is not None else settings.http_timeout)
        self.user_agent = user_agent or settings.user_agent
        self.transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @classmethod
    def build_url(cls, target_id: TargetId) -> str:
        return f"{cls.BASE_URL}{cls.WIZARD_PATH.format(hut_id=target_id)}"

    async def initialize(self) -> None:
        self._client = httpx.AsyncClient(
            base_url=self.BASE_URL,
            timeout=self.timeout,
            headers={
                "User-Agent": self.user_agent,
                "Accept": "application/json, text/plain, */*",
            },
            transport=self.transport,
            follow_redirects=True,
        )
        self.logger.debug("HTTP client opened")

    async def cleanup(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
            self.logger.debug("HTTP client closed")

    async def scrape(self, request: ScrapeRequest) -> ScrapeResult:
        """
        Scrape the availability calendar of one hut.

        Args:
            request: Scrape request; ``target_id`` is the hut id

        Returns:
            ScrapeResult with one sub-resource per bed category

        Raises:
            AuthenticationError: If the wizard page does not set an XSRF token
            ParsingError: If the API returns an unexpected payload
            NetworkError: On HTTP errors
        """
        if self._client is None:
            raise RuntimeError("HutReservationProvider.scrape() called before initialize()")

        hut_id = request.target_id
        xsrf_token = await self._fetch_xsrf_token(hut_id)
        hut_info = await self._fetch_hut_info(hut_id)

        self.logger.info(
            f"Fetching availability for {hut_info.get('hutName') or request.target_name} ({hut_id})"
        )
        payload = await self._get_json(
            self.AVAILABILITY_ENDPOINT,
            params={"hutId": hut_id, "step": "WIZARD"},
            headers={
                "x-xsrf-token": xsrf_token,
                "referer": self.build_url(hut_id),
            },
        )

        sub_resources = self.parse_availability(
            payload,
            categories=self.bed_categories(hut_info),
            date_range=request.date_range,
        )
        sub_resources = self._filter_sub_resources(sub_resources, request.sub_resources)

        if not sub_resources:
            return self._failed_result(request, f"No bed categories found for hut {hut_id}")

        result = ScrapeResult(
            metadata=self._metadata(request, success=True),
            sub_resources=sub_resources,
        )
        self.logger.info(
            f"Hut {hut_id}: {len(sub_resources)} categories, "
            f"{result.availability_records} available category-days"
        )
        return result

    async def _fetch_xsrf_token(self, hut_id: TargetId) -> str:
        response = await self._get(self.WIZARD_PATH.format(hut_id=hut_id))

        token = response.cookies.get(self.XSRF_COOKIE) or self._client.cookies.get(self.XSRF_COOKIE)
        if not token:
            raise AuthenticationError(
                f"Missing {self.XSRF_COOKIE} cookie for hut {hut_id}",
                provider_name=self.PROVIDER_NAME,
            )
        self.logger.debug(f"Obtained XSRF token {token[:8]}...")
        return token

    async def _fetch_hut_info(self, hut_id: TargetId) -> Dict[str, Any]:
        info = await self._get_json(self.HUT_INFO_ENDPOINT.format(hut_id=hut_id))
        if not isinstance(info, dict):
            raise ParsingError(
                f"Unexpected hutInfo payload for hut {hut_id}",
                provider_name=self.PROVIDER_NAME,
                payload_excerpt=str(info)[:200],
            )
        self.logger.debug(
            f"Hut info: {info.get('hutName')} ({info.get('tenantCountry')}), "
            f"{len(info.get('hutBedCategories') or [])} bed categories"
        )
        return info

    @api_retry(max_attempts=3, min_wait_seconds=1, max_wait_seconds=8)
    async def _request(self, path: str, **kwargs) -> httpx.Response:
        return await self._client.get(path, **kwargs)

    async def _get(self, path: str, **kwargs) -> httpx.Response:
        """GET with transport errors and error statuses mapped to provider errors."""
        try:
            response = await self._request(path, **kwargs)
        except httpx.TimeoutException as e:
            raise ProviderTimeoutError(
                f"Request to {path} timed out",
                provider_name=self.PROVIDER_NAME,
                timeout_seconds=self.timeout,
                operation=path,
                original_error=e,
            ) from e
        except httpx.RequestError as e:
            raise NetworkError(
                f"Request to {path} failed: {e}",
                provider_name=self.PROVIDER_NAME,
                url=path,
                original_error=e,
            ) from e

        self._check_status(response)
        return response

    async def _get_json(self, path: str, **kwargs) -> Any:
        response = await self._get(path, **kwargs)
        try:
            return response.json()
        except ValueError as e:
            raise ParsingError(
                f"Invalid JSON from {path}",
                provider_name=self.PROVIDER_NAME,
                payload_excerpt=response.text[:200],
                original_error=e,
            ) from e

    def _check_status(self, response: httpx.Response) -> None:
        status = response.status_code
        if status < 400:
            return
        url = str(response.request.url)
        if status == 429:
            retry_after = response.headers.get("retry-after")
            raise RateLimitError(
                f"Rate limited by {url}",
                provider_name=self.PROVIDER_NAME,
                retry_after=int(retry_after) if retry_after and retry_after.isdigit() else None,
            )
        if status in (401, 403):
            raise AuthenticationError(
                f"Access denied ({status}) for {url}",
                provider_name=self.PROVIDER_NAME,
            )
        raise NetworkError(
            f"HTTP {status} from {url}",
            provider_name=self.PROVIDER_NAME,
            status_code=status,
            url=url,
        )

    @classmethod
    def bed_categories(cls, hut_info: Dict[str, Any]) -> List[SubResourceAvailability]:
        """
        Empty calendars for the bed categories listed in hutInfo.

        The English label is preferred, then the first label, then
        ``Category <id>``.
        """
        categories: List[SubResourceAvailability] = []
        for category in hut_info.get("hutBedCategories") or []:
            category_id = str(category.get("categoryID"))
            language_data = category.get("hutBedCategoryLanguageData") or []
            english = next(
                (
                    entry.get("label")
                    for entry in language_data
                    if entry.get("language") == cls.PREFERRED_LANGUAGE and entry.get("label")
                ),
                None,
            )
            fallback = language_data[0].get("label") if language_data else None
            categories.append(
                SubResourceAvailability(
                    name=english or fallback or f"Category {category_id}",
                    external_id=category_id,
                    capacity=category.get("totalSleepingPlaces"),
                )
            )
        return categories

    @classmethod
    def parse_availability(
        cls,
        payload: Any,
        categories: List[SubResourceAvailability],
        date_range: Optional[DateRange] = None,
    ) -> List[SubResourceAvailability]:
        """
        Turn a getHutAvailability payload into one calendar per bed category.

        A day is available for a category when the hut is not CLOSED and the
        category has free beds. Days outside ``date_range`` are dropped.

        Args:
            payload: Decoded JSON list of day entries
            categories: Bed categories from hutInfo (see ``bed_categories``)
            date_range: Optional DateRange to restrict the calendar to

        Returns:
            List of SubResourceAvailability, ordered by category id
        """
        if not isinstance(payload, list):
            raise ParsingError(
                "Availability payload is not a list",
                provider_name=cls.PROVIDER_NAME,
                payload_excerpt=str(payload)[:200],
            )

        by_category: Dict[str, SubResourceAvailability] = {
            category.external_id: category.model_copy(update={"dates": []}) for category in categories
        }

        for entry in payload:
            try:
                day = date.fromisoformat(str(entry["date"]).split("T")[0])
            except (KeyError, TypeError, ValueError) as e:
                raise ParsingError(
                    "Availability entry without a valid date",
                    provider_name=cls.PROVIDER_NAME,
                    payload_excerpt=str(entry)[:200],
                    original_error=e,
                ) from e

            if date_range is not None and day not in date_range:
                continue

            is_open = entry.get("hutStatus") != cls.CLOSED_STATUS
            for category_id, free_beds in (entry.get("freeBedsPerCategory") or {}).items():
                category_id = str(category_id)
                if category_id not in by_category:
                    by_category[category_id] = SubResourceAvailability(
                        name=f"Category {category_id}", external_id=category_id
                    )
                beds = int(free_beds or 0)
                available = is_open and beds > 0
                by_category[category_id].dates.append(
                    AvailabilityDate(
                        day=day,
                        available=available,
                        can_checkin=available,
                        can_checkout=available,
                        free_places=beds,
                    )
                )

        return [by_category[key] for key in sorted(by_category, key=_category_sort_key)]


def _category_sort_key(category_id: str):
    return (0, int(category_id), "") if category_id.isdigit() else (1, 0, category_id)
