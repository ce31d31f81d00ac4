"""
Unit tests for the hut-reservation.org provider.

The JSON API is replaced with an httpx.MockTransport.
"""

from datetime import date

import httpx
import pytest

from hutwatch.providers.base import DateRange, ScrapeRequest, SubResourceAvailability
from hutwatch.providers.exceptions import AuthenticationError, NetworkError, ParsingError, RateLimitError
from hutwatch.providers.hut_reservation import HutReservationProvider

HUT_ID = 42

HUT_INFO = {
    "hutName": "Capanna Regina Margherita",
    "tenantCountry": "IT",
    "hutBedCategories": [
        {
            "categoryID": 1,
            "totalSleepingPlaces": 60,
            "hutBedCategoryLanguageData": [
                {"language": "DE_CH", "label": "Massenlager"},
                {"language": "EN", "label": "Dormitory"},
            ],
        },
        {
            "categoryID": 2,
            "totalSleepingPlaces": 10,
            "hutBedCategoryLanguageData": [{"language": "IT", "label": "Locale invernale"}],
        },
    ],
}

AVAILABILITY = [
    {
        "date": "2026-07-01T00:00:00Z",
        "dateFormatted": "01.07.2026",
        "hutStatus": "SERVICED",
        "freeBedsPerCategory": {"1": 12, "2": 0},
    },
    {
        "date": "2026-07-02T00:00:00Z",
        "dateFormatted": "02.07.2026",
        "hutStatus": "CLOSED",
        "freeBedsPerCategory": {"1": 30, "2": 4},
    },
    {
        "date": "2026-07-03T00:00:00Z",
        "dateFormatted": "03.07.2026",
        "hutStatus": "SERVICED",
        "freeBedsPerCategory": {"1": 5, "2": 3},
    },
    {
        "date": "2026-08-15T00:00:00Z",
        "dateFormatted": "15.08.2026",
        "hutStatus": "SERVICED",
        "freeBedsPerCategory": {"1": 1},
    },
]

JULY = DateRange(start=date(2026, 7, 1), end=date(2026, 7, 31))


def make_request(**kwargs) -> ScrapeRequest:
    values = {
        "target_id": HUT_ID,
        "target_name": "Margherita",
        "url": HutReservationProvider.build_url(HUT_ID),
        "date_range": JULY,
    }
    values.update(kwargs)
    return ScrapeRequest(**values)


def make_transport(seen=None, set_cookie=True, availability=AVAILABILITY, hut_info=HUT_INFO, availability_status=200):
    seen = seen if seen is not None else []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        path = request.url.path
        if path == f"/reservation/book-hut/{HUT_ID}/wizard":
            headers = {"set-cookie": "XSRF-TOKEN=token-1234567890; Path=/"} if set_cookie else {}
            return httpx.Response(200, text="<html></html>", headers=headers)
        if path == f"/api/v1/reservation/hutInfo/{HUT_ID}":
            return httpx.Response(200, json=hut_info)
        if path == "/api/v1/reservation/getHutAvailability":
            return httpx.Response(availability_status, json=availability)
        return httpx.Response(404)

    return httpx.MockTransport(handler)


class TestScrape:
    """Tests for the full scrape flow."""

    @pytest.mark.asyncio
    async def test_scrape_groups_by_bed_category(self):
        async with HutReservationProvider(transport=make_transport()) as provider:
            result = await provider.scrape(make_request())

        assert result.metadata.success is True
        assert result.metadata.provider == "hut-reservation"
        assert [sub.name for sub in result.sub_resources] == ["Dormitory", "Locale invernale"]

        dormitory = result.sub_resources[0]
        assert dormitory.external_id == "1"
        assert dormitory.capacity == 60
        assert [d.day for d in dormitory.dates] == [date(2026, 7, 1), date(2026, 7, 2), date(2026, 7, 3)]
        assert [d.day for d in dormitory.available_dates] == [date(2026, 7, 1), date(2026, 7, 3)]
        assert dormitory.dates[0].free_places == 12

        winter_room = result.sub_resources[1]
        assert [d.day for d in winter_room.available_dates] == [date(2026, 7, 3)]

        assert result.availability_records == 3

    @pytest.mark.asyncio
    async def test_sends_xsrf_header(self):
        seen = []
        async with HutReservationProvider(transport=make_transport(seen)) as provider:
            await provider.scrape(make_request())

        availability_request = next(r for r in seen if r.url.path.endswith("getHutAvailability"))
        assert availability_request.headers["x-xsrf-token"] == "token-1234567890"
        assert availability_request.url.params["hutId"] == str(HUT_ID)
        assert availability_request.url.params["step"] == "WIZARD"
        assert "XSRF-TOKEN=token-1234567890" in availability_request.headers.get("cookie", "")

    @pytest.mark.asyncio
    async def test_missing_cookie_raises_authentication_error(self):
        async with HutReservationProvider(transport=make_transport(set_cookie=False)) as provider:
            with pytest.raises(AuthenticationError, match="XSRF-TOKEN"):
                await provider.scrape(make_request())

    @pytest.mark.asyncio
    async def test_sub_resource_filter(self):
        async with HutReservationProvider(transport=make_transport()) as provider:
            result = await provider.scrape(make_request(sub_resources=["dormitory"]))

        assert [sub.name for sub in result.sub_resources] == ["Dormitory"]

    @pytest.mark.asyncio
    async def test_unknown_sub_resource_is_soft_failure(self):
        async with HutReservationProvider(transport=make_transport()) as provider:
            result = await provider.scrape(make_request(sub_resources=["Suite"]))

        assert result.metadata.success is False
        assert "No bed categories" in result.metadata.error

    @pytest.mark.asyncio
    async def test_server_error_raises_network_error(self):
        async with HutReservationProvider(transport=make_transport(availability_status=503)) as provider:
            with pytest.raises(NetworkError) as exc_info:
                await provider.scrape(make_request())

        assert exc_info.value.status_code == 503

    @pytest.mark.asyncio
    async def test_rate_limit(self):
        async with HutReservationProvider(transport=make_transport(availability_status=429)) as provider:
            with pytest.raises(RateLimitError):
                await provider.scrape(make_request())

    @pytest.mark.asyncio
    async def test_scrape_before_initialize(self):
        provider = HutReservationProvider(transport=make_transport())

        with pytest.raises(RuntimeError):
            await provider.scrape(make_request())

    @pytest.mark.asyncio
    async def test_cleanup_is_idempotent(self):
        provider = HutReservationProvider(transport=make_transport())
        await provider.cleanup()
        await provider.initialize()
        await provider.cleanup()
        await provider.cleanup()

        assert provider._client is None


class TestParsing:
    """Tests for the pure parsing helpers."""

    def test_bed_category_label_fallbacks(self):
        info = {
            "hutBedCategories": [
                {"categoryID": 5, "hutBedCategoryLanguageData": [{"language": "EN", "label": "Room"}]},
                {"categoryID": 6, "hutBedCategoryLanguageData": [{"language": "FR", "label": "Dortoir"}]},
                {"categoryID": 7, "hutBedCategoryLanguageData": []},
            ]
        }

        names = [c.name for c in HutReservationProvider.bed_categories(info)]

        assert names == ["Room", "Dortoir", "Category 7"]

    def test_unknown_category_gets_placeholder_name(self):
        payload = [{"date": "2026-07-01T00:00:00Z", "hutStatus": "SERVICED", "freeBedsPerCategory": {"9": 2}}]

        subs = HutReservationProvider.parse_availability(payload, categories=[])

        assert subs[0].name == "Category 9"
        assert subs[0].available_dates[0].free_places == 2

    def test_date_range_filter(self):
        categories = [SubResourceAvailability(name="Dormitory", external_id="1")]

        subs = HutReservationProvider.parse_availability(
            AVAILABILITY, categories, DateRange(start=date(2026, 8, 1), end=date(2026, 8, 31))
        )

        assert [d.day for d in subs[0].dates] == [date(2026, 8, 15)]

    def test_non_list_payload(self):
        with pytest.raises(ParsingError):
            HutReservationProvider.parse_availability({"error": "nope"}, categories=[])

    def test_entry_without_date(self):
        with pytest.raises(ParsingError):
            HutReservationProvider.parse_availability([{"hutStatus": "SERVICED"}], categories=[])

    def test_build_url(self):
        assert HutReservationProvider.build_url(42) == (
            "https://www.hut-reservation.org/reservation/book-hut/42/wizard"
        )
