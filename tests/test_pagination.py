from unittest.mock import AsyncMock, MagicMock

import pytest

from messenger.utils.pagination import aggregate_page, facet_stages, normalize_paging, unpack_page


class TestNormalizePaging:

    def test_defaults(self):
        assert normalize_paging() == (1, 10)
        assert normalize_paging(None, None) == (1, 10)

    def test_non_positive_values_fall_back(self):
        assert normalize_paging(0, 0) == (1, 10)
        assert normalize_paging(-2, -5) == (1, 10)

    def test_explicit_values(self):
        assert normalize_paging(3, 25) == (3, 25)


class TestUnpackPage:

    @pytest.mark.parametrize("limit", [1, 10, 50])
    def test_no_matches(self, limit):
        assert unpack_page([], limit) == {"data": [], "total_count": 0, "total_pages": 0}

    @pytest.mark.parametrize(
        "total_count, expected_pages",
        [(0, 0), (1, 1), (9, 1), (10, 1), (11, 2)],
    )
    def test_total_pages_is_ceiling(self, total_count, expected_pages):
        results = [{"total_count": total_count, "data": []}] if total_count else []
        assert unpack_page(results, 10)["total_pages"] == expected_pages

    def test_passes_data_through(self):
        page = unpack_page([{"total_count": 12, "data": [{"_id": 1}]}], 5)
        assert page == {"data": [{"_id": 1}], "total_count": 12, "total_pages": 3}


def test_facet_stages_skip_and_limit():
    facet = facet_stages(3, 10)[0]["$facet"]
    assert facet["data"] == [{"$skip": 20}, {"$limit": 10}]
    assert facet["total_count"] == [{"$count": "total_count"}]


@pytest.mark.asyncio
async def test_aggregate_page_appends_facet_to_pipeline():
    collection = MagicMock()
    cursor = MagicMock()
    cursor.to_list = AsyncMock(return_value=[{"total_count": 4, "data": [{"n": 1}]}])
    collection.aggregate.return_value = cursor
    base = [{"$match": {"user": "u"}}, {"$sort": {"created_at": -1}}]

    page = await aggregate_page(collection, base, page=2, limit=3)

    pipeline = collection.aggregate.call_args.args[0]
    assert pipeline[:2] == base
    assert pipeline[2]["$facet"]["data"] == [{"$skip": 3}, {"$limit": 3}]
    assert page == {"data": [{"n": 1}], "total_count": 4, "total_pages": 2}


@pytest.mark.asyncio
async def test_aggregate_page_empty_result():
    collection = MagicMock()
    collection.aggregate.return_value.to_list = AsyncMock(return_value=[])
    page = await aggregate_page(collection, [], page=5, limit=0)
    assert page == {"data": [], "total_count": 0, "total_pages": 0}
