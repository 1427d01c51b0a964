import pytest
from pymongo.errors import PyMongoError

from conftest import product


@pytest.fixture
def catalog(store):
    store.seed("products", {
        "p1": product("Linen Shirt", "2024-03-01T10:00:00Z"),
        "p2": product("Wool Coat", "2024-05-01T10:00:00Z", visibility="DRAFT"),
        "p3": product("Silk Scarf", "2024-04-01T10:00:00Z"),
    })
    return store


async def test_get_product_with_empty_id_skips_store(repo, store):
    assert await repo.get_product("") is None
    assert await repo.get_product("   ") is None
    assert store.calls == []


async def test_get_product_projects_requested_fields(repo, store):
    store.seed("products", {"X": {"name": "A", "pricing": {"basePrice": 10}}})
    assert await repo.get_product("X", fields=["name"]) == {"id": "X", "name": "A"}


async def test_get_product_ignores_unknown_fields(repo, store):
    store.seed("products", {"X": {"name": "A", "secret": "s"}})
    assert await repo.get_product("X", fields=["name", "secret", "nope"]) == {"id": "X", "name": "A"}


async def test_get_product_without_fields_returns_whole_document(repo, catalog):
    result = await repo.get_product(" p1 ")
    assert result["id"] == "p1"
    assert result["name"] == "Linen Shirt"
    assert result["pricing"]["basePrice"] == 40


async def test_get_product_missing(repo, catalog):
    assert await repo.get_product("nope") is None


async def test_get_products_newest_first(repo, catalog):
    result = await repo.get_products()
    assert [p["id"] for p in result] == ["p2", "p3", "p1"]


async def test_get_products_keeps_sort_keys_when_projecting(repo, catalog):
    result = await repo.get_products(fields=["name"])
    assert result[0] == {
        "id": "p2",
        "name": "Wool Coat",
        "updatedAt": "2024-05-01T10:00:00Z",
        "visibility": "DRAFT",
    }


async def test_get_products_filters_by_visibility(repo, catalog, store):
    result = await repo.get_products(visibility="published")
    assert [p["id"] for p in result] == ["p3", "p1"]
    assert store.calls == [("products", "query", {"visibility": "PUBLISHED"})]


async def test_get_products_invalid_visibility_is_no_filter(repo, catalog, store):
    result = await repo.get_products(visibility="bogus")
    assert len(result) == 3
    assert store.calls == [("products", "query", None)]


async def test_get_products_empty_match_is_none(repo, catalog):
    assert await repo.get_products(visibility="HIDDEN") is None


async def test_get_products_by_ids_empty_skips_store(repo, store):
    assert await repo.get_products_by_ids([]) is None
    assert await repo.get_products_by_ids(["", None]) is None
    assert store.calls == []


async def test_get_products_by_ids_single_query(repo, catalog, store):
    result = await repo.get_products_by_ids(["p1", "p2", "gone"], fields=["slug"])
    assert [p["id"] for p in result] == ["p2", "p1"]
    assert result[1] == {
        "id": "p1",
        "slug": "linen-shirt",
        "updatedAt": "2024-03-01T10:00:00Z",
        "visibility": "PUBLISHED",
    }
    assert store.calls == [("products", "query_in_ids", ["p1", "p2", "gone"], None)]


async def test_get_products_by_ids_with_visibility(repo, catalog):
    result = await repo.get_products_by_ids(["p1", "p2"], visibility="draft")
    assert [p["id"] for p in result] == ["p2"]
    assert await repo.get_products_by_ids(["p1"], visibility="DRAFT") is None


async def test_store_errors_propagate(repo, catalog, store):
    store.failing.add(("products", "p1"))
    with pytest.raises(PyMongoError):
        await repo.get_product("p1")


async def test_get_products_equal_timestamps_keep_store_order(repo, store):
    store.seed("products", {
        "first": product("Cap", "2024-02-01T00:00:00Z"),
        "second": product("Belt", "2024-02-01T00:00:00Z"),
        "newer": product("Bag", "2024-03-01T00:00:00Z"),
    })
    result = await repo.get_products()
    assert [p["id"] for p in result] == ["newer", "first", "second"]
