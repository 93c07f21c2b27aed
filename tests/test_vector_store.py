"""Vector store coverage for the offline store, filters and the Milvus adapter."""

from __future__ import annotations

import threading
import time
from concurrent.futures import ThreadPoolExecutor

import pytest
from pymilvus import MilvusException

from logic.rule_filter import RuleFilter
from models.records import WeatherSnapshot
from outfit_app.errors import StoreQueryError, StoreWriteError
from tools import vector_store as vector_store_module
from tools.vector_store import InMemoryVectorStore, MilvusVectorStore


def _attributes(**overrides):
    base = dict(
        temperature_min=10,
        temperature_max=20,
        weather="sunny",
        preference="casual",
        outfit="light jacket",
    )
    base.update(overrides)
    return base


def _store(dimension: int = 3) -> InMemoryVectorStore:
    store = InMemoryVectorStore(dimension=dimension)
    store.ensure_collection()
    return store


def test_rule_filter_expression_matches_milvus_syntax() -> None:
    rule_filter = RuleFilter.for_weather(
        WeatherSnapshot.from_bounds(min_temp=2.0, max_temp=8.0, condition="cloudy"), "casual"
    )

    assert rule_filter.to_expression() == (
        'temperature_min <= 8 and temperature_max >= 2 and weather == "cloudy" and preference == "casual"'
    )


def test_rule_filter_rounds_fractional_bounds_and_escapes_strings() -> None:
    rule_filter = RuleFilter(min_temp=2.3, max_temp=8.7, weather='say "hi"', preference="casual")

    assert rule_filter.upper_bound == 8
    assert rule_filter.lower_bound == 3
    assert 'weather == "say \\"hi\\""' in rule_filter.to_expression()


def test_inserted_record_is_found_by_bracketing_filter() -> None:
    store = _store()
    store.insert("Temperature 10-20°C, weather sunny: light jacket", [1.0, 0.0, 0.0], _attributes())

    match = RuleFilter(min_temp=10, max_temp=20, weather="sunny", preference="casual")
    rainy = RuleFilter(min_temp=10, max_temp=20, weather="rainy", preference="casual")

    assert store.search([1.0, 0.0, 0.0], match, top_k=3) == ["light jacket"]
    assert store.search([1.0, 0.0, 0.0], rainy, top_k=3) == []


def test_search_excludes_records_outside_temperature_range() -> None:
    store = _store()
    store.insert("warm", [1.0, 0.0, 0.0], _attributes(temperature_min=25, temperature_max=35, outfit="shorts"))

    cold = RuleFilter(min_temp=2, max_temp=8, weather="sunny", preference="casual")

    assert store.search([1.0, 0.0, 0.0], cold) == []


def test_search_ranks_by_ascending_distance_and_bounds_top_k() -> None:
    store = _store()
    store.insert("far", [0.0, 0.0, 5.0], _attributes(outfit="far"))
    store.insert("near", [1.0, 0.1, 0.0], _attributes(outfit="near"))
    store.insert("middle", [0.0, 1.0, 0.0], _attributes(outfit="middle"))
    rule_filter = RuleFilter(min_temp=12, max_temp=18, weather="sunny", preference="casual")

    assert store.search([1.0, 0.0, 0.0], rule_filter, top_k=2) == ["near", "middle"]
    assert store.search([1.0, 0.0, 0.0], rule_filter, top_k=10) == ["near", "middle", "far"]


def test_insert_rejects_dimension_mismatch() -> None:
    store = _store(dimension=3)
    with pytest.raises(StoreWriteError, match="dimension"):
        store.insert("bad", [1.0, 2.0], _attributes())
    assert store.count() == 0


@pytest.mark.parametrize(
    "overrides, message",
    [
        ({"weather": "x" * 51}, "weather"),
        ({"outfit": "y" * 501}, "outfit"),
        ({"temperature_min": "cold"}, "integer"),
    ],
)
def test_insert_rejects_schema_violations(overrides, message) -> None:
    store = _store()
    with pytest.raises(StoreWriteError, match=message):
        store.insert("text", [0.0, 0.0, 0.0], _attributes(**overrides))


def test_insert_rejects_missing_attributes_and_long_text() -> None:
    store = _store()
    attributes = _attributes()
    del attributes["preference"]
    with pytest.raises(StoreWriteError, match="preference"):
        store.insert("text", [0.0, 0.0, 0.0], attributes)
    with pytest.raises(StoreWriteError, match="1000"):
        store.insert("t" * 1001, [0.0, 0.0, 0.0], _attributes())


def test_clear_removes_all_records_and_ensure_is_idempotent() -> None:
    store = _store()
    store.insert("a", [0.0, 0.0, 0.0], _attributes())
    store.ensure_collection()
    assert store.count() == 1

    store.clear()

    assert store.count() == 0


def test_search_on_missing_collection_raises_query_error() -> None:
    store = InMemoryVectorStore(dimension=3)
    with pytest.raises(StoreQueryError):
        store.search([0.0, 0.0, 0.0], RuleFilter(0, 10, "sunny", "casual"))


def test_concurrent_inserts_and_searches_share_one_store() -> None:
    store = _store()
    rule_filter = RuleFilter(min_temp=12, max_temp=18, weather="sunny", preference="casual")

    def insert(index: int) -> None:
        store.insert(f"rule {index}", [float(index), 0.0, 0.0], _attributes(outfit=f"outfit {index}"))

    def search(_: int) -> list:
        return store.search([0.0, 0.0, 0.0], rule_filter, top_k=5)

    with ThreadPoolExecutor(max_workers=8) as pool:
        writes = [pool.submit(insert, index) for index in range(40)]
        reads = [pool.submit(search, index) for index in range(40)]
        for future in writes:
            future.result()
        partial = [future.result() for future in reads]
        final = list(pool.map(search, range(8)))

    assert store.count() == 40
    records = store._collections[store.collection_name]
    assert len({record.id for record in records}) == 40
    assert all(len(result) <= 5 for result in partial)
    assert all(result == [f"outfit {index}" for index in range(5)] for result in final)


class _FakeIndexParams:
    def __init__(self) -> None:
        self.indexes: list[dict] = []

    def add_index(self, **kwargs) -> None:
        self.indexes.append(kwargs)


class _FakeSchema:
    def __init__(self) -> None:
        self.fields: list[dict] = []

    def add_field(self, **kwargs) -> None:
        self.fields.append(kwargs)


class _FakeMilvusClient:
    instances: list["_FakeMilvusClient"] = []

    def __init__(self, uri: str, token: str = "", timeout: float | None = None) -> None:
        self.uri = uri
        self.timeout = timeout
        self.collections: set[str] = set()
        self.created: list[dict] = []
        self.inserted: list[dict] = []
        self.deleted: list[dict] = []
        self.search_calls: list[dict] = []
        self.search_results: list = []
        self.search_error: Exception | None = None
        self.closed = False
        _FakeMilvusClient.instances.append(self)

    def has_collection(self, collection_name: str, timeout=None) -> bool:
        return collection_name in self.collections

    def create_schema(self, **kwargs) -> _FakeSchema:
        return _FakeSchema()

    def prepare_index_params(self) -> _FakeIndexParams:
        return _FakeIndexParams()

    def create_collection(self, collection_name: str, schema=None, index_params=None, timeout=None) -> None:
        self.collections.add(collection_name)
        self.created.append({"name": collection_name, "schema": schema, "index_params": index_params})

    def insert(self, collection_name: str, data, timeout=None) -> dict:
        self.inserted.extend(data)
        return {"insert_count": len(data)}

    def search(self, **kwargs):
        self.search_calls.append(kwargs)
        if self.search_error is not None:
            raise self.search_error
        return self.search_results

    def delete(self, **kwargs) -> None:
        self.deleted.append(kwargs)

    def close(self) -> None:
        self.closed = True


@pytest.fixture()
def milvus_store(monkeypatch: pytest.MonkeyPatch) -> MilvusVectorStore:
    _FakeMilvusClient.instances.clear()
    monkeypatch.setattr(vector_store_module, "MilvusClient", _FakeMilvusClient)
    store = MilvusVectorStore(uri="http://milvus:19530", dimension=3, timeout_seconds=2.0)
    store.connect()
    return store


def test_milvus_connect_uses_bounded_timeout(milvus_store: MilvusVectorStore) -> None:
    client = _FakeMilvusClient.instances[0]
    assert client.uri == "http://milvus:19530"
    assert client.timeout == 2.0


def test_milvus_ensure_collection_creates_flat_l2_index_once(milvus_store: MilvusVectorStore) -> None:
    milvus_store.ensure_collection("outfit_preferences", 3)
    milvus_store.ensure_collection("outfit_preferences", 3)

    client = _FakeMilvusClient.instances[0]
    assert len(client.created) == 1
    index = client.created[0]["index_params"].indexes[0]
    assert index == {"field_name": "vector", "index_type": "FLAT", "metric_type": "L2"}
    field_names = [field["field_name"] for field in client.created[0]["schema"].fields]
    assert field_names == [
        "id",
        "text",
        "vector",
        "temperature_min",
        "temperature_max",
        "weather",
        "preference",
        "outfit",
    ]


def test_milvus_insert_writes_row_and_validates_dimension(milvus_store: MilvusVectorStore) -> None:
    milvus_store.ensure_collection()
    milvus_store.insert("rule", [0.1, 0.2, 0.3], _attributes())

    client = _FakeMilvusClient.instances[0]
    assert client.inserted[0]["outfit"] == "light jacket"
    assert client.inserted[0]["vector"] == [0.1, 0.2, 0.3]

    with pytest.raises(StoreWriteError):
        milvus_store.insert("rule", [0.1], _attributes())


def test_milvus_search_pushes_filter_and_sorts_hits(milvus_store: MilvusVectorStore) -> None:
    client = _FakeMilvusClient.instances[0]
    client.search_results = [
        [
            {"id": 2, "distance": 0.9, "entity": {"outfit": "hoodie"}},
            {"id": 1, "distance": 0.1, "entity": {"outfit": "wool coat"}},
        ]
    ]
    rule_filter = RuleFilter(min_temp=2, max_temp=8, weather="cloudy", preference="casual")

    outfits = milvus_store.search([0.0, 0.0, 1.0], rule_filter, top_k=3, timeout=1.0)

    assert outfits == ["wool coat", "hoodie"]
    call = client.search_calls[0]
    assert call["filter"] == rule_filter.to_expression()
    assert call["limit"] == 3
    assert call["output_fields"] == ["outfit"]
    assert call["timeout"] == 1.0


def test_milvus_search_errors_become_store_query_error(milvus_store: MilvusVectorStore) -> None:
    _FakeMilvusClient.instances[0].search_error = MilvusException(message="collection not loaded")

    with pytest.raises(StoreQueryError):
        milvus_store.search([0.0, 0.0, 1.0], RuleFilter(0, 10, "sunny", "casual"))


def test_milvus_clear_and_close(milvus_store: MilvusVectorStore) -> None:
    milvus_store.ensure_collection()
    milvus_store.clear()
    client = _FakeMilvusClient.instances[0]
    assert client.deleted[0]["collection_name"] == "outfit_preferences"

    milvus_store.close()
    assert client.closed
    with pytest.raises(StoreQueryError, match="not connected"):
        milvus_store.search([0.0, 0.0, 1.0], RuleFilter(0, 10, "sunny", "casual"))


class _SlowFakeMilvusClient(_FakeMilvusClient):
    def __init__(self, *args, **kwargs) -> None:
        time.sleep(0.05)
        super().__init__(*args, **kwargs)


def test_milvus_concurrent_connect_creates_single_client(monkeypatch: pytest.MonkeyPatch) -> None:
    _FakeMilvusClient.instances.clear()
    monkeypatch.setattr(vector_store_module, "MilvusClient", _SlowFakeMilvusClient)
    store = MilvusVectorStore(uri="http://milvus:19530", dimension=3)
    barrier = threading.Barrier(6)

    def connect() -> None:
        barrier.wait()
        store.connect()

    threads = [threading.Thread(target=connect) for _ in range(6)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(_FakeMilvusClient.instances) == 1
    assert store.client is _FakeMilvusClient.instances[0]
