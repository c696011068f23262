import asyncio
import json
import threading
from pathlib import Path

import pytest

from catalog import (
    CatalogFailed,
    CatalogIdle,
    CatalogLoaded,
    CatalogLoader,
    CatalogLoading,
    CatalogLoadError,
    Item,
    parse_items,
    read_catalog,
)

RECORDS = [
    {"id": "p01", "name": "Coffee", "price": 2.50},
    {"id": "p02", "name": "Bagel", "price": 3.20},
]


@pytest.fixture
def catalog_json(tmp_path):
    path = tmp_path / "catalog.json"
    path.write_text(json.dumps(RECORDS), encoding="utf-8")
    return path


def test_parse_items():
    items = parse_items(RECORDS)
    assert items == [Item("p01", "Coffee", 2.50), Item("p02", "Bagel", 3.20)]


def test_parse_items_accepts_integer_price():
    assert parse_items([{"id": "x", "name": "Free", "price": 0}])[0].price == 0.0


@pytest.mark.parametrize("records, fragment", [
    ({"id": "p01"}, "list of records"),
    (["p01"], "Record 0 is not an object"),
    ([{"id": "p01", "name": "Coffee"}], "missing 'price'"),
    ([{"id": "p01", "price": 1.0}], "missing 'name'"),
    ([{"id": 1, "name": "Coffee", "price": 1.0}], "non-text 'id'"),
    ([{"id": "p01", "name": "Coffee", "price": "2.50"}], "non-numeric price"),
    ([{"id": "p01", "name": "Coffee", "price": True}], "non-numeric price"),
    ([{"id": "p01", "name": "Coffee", "price": -1}], "negative price"),
    ([{"id": "p01", "name": "Coffee", "price": float("inf")}], "non-numeric price"),
    ([{"id": "p01", "name": "Coffee", "price": float("nan")}], "non-numeric price"),
])
def test_parse_items_rejects_malformed(records, fragment):
    with pytest.raises(CatalogLoadError, match=fragment):
        parse_items(records)


def test_one_bad_record_fails_whole_catalog():
    records = RECORDS + [{"id": "p03", "name": "Broken"}]
    with pytest.raises(CatalogLoadError, match="Record 2"):
        parse_items(records)


def test_read_json(catalog_json):
    assert [item.id for item in read_catalog(catalog_json)] == ["p01", "p02"]


def test_read_csv(tmp_path):
    path = tmp_path / "catalog.csv"
    path.write_text("id,name,price\np01,Coffee,2.50\n007,Bagel,3.20\n", encoding="utf-8")
    items = read_catalog(path)
    assert items[0] == Item("p01", "Coffee", 2.50)
    # ids stay text, leading zeros included
    assert items[1].id == "007"


def test_read_csv_missing_price(tmp_path):
    path = tmp_path / "catalog.csv"
    path.write_text("id,name,price\np01,Coffee,\n", encoding="utf-8")
    with pytest.raises(CatalogLoadError, match="non-numeric price"):
        read_catalog(path)


def test_read_missing_file(tmp_path):
    with pytest.raises(CatalogLoadError, match="not found"):
        read_catalog(tmp_path / "nope.json")


def test_read_invalid_json(tmp_path):
    path = tmp_path / "catalog.json"
    path.write_text("[{not json", encoding="utf-8")
    with pytest.raises(CatalogLoadError):
        read_catalog(path)


def test_read_unsupported_format(tmp_path):
    path = tmp_path / "catalog.yaml"
    path.write_text("- id: p01", encoding="utf-8")
    with pytest.raises(CatalogLoadError, match="Unsupported"):
        read_catalog(path)


def test_loader_publishes_lifecycle(catalog_json):
    loader = CatalogLoader()
    seen = []
    loader.subscribe(seen.append)

    result = asyncio.run(loader.load(catalog_json))

    assert isinstance(result, CatalogLoaded)
    assert seen[:2] == [CatalogIdle(), CatalogLoading()]
    assert seen[2] == result
    assert len(seen) == 3
    assert loader.items == tuple(parse_items(RECORDS))
    assert loader.get("p02") == Item("p02", "Bagel", 3.20)
    assert loader.get("p99") is None


def test_loader_failure_is_a_state(tmp_path):
    loader = CatalogLoader()
    seen = []
    loader.subscribe(seen.append)

    result = asyncio.run(loader.load(tmp_path / "missing.json"))

    assert isinstance(result, CatalogFailed)
    assert result.message.startswith("Failed to load catalog:")
    assert seen == [CatalogIdle(), CatalogLoading(), result]
    assert loader.items == ()
    assert loader.get("p01") is None


def test_newer_load_supersedes_older(tmp_path, catalog_json):
    loader = CatalogLoader()
    seen = []
    loader.subscribe(seen.append)

    async def run():
        return await asyncio.gather(
            loader.load(tmp_path / "missing.json"),
            loader.load(catalog_json),
        )

    stale, latest = asyncio.run(run())

    assert stale is None
    assert isinstance(latest, CatalogLoaded)
    assert loader.state == latest
    assert not any(isinstance(s, CatalogFailed) for s in seen)


def test_duplicate_ids_last_wins(tmp_path):
    path = tmp_path / "catalog.json"
    path.write_text(json.dumps(RECORDS + [{"id": "p01", "name": "Coffee XL", "price": 4.0}]),
                    encoding="utf-8")
    loader = CatalogLoader()
    asyncio.run(loader.load(path))

    assert len(loader.items) == 3
    assert loader.get("p01").name == "Coffee XL"


def test_reload_clears_previous_items_until_loaded(tmp_path, catalog_json):
    loader = CatalogLoader()
    asyncio.run(loader.load(catalog_json))
    assert loader.get("p01") is not None

    asyncio.run(loader.load(tmp_path / "missing.json"))
    assert isinstance(loader.state, CatalogFailed)
    assert loader.get("p01") is None


def test_bundled_catalog():
    items = read_catalog(Path(__file__).parent.parent / "assets" / "catalog.json")
    assert len(items) == 20
    assert items[0] == Item("p01", "Coffee", 2.50)
    assert items[1] == Item("p02", "Bagel", 3.20)


def test_json_infinity_price_fails_load(tmp_path):
    path = tmp_path / "catalog.json"
    path.write_text('[{"id": "p01", "name": "Coffee", "price": Infinity}]', encoding="utf-8")
    with pytest.raises(CatalogLoadError, match="non-numeric price"):
        read_catalog(path)


def test_loads_from_separate_threads_settle_consistently(tmp_path, catalog_json):
    loader = CatalogLoader()
    seen = []
    loader.subscribe(seen.append)
    paths = [tmp_path / "missing.json", catalog_json] * 4

    workers = [threading.Thread(target=lambda p=p: asyncio.run(loader.load(p))) for p in paths]
    for worker in workers:
        worker.start()
    for worker in workers:
        worker.join()

    final = loader.state
    assert isinstance(final, (CatalogLoaded, CatalogFailed))
    assert seen[-1] == final
    # after the last loading state, exactly one outcome is published
    last_loading = max(i for i, s in enumerate(seen) if isinstance(s, CatalogLoading))
    assert len(seen) - last_loading == 2
    if isinstance(final, CatalogLoaded):
        assert loader.get("p01") == Item("p01", "Coffee", 2.50)
    else:
        assert loader.get("p01") is None
