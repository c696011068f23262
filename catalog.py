# catalog.py
import asyncio
import json
import logging
import math
import numbers
import threading
from dataclasses import dataclass
from pathlib import Path

import pandas as pd

logger = logging.getLogger("pos_system.catalog")


class CatalogLoadError(Exception):
    """Raised when the catalog source is missing or malformed."""


@dataclass(frozen=True)
class Item:
    """A catalog product."""
    id: str
    name: str
    price: float

    @classmethod
    def from_record(cls, record: dict):
        return cls(id=record['id'], name=record['name'], price=float(record['price']))

    def to_record(self):
        return {'id': self.id, 'name': self.name, 'price': self.price}


# Catalog lifecycle states
@dataclass(frozen=True)
class CatalogIdle:
    pass


@dataclass(frozen=True)
class CatalogLoading:
    pass


@dataclass(frozen=True)
class CatalogLoaded:
    items: tuple


@dataclass(frozen=True)
class CatalogFailed:
    message: str


CatalogState = CatalogIdle | CatalogLoading | CatalogLoaded | CatalogFailed


def _check_record(idx: int, record):
    if not isinstance(record, dict):
        raise CatalogLoadError(f"Record {idx} is not an object")
    for key in ('id', 'name', 'price'):
        if key not in record:
            raise CatalogLoadError(f"Record {idx} is missing '{key}'")
    for key in ('id', 'name'):
        if not isinstance(record[key], str):
            raise CatalogLoadError(f"Record {idx} has a non-text '{key}'")
    price = record['price']
    if isinstance(price, bool) or not isinstance(price, numbers.Real) or not math.isfinite(price):
        raise CatalogLoadError(f"Record {idx} has a non-numeric price: {price!r}")
    if price < 0:
        raise CatalogLoadError(f"Record {idx} has a negative price: {price!r}")


def parse_items(records) -> list:
    """
    Validate catalog records and convert them to Items.
    Any malformed record fails the whole catalog.
    """
    if not isinstance(records, list):
        raise CatalogLoadError("Catalog must be a list of records")
    for idx, record in enumerate(records):
        _check_record(idx, record)
    return [Item.from_record(r) for r in records]


def read_catalog(path) -> list:
    """
    Read catalog records from a .json, .csv or .xlsx file.
    CSV/Excel files need the columns id,name,price.
    """
    path = Path(path)
    if not path.exists():
        raise CatalogLoadError(f"Catalog file not found: {path}")

    suffix = path.suffix.lower()
    try:
        if suffix == '.json':
            with open(path, 'r', encoding='utf-8') as f:
                records = json.load(f)
        elif suffix == '.csv':
            df = pd.read_csv(path, dtype={'id': str, 'name': str})
            records = df.to_dict('records')
        elif suffix == '.xlsx':
            df = pd.read_excel(path, dtype={'id': str, 'name': str})
            records = df.to_dict('records')
        else:
            raise CatalogLoadError(f"Unsupported catalog format: {suffix or path.name}")
    except (OSError, ValueError) as e:
        raise CatalogLoadError(str(e)) from e

    return parse_items(records)


class CatalogLoader:
    """
    Loads the product catalog and publishes its lifecycle state
    (idle -> loading -> loaded or failed) to subscribers.
    """
    def __init__(self):
        self._state = CatalogIdle()
        self._observers = []
        self._by_id = {}
        self._generation = 0
        # loads may run on different threads, each with its own event loop
        self._lock = threading.RLock()

    @property
    def state(self) -> CatalogState:
        return self._state

    @property
    def items(self):
        if isinstance(self._state, CatalogLoaded):
            return self._state.items
        return ()

    def get(self, item_id: str):
        """Find a loaded item by id; the last duplicate id wins."""
        return self._by_id.get(item_id)

    def subscribe(self, callback):
        with self._lock:
            self._observers.append(callback)
            callback(self._state)

        def unsubscribe():
            with self._lock:
                if callback in self._observers:
                    self._observers.remove(callback)
        return unsubscribe

    def _publish(self, state):
        if state == self._state:
            return
        self._state = state
        for callback in list(self._observers):
            callback(state)

    async def load(self, path):
        """
        Load the catalog from path. Failures become a CatalogFailed state
        rather than an exception. If another load starts before this one
        completes, this result is discarded and None is returned.
        """
        with self._lock:
            self._generation += 1
            generation = self._generation
            self._by_id = {}
            self._publish(CatalogLoading())
        logger.info(f"Loading catalog from {path}")

        try:
            items = await asyncio.to_thread(read_catalog, path)
        except CatalogLoadError as e:
            result = CatalogFailed(f"Failed to load catalog: {e}")
        else:
            result = CatalogLoaded(tuple(items))

        with self._lock:
            if generation != self._generation:
                logger.debug(f"Discarding superseded catalog load from {path}")
                return None

            if isinstance(result, CatalogLoaded):
                self._by_id = {item.id: item for item in result.items}
                logger.info(f"Catalog loaded: {len(result.items)} items")
            else:
                logger.error(result.message)
            self._publish(result)
        return result
