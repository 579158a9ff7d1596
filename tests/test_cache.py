import asyncio

import pytest

from models.schemas import RangeDocument
from pipeline.cache import RangeDocumentCache
from pipeline.fetcher import ConnectionFailure

INTERVAL = 3600.0


class FakeFetcher:
    """Returns (or raises) queued results; the last one repeats."""

    def __init__(self, *results, delay: float = 0.0):
        self.results = list(results)
        self.delay = delay
        self.calls = 0

    async def fetch(self):
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        result = self.results.pop(0) if len(self.results) > 1 else self.results[0]
        if isinstance(result, Exception):
            raise result
        return result


def make_document(prefix: str) -> RangeDocument:
    return RangeDocument(prefixes=[{"scope": "us-central1", "ipv4Prefix": prefix}])


def test_first_call_fetches_and_populates_cache():
    doc = make_document("5.5.5.0/24")
    fetcher = FakeFetcher(doc)
    cache = RangeDocumentCache(fetcher, refresh_interval=INTERVAL)

    assert cache.last_document is None
    result = asyncio.run(cache.get_document(now=100.0))

    assert result is doc
    assert fetcher.calls == 1
    assert cache.last_document is doc
    assert cache.last_fetched_at == 100.0


def test_reuses_document_within_interval():
    fetcher = FakeFetcher(make_document("5.5.5.0/24"), make_document("6.6.6.0/24"))
    cache = RangeDocumentCache(fetcher, refresh_interval=INTERVAL)

    first = asyncio.run(cache.get_document(now=0.0))
    second = asyncio.run(cache.get_document(now=INTERVAL - 0.001))

    assert second is first
    assert fetcher.calls == 1


def test_refetches_after_interval():
    old, new = make_document("5.5.5.0/24"), make_document("6.6.6.0/24")
    fetcher = FakeFetcher(old, new)
    cache = RangeDocumentCache(fetcher, refresh_interval=INTERVAL)

    asyncio.run(cache.get_document(now=0.0))
    result = asyncio.run(cache.get_document(now=INTERVAL + 0.001))

    assert result is new
    assert fetcher.calls == 2
    assert cache.last_fetched_at == INTERVAL + 0.001


def test_refetches_exactly_at_interval_boundary():
    fetcher = FakeFetcher(make_document("5.5.5.0/24"))
    cache = RangeDocumentCache(fetcher, refresh_interval=INTERVAL)

    asyncio.run(cache.get_document(now=0.0))
    asyncio.run(cache.get_document(now=INTERVAL))

    assert fetcher.calls == 2


def test_failure_on_empty_cache_propagates():
    fetcher = FakeFetcher(ConnectionFailure("Connection refused"))
    cache = RangeDocumentCache(fetcher, refresh_interval=INTERVAL)

    with pytest.raises(ConnectionFailure):
        asyncio.run(cache.get_document(now=0.0))
    assert cache.last_document is None
    assert cache.last_fetched_at is None


def test_failed_refresh_keeps_state_but_does_not_serve_stale_document():
    doc = make_document("5.5.5.0/24")
    fetcher = FakeFetcher(doc, ConnectionFailure("timeout"))
    cache = RangeDocumentCache(fetcher, refresh_interval=INTERVAL)

    asyncio.run(cache.get_document(now=0.0))
    with pytest.raises(ConnectionFailure):
        asyncio.run(cache.get_document(now=INTERVAL + 1))

    assert cache.last_document is doc
    assert cache.last_fetched_at == 0.0

    # every later call past the interval tries again
    with pytest.raises(ConnectionFailure):
        asyncio.run(cache.get_document(now=INTERVAL + 2))
    assert fetcher.calls == 3


def test_uses_injected_clock_when_now_is_omitted():
    ticks = [10.0]
    fetcher = FakeFetcher(make_document("5.5.5.0/24"))
    cache = RangeDocumentCache(fetcher, refresh_interval=INTERVAL, clock=lambda: ticks[0])

    asyncio.run(cache.get_document())
    ticks[0] = 10.0 + INTERVAL / 2
    asyncio.run(cache.get_document())
    assert fetcher.calls == 1

    ticks[0] = 10.0 + INTERVAL * 2
    asyncio.run(cache.get_document())
    assert fetcher.calls == 2


async def _concurrent_gets(cache, count):
    return await asyncio.gather(*(cache.get_document(now=0.0) for _ in range(count)))


def test_concurrent_refreshes_may_duplicate_fetches():
    fetcher = FakeFetcher(make_document("5.5.5.0/24"), delay=0.01)
    cache = RangeDocumentCache(fetcher, refresh_interval=INTERVAL)

    results = asyncio.run(_concurrent_gets(cache, 2))

    assert fetcher.calls == 2
    assert all(r.prefixes[0].ipv4Prefix == "5.5.5.0/24" for r in results)


def test_single_flight_serialises_refreshes():
    fetcher = FakeFetcher(make_document("5.5.5.0/24"), delay=0.01)
    cache = RangeDocumentCache(fetcher, refresh_interval=INTERVAL, single_flight=True)

    results = asyncio.run(_concurrent_gets(cache, 3))

    assert fetcher.calls == 1
    assert results[0] is results[1] is results[2]


def test_single_flight_cache_survives_separate_event_loops():
    fetcher = FakeFetcher(make_document("5.5.5.0/24"), delay=0.01)
    cache = RangeDocumentCache(fetcher, refresh_interval=INTERVAL, single_flight=True)

    asyncio.run(_concurrent_gets(cache, 2))
    cache._last_fetched_at = -INTERVAL
    results = asyncio.run(_concurrent_gets(cache, 2))

    assert fetcher.calls == 2
    assert results[0] is results[1]
