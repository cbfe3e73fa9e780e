"""Tests for classorder.oracle_cache module."""
from __future__ import annotations

import asyncio
import gc
import threading
from pathlib import Path

import pytest

from classorder.config import SorterConfig, config_fingerprint
from classorder.errors import OracleBuildError
from classorder.oracle import RankTableOracle
from classorder.oracle_cache import OracleCache

CONFIG_A = SorterConfig(rank_table_path="a.json")
CONFIG_B = SorterConfig(rank_table_path="b.json")


class RecordingBuilder:
    """Builds a one-class oracle named after the configured table path."""

    def __init__(self, fail_for: frozenset[str] = frozenset()) -> None:
        self.calls: list[str] = []
        self.fail_for = fail_for
        self.gates: dict[str, threading.Event] = {}
        self._lock = threading.Lock()

    def __call__(self, config: SorterConfig, workspace_root: Path) -> RankTableOracle:
        with self._lock:
            self.calls.append(config.rank_table_path)
        gate = self.gates.get(config.rank_table_path)
        if gate is not None:
            gate.wait(5)
        if config.rank_table_path in self.fail_for:
            raise OSError(f"cannot read {config.rank_table_path}")
        return RankTableOracle(classes={config.rank_table_path: 1})


def test_cache_hit(tmp_path: Path) -> None:
    builder = RecordingBuilder()
    cache = OracleCache(builder)

    async def scenario() -> tuple[RankTableOracle, RankTableOracle]:
        first = await cache.get(CONFIG_A, tmp_path)
        second = await cache.get(CONFIG_A, tmp_path)
        return first, second

    first, second = asyncio.run(scenario())
    assert first is second
    assert builder.calls == ["a.json"]
    assert cache.fingerprint == config_fingerprint(CONFIG_A, tmp_path)


def test_concurrent_requests_share_one_build(tmp_path: Path) -> None:
    builder = RecordingBuilder()
    cache = OracleCache(builder)

    async def scenario() -> list[RankTableOracle]:
        return await asyncio.gather(*(cache.get(CONFIG_A, tmp_path) for _ in range(5)))

    results = asyncio.run(scenario())
    assert builder.calls == ["a.json"]
    assert all(r is results[0] for r in results)
    assert cache.in_flight() == []


def test_failure_reaches_every_waiter(tmp_path: Path) -> None:
    builder = RecordingBuilder(fail_for=frozenset({"a.json"}))
    cache = OracleCache(builder)

    async def scenario() -> list[object]:
        return await asyncio.gather(
            *(cache.get(CONFIG_A, tmp_path) for _ in range(3)),
            return_exceptions=True,
        )

    results = asyncio.run(scenario())
    assert builder.calls == ["a.json"]
    assert all(isinstance(r, OracleBuildError) for r in results)
    assert isinstance(results[0].__cause__, OSError)  # type: ignore[union-attr]
    assert cache.oracle is None
    assert cache.in_flight() == []


def test_failed_build_is_retried(tmp_path: Path) -> None:
    builder = RecordingBuilder(fail_for=frozenset({"a.json"}))
    cache = OracleCache(builder)

    async def scenario() -> RankTableOracle:
        with pytest.raises(OracleBuildError):
            await cache.get(CONFIG_A, tmp_path)
        builder.fail_for = frozenset()
        return await cache.get(CONFIG_A, tmp_path)

    oracle = asyncio.run(scenario())
    assert builder.calls == ["a.json", "a.json"]
    assert cache.oracle is oracle


def test_fingerprint_change_rebuilds(tmp_path: Path) -> None:
    builder = RecordingBuilder()
    cache = OracleCache(builder)

    async def scenario() -> None:
        await cache.get(CONFIG_A, tmp_path)
        await cache.get(CONFIG_B, tmp_path)
        await cache.get(CONFIG_B, tmp_path)
        await cache.get(CONFIG_A, tmp_path)

    asyncio.run(scenario())
    assert builder.calls == ["a.json", "b.json", "a.json"]
    assert cache.fingerprint == config_fingerprint(CONFIG_A, tmp_path)


def test_failed_rebuild_drops_superseded_oracle(tmp_path: Path) -> None:
    builder = RecordingBuilder(fail_for=frozenset({"b.json"}))
    cache = OracleCache(builder)

    async def scenario() -> None:
        await cache.get(CONFIG_A, tmp_path)
        with pytest.raises(OracleBuildError):
            await cache.get(CONFIG_B, tmp_path)

    asyncio.run(scenario())
    assert cache.oracle is None
    assert cache.fingerprint is None


def test_superseded_build_not_installed(tmp_path: Path) -> None:
    builder = RecordingBuilder()
    gate = threading.Event()
    builder.gates["a.json"] = gate
    cache = OracleCache(builder)

    async def scenario() -> tuple[RankTableOracle, RankTableOracle]:
        slow = asyncio.create_task(cache.get(CONFIG_A, tmp_path))
        await asyncio.sleep(0)
        newer = await cache.get(CONFIG_B, tmp_path)
        gate.set()
        older = await slow
        return older, newer

    older, newer = asyncio.run(scenario())
    assert older.rank_one("a.json").value == 1  # type: ignore[union-attr]
    assert cache.oracle is newer
    assert cache.fingerprint == config_fingerprint(CONFIG_B, tmp_path)


def test_clear(tmp_path: Path) -> None:
    cache = OracleCache(RecordingBuilder())
    asyncio.run(cache.get(CONFIG_A, tmp_path))
    cache.clear()
    assert cache.oracle is None
    assert cache.fingerprint is None


def test_cancelled_waiter_leaves_failure_retrieved(tmp_path: Path) -> None:
    builder = RecordingBuilder(fail_for=frozenset({"a.json"}))
    gate = threading.Event()
    builder.gates["a.json"] = gate
    cache = OracleCache(builder)
    unhandled: list[dict[str, object]] = []

    async def scenario() -> None:
        asyncio.get_running_loop().set_exception_handler(
            lambda _loop, context: unhandled.append(context),
        )
        waiter = asyncio.create_task(cache.get(CONFIG_A, tmp_path))
        await asyncio.sleep(0)
        waiter.cancel()
        with pytest.raises(asyncio.CancelledError):
            await waiter
        gate.set()
        while cache.in_flight():
            await asyncio.sleep(0.01)
        await asyncio.sleep(0.01)
        gc.collect()

    asyncio.run(scenario())
    assert builder.calls == ["a.json"]
    assert cache.oracle is None
    assert unhandled == []
