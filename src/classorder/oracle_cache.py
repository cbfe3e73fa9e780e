"""Fingerprint-keyed oracle cache with single-flight builds.

Building an oracle reads and parses files, so the cache keeps the last one
and rebuilds only when the configuration fingerprint changes. Concurrent
requests for a fingerprint whose build is still running await that same
build; at most one build per fingerprint is in flight.
"""
from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from pathlib import Path
from typing import TypeAlias

from classorder.config import SorterConfig, config_fingerprint
from classorder.errors import OracleBuildError
from classorder.oracle import ClassOrderOracle, build_rank_table_oracle

logger = logging.getLogger(__name__)

OracleBuilder: TypeAlias = Callable[[SorterConfig, Path], ClassOrderOracle]


def _retrieve_failure(task: asyncio.Task[ClassOrderOracle]) -> None:
    # Waiters may all be cancelled before a build fails; the error is already logged.
    if not task.cancelled():
        task.exception()


class OracleCache:
    """Owns the current oracle and the registry of in-flight builds."""

    def __init__(self, builder: OracleBuilder = build_rank_table_oracle) -> None:
        self._builder = builder
        self._oracle: ClassOrderOracle | None = None
        self._fingerprint: str | None = None
        self._latest: str | None = None
        self._in_flight: dict[str, asyncio.Task[ClassOrderOracle]] = {}

    @property
    def fingerprint(self) -> str | None:
        """Fingerprint of the installed oracle, if any."""
        return self._fingerprint

    @property
    def oracle(self) -> ClassOrderOracle | None:
        return self._oracle

    def in_flight(self) -> list[str]:
        return list(self._in_flight)

    async def get(self, config: SorterConfig, workspace_root: Path) -> ClassOrderOracle:
        """Return the oracle for ``config``, building it at most once.

        Raises:
            OracleBuildError: the build for this fingerprint failed. Every
                waiter on that build receives the error.

        Cancelling a waiter leaves the shared build running.
        """
        fingerprint = config_fingerprint(config, workspace_root)
        self._latest = fingerprint
        if self._oracle is not None and self._fingerprint == fingerprint:
            return self._oracle

        pending = self._in_flight.get(fingerprint)
        if pending is None:
            pending = asyncio.ensure_future(self._build(fingerprint, config, workspace_root))
            pending.add_done_callback(_retrieve_failure)
            self._in_flight[fingerprint] = pending
        else:
            logger.debug("Joining in-flight oracle build %s", fingerprint[:12])
        return await asyncio.shield(pending)

    async def _build(
        self,
        fingerprint: str,
        config: SorterConfig,
        workspace_root: Path,
    ) -> ClassOrderOracle:
        logger.info("Initializing class-order oracle %s", fingerprint[:12])
        try:
            oracle = await asyncio.to_thread(self._builder, config, workspace_root)
        except Exception as exc:
            logger.error("Failed to initialize class-order oracle: %s", exc)
            if self._latest == fingerprint:
                # The installed oracle belongs to a superseded configuration.
                self._oracle = None
                self._fingerprint = None
            if isinstance(exc, OracleBuildError):
                raise
            raise OracleBuildError(f"Oracle build failed: {exc}") from exc
        finally:
            self._in_flight.pop(fingerprint, None)

        if self._latest == fingerprint:
            self._oracle = oracle
            self._fingerprint = fingerprint
            logger.info("Class-order oracle ready")
        else:
            logger.info("Discarding oracle for superseded fingerprint %s", fingerprint[:12])
        return oracle

    def clear(self) -> None:
        """Drop the installed oracle; running builds finish but are not installed."""
        self._oracle = None
        self._fingerprint = None
        self._latest = None
