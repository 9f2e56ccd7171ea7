# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Background calculation service.

Runs request handlers on a thread pool so an interactive host is never
blocked by a large batch. Each request gets a monotonically increasing id;
when a newer request is submitted on the same channel, the older response
is stale and the host may discard it. A derivation in progress is never
interrupted.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Dict, Mapping, NamedTuple, Optional, Set

from ..core.exceptions import CalculationError
from .api import Envelope, handle_calculation_request

logger = logging.getLogger(__name__)

DEFAULT_CHANNEL = "default"


class Ticket(NamedTuple):
    """Handle for a submitted request."""

    request_id: int
    channel: str
    future: "Future[Envelope]"


class CalculationService:
    """
    Thread-pool executor for calculation and financial requests.

    Usage Examples:
        # Blocking use from a thread
        with CalculationService() as service:
            ticket = service.submit({"type": "NPV", "cashFlows": [300, 400], "discountRate": 0.1})
            response = ticket.future.result()

        # From asyncio; stale responses come back as None
        response = await service.run(message, channel="statements")
    """

    def __init__(self, max_workers: Optional[int] = None, timeout: float = 30.0):
        """
        Args:
            max_workers: Thread pool size (ThreadPoolExecutor default when None)
            timeout: Seconds `run` waits before failing with "Calculation timeout"
        """
        self.timeout = timeout
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="adaptiva-calc"
        )
        self._ids = itertools.count(1)
        self._lock = threading.Lock()
        self._latest: Dict[str, int] = {}
        self._pending: Set[int] = set()
        self._total = 0
        self._closed = False

    def _register(self, channel: str) -> int:
        with self._lock:
            if self._closed:
                raise RuntimeError("CalculationService has been shut down")
            request_id = next(self._ids)
            self._latest[channel] = request_id
            self._pending.add(request_id)
            self._total += 1
            return request_id

    def _finish(self, request_id: int) -> None:
        with self._lock:
            self._pending.discard(request_id)

    def _handle(self, request_id: int, message: Mapping[str, Any]) -> Envelope:
        try:
            if isinstance(message, Mapping) and message.get("id") is None:
                message = {**message, "id": f"calc_{request_id}"}
            return handle_calculation_request(message)
        finally:
            self._finish(request_id)

    def submit(self, message: Mapping[str, Any], channel: str = DEFAULT_CHANNEL) -> Ticket:
        """Queue a request on the pool; requests without an `id` are tagged `calc_<n>`."""
        request_id = self._register(channel)
        future = self._executor.submit(self._handle, request_id, message)
        return Ticket(request_id=request_id, channel=channel, future=future)

    def is_stale(self, ticket: Ticket) -> bool:
        """True when a newer request was submitted on the ticket's channel."""
        with self._lock:
            return self._latest.get(ticket.channel, 0) > ticket.request_id

    async def run(
        self,
        message: Mapping[str, Any],
        channel: str = DEFAULT_CHANNEL,
        discard_stale: bool = True,
    ) -> Optional[Envelope]:
        """
        Run a request on the pool without blocking the event loop.

        Returns:
            The response envelope, or None when `discard_stale` is set and a
            newer request on the same channel was submitted meanwhile

        Raises:
            CalculationError: If the response takes longer than `timeout`
        """
        request_id = self._register(channel)
        loop = asyncio.get_running_loop()
        try:
            response = await asyncio.wait_for(
                loop.run_in_executor(self._executor, self._handle, request_id, message),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError:
            raise CalculationError("Calculation timeout") from None

        ticket_is_stale = self.is_stale(Ticket(request_id, channel, None))
        if discard_stale and ticket_is_stale:
            logger.warning(f"Discarding stale response {request_id} on channel '{channel}'")
            return None
        return response

    def status(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "is_closed": self._closed,
                "pending_calculations": len(self._pending),
                "total_calculations": self._total,
            }

    def shutdown(self, wait: bool = True) -> None:
        """Release the thread pool; later submissions raise RuntimeError."""
        with self._lock:
            self._closed = True
        self._executor.shutdown(wait=wait)
        logger.debug("CalculationService shut down")

    def __enter__(self) -> "CalculationService":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.shutdown()
