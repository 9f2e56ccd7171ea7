# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Unit tests for the background calculation service.
"""

from __future__ import annotations

import asyncio
import threading

import pytest

from adaptiva.core.exceptions import CalculationError
from adaptiva.transport import CalculationService, service as service_module

NPV_REQUEST = {"type": "NPV", "cashFlows": [110], "discountRate": 0.1}


@pytest.fixture
def service():
    svc = CalculationService(max_workers=2)
    yield svc
    svc.shutdown()


def test_submit_runs_on_pool(service):
    ticket = service.submit(NPV_REQUEST)
    response = ticket.future.result(timeout=5)
    assert response["success"] is True
    assert response["result"]["npv"] == pytest.approx(100.0)
    assert response["id"] == f"calc_{ticket.request_id}"


def test_caller_id_is_kept(service):
    response = service.submit({**NPV_REQUEST, "id": "mine"}).future.result(timeout=5)
    assert response["id"] == "mine"


def test_request_ids_increase(service):
    first = service.submit(NPV_REQUEST)
    second = service.submit(NPV_REQUEST)
    assert second.request_id > first.request_id


def test_staleness_is_per_channel(service):
    old = service.submit(NPV_REQUEST, channel="statements")
    other = service.submit(NPV_REQUEST, channel="npv")
    assert not service.is_stale(old)

    service.submit(NPV_REQUEST, channel="statements")
    assert service.is_stale(old)
    assert not service.is_stale(other)


def test_financial_request_through_service(service, four_period_input):
    ticket = service.submit({"type": "FINANCIAL_DATA", "periodsInputDataRaw": four_period_input})
    response = ticket.future.result(timeout=5)
    assert response["success"] is True
    assert len(response["data"]) == 4


def test_status_counts(service):
    service.submit(NPV_REQUEST).future.result(timeout=5)
    status = service.status()
    assert status["total_calculations"] == 1
    assert status["pending_calculations"] == 0
    assert status["is_closed"] is False


def test_shutdown_rejects_new_work():
    svc = CalculationService()
    svc.shutdown()
    assert svc.status()["is_closed"] is True
    with pytest.raises(RuntimeError, match="shut down"):
        svc.submit(NPV_REQUEST)


def test_context_manager():
    with CalculationService() as svc:
        assert svc.submit(NPV_REQUEST).future.result(timeout=5)["success"]
    assert svc.status()["is_closed"]


def test_run_from_asyncio(service):
    response = asyncio.run(service.run(NPV_REQUEST))
    assert response["success"] is True
    assert response["type"] == "NPV"


def test_run_discards_stale_response(service, monkeypatch):
    release = threading.Event()
    started = threading.Event()
    real_handler = service_module.handle_calculation_request

    def slow_handler(message):
        started.set()
        release.wait(timeout=5)
        return real_handler(message)

    monkeypatch.setattr(service_module, "handle_calculation_request", slow_handler)

    async def scenario():
        slow = asyncio.ensure_future(service.run(NPV_REQUEST, channel="statements"))
        await asyncio.get_running_loop().run_in_executor(None, started.wait, 5)
        # a newer request on the same channel makes the first response stale
        service.submit(NPV_REQUEST, channel="statements")
        release.set()
        return await slow

    assert asyncio.run(scenario()) is None


def test_run_keeps_stale_response_when_asked(service):
    async def scenario():
        service.submit(NPV_REQUEST, channel="c")
        return await service.run(NPV_REQUEST, channel="c", discard_stale=False)

    assert asyncio.run(scenario())["success"] is True


def test_run_timeout(monkeypatch):
    release = threading.Event()

    def stuck_handler(message):
        release.wait(timeout=5)
        return {"success": True}

    monkeypatch.setattr(service_module, "handle_calculation_request", stuck_handler)
    svc = CalculationService(timeout=0.05)
    try:
        with pytest.raises(CalculationError, match="timeout"):
            asyncio.run(svc.run(NPV_REQUEST))
    finally:
        release.set()
        svc.shutdown()
