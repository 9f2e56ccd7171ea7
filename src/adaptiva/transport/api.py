# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Request/response envelopes at the execution boundary.

Messages use camelCase wire keys. Both handlers always return an envelope
and never raise: any exception is logged and turned into
`{success: False, error, stack, timestamp}`. Partial results are never
returned.

Financial request:
    {"periodsInputDataRaw": [...], "periodTypeLabel": "anos", "id": ...}
    -> {"success": True, "data": [...], "consistencyIssues": [...],
        "timestamp": ..., "id": ...}

Calculation request:
    {"type": "NPV", "cashFlows": [...], "discountRate": 0.1, "id": ...}
    -> {"success": True, "type": "NPV", "result": {...}, "timestamp": ..., "id": ...}
"""

from __future__ import annotations

import logging
import time
import traceback
from typing import Any, Callable, Dict, List, Mapping

from ..core.calculations import FinancialCalculations
from ..core.exceptions import CalculationError
from ..core.primitives import CalculationTypeEnum, Model
from ..engine import derive_all
from ..fields import FIELD_REGISTRY, FieldValidationError, validate_all_fields
from ..reporting.rules import validate_financial_statements

logger = logging.getLogger(__name__)

Envelope = Dict[str, Any]


def _timestamp() -> int:
    """Epoch milliseconds."""
    return int(time.time() * 1000)


def _envelope(request_id: Any, **fields: Any) -> Envelope:
    response = dict(fields, timestamp=_timestamp())
    if request_id is not None:
        response["id"] = request_id
    return response


def _failure(error: Exception, request_id: Any, **fields: Any) -> Envelope:
    return _envelope(
        request_id,
        success=False,
        error=str(error),
        stack="".join(traceback.format_exception(type(error), error, error.__traceback__)),
        **fields,
    )


def _wire_validation_error(error: FieldValidationError) -> Dict[str, Any]:
    """Re-key a validation error by the fields' wire aliases."""
    return {
        "period": error.period,
        "fields": {FIELD_REGISTRY[key].alias: message for key, message in error.fields.items()},
        "codes": {FIELD_REGISTRY[key].alias: code.value for key, code in error.codes.items()},
    }


def handle_financial_request(message: Mapping[str, Any]) -> Envelope:
    """
    Validate and derive a batch of periods.

    Args:
        message: `{"periodsInputDataRaw": [...], "periodTypeLabel": str, "id"?: Any}`

    Returns:
        Success envelope with `data` (camelCase period records) and
        `consistencyIssues` (post-derivation checks; advisory, never a
        failure), a validation failure envelope with `validationErrors`, or
        an error envelope
    """
    request_id = message.get("id") if isinstance(message, Mapping) else None
    try:
        if not isinstance(message, Mapping):
            raise TypeError(f"Request must be a mapping, got {type(message).__name__}")
        periods = message.get("periodsInputDataRaw")
        if not isinstance(periods, list):
            raise TypeError("periodsInputDataRaw must be a list of period inputs")

        errors = validate_all_fields(periods)
        if errors:
            logger.warning(f"Input validation failed for {len(errors)} period(s)")
            return _envelope(
                request_id,
                success=False,
                error="Input validation failed",
                validationErrors=[_wire_validation_error(e) for e in errors],
            )

        results = derive_all(periods, period_type=message.get("periodTypeLabel"))
        issues = validate_financial_statements(results)
        return _envelope(
            request_id,
            success=True,
            data=[r.to_wire() for r in results],
            consistencyIssues=[issue.to_wire() for issue in issues],
        )

    except Exception as e:
        logger.exception(f"Financial request failed: {e}")
        return _failure(e, request_id)


# === Auxiliary calculations ===


def _require(params: Mapping[str, Any], key: str) -> Any:
    if params.get(key) is None:
        raise CalculationError(f"Missing required parameter '{key}'")
    return params[key]


def _npv(params: Mapping[str, Any]) -> Model:
    return FinancialCalculations.calculate_npv(
        _require(params, "cashFlows"),
        _require(params, "discountRate"),
        params.get("initialInvestment") or 0.0,
    )


def _irr(params: Mapping[str, Any]) -> Model:
    guess = params.get("guess")
    return FinancialCalculations.calculate_irr(
        _require(params, "cashFlows"), 0.1 if guess is None else guess
    )


def _payback(params: Mapping[str, Any]) -> Model:
    return FinancialCalculations.calculate_payback_period(
        _require(params, "cashFlows"), _require(params, "initialInvestment")
    )


def _break_even(params: Mapping[str, Any]) -> Model:
    return FinancialCalculations.calculate_break_even(
        _require(params, "fixedCosts"),
        _require(params, "variableCostPerUnit"),
        _require(params, "pricePerUnit"),
    )


def _projection(params: Mapping[str, Any]) -> Model:
    return FinancialCalculations.project_cash_flows(
        _require(params, "baseCashFlow"),
        _require(params, "growthRate"),
        _require(params, "periods"),
        params.get("discountRate") or 0.0,
    )


CALCULATORS: Dict[CalculationTypeEnum, Callable[[Mapping[str, Any]], Model]] = {
    CalculationTypeEnum.NPV: _npv,
    CalculationTypeEnum.IRR: _irr,
    CalculationTypeEnum.PAYBACK: _payback,
    CalculationTypeEnum.BREAKEVEN: _break_even,
    CalculationTypeEnum.PROJECTION: _projection,
}


def run_calculation(calculation_type: Any, params: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Run one auxiliary calculation and return its camelCase result.

    Raises:
        ValueError: Unknown calculation type
        CalculationError: Missing or invalid parameters
    """
    try:
        calculator = CALCULATORS[CalculationTypeEnum(calculation_type)]
    except (KeyError, ValueError):
        raise ValueError(f"Unknown calculation type: {calculation_type}") from None
    return calculator(params).to_wire()


def _run_batch(calculations: Any) -> List[Dict[str, Any]]:
    if not isinstance(calculations, list):
        raise CalculationError("BATCH requires a list of calculations")

    results = []
    for item in calculations:
        item_type = item.get("type") if isinstance(item, Mapping) else None
        try:
            if not isinstance(item, Mapping):
                raise CalculationError("Each batch item must be a mapping with 'type' and 'params'")
            result = run_calculation(item_type, item.get("params") or {})
            results.append({"type": item_type, "success": True, "result": result})
        except Exception as e:
            logger.debug(f"Batch item {item_type} failed: {e}")
            results.append({"type": item_type, "success": False, "error": str(e)})
    return results


def handle_calculation_request(message: Mapping[str, Any]) -> Envelope:
    """
    Dispatch an auxiliary calculation request by `type`.

    Supported types: NPV, IRR, PAYBACK, BREAKEVEN, PROJECTION, BATCH, CLEANUP
    and FINANCIAL_DATA (routed to `handle_financial_request`). A message
    without `type` that carries `periodsInputDataRaw` is also treated as a
    financial request.

    Returns:
        `{success, type, result|results, timestamp, id?}` or an error envelope;
        an unknown type yields an error containing "Unknown calculation type"
    """
    if not isinstance(message, Mapping):
        return _failure(TypeError(f"Request must be a mapping, got {type(message).__name__}"), None)

    calculation_type = message.get("type")
    request_id = message.get("id")
    params = {k: v for k, v in message.items() if k not in ("type", "id")}

    if calculation_type == CalculationTypeEnum.FINANCIAL_DATA.value or (
        calculation_type is None and "periodsInputDataRaw" in message
    ):
        return handle_financial_request(message)

    try:
        if calculation_type == CalculationTypeEnum.BATCH.value:
            results = _run_batch(params.get("calculations"))
            return _envelope(request_id, success=True, type=calculation_type, results=results)

        if calculation_type == CalculationTypeEnum.CLEANUP.value:
            result: Dict[str, Any] = {"message": "Resources cleaned up"}
        else:
            result = run_calculation(calculation_type, params)
        return _envelope(request_id, success=True, type=calculation_type, result=result)

    except Exception as e:
        logger.exception(f"Calculation request {calculation_type} failed: {e}")
        return _failure(e, request_id, type=calculation_type)
