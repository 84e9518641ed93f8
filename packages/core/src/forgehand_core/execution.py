"""Job outcome resolution for the final comment update."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass

from forgehand_core.comments.body import ExecutionDetails
from forgehand_core.steps import StepResult

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExecutionOutcome:
    action_failed: bool
    error_details: str | None = None
    execution_details: ExecutionDetails | None = None


def read_execution_log(output_file: str) -> ExecutionDetails | None:
    """Return the metrics carried by the last record of an execution log.

    The log is a JSON array of step records. Only a terminal record of type
    "result" that carries both a cost and a duration yields details.
    Raises OSError or ValueError if the file is unreadable or malformed.
    """
    with open(output_file, encoding="utf-8") as f:
        records = json.load(f)
    if not isinstance(records, list) or not records:
        return None
    last = records[-1]
    if not isinstance(last, dict) or last.get("type") != "result":
        return None
    cost = last.get("cost_usd", last.get("total_cost_usd"))
    if cost is None or "duration_ms" not in last:
        return None
    return ExecutionDetails(
        cost_usd=_metric(last, "cost_usd" if "cost_usd" in last else "total_cost_usd"),
        duration_ms=_metric(last, "duration_ms"),
        duration_api_ms=_metric(last, "duration_api_ms"),
    )


def _metric(record: dict, key: str) -> float | None:
    value = record.get(key)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"Execution log field {key} is not a number: {value!r}")
    return value


def _execution_details(output_file: str | None) -> StepResult[ExecutionDetails | None]:
    if not output_file:
        return StepResult.ok(None)
    try:
        return StepResult.ok(read_execution_log(output_file))
    except (OSError, ValueError) as e:
        logger.warning("Error reading execution log %s: %s", output_file, e)
        return StepResult.fallback(None, e)


def read_execution_outcome(
    prepare_success: bool,
    prepare_error: str | None,
    output_file: str | None,
    claude_success: bool,
) -> ExecutionOutcome:
    """Resolve whether the run failed and what to report.

    A failed prepare phase with an error message is authoritative; nothing
    else is consulted. Otherwise the job's success flag decides, and the
    execution log only contributes metrics. An unreadable log never fails
    the reconciliation.
    """
    if not prepare_success and prepare_error:
        return ExecutionOutcome(action_failed=True, error_details=prepare_error)

    details = _execution_details(output_file)
    if details.value is not None:
        logger.info(
            "Execution took %sms (api %sms), cost $%s",
            details.value.duration_ms,
            details.value.duration_api_ms,
            details.value.cost_usd,
        )
    return ExecutionOutcome(action_failed=not claude_success, execution_details=details.value)
