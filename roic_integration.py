"""
ROIC Integration Layer: Bridge between stored driver data and the engine
========================================================================
The persistence layer (versions, scenarios, result rows) lives outside this
project. These helpers take already-deserialized records, run the engine,
and hand back plain records for the caller to store in one transaction.
"""

import logging
from typing import Dict, Iterable, List, Optional

from decision_framework import calculate_decision_metrics
from policy_settings import PolicySettings, DEFAULT_POLICY
from roic_types import CalculationOutput
from scenario_engine import (
    calculate_scenario_metrics, calculate_conservative_scenario, calculate_aggressive_scenario,
)

logger = logging.getLogger(__name__)


def driver_values_to_inputs(driver_values: Iterable[Dict]) -> Dict:
    """
    Convert stored driver-value records ({"driver_key": ..., "value": ...})
    into a calculation input map. Later records win on duplicate keys.
    """
    inputs = {}
    for record in driver_values or []:
        key = record.get("driver_key")
        if not key:
            continue
        inputs[key] = record.get("value")
    return inputs


def results_to_records(scenario_id: str, output: CalculationOutput) -> List[Dict]:
    """One storable record per period, stamped with the compute hash."""
    return [
        {
            "scenario_id": scenario_id,
            "period": period.period,
            "metrics": period.to_dict(),
            "compute_hash": output.compute_hash,
        }
        for period in output.periods
    ]


def compute_scenario(driver_values: Iterable[Dict], overrides: Optional[Dict] = None,
                     scenario_id: Optional[str] = None) -> Dict:
    """Run one scenario (base drivers + overrides) and build its result records."""
    base_inputs = driver_values_to_inputs(driver_values)
    output = calculate_scenario_metrics(base_inputs, overrides or {})
    return {
        "output": output,
        "records": results_to_records(scenario_id, output) if scenario_id else [],
        "audit": {
            "action": "SCENARIO_COMPUTED",
            "scenario_id": scenario_id,
            "compute_hash": output.compute_hash,
            "nopat": output.summary.steady_state_nopat,
            "roic": output.summary.roic_pct,
        },
    }


def compute_all_scenarios(driver_values: Iterable[Dict], scenarios: Iterable[Dict],
                          policy: PolicySettings = DEFAULT_POLICY) -> Dict:
    """
    Compute every stored scenario of a version, the conservative/aggressive
    variants of the base drivers, and the decision view of the baseline.

    Each scenario dict carries "id", "overrides" and "is_baseline".
    """
    base_inputs = driver_values_to_inputs(driver_values)
    results = {}
    records = []
    baseline = None

    for scenario in scenarios or []:
        scenario_id = scenario.get("id")
        output = calculate_scenario_metrics(base_inputs, scenario.get("overrides") or {})
        results[scenario_id] = output
        records.extend(results_to_records(scenario_id, output))
        if scenario.get("is_baseline"):
            baseline = output

    conservative = calculate_conservative_scenario(base_inputs)
    aggressive = calculate_aggressive_scenario(base_inputs)

    decision = None
    if baseline is not None:
        decision = calculate_decision_metrics(baseline, policy, conservative, aggressive)

    logger.info("computed %d scenarios (baseline present: %s)", len(results), baseline is not None)
    return {
        "results": results,
        "records": records,
        "summary": {
            "base_case": baseline,
            "conservative": conservative,
            "aggressive": aggressive,
        },
        "decision": decision,
    }


def summarize_portfolio(initiatives: Iterable[Dict]) -> Dict:
    """
    Roll up baseline metrics across initiatives.

    Each initiative dict carries "id", "title", "status" and optionally
    "metrics" (a CalculationOutput or a stored summary dict with
    steady_state_nopat / tufi / roic / npv / payback_period).
    Averages only cover initiatives that have metrics; a missing payback
    counts as 0, as on the portfolio dashboard.
    """
    initiatives = list(initiatives or [])
    by_status = {}
    rows = []

    for initiative in initiatives:
        status = initiative.get("status", "UNKNOWN")
        by_status[status] = by_status.get(status, 0) + 1

        metrics = initiative.get("metrics")
        if isinstance(metrics, CalculationOutput):
            metrics = metrics.summary.to_dict()

        rows.append({
            "id": initiative.get("id"),
            "title": initiative.get("title"),
            "status": status,
            "metrics": {
                "nopat": metrics.get("steady_state_nopat") or 0,
                "tufi": metrics.get("tufi") or 0,
                "roic": metrics.get("roic") or 0,
                "npv": metrics.get("npv") or 0,
                "payback_years": metrics.get("payback_period") or 0,
            } if metrics else None,
        })

    with_metrics = [r["metrics"] for r in rows if r["metrics"]]
    count = len(with_metrics)

    return {
        "total_initiatives": len(initiatives),
        "by_status": by_status,
        "total_nopat": sum(m["nopat"] for m in with_metrics),
        "total_tufi": sum(m["tufi"] for m in with_metrics),
        "average_roic": sum(m["roic"] for m in with_metrics) / count if count else 0,
        "average_payback": sum(m["payback_years"] for m in with_metrics) / count if count else 0,
        "initiatives": rows,
    }
