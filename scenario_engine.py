"""
Scenario Engine: What-if variants of an initiative's driver inputs
==================================================================
- Named scenarios: shallow-merge override maps over the base inputs
- Conservative / aggressive variants: one global haircut / uplift applied to
  the upside revenue and cost-savings drivers
- Single-driver sensitivity sweeps

Every variant re-runs the full calculation pipeline on a new input map;
base inputs are never modified.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, Optional

from driver_adapter import (
    DEFAULT_HAIRCUT_CONSERVATIVE, DEFAULT_HAIRCUT_AGGRESSIVE, read_number, to_number,
)
from roic_engine import calculate_metrics
from roic_types import (
    CalculationOutput, ScenarioComparison, SensitivityResult,
    UPSIDE_REVENUE_DRIVERS, UPSIDE_COST_DRIVERS,
)

logger = logging.getLogger(__name__)


def calculate_scenario_metrics(base_inputs: Dict, overrides: Optional[Dict] = None) -> CalculationOutput:
    """Overrides win over base inputs key by key; then the full pipeline runs."""
    merged = dict(base_inputs or {})
    merged.update(overrides or {})
    return calculate_metrics(merged)


def _scale_upside_drivers(inputs: Dict, factor: float) -> Dict:
    """Multiply every set (non-zero, numeric) upside driver by `factor`."""
    scaled = dict(inputs)
    for key in UPSIDE_REVENUE_DRIVERS + UPSIDE_COST_DRIVERS:
        value = to_number(scaled.get(key))
        if value:
            scaled[key] = value * factor
    return scaled


def build_conservative_inputs(inputs: Dict) -> Dict:
    haircut = read_number(inputs, "haircut_conservative", DEFAULT_HAIRCUT_CONSERVATIVE) / 100
    logger.debug("conservative variant: haircut %.2f", haircut)
    return _scale_upside_drivers(inputs, 1 - haircut)


def build_aggressive_inputs(inputs: Dict) -> Dict:
    uplift = read_number(inputs, "haircut_aggressive", DEFAULT_HAIRCUT_AGGRESSIVE) / 100
    logger.debug("aggressive variant: uplift %.2f", uplift)
    return _scale_upside_drivers(inputs, 1 + uplift)


def calculate_conservative_scenario(inputs: Dict) -> CalculationOutput:
    """Upside drivers × (1 - haircut_conservative/100), default haircut 20%."""
    return calculate_metrics(build_conservative_inputs(inputs or {}))


def calculate_aggressive_scenario(inputs: Dict) -> CalculationOutput:
    """Upside drivers × (1 + haircut_aggressive/100), default uplift 30%."""
    return calculate_metrics(build_aggressive_inputs(inputs or {}))


def compare_scenarios(base_inputs: Dict, named_overrides: Optional[Dict[str, Dict]] = None) -> ScenarioComparison:
    """Base case, both haircut variants, and one output per named override map."""
    base_inputs = base_inputs or {}
    scenarios = {
        name: calculate_scenario_metrics(base_inputs, overrides)
        for name, overrides in (named_overrides or {}).items()
    }
    return ScenarioComparison(
        base_case=calculate_metrics(base_inputs),
        conservative=calculate_conservative_scenario(base_inputs),
        aggressive=calculate_aggressive_scenario(base_inputs),
        scenarios=scenarios,
    )


def calculate_sensitivity(base_inputs: Dict, driver_key: str, min_value: float, max_value: float,
                          steps: int, max_workers: Optional[int] = None) -> SensitivityResult:
    """
    Sweep one driver across [min_value, max_value] in `steps` evenly spaced
    points and record steady-state NOPAT and ROIC at each.

    Points are independent; with max_workers > 1 they run on a thread pool.
    Results always come back in sweep order.
    """
    if not driver_key:
        raise ValueError("driver_key is required for a sensitivity sweep")
    if steps < 1:
        raise ValueError(f"steps must be at least 1 (got {steps})")

    if steps == 1:
        values = [float(min_value)]
    else:
        step_size = (max_value - min_value) / (steps - 1)
        values = [min_value + i * step_size for i in range(steps)]

    def _evaluate(value):
        return calculate_scenario_metrics(base_inputs, {driver_key: value})

    logger.debug("sensitivity sweep on %s: %d points", driver_key, steps)
    if max_workers and max_workers > 1:
        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            outputs = list(executor.map(_evaluate, values))
    else:
        outputs = [_evaluate(v) for v in values]

    return SensitivityResult(
        driver_key=driver_key,
        values=values,
        nopat_impact=[o.summary.steady_state_nopat for o in outputs],
        roic_impact=[o.summary.roic for o in outputs],
    )
