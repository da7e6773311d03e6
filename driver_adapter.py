"""
DriverAdapter: Normalize, quality-score and fingerprint initiative driver inputs
================================================================================
Driver inputs arrive as an open key -> value map (number, string, boolean or
a list of numbers for ramp curves). Unknown keys pass through untouched.

Key responsibilities:
1. Merge caller inputs over DEFAULTS (caller always wins)
2. Pad ramp curves to the modeling horizon
3. Read numeric drivers safely (bad values fall back to defaults with a warning)
4. Score input completeness and data quality (0-100)
5. Derive an order-independent content hash for caching/idempotency
"""

import hashlib
import json
import logging
import math
from typing import Dict, List, Optional, Tuple

from roic_types import (
    REVENUE_DRIVERS, COST_DRIVERS, WORKING_CAPITAL_DRIVERS, INVESTMENT_DRIVERS,
    FINANCIAL_DRIVERS, RISK_DRIVERS, MODEL_DRIVERS, RAMP_CURVE_KEYS,
)

logger = logging.getLogger(__name__)


DEFAULT_MODEL_PERIODS = 5
DEFAULT_RAMP_PCT = 100.0
HASH_LENGTH = 16

DEFAULTS = {
    "effective_tax_rate": 25,
    "depreciation_years": 5,
    "model_periods": DEFAULT_MODEL_PERIODS,
    "probability_of_success": 100,
    "cost_of_capital": 10,
    "revenue_ramp_curve": [100, 100, 100, 100, 100],
    "cost_ramp_curve": [100, 100, 100, 100, 100],
}

# Haircuts are read where the variants are built, not merged into inputs
DEFAULT_HAIRCUT_CONSERVATIVE = 20
DEFAULT_HAIRCUT_AGGRESSIVE = 30
DEFAULT_CONFIDENCE_LEVEL = 3

# Read by their own parsers (curves, 1-5 confidence) or not used in formulas
NON_NUMERIC_DRIVERS = RAMP_CURVE_KEYS + ["confidence_level", "start_date"]

NUMERIC_DRIVERS = [
    key for key in (
        REVENUE_DRIVERS + COST_DRIVERS + WORKING_CAPITAL_DRIVERS + INVESTMENT_DRIVERS
        + FINANCIAL_DRIVERS + RISK_DRIVERS + MODEL_DRIVERS
    )
    if key not in NON_NUMERIC_DRIVERS
]

# Completeness checklist
CORE_FIELDS = ["baseline_revenue", "effective_tax_rate", "model_periods"]
IMPACT_FIELDS = [
    "price_change_pct",
    "volume_change_pct",
    "variable_cost_reduction_pct",
    "fixed_cost_reduction",
    "freight_savings_pct",
    "headcount_reduction",
]


def round_half_up(value: float) -> int:
    """Round .5 away from zero for positives (matches how scores are displayed)."""
    return int(math.floor(value + 0.5))


def to_number(value) -> Optional[float]:
    """Convert a driver value to a finite float, or None if it is not numeric."""
    if value is None or isinstance(value, (list, tuple, dict)):
        return None
    try:
        if isinstance(value, str):
            value = value.strip()
            if not value:
                return None
        number = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


def read_number(inputs: Dict, key: str, default: float = 0.0,
                warnings: Optional[List[str]] = None) -> float:
    """
    Read a numeric driver. Missing -> default. Present but not numeric ->
    default plus a warning (the engine never raises on business inputs).
    """
    raw = inputs.get(key)
    if raw is None:
        return float(default)
    number = to_number(raw)
    if number is None:
        if warnings is not None:
            message = f"Driver '{key}' is not numeric ({raw!r}); using {default}"
            if message not in warnings:
                warnings.append(message)
        return float(default)
    return number


def resolve_model_periods(inputs: Dict, warnings: Optional[List[str]] = None) -> int:
    """Modeling horizon as a whole number of periods (never negative)."""
    periods = read_number(inputs, "model_periods", DEFAULT_MODEL_PERIODS, warnings)
    return max(0, int(periods))


def _clean_curve(key: str, curve, warnings: List[str]) -> List:
    """Replace non-numeric entries with the previous valid value (100 at the start)."""
    cleaned = []
    bad_entries = []
    for value in curve:
        if to_number(value) is None:
            bad_entries.append(value)
            value = cleaned[-1] if cleaned else DEFAULT_RAMP_PCT
        cleaned.append(value)
    if bad_entries:
        warnings.append(
            f"Ramp curve '{key}' has non-numeric entries {bad_entries!r}; "
            f"using the previous value"
        )
    return cleaned


def _pad_curve(curve, periods: int) -> List:
    """Extend a ramp curve to `periods` entries by repeating its last value."""
    padded = list(curve)
    while len(padded) < periods:
        padded.append(padded[-1] if padded else DEFAULT_RAMP_PCT)
    return padded


def normalize_inputs(raw_inputs: Optional[Dict]) -> Tuple[Dict, List[str]]:
    """
    Merge raw inputs over DEFAULTS and normalize ramp curves.

    Returns (normalized_inputs, warnings). Range validation is not done here;
    out-of-range values (e.g. a negative tax rate) pass through as given.
    """
    warnings = []
    normalized = dict(DEFAULTS)
    normalized.update(raw_inputs or {})

    baseline_revenue = normalized.get("baseline_revenue")
    if baseline_revenue is None or baseline_revenue == "":
        warnings.append("Baseline revenue not provided; revenue impacts will be zero")
        normalized["baseline_revenue"] = 0

    periods = resolve_model_periods(normalized, warnings)

    for key in RAMP_CURVE_KEYS:
        curve = normalized.get(key)
        if curve is None:
            curve = []
        elif not isinstance(curve, (list, tuple)):
            warnings.append(f"Ramp curve '{key}' is not a list ({curve!r}); assuming full ramp")
            curve = []
        # Always a fresh list: the caller's curve is never mutated
        normalized[key] = _pad_curve(_clean_curve(key, curve, warnings), periods)

    return normalized, warnings


def ramp_fraction(curve: List, period: int) -> float:
    """Fraction of full annual impact realized in 1-based `period`."""
    if period - 1 < len(curve):
        pct = to_number(curve[period - 1])
        if pct is not None:
            return pct / 100
    return DEFAULT_RAMP_PCT / 100


def parse_confidence_level(value) -> int:
    """Confidence level 1-5 (stored as string or number); unparsable -> 3."""
    number = to_number(value)
    if number is None:
        return DEFAULT_CONFIDENCE_LEVEL
    return int(number)


def _is_present(value) -> bool:
    return value is not None


def calculate_completeness_score(inputs: Dict) -> int:
    """
    Percentage of the core checklist filled, plus impact drivers.

    Every non-zero impact driver counts toward the score. When none is set,
    the checklist shrinks to the core fields plus a single impact slot.
    """
    filled = sum(1 for f in CORE_FIELDS if _is_present(inputs.get(f)))
    total = len(CORE_FIELDS) + len(IMPACT_FIELDS)

    impact_count = sum(1 for f in IMPACT_FIELDS if to_number(inputs.get(f)))
    filled += impact_count
    if impact_count == 0:
        total = len(CORE_FIELDS) + 1

    return round_half_up(filled / total * 100)


def calculate_data_quality_score(inputs: Dict, completeness_score: int) -> int:
    """Completeness scaled by stated confidence, penalized for low probability."""
    score = float(completeness_score)

    confidence = parse_confidence_level(inputs.get("confidence_level"))
    score *= 0.7 + confidence * 0.06

    probability = read_number(inputs, "probability_of_success", 100)
    if probability < 50:
        score *= 0.8

    return max(0, min(100, round_half_up(score)))


# ========== REPRODUCIBILITY HASH ==========

def _canonical_value(value):
    if isinstance(value, dict):
        return {str(k): _canonical_value(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_canonical_value(v) for v in value]
    if isinstance(value, bool):
        return value
    if isinstance(value, float) and math.isfinite(value) and value.is_integer():
        # 25.0 and 25 are the same driver value
        return int(value)
    return value


def canonicalize_inputs(inputs: Dict) -> str:
    """Serialize inputs with sorted keys so key order never affects the result."""
    return json.dumps(
        _canonical_value(inputs),
        sort_keys=True,
        separators=(",", ":"),
        default=str,
    )


def compute_hash(inputs: Dict) -> str:
    """Short SHA-256 fingerprint of the canonical normalized inputs."""
    digest = hashlib.sha256(canonicalize_inputs(inputs).encode("utf-8")).hexdigest()
    logger.debug("compute hash %s for %d driver keys", digest[:HASH_LENGTH], len(inputs))
    return digest[:HASH_LENGTH]
