"""
ROIC Types: Value objects produced by the initiative calculation engine
=======================================================================
Every object here is created fresh by one computation call and never
mutated afterwards. Inputs stay a plain dict of driver key -> value
(number, string, boolean or list of numbers); the driver groups below
only name the keys the formulas read.
"""

from dataclasses import dataclass, asdict, field
from typing import Dict, List, Optional


# ========== DRIVER KEY GROUPS ==========
REVENUE_DRIVERS = [
    "baseline_revenue",
    "price_change_pct",
    "volume_change_pct",
    "mix_improvement_pct",
    "churn_reduction_pct",
    "attach_rate_improvement",
    "new_revenue_annual",
    "revenue_ramp_curve",
]

COST_DRIVERS = [
    "baseline_cogs",
    "baseline_opex",
    "variable_cost_reduction_pct",
    "fixed_cost_reduction",
    "freight_savings_pct",
    "freight_baseline",
    "shrink_reduction_pct",
    "productivity_improvement_pct",
    "headcount_reduction",
    "avg_fully_loaded_cost",
    "vendor_savings_annual",
    "cost_ramp_curve",
]

WORKING_CAPITAL_DRIVERS = [
    "baseline_receivables",
    "baseline_inventory",
    "baseline_payables",
    "dso_improvement_days",
    "dio_improvement_days",
    "dpo_improvement_days",
    "working_capital_delta",
]

INVESTMENT_DRIVERS = [
    "upfront_capex",
    "implementation_cost",
    "depreciation_years",
    "ongoing_maintenance",
]

FINANCIAL_DRIVERS = ["effective_tax_rate", "cost_of_capital"]

RISK_DRIVERS = [
    "probability_of_success",
    "haircut_conservative",
    "haircut_aggressive",
    "confidence_level",
]

MODEL_DRIVERS = ["model_periods", "start_date"]

RAMP_CURVE_KEYS = ["revenue_ramp_curve", "cost_ramp_curve"]

# Drivers scaled by the conservative haircut / aggressive uplift
UPSIDE_REVENUE_DRIVERS = ["price_change_pct", "volume_change_pct", "new_revenue_annual"]
UPSIDE_COST_DRIVERS = ["variable_cost_reduction_pct", "fixed_cost_reduction", "freight_savings_pct"]


# ========== DECISION CLASSIFICATIONS ==========
RAG_GREEN = "GREEN"
RAG_AMBER = "AMBER"
RAG_RED = "RED"

STRONG_CANDIDATE = "STRONG_CANDIDATE"
BELOW_HURDLE = "BELOW_HURDLE"
HIGH_RISK_PROFILE = "HIGH_RISK_PROFILE"
MARGINAL_ROIC_HIGH_EXPOSURE = "MARGINAL_ROIC_HIGH_EXPOSURE"

LIGHT_TOUCH = "LIGHT_TOUCH"
STANDARD = "STANDARD"
BOARD_REVIEW = "BOARD_REVIEW"


@dataclass(frozen=True)
class PeriodMetrics:
    """Projection for one period. Period 0 is the upfront investment instant."""
    period: int

    # Revenue impact
    revenue_impact: float = 0.0
    price_impact: float = 0.0
    volume_impact: float = 0.0
    mix_impact: float = 0.0
    churn_impact: float = 0.0
    attach_impact: float = 0.0
    new_revenue: float = 0.0

    # Cost impact
    cost_savings: float = 0.0
    variable_cost_savings: float = 0.0
    fixed_cost_savings: float = 0.0
    freight_savings: float = 0.0
    shrink_savings: float = 0.0
    labor_savings: float = 0.0
    vendor_savings: float = 0.0

    gross_impact: float = 0.0  # revenue + cost, before tax
    nopat: float = 0.0

    depreciation: float = 0.0
    maintenance_cost: float = 0.0

    # Working capital release (period 1 only; positive = cash inflow)
    working_capital_impact: float = 0.0
    ar_impact: float = 0.0
    inventory_impact: float = 0.0
    ap_impact: float = 0.0

    operating_cash_flow: float = 0.0
    free_cash_flow: float = 0.0
    cumulative_cash_flow: float = 0.0

    ramp_pct: float = 0.0  # max(revenue ramp, cost ramp) as a percentage

    def to_dict(self):
        return asdict(self)


@dataclass(frozen=True)
class TufiBreakdown:
    capex: float = 0.0
    one_time_costs: float = 0.0
    working_capital_delta: float = 0.0  # -(period 1 WC swing); only positive values add to TUFI

    def to_dict(self):
        return asdict(self)


@dataclass(frozen=True)
class SummaryMetrics:
    """Investment metrics derived once from the full period sequence."""
    tufi: float
    tufi_breakdown: TufiBreakdown
    steady_state_nopat: float  # NOPAT of the final period (full ramp)
    avg_annual_nopat: float
    total_nopat: float
    roic: float  # decimal, 0.15 = 15%
    roic_pct: str
    payback_period: Optional[float]  # years, None if never recovered
    npv: float
    irr: Optional[float]  # decimal, None if no root
    irr_pct: Optional[str]
    probability_adjusted_nopat: float
    probability_adjusted_roic: float
    data_quality_score: int  # 0-100
    completeness_score: int  # 0-100

    def to_dict(self):
        return asdict(self)


@dataclass(frozen=True)
class CalculationOutput:
    """The unit of result for one computation request."""
    summary: SummaryMetrics
    periods: List[PeriodMetrics]
    inputs: Dict
    compute_hash: str
    computed_at: str
    warnings: List[str] = field(default_factory=list)

    def to_dict(self):
        return {
            "summary": self.summary.to_dict(),
            "periods": [p.to_dict() for p in self.periods],
            "inputs": {k: list(v) if isinstance(v, (list, tuple)) else v for k, v in self.inputs.items()},
            "compute_hash": self.compute_hash,
            "computed_at": self.computed_at,
            "warnings": list(self.warnings),
        }


@dataclass(frozen=True)
class ScenarioComparison:
    base_case: CalculationOutput
    conservative: Optional[CalculationOutput] = None
    aggressive: Optional[CalculationOutput] = None
    scenarios: Dict[str, CalculationOutput] = field(default_factory=dict)


@dataclass(frozen=True)
class SensitivityResult:
    """Single-driver sweep: one ROIC/NOPAT point per driver value."""
    driver_key: str
    values: List[float]
    nopat_impact: List[float]
    roic_impact: List[float]

    def to_dict(self):
        return asdict(self)


@dataclass(frozen=True)
class ValueRange:
    conservative: float
    expected: float
    aggressive: float

    def to_dict(self):
        return asdict(self)


@dataclass(frozen=True)
class DecisionMetrics:
    """Read-only decision view over one or three calculation outputs."""
    rag_status: str
    recommendation: str
    review_level: str
    roic_range: ValueRange
    absolute_return_range: ValueRange
    expected_value: float  # steady-state NOPAT x probability
    risk_score: int  # 0-100
    vs_hurdle_rate: float  # roic - hurdle, decimal
    investment_size: float  # TUFI

    def to_dict(self):
        return asdict(self)
