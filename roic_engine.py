"""
ROICEngine: Deterministic initiative projection with full traceability
======================================================================
Implements:
- Period-by-period projection (revenue levers, cost levers, working capital)
- NOPAT, TUFI, ROIC, payback (interpolated), NPV and IRR (Newton-Raphson)
- Probability-adjusted metrics and input quality scores
- Calculation trace for every summary value
- Content hash of the normalized inputs for reproducibility

Pipeline: raw inputs -> normalize -> project periods -> summarize -> hash.
The engine holds no state between calls; each run returns a new
CalculationOutput.
"""

import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple

from driver_adapter import (
    DEFAULTS, NUMERIC_DRIVERS, normalize_inputs, read_number, resolve_model_periods,
    ramp_fraction, calculate_completeness_score, calculate_data_quality_score,
    compute_hash,
)
from roic_types import PeriodMetrics, TufiBreakdown, SummaryMetrics, CalculationOutput

logger = logging.getLogger(__name__)

DAYS_PER_YEAR = 365
LABOR_SHARE_OF_OPEX = 0.5  # labor cost assumed to be half of opex when headcount is not given


class CalculationTraceStep:
    """Single step in the ROIC calculation trace."""
    def __init__(self, name: str, formula: str = None, inputs=None, output=None,
                 output_units: str = None, notes: str = None):
        self.name = name
        self.formula = formula
        self.inputs = inputs or {}
        self.output = output
        self.output_units = output_units
        self.notes = notes or ""

    def to_dict(self):
        return {
            "name": self.name,
            "formula": self.formula,
            "inputs": self.inputs,
            "output": self.output,
            "output_units": self.output_units,
            "notes": self.notes,
        }


class IRRSolver:
    """Internal rate of return by Newton-Raphson on a t=0..N cash-flow series."""

    INITIAL_RATE = 0.10
    MAX_ITERATIONS = 100
    TOLERANCE = 1e-4
    MIN_RATE = -0.99
    MAX_RATE = 10.0

    @classmethod
    def solve(cls, cash_flows: List[float], warnings: Optional[List[str]] = None) -> Optional[float]:
        """
        Returns the rate that zeroes NPV, or None when no root is admissible:
        - all cash flows share a sign (no sign change)
        - the derivative vanishes at some iterate

        The rate is clamped to [MIN_RATE, MAX_RATE] after every step. If the
        iteration cap is hit without converging, the last iterate is returned.
        """
        has_negative = any(cf < 0 for cf in cash_flows)
        has_positive = any(cf > 0 for cf in cash_flows)
        if not has_negative or not has_positive:
            return None

        rate = cls.INITIAL_RATE
        try:
            for _ in range(cls.MAX_ITERATIONS):
                npv = 0.0
                derivative = 0.0
                for t, cf in enumerate(cash_flows):
                    npv += cf / (1 + rate) ** t
                    if t > 0:
                        derivative -= t * cf / (1 + rate) ** (t + 1)

                if abs(npv) < cls.TOLERANCE:
                    return rate

                if derivative == 0:
                    return None

                rate = rate - npv / derivative
                rate = min(cls.MAX_RATE, max(cls.MIN_RATE, rate))
        except (OverflowError, ZeroDivisionError):
            if warnings is not None:
                warnings.append("IRR could not be computed: discounting overflowed for this horizon")
            return None

        if warnings is not None:
            warnings.append(
                f"IRR did not converge within {cls.MAX_ITERATIONS} iterations; "
                f"reporting last estimate ({rate:.1%})"
            )
        return rate


class ROICEngine:
    """Main initiative calculation engine."""

    def __init__(self, raw_inputs: Optional[Dict] = None):
        self.raw_inputs = dict(raw_inputs or {})
        self.inputs = {}
        self.drivers = {}
        self.trace = []
        self.warnings = []

    def run(self) -> CalculationOutput:
        """Execute the full pipeline and return a fresh CalculationOutput."""
        self.inputs, self.warnings = normalize_inputs(self.raw_inputs)
        self.drivers = self._resolve_drivers()

        periods = self._project_periods()
        summary = self._summarize(periods)
        digest = compute_hash(self.inputs)

        logger.debug(
            "computed %d periods, roic=%.4f, hash=%s, %d warnings",
            len(periods), summary.roic, digest, len(self.warnings),
        )
        return CalculationOutput(
            summary=summary,
            periods=periods,
            inputs=self.inputs,
            compute_hash=digest,
            computed_at=datetime.now(timezone.utc).isoformat(),
            warnings=list(self.warnings),
        )

    def _resolve_drivers(self) -> Dict[str, float]:
        """Read every numeric driver once; absent drivers are zero unless defaulted."""
        drivers = {}
        for key in NUMERIC_DRIVERS:
            default = DEFAULTS.get(key, 0)
            drivers[key] = read_number(self.inputs, key, default, self.warnings)
        drivers["model_periods"] = resolve_model_periods(self.inputs, self.warnings)

        if drivers["cost_of_capital"] <= -100:
            self.warnings.append(
                f"Cost of capital {drivers['cost_of_capital']}% is not above -100%; "
                f"discounting at {DEFAULTS['cost_of_capital']}%"
            )
            drivers["cost_of_capital"] = float(DEFAULTS["cost_of_capital"])
        return drivers

    # ------------------------------------------------------------------
    # Period projection
    # ------------------------------------------------------------------

    def _depreciation(self) -> float:
        """Straight-line: upfront capex spread evenly over depreciation_years."""
        capex = self.drivers["upfront_capex"]
        years = self.drivers["depreciation_years"]
        if capex == 0:
            return 0.0
        if years <= 0:
            self.warnings.append(
                f"Depreciation years must be positive (got {years:g}); capex is not depreciated"
            )
            return 0.0
        depreciation = capex / years
        self.trace.append(CalculationTraceStep(
            name="Depreciation",
            formula="Upfront Capex / Depreciation Years",
            inputs={"upfront_capex": capex, "depreciation_years": years},
            output=depreciation,
            output_units="USD/yr",
            notes="Straight-line, constant in every operating period",
        ))
        return depreciation

    def _initial_period(self) -> PeriodMetrics:
        """Period 0: the upfront investment instant."""
        capex = self.drivers["upfront_capex"]
        implementation = self.drivers["implementation_cost"]
        seed = -(capex + implementation)
        return PeriodMetrics(
            period=0,
            working_capital_impact=self.drivers["working_capital_delta"],
            operating_cash_flow=-implementation,
            free_cash_flow=seed,
            cumulative_cash_flow=seed,
        )

    def _working_capital_release(self) -> Tuple[float, float, float]:
        """One-time (AR, inventory, AP) release from days improvements."""
        d = self.drivers
        daily_revenue = d["baseline_revenue"] / DAYS_PER_YEAR
        daily_cogs = d["baseline_cogs"] / DAYS_PER_YEAR
        return (
            daily_revenue * d["dso_improvement_days"],
            daily_cogs * d["dio_improvement_days"],
            daily_cogs * d["dpo_improvement_days"],
        )

    def _labor_savings(self, cost_ramp: float) -> float:
        d = self.drivers
        if d["headcount_reduction"] and d["avg_fully_loaded_cost"]:
            return d["headcount_reduction"] * d["avg_fully_loaded_cost"] * cost_ramp
        if d["productivity_improvement_pct"] and d["baseline_opex"] > 0:
            labor_base = d["baseline_opex"] * LABOR_SHARE_OF_OPEX
            return labor_base * (d["productivity_improvement_pct"] / 100) * cost_ramp
        return 0.0

    def _project_periods(self) -> List[PeriodMetrics]:
        """Simulate periods 1..N, carrying cumulative cash flow from the period-0 seed."""
        d = self.drivers
        num_periods = d["model_periods"]
        tax_rate = d["effective_tax_rate"] / 100
        revenue_curve = self.inputs.get("revenue_ramp_curve") or []
        cost_curve = self.inputs.get("cost_ramp_curve") or []

        initial = self._initial_period()
        periods = [initial]
        cumulative = initial.cumulative_cash_flow

        depreciation = self._depreciation() if num_periods > 0 else 0.0
        maintenance = d["ongoing_maintenance"]
        ar_impact, inventory_impact, ap_impact = self._working_capital_release()

        base_revenue = d["baseline_revenue"]
        base_cogs = d["baseline_cogs"]

        for p in range(1, num_periods + 1):
            revenue_ramp = ramp_fraction(revenue_curve, p)
            cost_ramp = ramp_fraction(cost_curve, p)

            # Revenue levers (baseline-relative, except new revenue)
            price_impact = base_revenue * (d["price_change_pct"] / 100) * revenue_ramp
            volume_impact = base_revenue * (d["volume_change_pct"] / 100) * revenue_ramp
            mix_impact = base_revenue * (d["mix_improvement_pct"] / 100) * revenue_ramp
            churn_impact = base_revenue * (d["churn_reduction_pct"] / 100) * revenue_ramp
            attach_impact = base_revenue * (d["attach_rate_improvement"] / 100) * revenue_ramp
            new_revenue = d["new_revenue_annual"] * revenue_ramp
            revenue_impact = (
                price_impact + volume_impact + mix_impact + churn_impact
                + attach_impact + new_revenue
            )

            # Cost levers
            variable_savings = base_cogs * (d["variable_cost_reduction_pct"] / 100) * cost_ramp
            fixed_savings = d["fixed_cost_reduction"] * cost_ramp
            freight_savings = d["freight_baseline"] * (d["freight_savings_pct"] / 100) * cost_ramp
            shrink_savings = base_revenue * (d["shrink_reduction_pct"] / 100) * cost_ramp
            labor_savings = self._labor_savings(cost_ramp)
            vendor_savings = d["vendor_savings_annual"] * cost_ramp
            cost_savings = (
                variable_savings + fixed_savings + freight_savings
                + shrink_savings + labor_savings + vendor_savings
            )

            gross_impact = revenue_impact + cost_savings
            nopat = (gross_impact - depreciation - maintenance) * (1 - tax_rate)

            # Working capital is a one-time release in period 1
            if p == 1:
                wc_impact = ar_impact + inventory_impact + ap_impact
                period_ar, period_inv, period_ap = ar_impact, inventory_impact, ap_impact
            else:
                wc_impact = period_ar = period_inv = period_ap = 0.0

            operating_cash_flow = nopat + depreciation - maintenance
            free_cash_flow = operating_cash_flow + wc_impact
            cumulative += free_cash_flow

            periods.append(PeriodMetrics(
                period=p,
                revenue_impact=revenue_impact,
                price_impact=price_impact,
                volume_impact=volume_impact,
                mix_impact=mix_impact,
                churn_impact=churn_impact,
                attach_impact=attach_impact,
                new_revenue=new_revenue,
                cost_savings=cost_savings,
                variable_cost_savings=variable_savings,
                fixed_cost_savings=fixed_savings,
                freight_savings=freight_savings,
                shrink_savings=shrink_savings,
                labor_savings=labor_savings,
                vendor_savings=vendor_savings,
                gross_impact=gross_impact,
                nopat=nopat,
                depreciation=depreciation,
                maintenance_cost=maintenance,
                working_capital_impact=wc_impact,
                ar_impact=period_ar,
                inventory_impact=period_inv,
                ap_impact=period_ap,
                operating_cash_flow=operating_cash_flow,
                free_cash_flow=free_cash_flow,
                cumulative_cash_flow=cumulative,
                ramp_pct=max(revenue_ramp, cost_ramp) * 100,
            ))

        return periods

    # ------------------------------------------------------------------
    # Summary
    # ------------------------------------------------------------------

    @staticmethod
    def payback_period(periods: List[PeriodMetrics]) -> Optional[float]:
        """
        First point where cumulative cash flow turns non-negative, linearly
        interpolated inside the crossing period. The previous cumulative value
        for period 1 is the period-0 seed. No upfront outlay -> 0.0.
        """
        previous = periods[0].cumulative_cash_flow
        if previous >= 0:
            return 0.0

        for period in periods[1:]:
            if period.cumulative_cash_flow >= 0:
                cash_gap = -previous
                cash_generated = period.cumulative_cash_flow - previous
                fraction = cash_gap / cash_generated if cash_generated > 0 else 0.0
                return period.period - 1 + fraction
            previous = period.cumulative_cash_flow
        return None

    @staticmethod
    def net_present_value(periods: List[PeriodMetrics], rate: float) -> float:
        """Period 0 undiscounted; period p discounted by (1 + rate)^p."""
        npv = periods[0].free_cash_flow
        for period in periods[1:]:
            npv += period.free_cash_flow / (1 + rate) ** period.period
        return npv

    def _summarize(self, periods: List[PeriodMetrics]) -> SummaryMetrics:
        d = self.drivers
        operating = periods[1:]

        # ===== TUFI =====
        capex = d["upfront_capex"]
        one_time = d["implementation_cost"]
        period1_wc = operating[0].working_capital_impact if operating else 0.0
        wc_delta = -period1_wc if period1_wc else 0.0
        tufi = capex + one_time + max(0.0, wc_delta)
        self.trace.append(CalculationTraceStep(
            name="Total Upfront Investment (TUFI)",
            formula="Capex + Implementation Cost + max(0, -Period 1 WC Release)",
            inputs={"upfront_capex": capex, "implementation_cost": one_time,
                    "working_capital_delta": wc_delta},
            output=tufi,
            output_units="USD",
            notes="Working capital released (positive) never increases TUFI",
        ))

        # ===== NOPAT =====
        total_nopat = sum(p.nopat for p in operating)
        avg_nopat = total_nopat / len(operating) if operating else 0.0
        steady_state_nopat = operating[-1].nopat if operating else 0.0

        # ===== ROIC =====
        roic = steady_state_nopat / tufi if tufi > 0 else 0.0
        self.trace.append(CalculationTraceStep(
            name="ROIC",
            formula="Steady-State NOPAT / TUFI",
            inputs={"steady_state_nopat": steady_state_nopat, "tufi": tufi},
            output=roic,
            output_units="decimal",
            notes="Zero when TUFI is zero" if tufi <= 0 else "",
        ))

        # ===== PAYBACK =====
        payback = self.payback_period(periods)
        self.trace.append(CalculationTraceStep(
            name="Payback Period",
            formula="(p - 1) + Gap at start of p / Cash generated in p",
            inputs={"seed_cumulative_cash_flow": periods[0].cumulative_cash_flow},
            output=payback,
            output_units="years",
            notes="Not recovered within horizon" if payback is None else "",
        ))

        # ===== NPV =====
        cost_of_capital = d["cost_of_capital"] / 100
        npv = self.net_present_value(periods, cost_of_capital)
        self.trace.append(CalculationTraceStep(
            name="NPV",
            formula="FCF_0 + Σ FCF_p / (1 + CoC)^p",
            inputs={"cost_of_capital": cost_of_capital, "periods": len(operating)},
            output=npv,
            output_units="USD",
        ))

        # ===== IRR =====
        cash_flows = [p.free_cash_flow for p in periods]
        irr = IRRSolver.solve(cash_flows, self.warnings)
        self.trace.append(CalculationTraceStep(
            name="IRR",
            formula="rate where Σ FCF_t / (1 + rate)^t = 0 (Newton-Raphson)",
            inputs={"cash_flows": cash_flows},
            output=irr,
            output_units="decimal",
            notes="No sign change or flat derivative" if irr is None else "",
        ))

        # ===== PROBABILITY ADJUSTMENT =====
        probability = d["probability_of_success"] / 100
        adjusted_nopat = steady_state_nopat * probability
        adjusted_roic = adjusted_nopat / tufi if tufi > 0 else 0.0
        self.trace.append(CalculationTraceStep(
            name="Probability-Adjusted NOPAT",
            formula="Steady-State NOPAT × Probability of Success",
            inputs={"steady_state_nopat": steady_state_nopat, "probability": probability},
            output=adjusted_nopat,
            output_units="USD",
        ))

        completeness = calculate_completeness_score(self.inputs)
        data_quality = calculate_data_quality_score(self.inputs, completeness)

        return SummaryMetrics(
            tufi=tufi,
            tufi_breakdown=TufiBreakdown(
                capex=capex,
                one_time_costs=one_time,
                working_capital_delta=wc_delta,
            ),
            steady_state_nopat=steady_state_nopat,
            avg_annual_nopat=avg_nopat,
            total_nopat=total_nopat,
            roic=roic,
            roic_pct=f"{roic * 100:.1f}%",
            payback_period=payback,
            npv=npv,
            irr=irr,
            irr_pct=f"{irr * 100:.1f}%" if irr is not None else None,
            probability_adjusted_nopat=adjusted_nopat,
            probability_adjusted_roic=adjusted_roic,
            data_quality_score=data_quality,
            completeness_score=completeness,
        )


def calculate_metrics(raw_inputs: Optional[Dict] = None) -> CalculationOutput:
    """Run the full calculation pipeline on a raw driver map."""
    return ROICEngine(raw_inputs).run()
