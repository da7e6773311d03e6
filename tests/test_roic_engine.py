"""
Unit tests for the ROIC engine: projection, summary metrics and IRR
"""

import pytest
from roic_engine import ROICEngine, IRRSolver, CalculationTraceStep, calculate_metrics


FREIGHT_PROGRAM = {
    "baseline_revenue": 100_000_000,
    "freight_baseline": 8_000_000,
    "freight_savings_pct": 10,
    "effective_tax_rate": 25,
    "implementation_cost": 150_000,
    "probability_of_success": 80,
    "model_periods": 5,
    "cost_ramp_curve": [50, 100, 100, 100, 100],
}

PRICING_WITH_CAPEX = {
    "baseline_revenue": 40_000_000,
    "baseline_cogs": 24_000_000,
    "price_change_pct": 1.5,
    "variable_cost_reduction_pct": 2,
    "upfront_capex": 1_200_000,
    "implementation_cost": 300_000,
    "ongoing_maintenance": 50_000,
    "dso_improvement_days": 3,
    "revenue_ramp_curve": [40, 80],
}


class TestFreightProgram:
    """Freight savings with a half-year cost ramp in year 1."""

    def setup_method(self):
        self.output = calculate_metrics(FREIGHT_PROGRAM)

    def test_freight_savings_follow_cost_ramp(self):
        assert self.output.periods[1].freight_savings == pytest.approx(400_000)
        assert self.output.periods[5].freight_savings == pytest.approx(800_000)

    def test_tufi_is_implementation_cost(self):
        assert self.output.summary.tufi == pytest.approx(150_000)

    def test_steady_state_nopat_and_roic(self):
        assert self.output.summary.steady_state_nopat == pytest.approx(600_000)
        assert self.output.summary.roic == pytest.approx(4.0)
        assert self.output.summary.roic_pct == "400.0%"

    def test_probability_adjusted_metrics(self):
        assert self.output.summary.probability_adjusted_nopat == pytest.approx(480_000)
        assert self.output.summary.probability_adjusted_roic == pytest.approx(3.2)

    def test_payback_interpolates_within_period_one(self):
        # -150k seed, +300k in year 1 -> recovered half way through year 1
        assert self.output.summary.payback_period == pytest.approx(0.5)

    def test_npv_discounts_at_cost_of_capital(self):
        expected = -150_000 + 300_000 / 1.1 + sum(600_000 / 1.1 ** t for t in range(2, 6))
        assert self.output.summary.npv == pytest.approx(expected)

    def test_irr_zeroes_npv(self):
        irr = self.output.summary.irr
        assert irr is not None
        flows = [p.free_cash_flow for p in self.output.periods]
        assert abs(sum(cf / (1 + irr) ** t for t, cf in enumerate(flows))) < 1e-3

    def test_quality_scores(self):
        # 3 core fields + 1 impact field out of 9
        assert self.output.summary.completeness_score == 44
        # default confidence 3 -> x0.88
        assert self.output.summary.data_quality_score == 39

    def test_no_warnings(self):
        assert self.output.warnings == []


class TestEmptyInputs:
    """Degenerate run: nothing supplied."""

    def setup_method(self):
        self.output = calculate_metrics({})

    def test_baseline_revenue_warning(self):
        assert any("Baseline revenue" in w for w in self.output.warnings)
        assert self.output.inputs["baseline_revenue"] == 0

    def test_zero_investment_guards(self):
        assert self.output.summary.tufi == 0
        assert self.output.summary.roic == 0
        assert self.output.summary.probability_adjusted_roic == 0

    def test_all_impacts_zero(self):
        assert len(self.output.periods) == 6
        for p in self.output.periods:
            assert p.gross_impact == 0
            assert p.nopat == 0
            assert p.free_cash_flow == 0

    def test_payback_is_immediate_without_investment(self):
        assert self.output.summary.payback_period == 0.0

    def test_irr_undefined(self):
        assert self.output.summary.irr is None
        assert self.output.summary.irr_pct is None


class TestCashFlowInvariants:
    """Cumulative cash flow, period 0 and working capital handling."""

    def test_cumulative_cash_flow_consistency(self):
        output = calculate_metrics(PRICING_WITH_CAPEX)
        assert output.periods[0].cumulative_cash_flow == pytest.approx(-1_500_000)
        for prev, cur in zip(output.periods, output.periods[1:]):
            assert cur.cumulative_cash_flow == pytest.approx(prev.cumulative_cash_flow + cur.free_cash_flow)

    def test_period_zero_record(self):
        p0 = calculate_metrics(PRICING_WITH_CAPEX).periods[0]
        assert p0.period == 0
        assert p0.revenue_impact == 0
        assert p0.nopat == 0
        assert p0.operating_cash_flow == pytest.approx(-300_000)
        assert p0.free_cash_flow == pytest.approx(-1_500_000)

    def test_working_capital_release_only_in_period_one(self):
        output = calculate_metrics({
            "baseline_revenue": 36_500_000,
            "baseline_cogs": 36_500_000,
            "dso_improvement_days": 10,
            "dio_improvement_days": 2,
            "dpo_improvement_days": 1,
        })
        p1 = output.periods[1]
        assert p1.ar_impact == pytest.approx(1_000_000)
        assert p1.inventory_impact == pytest.approx(200_000)
        assert p1.ap_impact == pytest.approx(100_000)
        assert p1.working_capital_impact == pytest.approx(1_300_000)
        assert p1.free_cash_flow == pytest.approx(p1.operating_cash_flow + 1_300_000)
        for p in output.periods[2:]:
            assert p.working_capital_impact == 0
            assert p.ar_impact == 0

    def test_working_capital_release_does_not_reduce_below_capex(self):
        output = calculate_metrics({**PRICING_WITH_CAPEX, "dso_improvement_days": 30})
        assert output.summary.tufi == pytest.approx(1_500_000)
        assert output.summary.tufi_breakdown.working_capital_delta < 0

    def test_working_capital_investment_adds_to_tufi(self):
        output = calculate_metrics({
            "baseline_revenue": 36_500_000,
            "dso_improvement_days": -10,
            "implementation_cost": 100_000,
        })
        assert output.summary.tufi == pytest.approx(1_100_000)
        assert output.summary.tufi_breakdown.working_capital_delta == pytest.approx(1_000_000)


class TestProjectionDrivers:
    """Revenue and cost lever formulas."""

    def test_revenue_levers_scale_with_baseline_and_ramp(self):
        output = calculate_metrics({
            "baseline_revenue": 10_000_000,
            "price_change_pct": 2,
            "volume_change_pct": 1,
            "mix_improvement_pct": 0.5,
            "churn_reduction_pct": 0.5,
            "attach_rate_improvement": 1,
            "new_revenue_annual": 200_000,
            "revenue_ramp_curve": [50],
        })
        p1 = output.periods[1]
        assert p1.price_impact == pytest.approx(100_000)
        assert p1.volume_impact == pytest.approx(50_000)
        assert p1.mix_impact == pytest.approx(25_000)
        assert p1.churn_impact == pytest.approx(25_000)
        assert p1.attach_impact == pytest.approx(50_000)
        assert p1.new_revenue == pytest.approx(100_000)
        assert p1.revenue_impact == pytest.approx(350_000)
        assert p1.ramp_pct == pytest.approx(100)  # cost ramp still 100

    def test_headcount_labor_savings(self):
        output = calculate_metrics({"headcount_reduction": 10, "avg_fully_loaded_cost": 80_000})
        assert output.periods[1].labor_savings == pytest.approx(800_000)

    def test_productivity_labor_savings_use_half_of_opex(self):
        output = calculate_metrics({"baseline_opex": 2_000_000, "productivity_improvement_pct": 10})
        assert output.periods[1].labor_savings == pytest.approx(100_000)

    def test_headcount_takes_precedence_over_productivity(self):
        output = calculate_metrics({
            "headcount_reduction": 3,
            "avg_fully_loaded_cost": 50_000,
            "baseline_opex": 2_000_000,
            "productivity_improvement_pct": 10,
        })
        assert output.periods[1].labor_savings == pytest.approx(150_000)

    def test_cost_levers(self):
        output = calculate_metrics({
            "baseline_revenue": 5_000_000,
            "baseline_cogs": 3_000_000,
            "variable_cost_reduction_pct": 5,
            "fixed_cost_reduction": 40_000,
            "shrink_reduction_pct": 1,
            "vendor_savings_annual": 25_000,
        })
        p1 = output.periods[1]
        assert p1.variable_cost_savings == pytest.approx(150_000)
        assert p1.fixed_cost_savings == pytest.approx(40_000)
        assert p1.shrink_savings == pytest.approx(50_000)
        assert p1.vendor_savings == pytest.approx(25_000)
        assert p1.cost_savings == pytest.approx(265_000)

    def test_straight_line_depreciation_and_nopat(self):
        output = calculate_metrics({
            "baseline_revenue": 0,
            "fixed_cost_reduction": 600_000,
            "upfront_capex": 1_000_000,
            "depreciation_years": 4,
            "ongoing_maintenance": 50_000,
        })
        for p in output.periods[1:]:
            assert p.depreciation == pytest.approx(250_000)
            assert p.nopat == pytest.approx((600_000 - 250_000 - 50_000) * 0.75)
            assert p.operating_cash_flow == pytest.approx(p.nopat + 250_000 - 50_000)

    def test_zero_depreciation_years_is_guarded(self):
        output = calculate_metrics({"baseline_revenue": 0, "upfront_capex": 1_000_000, "depreciation_years": 0})
        assert output.periods[1].depreciation == 0
        assert any("Depreciation years" in w for w in output.warnings)

    def test_model_periods_controls_horizon(self):
        output = calculate_metrics({"baseline_revenue": 0, "model_periods": 3})
        assert [p.period for p in output.periods] == [0, 1, 2, 3]

    def test_non_numeric_driver_is_ignored_with_warning(self):
        output = calculate_metrics({"baseline_revenue": 1_000_000, "price_change_pct": "n/a"})
        assert output.periods[1].price_impact == 0
        assert any("price_change_pct" in w for w in output.warnings)

    def test_numeric_strings_are_accepted(self):
        output = calculate_metrics({"baseline_revenue": "1000000", "price_change_pct": "10"})
        assert output.periods[1].price_impact == pytest.approx(100_000)

    def test_bad_ramp_entry_warns_and_holds_previous_ramp(self):
        output = calculate_metrics({"baseline_revenue": 1_000_000, "price_change_pct": 10,
                                    "revenue_ramp_curve": [50, "x"]})
        assert any("revenue_ramp_curve" in w for w in output.warnings)
        for p in output.periods[1:]:
            assert p.price_impact == pytest.approx(50_000)


class TestPaybackAndIRR:
    """Null-valued edge cases."""

    def test_all_negative_cash_flows_have_no_irr(self):
        output = calculate_metrics({
            "baseline_revenue": 0,
            "implementation_cost": 1_000_000,
            "ongoing_maintenance": 100_000,
        })
        assert all(p.free_cash_flow < 0 for p in output.periods)
        assert output.summary.irr is None
        assert output.summary.payback_period is None

    def test_payback_crossing_in_later_period(self):
        output = calculate_metrics({
            "baseline_revenue": 0,
            "implementation_cost": 1_000_000,
            "fixed_cost_reduction": 400_000,
            "effective_tax_rate": 0,
        })
        # 400k per year against a 1M outlay -> 2.5 years
        payback = output.summary.payback_period
        assert payback == pytest.approx(2.5)
        assert output.periods[2].cumulative_cash_flow < 0
        assert output.periods[3].cumulative_cash_flow >= 0

    def test_payback_exactly_at_period_end(self):
        output = calculate_metrics({
            "baseline_revenue": 0,
            "implementation_cost": 800_000,
            "fixed_cost_reduction": 400_000,
            "effective_tax_rate": 0,
        })
        assert output.summary.payback_period == pytest.approx(2.0)


class TestIRRSolver:
    """Newton-Raphson root finder."""

    def test_simple_one_period(self):
        assert IRRSolver.solve([-100, 110]) == pytest.approx(0.10, abs=1e-6)

    def test_annuity(self):
        flows = [-1000, 500, 500, 500]
        irr = IRRSolver.solve(flows)
        assert irr == pytest.approx(0.2338, abs=1e-3)
        assert abs(sum(cf / (1 + irr) ** t for t, cf in enumerate(flows))) < 1e-3

    def test_no_sign_change(self):
        assert IRRSolver.solve([100, 50, 20]) is None
        assert IRRSolver.solve([-100, -50]) is None
        assert IRRSolver.solve([0, 0, 0]) is None

    def test_rate_stays_in_bounds(self):
        irr = IRRSolver.solve([-1, 1000])
        assert IRRSolver.MIN_RATE <= irr <= IRRSolver.MAX_RATE


class TestDeterminismAndTrace:
    """Reproducibility and traceability."""

    def test_same_inputs_same_output(self):
        first = calculate_metrics(PRICING_WITH_CAPEX)
        second = calculate_metrics(PRICING_WITH_CAPEX)
        assert first.periods == second.periods
        assert first.summary == second.summary
        assert first.compute_hash == second.compute_hash

    def test_hash_ignores_key_order(self):
        shuffled = dict(reversed(list(PRICING_WITH_CAPEX.items())))
        assert calculate_metrics(shuffled).compute_hash == calculate_metrics(PRICING_WITH_CAPEX).compute_hash

    def test_hash_changes_with_inputs(self):
        changed = {**PRICING_WITH_CAPEX, "price_change_pct": 1.6}
        assert calculate_metrics(changed).compute_hash != calculate_metrics(PRICING_WITH_CAPEX).compute_hash

    def test_caller_inputs_not_mutated(self):
        inputs = {"baseline_revenue": 1_000_000, "revenue_ramp_curve": [50]}
        calculate_metrics(inputs)
        assert inputs == {"baseline_revenue": 1_000_000, "revenue_ramp_curve": [50]}

    def test_trace_records_summary_steps(self):
        engine = ROICEngine(PRICING_WITH_CAPEX)
        engine.run()
        names = [step.name for step in engine.trace]
        assert "Depreciation" in names
        assert "ROIC" in names
        assert "NPV" in names
        assert "IRR" in names

    def test_trace_step_to_dict(self):
        step = CalculationTraceStep("ROIC", "NOPAT / TUFI", {"nopat": 1}, 0.5)
        d = step.to_dict()
        assert d["name"] == "ROIC"
        assert d["output"] == 0.5

    def test_output_to_dict_is_plain(self):
        d = calculate_metrics(FREIGHT_PROGRAM).to_dict()
        assert d["summary"]["tufi"] == pytest.approx(150_000)
        assert len(d["periods"]) == 6
        assert d["inputs"]["cost_ramp_curve"] == [50, 100, 100, 100, 100]
