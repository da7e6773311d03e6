"""
ROIC UI Adapter: Transform engine output into display-ready rows
================================================================
This adapter:
1. Formats money, percentages and years consistently ("—" for undefined)
2. Builds summary rows with metric footnotes from metric_sources
3. Builds the period projection table (rows and a pandas DataFrame)
4. Attaches the decision view and its recommendation context when given
"""

from dataclasses import dataclass, asdict
from typing import Any, Dict, List, Optional

import pandas as pd

from decision_framework import get_recommendation_context
from metric_sources import get_metric_source
from roic_types import CalculationOutput, DecisionMetrics


def metric_footnote(source_key: str) -> str:
    """Footnote text ("[id] label") for a metric_sources key; "" if unknown."""
    src = get_metric_source(source_key)
    if not src:
        return ""
    return f"[{src['id']}] {src['label']}"


@dataclass
class FinancialMetric:
    """A single displayed metric with its units and footnote."""
    name: str
    value: Optional[float]
    units: str = "USD"  # USD, %, years, score
    source_key: Optional[str] = None
    notes: Optional[str] = None

    @property
    def is_missing(self) -> bool:
        return self.value is None

    def formatted(self, precision: int = 1) -> str:
        """Format value for display; None renders as a dash."""
        if self.value is None:
            return "—"
        if self.units == "USD":
            sign = "-" if self.value < 0 else ""
            magnitude = abs(self.value)
            if magnitude >= 1e9:
                return f"{sign}${magnitude/1e9:.{precision}f}B"
            elif magnitude >= 1e6:
                return f"{sign}${magnitude/1e6:.{precision}f}M"
            elif magnitude >= 1e3:
                return f"{sign}${magnitude/1e3:.{precision}f}K"
            return f"{sign}${magnitude:.0f}"
        elif self.units == "%":
            return f"{self.value * 100:.{precision}f}%"
        elif self.units == "years":
            return f"{self.value:.{precision}f} yrs"
        elif self.units == "score":
            return f"{self.value:.0f}/100"
        return f"{self.value:.{precision}f}"

    def footnote(self) -> str:
        return metric_footnote(self.source_key) if self.source_key else ""

    def to_dict(self):
        data = asdict(self)
        data["formatted"] = self.formatted()
        data["footnote"] = self.footnote()
        return data


PERIOD_COLUMNS = [
    ("period", "Period"),
    ("revenue_impact", "Revenue Impact"),
    ("cost_savings", "Cost Savings"),
    ("gross_impact", "Gross Impact"),
    ("depreciation", "Depreciation"),
    ("nopat", "NOPAT"),
    ("working_capital_impact", "WC Release"),
    ("operating_cash_flow", "Operating CF"),
    ("free_cash_flow", "Free CF"),
    ("cumulative_cash_flow", "Cumulative CF"),
    ("ramp_pct", "Ramp %"),
]


def periods_to_dataframe(output: CalculationOutput) -> pd.DataFrame:
    """One row per period (0..N), every PeriodMetrics field as a column."""
    df = pd.DataFrame([p.to_dict() for p in output.periods])
    return df.set_index("period", drop=False)


class ROICUIAdapter:
    """Transform a CalculationOutput (and optional decision view) into UI rows."""

    def __init__(self, output: CalculationOutput, decision: Optional[DecisionMetrics] = None):
        self.output = output
        self.decision = decision
        self.ui_data = {}
        self._transform()

    def _transform(self):
        summary = self.output.summary
        metrics = {
            "steady_state_nopat": FinancialMetric("Steady-State NOPAT", summary.steady_state_nopat,
                                                  source_key="nopat"),
            "tufi": FinancialMetric("Total Upfront Investment", summary.tufi, source_key="tufi"),
            "roic": FinancialMetric("ROIC", summary.roic, units="%", source_key="roic"),
            "payback_period": FinancialMetric(
                "Payback Period", summary.payback_period, units="years", source_key="payback",
                notes="Not recovered within horizon" if summary.payback_period is None else None,
            ),
            "npv": FinancialMetric("NPV", summary.npv, source_key="npv"),
            "irr": FinancialMetric(
                "IRR", summary.irr, units="%", source_key="irr",
                notes="No sign change in cash flows" if summary.irr is None else None,
            ),
            "probability_adjusted_nopat": FinancialMetric(
                "Probability-Adjusted NOPAT", summary.probability_adjusted_nopat,
                source_key="probability_adjusted",
            ),
            "probability_adjusted_roic": FinancialMetric(
                "Probability-Adjusted ROIC", summary.probability_adjusted_roic, units="%",
                source_key="probability_adjusted",
            ),
            "data_quality_score": FinancialMetric("Data Quality", summary.data_quality_score,
                                                  units="score", source_key="data_quality"),
            "completeness_score": FinancialMetric("Completeness", summary.completeness_score,
                                                  units="score"),
        }

        self.ui_data = {
            "metrics": metrics,
            "compute_hash": self.output.compute_hash,
            "computed_at": self.output.computed_at,
            "warnings": list(self.output.warnings),
        }

        if self.decision is not None:
            self.ui_data["decision"] = {
                "rag_status": self.decision.rag_status,
                "rag_source": metric_footnote("rag_status"),
                "recommendation": self.decision.recommendation,
                "review_level": self.decision.review_level,
                "risk_score": self.decision.risk_score,
                "context": get_recommendation_context(self.decision),
            }

    def get_ui_data(self) -> Dict[str, Any]:
        return self.ui_data

    def format_summary_table(self) -> List[Dict]:
        rows = []
        for metric in self.ui_data["metrics"].values():
            rows.append({
                "Metric": metric.name,
                "Value": metric.formatted(),
                "Notes": metric.notes or "—",
                "Source": metric.footnote() or "—",
            })
        return rows

    def format_period_table(self) -> List[Dict]:
        rows = []
        for period in self.output.periods:
            row = {}
            for key, label in PERIOD_COLUMNS:
                value = getattr(period, key)
                if key == "period":
                    row[label] = "Initial" if value == 0 else f"Year {value}"
                elif key == "ramp_pct":
                    row[label] = f"{value:.0f}%"
                else:
                    row[label] = FinancialMetric(label, value).formatted()
            rows.append(row)
        return rows

    def format_decision_table(self) -> List[Dict]:
        """Conservative / expected / aggressive ROIC and NOPAT side by side."""
        if self.decision is None:
            return []
        roic = self.decision.roic_range
        nopat = self.decision.absolute_return_range
        return [
            {"Case": "Conservative",
             "ROIC": FinancialMetric("ROIC", roic.conservative, units="%").formatted(),
             "NOPAT": FinancialMetric("NOPAT", nopat.conservative).formatted()},
            {"Case": "Expected",
             "ROIC": FinancialMetric("ROIC", roic.expected, units="%").formatted(),
             "NOPAT": FinancialMetric("NOPAT", nopat.expected).formatted()},
            {"Case": "Aggressive",
             "ROIC": FinancialMetric("ROIC", roic.aggressive, units="%").formatted(),
             "NOPAT": FinancialMetric("NOPAT", nopat.aggressive).formatted()},
        ]
