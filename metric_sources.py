"""
metric_sources.py: Metric definition catalog for initiative results
=====================================================================
Citation-style registry. Each entry maps a short key to the label, formula
and method the UI adapter renders as numbered footnotes next to a metric.

Usage:
    from metric_sources import METRIC_CATALOG
    src = METRIC_CATALOG["roic"]
    footnote = f"[{src['id']}] {src['label']} - {src['description']}"
"""

METRIC_CATALOG = {
    "nopat": {
        "id": 1,
        "label": "NOPAT",
        "description": (
            "(Gross Impact − Depreciation − Maintenance) × (1 − Tax Rate). "
            "Steady-state NOPAT is the final modeled period at full ramp."
        ),
        "url": "https://en.wikipedia.org/wiki/Net_operating_profit_after_tax",
        "method": "Driver model · revenue and cost levers",
    },
    "tufi": {
        "id": 2,
        "label": "Total Upfront Investment (TUFI)",
        "description": (
            "Capex + one-time implementation cost + net working capital "
            "investment (a working capital release never adds to TUFI)."
        ),
        "url": None,
        "method": "Driver model · investment drivers",
    },
    "roic": {
        "id": 3,
        "label": "ROIC",
        "description": "Steady-state NOPAT / TUFI; zero when there is no upfront investment.",
        "url": "https://en.wikipedia.org/wiki/Return_on_invested_capital",
        "method": "Calculated",
    },
    "payback": {
        "id": 4,
        "label": "Payback Period",
        "description": (
            "Years until cumulative free cash flow turns non-negative, "
            "interpolated linearly within the crossing year."
        ),
        "url": "https://en.wikipedia.org/wiki/Payback_period",
        "method": "Calculated from cumulative cash flow",
    },
    "npv": {
        "id": 5,
        "label": "NPV",
        "description": "Σ FCF_t / (1 + Cost of Capital)^t; the investment at t=0 is undiscounted.",
        "url": "https://en.wikipedia.org/wiki/Net_present_value",
        "method": "Discounted at organization cost of capital",
    },
    "irr": {
        "id": 6,
        "label": "IRR",
        "description": (
            "Discount rate at which NPV is zero (Newton-Raphson). "
            "Undefined when every cash flow has the same sign."
        ),
        "url": "https://en.wikipedia.org/wiki/Internal_rate_of_return",
        "method": "Newton-Raphson, rate bounded to [−99%, 1000%]",
    },
    "probability_adjusted": {
        "id": 7,
        "label": "Probability-Adjusted NOPAT / ROIC",
        "description": "Steady-state values × probability of success.",
        "url": None,
        "method": "Risk drivers",
    },
    "data_quality": {
        "id": 8,
        "label": "Data Quality Score",
        "description": (
            "Input completeness × (0.7 + 0.06 × confidence level), "
            "with a 20% penalty when probability of success is below 50%."
        ),
        "url": None,
        "method": "Heuristic (0–100)",
    },
    "rag_status": {
        "id": 9,
        "label": "RAG Status",
        "description": (
            "GREEN when ROIC ≥ 1.25 × hurdle and probability ≥ 70%; AMBER when "
            "ROIC ≥ 0.75 × hurdle and probability ≥ 50%; otherwise RED."
        ),
        "url": None,
        "method": "Organization investment policy",
    },
}


def get_metric_source(key: str) -> dict:
    """Catalog entry for `key`, or an empty dict if the metric has no footnote."""
    return METRIC_CATALOG.get(key, {})
