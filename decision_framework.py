"""
Decision Framework: RAG status, recommendation, review tier and risk score
==========================================================================
Pure functions over already-computed CalculationOutputs plus caller-supplied
PolicySettings. Nothing here is persisted; decision metrics are recomputed
on demand from stored outputs.
"""

from typing import Dict, Optional

from driver_adapter import (
    DEFAULT_HAIRCUT_CONSERVATIVE, DEFAULT_HAIRCUT_AGGRESSIVE, read_number, round_half_up,
)
from policy_settings import PolicySettings
from roic_types import (
    CalculationOutput, DecisionMetrics, ValueRange,
    RAG_GREEN, RAG_AMBER, RAG_RED,
    STRONG_CANDIDATE, BELOW_HURDLE, HIGH_RISK_PROFILE, MARGINAL_ROIC_HIGH_EXPOSURE,
    LIGHT_TOUCH, STANDARD, BOARD_REVIEW,
)

BUFFER_SHARE_OF_HURDLE = 0.25
GREEN_MIN_PROBABILITY = 0.7
AMBER_MIN_PROBABILITY = 0.5
HIGH_VARIANCE_SPREAD = 0.20  # aggressive - conservative ROIC
NEAR_HURDLE_BAND = 0.03


def calculate_rag_status(roic: float, hurdle_rate: float, probability: float) -> str:
    """GREEN is tested first, then AMBER; anything else is RED."""
    buffer = hurdle_rate * BUFFER_SHARE_OF_HURDLE

    if roic >= hurdle_rate + buffer and probability >= GREEN_MIN_PROBABILITY:
        return RAG_GREEN
    if roic >= hurdle_rate - buffer and probability >= AMBER_MIN_PROBABILITY:
        return RAG_AMBER
    return RAG_RED


def calculate_recommendation(roic: float, hurdle_rate: float, probability: float,
                             conservative_roic: float, aggressive_roic: float) -> str:
    """
    Precedence:
    1. roic below hurdle                        -> BELOW_HURDLE
    2. wide ROIC spread and probability < 0.7   -> HIGH_RISK_PROFILE
    3. roic within 3 pts of hurdle, wide spread -> MARGINAL_ROIC_HIGH_EXPOSURE
    4. otherwise                                -> STRONG_CANDIDATE
    """
    variance = aggressive_roic - conservative_roic
    high_variance = variance > HIGH_VARIANCE_SPREAD
    near_hurdle = abs(roic - hurdle_rate) < NEAR_HURDLE_BAND

    if roic < hurdle_rate:
        return BELOW_HURDLE
    if high_variance and probability < GREEN_MIN_PROBABILITY:
        return HIGH_RISK_PROFILE
    if near_hurdle and high_variance:
        return MARGINAL_ROIC_HIGH_EXPOSURE
    return STRONG_CANDIDATE


def calculate_review_level(investment_size: float, light_touch_threshold: float,
                           board_review_threshold: float) -> str:
    if investment_size <= light_touch_threshold:
        return LIGHT_TOUCH
    if investment_size >= board_review_threshold:
        return BOARD_REVIEW
    return STANDARD


def calculate_risk_score(probability: float, conservative_roic: float, aggressive_roic: float) -> int:
    """0-100: up to 50 points for low probability, up to 50 for ROIC spread."""
    variance = aggressive_roic - conservative_roic
    probability_risk = (1 - probability) * 50
    variance_risk = min(50, variance * 200)
    return max(0, min(100, round_half_up(probability_risk + variance_risk)))


def calculate_decision_metrics(base_case: CalculationOutput, policy: PolicySettings,
                               conservative: Optional[CalculationOutput] = None,
                               aggressive: Optional[CalculationOutput] = None) -> DecisionMetrics:
    """
    Combine the base case (and optionally its variants) with policy thresholds.

    Missing variants are synthesized by scaling the base ROIC and NOPAT with
    the haircut / uplift stored in the base case's inputs.
    """
    hurdle_rate = policy.hurdle_rate_decimal
    inputs = base_case.inputs

    expected_roic = base_case.summary.roic
    expected_nopat = base_case.summary.steady_state_nopat
    probability = read_number(inputs, "probability_of_success", 100) / 100
    investment_size = base_case.summary.tufi

    haircut = read_number(inputs, "haircut_conservative", DEFAULT_HAIRCUT_CONSERVATIVE) / 100
    uplift = read_number(inputs, "haircut_aggressive", DEFAULT_HAIRCUT_AGGRESSIVE) / 100

    if conservative is not None:
        conservative_roic = conservative.summary.roic
        conservative_nopat = conservative.summary.steady_state_nopat
    else:
        conservative_roic = expected_roic * (1 - haircut)
        conservative_nopat = expected_nopat * (1 - haircut)

    if aggressive is not None:
        aggressive_roic = aggressive.summary.roic
        aggressive_nopat = aggressive.summary.steady_state_nopat
    else:
        aggressive_roic = expected_roic * (1 + uplift)
        aggressive_nopat = expected_nopat * (1 + uplift)

    return DecisionMetrics(
        rag_status=calculate_rag_status(expected_roic, hurdle_rate, probability),
        recommendation=calculate_recommendation(
            expected_roic, hurdle_rate, probability, conservative_roic, aggressive_roic
        ),
        review_level=calculate_review_level(
            investment_size, policy.light_touch_threshold, policy.board_review_threshold
        ),
        roic_range=ValueRange(
            conservative=conservative_roic,
            expected=expected_roic,
            aggressive=aggressive_roic,
        ),
        absolute_return_range=ValueRange(
            conservative=conservative_nopat,
            expected=expected_nopat,
            aggressive=aggressive_nopat,
        ),
        expected_value=expected_nopat * probability,
        risk_score=calculate_risk_score(probability, conservative_roic, aggressive_roic),
        vs_hurdle_rate=expected_roic - hurdle_rate,
        investment_size=investment_size,
    )


def get_recommendation_context(metrics: DecisionMetrics) -> Dict:
    """Title, description and next steps to show alongside a recommendation."""
    if metrics.recommendation == BELOW_HURDLE:
        expected = metrics.roic_range.expected
        hurdle = expected - metrics.vs_hurdle_rate
        return {
            "title": "Below Hurdle Rate",
            "description": (
                f"Expected ROIC of {expected * 100:.1f}% is below the "
                f"{hurdle * 100:.0f}% hurdle rate."
            ),
            "action_items": [
                "Identify opportunities to reduce investment cost",
                "Explore ways to increase benefit realization",
                "Consider strategic value beyond financial returns",
                "Document rationale if proceeding despite low ROIC",
            ],
        }

    if metrics.recommendation == HIGH_RISK_PROFILE:
        return {
            "title": "High Risk Profile",
            "description": (
                "Wide variance between conservative and aggressive scenarios "
                "indicates significant uncertainty."
            ),
            "action_items": [
                "Conduct deeper due diligence on key assumptions",
                "Consider phased rollout to reduce exposure",
                "Identify and document key risk mitigation strategies",
                "Plan for contingency scenarios",
            ],
        }

    if metrics.recommendation == MARGINAL_ROIC_HIGH_EXPOSURE:
        return {
            "title": "Marginal ROIC with High Exposure",
            "description": (
                "ROIC is near the hurdle rate with high variance; small changes "
                "could swing results significantly."
            ),
            "action_items": [
                "Stress test critical assumptions",
                "Consider delaying until more data is available",
                "Evaluate if investment can be restructured to reduce risk",
                "Ensure executive sponsorship before proceeding",
            ],
        }

    return {
        "title": "Strong Candidate",
        "description": (
            "This initiative shows strong ROIC above the hurdle rate with an "
            "acceptable risk profile."
        ),
        "action_items": [
            "Proceed with implementation planning",
            "Validate key assumptions with stakeholders",
            "Establish success metrics and tracking",
        ],
    }
