"""
Framingham Offspring Study type 2 diabetes model (8-year risk).

Logistic regression over a fixed intercept and a table of binary indicator
rules. Each indicator contributes its coefficient when its condition holds
for the validated input; the summed score is passed through the logit link.

Reference: Wilson PWF et al. Prediction of incident diabetes mellitus in
middle-aged adults. Arch Intern Med 2007;167:1068-1074.
"""

from dataclasses import dataclass
from types import MappingProxyType
from typing import Callable, Tuple
import logging

from scipy.special import expit

from framingham_model_classifier import (
    DIABETES_BANDS,
    Contribution,
    RiskResult,
    clamp_probability,
    classify_risk,
)
from framingham_model_schema import CanonicalDiabetesInput

logger = logging.getLogger(__name__)

MODEL_NAME = 'framingham_dm_2007'
HORIZON_YEARS = 8

DIABETES_INTERCEPT = -5.517


@dataclass(frozen=True)
class Indicator:
    """A binary rule contributing ``beta`` to the score when it holds."""
    key: str
    beta: float
    description: str
    condition: Callable[[CanonicalDiabetesInput], bool]

    def fires(self, inp: CanonicalDiabetesInput) -> bool:
        return bool(self.condition(inp))


def _low_hdl(inp: CanonicalDiabetesInput) -> bool:
    if inp.sex == 'male':
        return inp.hdl < 40
    return inp.hdl < 50


# Evaluation order is the reporting order of fired indicators.
# Age and BMI bands are half-open and mutually exclusive.
DIABETES_INDICATORS: Tuple[Indicator, ...] = (
    Indicator('age_50_64', -0.018,
              'Age between 50 and 64 years',
              lambda inp: 50 <= inp.age < 65),
    Indicator('age_65_plus', -0.081,
              'Age 65 or older',
              lambda inp: inp.age >= 65),
    Indicator('male', -0.010,
              'Biological sex is male',
              lambda inp: inp.sex == 'male'),
    Indicator('parental_history', 0.565,
              'Parent had diabetes',
              lambda inp: inp.parental_history),
    Indicator('bmi_25_29', 0.301,
              'Overweight (BMI 25-29.9)',
              lambda inp: 25 <= inp.bmi < 30),
    Indicator('bmi_30_plus', 0.920,
              'Obese (BMI 30 or higher)',
              lambda inp: inp.bmi >= 30),
    Indicator('bp_high_or_therapy', 0.498,
              'Systolic BP above 130 mmHg or on BP medication',
              lambda inp: inp.sbp > 130 or inp.on_bp_therapy),
    Indicator('low_hdl', 0.944,
              'HDL below 40 mg/dL (men) or 50 mg/dL (women)',
              _low_hdl),
    Indicator('tg_150_plus', 0.575,
              'Triglycerides 150 mg/dL or higher',
              lambda inp: inp.tg >= 150),
    Indicator('fg_100_126', 1.980,
              'Fasting glucose 100-126 mg/dL',
              lambda inp: 100 <= inp.fasting_glucose <= 126),
)


def fired_indicators(inp: CanonicalDiabetesInput) -> Tuple[Contribution, ...]:
    """Indicators that hold for ``inp``, in evaluation order."""
    return tuple(
        Contribution(
            name=indicator.key,
            value=1.0,
            beta=indicator.beta,
            term=indicator.beta,
            description=indicator.description
        )
        for indicator in DIABETES_INDICATORS
        if indicator.fires(inp)
    )


def compute_diabetes_risk(inp: CanonicalDiabetesInput) -> RiskResult:
    """
    Calculate 8-year type 2 diabetes probability.

    Args:
        inp: Validated diabetes input

    Returns:
        RiskResult with the fired indicators, intercept and raw score ``z``
    """
    contributions = fired_indicators(inp)

    z = DIABETES_INTERCEPT
    for contribution in contributions:
        z += contribution.term

    probability = clamp_probability(expit(z))
    label = classify_risk(probability * 100, DIABETES_BANDS)

    logger.debug(f"Diabetes score z={z:.4f} p={probability:.4f} ({label})")

    return RiskResult(
        model=MODEL_NAME,
        horizon_years=HORIZON_YEARS,
        probability=probability,
        label=label,
        score=z,
        contributions=contributions,
        constants=MappingProxyType({'intercept': DIABETES_INTERCEPT}),
        details_key='fired_indicators',
        score_key='z'
    )
