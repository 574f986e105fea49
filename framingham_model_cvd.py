"""
Framingham general cardiovascular disease model (10-year risk).

Sex-stratified proportional-hazards model over log-transformed age, total
cholesterol, HDL cholesterol and systolic blood pressure, plus binary smoking
and diabetes terms.

Reference: D'Agostino RB et al. General cardiovascular risk profile for use in
primary care. Circulation 2008;117:743-753.
"""

import numpy as np
from dataclasses import dataclass
from types import MappingProxyType
from typing import List, Mapping
import logging

from framingham_model_classifier import (
    CVD_BANDS,
    Contribution,
    RiskResult,
    clamp_probability,
    classify_risk,
)
from framingham_model_schema import CanonicalCvdInput

logger = logging.getLogger(__name__)

MODEL_NAME = 'framingham_cvd_2008'
HORIZON_YEARS = 10


@dataclass(frozen=True)
class CvdCoefficients:
    """Sex-specific baseline survival, mean score and betas."""
    s0: float
    mean: float
    ln_age: float
    ln_total_chol: float
    ln_hdl: float
    ln_sbp_untreated: float
    ln_sbp_treated: float
    smoker: float
    diabetes: float


CVD_COEFFICIENTS: Mapping[str, CvdCoefficients] = MappingProxyType({
    'female': CvdCoefficients(
        s0=0.95012,
        mean=26.1931,
        ln_age=2.32888,
        ln_total_chol=1.20904,
        ln_hdl=-0.70833,
        ln_sbp_untreated=2.76157,
        ln_sbp_treated=2.82263,
        smoker=0.52873,
        diabetes=0.69154,
    ),
    'male': CvdCoefficients(
        s0=0.88936,
        mean=23.9802,
        ln_age=3.06117,
        ln_total_chol=1.12370,
        ln_hdl=-0.93263,
        ln_sbp_untreated=1.93303,
        ln_sbp_treated=1.99881,
        smoker=0.65451,
        diabetes=0.57367,
    ),
})


def _log_term(name: str, measurement: float, beta: float) -> Contribution:
    value = float(np.log(measurement))
    return Contribution(name=name, value=value, beta=beta, term=beta * value)


def score_contributions(inp: CanonicalCvdInput) -> List[Contribution]:
    """
    Build the ordered score terms for ``inp``.

    Age, cholesterol, HDL and SBP terms are always present; smoker and
    diabetes terms appear only when they apply.
    """
    coef = CVD_COEFFICIENTS[inp.sex]

    if inp.treated:
        sbp_term = _log_term('ln_sbp_treated', inp.sbp, coef.ln_sbp_treated)
    else:
        sbp_term = _log_term('ln_sbp_untreated', inp.sbp, coef.ln_sbp_untreated)

    contributions = [
        _log_term('ln_age', inp.age, coef.ln_age),
        _log_term('ln_total_chol', inp.total_chol, coef.ln_total_chol),
        _log_term('ln_hdl', inp.hdl, coef.ln_hdl),
        sbp_term,
    ]

    if inp.smoker:
        contributions.append(Contribution('smoker', 1.0, coef.smoker, coef.smoker))
    if inp.diabetes:
        contributions.append(Contribution('diabetes', 1.0, coef.diabetes, coef.diabetes))

    return contributions


def compute_cvd_risk(inp: CanonicalCvdInput) -> RiskResult:
    """
    Calculate 10-year general cardiovascular disease probability.

    risk = 1 - S0 ** exp(score - MEAN)

    Args:
        inp: Validated cardiovascular input

    Returns:
        RiskResult with every score term, S0, MEAN and the raw score
    """
    coef = CVD_COEFFICIENTS[inp.sex]
    contributions = score_contributions(inp)

    score = 0.0
    for contribution in contributions:
        score += contribution.term

    risk = 1 - np.power(coef.s0, np.exp(score - coef.mean))
    probability = clamp_probability(risk)
    label = classify_risk(probability * 100, CVD_BANDS)

    logger.debug(f"CVD score={score:.4f} p={probability:.4f} ({label})")

    return RiskResult(
        model=MODEL_NAME,
        horizon_years=HORIZON_YEARS,
        probability=probability,
        label=label,
        score=score,
        contributions=tuple(contributions),
        constants=MappingProxyType({'s0': coef.s0, 'mean': coef.mean}),
        details_key='contributions',
        score_key='score'
    )
