"""
Risk classification and explanation shared by the Framingham models.

Holds the fixed label bands of each model, probability clamping, the
high-risk decision used for priority booking, and the immutable result
object every model returns.
"""

import numpy as np
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple

# Global priority-booking threshold applied to the maximum probability
HIGH_RISK_THRESHOLD = 0.20

# Ordered (upper bound on risk percentage, label) pairs
DIABETES_BANDS: Tuple[Tuple[float, str], ...] = (
    (10.0, 'low'),
    (20.0, 'intermediate'),
    (float('inf'), 'high'),
)

CVD_BANDS: Tuple[Tuple[float, str], ...] = (
    (5.0, 'low'),
    (7.5, 'borderline'),
    (20.0, 'intermediate'),
    (float('inf'), 'high'),
)


def classify_risk(risk_percentage: float, bands: Tuple[Tuple[float, str], ...]) -> str:
    """
    Map a risk percentage onto a label.

    A percentage equal to a band's upper bound belongs to the next band.

    Args:
        risk_percentage: Risk on a 0-100 scale
        bands: Ordered (upper_bound, label) pairs ending with an infinite bound

    Returns:
        Label of the first band whose upper bound exceeds the percentage
    """
    for upper_bound, label in bands:
        if risk_percentage < upper_bound:
            return label
    return bands[-1][1]


def clamp_probability(probability: float) -> float:
    """Clamp into [0, 1]; applied after the link transform."""
    return float(np.clip(probability, 0.0, 1.0))


@dataclass(frozen=True)
class Contribution:
    """One term of a risk score: input-derived value times coefficient."""
    name: str
    value: float
    beta: float
    term: float
    description: str = ''

    def to_dict(self) -> Dict[str, Any]:
        result = {
            'name': self.name,
            'value': self.value,
            'beta': self.beta,
            'term': self.term,
        }
        if self.description:
            result['description'] = self.description
        return result


@dataclass(frozen=True)
class RiskResult:
    """
    Computed output of one risk model.

    Attributes:
        model: Model identifier
        horizon_years: Prediction horizon
        probability: Event probability in [0, 1]
        label: Model-specific risk category
        score: Raw linear score before the link transform
        contributions: Ordered score terms
        constants: Intercept or baseline survival/mean constants
        details_key: Key under which contributions are reported
    """
    model: str
    horizon_years: int
    probability: float
    label: str
    score: float
    contributions: Tuple[Contribution, ...]
    constants: Mapping[str, float]
    details_key: str = 'contributions'
    score_key: str = 'score'

    @property
    def risk_percentage(self) -> float:
        return self.probability * 100

    @property
    def is_high_risk(self) -> bool:
        return self.probability >= HIGH_RISK_THRESHOLD

    def to_dict(self) -> Dict[str, Any]:
        details = {self.details_key: [c.to_dict() for c in self.contributions]}
        details.update(self.constants)
        details[self.score_key] = self.score
        details['risk_percentage'] = self.risk_percentage

        return {
            'model': self.model,
            'horizon_years': self.horizon_years,
            'probability': self.probability,
            'risk_percentage': self.risk_percentage,
            'label': self.label,
            'details': details,
        }


def max_probability(probabilities: Iterable[Optional[float]]) -> Optional[float]:
    """Maximum over the models that produced a probability."""
    values = [p for p in probabilities if p is not None]
    return max(values) if values else None


def is_high_risk(probabilities: Iterable[Optional[float]]) -> bool:
    """Global priority-booking decision over every model that ran."""
    highest = max_probability(probabilities)
    return highest is not None and highest >= HIGH_RISK_THRESHOLD
