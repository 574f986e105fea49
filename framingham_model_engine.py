"""
Framingham risk engine: the request/response surface of the scoring core.

Each request runs reconciliation, validation, model computation and
classification in sequence. Caller-input problems come back as structured
error dictionaries; nothing here raises for a malformed payload.
"""

import numpy as np
import pandas as pd
from functools import lru_cache
from typing import Any, Callable, Dict, Mapping, NamedTuple, Optional
import logging

from framingham_model_classifier import HIGH_RISK_THRESHOLD, RiskResult, is_high_risk, max_probability
from framingham_model_cvd import compute_cvd_risk
from framingham_model_diabetes import compute_diabetes_risk
from framingham_model_reconciler import (
    ReconciledPayload,
    reconcile_cvd_payload,
    reconcile_diabetes_payload,
)
from framingham_model_schema import ValidationResult, validate_cvd_input, validate_diabetes_input
from framingham_model_utils_config import ModelConfig

logger = logging.getLogger(__name__)


class RiskModelPipeline(NamedTuple):
    """The three stages a payload passes through for one model."""
    reconcile: Callable[[Mapping[str, Any]], ReconciledPayload]
    validate: Callable[[Mapping[str, Any]], ValidationResult]
    compute: Callable[[Any], RiskResult]


PIPELINES: Mapping[str, RiskModelPipeline] = {
    'diabetes': RiskModelPipeline(
        reconcile_diabetes_payload, validate_diabetes_input, compute_diabetes_risk
    ),
    'cvd': RiskModelPipeline(
        reconcile_cvd_payload, validate_cvd_input, compute_cvd_risk
    ),
}


class FraminghamRiskEngine:
    """
    Risk scoring component for the Framingham diabetes and CVD models.

    Stateless apart from its configuration; every call is a pure function of
    the payload and the fixed coefficient tables.
    """

    def __init__(self, config: Optional[ModelConfig] = None):
        """
        Initialize risk engine.

        Args:
            config: Engine configuration object
        """
        self.config = config or ModelConfig()

        logger.info("Initialized Framingham Risk Engine")

    def score(self, model: str, payload: Any) -> Dict[str, Any]:
        """
        Score one raw payload with the named model.

        Args:
            model: 'diabetes' or 'cvd'
            payload: Raw request body in the legacy or current shape

        Returns:
            Result dictionary, or an error dictionary with an ``error`` key of
            'missing_fields', 'defaulted_fields' or 'invalid_input'
        """
        pipeline = self._pipeline(model)

        if not isinstance(payload, Mapping):
            return {
                'error': 'invalid_input',
                'violations': [{'field': 'payload', 'reason': 'must be an object'}],
            }

        reconciled = pipeline.reconcile(payload)

        if not reconciled.can_score:
            logger.warning(
                f"{model} payload ({reconciled.payload_format.value}) "
                f"missing required fields: {reconciled.missing_fields}"
            )
            return {
                'error': 'missing_fields',
                'fields': list(reconciled.missing_fields),
                'reasons': dict(reconciled.missing_reasons),
                'payload_format': reconciled.payload_format.value,
            }

        if reconciled.defaulted_fields and not self.config.allow_defaulted_inputs:
            return {
                'error': 'defaulted_fields',
                'fields': list(reconciled.defaulted_fields),
                'payload_format': reconciled.payload_format.value,
            }

        validation = pipeline.validate(reconciled.resolved)
        if not validation.is_valid:
            return {
                'error': 'invalid_input',
                'violations': [v.to_dict() for v in validation.violations],
                'payload_format': reconciled.payload_format.value,
            }

        result = pipeline.compute(validation.value)

        response = result.to_dict()
        response.update({
            'payload_format': reconciled.payload_format.value,
            'defaulted_fields': list(reconciled.defaulted_fields),
            'inferred_fields': list(reconciled.inferred_fields),
            'low_confidence': bool(reconciled.defaulted_fields),
            'prediction_record': {
                'model': result.model,
                'input': validation.value.model_dump(),
                'probability': result.probability,
                'label': result.label,
            },
        })
        return response

    def score_diabetes(self, payload: Any) -> Dict[str, Any]:
        """Score an 8-year type 2 diabetes request."""
        return self.score('diabetes', payload)

    def score_cvd(self, payload: Any) -> Dict[str, Any]:
        """Score a 10-year cardiovascular disease request."""
        return self.score('cvd', payload)

    def assess_patient(
        self,
        diabetes_payload: Optional[Mapping[str, Any]] = None,
        cvd_payload: Optional[Mapping[str, Any]] = None
    ) -> Dict[str, Any]:
        """
        Run whichever models have a payload and apply the high-risk rule.

        Args:
            diabetes_payload: Raw diabetes request (optional)
            cvd_payload: Raw cardiovascular request (optional)

        Returns:
            Dictionary with per-model results, the maximum probability over
            successful models and the global high-risk flag
        """
        results = {}
        if diabetes_payload is not None:
            results['diabetes'] = self.score_diabetes(diabetes_payload)
        if cvd_payload is not None:
            results['cvd'] = self.score_cvd(cvd_payload)

        probabilities = [r.get('probability') for r in results.values()]

        return {
            'results': results,
            'max_probability': max_probability(probabilities),
            'high_risk': is_high_risk(probabilities),
            'high_risk_threshold': HIGH_RISK_THRESHOLD,
        }

    def score_population(
        self,
        population: pd.DataFrame,
        model: str
    ) -> pd.DataFrame:
        """
        Score every row of a patient DataFrame.

        Args:
            population: DataFrame with one payload per row; NaN cells are absent
            model: 'diabetes' or 'cvd'

        Returns:
            DataFrame with added risk columns
        """
        self._pipeline(model)

        risks = []
        for _, individual in population.iterrows():
            payload = {k: v for k, v in individual.items() if not pd.isna(v)}
            response = self.score(model, payload)
            risks.append(self._flatten(response))

        risk_df = pd.DataFrame(
            risks,
            columns=['probability', 'risk_percentage', 'label', 'error',
                     'missing_fields', 'low_confidence']
        )

        n_errors = risk_df['error'].notna().sum()
        if n_errors:
            logger.warning(f"{n_errors} of {len(risk_df)} {model} rows could not be scored")

        return pd.concat([population.reset_index(drop=True), risk_df], axis=1)

    def get_risk_distribution(
        self,
        population_risks: pd.DataFrame
    ) -> Dict:
        """
        Calculate summary statistics for population risk distribution.

        Args:
            population_risks: DataFrame returned by score_population

        Returns:
            Dictionary with distribution statistics
        """
        scored = population_risks[population_risks['probability'].notna()]
        if scored.empty:
            return {'n_scored': 0, 'n_unscored': len(population_risks)}

        pct = scored['risk_percentage'].astype(float)

        return {
            'n_scored': len(scored),
            'n_unscored': len(population_risks) - len(scored),
            'mean_risk_percentage': pct.mean(),
            'median_risk_percentage': pct.median(),
            'std_risk_percentage': pct.std(),
            'min_risk_percentage': pct.min(),
            'max_risk_percentage': pct.max(),
            'percentile_25': pct.quantile(0.25),
            'percentile_75': pct.quantile(0.75),
            'label_counts': scored['label'].value_counts().to_dict(),
            'high_risk_share': float(np.mean(scored['probability'] >= HIGH_RISK_THRESHOLD)),
            'low_confidence_share': float(np.mean(scored['low_confidence'].astype(bool))),
        }

    def _pipeline(self, model: str) -> RiskModelPipeline:
        if model not in PIPELINES:
            raise ValueError(f"Unknown model '{model}'; expected one of {sorted(PIPELINES)}")
        return PIPELINES[model]

    @staticmethod
    def _flatten(response: Dict[str, Any]) -> Dict[str, Any]:
        if 'error' in response:
            return {
                'probability': np.nan,
                'risk_percentage': np.nan,
                'label': None,
                'error': response['error'],
                'missing_fields': response.get('fields', []),
                'low_confidence': False,
            }
        return {
            'probability': response['probability'],
            'risk_percentage': response['risk_percentage'],
            'label': response['label'],
            'error': None,
            'missing_fields': [],
            'low_confidence': response['low_confidence'],
        }


@lru_cache()
def get_default_engine() -> FraminghamRiskEngine:
    """Get cached engine with default configuration."""
    return FraminghamRiskEngine()


def score_diabetes(payload: Any) -> Dict[str, Any]:
    """Score a diabetes payload with the default engine."""
    return get_default_engine().score_diabetes(payload)


def score_cvd(payload: Any) -> Dict[str, Any]:
    """Score a cardiovascular payload with the default engine."""
    return get_default_engine().score_cvd(payload)
