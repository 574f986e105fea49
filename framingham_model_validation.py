"""
Model validation framework for quality assurance.

This module provides validation procedures for scored cohorts including
probability bounds, label consistency, determinism checks and one-at-a-time
sensitivity analysis of model inputs.
"""

import numpy as np
import pandas as pd
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple
from scipy import stats
import logging

from framingham_model_classifier import CVD_BANDS, DIABETES_BANDS, classify_risk
from framingham_model_engine import PIPELINES, get_default_engine

logger = logging.getLogger(__name__)

MODEL_BANDS = {
    'diabetes': DIABETES_BANDS,
    'cvd': CVD_BANDS,
}


class ModelValidationFramework:
    """
    Model validation component.

    Checks that scored outputs respect the models' contracts and measures how
    each input moves the predicted probability.
    """

    def __init__(self, config):
        """
        Initialize validation framework.

        Args:
            config: Model configuration object
        """
        self.config = config

        logger.info("Initialized Model Validation Framework")

    def validate_model(
        self,
        scored_data: pd.DataFrame,
        model: str
    ) -> Dict:
        """
        Run validation over a scored cohort.

        Args:
            scored_data: Output of FraminghamRiskEngine.score_population
            model: 'diabetes' or 'cvd'

        Returns:
            Dictionary with validation results
        """
        validation_results = {
            'missing_values': self._missing_values(scored_data),
            'statistical_tests': self._run_statistical_tests(scored_data),
            'consistency_checks': self._check_consistency(scored_data, model)
        }

        validation_results['overall_valid'] = self._assess_overall_validity(
            validation_results
        )

        return validation_results

    def _missing_values(self, data: pd.DataFrame) -> Dict:
        """Count rows that could not be scored, by error kind."""
        if 'error' not in data.columns:
            return {}
        return data['error'].dropna().value_counts().to_dict()

    def _run_statistical_tests(self, data: pd.DataFrame) -> Dict:
        """Check the probability range and summarize the distribution."""
        results = {}
        tolerance = self.config.probability_tolerance

        probabilities = data['probability'].dropna().astype(float)

        results['probability_range_valid'] = bool(
            ((probabilities >= -tolerance) & (probabilities <= 1 + tolerance)).all()
        )

        if not probabilities.empty:
            results['probability_statistics'] = {
                'mean': probabilities.mean(),
                'median': probabilities.median(),
                'std': probabilities.std(),
                'min': probabilities.min(),
                'max': probabilities.max()
            }

        return results

    def _check_consistency(self, data: pd.DataFrame, model: str) -> Dict:
        """Check labels against the model's fixed bands."""
        results = {}
        bands = MODEL_BANDS[model]

        scored = data[data['probability'].notna()]
        expected = scored['risk_percentage'].map(lambda pct: classify_risk(pct, bands))
        results['labels_consistent'] = bool((expected == scored['label']).all())

        # risk_percentage is always probability on a 0-100 scale
        results['percentage_consistent'] = bool(
            np.allclose(scored['risk_percentage'].astype(float),
                        scored['probability'].astype(float) * 100)
        )

        return results

    def _assess_overall_validity(self, validation_results: Dict) -> bool:
        """Assess overall model validity."""
        checks = []

        stat_valid = validation_results['statistical_tests'].get('probability_range_valid', True)
        checks.append(stat_valid)

        consistency_valid = all(
            v for k, v in validation_results['consistency_checks'].items()
            if isinstance(v, bool)
        )
        checks.append(consistency_valid)

        return all(checks)

    def check_determinism(
        self,
        model: str,
        payloads: Iterable[Mapping[str, Any]],
        engine=None
    ) -> bool:
        """
        Score every payload twice and require bit-identical probabilities.

        Args:
            model: 'diabetes' or 'cvd'
            payloads: Raw payloads to score
            engine: FraminghamRiskEngine to use (default engine if None)

        Returns:
            True when every repeated call returned the same probability
        """
        if engine is None:
            engine = get_default_engine()

        for payload in payloads:
            first = engine.score(model, payload).get('probability')
            second = engine.score(model, payload).get('probability')
            if first != second:
                logger.error(f"Non-deterministic {model} result for {payload}")
                return False
        return True

    def run_sensitivity_analysis(
        self,
        model: str,
        base_input: Mapping[str, Any],
        sensitivity_ranges: Mapping[str, Tuple[float, float]],
        n_samples: Optional[int] = None
    ) -> pd.DataFrame:
        """
        Sweep each numeric input across a range, holding the rest fixed.

        Args:
            model: 'diabetes' or 'cvd'
            base_input: Canonical field values for the reference patient
            sensitivity_ranges: Canonical field name -> (min, max)
            n_samples: Number of samples per parameter

        Returns:
            DataFrame with parameter, value, probability, label and any
            validation violations for each sample
        """
        pipeline = PIPELINES[model]
        n_samples = n_samples or self.config.sensitivity_samples
        results = []

        for param_name, (param_min, param_max) in sensitivity_ranges.items():
            param_values = np.linspace(param_min, param_max, n_samples)

            for param_value in param_values:
                # Create modified input
                modified = dict(base_input)
                modified[param_name] = float(param_value)

                validation = pipeline.validate(modified)
                if not validation.is_valid:
                    results.append({
                        'parameter': param_name,
                        'value': float(param_value),
                        'probability': np.nan,
                        'label': None,
                        'violations': [v.field for v in validation.violations]
                    })
                    continue

                output = pipeline.compute(validation.value)
                results.append({
                    'parameter': param_name,
                    'value': float(param_value),
                    'probability': output.probability,
                    'label': output.label,
                    'violations': []
                })

        return pd.DataFrame(results)

    def monotonic_trend(
        self,
        sensitivity_results: pd.DataFrame,
        parameter: str
    ) -> Dict:
        """
        Spearman rank correlation between one parameter and probability.

        Args:
            sensitivity_results: Output of run_sensitivity_analysis
            parameter: Parameter to summarize

        Returns:
            Dictionary with correlation, p-value and trend direction
        """
        subset = sensitivity_results[
            (sensitivity_results['parameter'] == parameter) &
            sensitivity_results['probability'].notna()
        ]

        if subset['probability'].nunique() < 2:
            return {'parameter': parameter, 'correlation': 0.0, 'p_value': np.nan, 'trend': 'flat'}

        correlation, p_value = stats.spearmanr(subset['value'], subset['probability'])

        if correlation > 0:
            trend = 'increasing'
        elif correlation < 0:
            trend = 'decreasing'
        else:
            trend = 'flat'

        return {
            'parameter': parameter,
            'correlation': float(correlation),
            'p_value': float(p_value),
            'trend': trend
        }
