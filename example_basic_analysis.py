"""
Basic cohort analysis example.

This script demonstrates population scoring with the Framingham models on a
synthetic cohort, followed by validation and a sensitivity sweep.
"""

import logging

from framingham_model_engine import FraminghamRiskEngine
from framingham_model_utils_config import ModelConfig
from framingham_model_utils_data_loader import PatientDataLoader
from framingham_model_validation import ModelValidationFramework


def main():
    """Run basic cohort analysis."""
    logging.basicConfig(level=logging.INFO, format='%(message)s')

    print("Framingham Risk Engine - Basic Cohort Analysis Example")
    print("=" * 60)

    print("\n1. Initializing engine...")
    config = ModelConfig(random_seed=42)
    engine = FraminghamRiskEngine(config)
    loader = PatientDataLoader(config)
    validator = ModelValidationFramework(config)

    for model in ('diabetes', 'cvd'):
        print(f"\n2. Loading {model} cohort...")
        cohort = loader.load_cohort('demo', model)

        print(f"3. Scoring {len(cohort)} patients...")
        scored = engine.score_population(cohort, model)
        distribution = engine.get_risk_distribution(scored)

        print("\n" + "=" * 60)
        print(f"{model.upper()} RESULTS")
        print("=" * 60)
        print(f"Patients scored: {distribution['n_scored']}")
        print(f"Mean risk: {distribution['mean_risk_percentage']:.2f}%")
        print(f"Median risk: {distribution['median_risk_percentage']:.2f}%")
        print(f"High-risk share: {distribution['high_risk_share']:.1%}")
        print(f"Labels: {distribution['label_counts']}")

        validation = validator.validate_model(scored, model)
        print(f"Validation passed: {validation['overall_valid']}")

        loader.save_data(scored, f"scored_{model}.csv")

    print("\n4. Sensitivity of CVD risk to systolic blood pressure...")
    base = {
        'sex': 'male', 'age': 55.0, 'total_chol': 200.0, 'hdl': 45.0,
        'sbp': 130.0, 'treated': False, 'smoker': False, 'diabetes': False
    }
    sweep = validator.run_sensitivity_analysis('cvd', base, {'sbp': (90, 200)})
    trend = validator.monotonic_trend(sweep, 'sbp')
    print(f"  Spearman rho = {trend['correlation']:.3f} ({trend['trend']})")

    print("\n" + "=" * 60)
    print("Analysis complete!")
    print("=" * 60)


if __name__ == "__main__":
    main()
