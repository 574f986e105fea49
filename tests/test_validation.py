"""
Unit tests for the model validation framework.
"""

import pytest

from framingham_model_engine import FraminghamRiskEngine
from framingham_model_utils_config import ModelConfig
from framingham_model_utils_data_loader import PatientDataLoader
from framingham_model_validation import ModelValidationFramework


@pytest.fixture
def config():
    return ModelConfig(random_seed=11, sensitivity_samples=12)


@pytest.fixture
def framework(config):
    return ModelValidationFramework(config)


@pytest.fixture
def cvd_base():
    return {
        'sex': 'male', 'age': 55.0, 'total_chol': 200.0, 'hdl': 45.0,
        'sbp': 130.0, 'treated': False, 'smoker': False, 'diabetes': False,
    }


@pytest.mark.parametrize('model', ['diabetes', 'cvd'])
def test_validate_synthetic_cohort(config, framework, model):
    cohort = PatientDataLoader(config).generate_synthetic_cohort(model, n_patients=80)
    scored = FraminghamRiskEngine(config).score_population(cohort, model)

    results = framework.validate_model(scored, model)

    assert results['statistical_tests']['probability_range_valid']
    assert results['consistency_checks']['labels_consistent']
    assert results['consistency_checks']['percentage_consistent']
    assert results['missing_values'] == {}
    assert results['overall_valid']


def test_validate_detects_mislabelled_rows(config, framework):
    cohort = PatientDataLoader(config).generate_synthetic_cohort('cvd', n_patients=10)
    scored = FraminghamRiskEngine(config).score_population(cohort, 'cvd')
    scored.loc[0, 'label'] = 'borderline' if scored.loc[0, 'label'] != 'borderline' else 'low'

    results = framework.validate_model(scored, 'cvd')

    assert not results['consistency_checks']['labels_consistent']
    assert not results['overall_valid']


def test_check_determinism(framework):
    payloads = [
        {'sex': 'male', 'age': 60, 'totalChol': 220, 'hdl': 40, 'sbp': 150,
         'treated': True, 'smoker': True, 'diabetes': False},
        {'sex': 'female', 'age': 70, 'totalChol': 300, 'hdl': 30, 'sbp': 180,
         'treated': False, 'smoker': True, 'diabetes': True},
    ]

    assert framework.check_determinism('cvd', payloads)


def test_sensitivity_analysis_sweeps_each_parameter(framework, cvd_base):
    sweep = framework.run_sensitivity_analysis(
        'cvd', cvd_base, {'sbp': (90, 200), 'hdl': (20, 100)}
    )

    assert len(sweep) == 24
    assert set(sweep['parameter']) == {'sbp', 'hdl'}
    assert sweep['probability'].between(0, 1).all()

    assert framework.monotonic_trend(sweep, 'sbp')['trend'] == 'increasing'
    assert framework.monotonic_trend(sweep, 'hdl')['trend'] == 'decreasing'


def test_sensitivity_analysis_reports_out_of_range(framework, cvd_base):
    sweep = framework.run_sensitivity_analysis('cvd', cvd_base, {'age': (20, 80)}, n_samples=7)

    rejected = sweep[sweep['probability'].isna()]

    assert set(rejected['value']) == {20.0, 80.0}
    assert all(v == ['age'] for v in rejected['violations'])


def test_flat_parameter_trend(framework):
    base = {
        'sex': 'female', 'age': 30.0, 'bmi': 22.0, 'sbp': 110.0,
        'on_bp_therapy': False, 'hdl': 60.0, 'tg': 100.0,
        'fasting_glucose': 90.0, 'parental_history': False,
    }

    # Triglycerides below 150 never fire an indicator
    sweep = framework.run_sensitivity_analysis('diabetes', base, {'tg': (30, 140)})

    assert framework.monotonic_trend(sweep, 'tg')['trend'] == 'flat'
