"""
Unit tests for the engine's request/response surface.

These tests exercise the full reconcile -> validate -> compute -> classify
path and the structured error values returned for malformed requests.
"""

import itertools

import numpy as np
import pandas as pd
import pytest

from framingham_model_engine import FraminghamRiskEngine, score_cvd, score_diabetes
from framingham_model_schema import CVD_FIELDS, DIABETES_FIELDS, FieldKind
from framingham_model_utils_config import ModelConfig


@pytest.fixture
def engine():
    return FraminghamRiskEngine(ModelConfig())


def test_score_diabetes_success(engine, diabetes_payload):
    response = engine.score_diabetes(diabetes_payload)

    assert 'error' not in response
    assert response['model'] == 'framingham_dm_2007'
    assert response['horizon_years'] == 8
    assert response['probability'] == pytest.approx(0.3656, abs=5e-4)
    assert response['risk_percentage'] == pytest.approx(response['probability'] * 100)
    assert response['label'] == 'high'
    assert response['payload_format'] == 'current'
    assert response['defaulted_fields'] == []
    assert response['low_confidence'] is False
    assert [i['name'] for i in response['details']['fired_indicators']][0] == 'age_50_64'


def test_prediction_record_snapshot(engine, diabetes_payload):
    record = engine.score_diabetes(diabetes_payload)['prediction_record']

    assert record['model'] == 'framingham_dm_2007'
    assert record['label'] == 'high'
    assert record['input']['fasting_glucose'] == 110.0
    assert record['input']['parental_history'] is True


def test_score_cvd_success(engine, cvd_payload):
    response = engine.score_cvd(cvd_payload)

    assert response['model'] == 'framingham_cvd_2008'
    assert response['probability'] == pytest.approx(0.5233, abs=1e-3)
    assert response['label'] == 'high'
    assert [c['name'] for c in response['details']['contributions']] == [
        'ln_age', 'ln_total_chol', 'ln_hdl', 'ln_sbp_treated', 'smoker'
    ]


def test_legacy_cvd_without_hdl_refuses_to_score(engine, legacy_cvd_payload):
    response = engine.score_cvd(legacy_cvd_payload)

    assert response['error'] == 'missing_fields'
    assert response['fields'] == ['hdl']
    assert 'HDL cholesterol is required' in response['reasons']['hdl']
    assert response['payload_format'] == 'legacy'
    assert 'probability' not in response


def test_legacy_diabetes_flags_low_confidence(engine, legacy_diabetes_payload):
    response = engine.score_diabetes(legacy_diabetes_payload)

    assert 'error' not in response
    assert response['payload_format'] == 'legacy'
    assert response['defaulted_fields'] == ['hdl', 'tg']
    assert response['low_confidence'] is True
    assert response['prediction_record']['input']['hdl'] == 50.0
    assert response['prediction_record']['input']['tg'] == 120.0


def test_strict_mode_rejects_defaulted_inputs(legacy_diabetes_payload):
    engine = FraminghamRiskEngine(ModelConfig(allow_defaulted_inputs=False))

    response = engine.score_diabetes(legacy_diabetes_payload)

    assert response == {
        'error': 'defaulted_fields',
        'fields': ['hdl', 'tg'],
        'payload_format': 'legacy',
    }


def test_out_of_range_returns_violations(engine, diabetes_payload):
    diabetes_payload['age'] = 15

    response = engine.score_diabetes(diabetes_payload)

    assert response['error'] == 'invalid_input'
    assert response['violations'] == [
        {'field': 'age', 'reason': 'must be between 20 and 79 years'}
    ]
    assert 'probability' not in response


def test_unparseable_value_returns_violation(engine, cvd_payload):
    cvd_payload['sbp'] = 'high'

    response = engine.score_cvd(cvd_payload)

    assert response['error'] == 'invalid_input'
    assert response['violations'][0]['field'] == 'sbp'


def test_missing_current_fields(engine, diabetes_payload):
    del diabetes_payload['sex']

    response = engine.score_diabetes(diabetes_payload)

    assert response['error'] == 'missing_fields'
    assert response['fields'] == ['sex']


def test_oversized_integer_returns_violation(engine, cvd_payload):
    cvd_payload['age'] = 10 ** 400

    response = engine.score_cvd(cvd_payload)

    assert response['error'] == 'invalid_input'
    assert response['violations'] == [{'field': 'age', 'reason': 'must be a number'}]


@pytest.mark.parametrize('raw', [float('nan'), float('inf'), 2])
def test_non_flag_smoker_is_not_scored(engine, cvd_payload, raw):
    cvd_payload['smoker'] = raw

    response = engine.score_cvd(cvd_payload)

    assert response['error'] == 'invalid_input'
    assert response['violations'] == [{'field': 'smoker', 'reason': 'must be true or false'}]
    assert 'probability' not in response


@pytest.mark.parametrize('payload', [None, [], 'sex=male'])
def test_non_mapping_payload(engine, payload):
    response = engine.score_cvd(payload)

    assert response['error'] == 'invalid_input'


def test_unknown_model_raises(engine):
    with pytest.raises(ValueError):
        engine.score('stroke', {})


def test_module_level_operations(diabetes_payload, cvd_payload):
    assert score_diabetes(diabetes_payload)['label'] == 'high'
    assert score_cvd(cvd_payload)['label'] == 'high'


def test_identical_input_is_bit_identical(engine, diabetes_payload, cvd_payload):
    assert engine.score_diabetes(diabetes_payload)['probability'] == \
        engine.score_diabetes(dict(diabetes_payload))['probability']
    assert engine.score_cvd(cvd_payload)['probability'] == \
        engine.score_cvd(dict(cvd_payload))['probability']


def test_assess_patient_takes_maximum(engine, diabetes_payload, cvd_payload):
    cvd_payload.update({'age': 40, 'smoker': False, 'treated': False, 'sbp': 115,
                        'totalChol': 180, 'hdl': 60})

    assessment = engine.assess_patient(diabetes_payload, cvd_payload)

    diabetes_p = assessment['results']['diabetes']['probability']
    assert assessment['results']['cvd']['probability'] < 0.2
    assert assessment['max_probability'] == diabetes_p
    assert assessment['high_risk'] is True


def test_assess_patient_ignores_unscored_models(engine, legacy_cvd_payload):
    low = {
        'sex': 'female', 'age': 30, 'bmi': 22, 'sbp': 110, 'onBpTherapy': False,
        'hdl': 60, 'tg': 100, 'fastingGlucose': 90, 'parentalHistory': False,
    }

    assessment = engine.assess_patient(low, legacy_cvd_payload)

    assert assessment['results']['cvd']['error'] == 'missing_fields'
    assert assessment['max_probability'] == assessment['results']['diabetes']['probability']
    assert assessment['high_risk'] is False


def test_assess_patient_with_no_models(engine):
    assessment = engine.assess_patient()

    assert assessment['results'] == {}
    assert assessment['max_probability'] is None
    assert assessment['high_risk'] is False


def _grid(fields, n_points):
    """Per-field value grids including both exact boundaries."""
    grids = {}
    for spec in fields:
        if spec.kind is FieldKind.SEX:
            grids[spec.name] = ['male', 'female']
        elif spec.kind is FieldKind.BOOL:
            grids[spec.name] = [False, True]
        else:
            grids[spec.name] = list(np.linspace(spec.minimum, spec.maximum, n_points))
    return grids


@pytest.mark.parametrize('model, fields, wire', [
    ('diabetes', DIABETES_FIELDS, {'on_bp_therapy': 'onBpTherapy',
                                   'fasting_glucose': 'fastingGlucose',
                                   'parental_history': 'parentalHistory'}),
    ('cvd', CVD_FIELDS, {'total_chol': 'totalChol'}),
])
def test_probability_bounds_over_valid_ranges(engine, model, fields, wire):
    grids = _grid(fields, 3)
    names = list(grids)

    for values in itertools.product(*(grids[n] for n in names)):
        payload = {wire.get(n, n): v for n, v in zip(names, values)}
        response = engine.score(model, payload)

        assert 'error' not in response, response
        assert 0.0 <= response['probability'] <= 1.0


def test_score_population(engine):
    population = pd.DataFrame([
        {'sex': 'male', 'age': 60, 'totalChol': 220, 'hdl': 40, 'sbp': 150,
         'treated': True, 'smoker': True, 'diabetes': False},
        {'sex': 'female', 'age': 45, 'totalChol': 190, 'hdl': np.nan, 'sbp': 120,
         'treated': False, 'smoker': False, 'diabetes': False},
        {'sex': 'female', 'age': 50, 'totalChol': 200, 'hdl': 55, 'sbp': 120,
         'treated': False, 'smoker': False, 'diabetes': False},
    ])

    scored = engine.score_population(population, 'cvd')

    assert len(scored) == 3
    assert scored.loc[0, 'label'] == 'high'
    assert scored.loc[1, 'error'] == 'missing_fields'
    assert scored.loc[1, 'missing_fields'] == ['hdl']
    assert np.isnan(scored.loc[1, 'probability'])
    assert scored.loc[2, 'probability'] < scored.loc[0, 'probability']

    distribution = engine.get_risk_distribution(scored)

    assert distribution['n_scored'] == 2
    assert distribution['n_unscored'] == 1
    assert distribution['high_risk_share'] == 0.5
    assert distribution['label_counts']['high'] == 1


def test_risk_distribution_with_nothing_scored(engine):
    population = pd.DataFrame([{'sex': 'male', 'age': 60}])

    scored = engine.score_population(population, 'cvd')

    assert engine.get_risk_distribution(scored) == {'n_scored': 0, 'n_unscored': 1}
