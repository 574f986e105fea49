"""
Shared fixtures for the Framingham risk engine tests.
"""

import pytest

from framingham_model_schema import CanonicalCvdInput, CanonicalDiabetesInput


@pytest.fixture
def diabetes_payload():
    """
    Current-shape diabetes request from the published worked example.
    """
    return {
        'sex': 'female',
        'age': 55,
        'bmi': 31,
        'sbp': 125,
        'onBpTherapy': False,
        'hdl': 45,
        'tg': 160,
        'fastingGlucose': 110,
        'parentalHistory': True,
    }


@pytest.fixture
def cvd_payload():
    """
    Current-shape CVD request for a treated hypertensive male smoker.
    """
    return {
        'sex': 'male',
        'age': 60,
        'totalChol': 220,
        'hdl': 40,
        'sbp': 150,
        'treated': True,
        'smoker': True,
        'diabetes': False,
    }


@pytest.fixture
def legacy_diabetes_payload():
    """
    PIMA-style diabetes form with no lipid measurements.
    """
    return {
        'pregnancies': 2,
        'glucose': 118,
        'blood_pressure': 145,
        'skin_thickness': 25,
        'insulin': 80,
        'bmi': 29.5,
        'diabetes_pedigree': 0.4,
        'age': 48,
    }


@pytest.fixture
def legacy_cvd_payload():
    """
    Heart study questionnaire, which never captured HDL.
    """
    return {
        'age': 55,
        'sex': 'M',
        'is_smoking': 'YES',
        'cigsPerDay': 10,
        'BPMeds': 0,
        'diabetes': 0,
        'totChol': 230,
        'sysBP': 145,
        'diaBP': 90,
    }


@pytest.fixture
def low_risk_diabetes_input():
    return CanonicalDiabetesInput(
        sex='female', age=30.0, bmi=22.0, sbp=110.0, on_bp_therapy=False,
        hdl=60.0, tg=100.0, fasting_glucose=90.0, parental_history=False
    )


@pytest.fixture
def base_cvd_input():
    return CanonicalCvdInput(
        sex='male', age=60.0, total_chol=220.0, hdl=40.0, sbp=150.0,
        treated=True, smoker=True, diabetes=False
    )
