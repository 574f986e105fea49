"""
Individual risk calculation example.

Demonstrates Framingham diabetes and cardiovascular risk scoring for
different patient profiles, including a legacy-format request.
"""

import logging

import pandas as pd

from framingham_model_engine import FraminghamRiskEngine


def main():
    """Calculate and compare individual risks."""
    logging.basicConfig(level=logging.INFO, format='%(message)s')

    print("Framingham Individual Risk Assessment Examples")
    print("=" * 70)

    engine = FraminghamRiskEngine()

    patients = [
        {
            'name': 'Prediabetic Woman, Parental History',
            'diabetes': {
                'sex': 'female', 'age': 55, 'bmi': 31, 'sbp': 125,
                'onBpTherapy': False, 'hdl': 45, 'tg': 160,
                'fastingGlucose': 110, 'parentalHistory': True
            },
            'cvd': {
                'sex': 'female', 'age': 55, 'totalChol': 210, 'hdl': 45,
                'sbp': 125, 'treated': False, 'smoker': False, 'diabetes': False
            }
        },
        {
            'name': 'Treated Hypertensive Male Smoker',
            'diabetes': {
                'sex': 'male', 'age': 60, 'bmi': 27, 'sbp': 150,
                'onBpTherapy': True, 'hdl': 40, 'tg': 140,
                'fastingGlucose': 95, 'parentalHistory': False
            },
            'cvd': {
                'sex': 'male', 'age': 60, 'totalChol': 220, 'hdl': 40,
                'sbp': 150, 'treated': True, 'smoker': True, 'diabetes': False
            }
        },
        {
            'name': 'Legacy Form Submission',
            'diabetes': {
                'pregnancies': 2, 'glucose': 118, 'blood_pressure': 145,
                'skin_thickness': 25, 'insulin': 80, 'bmi': 29.5,
                'diabetes_pedigree': 0.4, 'age': 48
            },
            'cvd': {
                'age': 48, 'sex': 'M', 'is_smoking': 'YES', 'cigsPerDay': 10,
                'BPMeds': 0, 'diabetes': 0, 'totChol': 230, 'sysBP': 145,
                'diaBP': 90
            }
        }
    ]

    results = []
    for patient in patients:
        assessment = engine.assess_patient(patient['diabetes'], patient['cvd'])
        diabetes = assessment['results']['diabetes']
        cvd = assessment['results']['cvd']

        print(f"\n{patient['name']}:")

        if 'error' in diabetes:
            print(f"  Diabetes: not scored ({diabetes['error']})")
        else:
            print(f"  8-year diabetes risk: {diabetes['risk_percentage']:.1f}% ({diabetes['label']})")
            for indicator in diabetes['details']['fired_indicators']:
                print(f"    - {indicator['description']}: {indicator['beta']:+.3f}")
            if diabetes['low_confidence']:
                print(f"    ! Estimated from population averages for: "
                      f"{', '.join(diabetes['defaulted_fields'])}")

        if 'error' in cvd:
            print(f"  CVD: not scored ({cvd['error']})")
            for field, reason in cvd.get('reasons', {}).items():
                print(f"    - {field}: {reason}")
        else:
            print(f"  10-year CVD risk: {cvd['risk_percentage']:.1f}% ({cvd['label']})")
            for term in cvd['details']['contributions']:
                print(f"    - {term['name']}: {term['value']:.3f} x {term['beta']:.5f} = {term['term']:.3f}")

        print(f"  Priority booking: {'yes' if assessment['high_risk'] else 'no'}")

        results.append({
            'name': patient['name'],
            'diabetes_risk': diabetes.get('risk_percentage'),
            'cvd_risk': cvd.get('risk_percentage'),
            'max_probability': assessment['max_probability'],
            'high_risk': assessment['high_risk']
        })

    # Summary comparison
    print("\n" + "=" * 70)
    print("RISK COMPARISON SUMMARY")
    print("=" * 70)

    results_df = pd.DataFrame(results)
    print(results_df.to_string(index=False))


if __name__ == "__main__":
    main()
