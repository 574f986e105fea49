"""
Data loading utilities for patient cohorts.

Provides functions to load patient measurements from CSV files, generate
synthetic cohorts spanning each model's valid input ranges, and save scored
outputs.
"""

import pandas as pd
import numpy as np
from pathlib import Path
from typing import Optional, Tuple
import logging

from framingham_model_schema import CVD_FIELDS, DIABETES_FIELDS, SEX_VALUES, FieldKind, FieldSpec

logger = logging.getLogger(__name__)

MODEL_FIELDS = {
    'diabetes': DIABETES_FIELDS,
    'cvd': CVD_FIELDS,
}

# Column names as current-shape clients send them
WIRE_NAMES = {
    'on_bp_therapy': 'onBpTherapy',
    'fasting_glucose': 'fastingGlucose',
    'parental_history': 'parentalHistory',
    'total_chol': 'totalChol',
}


def _model_fields(model: str) -> Tuple[FieldSpec, ...]:
    if model not in MODEL_FIELDS:
        raise ValueError(f"Unknown model '{model}'; expected one of {sorted(MODEL_FIELDS)}")
    return MODEL_FIELDS[model]


class PatientDataLoader:
    """
    Patient cohort data loader.

    Handles loading and initial checking of patient measurement files.
    """

    def __init__(self, config):
        """
        Initialize data loader.

        Args:
            config: Model configuration object
        """
        self.config = config
        self.data_dir = Path(config.data_dir)
        self.output_dir = Path(config.output_dir)

    def load_cohort(self, name: str, model: str) -> pd.DataFrame:
        """
        Load a named patient cohort for one model.

        Args:
            name: Cohort name (e.g., 'clinic_2024')
            model: 'diabetes' or 'cvd'

        Returns:
            DataFrame with one payload per row
        """
        data_file = self.data_dir / f"{name.lower()}_{model}.csv"

        if data_file.exists():
            return self.load_from_file(str(data_file), model)
        else:
            logger.warning(f"Data file not found: {data_file}")
            # Generate synthetic data as fallback
            return self.generate_synthetic_cohort(model)

    def load_from_file(self, file_path: str, model: str) -> pd.DataFrame:
        """Load patient data from CSV file."""
        logger.info(f"Loading data from {file_path}")

        df = pd.read_csv(file_path)

        # Either canonical or wire column names satisfy a field
        missing_cols = [
            spec.name for spec in _model_fields(model)
            if spec.name not in df.columns and WIRE_NAMES.get(spec.name) not in df.columns
        ]

        if missing_cols:
            logger.warning(f"Missing required columns: {missing_cols}")

        return df

    def generate_synthetic_cohort(
        self,
        model: str,
        n_patients: int = 100,
        seed: Optional[int] = None
    ) -> pd.DataFrame:
        """
        Generate a synthetic cohort uniformly covering a model's valid ranges.

        Args:
            model: 'diabetes' or 'cvd'
            n_patients: Number of rows to generate
            seed: Random seed (falls back to config.random_seed)

        Returns:
            DataFrame with one current-shape payload per row
        """
        fields = _model_fields(model)
        rng = np.random.default_rng(seed if seed is not None else self.config.random_seed)

        logger.info(f"Generating synthetic {model} cohort ({n_patients} patients)")

        data = {}
        for spec in fields:
            column = WIRE_NAMES.get(spec.name, spec.name)
            if spec.kind is FieldKind.SEX:
                data[column] = rng.choice(SEX_VALUES, size=n_patients)
            elif spec.kind is FieldKind.BOOL:
                data[column] = rng.random(n_patients) < 0.5
            else:
                data[column] = np.round(rng.uniform(spec.minimum, spec.maximum, n_patients), 1)

        return pd.DataFrame(data)

    def save_data(self, data: pd.DataFrame, filename: str) -> Path:
        """Save scored data to the output directory."""
        output_path = self.output_dir / filename
        output_path.parent.mkdir(parents=True, exist_ok=True)

        data.to_csv(output_path, index=False)
        logger.info(f"Saved data to {output_path}")

        return output_path
