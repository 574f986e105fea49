"""
Input schema and validator for the Framingham risk models.

This module is the single source of truth for the canonical field set and the
inclusive valid range of every model input. The canonical inputs are frozen
pydantic models; candidates are either promoted to one of them or rejected
with a list of field-level violations. Validation failures are returned,
never raised.
"""

import numpy as np
from dataclasses import dataclass, field
from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Mapping, Optional, Tuple, Type, get_args
import logging

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, StrictBool, ValidationError

logger = logging.getLogger(__name__)

Sex = Literal['male', 'female']
SEX_VALUES: Tuple[str, ...] = get_args(Sex)


def _as_measurement(value: Any) -> float:
    """Accept real numbers only; bools, strings and oversized integers are rejected."""
    if isinstance(value, (bool, np.bool_)):
        raise ValueError("must be a number")
    if not isinstance(value, (int, float, np.integer, np.floating)):
        raise ValueError("must be a number")
    try:
        return float(value)
    except OverflowError:
        raise ValueError("must be a number") from None


def _as_flag(value: Any) -> Any:
    if isinstance(value, np.bool_):
        return bool(value)
    return value


Measurement = Annotated[float, BeforeValidator(_as_measurement)]
Flag = Annotated[StrictBool, BeforeValidator(_as_flag)]


def _measurement(minimum: float, maximum: float, label: str, unit: str) -> Any:
    return Field(
        ..., ge=minimum, le=maximum, allow_inf_nan=False,
        title=label, json_schema_extra={'unit': unit}
    )


class CanonicalDiabetesInput(BaseModel):
    """Validated inputs for the Framingham Offspring diabetes model."""
    model_config = ConfigDict(frozen=True)

    sex: Sex = Field(..., title='Sex')
    age: Measurement = _measurement(20, 79, 'Age', 'years')
    bmi: Measurement = _measurement(15, 60, 'BMI', 'kg/m2')
    sbp: Measurement = _measurement(90, 200, 'Systolic blood pressure', 'mmHg')
    on_bp_therapy: Flag = Field(..., title='Blood pressure therapy')
    hdl: Measurement = _measurement(20, 100, 'HDL cholesterol', 'mg/dL')
    tg: Measurement = _measurement(30, 1000, 'Triglycerides', 'mg/dL')
    fasting_glucose: Measurement = _measurement(60, 200, 'Fasting glucose', 'mg/dL')
    parental_history: Flag = Field(..., title='Parental history of diabetes')


class CanonicalCvdInput(BaseModel):
    """Validated inputs for the Framingham general CVD model."""
    model_config = ConfigDict(frozen=True)

    sex: Sex = Field(..., title='Sex')
    age: Measurement = _measurement(30, 74, 'Age', 'years')
    total_chol: Measurement = _measurement(100, 405, 'Total cholesterol', 'mg/dL')
    hdl: Measurement = _measurement(20, 100, 'HDL cholesterol', 'mg/dL')
    sbp: Measurement = _measurement(90, 200, 'Systolic blood pressure', 'mmHg')
    treated: Flag = Field(..., title='Antihypertensive treatment')
    smoker: Flag = Field(..., title='Current smoker')
    diabetes: Flag = Field(..., title='Diabetes')


class FieldKind(str, Enum):
    """Value domain of a canonical field."""
    SEX = "sex"
    NUMBER = "number"
    BOOL = "bool"


@dataclass(frozen=True)
class FieldSpec:
    """Metadata for one canonical input field, read from the model schema."""
    name: str
    kind: FieldKind
    label: str
    minimum: Optional[float] = None
    maximum: Optional[float] = None
    unit: str = ''


@dataclass(frozen=True)
class FieldViolation:
    """A single field-level validation failure."""
    field: str
    reason: str

    def to_dict(self) -> Dict[str, str]:
        return {'field': self.field, 'reason': self.reason}


def _field_table(model: Type[BaseModel]) -> Tuple[FieldSpec, ...]:
    """Field metadata in declaration order, taken from the model's JSON schema."""
    specs = []
    for name, prop in model.model_json_schema()['properties'].items():
        if 'enum' in prop:
            kind = FieldKind.SEX
        elif prop.get('type') == 'boolean':
            kind = FieldKind.BOOL
        else:
            kind = FieldKind.NUMBER
        specs.append(FieldSpec(
            name=name,
            kind=kind,
            label=prop['title'],
            minimum=prop.get('minimum'),
            maximum=prop.get('maximum'),
            unit=prop.get('unit', '')
        ))
    return tuple(specs)


# Declaration order defines each model's required-field order
DIABETES_FIELDS: Tuple[FieldSpec, ...] = _field_table(CanonicalDiabetesInput)
CVD_FIELDS: Tuple[FieldSpec, ...] = _field_table(CanonicalCvdInput)

DIABETES_REQUIRED_FIELDS: Tuple[str, ...] = tuple(f.name for f in DIABETES_FIELDS)
CVD_REQUIRED_FIELDS: Tuple[str, ...] = tuple(f.name for f in CVD_FIELDS)


@dataclass
class ValidationResult:
    """
    Outcome of validating a candidate input.

    Exactly one of ``value`` and ``violations`` is populated.
    """
    value: Optional[BaseModel] = None
    violations: List[FieldViolation] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return self.value is not None and not self.violations


def _reason(spec: FieldSpec, error_type: str) -> str:
    if error_type == 'missing':
        return f"{spec.label} is required"
    if spec.kind is FieldKind.SEX:
        return f"must be one of: {', '.join(SEX_VALUES)}"
    if spec.kind is FieldKind.BOOL:
        return "must be true or false"
    if error_type in ('greater_than_equal', 'less_than_equal'):
        return f"must be between {spec.minimum:g} and {spec.maximum:g} {spec.unit}".rstrip()
    return "must be a number"


def _violations(error: ValidationError, fields: Tuple[FieldSpec, ...]) -> List[FieldViolation]:
    """One violation per failing field, in field-table order."""
    first_error = {}
    for detail in error.errors(include_url=False):
        name = detail['loc'][0] if detail['loc'] else None
        first_error.setdefault(name, detail['type'])

    return [
        FieldViolation(spec.name, _reason(spec, first_error[spec.name]))
        for spec in fields if spec.name in first_error
    ]


def _validate(
    model: Type[BaseModel],
    fields: Tuple[FieldSpec, ...],
    candidate: Mapping[str, Any]
) -> ValidationResult:
    # None means absent
    present = {k: v for k, v in candidate.items() if v is not None}
    try:
        return ValidationResult(value=model.model_validate(present))
    except ValidationError as e:
        return ValidationResult(violations=_violations(e, fields))


def validate_diabetes_input(candidate: Mapping[str, Any]) -> ValidationResult:
    """Validate a candidate against the diabetes model schema."""
    result = _validate(CanonicalDiabetesInput, DIABETES_FIELDS, candidate)
    if not result.is_valid:
        logger.info(f"Diabetes input rejected: {[v.field for v in result.violations]}")
    return result


def validate_cvd_input(candidate: Mapping[str, Any]) -> ValidationResult:
    """Validate a candidate against the cardiovascular model schema."""
    result = _validate(CanonicalCvdInput, CVD_FIELDS, candidate)
    if not result.is_valid:
        logger.info(f"CVD input rejected: {[v.field for v in result.violations]}")
    return result
