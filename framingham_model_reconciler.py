"""
Payload reconciliation for legacy and current client request shapes.

Older clients submit the PIMA-style diabetes form and the Framingham heart
study questionnaire; current clients submit the canonical Framingham fields.
This module classifies an incoming payload against static shape descriptors
and maps it onto the canonical field names expected by the schema validator,
substituting documented population averages only where that is clinically
safe and reporting every field that remains unresolved.
"""

import numpy as np
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Mapping, Optional, Tuple
import logging

from framingham_model_schema import (
    CVD_FIELDS,
    DIABETES_FIELDS,
    FieldKind,
    FieldSpec,
)

logger = logging.getLogger(__name__)

# Population averages used when the legacy diabetes form never captured lipids
DEFAULT_HDL = 50.0
DEFAULT_TG = 120.0

# Legacy forms never asked about medication; stage 2 hypertension implies therapy
LEGACY_HYPERTENSION_SBP = 140.0

HDL_REQUIRED_REASON = (
    "HDL cholesterol is required for accurate cardiovascular risk calculation"
)

_TRUE_STRINGS = {'1', 'true', 't', 'yes', 'y', 'on'}
_FALSE_STRINGS = {'0', 'false', 'f', 'no', 'n', 'off'}


class PayloadFormat(str, Enum):
    """Request shape variants."""
    LEGACY = "legacy"
    CURRENT = "current"


@dataclass(frozen=True)
class PayloadShape:
    """
    Static descriptor of one request shape.

    Attributes:
        name: Descriptor name
        payload_format: Variant tag this shape resolves to
        exclusive_fields: Keys that only ever appear in this shape
        field_map: Canonical field name -> source keys in priority order
    """
    name: str
    payload_format: PayloadFormat
    exclusive_fields: FrozenSet[str]
    field_map: Tuple[Tuple[str, Tuple[str, ...]], ...]


LEGACY_DIABETES_SHAPE = PayloadShape(
    name='LegacyDiabetesPayload',
    payload_format=PayloadFormat.LEGACY,
    exclusive_fields=frozenset({
        'pregnancies', 'insulin', 'skin_thickness',
        'diabetes_pedigree', 'blood_pressure'
    }),
    field_map=(
        ('sex', ('sex',)),
        ('age', ('age',)),
        ('bmi', ('bmi',)),
        ('sbp', ('blood_pressure',)),
        ('on_bp_therapy', ('onBpTherapy', 'on_bp_therapy', 'BPMeds')),
        ('hdl', ('hdl',)),
        ('tg', ('tg',)),
        ('fasting_glucose', ('fastingGlucose', 'fasting_glucose', 'glucose')),
    )
)

CURRENT_DIABETES_SHAPE = PayloadShape(
    name='CurrentDiabetesPayload',
    payload_format=PayloadFormat.CURRENT,
    exclusive_fields=frozenset(),
    field_map=(
        ('sex', ('sex',)),
        ('age', ('age',)),
        ('bmi', ('bmi',)),
        ('sbp', ('sbp',)),
        ('on_bp_therapy', ('onBpTherapy', 'on_bp_therapy')),
        ('hdl', ('hdl',)),
        ('tg', ('tg',)),
        ('fasting_glucose', ('fastingGlucose', 'fasting_glucose')),
        ('parental_history', ('parentalHistory', 'parental_history')),
    )
)

LEGACY_CVD_SHAPE = PayloadShape(
    name='LegacyCvdPayload',
    payload_format=PayloadFormat.LEGACY,
    exclusive_fields=frozenset({'sysBP', 'diaBP', 'is_smoking', 'BPMeds'}),
    field_map=(
        ('sex', ('sex',)),
        ('age', ('age',)),
        ('total_chol', ('totChol', 'totalChol')),
        ('hdl', ('hdl',)),
        ('sbp', ('sysBP',)),
        ('treated', ('BPMeds',)),
        ('smoker', ('is_smoking',)),
        ('diabetes', ('diabetes',)),
    )
)

CURRENT_CVD_SHAPE = PayloadShape(
    name='CurrentCvdPayload',
    payload_format=PayloadFormat.CURRENT,
    exclusive_fields=frozenset(),
    field_map=(
        ('sex', ('sex',)),
        ('age', ('age',)),
        ('total_chol', ('totalChol', 'total_chol')),
        ('hdl', ('hdl',)),
        ('sbp', ('sbp',)),
        ('treated', ('treated',)),
        ('smoker', ('smoker',)),
        ('diabetes', ('diabetes',)),
    )
)


@dataclass
class ReconciledPayload:
    """
    Canonical fields resolved from a raw payload.

    Callers must not validate or score when ``missing_fields`` is non-empty.
    """
    resolved: Dict[str, Any]
    payload_format: PayloadFormat
    missing_fields: List[str] = field(default_factory=list)
    defaulted_fields: List[str] = field(default_factory=list)
    inferred_fields: List[str] = field(default_factory=list)
    missing_reasons: Dict[str, str] = field(default_factory=dict)

    @property
    def is_legacy(self) -> bool:
        return self.payload_format is PayloadFormat.LEGACY

    @property
    def can_score(self) -> bool:
        return not self.missing_fields

    def to_dict(self) -> Dict[str, Any]:
        return {
            'resolved': dict(self.resolved),
            'payload_format': self.payload_format.value,
            'is_legacy': self.is_legacy,
            'missing_fields': list(self.missing_fields),
            'missing_reasons': dict(self.missing_reasons),
            'defaulted_fields': list(self.defaulted_fields),
            'inferred_fields': list(self.inferred_fields),
        }


def classify_payload(payload: Mapping[str, Any], legacy_shape: PayloadShape) -> PayloadFormat:
    """Return LEGACY if any key exclusive to the legacy shape is present."""
    if legacy_shape.exclusive_fields.intersection(payload.keys()):
        return PayloadFormat.LEGACY
    return PayloadFormat.CURRENT


# ---------------------------------------------------------------------------
# Coercion helpers
# ---------------------------------------------------------------------------

def _to_number(x: Any) -> Any:
    """Coerce numeric strings to float; anything unparseable is returned as-is."""
    if isinstance(x, (bool, np.bool_)):
        return x
    if isinstance(x, (int, float, np.integer, np.floating)):
        try:
            return float(x)
        except OverflowError:
            return x
    if isinstance(x, str):
        try:
            return float(x.strip())
        except ValueError:
            return x
    return x


def _to_bool(x: Any) -> Any:
    """Coerce yes/no strings and 0/1 flags to bool; anything else is returned as-is."""
    if isinstance(x, (bool, np.bool_)):
        return bool(x)
    if isinstance(x, (int, float, np.integer, np.floating)):
        # Only exact 0/1 flags; NaN, inf and other counts stay for the validator
        if x == 1:
            return True
        if x == 0:
            return False
        return x
    if isinstance(x, str):
        s = x.strip().lower()
        if s in _TRUE_STRINGS:
            return True
        if s in _FALSE_STRINGS:
            return False
    return x


def _to_sex(x: Any) -> Any:
    if isinstance(x, str):
        s = x.strip().lower()
        if s in ('m', 'male'):
            return 'male'
        if s in ('f', 'female'):
            return 'female'
    return x


_COERCERS = {
    FieldKind.NUMBER: _to_number,
    FieldKind.BOOL: _to_bool,
    FieldKind.SEX: _to_sex,
}


def _lookup(payload: Mapping[str, Any], keys: Tuple[str, ...]) -> Optional[Any]:
    for key in keys:
        value = payload.get(key)
        if value is not None and value != '':
            return value
    return None


def _map_fields(
    payload: Mapping[str, Any],
    shape: PayloadShape,
    fields: Tuple[FieldSpec, ...]
) -> Dict[str, Any]:
    """Pass mapped fields through with type coercion only."""
    kinds = {spec.name: spec.kind for spec in fields}
    resolved = {}
    for canonical, keys in shape.field_map:
        value = _lookup(payload, keys)
        if value is not None:
            resolved[canonical] = _COERCERS[kinds[canonical]](value)
    return resolved


def _missing(resolved: Mapping[str, Any], fields: Tuple[FieldSpec, ...]) -> Tuple[List[str], Dict[str, str]]:
    missing = [spec.name for spec in fields if spec.name not in resolved]
    reasons = {spec.name: f"{spec.label} is required" for spec in fields if spec.name in missing}
    return missing, reasons


# ---------------------------------------------------------------------------
# Diabetes
# ---------------------------------------------------------------------------

def reconcile_diabetes_payload(payload: Mapping[str, Any]) -> ReconciledPayload:
    """
    Map a raw diabetes request onto CanonicalDiabetesInput field names.

    Args:
        payload: Raw request body in either the legacy or the current shape

    Returns:
        ReconciledPayload with resolved fields, shape tag and unresolved fields
    """
    payload_format = classify_payload(payload, LEGACY_DIABETES_SHAPE)

    if payload_format is PayloadFormat.CURRENT:
        resolved = _map_fields(payload, CURRENT_DIABETES_SHAPE, DIABETES_FIELDS)
        missing, reasons = _missing(resolved, DIABETES_FIELDS)
        return ReconciledPayload(
            resolved=resolved,
            payload_format=payload_format,
            missing_fields=missing,
            missing_reasons=reasons
        )

    resolved = _map_fields(payload, LEGACY_DIABETES_SHAPE, DIABETES_FIELDS)
    defaulted = []
    inferred = []

    # The legacy dataset is an all-female cohort
    if 'sex' not in resolved:
        resolved['sex'] = 'female'
        inferred.append('sex')

    if 'on_bp_therapy' not in resolved:
        sbp = resolved.get('sbp')
        resolved['on_bp_therapy'] = bool(
            isinstance(sbp, float) and sbp > LEGACY_HYPERTENSION_SBP
        )
        inferred.append('on_bp_therapy')

    parental_history = _lookup(payload, ('parentalHistory', 'parental_history'))
    if parental_history is not None:
        resolved['parental_history'] = _to_bool(parental_history)
    else:
        resolved['parental_history'] = False
        inferred.append('parental_history')

    if 'hdl' not in resolved:
        resolved['hdl'] = DEFAULT_HDL
        defaulted.append('hdl')
        logger.warning(
            f"HDL not provided, using population average ({DEFAULT_HDL:g} mg/dL). "
            "Results may be less accurate."
        )

    if 'tg' not in resolved:
        resolved['tg'] = DEFAULT_TG
        defaulted.append('tg')
        logger.warning(
            f"Triglycerides not provided, using population average ({DEFAULT_TG:g} mg/dL). "
            "Results may be less accurate."
        )

    missing, reasons = _missing(resolved, DIABETES_FIELDS)
    ordered = {spec.name: resolved[spec.name] for spec in DIABETES_FIELDS if spec.name in resolved}

    return ReconciledPayload(
        resolved=ordered,
        payload_format=payload_format,
        missing_fields=missing,
        defaulted_fields=defaulted,
        inferred_fields=inferred,
        missing_reasons=reasons
    )


# ---------------------------------------------------------------------------
# Cardiovascular
# ---------------------------------------------------------------------------

def reconcile_cvd_payload(payload: Mapping[str, Any]) -> ReconciledPayload:
    """
    Map a raw cardiovascular request onto CanonicalCvdInput field names.

    HDL has no legacy equivalent and is never defaulted; when absent it is
    reported as missing so the caller refuses to score.

    Args:
        payload: Raw request body in either the legacy or the current shape

    Returns:
        ReconciledPayload with resolved fields, shape tag and unresolved fields
    """
    payload_format = classify_payload(payload, LEGACY_CVD_SHAPE)
    shape = LEGACY_CVD_SHAPE if payload_format is PayloadFormat.LEGACY else CURRENT_CVD_SHAPE

    resolved = _map_fields(payload, shape, CVD_FIELDS)
    missing, reasons = _missing(resolved, CVD_FIELDS)

    if 'hdl' in reasons:
        reasons['hdl'] = HDL_REQUIRED_REASON
        if payload_format is PayloadFormat.LEGACY:
            logger.warning("Legacy CVD payload has no HDL cholesterol; refusing to default it")

    return ReconciledPayload(
        resolved=resolved,
        payload_format=payload_format,
        missing_fields=missing,
        missing_reasons=reasons
    )
