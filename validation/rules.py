"""
Policy Validation Rules

Business-logic checks run over a draft policy record.

Rule Categories:
1. Required fields - policy number, insured, vigency dates, premium, coverage
2. Formats - national ID check digits, plate, e-mail, phone, policy number
3. Ranges - vehicle year, installments, text lengths
4. Cross-field - vigency ordering and span, premium/total coherence,
   installment plan consistency
5. Review hints - low-confidence AI values, supervisor thresholds

Severity Policy:
- ERROR blocks submission (missing values, bad formats, impossible data)
- WARNING is surfaced but does not block (unusual but plausible data)

Design Philosophy:
- Flag issues, don't silently fix
- Attribute every issue to exactly one field
- Never raise for bad data
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from enum import Enum, auto
from typing import Any, Dict, List, Mapping, Optional, Sequence

from dateutil import parser as date_parser

from schema import POLICY_SCHEMA, DraftPolicyRecord, ValueKind

from .identity import check_national_id, check_email, check_phone, check_plate

logger = logging.getLogger(__name__)


class IssueSeverity(Enum):
    """Severity levels for validation issues."""
    ERROR = auto()      # Blocks submission
    WARNING = auto()    # Surfaced, does not block

    @property
    def key(self) -> str:
        return self.name.lower()


class IssueCode(Enum):
    """Machine-readable issue codes shared with the form UI."""
    REQUIRED_FIELD = auto()
    INVALID_FORMAT = auto()
    OUT_OF_RANGE = auto()
    INVALID_DATE = auto()
    INCONSISTENT_DATA = auto()
    REVIEW_SUGGESTED = auto()


@dataclass(frozen=True)
class ValidationIssue:
    """
    A single validation issue, attributed to one field.
    """
    field: str
    message: str
    severity: IssueSeverity
    code: IssueCode
    rule_name: str = ''

    @property
    def tab(self) -> Optional[str]:
        target = POLICY_SCHEMA.get(self.field)
        return target.tab if target else None

    @property
    def is_error(self) -> bool:
        return self.severity == IssueSeverity.ERROR

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            'field': self.field,
            'message': self.message,
            'severity': self.severity.key,
            'code': self.code.name,
            'rule': self.rule_name,
            'tab': self.tab,
        }

    def __str__(self) -> str:
        return f"[{self.severity.name}] {self.field}: {self.message}"


@dataclass
class ValidationConfig:
    """
    Limits used by the validation rules.
    """
    max_vigency_days: int = 730
    stale_start_days: int = 365
    premium_ceiling: float = 10_000_000
    supervisor_threshold: float = 100_000
    commercial_divergence: float = 0.50
    max_total_ratio: float = 2.0
    installment_tolerance: float = 0.10
    min_installments: int = 1
    max_installments: int = 48
    min_vehicle_year: int = 1900
    max_vehicle_year_ahead: int = 1
    policy_number_min_length: int = 3
    policy_number_max_length: int = 50
    policy_number_pattern: str = r'^[A-Z0-9\-/_]+$'
    max_lengths: Dict[str, int] = field(default_factory=lambda: {
        'numeroPoliza': 50,
        'matricula': 20,
        'observaciones': 1000,
    })
    low_confidence_threshold: int = 70
    today: Optional[date] = None

    def current_date(self) -> date:
        return self.today or date.today()

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'ValidationConfig':
        known = set(cls.__dataclass_fields__)
        values = {}
        for key, value in (data or {}).items():
            if key not in known:
                logger.warning(f"Ignoring unknown validation setting '{key}'")
                continue
            values[key] = value
        if isinstance(values.get('today'), str):
            values['today'] = datetime.strptime(values['today'], '%Y-%m-%d').date()
        return cls(**values)


def parse_date(value: Any) -> Optional[date]:
    """Parse an ISO date (or common day-first formats)."""
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    for fmt in ('%Y-%m-%d', '%d/%m/%Y', '%d-%m-%Y'):
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    try:
        return date_parser.parse(text, dayfirst=True).date()
    except (ValueError, OverflowError):
        return None


def as_number(value: Any) -> float:
    if isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        return float(value)
    try:
        return float(str(value).replace(',', '.'))
    except (TypeError, ValueError):
        return 0.0


class PolicyRule:
    """
    Base class for policy validation rules.

    Subclass this and implement ``check``.
    """

    name: str = 'unnamed_rule'

    def __init__(self, config: Optional[ValidationConfig] = None):
        self.config = config or ValidationConfig()
        self.enabled = True

    def check(
        self,
        record: DraftPolicyRecord,
        mapped: Optional[Mapping[str, Any]] = None,
    ) -> List[ValidationIssue]:
        """Return the issues found. Override in subclasses."""
        raise NotImplementedError

    def error(self, field: str, message: str, code: IssueCode) -> ValidationIssue:
        return ValidationIssue(field, message, IssueSeverity.ERROR, code, self.name)

    def warning(self, field: str, message: str, code: IssueCode = IssueCode.REVIEW_SUGGESTED) -> ValidationIssue:
        return ValidationIssue(field, message, IssueSeverity.WARNING, code, self.name)


class RequiredFieldsRule(PolicyRule):
    """Required values must be present (empty strings, 0 and unresolved refs count as missing)."""

    name = 'required_fields'

    def __init__(self, fields: Sequence[str], config: Optional[ValidationConfig] = None):
        super().__init__(config)
        self.fields = list(fields)

    def check(self, record, mapped=None):
        issues = []
        for name in self.fields:
            if record.is_empty(name):
                label = POLICY_SCHEMA[name].label
                issues.append(self.error(name, f"{label} es requerido", IssueCode.REQUIRED_FIELD))
        return issues


class PolicyNumberRule(PolicyRule):
    name = 'policy_number_format'

    def check(self, record, mapped=None):
        value = str(record.get('numeroPoliza') or '').strip()
        if not value:
            return []

        cfg = self.config
        if not cfg.policy_number_min_length <= len(value) <= cfg.policy_number_max_length:
            return [self.error(
                'numeroPoliza',
                f"El número de póliza debe tener entre {cfg.policy_number_min_length} "
                f"y {cfg.policy_number_max_length} caracteres",
                IssueCode.OUT_OF_RANGE,
            )]
        if not re.match(cfg.policy_number_pattern, value, re.IGNORECASE):
            return [self.error(
                'numeroPoliza',
                "El número de póliza solo puede contener letras, números, guiones y barras",
                IssueCode.INVALID_FORMAT,
            )]
        return []


class FormatRule(PolicyRule):
    """Runs a format check on an optional text field."""

    def __init__(self, field: str, checker, name: str, config: Optional[ValidationConfig] = None):
        super().__init__(config)
        self.field = field
        self.checker = checker
        self.name = name

    def check(self, record, mapped=None):
        value = str(record.get(self.field) or '').strip()
        if not value:
            return []
        result = self.checker(value)
        if result.is_valid:
            return []
        return [self.error(self.field, result.error, IssueCode.INVALID_FORMAT)]


class VehicleYearRule(PolicyRule):
    name = 'vehicle_year'

    def check(self, record, mapped=None):
        year = int(as_number(record.get('anio')))
        if not year:
            return []
        latest = self.config.current_date().year + self.config.max_vehicle_year_ahead
        if not self.config.min_vehicle_year <= year <= latest:
            return [self.error(
                'anio',
                f"El año debe estar entre {self.config.min_vehicle_year} y {latest}",
                IssueCode.OUT_OF_RANGE,
            )]
        return []


class InstallmentsRule(PolicyRule):
    name = 'installments_range'

    def check(self, record, mapped=None):
        cuotas = as_number(record.get('cuotas'))
        cfg = self.config
        if cuotas and not cfg.min_installments <= cuotas <= cfg.max_installments:
            return [self.error(
                'cuotas',
                f"Las cuotas deben estar entre {cfg.min_installments} y {cfg.max_installments}",
                IssueCode.OUT_OF_RANGE,
            )]
        return []


class MaxLengthRule(PolicyRule):
    name = 'max_length'

    def check(self, record, mapped=None):
        issues = []
        for field_name, limit in self.config.max_lengths.items():
            if field_name not in POLICY_SCHEMA:
                continue
            value = str(record.get(field_name) or '')
            if len(value) > limit:
                issues.append(self.error(
                    field_name,
                    f"{POLICY_SCHEMA[field_name].label} no puede superar {limit} caracteres",
                    IssueCode.OUT_OF_RANGE,
                ))
        return issues


class VigencyRule(PolicyRule):
    """
    Coverage period checks.

    A reversed or overlong period is a single error on vigenciaHasta and
    suppresses the staleness warnings, so one mistake yields one issue.
    """

    name = 'vigency'

    def check(self, record, mapped=None):
        issues = []
        raw_start = record.get('vigenciaDesde')
        raw_end = record.get('vigenciaHasta')
        start = parse_date(raw_start)
        end = parse_date(raw_end)

        if raw_start and start is None:
            issues.append(self.error('vigenciaDesde', "Fecha de inicio inválida", IssueCode.INVALID_DATE))
        if raw_end and end is None:
            issues.append(self.error('vigenciaHasta', "Fecha de fin inválida", IssueCode.INVALID_DATE))
        if start is None or end is None:
            return issues

        if end <= start:
            return [self.error(
                'vigenciaHasta',
                "La fecha de fin debe ser posterior a la fecha de inicio",
                IssueCode.INCONSISTENT_DATA,
            )]

        if (end - start).days > self.config.max_vigency_days:
            return [self.error(
                'vigenciaHasta',
                "La vigencia no puede ser mayor a 2 años",
                IssueCode.OUT_OF_RANGE,
            )]

        today = self.config.current_date()
        if start < today - timedelta(days=self.config.stale_start_days):
            issues.append(self.warning('vigenciaDesde', "La fecha de inicio es muy antigua"))
        if end < today:
            issues.append(self.warning('vigenciaHasta', "La póliza ya está vencida"))
        return issues


class PremiumRule(PolicyRule):
    """Premium must be positive; unusual amounts are flagged for review."""

    name = 'premium'

    def check(self, record, mapped=None):
        prima = as_number(record.get('prima'))
        if record.is_empty('prima'):
            return []
        if prima <= 0:
            return [self.error('prima', "El premio debe ser mayor a 0", IssueCode.OUT_OF_RANGE)]

        cfg = self.config
        issues = []
        if prima > cfg.premium_ceiling:
            issues.append(self.warning('prima', "El premio parece excesivamente alto"))
        elif prima > cfg.supervisor_threshold:
            issues.append(self.warning('prima', "Premio alto, revisar con supervisor"))

        comercial = as_number(record.get('primaComercial'))
        if comercial > 0 and abs(prima - comercial) / comercial > cfg.commercial_divergence:
            issues.append(self.warning(
                'primaComercial',
                "El premio y la prima comercial difieren más de lo esperado",
            ))
        return issues


class TotalRule(PolicyRule):
    """Total due must cover the premium."""

    name = 'total_amount'

    def check(self, record, mapped=None):
        prima = as_number(record.get('prima'))
        total = as_number(record.get('premioTotal'))
        if not total or prima <= 0:
            return []
        if total < prima:
            return [self.error(
                'premioTotal',
                "El total no puede ser menor que el premio",
                IssueCode.INCONSISTENT_DATA,
            )]
        if total > prima * self.config.max_total_ratio:
            return [self.warning('premioTotal', "El total parece muy alto respecto al premio")]
        return []


class InstallmentPlanRule(PolicyRule):
    """Installment value × count should match the total; cash payments have one installment."""

    name = 'installment_plan'

    def check(self, record, mapped=None):
        issues = []
        cuotas = int(as_number(record.get('cuotas')))
        valor = as_number(record.get('valorCuota'))
        total = as_number(record.get('premioTotal')) or as_number(record.get('prima'))

        if cuotas > 0 and valor > 0 and total > 0:
            expected = valor * cuotas
            if abs(expected - total) / total > self.config.installment_tolerance:
                issues.append(self.warning(
                    'valorCuota',
                    f"El valor de cuota × {cuotas} no coincide con el total",
                ))

        forma_pago = str(record.get('formaPago') or '').strip().lower()
        if cuotas > 1 and forma_pago == 'contado':
            issues.append(self.warning('formaPago', "Pago al contado con más de una cuota"))
        return issues


class CurrencyPresenceRule(PolicyRule):
    """Amounts need a currency."""

    name = 'currency_presence'

    def check(self, record, mapped=None):
        if record.is_empty('prima') or not record.is_empty('moneda'):
            return []
        return [self.error('moneda', "Debe indicar la moneda del premio", IssueCode.REQUIRED_FIELD)]


class EnumerationRule(PolicyRule):
    """Free-text fields restricted to a backend-provided set."""

    name = 'enumeration'

    FIELD_ENUMERATIONS = {
        'estadoPoliza': 'estadosPoliza',
        'tramite': 'tiposTramite',
        'formaPago': 'formasPago',
    }

    def __init__(self, vocabulary, config: Optional[ValidationConfig] = None):
        super().__init__(config)
        self.vocabulary = vocabulary

    def check(self, record, mapped=None):
        issues = []
        for field_name, enumeration in self.FIELD_ENUMERATIONS.items():
            value = str(record.get(field_name) or '').strip()
            if value and not self.vocabulary.allows(enumeration, value):
                issues.append(self.error(
                    field_name,
                    f"Valor no permitido para {POLICY_SCHEMA[field_name].label}: {value}",
                    IssueCode.INVALID_FORMAT,
                ))
        return issues


class LowConfidenceRule(PolicyRule):
    """Present AI values with low confidence should be reviewed."""

    name = 'low_confidence'

    def check(self, record, mapped=None):
        issues = []
        for name, mapped_field in (mapped or {}).items():
            if getattr(mapped_field, 'is_manual', False) or not getattr(mapped_field, 'source_name', ''):
                continue
            if record.is_empty(name):
                continue
            if mapped_field.confidence < self.config.low_confidence_threshold:
                issues.append(self.warning(
                    name,
                    f"Valor extraído con baja confianza ({mapped_field.confidence}%)",
                ))
        return issues


class KindConsistencyRule(PolicyRule):
    """Values must have the shape their field declares."""

    name = 'value_kind'

    def check(self, record, mapped=None):
        issues = []
        for name, value in record.values.items():
            target = POLICY_SCHEMA[name]
            if value.kind != target.kind:
                issues.append(self.error(
                    name,
                    f"Tipo de valor inesperado para {target.label}",
                    IssueCode.INVALID_FORMAT,
                ))
            elif target.kind == ValueKind.NUMBER and not isinstance(value.value, (int, float)):
                issues.append(self.error(name, f"{target.label} debe ser numérico", IssueCode.INVALID_FORMAT))
        return issues


def default_rules(config: Optional[ValidationConfig] = None, vocabulary=None) -> List[PolicyRule]:
    """The standard rule table, in evaluation order."""
    config = config or ValidationConfig()
    rules: List[PolicyRule] = [
        KindConsistencyRule(config),
        RequiredFieldsRule(
            ['numeroPoliza', 'asegurado', 'vigenciaDesde', 'vigenciaHasta', 'prima', 'cobertura'],
            config,
        ),
        PolicyNumberRule(config),
        FormatRule('documento', check_national_id, 'national_id', config),
        FormatRule('matricula', check_plate, 'plate', config),
        FormatRule('email', check_email, 'email', config),
        FormatRule('telefono', check_phone, 'phone', config),
        VehicleYearRule(config),
        InstallmentsRule(config),
        MaxLengthRule(config),
        VigencyRule(config),
        PremiumRule(config),
        TotalRule(config),
        InstallmentPlanRule(config),
        CurrencyPresenceRule(config),
        LowConfidenceRule(config),
    ]
    if vocabulary is not None:
        rules.append(EnumerationRule(vocabulary, config))
    return rules
