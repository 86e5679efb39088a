"""
Value Transforms and Quick Validators

Transforms turn a raw extracted value into the typed value stored on the
draft record. Every transform is total: bad input becomes a safe empty value
("" or 0) and the Validation Engine reports it later.

What the transforms handle:
- Dates → ISO format (YYYY-MM-DD), day-first
- Amounts → float, European (1.234,56) or US (1,234.56) separators
- Plates, documents and phones → canonical character sets
- Payment methods → the backend's fixed labels

Validators are the cheap per-rule checks used by the reconciler to decide
whether a candidate is usable. They take the transformed value.
"""

import re
from datetime import datetime, date
from typing import Any, Callable, Optional

from dateutil import parser as date_parser
from loguru import logger

from validation.identity import (
    is_valid_email,
    is_valid_national_id,
    is_valid_phone,
    is_valid_plate,
)


DATE_FORMATS = [
    "%Y-%m-%d",
    "%d/%m/%Y",
    "%d-%m-%Y",
    "%d.%m.%Y",
    "%Y/%m/%d",
    "%d/%m/%y",
    "%Y-%m-%dT%H:%M:%S",
]

PAYMENT_METHODS = [
    (('CONTADO', 'EFECTIVO'), 'Contado'),
    (('TARJETA', 'CREDITO'), 'Tarjeta de Crédito'),
    (('DEBITO', 'AUTOMATICO'), 'Débito Automático'),
    (('CUOTAS',), 'Cuotas'),
    (('FINANCIADO',), 'Financiado'),
]


def _as_text(value: Any) -> str:
    if value is None:
        return ''
    return str(value)


def to_text(value: Any) -> str:
    """Trim and collapse whitespace."""
    return re.sub(r'\s+', ' ', _as_text(value)).strip()


def to_upper(value: Any) -> str:
    return to_text(value).upper()


def to_name(value: Any) -> str:
    """Person or company name; removes stray label punctuation."""
    text = to_text(value)
    return text.strip(' :;,-')


def to_date(value: Any) -> str:
    """
    Parse a date to ISO format.

    Tries explicit day-first formats, then dateutil. Returns "" when the
    value cannot be parsed.
    """
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()

    text = to_text(value)
    if not text:
        return ''

    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date().isoformat()
        except ValueError:
            continue

    try:
        return date_parser.parse(text, dayfirst=True, fuzzy=True).date().isoformat()
    except (ValueError, OverflowError):
        pass

    logger.debug(f"Could not parse date: {text}")
    return ''


def _normalize_number_format(value: str) -> str:
    """
    Resolve thousand/decimal separators.

    - 1.234,56 (comma decimal)
    - 1,234.56 (dot decimal)
    - 1.234.567 / 1,234,567 (thousands only)
    """
    value = value.replace(' ', '')
    dots = value.count('.')
    commas = value.count(',')

    if dots and commas:
        if value.rfind(',') > value.rfind('.'):
            return value.replace('.', '').replace(',', '.')
        return value.replace(',', '')

    if commas == 1:
        after = len(value) - value.index(',') - 1
        return value.replace(',', '.') if after <= 2 else value.replace(',', '')

    if commas > 1:
        return value.replace(',', '')

    if dots > 1:
        return value.replace('.', '')

    if dots == 1:
        # "1.234" is a thousands separator in local documents
        after = len(value) - value.index('.') - 1
        if after == 3 and len(value) > 4 and not value.startswith('0'):
            return value.replace('.', '')

    return value


def to_amount(value: Any) -> float:
    """Parse a money amount. Returns 0.0 when unparseable."""
    if isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        return round(float(value), 2)

    text = to_text(value)
    if not text:
        return 0.0

    is_negative = text.startswith('-') or ('(' in text and ')' in text)
    cleaned = re.sub(r'[^\d.,]', '', text)
    if not cleaned:
        return 0.0

    try:
        result = float(_normalize_number_format(cleaned))
    except ValueError:
        logger.debug(f"Could not parse amount: {text}")
        return 0.0

    if is_negative:
        result = -abs(result)
    return round(result, 2)


def to_integer(value: Any) -> int:
    """Parse an integer (installment count, etc.). Returns 0 when unparseable."""
    if isinstance(value, bool):
        return 0
    if isinstance(value, (int, float)):
        return int(value)

    match = re.search(r'-?\d+(?:[.,]\d+)?', to_text(value))
    if not match:
        return 0
    return int(float(match.group(0).replace(',', '.')))


def to_year(value: Any) -> int:
    """Extract a four-digit year."""
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    match = re.search(r'\b(19|20)\d{2}\b', to_text(value))
    return int(match.group(0)) if match else 0


def to_plate(value: Any) -> str:
    return re.sub(r'[^A-Z0-9]', '', to_upper(value))


def to_digits(value: Any) -> str:
    return re.sub(r'\D', '', _as_text(value))


def to_email(value: Any) -> str:
    return to_text(value).lower()


def to_phone(value: Any) -> str:
    """Digits only, dropping the 598 country prefix."""
    digits = to_digits(value)
    if digits.startswith('598') and len(digits) in (11, 12):
        digits = digits[3:]
        if len(digits) == 8 and digits.startswith('9'):
            digits = '0' + digits
    return digits


def to_payment_method(value: Any) -> str:
    """Map free text to one of the backend payment-method labels."""
    text = to_upper(value)
    if not text:
        return ''
    folded = text.replace('É', 'E').replace('Í', 'I').replace('Á', 'A')
    for keywords, label in PAYMENT_METHODS:
        if any(k in folded for k in keywords):
            return label
    return to_text(value)


TRANSFORMS: dict[str, Callable[[Any], Any]] = {
    'text': to_text,
    'upper': to_upper,
    'name': to_name,
    'date': to_date,
    'amount': to_amount,
    'integer': to_integer,
    'year': to_year,
    'plate': to_plate,
    'digits': to_digits,
    'email': to_email,
    'phone': to_phone,
    'payment_method': to_payment_method,
    # Master-data targets are resolved by the vocabulary resolver; the
    # transform only cleans the text handed to it
    'vocabulary': to_text,
}


# --- Quick validators -----------------------------------------------------

def _always(value: Any) -> bool:
    return True


def _non_empty(value: Any) -> bool:
    return value not in (None, '', 0, 0.0)


def _min_length(minimum: int) -> Callable[[Any], bool]:
    def check(value: Any) -> bool:
        return len(_as_text(value).strip()) >= minimum
    return check


def _is_date(value: Any) -> bool:
    if not value:
        return False
    try:
        datetime.strptime(str(value), "%Y-%m-%d")
        return True
    except ValueError:
        return False


def _positive(value: Any) -> bool:
    return isinstance(value, (int, float)) and value > 0


def _non_negative(value: Any) -> bool:
    return isinstance(value, (int, float)) and value >= 0


def _year_range(value: Any) -> bool:
    return isinstance(value, int) and 1900 <= value <= datetime.now().year + 1


def _policy_number(value: Any) -> bool:
    text = _as_text(value)
    return 3 <= len(text) <= 50 and re.fullmatch(r'[A-Z0-9\-/_]+', text) is not None


def _optional(check: Callable[[str], bool]) -> Callable[[Any], bool]:
    def wrapped(value: Any) -> bool:
        text = _as_text(value)
        return not text or check(text)
    return wrapped


VALIDATORS: dict[str, Callable[[Any], bool]] = {
    'always': _always,
    'non_empty': _non_empty,
    'date': _is_date,
    'positive': _positive,
    'non_negative': _non_negative,
    'year_range': _year_range,
    'policy_number': _policy_number,
    'plate': _optional(is_valid_plate),
    'national_id': _optional(is_valid_national_id),
    'email': _optional(is_valid_email),
    'phone': _optional(is_valid_phone),
}


def get_transform(name: str) -> Callable[[Any], Any]:
    """Look up a transform by name."""
    try:
        return TRANSFORMS[name]
    except KeyError:
        raise TypeError(f"Unknown transform '{name}'")


def get_validator(definition: Optional[str]) -> Callable[[Any], bool]:
    """
    Look up a validator by name. Parameterized validators use
    "name:argument", e.g. "min_length:2".
    """
    if not definition:
        return _always

    name, _, argument = definition.partition(':')
    if name == 'min_length':
        return _min_length(int(argument or 1))

    try:
        return VALIDATORS[name]
    except KeyError:
        raise TypeError(f"Unknown validator '{definition}'")


def safe_transform(transform: Callable[[Any], Any], value: Any, fallback: Any = '') -> Any:
    """Run a transform, never letting it raise."""
    try:
        return transform(value)
    except Exception as e:
        logger.warning(f"Transform {getattr(transform, '__name__', transform)} failed on {value!r}: {e}")
        return fallback
