"""
Identity and Contact Format Checks

Check-digit and format validation for the identifiers found on Uruguayan
policies.

Supported formats:
- CI (personal ID): 7-8 digits, weighted mod-10 check digit
- RUT (business ID): 12 digits, weighted mod-11 check digit
- Vehicle plates: LLL####, LL#### or ####LL
- Phones: 8-digit fixed lines, 9-digit mobiles starting with 09
- E-mail addresses

Each ``check_*`` function returns a FormatCheck with the verdict, a Spanish
error message for the operator, and the canonical display form.
"""

import re
from dataclasses import dataclass
from typing import Optional


CI_WEIGHTS = (2, 9, 8, 7, 6, 3, 4)
RUT_WEIGHTS = (4, 3, 6, 7, 8, 9, 2, 3, 4, 5, 6)

PLATE_PATTERNS = (
    re.compile(r'^[A-Z]{3}\d{4}$'),
    re.compile(r'^[A-Z]{2}\d{4}$'),
    re.compile(r'^\d{4}[A-Z]{2}$'),
)

EMAIL_PATTERN = re.compile(r'^[^\s@]+@[^\s@]+\.[^\s@]+$')
EMAIL_MAX_LENGTH = 254

MOBILE_PREFIX = '09'


@dataclass(frozen=True)
class FormatCheck:
    """Outcome of a format check."""
    is_valid: bool
    error: Optional[str] = None
    formatted: Optional[str] = None


def _digits(value: str) -> str:
    return re.sub(r'\D', '', value or '')


def ci_check_digit(first_seven: str) -> int:
    """Check digit for the first seven digits of a (zero-padded) CI."""
    total = sum(int(d) * w for d, w in zip(first_seven, CI_WEIGHTS))
    remainder = total % 10
    return 0 if remainder == 0 else 10 - remainder


def rut_check_digit(first_eleven: str) -> int:
    """Check digit for the first eleven digits of a RUT."""
    total = sum(int(d) * w for d, w in zip(first_eleven, RUT_WEIGHTS))
    remainder = total % 11
    return remainder if remainder < 2 else 11 - remainder


def format_ci(value: str) -> str:
    clean = _digits(value).zfill(8)
    return f"{clean[0]}.{clean[1:4]}.{clean[4:7]}-{clean[7:]}"


def format_rut(value: str) -> str:
    clean = _digits(value)
    return f"{clean[:2]}.{clean[2:5]}.{clean[5:8]}.{clean[8:11]}.{clean[11:]}"


def format_phone(value: str) -> str:
    clean = _digits(value)
    if len(clean) == 9:
        return f"{clean[:3]} {clean[3:6]} {clean[6:]}"
    if len(clean) == 8:
        return f"{clean[:4]} {clean[4:]}"
    return value


def check_ci(value: str) -> FormatCheck:
    """Validate a personal ID (cédula de identidad)."""
    clean = _digits(value)
    if not clean:
        return FormatCheck(False, 'La cédula es requerida')
    if len(clean) not in (7, 8):
        return FormatCheck(False, 'La cédula debe tener 7 u 8 dígitos')

    padded = clean.zfill(8)
    if ci_check_digit(padded[:7]) != int(padded[7]):
        return FormatCheck(False, 'Dígito verificador de cédula inválido')

    return FormatCheck(True, formatted=format_ci(padded))


def check_rut(value: str) -> FormatCheck:
    """Validate a business ID (RUT)."""
    clean = _digits(value)
    if not clean:
        return FormatCheck(False, 'El RUT es requerido')
    if len(clean) != 12:
        return FormatCheck(False, 'El RUT debe tener 12 dígitos')
    if rut_check_digit(clean[:11]) != int(clean[11]):
        return FormatCheck(False, 'Dígito verificador de RUT inválido')

    return FormatCheck(True, formatted=format_rut(clean))


def check_national_id(value: str) -> FormatCheck:
    """Validate a CI or a RUT, chosen by digit count."""
    clean = _digits(value)
    if len(clean) == 12:
        return check_rut(clean)
    if len(clean) in (7, 8):
        return check_ci(clean)
    return FormatCheck(False, 'El documento debe ser una cédula (7-8 dígitos) o un RUT (12 dígitos)')


def check_plate(value: str) -> FormatCheck:
    """Validate a vehicle plate (matrícula)."""
    clean = re.sub(r'[^A-Z0-9]', '', (value or '').upper())
    if not any(p.match(clean) for p in PLATE_PATTERNS):
        return FormatCheck(False, 'Formato de matrícula inválido (ej: ABC1234, AB1234 o 1234AB)')
    return FormatCheck(True, formatted=clean)


def check_email(value: str) -> FormatCheck:
    text = (value or '').strip()
    if len(text) > EMAIL_MAX_LENGTH:
        return FormatCheck(False, 'El email es demasiado largo')
    if not EMAIL_PATTERN.match(text):
        return FormatCheck(False, 'Formato de email inválido')
    return FormatCheck(True, formatted=text.lower())


def check_phone(value: str) -> FormatCheck:
    """Validate a fixed-line (8 digits) or mobile (9 digits, 09...) number."""
    clean = _digits(value)
    if len(clean) == 9:
        if not clean.startswith(MOBILE_PREFIX):
            return FormatCheck(False, f'Los celulares deben comenzar con {MOBILE_PREFIX}')
    elif len(clean) == 8:
        if clean[0] in '01':
            return FormatCheck(False, 'Número de teléfono fijo inválido')
    else:
        return FormatCheck(False, 'El teléfono debe tener 8 dígitos (fijo) o 9 dígitos (celular)')

    return FormatCheck(True, formatted=format_phone(clean))


def is_valid_ci(value: str) -> bool:
    return check_ci(value).is_valid


def is_valid_rut(value: str) -> bool:
    return check_rut(value).is_valid


def is_valid_national_id(value: str) -> bool:
    return check_national_id(value).is_valid


def is_valid_plate(value: str) -> bool:
    return check_plate(value).is_valid


def is_valid_email(value: str) -> bool:
    return check_email(value).is_valid


def is_valid_phone(value: str) -> bool:
    return check_phone(value).is_valid
