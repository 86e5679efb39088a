"""
Policy Validation Package

Business-logic validation of draft policy records before submission.

Validation Types:
- Required fields (policy number, insured, vigency, premium, coverage)
- Format checks (CI/RUT check digits, plates, e-mail, phones)
- Cross-field consistency (vigency ordering, premium vs total)
- Review hints (supervisor thresholds, low-confidence AI values)

Key Principle: errors block submission, warnings never do. Every issue
belongs to exactly one field, and through it to one form tab.

Usage:
    from validation import PolicyValidator

    validator = PolicyValidator()
    report = validator.validate(draft)

    for issue in report.errors:
        print(f"{issue.field}: {issue.message}")
    report.first_tab_with_errors()   # 'datos_poliza'
"""

from .identity import (
    FormatCheck,
    ci_check_digit,
    rut_check_digit,
    format_ci,
    format_rut,
    format_phone,
    check_ci,
    check_rut,
    check_national_id,
    check_plate,
    check_email,
    check_phone,
    is_valid_ci,
    is_valid_rut,
    is_valid_national_id,
    is_valid_plate,
    is_valid_email,
    is_valid_phone,
)
from .rules import (
    IssueSeverity,
    IssueCode,
    ValidationIssue,
    ValidationConfig,
    PolicyRule,
    default_rules,
)
from .engine import (
    PolicyValidator,
    ValidationReport,
    validate,
)

__all__ = [
    # Identity and format checks
    'FormatCheck',
    'ci_check_digit',
    'rut_check_digit',
    'format_ci',
    'format_rut',
    'format_phone',
    'check_ci',
    'check_rut',
    'check_national_id',
    'check_plate',
    'check_email',
    'check_phone',
    'is_valid_ci',
    'is_valid_rut',
    'is_valid_national_id',
    'is_valid_plate',
    'is_valid_email',
    'is_valid_phone',

    # Rules
    'IssueSeverity',
    'IssueCode',
    'ValidationIssue',
    'ValidationConfig',
    'PolicyRule',
    'default_rules',

    # Engine
    'PolicyValidator',
    'ValidationReport',
    'validate',
]
