"""
Validation Engine

Runs the policy rule table over a draft record and groups the results.

Output Guarantees:
- Deterministic: the same draft always yields the same lists, same order
- Issues are grouped by field, fields ordered by first appearance in the
  rule table
- At most one error per field (the first failing rule wins)
- A rule that raises is logged and skipped; validation itself never raises
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

from schema import TABS, DraftPolicyRecord

from .rules import (
    IssueSeverity,
    PolicyRule,
    ValidationConfig,
    ValidationIssue,
    default_rules,
)

logger = logging.getLogger(__name__)


@dataclass
class ValidationReport:
    """
    Errors and warnings for one validation pass.
    """
    errors: List[ValidationIssue] = field(default_factory=list)
    warnings: List[ValidationIssue] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors

    @property
    def error_fields(self) -> List[str]:
        return [issue.field for issue in self.errors]

    def errors_for(self, field_name: str) -> List[ValidationIssue]:
        return [issue for issue in self.errors if issue.field == field_name]

    def warnings_for(self, field_name: str) -> List[ValidationIssue]:
        return [issue for issue in self.warnings if issue.field == field_name]

    def issues_for_tab(self, tab: str) -> List[ValidationIssue]:
        return [issue for issue in self.errors + self.warnings if issue.tab == tab]

    def first_tab_with_errors(self) -> Optional[str]:
        """The first form tab, in tab order, holding a blocking error."""
        error_tabs = {issue.tab for issue in self.errors}
        for tab in TABS:
            if tab in error_tabs:
                return tab
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'valid': self.is_valid,
            'errors': [issue.to_dict() for issue in self.errors],
            'warnings': [issue.to_dict() for issue in self.warnings],
        }


class PolicyValidator:
    """
    Validates draft policy records.

    Usage:
        validator = PolicyValidator()
        report = validator.validate(result.draft, result.mapped)

        if not report.is_valid:
            for issue in report.errors:
                print(issue)
    """

    def __init__(
        self,
        config: Optional[ValidationConfig] = None,
        rules: Optional[List[PolicyRule]] = None,
        vocabulary=None,
    ):
        self.config = config or ValidationConfig()
        self.rules: List[PolicyRule] = (
            list(rules) if rules is not None else default_rules(self.config, vocabulary)
        )

    def add_rule(self, rule: PolicyRule):
        """Add a custom rule at the end of the table."""
        self.rules.append(rule)

    def remove_rule(self, rule_name: str):
        """Remove a rule by name."""
        self.rules = [r for r in self.rules if r.name != rule_name]

    def validate(
        self,
        draft: DraftPolicyRecord,
        mapped: Optional[Mapping[str, Any]] = None,
    ) -> ValidationReport:
        """
        Run all enabled rules.

        Args:
            draft: The record to validate
            mapped: Optional reconciled fields, used for confidence hints

        Returns:
            ValidationReport with grouped errors and warnings
        """
        field_order: List[str] = []
        errors: Dict[str, ValidationIssue] = {}
        warnings: Dict[str, List[ValidationIssue]] = {}

        for rule in self.rules:
            if not rule.enabled:
                continue

            try:
                issues = rule.check(draft, mapped)
            except Exception as e:
                logger.warning(f"Rule {rule.name} failed: {e}")
                continue

            for issue in issues:
                if issue.field not in field_order:
                    field_order.append(issue.field)

                if issue.severity == IssueSeverity.ERROR:
                    errors.setdefault(issue.field, issue)
                else:
                    bucket = warnings.setdefault(issue.field, [])
                    if issue not in bucket:
                        bucket.append(issue)

        report = ValidationReport(
            errors=[errors[name] for name in field_order if name in errors],
            warnings=[w for name in field_order for w in warnings.get(name, [])],
        )

        logger.debug(
            f"Validation: {len(report.errors)} errors, {len(report.warnings)} warnings"
        )
        return report


def validate(
    draft: DraftPolicyRecord,
    mapped: Optional[Mapping[str, Any]] = None,
    config: Optional[ValidationConfig] = None,
) -> ValidationReport:
    """Validate with the default rule table."""
    return PolicyValidator(config).validate(draft, mapped)
