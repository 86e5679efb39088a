"""
Field Mapping Table

Declarative registry linking the field names produced by the document-AI
service to canonical policy fields.

Each rule carries:
- source names: synonyms matched case-insensitively, ignoring underscores,
  spaces, hyphens and dots (numero_poliza ≡ numeroPoliza ≡ NUMERO POLIZA)
- target field: canonical schema field
- transform / validator: looked up by name from mapping.transforms
- priority: higher wins when several rules feed the same target

Rules are loaded from YAML. The table shipped with the package lives in
default_rules.yaml next to this module:

    rules:
      - target: numeroPoliza
        sources: [numeroPoliza, numero_poliza, policy_number]
        transform: upper
        validate: policy_number
        priority: 10
"""

import re
import unicodedata
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Optional

import yaml
from loguru import logger

from schema import POLICY_SCHEMA, ValueKind
from .transforms import get_transform, get_validator


DEFAULT_RULES_PATH = Path(__file__).parent / 'default_rules.yaml'


def normalize_source_name(name: str) -> str:
    """Key used to compare external field names."""
    text = unicodedata.normalize('NFKD', str(name or ''))
    text = ''.join(c for c in text if not unicodedata.combining(c))
    return re.sub(r'[\s_\-.]+', '', text).lower()


@dataclass
class FieldMappingRule:
    """
    One many-to-one mapping from external names to a canonical field.
    """
    source_names: frozenset                  # Normalized synonym keys
    target_field: str                        # Canonical schema field
    transform: Callable[[Any], Any]          # Total: never raises
    validate: Callable[[Any], bool]          # Checks the transformed value
    priority: int = 5
    transform_name: str = 'text'
    validator_name: str = 'always'
    category: Optional[str] = None           # Vocabulary category for master-data targets
    order: int = 0                           # Declaration order, breaks priority ties
    labels: tuple = ()                       # Source names as written in config

    @property
    def uses_vocabulary(self) -> bool:
        return self.category is not None

    def matches(self, source_name: str) -> bool:
        return normalize_source_name(source_name) in self.source_names

    @classmethod
    def from_dict(cls, data: dict, order: int = 0) -> 'FieldMappingRule':
        """Create a rule from a config dict."""
        target = data.get('target', '')
        if target not in POLICY_SCHEMA:
            raise ValueError(f"Mapping rule targets unknown field '{target}'")

        sources = list(data.get('sources') or [target])
        transform_name = data.get('transform', 'text')
        validator_name = data.get('validate') or 'always'

        category = data.get('category')
        schema_field = POLICY_SCHEMA[target]
        if schema_field.kind == ValueKind.MASTER_REF:
            category = category or schema_field.category
            transform_name = 'vocabulary'

        return cls(
            source_names=frozenset(normalize_source_name(s) for s in sources),
            target_field=target,
            transform=get_transform(transform_name),
            validate=get_validator(validator_name),
            priority=int(data.get('priority', 5)),
            transform_name=transform_name,
            validator_name=validator_name,
            category=category,
            order=order,
            labels=tuple(sources),
        )

    def to_dict(self) -> dict:
        data = {
            'target': self.target_field,
            'sources': list(self.labels),
            'transform': self.transform_name,
            'validate': self.validator_name,
            'priority': self.priority,
        }
        if self.category:
            data['category'] = self.category
        return data


class FieldMappingTable:
    """
    Registry of mapping rules.

    Usage:
        table = FieldMappingTable.default()
        for rule in table.rules_for('policy_number'):
            print(rule.target_field, rule.priority)
    """

    def __init__(self, rules: Optional[list[FieldMappingRule]] = None):
        self.rules: list[FieldMappingRule] = []
        self._index: dict[str, list[FieldMappingRule]] = {}
        for rule in rules or []:
            self.add_rule(rule)

    @classmethod
    def from_config(cls, config: dict) -> 'FieldMappingTable':
        """Build a table from a loaded config dict."""
        table = cls()
        for data in config.get('rules', []):
            table.add_rule(FieldMappingRule.from_dict(data, order=len(table.rules)))
        return table

    @classmethod
    def from_yaml(cls, config_path: Path) -> 'FieldMappingTable':
        """
        Load rules from a YAML file.

        Args:
            config_path: Path to the rules file

        Returns:
            Populated FieldMappingTable
        """
        logger.info(f"Loading field mapping rules from: {config_path}")

        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                config = yaml.safe_load(f) or {}
        except Exception as e:
            logger.error(f"Failed to load mapping rules: {e}")
            raise

        table = cls.from_config(config)
        logger.info(f"Loaded {len(table.rules)} mapping rules for {len(table.targets())} fields")
        return table

    @classmethod
    def default(cls) -> 'FieldMappingTable':
        """The rule table shipped with the package."""
        return cls.from_yaml(DEFAULT_RULES_PATH)

    def add_rule(self, rule: FieldMappingRule) -> None:
        """Register a rule; later rules lose priority ties to earlier ones."""
        rule.order = len(self.rules)
        self.rules.append(rule)
        for key in rule.source_names:
            self._index.setdefault(key, []).append(rule)

    def rules_for(self, source_name: str) -> list[FieldMappingRule]:
        """Rules whose synonyms match an external field name, in declaration order."""
        return list(self._index.get(normalize_source_name(source_name), []))

    def rules_for_target(self, target_field: str) -> list[FieldMappingRule]:
        return [r for r in self.rules if r.target_field == target_field]

    def targets(self) -> list[str]:
        """Canonical fields covered by at least one rule, in declaration order."""
        seen = []
        for rule in self.rules:
            if rule.target_field not in seen:
                seen.append(rule.target_field)
        return seen

    def to_config(self) -> dict:
        return {'rules': [r.to_dict() for r in self.rules]}
