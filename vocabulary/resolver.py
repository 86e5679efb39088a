"""
Master-Vocabulary Resolver

Resolves free text found on a scanned policy ("DIESEL (GAS-OIL)", "Uso
particular", "U$S") to the opaque ids of the backend's master data.

Resolution order (first match wins):
1. Exact match of the normalized text against an entry's id, canonical
   name or any alias
2. Containment: the entry's name (or description) contains the text, or
   the text contains the name
3. Category-specific static synonym groups
4. The category's configured default id

A miss is never an error. Absence of a master-data entry only means the
default id is used, which is logged at DEBUG level.
"""

from __future__ import annotations

import logging
import re
import unicodedata
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any, Dict, Iterable, List, Optional, Sequence

from .defaults import DEPARTMENTS, VelneoDefaults
from .synonyms import DEFAULT_SYNONYMS, SynonymGroup

logger = logging.getLogger(__name__)


CATEGORIES = (
    'fuel',
    'category',
    'destination',
    'quality',
    'department',
    'currency',
    'coverage',
    'zone',
)

# Containment is skipped for very short text, "A" would match almost anything
MIN_CONTAINMENT_LENGTH = 3


def normalize_text(value: Any) -> str:
    """
    Normalize text for vocabulary comparison.

    Strips accents, upper-cases, turns punctuation into spaces (keeping the
    currency signs $ and €) and collapses whitespace.
    """
    if value is None:
        return ''
    text = unicodedata.normalize('NFKD', str(value))
    text = ''.join(c for c in text if not unicodedata.combining(c))
    text = text.upper()
    text = re.sub(r'[^A-Z0-9$€\s]', ' ', text)
    return re.sub(r'\s+', ' ', text).strip()


def _contains_phrase(text: str, phrase: str) -> bool:
    """Whole-token containment of a normalized phrase."""
    if not phrase:
        return False
    return f' {phrase} ' in f' {text} '


class MatchStrategy(Enum):
    """How a resolution was obtained."""
    EXACT = auto()
    CONTAINS = auto()
    SYNONYM = auto()
    DEFAULT = auto()

    @property
    def is_fallback(self) -> bool:
        return self == MatchStrategy.DEFAULT


@dataclass(frozen=True)
class VocabularyEntry:
    """A single master-data entry."""
    id: Any
    name: str
    aliases: tuple = ()
    description: str = ''

    def keys(self) -> List[str]:
        """Normalized id, name and aliases used for exact matching."""
        values = [str(self.id), self.name, *self.aliases]
        return [k for k in (normalize_text(v) for v in values) if k]


@dataclass
class VocabularyTable:
    """Ordered entries for one category."""
    category: str
    entries: List[VocabularyEntry] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.entries)

    def get(self, entry_id: Any) -> Optional[VocabularyEntry]:
        """Find an entry by id (string comparison)."""
        for entry in self.entries:
            if str(entry.id) == str(entry_id):
                return entry
        return None


@dataclass
class MasterVocabulary:
    """
    All vocabulary tables loaded for a session, plus the free-text
    enumerations that are validated as membership-in-set.
    """
    tables: Dict[str, VocabularyTable] = field(default_factory=dict)
    enumerations: Dict[str, List[str]] = field(default_factory=dict)

    def table(self, category: str) -> VocabularyTable:
        if category not in self.tables:
            return VocabularyTable(category=category)
        return self.tables[category]

    def add_table(self, category: str, entries: Iterable[VocabularyEntry]) -> None:
        self.tables[category] = VocabularyTable(category=category, entries=list(entries))

    def allows(self, enumeration: str, value: str) -> bool:
        """Membership check for free-text enumerations (empty sets allow anything)."""
        allowed = self.enumerations.get(enumeration)
        if not allowed:
            return True
        wanted = normalize_text(value)
        return any(normalize_text(a) == wanted for a in allowed)

    @classmethod
    def with_builtin_departments(cls) -> 'MasterVocabulary':
        """Vocabulary holding only the built-in department table."""
        vocabulary = cls()
        departments = [VocabularyEntry(id=name, name=name) for name in DEPARTMENTS]
        vocabulary.add_table('department', departments)
        vocabulary.add_table('zone', departments)
        return vocabulary


@dataclass(frozen=True)
class Resolution:
    """Outcome of a resolution."""
    category: str
    text: str
    id: Any
    name: str
    strategy: MatchStrategy

    @property
    def is_fallback(self) -> bool:
        return self.strategy.is_fallback


class VocabularyResolver:
    """
    Resolves free text to master-data ids.

    Usage:
        resolver = VocabularyResolver(vocabulary)
        fuel_id = resolver.resolve('fuel', 'DIESEL (GAS-OIL)')

    The resolver is a pure function over the loaded vocabulary: it keeps no
    state between calls.
    """

    def __init__(
        self,
        vocabulary: Optional[MasterVocabulary] = None,
        defaults: Optional[VelneoDefaults] = None,
        synonyms: Optional[Dict[str, Sequence[SynonymGroup]]] = None,
    ):
        self.vocabulary = vocabulary or MasterVocabulary.with_builtin_departments()
        self.defaults = defaults or VelneoDefaults()
        self.synonyms = synonyms if synonyms is not None else DEFAULT_SYNONYMS

    def resolve(self, category: str, text: Any) -> Any:
        """Resolve text to an id, falling back to the category default."""
        return self.resolve_detailed(category, text).id

    def resolve_detailed(self, category: str, text: Any) -> Resolution:
        """Resolve text and report which strategy produced the id."""
        if category not in CATEGORIES:
            raise ValueError(f"Unknown vocabulary category '{category}'")

        raw = '' if text is None else str(text)
        normalized = normalize_text(raw)
        table = self.vocabulary.table(category)

        if normalized:
            entry = self._exact(table, normalized)
            if entry is not None:
                return self._resolution(category, raw, entry, MatchStrategy.EXACT)

            entry = self._containment(table, normalized)
            if entry is not None:
                return self._resolution(category, raw, entry, MatchStrategy.CONTAINS)

            entry = self._synonym(category, table, normalized)
            if entry is not None:
                return self._resolution(category, raw, entry, MatchStrategy.SYNONYM)

        default_id = self.defaults.default_id(category)
        default_entry = table.get(default_id)
        logger.debug(f"No {category} match for '{raw}', using default {default_id!r}")
        return Resolution(
            category=category,
            text=raw,
            id=default_id,
            name=default_entry.name if default_entry else '',
            strategy=MatchStrategy.DEFAULT,
        )

    def label_for(self, category: str, entry_id: Any) -> str:
        """Display name for an id, or an empty string."""
        entry = self.vocabulary.table(category).get(entry_id)
        return entry.name if entry else ''

    def _resolution(
        self,
        category: str,
        raw: str,
        entry: VocabularyEntry,
        strategy: MatchStrategy,
    ) -> Resolution:
        return Resolution(
            category=category,
            text=raw,
            id=entry.id,
            name=entry.name,
            strategy=strategy,
        )

    def _exact(self, table: VocabularyTable, text: str) -> Optional[VocabularyEntry]:
        for entry in table.entries:
            if text in entry.keys():
                return entry
        return None

    def _containment(self, table: VocabularyTable, text: str) -> Optional[VocabularyEntry]:
        if len(text) < MIN_CONTAINMENT_LENGTH:
            return None

        for entry in table.entries:
            name = normalize_text(entry.name)
            if len(name) >= MIN_CONTAINMENT_LENGTH and (text in name or name in text):
                return entry

        for entry in table.entries:
            description = normalize_text(entry.description)
            if description and text in description:
                return entry

        return None

    def _synonym(
        self,
        category: str,
        table: VocabularyTable,
        text: str,
    ) -> Optional[VocabularyEntry]:
        for group in self.synonyms.get(category, []):
            members = [normalize_text(m) for m in group]
            if not any(_contains_phrase(text, m) for m in members):
                continue

            for entry in table.entries:
                keys = entry.keys()
                if any(m in keys for m in members):
                    return entry

        return None
