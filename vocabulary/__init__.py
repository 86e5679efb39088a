"""
Vocabulary Package

Resolution of free text to the backend's master-data ids (fuel, category,
destination, quality, department, currency, coverage).

Components:
- VelneoDefaults: immutable default ids and values
- VocabularyResolver: exact / containment / synonym / default resolution
- MasterDataLoader: session-memoized async loading with coalescing

Usage:
    from vocabulary import MasterDataLoader, VocabularyResolver

    loader = MasterDataLoader(fetch_master_data)
    vocabulary = await loader.load()

    resolver = VocabularyResolver(vocabulary)
    resolver.resolve('fuel', 'DIESEL (GAS-OIL)')   # same id as 'DISEL'
    resolver.resolve('fuel', '')                   # default id
"""

from .defaults import VelneoDefaults, DEPARTMENTS
from .resolver import (
    CATEGORIES,
    MatchStrategy,
    MasterVocabulary,
    Resolution,
    VocabularyEntry,
    VocabularyResolver,
    VocabularyTable,
    normalize_text,
)
from .synonyms import DEFAULT_SYNONYMS
from .loader import (
    MasterDataLoader,
    MasterDataPayload,
    MasterDataUnavailableError,
)

__all__ = [
    # Defaults
    'VelneoDefaults',
    'DEPARTMENTS',

    # Resolution
    'CATEGORIES',
    'MatchStrategy',
    'MasterVocabulary',
    'Resolution',
    'VocabularyEntry',
    'VocabularyResolver',
    'VocabularyTable',
    'normalize_text',
    'DEFAULT_SYNONYMS',

    # Loading
    'MasterDataLoader',
    'MasterDataPayload',
    'MasterDataUnavailableError',
]
