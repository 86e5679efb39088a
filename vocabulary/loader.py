"""
Master Data Loader

Loads the backend vocabulary once per session. Concurrent callers share a
single in-flight fetch instead of issuing duplicate requests. A failed fetch
is not memoized, so the next call retries.

The HTTP side (timeouts, retries) belongs to the fetcher supplied by the
surrounding application.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, field_validator

from schema.errors import MasterDataUnavailableError

from .resolver import MasterVocabulary, VocabularyEntry, VocabularyTable
from .defaults import DEPARTMENTS

logger = logging.getLogger(__name__)


# DTO field holding the display name, per backend table
NAME_KEYS = (
    'name', 'nombre', 'catdsc', 'desnom', 'caldsc', 'cobdsc', 'dptnom',
    'descripcion', 'description', 'label',
)

# Payload key -> vocabulary category
PAYLOAD_CATEGORIES = {
    'combustibles': 'fuel',
    'categorias': 'category',
    'destinos': 'destination',
    'calidades': 'quality',
    'monedas': 'currency',
    'coberturas': 'coverage',
    'departamentos': 'department',
    'zonas': 'zone',
}


def _entry_from_dto(dto: Dict[str, Any]) -> Optional[VocabularyEntry]:
    """Build an entry from a loosely-typed backend DTO."""
    entry_id = dto.get('id')
    if entry_id is None:
        return None

    name = ''
    for key in NAME_KEYS:
        if dto.get(key):
            name = str(dto[key]).strip()
            break

    aliases = tuple(
        str(dto[key]).strip()
        for key in ('codigo', 'simbolo', 'alias')
        if dto.get(key)
    )
    aliases += tuple(str(a) for a in dto.get('aliases') or [])

    return VocabularyEntry(
        id=entry_id,
        name=name,
        aliases=aliases,
        description=str(dto.get('descripcion') or dto.get('description') or ''),
    )


class MasterDataPayload(BaseModel):
    """Shape of the backend master-data fetch."""

    model_config = ConfigDict(extra='ignore')

    categorias: List[Dict[str, Any]] = []
    destinos: List[Dict[str, Any]] = []
    calidades: List[Dict[str, Any]] = []
    combustibles: List[Dict[str, Any]] = []
    monedas: List[Dict[str, Any]] = []
    coberturas: List[Dict[str, Any]] = []
    departamentos: List[Dict[str, Any]] = []
    zonas: List[Dict[str, Any]] = []
    estadosPoliza: List[str] = []
    tiposTramite: List[str] = []
    formasPago: List[str] = []

    @field_validator('estadosPoliza', 'tiposTramite', 'formasPago', mode='before')
    @classmethod
    def coerce_enumeration(cls, v):
        if v is None:
            return []
        return [str(item.get('name', item.get('nombre', ''))) if isinstance(item, dict) else str(item)
                for item in v]

    @field_validator(*PAYLOAD_CATEGORIES.keys(), mode='before')
    @classmethod
    def coerce_table(cls, v):
        return [item for item in (v or []) if isinstance(item, dict)]

    def to_vocabulary(self) -> MasterVocabulary:
        """Convert to the resolver's vocabulary tables."""
        vocabulary = MasterVocabulary()

        for payload_key, category in PAYLOAD_CATEGORIES.items():
            entries = [
                e for e in (_entry_from_dto(dto) for dto in getattr(self, payload_key))
                if e is not None
            ]
            vocabulary.tables[category] = VocabularyTable(category=category, entries=entries)

        # Departments and zones fall back to the built-in list
        for category in ('department', 'zone'):
            if not vocabulary.tables[category].entries:
                vocabulary.add_table(
                    category, [VocabularyEntry(id=name, name=name) for name in DEPARTMENTS]
                )

        vocabulary.enumerations = {
            'estadosPoliza': list(self.estadosPoliza),
            'tiposTramite': list(self.tiposTramite),
            'formasPago': list(self.formasPago),
        }
        return vocabulary


class MasterDataLoader:
    """
    Memoized, coalescing loader for the session vocabulary.

    Usage:
        loader = MasterDataLoader(fetch_master_data)
        vocabulary = await loader.load()
    """

    def __init__(self, fetcher: Callable[[], Awaitable[Dict[str, Any]]]):
        """
        Args:
            fetcher: Coroutine function returning the raw master-data payload
        """
        self.fetcher = fetcher
        self._vocabulary: Optional[MasterVocabulary] = None
        self._inflight: Optional[asyncio.Future] = None
        self.fetch_count = 0

    @property
    def is_loaded(self) -> bool:
        return self._vocabulary is not None

    async def load(self) -> MasterVocabulary:
        """Return the vocabulary, fetching it at most once at a time."""
        if self._vocabulary is not None:
            return self._vocabulary

        if self._inflight is None:
            self._inflight = asyncio.ensure_future(self._fetch())
        task = self._inflight

        try:
            # shield: one cancelled caller must not cancel the shared fetch
            return await asyncio.shield(task)
        finally:
            if task.done() and self._inflight is task:
                self._inflight = None

    def invalidate(self) -> None:
        """Forget the memoized vocabulary."""
        self._vocabulary = None

    async def _fetch(self) -> MasterVocabulary:
        self.fetch_count += 1
        logger.info("Fetching master data from backend")
        try:
            raw = await self.fetcher()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"Master data fetch failed: {e}")
            raise MasterDataUnavailableError(str(e)) from e

        payload = MasterDataPayload.model_validate(raw or {})
        vocabulary = payload.to_vocabulary()
        self._vocabulary = vocabulary

        logger.info(
            f"Loaded master data: "
            + ', '.join(f"{c}={len(t)}" for c, t in vocabulary.tables.items())
        )
        return vocabulary
