"""
Backend Defaults

Immutable default values used when the backend vocabulary or the extracted
document has nothing better to offer. Every vocabulary category has a default
id so resolution never fails.
"""

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping

logger = logging.getLogger(__name__)


# Built-in department vocabulary (Uruguay)
DEPARTMENTS = (
    'MONTEVIDEO',
    'ARTIGAS',
    'CANELONES',
    'CERRO LARGO',
    'COLONIA',
    'DURAZNO',
    'FLORES',
    'FLORIDA',
    'LAVALLEJA',
    'MALDONADO',
    'PAYSANDÚ',
    'RÍO NEGRO',
    'RIVERA',
    'ROCHA',
    'SALTO',
    'SAN JOSÉ',
    'SORIANO',
    'TACUAREMBÓ',
    'TREINTA Y TRES',
)


@dataclass(frozen=True)
class VelneoDefaults:
    """
    Default ids and values expected by the Velneo backend.

    Injected into the resolver, the reconciler and the payload builder.
    Use ``with_overrides`` to derive a variant for tests or other
    deployments instead of mutating shared state.
    """
    # Context
    company_id: int = 2           # BSE
    section_id: int = 9           # AUTOMOVILES
    ramo: str = 'AUTOMOVILES'

    # Vocabulary defaults, keyed by category
    category_ids: Mapping[str, Any] = field(default_factory=lambda: {
        'fuel': 'GAS',
        'destination': 2,
        'quality': 2,
        'category': 0,
        'currency': 1,
        'department': 'MONTEVIDEO',
        'coverage': 0,
        'zone': 'MONTEVIDEO',
    })

    # Free-text defaults
    estado_tramite: str = 'En proceso'
    tramite: str = 'Nuevo'
    estado_poliza: str = 'VIG'
    tipo: str = 'Líneas personales'
    forma_pago: str = 'Contado'
    endoso: str = '0'
    cuotas: int = 1

    def default_id(self, category: str) -> Any:
        """Default id for a vocabulary category."""
        try:
            return self.category_ids[category]
        except KeyError:
            raise ValueError(f"No default configured for vocabulary category '{category}'")

    def text_defaults(self) -> Dict[str, Any]:
        """Defaults for free-text schema fields, keyed by canonical field name."""
        return {
            'estadoTramite': self.estado_tramite,
            'tramite': self.tramite,
            'estadoPoliza': self.estado_poliza,
            'tipo': self.tipo,
            'formaPago': self.forma_pago,
            'endoso': self.endoso,
            'cuotas': self.cuotas,
        }

    def with_overrides(self, overrides: Mapping[str, Any]) -> 'VelneoDefaults':
        """Return a copy with some values replaced."""
        known = {f.name for f in dataclasses.fields(self)}
        changes = {}
        for key, value in overrides.items():
            if key not in known:
                logger.warning(f"Ignoring unknown default '{key}'")
                continue
            if key == 'category_ids':
                merged = dict(self.category_ids)
                merged.update(value or {})
                value = merged
            changes[key] = value
        return dataclasses.replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        data = dataclasses.asdict(self)
        data['category_ids'] = dict(self.category_ids)
        return data
