"""
Target Schema

The canonical policy fields expected by the backend, grouped by the form tab
they are edited on. Field names are the form's own keys (numeroPoliza,
vigenciaDesde, ...), kept verbatim because they are shared with the UI.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto
from typing import Any, Dict, List, Optional


class ValueKind(Enum):
    """Shape of a field value."""
    TEXT = auto()
    NUMBER = auto()
    DATE = auto()
    MASTER_REF = auto()   # id into a vocabulary category


# Form tabs, in display order
TABS = (
    'datos_basicos',
    'datos_poliza',
    'datos_vehiculo',
    'datos_cobertura',
    'condiciones_pago',
    'observaciones',
)


@dataclass(frozen=True)
class TargetField:
    """Definition of one canonical field."""
    name: str
    kind: ValueKind
    tab: str
    label: str
    required: bool = False
    category: Optional[str] = None   # vocabulary category for MASTER_REF fields

    @property
    def empty_value(self) -> Any:
        """Schema-appropriate empty value."""
        if self.kind == ValueKind.NUMBER:
            return 0
        if self.kind == ValueKind.MASTER_REF:
            return None
        return ''


POLICY_FIELDS = (
    # Datos básicos
    TargetField('corredor', ValueKind.TEXT, 'datos_basicos', 'Corredor'),
    TargetField('asegurado', ValueKind.TEXT, 'datos_basicos', 'Asegurado', required=True),
    TargetField('documento', ValueKind.TEXT, 'datos_basicos', 'Documento'),
    TargetField('email', ValueKind.TEXT, 'datos_basicos', 'Email'),
    TargetField('telefono', ValueKind.TEXT, 'datos_basicos', 'Teléfono'),
    TargetField('direccion', ValueKind.TEXT, 'datos_basicos', 'Dirección'),
    TargetField('estadoTramite', ValueKind.TEXT, 'datos_basicos', 'Estado del trámite'),
    TargetField('tramite', ValueKind.TEXT, 'datos_basicos', 'Trámite'),
    TargetField('estadoPoliza', ValueKind.TEXT, 'datos_basicos', 'Estado de la póliza'),
    TargetField('tipo', ValueKind.TEXT, 'datos_basicos', 'Tipo'),

    # Datos de la póliza
    TargetField('numeroPoliza', ValueKind.TEXT, 'datos_poliza', 'Número de póliza', required=True),
    TargetField('endoso', ValueKind.TEXT, 'datos_poliza', 'Endoso'),
    TargetField('vigenciaDesde', ValueKind.DATE, 'datos_poliza', 'Vigencia desde', required=True),
    TargetField('vigenciaHasta', ValueKind.DATE, 'datos_poliza', 'Vigencia hasta', required=True),

    # Datos del vehículo
    TargetField('marca', ValueKind.TEXT, 'datos_vehiculo', 'Marca'),
    TargetField('modelo', ValueKind.TEXT, 'datos_vehiculo', 'Modelo'),
    TargetField('anio', ValueKind.NUMBER, 'datos_vehiculo', 'Año'),
    TargetField('matricula', ValueKind.TEXT, 'datos_vehiculo', 'Matrícula'),
    TargetField('motor', ValueKind.TEXT, 'datos_vehiculo', 'Motor'),
    TargetField('chasis', ValueKind.TEXT, 'datos_vehiculo', 'Chasis'),
    TargetField('combustible', ValueKind.MASTER_REF, 'datos_vehiculo', 'Combustible', category='fuel'),
    TargetField('destino', ValueKind.MASTER_REF, 'datos_vehiculo', 'Destino', category='destination'),
    TargetField('calidad', ValueKind.MASTER_REF, 'datos_vehiculo', 'Calidad', category='quality'),
    TargetField('categoria', ValueKind.MASTER_REF, 'datos_vehiculo', 'Categoría', category='category'),

    # Datos de cobertura
    TargetField('cobertura', ValueKind.MASTER_REF, 'datos_cobertura', 'Cobertura',
                required=True, category='coverage'),
    TargetField('departamento', ValueKind.MASTER_REF, 'datos_cobertura', 'Zona de circulación',
                category='department'),
    TargetField('moneda', ValueKind.MASTER_REF, 'datos_cobertura', 'Moneda', category='currency'),

    # Condiciones de pago
    TargetField('prima', ValueKind.NUMBER, 'condiciones_pago', 'Premio', required=True),
    TargetField('primaComercial', ValueKind.NUMBER, 'condiciones_pago', 'Prima comercial'),
    TargetField('premioTotal', ValueKind.NUMBER, 'condiciones_pago', 'Total'),
    TargetField('formaPago', ValueKind.TEXT, 'condiciones_pago', 'Forma de pago'),
    TargetField('cuotas', ValueKind.NUMBER, 'condiciones_pago', 'Cuotas'),
    TargetField('valorCuota', ValueKind.NUMBER, 'condiciones_pago', 'Valor de cuota'),

    # Observaciones
    TargetField('observaciones', ValueKind.TEXT, 'observaciones', 'Observaciones'),
)

POLICY_SCHEMA: Dict[str, TargetField] = {f.name: f for f in POLICY_FIELDS}


def get_field(name: str) -> TargetField:
    """Look up a field definition; unknown names are a programming error."""
    try:
        return POLICY_SCHEMA[name]
    except KeyError:
        raise KeyError(f"Unknown policy field '{name}'")


def fields_for_tab(tab: str) -> List[TargetField]:
    return [f for f in POLICY_FIELDS if f.tab == tab]


def required_fields() -> List[TargetField]:
    return [f for f in POLICY_FIELDS if f.required]
