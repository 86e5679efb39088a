"""
Backend Payload Builder

Renames the canonical draft into the flat record the policy backend
expects. Backend keys are abbreviations of its own columns (conpol =
policy number, confchdes = coverage start, ...), so this is the single
place where canonical names meet backend names.

Master-data ids are sent exactly as the vocabulary holds them. The
backend's fuel table spells diesel "DISEL"; its id is passed through
untouched.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, List, Optional

from mapping import to_payment_method
from schema import DraftPolicyRecord
from validation import ValidationConfig
from vocabulary import VelneoDefaults
from wizard import OperationType

from .operations import map_process_state, operation_outcome

logger = logging.getLogger(__name__)


# Backend key -> canonical field, for plain copies
DIRECT_FIELDS = {
    'corrnom': 'corredor',
    'condom': 'direccion',
    'conpol': 'numeroPoliza',
    'confchdes': 'vigenciaDesde',
    'confchhas': 'vigenciaHasta',
    'conpremio': 'prima',
    'contot': 'premioTotal',
    'conmataut': 'matricula',
    'conmotor': 'motor',
    'conchasis': 'chasis',
    'moncod': 'moneda',
    'desdsc': 'destino',
    'combustibles': 'combustible',
    'caldsc': 'calidad',
    'catdsc': 'categoria',
    'tarcod': 'cobertura',
    'dptnom': 'departamento',
}

PAYLOAD_KEYS = (
    'comcod', 'seccod', 'clinro', 'clinom', 'condom', 'corrnom', 'contra',
    'convig', 'conpol', 'conend', 'confchdes', 'confchhas', 'conpremio',
    'contot', 'concuo', 'moncod', 'consta', 'congeses', 'congesfi',
    'conmaraut', 'conanioaut', 'conmataut', 'conmotor', 'conchasis',
    'desdsc', 'combustibles', 'caldsc', 'catdsc', 'tarcod', 'dptnom',
    'ramo', 'com_alias', 'observaciones', 'procesadoConIA',
)


@dataclass
class SubmissionContext:
    """Facts about the session that are not part of the draft."""
    processed_with_ai: bool = False
    file_name: str = ''
    completeness: Optional[float] = None
    operation: Optional[OperationType] = None
    company_alias: str = ''
    today: Optional[date] = None


class VelneoPayloadBuilder:
    """
    Builds the backend submission record from a validated draft.

    Usage:
        builder = VelneoPayloadBuilder()
        payload = builder.build(draft, SubmissionContext(
            processed_with_ai=True,
            file_name='poliza.pdf',
            completeness=87,
            operation=OperationType.EMISION,
        ))
    """

    def __init__(
        self,
        defaults: Optional[VelneoDefaults] = None,
        observations_max_length: Optional[int] = None,
    ):
        self.defaults = defaults or VelneoDefaults()
        if observations_max_length is None:
            observations_max_length = ValidationConfig().max_lengths['observaciones']
        self.observations_max_length = observations_max_length

    def build(self, draft: DraftPolicyRecord, context: Optional[SubmissionContext] = None) -> Dict[str, Any]:
        context = context or SubmissionContext()
        today = context.today or date.today()
        operation = context.operation or OperationType.parse(draft.operation_type)

        payload: Dict[str, Any] = {
            key: draft.get(name) for key, name in DIRECT_FIELDS.items()
        }

        if operation is not None:
            tramite, estado = operation_outcome(operation, draft.get('vigenciaHasta'), today)
        else:
            tramite = draft.get('tramite') or self.defaults.tramite
            estado = draft.get('estadoPoliza') or self.defaults.estado_poliza

        cuotas = int(draft.get('cuotas') or self.defaults.cuotas)

        payload.update({
            'comcod': draft.company_id or self.defaults.company_id,
            'seccod': draft.section_id or self.defaults.section_id,
            'clinro': draft.client_id or 0,
            'clinom': draft.client_name or draft.get('asegurado'),
            'contra': tramite,
            'convig': estado,
            'conend': draft.get('endoso') or self.defaults.endoso,
            'concuo': cuotas,
            'consta': to_payment_method(draft.get('formaPago')) or self.defaults.forma_pago,
            'congeses': map_process_state(draft.get('estadoTramite'), self.defaults.estado_tramite),
            'congesfi': today.isoformat(),
            'conmaraut': self._vehicle(draft),
            'conanioaut': int(draft.get('anio') or 0),
            'ramo': self.defaults.ramo,
            'com_alias': context.company_alias or draft.company_name or 'BSE',
            'observaciones': self.observations(draft, context, cuotas),
            'procesadoConIA': bool(context.processed_with_ai),
        })

        logger.info(f"Built submission payload for policy {payload['conpol']}")
        return {key: payload[key] for key in PAYLOAD_KEYS}

    def observations(self, draft: DraftPolicyRecord, context: SubmissionContext, cuotas: int) -> str:
        """Operator notes followed by the processing summary lines."""
        lines: List[str] = []
        notes = str(draft.get('observaciones') or '').strip()
        if notes:
            lines.append(notes)

        if context.file_name:
            lines.append(f"Archivo: {context.file_name}")
        if context.completeness is not None:
            lines.append(f"Completitud: {int(round(context.completeness))}%")

        if cuotas > 1:
            moneda = draft['moneda']
            currency = moneda.label or str(moneda.value or '')
            valor = float(draft.get('valorCuota') or 0)
            lines.append(f"Cuotas: {cuotas} de {currency} {valor:.2f}".replace('  ', ' '))

        text = '\n'.join(lines)
        if len(text) > self.observations_max_length:
            logger.debug("Observations truncated")
            text = text[:self.observations_max_length]
        return text

    @staticmethod
    def _vehicle(draft: DraftPolicyRecord) -> str:
        parts = [str(draft.get('marca') or '').strip(), str(draft.get('modelo') or '').strip()]
        return ' '.join(p for p in parts if p)
