"""
Static Synonym Tables

Per-category synonym groups used when neither an exact nor a containment
match is found against the loaded vocabulary. Each group lists the spellings
seen on scanned policies together with the ids/names the backend uses for
the same concept. The first vocabulary entry matching any member of a
matched group wins.

Group order matters: "DIESEL (GAS-OIL)" contains the token "GAS", so the
diesel group is listed before the gasoline one.

The backend names diesel "DISEL". That spelling is part of its contract and
is kept as-is.
"""

from typing import Dict, List, Tuple

SynonymGroup = Tuple[str, ...]


DEFAULT_SYNONYMS: Dict[str, List[SynonymGroup]] = {
    'fuel': [
        ('DIS', 'DISEL', 'DIESEL', 'GASOIL', 'GAS OIL', 'GAS-OIL'),
        ('GAS', 'GASOLINA', 'NAFTA', 'NAFTA SUPER'),
        ('ELE', 'ELECTRICO', 'ELECTRIC', 'ELECTRICA'),
        ('HYB', 'HIB', 'HIBRIDO', 'HYBRID'),
        ('GNC', 'GAS NATURAL'),
    ],
    'destination': [
        ('PARTICULAR', 'PERSONAL', 'PRIVADO', 'USO PARTICULAR'),
        ('COMERCIAL', 'TRABAJO', 'EMPRESA', 'NEGOCIO'),
        ('TAXI', 'REMISE', 'REMIS'),
        ('CARGA', 'TRANSPORTE'),
    ],
    'category': [
        ('PICKUP', 'PICK UP', 'PICK-UP', 'CAMIONETA', 'PICK'),
        ('AUTO', 'AUTOMOVIL', 'SEDAN', 'HATCHBACK', 'COUPE'),
        ('CAMION', 'TRUCK'),
        ('MOTO', 'MOTOCICLETA', 'SCOOTER', 'CICLOMOTOR'),
    ],
    'quality': [
        ('PROPIETARIO', 'DUEÑO', 'TITULAR'),
        ('CONDUCTOR', 'CHOFER', 'MANEJA'),
        ('OTROS', 'TERCEROS', 'FAMILIAR'),
    ],
    'currency': [
        ('PES', 'UYU', 'PESO', 'PESOS', 'PESO URUGUAYO', '$U'),
        ('DOL', 'USD', 'DOLAR', 'DOLARES', 'DOLLAR', 'US$', 'U$S', '$'),
        ('EU', 'EUR', 'EURO', 'EUROS', '€'),
        ('BRL', 'REAL', 'REALES', 'R$'),
    ],
    'department': [
        ('MONTEVIDEO', 'MVD', 'MDEO'),
        ('MALDONADO', 'PUNTA DEL ESTE'),
    ],
}
