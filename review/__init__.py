"""
Human-in-the-Loop Review

Manual overrides an operator makes on the reconciled policy form.
Overridden values win over any later AI-derived value until cleared.
"""

from .override_layer import (
    OverrideLayer,
    coerce_value,
)

__all__ = [
    'OverrideLayer',
    'coerce_value',
]
