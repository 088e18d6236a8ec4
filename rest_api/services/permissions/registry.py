"""
Permission bit registry.

The eight coarse actions of the permission mask. Bit positions and decimal
values are part of the external contract and never change.
"""

from enum import IntEnum
from typing import Final


class PermissionBit(IntEnum):
    """Bit index of each action in the 8-bit permission mask."""

    CREAR = 0
    EDITAR = 1
    ELIMINAR = 2
    VER = 3
    DERIVAR = 4
    AUDITAR = 5
    EXPORTAR = 6
    ADMINISTRAR = 7

    @property
    def value_mask(self) -> int:
        """Decimal value of the bit (1, 2, 4, ... 128)."""
        return 1 << self.value

    @property
    def label(self) -> str:
        """Display name (Crear, Editar, ...)."""
        return self.name.capitalize()

    @property
    def description(self) -> str:
        return BIT_DESCRIPTIONS[self]


BIT_DESCRIPTIONS: Final[dict[PermissionBit, str]] = {
    PermissionBit.CREAR: "Crear documentos y registros",
    PermissionBit.EDITAR: "Editar documentos y cambiar su estado",
    PermissionBit.ELIMINAR: "Eliminar documentos (papelera)",
    PermissionBit.VER: "Ver documentos y su trazabilidad",
    PermissionBit.DERIVAR: "Derivar documentos a otras áreas",
    PermissionBit.AUDITAR: "Consultar registros de auditoría",
    PermissionBit.EXPORTAR: "Exportar información",
    PermissionBit.ADMINISTRAR: "Administración total del sistema",
}

FULL_MASK: Final[int] = 255

# Actions that target one specific resource and fall back to ownership
RESOURCE_SCOPED_BITS: Final[frozenset[PermissionBit]] = frozenset({
    PermissionBit.EDITAR,
    PermissionBit.ELIMINAR,
    PermissionBit.DERIVAR,
})


def all_bits() -> list[PermissionBit]:
    """All bits ordered by index."""
    return sorted(PermissionBit)


def bit_by_name(name: str) -> PermissionBit:
    """
    Look up a bit by its action name, case-insensitively (``"derivar"``).

    Raises KeyError for unknown names.
    """
    return PermissionBit[name.strip().upper()]


def bit_row(bit: PermissionBit) -> dict:
    return {
        "bit": bit.value,
        "name": bit.label,
        "value": bit.value_mask,
        "description": bit.description,
    }


def describe_bits() -> list[dict]:
    """Registry as plain rows: bit, name, value, description."""
    return [bit_row(bit) for bit in all_bits()]
