"""
Permission bit evaluation and registry.

Property-based checks run over the whole mask and bit domain with Hypothesis.
"""

import pytest
from hypothesis import given, settings, strategies as st

from rest_api.services.permissions import (
    FULL_MASK,
    PermissionBit,
    bit_by_name,
    bits_from_mask,
    describe_bits,
    describe_mask,
    has_bit,
    is_admin_mask,
    mask_from_bits,
    validate_bit,
    validate_mask,
)
from shared.utils.exceptions import InvalidBitError, InvalidMaskError, ValidationError

masks = st.integers(min_value=0, max_value=255)
bits = st.integers(min_value=0, max_value=7)


class TestHasBitProperties:
    @given(mask=masks, bit=bits)
    @settings(max_examples=500)
    def test_has_bit_matches_shift(self, mask, bit):
        """Property: has_bit(mask, bit) == ((mask >> bit) & 1 == 1)."""
        assert has_bit(mask, bit) == ((mask >> bit) & 1 == 1)

    @given(mask=masks)
    def test_bits_from_mask_rebuilds_mask(self, mask):
        assert mask_from_bits(bits_from_mask(mask)) == mask

    @given(mask=masks)
    def test_admin_mask_iff_administrar_bit(self, mask):
        assert is_admin_mask(mask) == bool(mask & 128)


class TestValidation:
    @pytest.mark.parametrize("mask", [-1, 256, 1000])
    def test_mask_out_of_range(self, mask):
        with pytest.raises(InvalidMaskError):
            validate_mask(mask)

    @pytest.mark.parametrize("bit", [-1, 8, 42])
    def test_bit_out_of_range(self, bit):
        with pytest.raises(InvalidBitError):
            has_bit(0, bit)

    @pytest.mark.parametrize("value", [True, "8", 3.0, None])
    def test_non_integer_rejected(self, value):
        with pytest.raises(ValidationError):
            validate_mask(value)
        with pytest.raises(ValidationError):
            validate_bit(value)

    def test_invalid_mask_is_validation_kind(self):
        with pytest.raises(InvalidMaskError) as exc_info:
            has_bit(300, 1)
        assert exc_info.value.status_code == 422
        assert exc_info.value.kind.value == "VALIDATION"


class TestRegistry:
    def test_bit_table(self):
        expected = {
            "Crear": (0, 1),
            "Editar": (1, 2),
            "Eliminar": (2, 4),
            "Ver": (3, 8),
            "Derivar": (4, 16),
            "Auditar": (5, 32),
            "Exportar": (6, 64),
            "Administrar": (7, 128),
        }
        rows = {row["name"]: (row["bit"], row["value"]) for row in describe_bits()}
        assert rows == expected

    def test_full_mask(self):
        assert FULL_MASK == 255
        assert bits_from_mask(FULL_MASK) == list(PermissionBit)

    def test_bit_by_name_case_insensitive(self):
        assert bit_by_name("derivar") is PermissionBit.DERIVAR
        with pytest.raises(KeyError):
            bit_by_name("borrar")

    def test_every_bit_has_description(self):
        assert all(row["description"] for row in describe_bits())

    def test_describe_mask(self):
        rows = describe_mask(91)
        assert [row["name"] for row in rows] == ["Crear", "Editar", "Ver", "Derivar", "Exportar"]
        assert sum(row["value"] for row in rows) == 91
        assert describe_mask(0) == []
