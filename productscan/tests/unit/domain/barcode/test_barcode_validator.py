"""Unit tests for barcode validation and normalization."""

import pytest

from productscan.domain.barcode.validator import BarcodeValidator
from productscan.domain.shared.errors import InvalidBarcodeError
from productscan.domain.shared.value_objects import Symbology


class TestChecksums:
    """Test checksum rules per symbology."""

    def test_valid_ean13(self) -> None:
        """Test known-good EAN-13 codes."""
        assert BarcodeValidator.is_valid_ean13("4006381333931")
        assert BarcodeValidator.is_valid_ean13("3017620422003")

    def test_invalid_ean13_check_digit(self) -> None:
        """Test EAN-13 with a wrong check digit."""
        assert not BarcodeValidator.is_valid_ean13("4006381333932")

    def test_ean13_rejects_non_digits(self) -> None:
        """Test EAN-13 with letters or wrong length."""
        assert not BarcodeValidator.is_valid_ean13("400638133393A")
        assert not BarcodeValidator.is_valid_ean13("400638133393")

    def test_ean8(self) -> None:
        """Test EAN-8 checksum."""
        assert BarcodeValidator.is_valid_ean8("96385074")
        assert not BarcodeValidator.is_valid_ean8("96385075")

    def test_upca(self) -> None:
        """Test UPC-A checksum."""
        assert BarcodeValidator.is_valid_upca("036000291452")
        assert not BarcodeValidator.is_valid_upca("036000291453")

    def test_has_valid_checksum_dispatches_on_length(self) -> None:
        """Test dispatch by digit count; other lengths are invalid."""
        assert BarcodeValidator.has_valid_checksum("96385074")
        assert BarcodeValidator.has_valid_checksum("036000291452")
        assert BarcodeValidator.has_valid_checksum("4006381333931")
        assert not BarcodeValidator.has_valid_checksum("1234567")

    def test_parametrized_cases(self, barcode_validation_case: tuple) -> None:
        """Test is_valid over the shared validation cases."""
        value, expected = barcode_validation_case
        assert BarcodeValidator.is_valid(value) is expected


class TestNormalization:
    """Test normalization to EAN-13."""

    def test_ean8_padded(self) -> None:
        """Test EAN-8 gets five leading zeros."""
        assert BarcodeValidator.normalize_to_ean13("96385074") == "0000096385074"

    def test_upca_padded(self) -> None:
        """Test UPC-A gets one leading zero."""
        assert BarcodeValidator.normalize_to_ean13("036000291452") == "0036000291452"

    def test_ean13_unchanged(self) -> None:
        assert BarcodeValidator.normalize_to_ean13("4006381333931") == "4006381333931"

    def test_normalization_preserves_validity(self) -> None:
        """Test normalized form still passes the EAN-13 checksum."""
        for code in ("96385074", "036000291452", "4006381333931"):
            assert BarcodeValidator.is_valid_ean13(BarcodeValidator.normalize_to_ean13(code))


class TestUpcExpansion:
    """Test UPC-E to UPC-A expansion."""

    @pytest.mark.parametrize(
        "upce, upca",
        [
            ("01234505", "012000003455"),  # d6 = 0
            ("01234515", "012100003455"),  # d6 = 1
            ("01234535", "012300000455"),  # d6 = 3
            ("01234545", "012340000055"),  # d6 = 4
            ("01234565", "012345000065"),  # d6 = 5..9
        ],
    )
    def test_expand(self, upce: str, upca: str) -> None:
        """Test every selector branch."""
        assert BarcodeValidator.expand_upce(upce) == upca

    def test_expand_rejects_wrong_length(self) -> None:
        assert BarcodeValidator.expand_upce("0123456") is None
        assert BarcodeValidator.expand_upce("012345678") is None


class TestValidate:
    """Test validate() end to end."""

    def test_ean13(self) -> None:
        """Test a valid EAN-13 is returned as-is."""
        barcode = BarcodeValidator.validate("4006381333931")

        assert barcode.value == "4006381333931"
        assert barcode.symbology == Symbology.EAN_13
        assert barcode.raw == "4006381333931"

    def test_strips_separators(self) -> None:
        """Test spaces and dashes are ignored."""
        barcode = BarcodeValidator.validate(" 400-6381 333931 ")
        assert barcode.value == "4006381333931"

    def test_ean8_normalized(self) -> None:
        barcode = BarcodeValidator.validate("96385074")

        assert barcode.value == "0000096385074"
        assert barcode.symbology == Symbology.EAN_8

    def test_upca_normalized(self) -> None:
        barcode = BarcodeValidator.validate("036000291452")

        assert barcode.value == "0036000291452"
        assert barcode.symbology == Symbology.UPC_A

    def test_upce_hint_expands(self) -> None:
        """Test a UPC-E hint expands before checksum validation."""
        barcode = BarcodeValidator.validate("01234505", Symbology.UPC_E)

        assert barcode.value == "0012000003455"
        assert barcode.symbology == Symbology.UPC_E
        assert barcode.raw == "012000003455"

    def test_upce_hint_requires_eight_digits(self) -> None:
        with pytest.raises(InvalidBarcodeError, match="8 digits"):
            BarcodeValidator.validate("036000291452", Symbology.UPC_E)

    def test_upce_bad_check_digit(self) -> None:
        with pytest.raises(InvalidBarcodeError, match="Checksum"):
            BarcodeValidator.validate("01234506", Symbology.UPC_E)

    def test_other_hints_use_length(self) -> None:
        """Test non-UPC-E hints do not change interpretation."""
        barcode = BarcodeValidator.validate("96385074", Symbology.EAN_13)
        assert barcode.symbology == Symbology.EAN_8

    def test_empty(self) -> None:
        """Test input with no digits."""
        with pytest.raises(InvalidBarcodeError, match="empty") as exc_info:
            BarcodeValidator.validate("abc")

        assert exc_info.value.raw == "abc"

    def test_wrong_length(self) -> None:
        with pytest.raises(InvalidBarcodeError, match="got 5"):
            BarcodeValidator.validate("12345")

    def test_bad_checksum(self) -> None:
        with pytest.raises(InvalidBarcodeError, match="Checksum mismatch"):
            BarcodeValidator.validate("4006381333932")

    def test_deterministic(self) -> None:
        """Test the same input always yields the same barcode."""
        assert BarcodeValidator.validate("3017620422003") == BarcodeValidator.validate(
            "3017620422003"
        )


class TestInspect:
    """Test the non-raising variant."""

    def test_valid(self) -> None:
        result = BarcodeValidator.inspect("3017620422003")

        assert result.is_valid
        assert result.barcode is not None
        assert result.reason is None

    def test_invalid(self) -> None:
        result = BarcodeValidator.inspect("4006381333932")

        assert not result.is_valid
        assert result.barcode is None
        assert "Checksum mismatch" in (result.reason or "")
