"""
Barcode validator.

Pure checksum validation for EAN-13, EAN-8 and UPC-A, UPC-E to UPC-A
expansion, and normalization of every accepted code to EAN-13.
"""

import re
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from productscan.domain.shared.errors import InvalidBarcodeError
from productscan.domain.shared.value_objects import NormalizedBarcode, Symbology

_NON_DIGITS = re.compile(r"[^0-9]")

_SYMBOLOGY_BY_LENGTH = {
    8: Symbology.EAN_8,
    12: Symbology.UPC_A,
    13: Symbology.EAN_13,
}


class BarcodeValidationResult(BaseModel):
    """Non-raising outcome of a validation.

    Example:
        >>> result = BarcodeValidator.inspect("4006381333931")
        >>> assert result.is_valid
        >>> assert result.barcode.value == "4006381333931"
    """

    model_config = ConfigDict(frozen=True)

    is_valid: bool = Field(..., description="True if the barcode is usable")
    barcode: Optional[NormalizedBarcode] = Field(None, description="Normalized barcode")
    reason: Optional[str] = Field(None, description="Why validation failed")


class BarcodeValidator:
    """Barcode checksum rules and normalization."""

    @staticmethod
    def clean(raw: str) -> str:
        """Strip everything that is not an ASCII digit."""
        return _NON_DIGITS.sub("", raw or "")

    @staticmethod
    def validate(raw: str, symbology: Optional[Symbology] = None) -> NormalizedBarcode:
        """Validate and normalize a scanned or typed barcode.

        Args:
            raw: Barcode as read (may contain spaces or dashes)
            symbology: Symbology reported by the scanner, if known.
                Only UPC_E changes the interpretation: the 8 digits are
                expanded to UPC-A before validation.

        Returns:
            NormalizedBarcode in EAN-13 form

        Raises:
            InvalidBarcodeError: If length or checksum is wrong

        Example:
            >>> barcode = BarcodeValidator.validate("400-6381-333931")
            >>> assert barcode.value == "4006381333931"
            >>> assert barcode.symbology == Symbology.EAN_13
        """
        digits = BarcodeValidator.clean(raw)
        if not digits:
            raise InvalidBarcodeError("Barcode cannot be empty", raw=raw or "")

        if symbology == Symbology.UPC_E:
            upc_a = BarcodeValidator.expand_upce(digits)
            if upc_a is None:
                raise InvalidBarcodeError(
                    f"UPC-E barcode must have 8 digits, got {len(digits)}", raw=raw
                )
            if not BarcodeValidator.is_valid_upca(upc_a):
                raise InvalidBarcodeError(f"Checksum mismatch for UPC-E {digits}", raw=raw)
            return NormalizedBarcode(
                value=BarcodeValidator.normalize_to_ean13(upc_a),
                symbology=Symbology.UPC_E,
                raw=upc_a,
            )

        detected = _SYMBOLOGY_BY_LENGTH.get(len(digits))
        if detected is None:
            raise InvalidBarcodeError(
                f"Barcode must have 8, 12 or 13 digits, got {len(digits)}", raw=raw
            )

        if not BarcodeValidator.has_valid_checksum(digits):
            raise InvalidBarcodeError(f"Checksum mismatch for {digits}", raw=raw)

        return NormalizedBarcode(
            value=BarcodeValidator.normalize_to_ean13(digits),
            symbology=detected,
            raw=digits,
        )

    @staticmethod
    def inspect(raw: str, symbology: Optional[Symbology] = None) -> BarcodeValidationResult:
        """Validate without raising.

        Returns:
            BarcodeValidationResult with either a barcode or a reason
        """
        try:
            barcode = BarcodeValidator.validate(raw, symbology)
        except InvalidBarcodeError as e:
            return BarcodeValidationResult(is_valid=False, reason=str(e))
        return BarcodeValidationResult(is_valid=True, barcode=barcode)

    @staticmethod
    def is_valid(raw: str) -> bool:
        """Check length and checksum of a raw barcode."""
        return BarcodeValidator.has_valid_checksum(BarcodeValidator.clean(raw))

    @staticmethod
    def has_valid_checksum(digits: str) -> bool:
        """Dispatch on length: 8 → EAN-8, 12 → UPC-A, 13 → EAN-13."""
        if len(digits) == 8:
            return BarcodeValidator.is_valid_ean8(digits)
        if len(digits) == 12:
            return BarcodeValidator.is_valid_upca(digits)
        if len(digits) == 13:
            return BarcodeValidator.is_valid_ean13(digits)
        return False

    @staticmethod
    def is_valid_ean13(barcode: str) -> bool:
        """EAN-13: weights 1,3,1,3... from the left, check digit included.

        Example:
            >>> assert BarcodeValidator.is_valid_ean13("4006381333931")
            >>> assert not BarcodeValidator.is_valid_ean13("4006381333932")
        """
        if len(barcode) != 13 or not barcode.isascii() or not barcode.isdigit():
            return False
        total = sum(int(d) * (1 if i % 2 == 0 else 3) for i, d in enumerate(barcode))
        return total % 10 == 0

    @staticmethod
    def is_valid_ean8(barcode: str) -> bool:
        """EAN-8: weights 3,1,3,1... from the left, check digit included.

        Example:
            >>> assert BarcodeValidator.is_valid_ean8("96385074")
        """
        if len(barcode) != 8 or not barcode.isascii() or not barcode.isdigit():
            return False
        total = sum(int(d) * (3 if i % 2 == 0 else 1) for i, d in enumerate(barcode))
        return total % 10 == 0

    @staticmethod
    def is_valid_upca(barcode: str) -> bool:
        """UPC-A is an EAN-13 with a leading zero."""
        if len(barcode) != 12:
            return False
        return BarcodeValidator.is_valid_ean13("0" + barcode)

    @staticmethod
    def normalize_to_ean13(code: str) -> str:
        """Pad 8- and 12-digit codes to EAN-13.

        Any other length is returned unchanged; callers validate first.

        Example:
            >>> BarcodeValidator.normalize_to_ean13("96385074")
            '0000096385074'
            >>> BarcodeValidator.normalize_to_ean13("036000291452")
            '0036000291452'
        """
        if len(code) == 8:
            return "00000" + code
        if len(code) == 12:
            return "0" + code
        return code

    @staticmethod
    def expand_upce(upce: str) -> Optional[str]:
        """Expand an 8-digit UPC-E to its 12-digit UPC-A.

        Layout: number system, six data digits d1..d6, check digit.
        d6 selects where the zeros go.

        Args:
            upce: 8-digit UPC-E code

        Returns:
            12-digit UPC-A, or None if the input is not 8 digits

        Example:
            >>> BarcodeValidator.expand_upce("01234565")
            '012345000065'
        """
        if len(upce) != 8 or not upce.isascii() or not upce.isdigit():
            return None

        number_system = upce[0]
        d = upce[1:7]
        check_digit = upce[7]
        selector = int(d[5])

        if selector <= 2:
            manufacturer = d[0:2] + d[5] + "00"
            product = "00" + d[2:5]
        elif selector == 3:
            manufacturer = d[0:3] + "00"
            product = "000" + d[3:5]
        elif selector == 4:
            manufacturer = d[0:4] + "0"
            product = "0000" + d[4]
        else:
            manufacturer = d[0:5]
            product = "0000" + d[5]

        return number_system + manufacturer + product + check_digit
