"""
Fixed-point formatting for every amount, quantity and rate written to UBL.

Values are rendered with exactly two decimals, '.' as separator, no grouping
and no exponent. Rounding is ROUND_HALF_UP on the decimal value: floats go
through str() first, so 100.005 rounds to 100.01.
"""
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Union

from ubl_converter.utils.error_responses import SerializationError

Numeric = Union[Decimal, int, float, str]


class DecimalFormatter:
    """
    Callable formatter for numeric leaves of the UBL tree.

    Injected into the tree builder so the rounding policy can be tested and
    replaced on its own.
    """

    def __init__(self, places: int = 2, rounding: str = ROUND_HALF_UP):
        if places < 0:
            raise ValueError(f"places must be non-negative, got {places}")
        self.places = places
        self.rounding = rounding
        self._quantum = Decimal(1).scaleb(-places)

    def __call__(self, value: Numeric) -> str:
        return self.format(value)

    def to_decimal(self, value: Numeric) -> Decimal:
        """
        Convert a supported value to Decimal.

        Raises:
            SerializationError: If the value is not numeric or not finite
        """
        if isinstance(value, bool):
            raise SerializationError(f"Boolean is not a numeric value: {value!r}")

        if isinstance(value, Decimal):
            number = value
        elif isinstance(value, int):
            number = Decimal(value)
        elif isinstance(value, float):
            number = Decimal(str(value))
        elif isinstance(value, str):
            try:
                number = Decimal(value.strip())
            except InvalidOperation:
                raise SerializationError(f"Not a numeric value: {value!r}")
        else:
            raise SerializationError(f"Unsupported numeric type: {type(value).__name__}")

        if not number.is_finite():
            raise SerializationError(f"Non-finite value cannot be serialized: {value!r}")

        return number

    def quantize(self, value: Numeric) -> Decimal:
        """Round a value to the configured number of places."""
        number = self.to_decimal(value)
        try:
            return number.quantize(self._quantum, rounding=self.rounding)
        except InvalidOperation:
            raise SerializationError(f"Value exceeds decimal precision: {value!r}")

    def format(self, value: Numeric) -> str:
        """Format a value as fixed-point text."""
        # Fixed-point 'f' formatting never emits exponents or grouping
        return f"{self.quantize(value):f}"


default_formatter = DecimalFormatter()


def format_decimal(value: Numeric) -> str:
    """Format a value with the default two-decimal policy."""
    return default_formatter.format(value)
