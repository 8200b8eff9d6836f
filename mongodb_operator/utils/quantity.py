"""
Kubernetes resource quantity utilities.

Parses quantity strings such as "10Gi", "500m" or "1e3" and renders them in
the canonical form the API server stores, so that a synthesized object
compares equal to the stored one after a round trip.
"""
import re
from decimal import Decimal, ROUND_CEILING
from typing import Tuple

from mongodb_operator.exceptions import ValidationError

BINARY_SUFFIXES = {"Ki": 1, "Mi": 2, "Gi": 3, "Ti": 4, "Pi": 5, "Ei": 6}
DECIMAL_SUFFIXES = {"m": -3, "": 0, "k": 3, "M": 6, "G": 9, "T": 12, "P": 15, "E": 18}

_QUANTITY_RE = re.compile(
    r"^(?P<number>[+-]?(?:\d+(?:\.\d*)?|\.\d+))"
    r"(?P<suffix>Ki|Mi|Gi|Ti|Pi|Ei|[eE][+-]?\d+|m|k|M|G|T|P|E)?$"
)


def _parse(quantity: str) -> Tuple[Decimal, str]:
    """Return (value, format) where format is 'binary', 'decimal' or 'exponent'."""
    if not isinstance(quantity, str):
        raise ValidationError(f"Quantity must be a string, got {type(quantity).__name__}")

    match = _QUANTITY_RE.match(quantity.strip())
    if not match:
        raise ValidationError(
            f"Invalid quantity: '{quantity}'",
            details={"quantity": quantity},
        )

    number = Decimal(match.group("number"))
    suffix = match.group("suffix") or ""

    if suffix in BINARY_SUFFIXES:
        return number * (Decimal(1024) ** BINARY_SUFFIXES[suffix]), "binary"
    if suffix in DECIMAL_SUFFIXES:
        return number.scaleb(DECIMAL_SUFFIXES[suffix]), "decimal"
    # Exponent form ("1e3", "2E-2")
    return number.scaleb(int(suffix[1:])), "exponent"


def parse_quantity(quantity: str) -> Decimal:
    """
    Parse a Kubernetes quantity into its numeric value.

    Examples:
        parse_quantity("1Gi") -> Decimal(1073741824)
        parse_quantity("500m") -> Decimal("0.500")
        parse_quantity("1e3") -> Decimal(1000)

    Raises:
        ValidationError: If the string is not a valid quantity
    """
    value, _ = _parse(quantity)
    return value


def _is_integral(value: Decimal) -> bool:
    return value == value.to_integral_value()


def canonical_quantity(quantity: str) -> str:
    """
    Render a quantity the way the API server serializes it.

    Binary quantities keep the largest binary suffix that leaves an integer
    mantissa ("1024Mi" -> "1Gi"); values below 1Ki or with a fractional byte
    count fall back to decimal notation. Decimal quantities are rounded up to
    milli precision and use the largest SI suffix with an integer mantissa.

    Raises:
        ValidationError: If the string is not a valid quantity
    """
    value, fmt = _parse(quantity)

    if value == 0:
        return "0"

    if fmt == "binary" and -1024 < value < 1024:
        fmt = "decimal"

    if fmt == "binary":
        if _is_integral(value):
            for exponent in range(6, -1, -1):
                base = Decimal(1024) ** exponent
                if _is_integral(value / base):
                    suffix = next(
                        (s for s, e in BINARY_SUFFIXES.items() if e == exponent), ""
                    )
                    return f"{int(value / base)}{suffix}"
        fmt = "decimal"

    # Kubernetes stores at most milli precision and rounds up
    value = (value * 1000).to_integral_value(rounding=ROUND_CEILING) / 1000

    for exponent in range(18, -6, -3):
        scaled = value.scaleb(-exponent)
        if _is_integral(scaled):
            mantissa = int(scaled)
            if fmt == "exponent":
                suffix = f"e{exponent}" if exponent else ""
            else:
                suffix = next(s for s, e in DECIMAL_SUFFIXES.items() if e == exponent)
            return f"{mantissa}{suffix}"

    # Unreachable: milli rounding leaves an integral mantissa at exponent -3
    raise ValidationError(f"Cannot canonicalize quantity: '{quantity}'")
