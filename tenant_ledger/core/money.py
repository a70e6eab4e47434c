from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from tenant_ledger.core.exceptions import ValidationFailed

CENT = Decimal("0.01")

# Largest value a Numeric(12, 2) amount column holds
MAX_AMOUNT = Decimal("9999999999.99")


def to_decimal(val) -> Decimal:
    if val is None:
        return Decimal("0")
    return val if isinstance(val, Decimal) else Decimal(str(val))


def to_money(val) -> Decimal:
    """Decimal rounded to cents; raises ValueError for values that are not finite numbers."""
    try:
        amount = to_decimal(val)
        if not amount.is_finite():
            raise ValueError(f"Not a finite amount: {val!r}")
        return amount.quantize(CENT, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        # Unparseable input, or more digits than the decimal context can quantize
        raise ValueError(f"Not a representable amount: {val!r}")


def validated_amount(val) -> Decimal:
    """A storable positive amount in cents, or ValidationFailed."""
    try:
        amount = to_money(val)
    except ValueError:
        if isinstance(val, Decimal) and val.is_finite() and val > 0:
            raise ValidationFailed("Amount is too large")
        raise ValidationFailed("Amount must be a number")
    if amount <= 0:
        raise ValidationFailed("Amount must be greater than zero")
    if amount > MAX_AMOUNT:
        raise ValidationFailed("Amount is too large")
    return amount
