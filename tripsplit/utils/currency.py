"""ISO 4217 minor-unit helpers."""
from decimal import Decimal, ROUND_HALF_EVEN

DEFAULT_EXPONENT = 2

# Currencies whose minor unit is not 1/100
_EXPONENTS = {
    # Zero decimal currencies
    "BIF": 0, "CLP": 0, "DJF": 0, "GNF": 0, "ISK": 0, "JPY": 0, "KMF": 0,
    "KRW": 0, "PYG": 0, "RWF": 0, "UGX": 0, "VND": 0, "VUV": 0, "XAF": 0,
    "XOF": 0, "XPF": 0,
    # Three decimal currencies
    "BHD": 3, "IQD": 3, "JOD": 3, "KWD": 3, "LYD": 3, "OMR": 3, "TND": 3,
}


def normalize_code(currency: str) -> str:
    """Upper-case and validate a three-letter currency code."""
    code = currency.strip().upper()
    if len(code) != 3 or not code.isalpha():
        raise ValueError(f"Invalid currency code: {currency!r}")
    return code


def minor_unit_exponent(currency: str) -> int:
    """Number of decimal places of the currency's minor unit (2 if unknown)."""
    return _EXPONENTS.get(currency.upper(), DEFAULT_EXPONENT)


def to_minor_units(amount: Decimal, currency: str, rounding: str = ROUND_HALF_EVEN) -> int:
    """Convert a major-unit decimal amount (e.g. 12.34 USD) into minor units (1234)."""
    exponent = minor_unit_exponent(currency)
    scaled = Decimal(amount).scaleb(exponent)
    return int(scaled.quantize(Decimal(1), rounding=rounding))


def from_minor_units(amount_minor: int, currency: str) -> Decimal:
    """Convert minor units back into a major-unit decimal."""
    return Decimal(amount_minor).scaleb(-minor_unit_exponent(currency))


def conversion_factor(rate: Decimal, currency: str, base_currency: str) -> Decimal:
    """
    Factor turning minor units of ``currency`` into minor units of ``base_currency``.

    ``rate`` is quoted per major unit, so the exponent difference between the
    two currencies is folded in (1 JPY minor unit is a whole yen, 1 USD minor
    unit is a cent).
    """
    shift = minor_unit_exponent(base_currency) - minor_unit_exponent(currency)
    return Decimal(rate).scaleb(shift)
