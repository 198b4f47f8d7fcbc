from decimal import Decimal, InvalidOperation
from coffee_erp.exceptions import InvalidAmount

# Decimal places per currency. UGX has no minor unit.
CURRENCY_PLACES = {
    'UGX': 0,
    'USD': 2,
    'EUR': 2,
    'KES': 2,
}

# Significant digits an amount may carry. Beyond this a float-backed Numeric
# column (SQLite) no longer reads back the exact value.
MAX_DIGITS = 15


def currency_places(currency):
    if currency not in CURRENCY_PLACES:
        raise InvalidAmount(f"Unsupported currency: {currency}")
    return CURRENCY_PLACES[currency]


def parse_amount(value, currency='UGX', allow_zero=False):
    """
    Converts user input into a Decimal for the given currency.

    Values with more decimal places than the currency allows are rejected
    instead of being rounded, so what is stored is exactly what was entered.
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        raise InvalidAmount("Amount is required")
    if isinstance(value, bool):
        raise InvalidAmount("Please enter a valid amount")
    if isinstance(value, str):
        value = value.strip().replace(',', '')

    try:
        # str() first so floats keep their printed value
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise InvalidAmount("Please enter a valid amount")

    if not amount.is_finite():
        raise InvalidAmount("Please enter a valid amount")
    if amount < 0 or (amount == 0 and not allow_zero):
        raise InvalidAmount("Amount must be greater than zero")

    places = currency_places(currency)
    if -amount.normalize().as_tuple().exponent > places:
        raise InvalidAmount(f"{currency} amounts allow at most {places} decimal places")

    if amount and amount.adjusted() + 1 + places > MAX_DIGITS:
        raise InvalidAmount(f"{currency} amounts allow at most {MAX_DIGITS - places} whole digits")

    try:
        return amount.quantize(Decimal(1).scaleb(-places))
    except InvalidOperation:
        raise InvalidAmount("Please enter a valid amount")


def format_amount(amount, currency='UGX'):
    places = currency_places(currency)
    return f"{currency} {Decimal(amount):,.{places}f}"
