"""
Currency and Money Module

Handles ISO 4217 currency codes and proper Decimal precision for every
balance and transaction amount. NEVER uses float for monetary values.
"""

from decimal import Decimal, ROUND_HALF_UP, InvalidOperation, getcontext
from dataclasses import dataclass
from enum import Enum
from typing import Union
import re

# Set global decimal context for financial precision
getcontext().prec = 28


class Currency(Enum):
    """ISO 4217 Currency Codes with precision info"""
    INR = ("INR", 2, "₹")  # Indian Rupee, 2 decimal places
    USD = ("USD", 2, "$")  # US Dollar, 2 decimal places
    EUR = ("EUR", 2, "€")  # Euro, 2 decimal places
    GBP = ("GBP", 2, "£")  # British Pound, 2 decimal places
    JPY = ("JPY", 0, "¥")  # Japanese Yen, 0 decimal places

    def __init__(self, code: str, precision: int, symbol: str):
        self.code = code
        self.precision = precision
        self.symbol = symbol


@dataclass(frozen=True)
class Money:
    """
    Immutable money representation with currency and proper precision.
    Amounts are rounded half-up to the currency's minor unit on creation.
    """
    amount: Decimal
    currency: Currency

    def __post_init__(self):
        if not isinstance(self.amount, Decimal):
            object.__setattr__(self, 'amount', Decimal(str(self.amount)))

        rounded = self.amount.quantize(
            Decimal('0.1') ** self.currency.precision,
            rounding=ROUND_HALF_UP
        )
        object.__setattr__(self, 'amount', rounded)

    @classmethod
    def zero(cls, currency: Currency) -> 'Money':
        return cls(Decimal('0'), currency)

    def __add__(self, other: 'Money') -> 'Money':
        if self.currency != other.currency:
            raise ValueError(f"Cannot add {self.currency.code} and {other.currency.code}")
        return Money(self.amount + other.amount, self.currency)

    def __sub__(self, other: 'Money') -> 'Money':
        if self.currency != other.currency:
            raise ValueError(f"Cannot subtract {other.currency.code} from {self.currency.code}")
        return Money(self.amount - other.amount, self.currency)

    def __neg__(self) -> 'Money':
        return Money(-self.amount, self.currency)

    def __abs__(self) -> 'Money':
        return Money(abs(self.amount), self.currency)

    def __eq__(self, other) -> bool:
        if not isinstance(other, Money):
            return False
        return self.amount == other.amount and self.currency == other.currency

    def __hash__(self) -> int:
        return hash((self.amount, self.currency.code))

    def __lt__(self, other: 'Money') -> bool:
        self._check_comparable(other)
        return self.amount < other.amount

    def __le__(self, other: 'Money') -> bool:
        self._check_comparable(other)
        return self.amount <= other.amount

    def __gt__(self, other: 'Money') -> bool:
        self._check_comparable(other)
        return self.amount > other.amount

    def __ge__(self, other: 'Money') -> bool:
        self._check_comparable(other)
        return self.amount >= other.amount

    def _check_comparable(self, other: 'Money') -> None:
        if self.currency != other.currency:
            raise ValueError(f"Cannot compare {self.currency.code} and {other.currency.code}")

    def is_zero(self) -> bool:
        """Check if amount is exactly zero"""
        return self.amount == Decimal('0')

    def is_positive(self) -> bool:
        """Check if amount is positive"""
        return self.amount > Decimal('0')

    def is_negative(self) -> bool:
        """Check if amount is negative"""
        return self.amount < Decimal('0')

    def to_string(self) -> str:
        """Format for display, e.g. 'INR 1,250.50'"""
        if self.currency.precision == 0:
            return f"{self.currency.code} {self.amount:,.0f}"
        return f"{self.currency.code} {self.amount:,.{self.currency.precision}f}"

    def to_plain(self) -> str:
        """Amount as a plain string with the currency's fixed precision"""
        return f"{self.amount:.{self.currency.precision}f}"


_CURRENCY_SYMBOLS = tuple(currency.symbol for currency in Currency)
_PLAIN_NUMBER = re.compile(r'^(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?$')
_GROUPED_NUMBER = re.compile(r'^\d{1,3}(,\d{3})+(\.\d+)?$')
_DECIMAL_COMMA = re.compile(r'^\d+,\d{1,2}$')


def decimal_from_string(value: str) -> Decimal:
    """
    Safely convert string to Decimal, handling common formats

    Args:
        value: String representation of number, optionally with a sign, a
            leading currency symbol or thousands separators ("₹1,250.50")

    Returns:
        Decimal value

    Raises:
        ValueError: If string cannot be converted to valid Decimal
    """
    if not value or not isinstance(value, str):
        raise ValueError("Value must be a non-empty string")

    clean_value = value.strip()

    sign = ''
    if clean_value[:1] in ('+', '-'):
        sign, clean_value = clean_value[0], clean_value[1:]

    if clean_value.startswith(_CURRENCY_SYMBOLS):
        clean_value = clean_value[1:]

    if _GROUPED_NUMBER.match(clean_value):
        clean_value = clean_value.replace(',', '')
    elif _DECIMAL_COMMA.match(clean_value):
        clean_value = clean_value.replace(',', '.')

    # Anything else left over (letters, inner spaces, stray separators) is rejected
    if not _PLAIN_NUMBER.match(clean_value):
        raise ValueError(f"Cannot convert '{value}' to Decimal")

    try:
        return Decimal(sign + clean_value)
    except InvalidOperation as e:
        raise ValueError(f"Cannot convert '{value}' to Decimal") from e


def parse_amount(value: Union['Money', Decimal, int, float, str]) -> Decimal:
    """
    Exact Decimal value of user input, before any rounding.

    Floats go through str() so 0.1 becomes Decimal('0.1'), not its binary
    expansion. Raises ValueError for anything that is not a finite number.
    """
    if isinstance(value, Money):
        return value.amount

    if isinstance(value, bool):
        raise ValueError("Amount must be a number")

    if isinstance(value, str):
        amount = decimal_from_string(value)
    elif isinstance(value, (int, float, Decimal)):
        try:
            amount = Decimal(str(value))
        except InvalidOperation as e:
            raise ValueError(f"Cannot convert {value!r} to Decimal") from e
    else:
        raise ValueError(f"Amount must be a number, got {type(value).__name__}")

    if not amount.is_finite():
        raise ValueError("Amount must be a finite number")
    return amount


def to_money(value: Union['Money', Decimal, int, float, str], currency: Currency) -> Money:
    """Build Money in the given currency from user input"""
    if isinstance(value, Money):
        if value.currency != currency:
            raise ValueError(f"Expected {currency.code} amount, got {value.currency.code}")
        return value

    amount = parse_amount(value)
    try:
        return Money(amount, currency)
    except InvalidOperation as e:
        raise ValueError(f"Amount {value!r} is out of range") from e
