"""
Transaction Records Module

Defines the per-account transaction records that make up an account's
ledger, and the transfer record that ties the two legs of a transfer
together. Records are created once and never edited afterwards.
"""

from decimal import Decimal
from datetime import datetime
from dataclasses import dataclass
from typing import Dict, Optional, Any
from enum import Enum
import uuid

from .currency import Money, Currency
from .storage import StorageRecord


DISPLAY_DATE_FORMAT = "%d/%m/%Y, %H:%M:%S"


class TransactionType(Enum):
    """Types of ledger entries on an account"""
    DEPOSIT = "deposit"              # Cash deposit (incl. the initial deposit)
    WITHDRAWAL = "withdrawal"        # Cash withdrawal
    TRANSFER_IN = "transfer_in"      # Credit leg of a transfer
    TRANSFER_OUT = "transfer_out"    # Debit leg of a transfer

    @property
    def is_credit(self) -> bool:
        return self in (TransactionType.DEPOSIT, TransactionType.TRANSFER_IN)

    @property
    def is_transfer(self) -> bool:
        return self in (TransactionType.TRANSFER_IN, TransactionType.TRANSFER_OUT)


def new_transaction_id() -> str:
    """Random identifier; two records created in the same instant never collide"""
    return str(uuid.uuid4())


@dataclass(frozen=True)
class Transaction:
    """
    One entry in an account's ledger.

    amount is always a positive magnitude; the direction is implied by
    type. balance is the account balance right after this entry.
    """
    id: str
    type: TransactionType
    amount: Money
    date: datetime
    description: str
    balance: Money
    from_account: Optional[str] = None
    to_account: Optional[str] = None
    transfer_id: Optional[str] = None

    def __post_init__(self):
        if not self.amount.is_positive():
            raise ValueError("Transaction amount must be positive")
        if self.amount.currency != self.balance.currency:
            raise ValueError("Transaction amount and balance must share a currency")

    @property
    def is_credit(self) -> bool:
        return self.type.is_credit

    @property
    def is_debit(self) -> bool:
        return not self.type.is_credit

    @property
    def currency(self) -> Currency:
        return self.amount.currency

    @property
    def counterparty(self) -> Optional[str]:
        """Account number on the other side of a transfer"""
        if self.type == TransactionType.TRANSFER_OUT:
            return self.to_account
        if self.type == TransactionType.TRANSFER_IN:
            return self.from_account
        return None

    def display_date(self) -> str:
        """Human readable timestamp used on statements"""
        return self.date.strftime(DISPLAY_DATE_FORMAT)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for storage"""
        result = {
            'id': self.id,
            'type': self.type.value,
            'amount': str(self.amount.amount),
            'currency': self.amount.currency.code,
            'date': self.date.isoformat(),
            'description': self.description,
            'balance': str(self.balance.amount),
        }
        if self.from_account:
            result['from_account'] = self.from_account
        if self.to_account:
            result['to_account'] = self.to_account
        if self.transfer_id:
            result['transfer_id'] = self.transfer_id
        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Transaction':
        """Create instance from a stored dictionary"""
        currency = Currency[data['currency']]
        return cls(
            id=data['id'],
            type=TransactionType(data['type']),
            amount=Money(Decimal(data['amount']), currency),
            date=datetime.fromisoformat(data['date']),
            description=data['description'],
            balance=Money(Decimal(data['balance']), currency),
            from_account=data.get('from_account'),
            to_account=data.get('to_account'),
            transfer_id=data.get('transfer_id'),
        )


@dataclass
class TransferRecord(StorageRecord):
    """
    A transfer recorded once, referencing both accounts and both legs
    """
    from_account: str
    to_account: str
    amount: Money
    description: str
    sender_transaction_id: str
    recipient_transaction_id: str

    def to_dict(self) -> Dict[str, Any]:
        result = super().to_dict()
        result['amount'] = str(self.amount.amount)
        result['currency'] = self.amount.currency.code
        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'TransferRecord':
        currency = Currency[data['currency']]
        return cls(
            id=data['id'],
            created_at=datetime.fromisoformat(data['created_at']),
            updated_at=datetime.fromisoformat(data['updated_at']),
            from_account=data['from_account'],
            to_account=data['to_account'],
            amount=Money(Decimal(data['amount']), currency),
            description=data['description'],
            sender_transaction_id=data['sender_transaction_id'],
            recipient_transaction_id=data['recipient_transaction_id'],
        )
