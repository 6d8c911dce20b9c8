"""
Ledger Mutator Module

Computes balance transitions for deposits, withdrawals and transfers.
Every operation is a pure function of its inputs: the given accounts are
left untouched and updated copies are returned, each with one new
transaction prepended whose balance equals the new account balance.
Persisting the result is the caller's job.
"""

from dataclasses import dataclass, replace
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional, Union
import uuid

from .accounts import Account
from .currency import Money, to_money
from .errors import InsufficientFunds, InvalidAmount, ValidationError
from .transactions import Transaction, TransactionType, TransferRecord, new_transaction_id


AmountLike = Union[Money, Decimal, int, float, str]

DEPOSIT_DESCRIPTION = "Cash Deposit"
WITHDRAWAL_DESCRIPTION = "Cash Withdrawal"


@dataclass(frozen=True)
class TransferResult:
    """Both updated accounts plus the record tying the two legs together"""
    updated_sender: Account
    updated_recipient: Account
    transfer: TransferRecord

    @property
    def sender_transaction(self) -> Transaction:
        return self.updated_sender.transactions[0]

    @property
    def recipient_transaction(self) -> Transaction:
        return self.updated_recipient.transactions[0]


class LedgerMutator:
    """
    Balance transitions with the non-negative balance invariant
    """

    def deposit(
        self,
        account: Account,
        amount: AmountLike,
        description: Optional[str] = None
    ) -> Account:
        """
        Credit an account

        Raises:
            InvalidAmount: if amount is not a positive finite number in the
                account currency
        """
        money = self.coerce_amount(account, amount)
        now = datetime.now(timezone.utc)

        return self._apply(account, Transaction(
            id=new_transaction_id(),
            type=TransactionType.DEPOSIT,
            amount=money,
            date=now,
            description=description or DEPOSIT_DESCRIPTION,
            balance=account.balance + money,
        ), now)

    def withdraw(
        self,
        account: Account,
        amount: AmountLike,
        description: Optional[str] = None
    ) -> Account:
        """
        Debit an account

        Raises:
            InvalidAmount: as for deposit
            InsufficientFunds: if amount exceeds the balance
        """
        money = self.coerce_amount(account, amount)
        self._check_funds(account, money)
        now = datetime.now(timezone.utc)

        return self._apply(account, Transaction(
            id=new_transaction_id(),
            type=TransactionType.WITHDRAWAL,
            amount=money,
            date=now,
            description=description or WITHDRAWAL_DESCRIPTION,
            balance=account.balance - money,
        ), now)

    def transfer(
        self,
        sender: Account,
        recipient: Account,
        amount: AmountLike,
        description: Optional[str] = None
    ) -> TransferResult:
        """
        Move funds from sender to recipient

        The sender gets a transfer_out naming the recipient, the recipient a
        transfer_in naming the sender. Both legs share one transfer_id.

        Raises:
            ValidationError: if sender and recipient are the same account
            InvalidAmount: as for deposit, or on a currency mismatch between
                the accounts
            InsufficientFunds: if amount exceeds the sender's balance
        """
        if sender.account_number == recipient.account_number:
            raise ValidationError("Cannot transfer to the same account")
        if sender.currency != recipient.currency:
            raise InvalidAmount(
                f"Cannot transfer {sender.currency.code} to a {recipient.currency.code} account"
            )

        money = self.coerce_amount(sender, amount)
        self._check_funds(sender, money)

        now = datetime.now(timezone.utc)
        transfer_id = str(uuid.uuid4())
        note = (description or "").strip()

        outgoing = Transaction(
            id=new_transaction_id(),
            type=TransactionType.TRANSFER_OUT,
            amount=money,
            date=now,
            description=note or f"Transfer to {recipient.full_name}",
            balance=sender.balance - money,
            to_account=recipient.account_number,
            transfer_id=transfer_id,
        )
        incoming = Transaction(
            id=new_transaction_id(),
            type=TransactionType.TRANSFER_IN,
            amount=money,
            date=now,
            description=note or f"Transfer from {sender.full_name}",
            balance=recipient.balance + money,
            from_account=sender.account_number,
            transfer_id=transfer_id,
        )

        record = TransferRecord(
            id=transfer_id,
            created_at=now,
            updated_at=now,
            from_account=sender.account_number,
            to_account=recipient.account_number,
            amount=money,
            description=note,
            sender_transaction_id=outgoing.id,
            recipient_transaction_id=incoming.id,
        )

        return TransferResult(
            updated_sender=self._apply(sender, outgoing, now),
            updated_recipient=self._apply(recipient, incoming, now),
            transfer=record,
        )

    def coerce_amount(self, account: Account, amount: AmountLike) -> Money:
        """Turn user input into a positive Money in the account currency"""
        try:
            money = to_money(amount, account.currency)
        except ValueError as e:
            raise InvalidAmount("Please enter a valid amount") from e

        if not money.is_positive():
            raise InvalidAmount("Please enter a valid amount")
        return money

    def _check_funds(self, account: Account, amount: Money) -> None:
        if amount > account.balance:
            raise InsufficientFunds("Insufficient funds")

    def _apply(self, account: Account, transaction: Transaction, now: datetime) -> Account:
        return replace(
            account,
            balance=transaction.balance,
            transactions=[transaction] + list(account.transactions),
            updated_at=now,
        )
