"""
Account Statement Module

Read-only projections over an account's transaction list: filtering,
summary totals and export to CSV or JSON.
"""

import csv
import io
import json
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Iterable, List, Union

from .accounts import Account
from .currency import Money
from .errors import ValidationError
from .transactions import Transaction, TransactionType


class StatementFilter(Enum):
    """Statement views offered to the account holder"""
    ALL = "all"
    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"
    TRANSFER = "transfer"  # both transfer_in and transfer_out

    def matches(self, transaction_type: TransactionType) -> bool:
        if self == StatementFilter.ALL:
            return True
        if self == StatementFilter.TRANSFER:
            return transaction_type.is_transfer
        return transaction_type.value == self.value


class ReportFormat(Enum):
    """Statement export formats"""
    CSV = "csv"                # Date, Type, Description, Amount, Balance
    LEDGER_CSV = "ledger_csv"  # Date, Description, Credit, Debit, Balance
    JSON = "json"


_MEDIA_TYPES = {
    ReportFormat.CSV: ("csv", "text/csv"),
    ReportFormat.LEDGER_CSV: ("csv", "text/csv"),
    ReportFormat.JSON: ("json", "application/json"),
}


@dataclass(frozen=True)
class StatementSummary:
    """Totals shown above a statement"""
    account_number: str
    balance: Money
    transaction_count: int
    total_credits: Money
    total_debits: Money

    def to_dict(self) -> Dict[str, Any]:
        return {
            'account_number': self.account_number,
            'currency': self.balance.currency.code,
            'balance': self.balance.to_plain(),
            'transaction_count': self.transaction_count,
            'total_credits': self.total_credits.to_plain(),
            'total_debits': self.total_debits.to_plain(),
        }


@dataclass(frozen=True)
class AccountStatement:
    """Summary plus the filtered, newest-first transaction view"""
    account_number: str
    full_name: str
    statement_filter: StatementFilter
    summary: StatementSummary
    transactions: List[Transaction]


@dataclass(frozen=True)
class ExportedStatement:
    """A rendered statement ready to be served as a download"""
    filename: str
    media_type: str
    content: str


def parse_filter(value: Union[StatementFilter, str, None]) -> StatementFilter:
    if value is None:
        return StatementFilter.ALL
    if isinstance(value, StatementFilter):
        return value
    try:
        return StatementFilter(str(value).lower())
    except ValueError:
        options = ", ".join(f.value for f in StatementFilter)
        raise ValidationError(f"Unknown statement filter '{value}' (expected one of: {options})")


def parse_format(value: Union[ReportFormat, str, None]) -> ReportFormat:
    if value is None:
        return ReportFormat.CSV
    if isinstance(value, ReportFormat):
        return value
    try:
        return ReportFormat(str(value).lower())
    except ValueError:
        options = ", ".join(f.value for f in ReportFormat)
        raise ValidationError(f"Unsupported export format '{value}' (expected one of: {options})")


def filter_transactions(
    transactions: Iterable[Transaction],
    statement_filter: Union[StatementFilter, str, None] = StatementFilter.ALL
) -> List[Transaction]:
    """Keep the transactions selected by the filter, preserving newest-first order"""
    selected = parse_filter(statement_filter)
    return [txn for txn in transactions if selected.matches(txn.type)]


def summarize(account: Account) -> StatementSummary:
    """
    Summary over the whole account history, regardless of any filter.

    Credits are deposits plus incoming transfers; debits are withdrawals
    plus outgoing transfers.
    """
    credits = Money.zero(account.currency)
    debits = Money.zero(account.currency)

    for txn in account.transactions:
        if txn.is_credit:
            credits = credits + txn.amount
        else:
            debits = debits + txn.amount

    return StatementSummary(
        account_number=account.account_number,
        balance=account.balance,
        transaction_count=len(account.transactions),
        total_credits=credits,
        total_debits=debits,
    )


def build_statement(
    account: Account,
    statement_filter: Union[StatementFilter, str, None] = StatementFilter.ALL
) -> AccountStatement:
    selected = parse_filter(statement_filter)
    return AccountStatement(
        account_number=account.account_number,
        full_name=account.full_name,
        statement_filter=selected,
        summary=summarize(account),
        transactions=filter_transactions(account.transactions, selected),
    )


def statement_rows(transactions: Iterable[Transaction]) -> List[Dict[str, Any]]:
    """Plain dictionaries for JSON responses"""
    rows = []
    for txn in transactions:
        row = txn.to_dict()
        row['display_date'] = txn.display_date()
        rows.append(row)
    return rows


def export_statement(
    account: Account,
    statement_filter: Union[StatementFilter, str, None] = StatementFilter.ALL,
    format: Union[ReportFormat, str, None] = ReportFormat.CSV
) -> ExportedStatement:
    """
    Render the filtered transaction view of an account

    Args:
        account: Account to export
        statement_filter: Which transactions to include
        format: csv, ledger_csv or json

    Returns:
        ExportedStatement named account_statement_<account number>.<ext>
    """
    selected = parse_filter(statement_filter)
    export_format = parse_format(format)
    transactions = filter_transactions(account.transactions, selected)

    if export_format == ReportFormat.CSV:
        content = _render_csv(
            ['Date', 'Type', 'Description', 'Amount', 'Balance'],
            [
                {
                    'Date': txn.display_date(),
                    'Type': txn.type.value,
                    'Description': txn.description,
                    'Amount': txn.amount.to_plain(),
                    'Balance': txn.balance.to_plain(),
                }
                for txn in transactions
            ]
        )

    elif export_format == ReportFormat.LEDGER_CSV:
        content = _render_csv(
            ['Date', 'Description', 'Credit', 'Debit', 'Balance'],
            [
                {
                    'Date': txn.display_date(),
                    'Description': txn.description,
                    'Credit': txn.amount.to_plain() if txn.is_credit else '',
                    'Debit': txn.amount.to_plain() if txn.is_debit else '',
                    'Balance': txn.balance.to_plain(),
                }
                for txn in transactions
            ]
        )

    else:
        content = json.dumps({
            'account_number': account.account_number,
            'full_name': account.full_name,
            'generated_at': datetime.now(timezone.utc).isoformat(),
            'filter': selected.value,
            'summary': summarize(account).to_dict(),
            'transactions': statement_rows(transactions),
        }, indent=2, ensure_ascii=False)

    extension, media_type = _MEDIA_TYPES[export_format]
    return ExportedStatement(
        filename=f"account_statement_{account.account_number}.{extension}",
        media_type=media_type,
        content=content,
    )


def _render_csv(headers: List[str], rows: List[Dict[str, str]]) -> str:
    output = io.StringIO()
    writer = csv.DictWriter(output, fieldnames=headers, lineterminator="\n")
    writer.writeheader()
    for row in rows:
        writer.writerow(row)

    csv_content = output.getvalue()
    output.close()
    return csv_content
