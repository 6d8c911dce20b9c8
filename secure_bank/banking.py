"""
Banking Facade Module

Wires configuration, storage, audit trail, registry and ledger mutator
together and carries out the "mutate, then persist" contract for every
user action: look the account up, let the mutator compute the new state,
upsert every touched account, then audit and log.
"""

from decimal import Decimal
from typing import List, Optional, Union

from .accounts import Account, AccountRegistry, RegistrationProfile
from .audit import AuditTrail, AuditEventType
from .config import BankConfig, get_config
from .currency import Money
from .errors import BankingError, NotFound, RecipientNotFound
from .ledger import LedgerMutator, TransferResult
from .logging_config import get_logger, log_action
from .statements import (
    AccountStatement,
    ExportedStatement,
    ReportFormat,
    StatementFilter,
    build_statement,
    export_statement,
)
from .storage import StorageInterface, create_storage
from .transactions import TransferRecord


AmountLike = Union[Money, Decimal, int, float, str]


class BankingSystem:
    """SecureBank service with all components initialized"""

    def __init__(
        self,
        config: Optional[BankConfig] = None,
        storage: Optional[StorageInterface] = None
    ):
        self.config = config or get_config()
        self.storage = storage if storage is not None else create_storage(self.config)

        self.audit_trail = AuditTrail(self.storage)
        self.registry = AccountRegistry(self.storage, self.audit_trail, self.config)
        self.mutator = LedgerMutator()
        self.transfers_table = "transfers"
        self.logger = get_logger("secure_bank.banking")

    def register(
        self,
        profile: RegistrationProfile,
        initial_deposit: AmountLike
    ) -> str:
        """Register an account and return its number"""
        return self.registry.register(profile, initial_deposit)

    def login(self, account_number: str, password: str) -> Account:
        """Authenticate; raises AuthError on any credential mismatch"""
        return self.registry.authenticate(account_number, password)

    def get_account(self, account_number: str) -> Account:
        return self.registry.lookup(account_number)

    def recipients(self, account_number: str) -> List[Account]:
        """Every other registered account, as offered on the transfer form"""
        self.registry.lookup(account_number)
        return [
            account for account in self.registry.list_accounts()
            if account.account_number != account_number
        ]

    def deposit(
        self,
        account_number: str,
        amount: AmountLike,
        description: Optional[str] = None
    ) -> Account:
        """Credit an account and persist it"""
        try:
            account = self.registry.lookup(account_number)
            updated = self.registry.upsert(self.mutator.deposit(account, amount, description))
        except BankingError as e:
            self._reject("deposit", account_number, amount, e)
            raise

        txn = updated.transactions[0]
        self._posted(AuditEventType.DEPOSIT_POSTED, "deposit", updated, {
            "transaction_id": txn.id,
            "amount": txn.amount.to_string(),
            "balance": txn.balance.to_string(),
        })
        return updated

    def withdraw(
        self,
        account_number: str,
        amount: AmountLike,
        description: Optional[str] = None
    ) -> Account:
        """Debit an account and persist it"""
        try:
            account = self.registry.lookup(account_number)
            updated = self.registry.upsert(self.mutator.withdraw(account, amount, description))
        except BankingError as e:
            self._reject("withdrawal", account_number, amount, e)
            raise

        txn = updated.transactions[0]
        self._posted(AuditEventType.WITHDRAWAL_POSTED, "withdrawal", updated, {
            "transaction_id": txn.id,
            "amount": txn.amount.to_string(),
            "balance": txn.balance.to_string(),
        })
        return updated

    def transfer(
        self,
        sender_number: str,
        recipient_number: str,
        amount: AmountLike,
        description: Optional[str] = None
    ) -> TransferResult:
        """
        Move funds between two registered accounts

        Both updated accounts and the transfer record are written in one
        storage transaction; if any write fails none of them is kept.

        Raises:
            NotFound: unknown sender
            RecipientNotFound: unknown recipient
            ValidationError, InvalidAmount, InsufficientFunds: from the mutator
        """
        try:
            sender = self.registry.lookup(sender_number)
            recipient = self.registry.find(recipient_number)
            if recipient is None:
                raise RecipientNotFound("Recipient account not found")

            result = self.mutator.transfer(sender, recipient, amount, description)

            with self.storage.atomic():
                sender_saved, recipient_saved = self.registry.upsert_many(
                    [result.updated_sender, result.updated_recipient]
                )
                self.storage.save(self.transfers_table, result.transfer.id, result.transfer.to_dict())
        except BankingError as e:
            self._reject("transfer", sender_number, amount, e, {"to_account": recipient_number})
            raise

        result = TransferResult(
            updated_sender=sender_saved,
            updated_recipient=recipient_saved,
            transfer=result.transfer,
        )

        self._posted(AuditEventType.TRANSFER_POSTED, "transfer", sender_saved, {
            "transfer_id": result.transfer.id,
            "to_account": recipient_saved.account_number,
            "amount": result.transfer.amount.to_string(),
            "sender_balance": sender_saved.balance.to_string(),
        })
        return result

    def statement(
        self,
        account_number: str,
        statement_filter: Union[StatementFilter, str, None] = StatementFilter.ALL
    ) -> AccountStatement:
        """Summary and filtered transaction view of an account"""
        return build_statement(self.registry.lookup(account_number), statement_filter)

    def export_statement(
        self,
        account_number: str,
        statement_filter: Union[StatementFilter, str, None] = StatementFilter.ALL,
        format: Union[ReportFormat, str, None] = ReportFormat.CSV
    ) -> ExportedStatement:
        """Render a downloadable statement"""
        account = self.registry.lookup(account_number)
        exported = export_statement(account, statement_filter, format)

        if self.config.enable_audit_logging:
            self.audit_trail.log_event(
                event_type=AuditEventType.STATEMENT_EXPORTED,
                entity_type="statement",
                entity_id=account_number,
                metadata={
                    "filename": exported.filename,
                    "media_type": exported.media_type,
                }
            )
        log_action(
            self.logger, "info", "Statement exported",
            account_number=account_number, action="export_statement",
            resource=exported.filename
        )
        return exported

    def get_transfer(self, transfer_id: str) -> TransferRecord:
        """Stored transfer record"""
        data = self.storage.load(self.transfers_table, transfer_id)
        if data is None:
            raise NotFound(f"Transfer {transfer_id} not found")
        return TransferRecord.from_dict(data)

    def close(self) -> None:
        self.storage.close()

    def _posted(self, event_type: AuditEventType, action: str, account: Account, metadata: dict) -> None:
        if self.config.enable_audit_logging:
            self.audit_trail.log_event(
                event_type=event_type,
                entity_type="account",
                entity_id=account.account_number,
                metadata=metadata
            )
        log_action(
            self.logger, "info", f"{action.capitalize()} posted",
            account_number=account.account_number, action=action,
            resource=f"account:{account.account_number}", extra=metadata
        )

    def _reject(
        self,
        action: str,
        account_number: str,
        amount,
        error: BankingError,
        details: Optional[dict] = None
    ) -> None:
        metadata = {
            "action": action,
            "amount": str(amount),
            "error": type(error).__name__,
            "reason": str(error),
        }
        if details:
            metadata.update(details)

        if self.config.enable_audit_logging:
            self.audit_trail.log_event(
                event_type=AuditEventType.TRANSACTION_REJECTED,
                entity_type="account",
                entity_id=str(account_number),
                metadata=metadata
            )
        log_action(
            self.logger, "warning", f"{action.capitalize()} rejected: {error}",
            account_number=str(account_number), action=action, extra=metadata
        )
