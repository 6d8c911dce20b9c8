"""
Account Registry Module

Owns the authoritative collection of accounts: registration, credential
checks, lookups and upserts. The registry is the only writer of the
accounts table; every successful write re-serializes the account through
the injected storage backend.
"""

from decimal import Decimal
from datetime import datetime, timezone
from dataclasses import dataclass, field, replace
from typing import Dict, Iterable, List, Optional, Union
import hashlib
import hmac
import secrets
import uuid

from .audit import AuditTrail, AuditEventType
from .config import BankConfig, get_config
from .currency import Money, Currency, parse_amount, to_money
from .errors import AuthError, InvalidAmount, NotFound, ValidationError
from .logging_config import get_logger, log_action
from .storage import StorageInterface, StorageRecord
from .transactions import Transaction, TransactionType, new_transaction_id


ACCOUNT_NUMBER_MIN = 100000000
ACCOUNT_NUMBER_MAX = 999999999

INITIAL_DEPOSIT_DESCRIPTION = "Initial Deposit"


@dataclass
class RegistrationProfile:
    """Registration form input"""
    full_name: str
    email: str
    phone: str
    address: str
    password: str
    confirm_password: str

    def missing_fields(self) -> List[str]:
        """Names of required fields that are empty or whitespace"""
        return [
            name for name in (
                "full_name", "email", "phone", "address",
                "password", "confirm_password",
            )
            if not (getattr(self, name) or "").strip()
        ]


@dataclass
class Account(StorageRecord):
    """
    Registered account with its balance and newest-first transaction list
    """
    account_number: str
    full_name: str
    email: str
    phone: str
    address: str
    password_hash: str
    password_salt: str
    currency: Currency
    balance: Money
    transactions: List[Transaction] = field(default_factory=list)

    def __post_init__(self):
        if self.balance.currency != self.currency:
            raise ValueError("Balance currency must match account currency")

    @property
    def last_transaction(self) -> Optional[Transaction]:
        return self.transactions[0] if self.transactions else None

    def is_consistent(self) -> bool:
        """Check that the balance matches the head transaction"""
        head = self.last_transaction
        return head is None or head.balance == self.balance

    def verify_password(self, password: str) -> bool:
        candidate = hash_password(password, self.password_salt)
        return hmac.compare_digest(candidate, self.password_hash)


def generate_salt() -> str:
    return secrets.token_hex(16)


def hash_password(password: str, salt: str) -> str:
    """Hash password with salt using scrypt"""
    return hashlib.scrypt(
        password.encode(),
        salt=salt.encode(),
        n=16384, r=8, p=1
    ).hex()


class AccountRegistry:
    """
    Registers, authenticates, looks up and persists accounts
    """

    def __init__(
        self,
        storage: StorageInterface,
        audit_trail: Optional[AuditTrail] = None,
        config: Optional[BankConfig] = None
    ):
        self.storage = storage
        self.audit_trail = audit_trail
        self.config = config or get_config()
        self.currency = Currency[self.config.default_currency.upper()]
        self.accounts_table = "accounts"
        self.logger = get_logger("secure_bank.accounts")

    def register(
        self,
        profile: RegistrationProfile,
        initial_deposit: Union[Money, Decimal, int, float, str]
    ) -> str:
        """
        Register a new account

        Args:
            profile: Registration form input
            initial_deposit: Opening balance, at least min_initial_deposit

        Returns:
            The new account number

        Raises:
            ValidationError: on missing fields, password problems or a too
                small initial deposit
        """
        self._validate_profile(profile)
        opening = self._validate_initial_deposit(initial_deposit)

        now = datetime.now(timezone.utc)
        account_number = self._generate_account_number()
        salt = generate_salt()

        seed = Transaction(
            id=new_transaction_id(),
            type=TransactionType.DEPOSIT,
            amount=opening,
            date=now,
            description=INITIAL_DEPOSIT_DESCRIPTION,
            balance=opening,
        )

        account = Account(
            id=str(uuid.uuid4()),
            created_at=now,
            updated_at=now,
            account_number=account_number,
            full_name=profile.full_name.strip(),
            email=profile.email.strip(),
            phone=profile.phone.strip(),
            address=profile.address.strip(),
            password_hash=hash_password(profile.password, salt),
            password_salt=salt,
            currency=self.currency,
            balance=opening,
            transactions=[seed],
        )

        self._save_account(account)

        log_action(
            self.logger, "info", "Account registered",
            account_number=account_number, action="register",
            resource=f"account:{account_number}",
            extra={"initial_deposit": opening.to_string()}
        )

        self._audit(
            AuditEventType.ACCOUNT_REGISTERED,
            account_number,
            {
                "full_name": account.full_name,
                "initial_deposit": opening.to_string(),
                "transaction_id": seed.id,
            }
        )

        return account_number

    def authenticate(self, account_number: str, password: str) -> Account:
        """
        Check credentials and return the account

        Unknown accounts and wrong passwords raise the same AuthError; only
        the audit trail records which one it was.
        """
        account = self.find(account_number)

        if account is None:
            reason = "unknown_account"
        elif not account.verify_password(password or ""):
            reason = "bad_password"
        else:
            self._audit(AuditEventType.LOGIN_SUCCESS, account_number, {})
            log_action(
                self.logger, "info", "Login succeeded",
                account_number=account_number, action="login"
            )
            return account

        self._audit(AuditEventType.LOGIN_FAILED, str(account_number), {"reason": reason})
        log_action(
            self.logger, "warning", "Login failed",
            account_number=str(account_number), action="login",
            extra={"reason": reason}
        )
        raise AuthError()

    def lookup(self, account_number: str) -> Account:
        """Get account by number or raise NotFound"""
        account = self.find(account_number)
        if account is None:
            raise NotFound(f"Account {account_number} not found")
        return account

    def find(self, account_number: str) -> Optional[Account]:
        """Get account by number"""
        if not account_number:
            return None
        accounts = self.storage.find(self.accounts_table, {"account_number": str(account_number)})
        if accounts:
            return self._account_from_dict(accounts[0])
        return None

    def upsert(self, account: Account) -> Account:
        """
        Replace the stored account with the given one

        Raises:
            NotFound: if the account was never registered
        """
        stored = self.find(account.account_number)
        if stored is None:
            raise NotFound(f"Account {account.account_number} not found")
        if stored.id != account.id:
            raise ValidationError(f"Account {account.account_number} does not match the stored record")

        saved = replace(account, updated_at=datetime.now(timezone.utc))
        self._save_account(saved)

        self.logger.debug(f"Account {saved.account_number} saved with balance {saved.balance.to_string()}")
        return saved

    def upsert_many(self, accounts: Iterable[Account]) -> List[Account]:
        """Upsert several accounts in one storage transaction"""
        with self.storage.atomic():
            return [self.upsert(account) for account in accounts]

    def list_accounts(self) -> List[Account]:
        return [self._account_from_dict(data) for data in self.storage.load_all(self.accounts_table)]

    def count(self) -> int:
        return self.storage.count(self.accounts_table)

    def _validate_profile(self, profile: RegistrationProfile) -> None:
        # Checked in the order the registration form reports them
        if profile.missing_fields():
            raise ValidationError("Please fill in all fields")

        if profile.password != profile.confirm_password:
            raise ValidationError("Passwords do not match")

        if len(profile.password) < self.config.min_password_length:
            raise ValidationError(
                f"Password must be at least {self.config.min_password_length} characters long"
            )

    def _validate_initial_deposit(self, initial_deposit) -> Money:
        try:
            raw = parse_amount(initial_deposit)
            opening = to_money(initial_deposit, self.currency)
        except ValueError as e:
            raise InvalidAmount("Please enter a valid amount") from e

        # Compared before rounding so 99.995 does not pass as 100.00
        minimum = Money(Decimal(self.config.min_initial_deposit), self.currency)
        if raw < minimum.amount:
            raise ValidationError(
                f"Initial deposit must be at least {self.currency.symbol}{minimum.to_plain()}"
            )
        return opening

    def _generate_account_number(self) -> str:
        """Random 9-digit number not used by any registered account"""
        for _ in range(self.config.account_number_max_attempts):
            candidate = str(ACCOUNT_NUMBER_MIN + secrets.randbelow(ACCOUNT_NUMBER_MAX - ACCOUNT_NUMBER_MIN + 1))
            if not self.storage.find(self.accounts_table, {"account_number": candidate}):
                return candidate
            self.logger.warning(f"Account number collision on {candidate}, regenerating")

        raise ValidationError("Could not allocate a unique account number")

    def _audit(self, event_type: AuditEventType, account_number: str, metadata: Dict) -> None:
        if self.audit_trail and self.config.enable_audit_logging:
            self.audit_trail.log_event(
                event_type=event_type,
                entity_type="account",
                entity_id=account_number,
                metadata=metadata
            )

    def _save_account(self, account: Account) -> None:
        """Save account to storage"""
        account_dict = self._account_to_dict(account)
        self.storage.save(self.accounts_table, account.id, account_dict)

    def _account_to_dict(self, account: Account) -> Dict:
        """Convert Account to dictionary for storage"""
        return {
            'id': account.id,
            'created_at': account.created_at.isoformat(),
            'updated_at': account.updated_at.isoformat(),
            'account_number': account.account_number,
            'full_name': account.full_name,
            'email': account.email,
            'phone': account.phone,
            'address': account.address,
            'password_hash': account.password_hash,
            'password_salt': account.password_salt,
            'currency': account.currency.code,
            'balance': str(account.balance.amount),
            'transactions': [txn.to_dict() for txn in account.transactions],
        }

    def _account_from_dict(self, data: Dict) -> Account:
        """Convert dictionary to Account"""
        currency = Currency[data['currency']]

        return Account(
            id=data['id'],
            created_at=datetime.fromisoformat(data['created_at']),
            updated_at=datetime.fromisoformat(data['updated_at']),
            account_number=data['account_number'],
            full_name=data['full_name'],
            email=data['email'],
            phone=data['phone'],
            address=data['address'],
            password_hash=data['password_hash'],
            password_salt=data['password_salt'],
            currency=currency,
            balance=Money(Decimal(data['balance']), currency),
            transactions=[Transaction.from_dict(txn) for txn in data.get('transactions', [])],
        )
