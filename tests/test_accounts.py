"""
Test suite for the account registry

Tests registration validation, credential checks, lookups and upserts.
"""

import pytest
from dataclasses import replace
from decimal import Decimal

from secure_bank.accounts import AccountRegistry, RegistrationProfile, hash_password
from secure_bank.audit import AuditTrail, AuditEventType
from secure_bank.config import BankConfig
from secure_bank.currency import Money, Currency
from secure_bank.errors import AuthError, InvalidAmount, NotFound, ValidationError
from secure_bank.storage import InMemoryStorage
from secure_bank.transactions import TransactionType


def make_profile(**overrides):
    fields = dict(
        full_name="Asha Rao",
        email="asha@example.com",
        phone="9876543210",
        address="12 MG Road, Bengaluru",
        password="secret1",
        confirm_password="secret1",
    )
    fields.update(overrides)
    return RegistrationProfile(**fields)


class TestRegistration:
    """Test account registration"""

    def setup_method(self):
        self.storage = InMemoryStorage()
        self.audit = AuditTrail(self.storage)
        self.config = BankConfig(storage_backend="memory")
        self.registry = AccountRegistry(self.storage, self.audit, self.config)

    def test_register_with_minimum_deposit(self):
        account_number = self.registry.register(make_profile(), 100)
        account = self.registry.lookup(account_number)

        assert account.balance == Money(Decimal('100'), Currency.INR)
        assert len(account.transactions) == 1
        seed = account.transactions[0]
        assert seed.type == TransactionType.DEPOSIT
        assert seed.amount == Money(Decimal('100'), Currency.INR)
        assert seed.balance == Money(Decimal('100'), Currency.INR)
        assert seed.description == "Initial Deposit"

    def test_register_below_minimum_deposit_fails(self):
        with pytest.raises(ValidationError, match="at least"):
            self.registry.register(make_profile(), 99)
        assert self.registry.count() == 0

    @pytest.mark.parametrize("amount", ["99.995", "99.999", Decimal('99.9999')])
    def test_register_just_below_minimum_is_not_rounded_up(self, amount):
        with pytest.raises(ValidationError, match="at least"):
            self.registry.register(make_profile(), amount)
        assert self.registry.count() == 0

    def test_account_number_format(self):
        account_number = self.registry.register(make_profile(), "500")

        assert len(account_number) == 9
        assert account_number.isdigit()
        assert 100000000 <= int(account_number) <= 999999999

    @pytest.mark.parametrize("field", [
        "full_name", "email", "phone", "address", "password", "confirm_password"
    ])
    def test_missing_field_fails(self, field):
        with pytest.raises(ValidationError, match="Please fill in all fields"):
            self.registry.register(make_profile(**{field: "   "}), 500)

    def test_password_mismatch_fails(self):
        with pytest.raises(ValidationError, match="Passwords do not match"):
            self.registry.register(make_profile(confirm_password="secret2"), 500)

    def test_short_password_fails(self):
        with pytest.raises(ValidationError, match="at least 6 characters"):
            self.registry.register(make_profile(password="abc", confirm_password="abc"), 500)

    def test_mismatch_reported_before_length(self):
        with pytest.raises(ValidationError, match="Passwords do not match"):
            self.registry.register(make_profile(password="abc", confirm_password="abd"), 50)

    def test_non_numeric_deposit_fails(self):
        with pytest.raises(InvalidAmount):
            self.registry.register(make_profile(), "lots")
        with pytest.raises(ValidationError):
            self.registry.register(make_profile(), float("nan"))

    def test_password_is_hashed(self):
        account = self.registry.lookup(self.registry.register(make_profile(), 500))

        assert account.password_hash != "secret1"
        assert account.password_hash == hash_password("secret1", account.password_salt)
        stored = self.storage.load_all("accounts")[0]
        assert "password" not in stored

    def test_registration_is_audited(self):
        account_number = self.registry.register(make_profile(), 500)

        events = self.audit.get_events_for_entity("account", account_number)
        assert [e.event_type for e in events] == [AuditEventType.ACCOUNT_REGISTERED]
        assert events[0].metadata["initial_deposit"] == "INR 500.00"

    def test_account_number_collision_regenerates(self, monkeypatch):
        first = self.registry.register(make_profile(), 500)
        candidates = iter([int(first) - 100000000, 123456789 - 100000000])
        monkeypatch.setattr("secure_bank.accounts.secrets.randbelow", lambda n: next(candidates))

        second = self.registry.register(make_profile(email="other@example.com"), 500)

        assert second == "123456789"
        assert self.registry.count() == 2

    def test_account_number_exhaustion_fails(self, monkeypatch):
        first = self.registry.register(make_profile(), 500)
        monkeypatch.setattr("secure_bank.accounts.secrets.randbelow", lambda n: int(first) - 100000000)

        with pytest.raises(ValidationError, match="unique account number"):
            self.registry.register(make_profile(), 500)


class TestAuthentication:
    """Test login"""

    def setup_method(self):
        self.storage = InMemoryStorage()
        self.audit = AuditTrail(self.storage)
        self.registry = AccountRegistry(self.storage, self.audit, BankConfig(storage_backend="memory"))
        self.account_number = self.registry.register(make_profile(), 500)

    def test_valid_credentials(self):
        account = self.registry.authenticate(self.account_number, "secret1")
        assert account.account_number == self.account_number

    def test_failures_are_indistinguishable(self):
        with pytest.raises(AuthError) as wrong_password:
            self.registry.authenticate(self.account_number, "wrong-pass")
        with pytest.raises(AuthError) as unknown_account:
            self.registry.authenticate("000000000", "secret1")

        assert str(wrong_password.value) == str(unknown_account.value)
        assert str(wrong_password.value) == "Invalid account number or password"

    def test_failure_reason_is_audited(self):
        with pytest.raises(AuthError):
            self.registry.authenticate(self.account_number, "wrong-pass")
        with pytest.raises(AuthError):
            self.registry.authenticate("000000000", "secret1")

        failures = self.audit.get_events_by_type(AuditEventType.LOGIN_FAILED)
        assert [e.metadata["reason"] for e in failures] == ["bad_password", "unknown_account"]

    def test_success_is_audited(self):
        self.registry.authenticate(self.account_number, "secret1")
        assert len(self.audit.get_events_by_type(AuditEventType.LOGIN_SUCCESS)) == 1


class TestLookupAndUpsert:
    """Test lookups and persistence"""

    def setup_method(self):
        self.storage = InMemoryStorage()
        self.registry = AccountRegistry(self.storage, None, BankConfig(storage_backend="memory"))
        self.account_number = self.registry.register(make_profile(), 500)

    def test_lookup_missing_raises(self):
        with pytest.raises(NotFound):
            self.registry.lookup("000000000")
        assert self.registry.find("000000000") is None

    def test_upsert_replaces_stored_account(self):
        account = self.registry.lookup(self.account_number)
        updated = replace(account, balance=Money(Decimal('750'), Currency.INR))

        self.registry.upsert(updated)

        assert self.registry.lookup(self.account_number).balance == Money(Decimal('750'), Currency.INR)
        assert self.registry.count() == 1

    def test_upsert_does_not_touch_argument(self):
        account = self.registry.lookup(self.account_number)
        before = account.updated_at

        saved = self.registry.upsert(account)

        assert account.updated_at == before
        assert saved is not account
        assert saved.updated_at >= before

    def test_upsert_unknown_account_raises(self):
        account = self.registry.lookup(self.account_number)
        stranger = replace(account, account_number="999999999")

        with pytest.raises(NotFound):
            self.registry.upsert(stranger)

    def test_upsert_many_is_all_or_nothing(self):
        other_number = self.registry.register(make_profile(email="b@example.com"), 150)
        first = replace(self.registry.lookup(self.account_number), balance=Money(Decimal('1'), Currency.INR))
        ghost = replace(self.registry.lookup(other_number), account_number="999999999")

        with pytest.raises(NotFound):
            self.registry.upsert_many([first, ghost])

        assert self.registry.lookup(self.account_number).balance == Money(Decimal('500'), Currency.INR)

    def test_list_accounts(self):
        self.registry.register(make_profile(email="b@example.com"), 200)
        assert len(self.registry.list_accounts()) == 2
