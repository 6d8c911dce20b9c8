"""
Test suite for audit module

Tests hash-chained audit trail, tamper detection and integrity verification.
"""

import pytest
from datetime import datetime, timezone
from decimal import Decimal

from secure_bank.storage import InMemoryStorage
from secure_bank.audit import AuditTrail, AuditEvent, AuditEventType


class TestAuditEvent:
    """Test AuditEvent functionality"""

    def _event(self, **overrides):
        now = datetime.now(timezone.utc)
        fields = dict(
            id="AUDIT001",
            created_at=now,
            updated_at=now,
            event_type=AuditEventType.DEPOSIT_POSTED,
            entity_type="account",
            entity_id="123456789",
            previous_hash="",
            current_hash="",
            metadata={"amount": Decimal("200.00")},
        )
        fields.update(overrides)
        return AuditEvent(**fields)

    def test_metadata_is_serialized(self):
        event = self._event(metadata={
            "amount": Decimal("200.00"),
            "type": AuditEventType.DEPOSIT_POSTED,
            "nested": {"values": [Decimal("1.5")]},
        })

        assert event.metadata["amount"] == "200.00"
        assert event.metadata["type"] == "deposit_posted"
        assert event.metadata["nested"]["values"] == ["1.5"]

    def test_hash_is_deterministic(self):
        event = self._event()
        assert event.calculate_hash() == event.calculate_hash()
        assert len(event.calculate_hash()) == 64

    def test_hash_detects_changes(self):
        event = self._event()
        event.current_hash = event.calculate_hash()
        assert event.verify_hash()

        event.metadata["amount"] = "999.00"
        assert not event.verify_hash()

    def test_round_trip_through_dict(self):
        event = self._event()
        event.current_hash = event.calculate_hash()

        restored = AuditEvent.from_dict(event.to_dict())

        assert restored.event_type == AuditEventType.DEPOSIT_POSTED
        assert restored.verify_hash()


class TestAuditTrail:
    """Test the hash-chained trail"""

    def setup_method(self):
        self.storage = InMemoryStorage()
        self.audit = AuditTrail(self.storage)

    def test_events_are_chained(self):
        first = self.audit.log_event(AuditEventType.ACCOUNT_REGISTERED, "account", "111111111")
        second = self.audit.log_event(AuditEventType.DEPOSIT_POSTED, "account", "111111111", {"amount": "INR 200.00"})

        assert first.previous_hash == ""
        assert second.previous_hash == first.current_hash
        assert self.audit.count_events() == 2

    def test_verify_integrity_on_clean_chain(self):
        for i in range(5):
            self.audit.log_event(AuditEventType.LOGIN_SUCCESS, "account", f"10000000{i}")

        result = self.audit.verify_integrity()

        assert result["valid"]
        assert result["total_events"] == 5
        assert result["hash_errors"] == []
        assert result["chain_breaks"] == []

    def test_verify_integrity_detects_tampering(self):
        self.audit.log_event(AuditEventType.DEPOSIT_POSTED, "account", "111111111", {"amount": "INR 200.00"})
        event = self.audit.log_event(AuditEventType.WITHDRAWAL_POSTED, "account", "111111111", {"amount": "INR 50.00"})

        stored = self.storage.load("audit_events", event.id)
        stored["metadata"]["amount"] = "INR 5.00"
        self.storage.save("audit_events", event.id, stored)

        result = self.audit.verify_integrity()

        assert not result["valid"]
        assert result["hash_errors"][0]["event_id"] == event.id

    def test_verify_integrity_detects_deleted_event(self):
        self.audit.log_event(AuditEventType.ACCOUNT_REGISTERED, "account", "111111111")
        middle = self.audit.log_event(AuditEventType.DEPOSIT_POSTED, "account", "111111111")
        self.audit.log_event(AuditEventType.WITHDRAWAL_POSTED, "account", "111111111")

        self.storage.delete("audit_events", middle.id)

        result = self.audit.verify_integrity()

        assert not result["valid"]
        assert len(result["chain_breaks"]) == 1

    def test_chain_continues_after_reopen(self):
        first = self.audit.log_event(AuditEventType.ACCOUNT_REGISTERED, "account", "111111111")

        reopened = AuditTrail(self.storage)
        second = reopened.log_event(AuditEventType.LOGIN_SUCCESS, "account", "111111111")

        assert second.previous_hash == first.current_hash
        assert reopened.verify_integrity()["valid"]

    def test_chain_survives_rolled_back_transaction(self):
        self.audit.log_event(AuditEventType.ACCOUNT_REGISTERED, "account", "111111111")

        with pytest.raises(RuntimeError):
            with self.storage.atomic():
                self.audit.log_event(AuditEventType.DEPOSIT_POSTED, "account", "111111111")
                raise RuntimeError("boom")

        self.audit.log_event(AuditEventType.WITHDRAWAL_POSTED, "account", "111111111")
        assert self.audit.verify_integrity()["valid"]

    def test_chain_head_is_cached_between_events(self, monkeypatch):
        self.audit.log_event(AuditEventType.ACCOUNT_REGISTERED, "account", "111111111")

        def fail_load_all(table):
            raise AssertionError("audit table re-read")

        monkeypatch.setattr(self.storage, "load_all", fail_load_all)
        for _ in range(3):
            self.audit.log_event(AuditEventType.LOGIN_FAILED, "account", "000000000")
        monkeypatch.undo()

        assert self.audit.verify_integrity()["valid"]

    def test_query_by_entity_and_type(self):
        self.audit.log_event(AuditEventType.LOGIN_FAILED, "account", "111111111", {"reason": "bad_password"})
        self.audit.log_event(AuditEventType.LOGIN_FAILED, "account", "222222222", {"reason": "unknown_account"})
        self.audit.log_event(AuditEventType.LOGIN_SUCCESS, "account", "111111111")

        for_account = self.audit.get_events_for_entity("account", "111111111")
        failures = self.audit.get_events_by_type(AuditEventType.LOGIN_FAILED)

        assert [e.event_type for e in for_account] == [AuditEventType.LOGIN_FAILED, AuditEventType.LOGIN_SUCCESS]
        assert [e.metadata["reason"] for e in failures] == ["bad_password", "unknown_account"]
        assert len(self.audit.get_events_for_entity("account", "111111111", limit=1)) == 1
