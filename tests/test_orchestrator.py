"""Tests for the session facade."""

import pytest
from decimal import Decimal

from ledgersync.aggregation import TRADITIONAL_ASSETS
from ledgersync.errors import Unauthenticated
from ledgersync.identity import StaticIdentity
from ledgersync.models import NewAccount, NewTransaction, UserPreferences
from ledgersync.orchestrator import LedgerSession, create_ledger_session
from ledgersync.services.storage import InMemoryRemoteStore


USER_ID = "user-1"


def expense(day: str, amount: str, category: str, currency: str = "BRL") -> NewTransaction:
    return NewTransaction(
        account_id="acc-1",
        date=day,
        amount=Decimal(amount),
        transaction_currency=currency,
        category=category,
    )


class TestCreateLedgerSession:
    """Tests for the factory."""

    def test_in_memory_session(self):
        session = create_ledger_session(USER_ID, use_sheets=False)
        assert isinstance(session.store, InMemoryRemoteStore)

    def test_unconfigured_sheets_fall_back_to_memory(self, monkeypatch):
        """Test that missing Google settings don't prevent a session."""
        monkeypatch.delenv("GOOGLE_SHEETS_CREDENTIALS_PATH", raising=False)
        monkeypatch.delenv("GOOGLE_SHEETS_SPREADSHEET_ID", raising=False)
        session = create_ledger_session(USER_ID, use_sheets=True)
        assert isinstance(session.store, InMemoryRemoteStore)


class TestSnapshot:
    """Tests for LedgerSession.snapshot."""

    @pytest.mark.asyncio
    async def test_dashboard_snapshot(self, store, converter):
        """Test the aggregated dashboard for one user."""
        session = LedgerSession(StaticIdentity(USER_ID), store, converter=converter)
        await session.accounts.add(NewAccount(name="Nubank", currency="BRL", balance=Decimal("470")))
        await session.accounts.add(NewAccount(name="Wise", currency="USD", balance=Decimal("100")))
        await session.transactions.add(expense("2024-01-15", "-50", "Food"))
        await session.transactions.add(expense("2024-01-20", "-10", "USD stuff", "USD"))
        await session.transactions.add(expense("2024-02-01", "-200", "Transfer"))

        snapshot = await session.snapshot()

        assert snapshot.preferred_currency == "BRL"
        assert snapshot.total_balance.amount == Decimal("1000")
        assert snapshot.is_complete
        assert [m.month_key for m in snapshot.monthly_summary] == ["2024-02", "2024-01"]
        assert [(e.name, e.amount) for e in snapshot.expense_breakdown.entries] == [
            ("USD stuff", Decimal("53.00")),
            ("Food", Decimal("50")),
        ]
        assert [s.name for s in snapshot.net_worth.slices] == [TRADITIONAL_ASSETS]
        assert snapshot.account_count == 2
        assert snapshot.transaction_count == 3
        assert snapshot.swap_count == 0

    @pytest.mark.asyncio
    async def test_snapshot_flags_unconvertible_accounts(self, store, converter):
        session = LedgerSession(StaticIdentity(USER_ID), store, converter=converter)
        await session.preferences.save(UserPreferences(preferred_currency="USD"))
        await session.accounts.add(NewAccount(name="A", currency="USD", balance=Decimal("100")))
        await session.accounts.add(NewAccount(name="B", currency="USD", balance=Decimal("50")))
        await session.accounts.add(NewAccount(name="C", currency="XYZ", balance=Decimal("7")))

        snapshot = await session.snapshot()

        assert snapshot.total_balance.amount == Decimal("150")
        assert not snapshot.is_complete
        assert snapshot.total_balance.excluded[0].currency == "XYZ"

    @pytest.mark.asyncio
    async def test_snapshot_requires_identity(self, store, converter):
        session = LedgerSession(StaticIdentity(None), store, converter=converter)
        with pytest.raises(Unauthenticated):
            await session.snapshot()
        assert store.operations == []

    @pytest.mark.asyncio
    async def test_start_observing_loads_view(self, store, converter):
        """Test that observing keeps the session view current."""
        session = LedgerSession(StaticIdentity(USER_ID), store, converter=converter)
        await session.start_observing()
        await session.accounts.add(NewAccount(name="Nubank", currency="BRL"))

        assert [a.name for a in session.observer.view.accounts] == ["Nubank"]
        session.stop_observing()
        assert not session.observer.is_attached


class TestSettings:
    """Tests for startup configuration checks."""

    def test_validate_all_settings_without_sheets(self, monkeypatch):
        """Test that currency and app settings validate with no Google config."""
        from ledgersync.config import validate_all_settings

        monkeypatch.delenv("GOOGLE_SHEETS_CREDENTIALS_PATH", raising=False)
        monkeypatch.delenv("GOOGLE_SHEETS_SPREADSHEET_ID", raising=False)
        results = validate_all_settings()

        assert results["currency"] is True
        assert results["app"] is True
        assert results["google_sheets"] is False
        assert "google_sheets_error" in results
