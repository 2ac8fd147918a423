"""Tests for the entity repositories against the in-memory store."""

import pytest
from datetime import date, datetime, timezone
from decimal import Decimal

from ledgersync.errors import MissingIdentifier, Unauthenticated
from ledgersync.identity import AnonymousIdentity, StaticIdentity
from ledgersync.models import (
    NewAccount,
    NewSwap,
    NewTransaction,
    TimestampState,
    Transaction,
    UserPreferences,
)
from ledgersync.repositories import (
    AccountRepository,
    PreferencesRepository,
    SwapRepository,
    TransactionRepository,
    build_swap_legs,
)
from ledgersync.services.storage import InMemoryRemoteStore, StoreUnavailable
from ledgersync.sync import USER_TRANSACTIONS, ChangeEvent


USER_ID = "user-1"


def make_transaction(day: str, amount="10", currency="USD", **extra) -> NewTransaction:
    return NewTransaction(
        account_id=extra.pop("account_id", "acc-1"),
        date=day,
        amount=Decimal(amount),
        transaction_currency=currency,
        **extra,
    )


class FailingStore(InMemoryRemoteStore):
    """Store whose every read and write fails at the transport."""

    def __init__(self):
        super().__init__()
        self.calls = 0

    async def get(self, path):
        self.calls += 1
        raise StoreUnavailable("connection reset")

    async def set(self, path, value):
        self.calls += 1
        raise StoreUnavailable("connection reset")


class TestIdentityGuard:
    """Tests that nothing reaches the store without a user."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("identity", [AnonymousIdentity(), StaticIdentity(None), StaticIdentity("  ")])
    async def test_every_operation_rejected_without_identity(self, identity):
        """Test Unauthenticated with zero store calls."""
        store = InMemoryRemoteStore()
        repo = TransactionRepository(store, identity)
        tx = Transaction(id="t1", **make_transaction("2024-01-01").model_dump())

        with pytest.raises(Unauthenticated):
            await repo.list()
        with pytest.raises(Unauthenticated):
            await repo.add(make_transaction("2024-01-01"))
        with pytest.raises(Unauthenticated):
            await repo.update(tx)
        with pytest.raises(Unauthenticated):
            await repo.remove("t1")
        with pytest.raises(Unauthenticated):
            await repo.get("t1")

        assert store.operations == []

    @pytest.mark.asyncio
    async def test_signed_out_session_is_rejected(self, store):
        """Test that signing out stops later calls."""
        identity = StaticIdentity(USER_ID)
        repo = AccountRepository(store, identity)
        await repo.list()
        identity.sign_out()

        with pytest.raises(Unauthenticated):
            await repo.list()
        assert len(store.operations) == 1

    @pytest.mark.asyncio
    async def test_preferences_rejected_without_identity(self, store):
        """Test the preferences repository guard."""
        repo = PreferencesRepository(store, AnonymousIdentity())
        with pytest.raises(Unauthenticated):
            await repo.get()
        with pytest.raises(Unauthenticated):
            await repo.save(UserPreferences())
        assert store.operations == []


class TestAdd:
    """Tests for add()."""

    @pytest.mark.asyncio
    async def test_add_then_list_includes_entity(self, store, identity):
        """Test that a new record is listed with an id and a created timestamp."""
        repo = AccountRepository(store, identity)
        before = datetime.now(timezone.utc)

        created = await repo.add(NewAccount(name="Nubank", currency="BRL", balance=Decimal("100")))
        listed = await repo.list()

        assert created.id
        assert created.created_at.state == TimestampState.PENDING
        assert [a.id for a in listed] == [created.id]

        stored = listed[0]
        assert stored.created_at.state == TimestampState.CONFIRMED
        # Store resolution is millisecond precision
        assert stored.created_at.value <= datetime.now(timezone.utc)
        assert stored.created_at.value >= before.replace(microsecond=before.microsecond // 1000 * 1000)
        assert stored.balance == Decimal("100")

    @pytest.mark.asyncio
    async def test_add_writes_server_timestamps_and_nulls(self, store, identity):
        """Test the stored payload."""
        repo = AccountRepository(store, identity)
        created = await repo.add(NewAccount(name="Nubank", currency="brl"))

        payload = store.snapshot()["users"][USER_ID]["accounts"][created.id]
        assert isinstance(payload["createdAt"], int)
        assert payload["createdAt"] == payload["updatedAt"]
        assert payload["providerName"] is None
        assert payload["currency"] == "BRL"
        assert "id" not in payload

    @pytest.mark.asyncio
    async def test_add_accepts_plain_dict(self, store, identity):
        """Test that a dict payload is validated into the creation model."""
        repo = TransactionRepository(store, identity)
        created = await repo.add(
            {"accountId": "acc-1", "date": "2024-02-03", "amount": -5, "transactionCurrency": "eur"}
        )
        assert created.transaction_currency == "EUR"
        assert created.date == date(2024, 2, 3)

    @pytest.mark.asyncio
    async def test_add_publishes_change(self, store, identity, notifier):
        """Test that a successful write is announced."""
        received: list[ChangeEvent] = []
        notifier.subscribe(received.append)
        repo = TransactionRepository(store, identity, notifier)

        await repo.add(make_transaction("2024-01-01"))

        assert received == [ChangeEvent(key=USER_TRANSACTIONS, user_id=USER_ID, collection="transactions")]


class TestList:
    """Tests for list()."""

    @pytest.mark.asyncio
    async def test_transactions_sorted_by_date_descending(self, store, identity):
        """Test newest-first ordering, stable within a day."""
        repo = TransactionRepository(store, identity)
        for day, desc in [("2024-01-15", "a"), ("2024-03-01", "b"), ("2024-01-15", "c"), ("2023-12-31", "d")]:
            await repo.add(make_transaction(day, description=desc))

        listed = await repo.list()

        assert [t.description for t in listed] == ["b", "a", "c", "d"]
        ascending = sorted(listed, key=lambda t: t.date)
        assert sorted(ascending, key=lambda t: t.date, reverse=True) == listed
        assert [t.date for t in listed] == sorted((t.date for t in listed), reverse=True)

    @pytest.mark.asyncio
    async def test_accounts_keep_store_order(self, store, identity):
        """Test that accounts are not re-sorted."""
        repo = AccountRepository(store, identity)
        for name in ["Zeta", "Alpha", "Mid"]:
            await repo.add(NewAccount(name=name, currency="USD"))
        assert [a.name for a in await repo.list()] == ["Zeta", "Alpha", "Mid"]

    @pytest.mark.asyncio
    async def test_empty_collection(self, store, identity):
        """Test listing a collection that was never written."""
        assert await SwapRepository(store, identity).list() == []

    @pytest.mark.asyncio
    async def test_malformed_records_are_skipped(self, identity):
        """Test that one bad record does not hide the rest."""
        store = InMemoryRemoteStore(
            {
                "users": {
                    USER_ID: {
                        "transactions": {
                            "bad": {"accountId": "acc-1"},
                            "worse": "not an object",
                            "good": {
                                "accountId": "acc-1",
                                "date": "2024-01-15",
                                "amount": 3,
                                "transactionCurrency": "USD",
                            },
                        }
                    }
                }
            }
        )
        listed = await TransactionRepository(store, identity).list()
        assert [t.id for t in listed] == ["good"]
        assert listed[0].created_at is None

    @pytest.mark.asyncio
    async def test_broken_legacy_account_is_skipped(self, identity):
        """Test that a legacy balances list with junk entries hides only that record."""
        store = InMemoryRemoteStore(
            {
                "users": {
                    USER_ID: {
                        "accounts": {
                            "good": {"name": "Nubank", "currency": "BRL", "balance": 10},
                            "bad": {"name": "Legacy", "balances": [5]},
                        }
                    }
                }
            }
        )
        listed = await AccountRepository(store, identity).list()
        assert [a.id for a in listed] == ["good"]

    @pytest.mark.asyncio
    async def test_other_users_are_invisible(self, store, identity):
        """Test that each user only sees their own namespace."""
        await AccountRepository(store, StaticIdentity("someone-else")).add(
            NewAccount(name="Theirs", currency="USD")
        )
        assert await AccountRepository(store, identity).list() == []


class TestUpdate:
    """Tests for update()."""

    @pytest.mark.asyncio
    async def test_missing_identifier_performs_no_write(self, store, identity):
        """Test MissingIdentifier with nothing sent to the store."""
        repo = TransactionRepository(store, identity)
        tx = Transaction(**make_transaction("2024-01-01").model_dump())

        with pytest.raises(MissingIdentifier):
            await repo.update(tx)
        assert store.operations == []

    @pytest.mark.asyncio
    async def test_update_merges_and_keeps_created_at(self, store, identity):
        """Test that update never touches createdAt."""
        repo = AccountRepository(store, identity)
        created = await repo.add(NewAccount(name="Nubank", currency="BRL"))

        def path_payload():
            return store.snapshot()["users"][USER_ID]["accounts"][created.id]

        original_created_at = path_payload()["createdAt"]

        changed = created.model_copy(update={"balance": Decimal("250.75"), "name": "Nubank PF"})
        updated = await repo.update(changed)

        payload = path_payload()
        assert payload["createdAt"] == original_created_at
        assert payload["balance"] == "250.75"
        assert payload["name"] == "Nubank PF"
        assert updated.updated_at.is_pending
        assert updated.created_at == created.created_at
        assert store.operations[-1] == ("update", f"users/{USER_ID}/accounts/{created.id}")


class TestRemove:
    """Tests for remove()."""

    @pytest.mark.asyncio
    async def test_remove_nonexistent_is_noop(self, store, identity):
        """Test idempotent deletes."""
        repo = SwapRepository(store, identity)
        await repo.remove("does-not-exist")
        await repo.remove("does-not-exist")

    @pytest.mark.asyncio
    async def test_remove_deletes_exact_path(self, store, identity):
        """Test that only the addressed record disappears."""
        repo = TransactionRepository(store, identity)
        keep = await repo.add(make_transaction("2024-01-01"))
        drop = await repo.add(make_transaction("2024-01-02"))

        await repo.remove(drop.id)

        assert [t.id for t in await repo.list()] == [keep.id]
        assert await repo.get(drop.id) is None
        assert (await repo.get(keep.id)).id == keep.id

    @pytest.mark.asyncio
    async def test_remove_requires_identifier(self, store, identity):
        """Test MissingIdentifier on an empty id."""
        with pytest.raises(MissingIdentifier):
            await AccountRepository(store, identity).remove("")
        assert store.operations == []

    @pytest.mark.asyncio
    async def test_account_removal_keeps_transactions(self, store, identity):
        """Test that there is no cascade delete."""
        accounts = AccountRepository(store, identity)
        transactions = TransactionRepository(store, identity)
        account = await accounts.add(NewAccount(name="Old", currency="USD"))
        await transactions.add(make_transaction("2024-01-01", account_id=account.id))

        await accounts.remove(account.id)

        assert len(await transactions.list_for_account(account.id)) == 1


class TestStoreFailures:
    """Tests that transport errors propagate untouched."""

    @pytest.mark.asyncio
    async def test_store_unavailable_propagates_without_retry(self, identity):
        """Test that repositories never retry."""
        store = FailingStore()
        repo = AccountRepository(store, identity)

        with pytest.raises(StoreUnavailable):
            await repo.list()
        with pytest.raises(StoreUnavailable):
            await repo.add(NewAccount(name="X", currency="USD"))
        assert store.calls == 2


class TestPreferences:
    """Tests for the preferences repository."""

    @pytest.mark.asyncio
    async def test_missing_preferences_written_with_defaults(self, store, identity):
        """Test that the first read stores the defaults."""
        repo = PreferencesRepository(store, identity, supported_currencies=["BRL", "USD"])
        prefs = await repo.get()

        assert prefs.preferred_currency == "BRL"
        assert store.snapshot()["users"][USER_ID]["preferences"] == {"preferredCurrency": "BRL"}

    @pytest.mark.asyncio
    async def test_read_without_create(self, store, identity):
        """Test that create_missing=False never writes."""
        repo = PreferencesRepository(store, identity)
        assert (await repo.get(create_missing=False)).preferred_currency == "BRL"
        assert store.snapshot() == {}

    @pytest.mark.asyncio
    async def test_unsupported_currency_falls_back(self, identity):
        """Test the fallback to the default display currency."""
        store = InMemoryRemoteStore({"users": {USER_ID: {"preferences": {"preferredCurrency": "XYZ"}}}})
        repo = PreferencesRepository(store, identity, supported_currencies=["BRL", "USD"])
        assert (await repo.get()).preferred_currency == "BRL"

    @pytest.mark.asyncio
    async def test_update_changes_currency(self, store, identity, notifier):
        """Test update() and its change event."""
        received = []
        notifier.subscribe(received.append)
        repo = PreferencesRepository(
            store, identity, supported_currencies=["BRL", "USD"], notifier=notifier
        )

        prefs = await repo.update(preferred_currency="usd")

        assert prefs.preferred_currency == "USD"
        assert received[-1].key == "userPreferences"


class TestSwaps:
    """Tests for swaps and their drafted legs."""

    @pytest.mark.asyncio
    async def test_swap_does_not_touch_balances(self, store, identity):
        """Test that recording a swap leaves account balances alone."""
        accounts = AccountRepository(store, identity)
        swaps = SwapRepository(store, identity)
        exchange = await accounts.add(NewAccount(name="Binance", currency="USDT", balance=Decimal("1000")))

        await swaps.add(
            NewSwap(
                date="2024-03-01",
                platform_account_id=exchange.id,
                from_asset="USDT",
                from_amount=Decimal("500"),
                to_asset="BTC",
                to_amount=Decimal("0.01"),
            )
        )

        assert (await accounts.get(exchange.id)).balance == Decimal("1000")
        assert await TransactionRepository(store, identity).list() == []

    def test_build_swap_legs(self):
        """Test the drafted sent, received and fee legs."""
        swap = NewSwap(
            date="2024-03-01",
            platform_account_id="ex-1",
            from_asset="USDT",
            from_amount=Decimal("500.00"),
            to_asset="BTC",
            to_amount=Decimal("0.0100"),
            fee_amount=Decimal("1.5"),
            fee_currency="usdt",
        )

        sent, received, fee = build_swap_legs(swap)

        assert sent.amount == Decimal("-500.00")
        assert sent.transaction_currency == "USDT"
        assert sent.description == "Swap: 500 USDT to 0.01 BTC (Sent)"
        assert sent.category == "Transfer"
        assert received.amount == Decimal("0.0100")
        assert received.tags == ["Swap Inflow"]
        assert fee.amount == Decimal("-1.5")
        assert fee.category == "Fees"
        assert fee.description == "Fee for Swap: 500 USDT to 0.01 BTC"

    def test_build_swap_legs_without_fee(self):
        """Test that a zero fee drafts no fee leg and persisted swaps are linked."""
        from ledgersync.models import Swap

        swap = Swap(
            id="s-1",
            date="2024-03-01",
            platform_account_id="ex-1",
            from_asset="BRL",
            from_amount=100,
            to_asset="USD",
            to_amount=19,
            fee_amount=0,
            fee_currency="BRL",
        )
        legs = build_swap_legs(swap)
        assert len(legs) == 2
        assert legs[0].tags == ["swap-leg:s-1", "Swap Outflow"]
