"""
Transaction Repository

Transactions are listed newest first. Transactions on the same date
keep store order, which is creation order.

Deleting an account does NOT delete its transactions; `account_id` is a
weak reference.
"""

from ledgersync.models.ledger import NewTransaction, Transaction
from ledgersync.repositories.base import EntityRepository


class TransactionRepository(EntityRepository[Transaction, NewTransaction]):
    """CRUD for users/{userId}/transactions."""

    collection = "transactions"
    entity_name = "transaction"
    model = Transaction
    new_model = NewTransaction

    def sort(self, items: list[Transaction]) -> list[Transaction]:
        # sorted() is stable, so same-day records stay in store order
        return sorted(items, key=lambda t: t.date, reverse=True)

    async def list_for_account(self, account_id: str) -> list[Transaction]:
        """Transactions of one account, newest first."""
        return [t for t in await self.list() if t.account_id == account_id]
