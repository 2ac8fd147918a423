"""
Account Repository

Accounts are listed in store order (creation order for push keys).
Balances are whatever the user last saved; nothing here recomputes
them from transactions or swaps.
"""

from ledgersync.models.ledger import Account, NewAccount
from ledgersync.repositories.base import EntityRepository


class AccountRepository(EntityRepository[Account, NewAccount]):
    """CRUD for users/{userId}/accounts."""

    collection = "accounts"
    entity_name = "account"
    model = Account
    new_model = NewAccount
