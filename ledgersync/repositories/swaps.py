"""
Swap Repository

KNOWN LIMITATION: a swap is a record of what happened on a platform.
It does NOT move money between accounts and does NOT change any balance.
`build_swap_legs` drafts the matching transactions for the user to
review and record; nothing persists them automatically.
"""

from decimal import Decimal
from typing import Union

from ledgersync.models.ledger import NewSwap, NewTransaction, Swap
from ledgersync.repositories.base import EntityRepository


TRANSFER_CATEGORY = "Transfer"
FEES_CATEGORY = "Fees"


class SwapRepository(EntityRepository[Swap, NewSwap]):
    """CRUD for users/{userId}/swaps."""

    collection = "swaps"
    entity_name = "swap"
    model = Swap
    new_model = NewSwap

    def sort(self, items: list[Swap]) -> list[Swap]:
        return sorted(items, key=lambda s: s.date, reverse=True)


def _plain(amount: Decimal) -> str:
    """1.50000 → 1.5, 100 → 100 (no exponent notation)."""
    return format(amount.normalize(), "f")


def build_swap_legs(swap: Union[Swap, NewSwap]) -> list[NewTransaction]:
    """
    Draft transactions mirroring a swap on its platform account.

    Returns the sent leg, the received leg and, when a positive fee with
    a currency is present, a fee leg. All legs are tagged with
    `swap-leg:{swapId}` once the swap has an id.
    """
    summary = (
        f"Swap: {_plain(swap.from_amount)} {swap.from_asset} "
        f"to {_plain(swap.to_amount)} {swap.to_asset}"
    )
    link = [f"swap-leg:{swap.id}"] if getattr(swap, "id", "") else []

    legs = [
        NewTransaction(
            account_id=swap.platform_account_id,
            date=swap.date,
            description=f"{summary} (Sent)",
            category=TRANSFER_CATEGORY,
            amount=-abs(swap.from_amount),
            transaction_currency=swap.from_asset,
            tags=link + ["Swap Outflow"],
        ),
        NewTransaction(
            account_id=swap.platform_account_id,
            date=swap.date,
            description=f"{summary} (Received)",
            category=TRANSFER_CATEGORY,
            amount=abs(swap.to_amount),
            transaction_currency=swap.to_asset,
            tags=link + ["Swap Inflow"],
        ),
    ]

    if swap.fee_amount is not None and swap.fee_amount > 0 and swap.fee_currency:
        legs.append(
            NewTransaction(
                account_id=swap.platform_account_id,
                date=swap.date,
                description=f"Fee for {summary}",
                category=FEES_CATEGORY,
                amount=-swap.fee_amount,
                transaction_currency=swap.fee_currency,
                tags=link + ["Swap Fee"],
            )
        )
    return legs
