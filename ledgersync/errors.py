"""
Error taxonomy for the ledger core.

Every failure the core can produce is one of these types. None of them
are swallowed internally - callers decide what the user sees.
"""


class LedgerError(Exception):
    """Base exception for all ledger errors."""
    pass


class Unauthenticated(LedgerError):
    """No resolved user identity for the requested operation."""
    pass


class MissingIdentifier(LedgerError):
    """An update or delete was requested without an entity id."""
    pass


class ConversionRateUnavailable(LedgerError):
    """No exchange rate is known for a currency pair."""

    def __init__(self, from_currency: str, to_currency: str):
        self.from_currency = from_currency
        self.to_currency = to_currency
        super().__init__(
            f"No exchange rate available to convert {from_currency} to {to_currency}"
        )
