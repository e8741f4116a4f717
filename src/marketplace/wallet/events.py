"""Domain events for the VendorWallet aggregate.

Every balance-affecting event carries the resulting balances rather than
deltas, so replaying the stream always lands on exactly the state that was
committed, even if rounding rules change later.
"""

from protean.fields import DateTime, Float, Identifier, String, Text

from marketplace.domain import marketplace


@marketplace.event(part_of="VendorWallet")
class WalletOpened:
    """A vendor received its first ledger entry. Balances start at zero."""

    __version__ = 1

    vendor_id = Identifier(required=True)
    opened_at = DateTime(required=True)


@marketplace.event(part_of="VendorWallet")
class WalletCredited:
    """Revenue from a paid order was parked in the pending balance."""

    __version__ = 1

    vendor_id = Identifier(required=True)
    transaction_id = Identifier(required=True)
    transaction_ref = String(required=True, max_length=50)
    order_id = Identifier()
    amount = Float(required=True)
    description = String(max_length=255)
    new_pending = Float(required=True)
    balance_after = Float(required=True)
    credited_at = DateTime(required=True)


@marketplace.event(part_of="VendorWallet")
class PendingReleased:
    """A delivered order's pending credit became withdrawable."""

    __version__ = 1

    vendor_id = Identifier(required=True)
    transaction_id = Identifier(required=True)  # The credit being completed
    order_id = Identifier()
    amount = Float(required=True)
    new_pending = Float(required=True)
    new_available = Float(required=True)
    new_lifetime_earned = Float(required=True)
    released_at = DateTime(required=True)


@marketplace.event(part_of="VendorWallet")
class WalletDebited:
    """A cancelled order's credit was reversed, pending first, then available."""

    __version__ = 1

    vendor_id = Identifier(required=True)
    transaction_id = Identifier(required=True)
    transaction_ref = String(required=True, max_length=50)
    order_id = Identifier()
    amount = Float(required=True)
    from_pending = Float(required=True)
    from_available = Float(required=True)
    description = String(max_length=255)
    new_pending = Float(required=True)
    new_available = Float(required=True)
    debited_at = DateTime(required=True)


@marketplace.event(part_of="VendorWallet")
class WithdrawalRequested:
    """A vendor asked for a payout. The money leaves available immediately."""

    __version__ = 1

    vendor_id = Identifier(required=True)
    transaction_id = Identifier(required=True)
    transaction_ref = String(required=True, max_length=50)
    amount = Float(required=True)
    payout_method = String(required=True, max_length=20)
    payout_details = Text()  # JSON: destination fields for the payout method
    new_available = Float(required=True)
    new_lifetime_withdrawn = Float(required=True)
    requested_at = DateTime(required=True)
