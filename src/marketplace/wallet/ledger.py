"""Wallet ledger operations used by the order and withdrawal handlers.

Each function loads the vendor's wallet (opening it on first use), applies a
single operation and stages the wallet in the current unit of work. Nothing
is committed here: the calling command handler decides whether the whole
unit of work, order changes included, lands or not.

Callers must hold the vendor's lock (see ``marketplace.locks``) around the
enclosing command so concurrent operations on one wallet are serialized.
"""

from dataclasses import dataclass

import structlog
from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from marketplace.wallet.wallet import VendorWallet

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class LedgerMovement:
    """A committed change to a vendor wallet, reported to the caller after commit."""

    kind: str  # credit, release, debit, withdrawal
    vendor_id: str
    amount: float
    order_id: str | None = None
    description: str | None = None


def load_wallet(vendor_id, open_if_missing=True):
    repo = current_domain.repository_for(VendorWallet)
    try:
        return repo.get(str(vendor_id))
    except ObjectNotFoundError:
        if not open_if_missing:
            raise
        logger.info("Opening wallet", vendor_id=str(vendor_id))
        return VendorWallet.open(vendor_id)


def credit(vendor_id, amount, order_id=None, description=None):
    """Add ``amount`` to the vendor's pending balance."""
    if amount == 0:
        logger.debug("Skipping zero credit", vendor_id=str(vendor_id), order_id=order_id)
        return None

    wallet = load_wallet(vendor_id)
    transaction = wallet.credit(amount, order_id=order_id, description=description)
    current_domain.repository_for(VendorWallet).add(wallet)

    logger.info(
        "Wallet credited",
        vendor_id=str(vendor_id),
        order_id=order_id,
        amount=amount,
        pending=wallet.pending,
    )
    return transaction


def release(vendor_id, order_id):
    """Release the order's pending credit in full. Returns the amount that moved.

    The amount moved is the one credited at placement, whatever the
    commission rate is now.
    """
    try:
        wallet = load_wallet(vendor_id, open_if_missing=False)
    except ObjectNotFoundError:
        logger.warning("No wallet to release from", vendor_id=str(vendor_id), order_id=order_id)
        return 0.0

    credit = wallet.pending_credit_for(order_id)
    if credit is None:
        logger.warning(
            "No pending credit to release",
            vendor_id=str(vendor_id),
            order_id=order_id,
        )
        return 0.0

    moved = wallet.release(credit.amount, order_id)
    current_domain.repository_for(VendorWallet).add(wallet)

    logger.info(
        "Pending balance released",
        vendor_id=str(vendor_id),
        order_id=order_id,
        credited=credit.amount,
        released=moved,
        available=wallet.available,
    )
    return moved


def reverse_credit(vendor_id, order_id, description=None):
    """Debit back the order's pending credit, if the vendor holds one.

    Returns the ``refund_debit`` transaction, or None when there was nothing
    to reverse.
    """
    try:
        wallet = load_wallet(vendor_id, open_if_missing=False)
    except ObjectNotFoundError:
        return None

    credit = wallet.pending_credit_for(order_id)
    if credit is None or wallet.has_reversal_for(order_id):
        return None

    transaction = wallet.debit(credit.amount, order_id=order_id, description=description)
    current_domain.repository_for(VendorWallet).add(wallet)

    logger.info(
        "Wallet debited",
        vendor_id=str(vendor_id),
        order_id=order_id,
        amount=credit.amount,
        pending=wallet.pending,
        available=wallet.available,
    )
    return transaction


def debit(vendor_id, amount, order_id=None, description=None):
    """Remove ``amount`` from the vendor's wallet, pending first."""
    wallet = load_wallet(vendor_id)
    transaction = wallet.debit(amount, order_id=order_id, description=description)
    current_domain.repository_for(VendorWallet).add(wallet)

    logger.info(
        "Wallet debited",
        vendor_id=str(vendor_id),
        order_id=order_id,
        amount=amount,
        pending=wallet.pending,
        available=wallet.available,
    )
    return transaction


def withdraw(vendor_id, amount, destination):
    """Take ``amount`` out of available for payout to ``destination``."""
    wallet = load_wallet(vendor_id)
    transaction = wallet.request_withdrawal(amount, destination)
    current_domain.repository_for(VendorWallet).add(wallet)

    logger.info(
        "Withdrawal requested",
        vendor_id=str(vendor_id),
        amount=amount,
        payout_method=destination.method,
        available=wallet.available,
    )
    return transaction
