"""VendorWallet aggregate (Event Sourced) — per-vendor balances and ledger.

The wallet is the only place vendor balances change. Each operation raises a
single event that both moves money and appends (or, for a release, completes)
one ``WalletTransaction``, so balances and the transaction log can never
drift apart.

Balance Model:
    pending:            Revenue from paid orders not yet delivered
    available:          Withdrawable money
    lifetime_earned:    Everything ever released from pending to available
    lifetime_withdrawn: Everything ever requested for payout

    available + pending == credits - debits - withdrawals (at all times)

The wallet identity is the vendor identity; a wallet is opened lazily, with
every balance at zero, the first time the vendor is credited.
"""

import json
import os
import random
import string
import time
from datetime import UTC, datetime
from enum import Enum
from uuid import uuid4

from protean import apply, invariant
from protean.exceptions import ValidationError
from protean.fields import (
    DateTime,
    Float,
    HasMany,
    Identifier,
    String,
    Text,
)

from marketplace.domain import marketplace
from marketplace.errors import BelowMinimum, InsufficientBalance
from marketplace.wallet.events import (
    PendingReleased,
    WalletCredited,
    WalletDebited,
    WalletOpened,
    WithdrawalRequested,
)


def _minimum_withdrawal() -> float:
    return float(os.environ.get("MARKETPLACE_MINIMUM_WITHDRAWAL", "100.0"))


MINIMUM_WITHDRAWAL = _minimum_withdrawal()


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class TransactionKind(Enum):
    CREDIT = "credit"
    DEBIT = "debit"
    WITHDRAWAL = "withdrawal"
    REFUND_DEBIT = "refund_debit"


class TransactionStatus(Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


class PayoutMethod(Enum):
    UPI = "upi"
    BANK_TRANSFER = "bank_transfer"
    PAYTM = "paytm"
    PHONEPE = "phonepe"
    GOOGLEPAY = "googlepay"


_MOBILE_WALLETS = {PayoutMethod.PAYTM.value, PayoutMethod.PHONEPE.value, PayoutMethod.GOOGLEPAY.value}


def _base36(number: int) -> str:
    digits = string.digits + string.ascii_uppercase
    encoded = ""
    while number:
        number, remainder = divmod(number, 36)
        encoded = digits[remainder] + encoded
    return encoded or "0"


def generate_transaction_ref() -> str:
    """Human-readable reference such as ``WLT-LZ3K9QWE-7GQ2XA``."""
    suffix = "".join(random.choices(string.ascii_uppercase + string.digits, k=6))
    return f"WLT-{_base36(int(time.time() * 1000))}-{suffix}"


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
@marketplace.value_object
class PayoutDestination:
    """Where a withdrawal should be paid out.

    The fields that must be present depend on the method: UPI needs a UPI id,
    a bank transfer needs holder, account number and IFSC, and the mobile
    wallets need a mobile number.
    """

    method = String(required=True, choices=PayoutMethod)
    upi_id = String(max_length=100)
    account_holder_name = String(max_length=100)
    account_number = String(max_length=30)
    ifsc_code = String(max_length=11)
    bank_name = String(max_length=100)
    mobile_number = String(max_length=15)

    @invariant.post
    def details_match_method(self):
        if self.method == PayoutMethod.UPI.value and not self.upi_id:
            raise ValidationError({"upi_id": ["UPI ID is required for UPI payouts"]})

        if self.method == PayoutMethod.BANK_TRANSFER.value:
            missing = [
                name
                for name in ("account_holder_name", "account_number", "ifsc_code")
                if not getattr(self, name)
            ]
            if missing:
                raise ValidationError({name: ["Required for bank transfers"] for name in missing})

        if self.method in _MOBILE_WALLETS and not self.mobile_number:
            raise ValidationError({"mobile_number": [f"Mobile number is required for {self.method} payouts"]})

    def details(self) -> dict:
        """Only the fields relevant to the method, for the payout record."""
        if self.method == PayoutMethod.UPI.value:
            return {"upi_id": self.upi_id}
        if self.method == PayoutMethod.BANK_TRANSFER.value:
            return {
                "account_holder_name": self.account_holder_name,
                "account_number": self.account_number,
                "ifsc_code": self.ifsc_code,
                "bank_name": self.bank_name,
            }
        return {"mobile_number": self.mobile_number}


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@marketplace.entity(part_of="VendorWallet")
class WalletTransaction:
    """One immutable ledger line.

    The only change ever applied is a credit's ``pending → completed`` when
    the order it came from is delivered.
    """

    transaction_ref = String(required=True, max_length=50)
    order_id = Identifier()
    amount = Float(required=True, min_value=0.0)
    kind = String(required=True, choices=TransactionKind)
    status = String(choices=TransactionStatus, default=TransactionStatus.PENDING.value)
    balance_after = Float(default=0.0)
    description = String(max_length=255)
    payout_method = String(max_length=20)
    payout_details = Text()  # JSON
    created_at = DateTime()
    updated_at = DateTime()


# ---------------------------------------------------------------------------
# Aggregate Root (Event Sourced)
# ---------------------------------------------------------------------------
@marketplace.aggregate(is_event_sourced=True)
class VendorWallet:
    vendor_id = Identifier(identifier=True, required=True)
    available = Float(default=0.0, min_value=0.0)
    pending = Float(default=0.0, min_value=0.0)
    lifetime_earned = Float(default=0.0, min_value=0.0)
    lifetime_withdrawn = Float(default=0.0, min_value=0.0)
    transactions = HasMany(WalletTransaction)
    opened_at = DateTime()
    updated_at = DateTime()

    # -------------------------------------------------------------------
    # Factory method
    # -------------------------------------------------------------------
    @classmethod
    def open(cls, vendor_id):
        """Open an empty wallet for a vendor seen for the first time."""
        wallet = cls(vendor_id=str(vendor_id))
        wallet.raise_(WalletOpened(vendor_id=str(vendor_id), opened_at=datetime.now(UTC)))
        return wallet

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    def _transaction(self, transaction_id):
        return next((t for t in (self.transactions or []) if str(t.id) == str(transaction_id)), None)

    def pending_credit_for(self, order_id):
        """The still-pending credit recorded for ``order_id``, if any."""
        return next(
            (
                t
                for t in (self.transactions or [])
                if t.kind == TransactionKind.CREDIT.value
                and t.status == TransactionStatus.PENDING.value
                and str(t.order_id) == str(order_id)
            ),
            None,
        )

    def has_reversal_for(self, order_id) -> bool:
        return any(
            t.kind == TransactionKind.REFUND_DEBIT.value and str(t.order_id) == str(order_id)
            for t in (self.transactions or [])
        )

    def history(self):
        """Transactions newest first."""
        return sorted(self.transactions or [], key=lambda t: t.created_at, reverse=True)

    # -------------------------------------------------------------------
    # Ledger operations
    # -------------------------------------------------------------------
    def credit(self, amount, order_id=None, description=None):
        """Park ``amount`` in pending. Returns the new transaction, or None for zero."""
        if amount is None or amount < 0:
            raise ValidationError({"amount": ["Credit amount cannot be negative"]})
        if amount == 0:
            return None

        amount = round(float(amount), 2)
        transaction_id = str(uuid4())
        self.raise_(
            WalletCredited(
                vendor_id=str(self.vendor_id),
                transaction_id=transaction_id,
                transaction_ref=generate_transaction_ref(),
                order_id=str(order_id) if order_id else None,
                amount=amount,
                description=description,
                new_pending=round(self.pending + amount, 2),
                balance_after=self.available,
                credited_at=datetime.now(UTC),
            )
        )
        return self._transaction(transaction_id)

    def release(self, amount, order_id):
        """Move the order's pending credit into available.

        At most what is actually pending moves. Without a pending credit for
        the order (never credited, or already released) nothing happens and
        0.0 is returned, which makes a repeated delivery harmless.
        """
        credit = self.pending_credit_for(order_id)
        if credit is None:
            return 0.0

        moved = round(min(float(amount), self.pending), 2)
        if moved < 0:
            moved = 0.0

        self.raise_(
            PendingReleased(
                vendor_id=str(self.vendor_id),
                transaction_id=str(credit.id),
                order_id=str(order_id),
                amount=moved,
                new_pending=round(self.pending - moved, 2),
                new_available=round(self.available + moved, 2),
                new_lifetime_earned=round(self.lifetime_earned + moved, 2),
                released_at=datetime.now(UTC),
            )
        )
        return moved

    def debit(self, amount, order_id=None, description=None):
        """Reverse a credit: pending first, then available, never below zero.

        The transaction always records the full amount asked for, even when
        the balances could not cover it.
        """
        if amount is None or amount <= 0:
            raise ValidationError({"amount": ["Debit amount must be positive"]})

        amount = round(float(amount), 2)
        from_pending = round(min(amount, self.pending), 2)
        from_available = round(min(amount - from_pending, self.available), 2)

        transaction_id = str(uuid4())
        self.raise_(
            WalletDebited(
                vendor_id=str(self.vendor_id),
                transaction_id=transaction_id,
                transaction_ref=generate_transaction_ref(),
                order_id=str(order_id) if order_id else None,
                amount=amount,
                from_pending=from_pending,
                from_available=from_available,
                description=description,
                new_pending=round(self.pending - from_pending, 2),
                new_available=round(self.available - from_available, 2),
                debited_at=datetime.now(UTC),
            )
        )
        return self._transaction(transaction_id)

    def request_withdrawal(self, amount, destination: PayoutDestination):
        """Take ``amount`` out of available for an external payout."""
        if amount is None or amount <= 0:
            raise ValidationError({"amount": ["Withdrawal amount must be positive"]})
        if destination is None:
            raise ValidationError({"destination": ["A payout destination is required"]})

        amount = round(float(amount), 2)
        if amount > self.available:
            raise InsufficientBalance(
                {"amount": [f"Insufficient balance: {self.available:.2f} available, {amount:.2f} requested"]}
            )
        if amount < MINIMUM_WITHDRAWAL:
            raise BelowMinimum({"amount": [f"Minimum withdrawal amount is {MINIMUM_WITHDRAWAL:.2f}"]})

        transaction_id = str(uuid4())
        self.raise_(
            WithdrawalRequested(
                vendor_id=str(self.vendor_id),
                transaction_id=transaction_id,
                transaction_ref=generate_transaction_ref(),
                amount=amount,
                payout_method=destination.method,
                payout_details=json.dumps(destination.details()),
                new_available=round(self.available - amount, 2),
                new_lifetime_withdrawn=round(self.lifetime_withdrawn + amount, 2),
                requested_at=datetime.now(UTC),
            )
        )
        return self._transaction(transaction_id)

    # -------------------------------------------------------------------
    # @apply methods: rebuild state during event replay
    # -------------------------------------------------------------------
    @apply
    def _on_wallet_opened(self, event: WalletOpened):
        self.vendor_id = event.vendor_id
        self.available = 0.0
        self.pending = 0.0
        self.lifetime_earned = 0.0
        self.lifetime_withdrawn = 0.0
        self.opened_at = event.opened_at
        self.updated_at = event.opened_at

    @apply
    def _on_wallet_credited(self, event: WalletCredited):
        self.pending = event.new_pending
        self.add_transactions(
            WalletTransaction(
                id=event.transaction_id,
                transaction_ref=event.transaction_ref,
                order_id=event.order_id,
                amount=event.amount,
                kind=TransactionKind.CREDIT.value,
                status=TransactionStatus.PENDING.value,
                balance_after=event.balance_after,
                description=event.description,
                created_at=event.credited_at,
                updated_at=event.credited_at,
            )
        )
        self.updated_at = event.credited_at

    @apply
    def _on_pending_released(self, event: PendingReleased):
        self.pending = event.new_pending
        self.available = event.new_available
        self.lifetime_earned = event.new_lifetime_earned

        credit = self._transaction(event.transaction_id)
        if credit:
            credit.status = TransactionStatus.COMPLETED.value
            credit.balance_after = event.new_available
            credit.updated_at = event.released_at
        self.updated_at = event.released_at

    @apply
    def _on_wallet_debited(self, event: WalletDebited):
        self.pending = event.new_pending
        self.available = event.new_available
        self.add_transactions(
            WalletTransaction(
                id=event.transaction_id,
                transaction_ref=event.transaction_ref,
                order_id=event.order_id,
                amount=event.amount,
                kind=TransactionKind.REFUND_DEBIT.value,
                status=TransactionStatus.COMPLETED.value,
                balance_after=event.new_available,
                description=event.description,
                created_at=event.debited_at,
                updated_at=event.debited_at,
            )
        )
        self.updated_at = event.debited_at

    @apply
    def _on_withdrawal_requested(self, event: WithdrawalRequested):
        self.available = event.new_available
        self.lifetime_withdrawn = event.new_lifetime_withdrawn
        self.add_transactions(
            WalletTransaction(
                id=event.transaction_id,
                transaction_ref=event.transaction_ref,
                amount=event.amount,
                kind=TransactionKind.WITHDRAWAL.value,
                status=TransactionStatus.PENDING.value,
                balance_after=event.new_available,
                description=f"Withdrawal via {event.payout_method}",
                payout_method=event.payout_method,
                payout_details=event.payout_details,
                created_at=event.requested_at,
                updated_at=event.requested_at,
            )
        )
        self.updated_at = event.requested_at
