"""Vendor withdrawals — command and handler.

A withdrawal only reserves the money: it leaves ``available`` at once and
waits as a pending transaction for the payout team (or a payout provider) to
settle it outside this system.
"""

from protean import handle
from protean.fields import Float, Identifier, String

from marketplace.domain import marketplace
from marketplace.wallet import ledger
from marketplace.wallet.ledger import LedgerMovement
from marketplace.wallet.wallet import PayoutDestination, VendorWallet


@marketplace.command(part_of="VendorWallet")
class RequestWithdrawal:
    vendor_id = Identifier(required=True)
    amount = Float(required=True)
    method = String(required=True, max_length=20)
    upi_id = String(max_length=100)
    account_holder_name = String(max_length=100)
    account_number = String(max_length=30)
    ifsc_code = String(max_length=11)
    bank_name = String(max_length=100)
    mobile_number = String(max_length=15)


@marketplace.command_handler(part_of=VendorWallet)
class RequestWithdrawalHandler:
    @handle(RequestWithdrawal)
    def request_withdrawal(self, command):
        destination = PayoutDestination(
            method=command.method,
            upi_id=command.upi_id,
            account_holder_name=command.account_holder_name,
            account_number=command.account_number,
            ifsc_code=command.ifsc_code,
            bank_name=command.bank_name,
            mobile_number=command.mobile_number,
        )
        transaction = ledger.withdraw(command.vendor_id, command.amount, destination)
        return LedgerMovement(
            kind="withdrawal",
            vendor_id=str(command.vendor_id),
            amount=transaction.amount,
            description=transaction.transaction_ref,
        )
