"""Marketplace bounded context — Order Lifecycle and Vendor Wallet Ledger.

Handles the multi-vendor order lifecycle (event-sourced), the per-vendor
revenue split of an order, and the vendor wallet ledger that tracks pending
and available balances, releases, reversals and withdrawals. Delivery partners
earn the delivery payment of every order they deliver.
"""

from protean.domain import Domain

marketplace = Domain(name="marketplace")
