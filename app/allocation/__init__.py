"""
Allocation app.

Pool of shared payment collection accounts, the usage ledger that tracks
what each account received in the current day and month, and the
allocator that picks an account for a new payment.

Usage:
    from allocation.services import AccountAllocator, UsageLedger
    from allocation.models import TransactionType

    result = AccountAllocator.allocate(TransactionType.GOODS, Decimal("20.00"))
    if result.success:
        account = result.data
"""
