"""
Sales Kernel - transactional invariant enforcement

Guards two rules over the sales dataset:
- Every employee title change is recorded in an append-only audit trail
- Every order line is admitted only against sufficient stock, with the
  stock decremented in the same transaction
"""

__version__ = "0.1.0"
