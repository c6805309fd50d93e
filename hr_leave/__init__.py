"""HR Leave Service: leave requests, balance ledger and approval workflow."""
__version__ = "1.0.0"
