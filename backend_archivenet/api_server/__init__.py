"""
API server package — HTTP interface over the bootstrapped ledger runtime.
"""
