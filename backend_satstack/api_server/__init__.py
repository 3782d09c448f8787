"""
API server package — HTTP interface for wallet management and sync.
"""
