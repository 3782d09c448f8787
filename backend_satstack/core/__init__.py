"""
Core utilities — domain exceptions shared by providers, sync, store and API.
"""
