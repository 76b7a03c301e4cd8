"""
Ephemeral Store
Owner-scoped blob storage with automatic expiry
"""
