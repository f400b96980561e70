"""
REST API over the classified benefit listings store.
"""
