"""
Infrastructure adapters: persistence, monitoring, observability.
"""
