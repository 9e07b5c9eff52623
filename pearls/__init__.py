"""
Pearls - multi-tenant thread/pearl service with role-based access control.
"""

__version__ = "1.0.0"
