"""
Auth package for the Affiliate Platform.

Provides the shared-password check behind the dashboard login.
"""
