"""
Authentication module for ChiroTrack.

This module provides:
- Registration and login with email and password
- Google (Firebase) sign-in with account linking
- Bearer authentication accepting federated or local session tokens
- Logout through a revocation ledger
- Password reset with emailed one-time codes
"""
