"""
Authentication module for the healthcare record system.

This module provides authentication and authorization functionality including:
- Role-based signup with doctor/staff credential verification
- Password login with refresh sessions
- Verification document upload and admin approval
- Reconciliation of externally authenticated users (hybrid auth)
"""
