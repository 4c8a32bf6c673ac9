"""
Healthvault - healthcare record backend.

Role-based signup and login with professional identity verification for doctors
and staff, plus a bridge that reconciles externally authenticated users.
"""

__version__ = "1.0.0"
