"""
Staff profiles for organization employees verified through the credential registry.
"""
