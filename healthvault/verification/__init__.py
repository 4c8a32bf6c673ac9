"""
Professional identity verification against the credential registry.
"""
