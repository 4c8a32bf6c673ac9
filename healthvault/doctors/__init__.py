"""
Doctor profiles and their verification state.
"""
