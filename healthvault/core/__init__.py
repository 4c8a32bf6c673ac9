"""
Cross-cutting pieces: security primitives, audit log, storage, Firebase handle, middleware.
"""
