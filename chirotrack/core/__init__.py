"""
Shared infrastructure: security helpers, audit log, notifications, middleware.
"""
