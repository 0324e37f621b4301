"""
User directory and account self-service (names and password).
"""
