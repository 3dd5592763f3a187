"""
Authentication Module
-------------------
Manager login support: bcrypt-hashed credentials read from the data directory
and a per-client rate limit on login attempts.
"""
