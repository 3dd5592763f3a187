"""
Database Module
-------------
Handles persistence of employee records.
Uses a flat CSV file as the single source of truth, guarded by a single-writer lock.
"""
