"""
Geocoding Module
--------------
Handles reverse geocoding operations to convert geographic coordinates to place names.
Uses OpenStreetMap's Nominatim API with a time-bounded cache for efficient processing.
"""
