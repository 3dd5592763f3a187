"""
API Module
---------
Provides the HTTP endpoints of the employee location tracker using FastAPI.
Features include:
- Manager login with signed session cookies and rate limiting
- Creating, listing and checking employees
- Location updates with reverse geocoding
- Stop-sharing
"""
