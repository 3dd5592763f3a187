"""
Data Models Module
----------------
Contains Pydantic models for data validation and serialization.
Defines the employee record and the request bodies of the location-sharing endpoints.
"""
