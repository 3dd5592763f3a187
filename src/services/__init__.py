"""
Services Module
-------------
Business logic sitting between the API and the record store:
location updates, the sharing conflict guard and stop-sharing.
"""
