"""
Class Schedule Backend.

Recurring class schedule engine of the class-management platform: weekly
class series, the concrete sessions materialized from them, and the HTTP API
(see main.py) the rest of the platform talks to.
"""
