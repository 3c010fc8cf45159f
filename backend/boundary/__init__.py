"""
Boundary layer for external system integrations.

Handles all interactions with external systems (database, inference API,
object storage). Provides adapters and clients for infrastructure dependencies.
"""
