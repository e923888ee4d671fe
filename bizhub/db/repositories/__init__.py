"""
Per-domain repository modules for database access.

Routers call these functions instead of querying models directly. Lookups
return None when a row is missing; business rule violations raise the
ValueError subclasses from `errors`.
"""
