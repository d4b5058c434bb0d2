"""Production adapters (PostgreSQL, HTTP completion service)."""
