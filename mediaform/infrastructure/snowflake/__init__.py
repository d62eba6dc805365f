"""
Snowflake persistence for submission records.

Includes mock mode with in-memory storage for local development.
"""
