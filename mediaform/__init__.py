"""
Media Form - a form service that relays photos and videos to object storage.

This package contains the complete application:
- core: Framework-agnostic submission logic (upload orchestration, assembly)
- infrastructure: External service integrations (R2, Snowflake)
- api: FastAPI routes and dependencies
- config: Application configuration
"""

__version__ = "0.1.0"
