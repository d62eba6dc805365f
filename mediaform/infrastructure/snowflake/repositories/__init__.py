"""
Repository pattern implementations for Snowflake.

Repositories translate between domain models and database representations.
"""

from .forms import ConnectingFormRepository, FormRepository, SnowflakeConfig

__all__ = ["ConnectingFormRepository", "FormRepository", "SnowflakeConfig"]
