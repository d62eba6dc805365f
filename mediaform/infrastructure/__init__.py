"""
Infrastructure layer - external service integrations.

Each subdirectory wraps an external dependency:
- snowflake: Submission record persistence
- storage: Object storage (R2/S3) for photos and videos

These wrappers translate between external formats and our domain models.
"""
