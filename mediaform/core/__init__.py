"""
Core business logic for form submissions.

This module is framework-agnostic - it doesn't import FastAPI, boto3,
Snowflake or any infrastructure concerns. The upload and assembly logic
can be tested with plain fakes.
"""
