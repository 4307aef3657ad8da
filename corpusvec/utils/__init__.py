"""
Shared utility functions.

This subpackage includes:
- pipeline configuration loading
- directory management for artifacts
- logging helpers used across the project
- progress reporters passed explicitly to the jobs
"""
