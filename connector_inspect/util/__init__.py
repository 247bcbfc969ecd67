"""
Utility functions and helpers.

Modules:
- files: Source reading and artifact writing
- hashing: Content hashes and deterministic identifiers
- logging: Logging configuration
"""
