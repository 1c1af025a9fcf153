"""Common module - errors, exceptions and the health route."""
