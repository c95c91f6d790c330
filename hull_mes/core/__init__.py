"""
Core application utilities.

This package provides:
- Application-level settings (separate from DB settings)
- Logging context, typed domain errors and JWT helpers
- The authorization gate and FastAPI dependencies
"""
