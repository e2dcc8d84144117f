"""
Swim Clinic Placement - back office for swim school clinic sign-ups.

This package contains the complete application:
- core: Framework-agnostic placement logic
- infrastructure: Document store, identity and email integrations
- api: FastAPI routes and dependencies
- config: Application configuration
"""

__version__ = "0.1.0"
