"""
Infrastructure layer - external service integrations.

Each subdirectory wraps an external dependency:
- snowflake: Connection handling for the warehouse
- documents: Document store (Snowflake VARIANT table, or in-memory)
- repositories: Domain models to and from stored documents
- identity: Bearer token verification and admin lookup
- notifications: Outbound email

These wrappers translate between external formats and our domain models.
"""
