"""
Core business logic for clinic placement.

This module is framework-agnostic - it doesn't import FastAPI, Snowflake,
or any infrastructure concerns, so aggregation, placement validation and
recommendations can be tested in isolation.
"""
