"""Pydantic schemas for requests, responses and change events."""
