"""Catalog domain: models handed to callers and records kept by the store."""
