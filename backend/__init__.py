"""
Backend package for the entries site.

This package provides a FastAPI application with auth, entry and image
services over a database abstraction, so the same routes run against an
in-memory store in development and a SQL database in production.
"""
