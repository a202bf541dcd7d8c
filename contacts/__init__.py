"""
Contacts API package.

A FastAPI service managing a single ``users`` resource, backed by a
SQLAlchemy database, a managed Supabase Postgres table, or an in-memory
store for development.
"""
