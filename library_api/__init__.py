"""
FastAPI REST API for the MongoDB-backed book library.

This package provides:
- Book create, lookup, listing and deletion endpoints
- Startup-time resolution of the database connection string from a
  local file, a KMS-encrypted file, an environment variable or
  Secret Manager
"""
