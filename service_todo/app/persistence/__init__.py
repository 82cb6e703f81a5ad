"""
Persistence package for the Todo service (PostgreSQL source of truth).
"""
