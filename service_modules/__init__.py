"""
Services package - organized service modules.

Each service is constructed with a SQLAlchemy session factory; the
get_*_service helpers build them for FastAPI's dependency injection.
"""
