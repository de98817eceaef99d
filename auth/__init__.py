"""auth/ -- Authentication and authorization package for Bandstand.

Layer rule: auth/ imports only stdlib and third-party libraries.
It does NOT import from api/. api/ imports from auth/, not the other way
around. Only auth/dependencies.py knows about FastAPI.
"""
