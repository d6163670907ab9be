"""Application package for the EduConnect student services backend.

This package exposes the service, repository and model modules used by
the FastAPI application, the collection helpers under `utils` and the
client-side state store under `client`. Individual modules contain the
concrete implementations and documentation.
"""
