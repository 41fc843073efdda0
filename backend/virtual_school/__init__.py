"""Application package for the Virtual School backend.

This package exposes the service, grading and generator modules used by
the FastAPI application, plus a small `client` subpackage holding the API
client and the in-memory session state used by the learner-facing views.
Individual modules contain the concrete implementations and documentation.
"""
