"""portfolio_server — FastAPI REST server for portfolio submissions.

Exposes the form engine SDK over HTTP: portfolio schemas, identity lookup,
draft/final saves, self-service listing, and admin export.
"""
