"""auth/ -- Authentication and authorization package for RecipeHub.

Credential verification (tokens.py), session issuing (sessions.py), the
per-request access guard (guard.py) and their persistence (store.py).

Layer rule: auth/ imports only core/, stdlib and third-party libraries.
It does NOT import from api/, web/, resources/, or cache/.
api/ and web/ import from auth/, not the other way around.
"""
