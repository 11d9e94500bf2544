"""
Vibeagent API package.

Request handlers for the users, households and jobs collections, the
document store abstraction they run against, and a FastAPI application
that serves them. The Cloud Functions entry point in ``main.py`` reuses
the same handlers.
"""
