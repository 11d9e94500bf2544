"""
Dependency wiring for the FastAPI app.
"""

from __future__ import annotations

import logging

import firebase_admin
from fastapi import Request
from firebase_admin import firestore

from vibeagent_api.config import Settings
from vibeagent_api.store import (
    DocumentStore,
    FirestoreDocumentStore,
    InMemoryDocumentStore,
    SqlDocumentStore,
)

logger = logging.getLogger(__name__)


def _firebase_app(project_id: str | None) -> firebase_admin.App:
    try:
        return firebase_admin.get_app()
    except ValueError:
        options = {"projectId": project_id} if project_id else None
        return firebase_admin.initialize_app(options=options)


def build_document_store(settings: Settings) -> DocumentStore:
    """Constructs the store selected by `settings.store_backend`."""
    if settings.store_backend == "firestore":
        app = _firebase_app(settings.firestore_project_id)
        return FirestoreDocumentStore(firestore.client(app))

    if settings.store_backend == "sql":
        return SqlDocumentStore(settings.database_url or "")

    logger.warning(
        "Using the in-memory document store; data is lost when the process exits"
    )
    return InMemoryDocumentStore()


def get_document_store(request: Request) -> DocumentStore:
    """Returns the store the app was created with."""
    return request.app.state.store


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings
