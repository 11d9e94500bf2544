"""
HTTP routes for the API.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends

from vibeagent_api import handlers
from vibeagent_api.config import Settings
from vibeagent_api.dependencies import get_app_settings, get_document_store
from vibeagent_api.schemas import (
    HealthResponse,
    HouseholdWrite,
    JobWrite,
    UserDetailResponse,
    UserWrite,
)
from vibeagent_api.store import DocumentStore

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
def health():
    return handlers.health()


# === USERS ===


@router.get("/users/{phone}", response_model=UserDetailResponse)
def get_user(
    phone: str,
    store: DocumentStore = Depends(get_document_store),
    settings: Settings = Depends(get_app_settings),
):
    """
    Returns the user with its households and active jobs.
    """
    return handlers.get_user_detail(
        store, phone, max_workers=settings.household_fetch_workers
    )


@router.post("/users", status_code=201)
def create_user(
    payload: Optional[UserWrite] = None,
    store: DocumentStore = Depends(get_document_store),
):
    return handlers.create_user(store, payload or UserWrite())


@router.put("/users/{phone}")
def upsert_user(
    phone: str,
    payload: Optional[UserWrite] = None,
    store: DocumentStore = Depends(get_document_store),
):
    return handlers.upsert_user(store, phone, payload or UserWrite())


# === HOUSEHOLDS ===


@router.get("/households/{household_id}")
def get_household(
    household_id: str, store: DocumentStore = Depends(get_document_store)
):
    return handlers.get_household(store, household_id)


@router.post("/households", status_code=201)
def create_household(
    payload: Optional[HouseholdWrite] = None,
    store: DocumentStore = Depends(get_document_store),
):
    return handlers.create_household(store, payload or HouseholdWrite())


@router.put("/households/{household_id}")
def upsert_household(
    household_id: str,
    payload: Optional[HouseholdWrite] = None,
    store: DocumentStore = Depends(get_document_store),
):
    return handlers.upsert_household(store, household_id, payload or HouseholdWrite())


# === JOBS ===


@router.get("/jobs/{job_id}")
def get_job(job_id: str, store: DocumentStore = Depends(get_document_store)):
    return handlers.get_job(store, job_id)


@router.post("/jobs", status_code=201)
def create_job(
    payload: Optional[JobWrite] = None,
    store: DocumentStore = Depends(get_document_store),
):
    """
    Creates a job. `status` defaults to "open".
    """
    return handlers.create_job(store, payload or JobWrite())


@router.put("/jobs/{job_id}")
def upsert_job(
    job_id: str,
    payload: Optional[JobWrite] = None,
    store: DocumentStore = Depends(get_document_store),
):
    return handlers.upsert_job(store, job_id, payload or JobWrite())
