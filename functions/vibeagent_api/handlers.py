"""
Request handlers for users, households and jobs.

Handlers take an explicitly constructed DocumentStore and validated request
models, and raise errors from `vibeagent_api.errors`. They know nothing
about the HTTP framework serving them.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from typing import Optional

from vibeagent_api.errors import NotFoundError, ValidationError
from vibeagent_api.phone import normalize_phone_number
from vibeagent_api.schemas import HouseholdWrite, JobWrite, UserWrite
from vibeagent_api.store import (
    HOUSEHOLDS_COLLECTION,
    JOBS_COLLECTION,
    USERS_COLLECTION,
    DocumentStore,
)

logger = logging.getLogger(__name__)

CREATE_TIMESTAMPS = ("created_at", "updated_at")
UPDATE_TIMESTAMPS = ("updated_at",)

DEFAULT_JOB_STATUS = "open"
ACTIVE_JOB_STATUSES = ("open", "in_progress", "awaiting_user")
REQUIRED_JOB_FIELDS = ("household_id", "user_id", "title")

DEFAULT_HOUSEHOLD_FETCH_WORKERS = 8


def health() -> dict:
    now = datetime.now(timezone.utc).isoformat(timespec="milliseconds")
    return {"status": "ok", "timestamp": now.replace("+00:00", "Z")}


def _read(store: DocumentStore, collection: str, key: str, label: str) -> dict:
    doc = store.get(collection, key)
    if doc is None:
        raise NotFoundError(f"{label} not found")
    return doc.as_dict()


def _require_phone(phone: Optional[str], message: str) -> str:
    normalized = normalize_phone_number(phone)
    if not normalized:
        raise ValidationError(message)
    return normalized


# === USERS ===


def _fetch_household(store: DocumentStore, household_id: str) -> Optional[dict]:
    try:
        doc = store.get(HOUSEHOLDS_COLLECTION, household_id)
    except Exception:
        logger.warning(
            "Dropping household %r from user detail: lookup failed",
            household_id,
            exc_info=True,
        )
        return None
    return doc.as_dict() if doc else None


def _fetch_households(
    store: DocumentStore, household_ids: list, max_workers: int
) -> list[dict]:
    """
    Reads households concurrently. Missing or failing lookups are left out,
    the rest keep the order of `household_ids`.
    """
    if not household_ids:
        return []
    workers = max(1, min(max_workers, len(household_ids)))
    with ThreadPoolExecutor(max_workers=workers) as executor:
        results = list(
            executor.map(lambda hid: _fetch_household(store, hid), household_ids)
        )
    return [household for household in results if household is not None]


def get_user_detail(
    store: DocumentStore,
    phone: Optional[str],
    *,
    max_workers: int = DEFAULT_HOUSEHOLD_FETCH_WORKERS,
) -> dict:
    """
    Returns a user together with its households and active jobs.

    Households that no longer exist are skipped rather than reported.
    """
    phone_number = _require_phone(phone, "Invalid phone number")
    user = _read(store, USERS_COLLECTION, phone_number, "User")

    household_ids = user.get("household_ids") or []
    if not isinstance(household_ids, list):
        household_ids = []
    households = _fetch_households(store, household_ids, max_workers)

    active_jobs = store.query(
        JOBS_COLLECTION,
        equals={"user_id": phone_number},
        within={"status": ACTIVE_JOB_STATUSES},
    )

    return {
        "user": user,
        "households": households,
        "activeJobs": [job.as_dict() for job in active_jobs],
    }


def create_user(store: DocumentStore, payload: UserWrite) -> dict:
    phone_number = _require_phone(payload.phone, "Phone number is required")
    user_data = payload.supplied_fields()
    user_data["phone"] = phone_number

    doc = store.set(
        USERS_COLLECTION, phone_number, user_data, server_timestamps=CREATE_TIMESTAMPS
    )
    logger.info("Created user %s", phone_number)
    return doc.as_dict()


def upsert_user(store: DocumentStore, phone: Optional[str], payload: UserWrite) -> dict:
    phone_number = _require_phone(phone, "Invalid phone number")
    user_data = payload.supplied_fields()
    user_data["phone"] = phone_number

    doc = store.set(
        USERS_COLLECTION,
        phone_number,
        user_data,
        merge=True,
        server_timestamps=UPDATE_TIMESTAMPS,
    )
    return doc.as_dict()


# === HOUSEHOLDS ===


def get_household(store: DocumentStore, household_id: str) -> dict:
    return _read(store, HOUSEHOLDS_COLLECTION, household_id, "Household")


def create_household(store: DocumentStore, payload: HouseholdWrite) -> dict:
    doc = store.add(
        HOUSEHOLDS_COLLECTION,
        payload.supplied_fields(),
        server_timestamps=CREATE_TIMESTAMPS,
    )
    logger.info("Created household %s", doc.id)
    return doc.as_dict()


def upsert_household(
    store: DocumentStore, household_id: str, payload: HouseholdWrite
) -> dict:
    doc = store.set(
        HOUSEHOLDS_COLLECTION,
        household_id,
        payload.supplied_fields(),
        merge=True,
        server_timestamps=UPDATE_TIMESTAMPS,
    )
    return doc.as_dict()


# === JOBS ===


def get_job(store: DocumentStore, job_id: str) -> dict:
    return _read(store, JOBS_COLLECTION, job_id, "Job")


def create_job(store: DocumentStore, payload: JobWrite) -> dict:
    job_data = payload.supplied_fields()
    job_data["status"] = job_data.get("status") or DEFAULT_JOB_STATUS

    if not all(job_data.get(name) for name in REQUIRED_JOB_FIELDS):
        raise ValidationError(
            "Missing required fields: household_id, user_id, and title are required"
        )

    doc = store.add(JOBS_COLLECTION, job_data, server_timestamps=CREATE_TIMESTAMPS)
    logger.info("Created job %s for user %s", doc.id, job_data["user_id"])
    return doc.as_dict()


def upsert_job(store: DocumentStore, job_id: str, payload: JobWrite) -> dict:
    doc = store.set(
        JOBS_COLLECTION,
        job_id,
        payload.supplied_fields(),
        merge=True,
        server_timestamps=UPDATE_TIMESTAMPS,
    )
    return doc.as_dict()
