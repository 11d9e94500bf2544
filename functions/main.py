# Copyright 2025 Google LLC
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
# ==============================================================================

# Cloud functions for the Vibeagent API - users, households and jobs.
#
# This file containing Python cloud functions must be named main.py.
# See https://cloud.google.com/run/docs/write-functions#python for more info.

# Standard library imports
import json
from datetime import datetime
from typing import Any

# Third-party library imports
from firebase_admin import initialize_app, firestore
from firebase_functions import https_fn, logger, options
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError
from werkzeug.exceptions import HTTPException
from werkzeug.routing import Map, Rule

# Local application imports
from vibeagent_api import handlers
from vibeagent_api.config import get_settings
from vibeagent_api.errors import (
    ENDPOINT_NOT_FOUND_MESSAGE,
    INTERNAL_ERROR_MESSAGE,
    INVALID_BODY_MESSAGE,
    ApiError,
    ValidationError,
)
from vibeagent_api.schemas import HouseholdWrite, JobWrite, UserWrite
from vibeagent_api.store import (
    REQUEST_LOGS_COLLECTION,
    DocumentStore,
    FirestoreDocumentStore,
)

CORS_OPTIONS = options.CorsOptions(
    cors_origins="*", cors_methods=["get", "post", "put", "options"]
)

initialize_app()


def _document_store() -> DocumentStore:
    return FirestoreDocumentStore(firestore.client())


def _json_default(value: Any):
    if isinstance(value, datetime):
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def _json_response(body: Any, status: int) -> https_fn.Response:
    return https_fn.Response(
        json.dumps(body, default=_json_default),
        status=status,
        mimetype="application/json",
    )


def _parse_body(req: https_fn.Request, model: type[BaseModel]):
    """
    Validates the JSON request body against `model`. An empty body counts
    as an empty object.
    """
    if not req.get_data():
        data = {}
    else:
        data = req.get_json(force=True, silent=True)
    if not isinstance(data, dict):
        raise ValidationError(INVALID_BODY_MESSAGE)
    try:
        return model.model_validate(data)
    except PydanticValidationError as e:
        raise ValidationError(INVALID_BODY_MESSAGE) from e


# === VIEWS ===


def _health(store, req):
    return handlers.health(), 200


def _get_user(store, req, phone):
    max_workers = get_settings().household_fetch_workers
    return handlers.get_user_detail(store, phone, max_workers=max_workers), 200


def _create_user(store, req):
    return handlers.create_user(store, _parse_body(req, UserWrite)), 201


def _upsert_user(store, req, phone):
    return handlers.upsert_user(store, phone, _parse_body(req, UserWrite)), 200


def _get_household(store, req, household_id):
    return handlers.get_household(store, household_id), 200


def _create_household(store, req):
    return handlers.create_household(store, _parse_body(req, HouseholdWrite)), 201


def _upsert_household(store, req, household_id):
    payload = _parse_body(req, HouseholdWrite)
    return handlers.upsert_household(store, household_id, payload), 200


def _get_job(store, req, job_id):
    return handlers.get_job(store, job_id), 200


def _create_job(store, req):
    return handlers.create_job(store, _parse_body(req, JobWrite)), 201


def _upsert_job(store, req, job_id):
    return handlers.upsert_job(store, job_id, _parse_body(req, JobWrite)), 200


URL_MAP = Map(
    [
        Rule("/api/health", endpoint=_health, methods=["GET"]),
        Rule("/api/users/<phone>", endpoint=_get_user, methods=["GET"]),
        Rule("/api/users", endpoint=_create_user, methods=["POST"]),
        Rule("/api/users/<phone>", endpoint=_upsert_user, methods=["PUT"]),
        Rule("/api/households/<household_id>", endpoint=_get_household, methods=["GET"]),
        Rule("/api/households", endpoint=_create_household, methods=["POST"]),
        Rule(
            "/api/households/<household_id>",
            endpoint=_upsert_household,
            methods=["PUT"],
        ),
        Rule("/api/jobs/<job_id>", endpoint=_get_job, methods=["GET"]),
        Rule("/api/jobs", endpoint=_create_job, methods=["POST"]),
        Rule("/api/jobs/<job_id>", endpoint=_upsert_job, methods=["PUT"]),
    ]
)


@https_fn.on_request(cors=CORS_OPTIONS, memory=options.MemoryOption.MB_256)
def api(req: https_fn.Request) -> https_fn.Response:
    """
    Serves the REST API for users, households and jobs.

    Args:
        req (https_fn.Request): The incoming HTTP request.

    Returns:
        A JSON response. Errors are returned as {"error": message}.
    """
    try:
        view, args = URL_MAP.bind_to_environ(req.environ).match()
    except HTTPException:
        return _json_response({"error": ENDPOINT_NOT_FOUND_MESSAGE}, 404)

    try:
        body, status = view(_document_store(), req, **args)
    except ApiError as e:
        return _json_response({"error": e.message}, e.status_code)
    except Exception as e:
        logger.error(f"Error handling {req.method} {req.path}: {e}")
        return _json_response({"error": INTERNAL_ERROR_MESSAGE}, 500)

    return _json_response(body, status)


@https_fn.on_request(
    cors=options.CorsOptions(
        cors_origins="*", cors_methods=["get", "post", "put", "delete", "options"]
    )
)
def echo_request(req: https_fn.Request) -> https_fn.Response:
    """
    Saves the incoming request to the request log collection and returns
    the stored record. Used to inspect what callers actually send.
    """
    record = {
        "query_params": req.args.to_dict(),
        "body": req.get_json(silent=True),
        "method": req.method,
        "headers": dict(req.headers),
        "url": req.url,
    }

    try:
        doc = _document_store().add(
            REQUEST_LOGS_COLLECTION, record, server_timestamps=("timestamp",)
        )
    except Exception as e:
        logger.error(f"Error saving request data: {e}")
        return _json_response({"error": INTERNAL_ERROR_MESSAGE}, 500)

    return _json_response(doc.as_dict(), 200)
