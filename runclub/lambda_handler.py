"""
Lambda entry point for the single-document deployment.

The whole club is stored as one JSON document in object storage. GET returns
it and POST replaces it; the browser does all other work.
"""

from __future__ import annotations

import base64
import binascii
import json
import logging
from typing import Any, Optional

from runclub.config import get_settings
from runclub.dates import now_iso
from runclub.dependencies import get_storage_client
from runclub.storage import StorageClient

logger = logging.getLogger(__name__)

REQUIRED_KEYS = ("members", "records", "schedules")

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "Content-Type",
    "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
    "Content-Type": "application/json",
}


class BadRequest(ValueError):
    pass


def _response(payload: Optional[dict], status: int = 200) -> dict:
    return {
        "statusCode": status,
        "headers": dict(CORS_HEADERS),
        "body": "" if payload is None else json.dumps(payload, ensure_ascii=False),
    }


def _get_body(event: dict) -> str:
    body = event.get("body") or ""
    if event.get("isBase64Encoded"):
        try:
            return base64.b64decode(body, validate=True).decode("utf-8")
        except (binascii.Error, UnicodeDecodeError) as exc:
            raise BadRequest("Request body is not valid base64 UTF-8") from exc
    return body


def _method(event: dict) -> str:
    method = event.get("httpMethod")
    if not method:
        method = ((event.get("requestContext") or {}).get("http") or {}).get("method")
    return (method or "").upper()


def initial_document(now=None) -> dict:
    return {"members": [], "records": [], "schedules": [], "lastUpdated": now_iso(now)}


def load_document(storage: StorageClient, key: str) -> dict:
    try:
        raw = storage.get_bytes(key)
    except FileNotFoundError:
        logger.info("%s does not exist yet; returning initial data", key)
        return initial_document()
    return json.loads(raw)


def save_document(storage: StorageClient, key: str, body: str) -> dict:
    try:
        payload = json.loads(body) if body else None
    except ValueError as exc:
        raise BadRequest("Request body is not valid JSON") from exc
    if not isinstance(payload, dict) or any(
        not isinstance(payload.get(k), list) for k in REQUIRED_KEYS
    ):
        raise BadRequest("Invalid data format")
    payload["lastUpdated"] = now_iso()
    storage.upload_json(key, payload)
    return {"message": "Data saved", "timestamp": payload["lastUpdated"]}


def handle(event: dict, storage: StorageClient, key: str) -> dict:
    method = _method(event)
    if method == "OPTIONS":
        return _response(None)
    try:
        if method == "GET":
            return _response(load_document(storage, key))
        if method == "POST":
            return _response(save_document(storage, key, _get_body(event)))
        return _response({"error": "Unsupported HTTP method"}, status=405)
    except BadRequest as exc:
        logger.warning("Rejected request: %s", exc)
        return _response({"error": str(exc)}, status=400)
    except Exception as exc:
        logger.exception("Lambda request failed")
        return _response({"error": "Internal server error", "details": str(exc)}, status=500)


def lambda_handler(event: dict, context: Any) -> dict:
    settings = get_settings()
    logging.basicConfig(level=settings.log_level.upper())
    return handle(event, get_storage_client(), settings.lambda_data_key)
