"""Firestore document store

Overview
--------
Small wrapper around the ``firebase_admin`` Firestore client for reading and
writing single documents by path. The Firebase app is initialized lazily on
first use from the service account in ``FirebaseConfig``; private keys stored
in environment variables have their newlines escaped as ``\\n``.

Every write stamps ``updatedAt`` with the current UTC time in ISO format.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import firebase_admin
from firebase_admin import credentials, firestore

from smarti.server.core.config import FirebaseConfig

logger = logging.getLogger(__name__)

APP_NAME = "smarti"


class InvalidDocumentPathError(ValueError):
    """A document path must have an even number of segments (col/doc[/col/doc])."""


def validate_document_path(path: str) -> str:
    segments = [segment for segment in path.split("/") if segment]
    if not segments or len(segments) % 2 != 0:
        raise InvalidDocumentPathError(
            f"Invalid Firestore document path '{path}'. Must be even segments (col/doc[/...])."
        )
    return "/".join(segments)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class DocumentStore:
    """Read and write Firestore documents addressed by path."""

    def __init__(self, config: FirebaseConfig, client: Optional[Any] = None) -> None:
        self._config = config
        self._client = client

    @property
    def client(self) -> Any:
        if self._client is None:
            self._client = firestore.client(app=self._get_app())
        return self._client

    def _get_app(self) -> firebase_admin.App:
        try:
            return firebase_admin.get_app(APP_NAME)
        except ValueError:
            pass
        private_key = (self._config.private_key or "").replace("\\n", "\n")
        credential = credentials.Certificate(
            {
                "type": "service_account",
                "project_id": self._config.project_id,
                "client_email": self._config.client_email,
                "private_key": private_key,
                "token_uri": "https://oauth2.googleapis.com/token",
            }
        )
        logger.info(f"Initializing Firebase app for project {self._config.project_id}")
        return firebase_admin.initialize_app(credential, {"projectId": self._config.project_id}, name=APP_NAME)

    def get_document(self, path: str) -> Optional[Dict[str, Any]]:
        snapshot = self.client.document(validate_document_path(path)).get()
        return snapshot.to_dict() if snapshot.exists else None

    def set_document(self, path: str, data: Dict[str, Any]) -> None:
        """Merge ``data`` into the document, creating it when missing."""
        payload = {**data, "updatedAt": _now_iso()}
        self.client.document(validate_document_path(path)).set(payload, merge=True)

    def update_document_fields(self, path: str, updates: Dict[str, Any]) -> None:
        """Update fields of an existing document; Firestore raises when it is missing."""
        payload = {**updates, "updatedAt": _now_iso()}
        self.client.document(validate_document_path(path)).update(payload)

    def document_exists(self, path: str) -> bool:
        return bool(self.client.document(validate_document_path(path)).get().exists)
