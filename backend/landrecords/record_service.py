from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

from sqlalchemy.orm import Session

from .columns import SUBMISSION
from .config import settings
from .errors import NotFound, UpstreamFailure
from .metrics import counter_inc
from .models import get_record
from .storage import ObjectStore

logger = logging.getLogger(__name__)

IMAGE_EXTENSIONS = (".jpg", ".png", ".jpeg", ".webp")


def submission_for(record: Mapping[str, Any]) -> str:
    """Storage partition of a record's documents; records without one belong to the default stage."""
    value = record.get(SUBMISSION)
    if value is None or not str(value).strip():
        return settings.default_submission
    return str(value).strip()


def is_image_key(key: str) -> bool:
    return key.lower().endswith(IMAGE_EXTENSIONS)


def image_urls(store: ObjectStore, submission: str, record_id: Any, ttl_seconds: int) -> list[str]:
    prefix = f"{submission}/{record_id}/"
    try:
        keys = store.list_objects(prefix)
    except UpstreamFailure as e:
        counter_inc("storage_degraded_total", {"op": "list"})
        logger.warning("Image listing for record %s failed, returning none: %s", record_id, e)
        return []
    urls: list[str] = []
    for key in sorted(k for k in keys if is_image_key(k)):
        try:
            urls.append(store.sign_url(key, ttl_seconds))
        except UpstreamFailure as e:
            counter_inc("storage_degraded_total", {"op": "sign"})
            logger.warning("Signing %s failed, skipping: %s", key, e)
    return urls


def _sign_if_present(store: ObjectStore, key: str, ttl_seconds: int, op: str) -> Optional[str]:
    try:
        if not store.exists(key):
            return None
        return store.sign_url(key, ttl_seconds)
    except UpstreamFailure as e:
        counter_inc("storage_degraded_total", {"op": op})
        logger.warning("Lookup of %s failed: %s", key, e)
        return None


def pdf_url(store: ObjectStore, submission: str, record_id: Any, ttl_seconds: int) -> Optional[str]:
    return _sign_if_present(store, f"{submission}/{record_id}.pdf", ttl_seconds, "pdf")


def map_url(store: ObjectStore, record_id: Any, ttl_seconds: int) -> Optional[str]:
    """Signed link to the record's survey map, shared across submissions."""
    prefix = settings.map_prefix.strip("/")
    return _sign_if_present(store, f"{prefix}/{record_id}.pdf", ttl_seconds, "map")


def get_record_detail(db: Session, store: ObjectStore, record_id: int) -> dict:
    """Full record plus signed links to its photos, scanned file and survey map."""
    record = get_record(db, record_id)
    if record is None:
        raise NotFound("Record not found")
    submission = submission_for(record)
    ttl = settings.signed_url_ttl_seconds
    rid = record.get("ID", record_id)
    return {
        **record,
        "images": image_urls(store, submission, rid, ttl),
        "pdf": pdf_url(store, submission, rid, ttl),
        "map": map_url(store, rid, ttl),
    }
