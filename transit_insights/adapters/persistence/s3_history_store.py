from __future__ import annotations

import json
import os
from dataclasses import dataclass
from typing import Any, Mapping, Sequence

from botocore.exceptions import BotoCoreError, ClientError

from transit_insights.adapters.aws import s3_client
from transit_insights.app.ports.output import IHistoryStore
from transit_insights.domain.exceptions import PersistenceError
from transit_insights.domain.models import HistoryIndexEntry

INDEX_KEY = "index.json"
_MISSING_CODES = {"NoSuchKey", "404", "NotFound"}


def _is_missing(exc: ClientError) -> bool:
    code = (
        exc.response.get("Error", {}).get("Code")
        if isinstance(getattr(exc, "response", None), dict)
        else None
    )
    return code in _MISSING_CODES


@dataclass(slots=True)
class S3HistoryStore(IHistoryStore):
    """History store backed by S3 (supports LocalStack via env).

    Env vars:
      - HISTORY_BUCKET: bucket name (required)
      - HISTORY_PREFIX: key prefix (default: history)
      - ENDPOINT_URL, USE_LOCALSTACK, LOCALSTACK_ENDPOINT_URL, AWS_REGION

    Notes:
      - S3 has no atomic read-modify-write; index appends rely on the caller
        serializing them (a single writer process).
    """

    bucket: str | None = None
    prefix: str | None = None

    def _bucket(self) -> str:
        value = self.bucket or os.getenv("HISTORY_BUCKET")
        if not value:
            raise RuntimeError("Missing HISTORY_BUCKET")
        return value

    def _key(self, name: str) -> str:
        prefix = (self.prefix or os.getenv("HISTORY_PREFIX") or "history").strip("/")
        return f"{prefix}/{name}" if prefix else name

    def _get_json(self, name: str) -> Any | None:
        s3 = s3_client()
        try:
            obj = s3.get_object(Bucket=self._bucket(), Key=self._key(name))
            body = obj["Body"].read()
        except ClientError as exc:
            if _is_missing(exc):
                return None
            raise PersistenceError(f"Failed to read {name}: {exc}") from exc
        except BotoCoreError as exc:
            raise PersistenceError(f"Failed to read {name}: {exc}") from exc

        try:
            return json.loads(body)
        except json.JSONDecodeError as exc:
            raise PersistenceError(f"Failed to decode {name}: {exc}") from exc

    def _put_json(self, name: str, payload: Any) -> None:
        s3 = s3_client()
        try:
            s3.put_object(
                Bucket=self._bucket(),
                Key=self._key(name),
                Body=json.dumps(payload, indent=2).encode("utf-8"),
                ContentType="application/json",
            )
        except (ClientError, BotoCoreError) as exc:
            raise PersistenceError(f"Failed to write {name}: {exc}") from exc

    def list_index(self) -> list[HistoryIndexEntry]:
        raw = self._get_json(INDEX_KEY)
        if raw is None:
            return []
        try:
            return [HistoryIndexEntry.from_payload(s) for s in raw.get("snapshots", [])]
        except (AttributeError, KeyError, TypeError, ValueError) as exc:
            raise PersistenceError(f"Malformed history index: {exc}") from exc

    def append_index_entry(self, entry: HistoryIndexEntry) -> None:
        entries = self.list_index()
        entries.append(entry)
        self._put_index(entries)

    def prune_index(self, cutoff: int) -> list[HistoryIndexEntry]:
        entries = self.list_index()
        removed = [e for e in entries if e.timestamp < cutoff]
        if removed:
            self._put_index([e for e in entries if e.timestamp >= cutoff])
        return removed

    def _put_index(self, entries: Sequence[HistoryIndexEntry]) -> None:
        self._put_json(INDEX_KEY, {"snapshots": [e.to_payload() for e in entries]})

    def read_entry(self, reference: str) -> Mapping[str, Any] | None:
        payload = self._get_json(reference)
        if payload is not None and not isinstance(payload, dict):
            raise PersistenceError(f"Malformed snapshot object: {reference}")
        return payload

    def write_entry(self, reference: str, payload: Mapping[str, Any]) -> None:
        self._put_json(reference, dict(payload))

    def delete_entry(self, reference: str) -> bool:
        s3 = s3_client()
        bucket = self._bucket()
        key = self._key(reference)
        try:
            s3.head_object(Bucket=bucket, Key=key)
        except ClientError as exc:
            if _is_missing(exc):
                return False
            raise PersistenceError(f"Failed to delete {reference}: {exc}") from exc
        try:
            s3.delete_object(Bucket=bucket, Key=key)
        except (ClientError, BotoCoreError) as exc:
            raise PersistenceError(f"Failed to delete {reference}: {exc}") from exc
        return True
