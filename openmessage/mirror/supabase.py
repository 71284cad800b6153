from __future__ import annotations

import datetime as dt
import logging
from typing import Any

import httpx

from ..config import OpenMessageConfig
from ..errors import MirrorError
from ..store.types import Contact, Conversation, Message
from .base import NullMirror

logger = logging.getLogger(__name__)

STORAGE_BUCKET = "gmessages-media"
DEFAULT_TIMEOUT_S = 10.0


def _rfc3339(ms: int) -> str:
    return dt.datetime.fromtimestamp(ms / 1000, dt.UTC).isoformat(timespec="seconds")


class SupabaseWriter:
    """Mirror writer for a Supabase project.

    Rows go through PostgREST RPC functions (``/rest/v1/rpc/upsert_*``);
    media goes to the Storage API. Every request is bounded by ``timeout``
    seconds. Non-2xx responses and transport failures raise ``MirrorError``.
    """

    enabled = True

    def __init__(
        self,
        url: str,
        key: str,
        *,
        timeout: float = DEFAULT_TIMEOUT_S,
        client: httpx.Client | None = None,
    ) -> None:
        if not url or not key:
            raise ValueError("supabase url and key are required")
        self.url = url.rstrip("/")
        self.key = key
        self.timeout = timeout
        self._client = client or httpx.Client(timeout=timeout)

    def close(self) -> None:
        self._client.close()

    def _headers(self, content_type: str = "application/json") -> dict[str, str]:
        return {
            "apikey": self.key,
            "Authorization": f"Bearer {self.key}",
            "Content-Type": content_type,
        }

    def _post(self, path: str, **kwargs: Any) -> httpx.Response:
        try:
            return self._client.post(f"{self.url}{path}", timeout=self.timeout, **kwargs)
        except httpx.HTTPError as exc:
            raise MirrorError(f"POST {path} failed: {exc}") from exc

    def rpc(self, func_name: str, params: dict[str, Any]) -> None:
        response = self._post(f"/rest/v1/rpc/{func_name}", json=params, headers=self._headers())
        if response.status_code >= 400:
            raise MirrorError(
                f"RPC {func_name} returned {response.status_code}: {response.text}",
                status_code=response.status_code,
            )

    def upsert_conversation(self, conv: Conversation, last_preview: str = "") -> None:
        self.rpc(
            "upsert_conversation",
            {
                "p_conversation_id": conv.conversation_id,
                "p_name": conv.name,
                "p_last_message_time": _rfc3339(conv.last_message_ts),
                "p_is_group": conv.is_group,
                "p_last_message_preview": last_preview,
            },
        )

    def upsert_message(self, msg: Message, media_url: str = "") -> None:
        # Nothing worth mirroring without text or an attachment.
        if not msg.body and not msg.mime_type:
            return
        self.rpc(
            "upsert_message",
            {
                "p_id": msg.message_id,
                "p_conversation_id": msg.conversation_id,
                "p_sender_name": msg.sender_name,
                "p_sender_number": msg.sender_number,
                "p_content": msg.body,
                "p_timestamp": _rfc3339(msg.timestamp_ms),
                "p_is_from_me": msg.is_from_me,
                "p_media_type": msg.mime_type,
                "p_media_url": media_url,
            },
        )

    def upsert_contact(self, contact: Contact) -> None:
        self.rpc("upsert_contact", {"p_number": contact.number, "p_name": contact.name})

    def ensure_storage_bucket(self) -> bool:
        """Create the media bucket. Returns True when it exists afterwards."""

        response = self._post(
            "/storage/v1/bucket",
            json={"id": STORAGE_BUCKET, "name": STORAGE_BUCKET, "public": True},
            headers=self._headers(),
        )
        if response.status_code == 200:
            logger.info("created %s storage bucket", STORAGE_BUCKET)
            return True
        if response.status_code == 409:
            logger.debug("%s storage bucket exists", STORAGE_BUCKET)
            return True
        logger.warning(
            "storage bucket returned %s: %s",
            response.status_code,
            response.text,
            extra={"status": response.status_code},
        )
        return False

    def public_url(self, path: str) -> str:
        return f"{self.url}/storage/v1/object/public/{STORAGE_BUCKET}/{path}"

    def upload_media(self, path: str, data: bytes, content_type: str) -> str:
        headers = self._headers(content_type)
        headers["x-upsert"] = "true"
        response = self._post(
            f"/storage/v1/object/{STORAGE_BUCKET}/{path}", content=data, headers=headers
        )
        if response.status_code >= 400:
            raise MirrorError(
                f"media upload returned {response.status_code}: {response.text}",
                status_code=response.status_code,
            )
        return self.public_url(path)


def build_writer(config: OpenMessageConfig) -> SupabaseWriter | NullMirror:
    if not config.mirror_enabled:
        logger.info("SUPABASE_URL/SUPABASE_KEY not set; mirror disabled")
        return NullMirror()
    assert config.supabase_url and config.supabase_key
    return SupabaseWriter(
        config.supabase_url, config.supabase_key, timeout=config.mirror_timeout_s
    )
