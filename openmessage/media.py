from __future__ import annotations

import logging

from .client import MessagingClient
from .mirror.supabase import SupabaseWriter
from .store import MessageStore

logger = logging.getLogger(__name__)

MIME_EXTENSIONS = {
    "image/jpeg": ".jpg",
    "image/png": ".png",
    "image/gif": ".gif",
    "image/webp": ".webp",
    "video/mp4": ".mp4",
    "audio/ogg": ".ogg",
    "audio/mpeg": ".mp3",
}


def mime_to_ext(mime: str) -> str:
    return MIME_EXTENSIONS.get(mime.strip().lower(), "")


def media_object_path(conversation_id: str, message_id: str, mime: str) -> str:
    return f"{conversation_id}/{message_id}{mime_to_ext(mime)}"


def mirror_media(
    store: MessageStore,
    client: MessagingClient,
    writer: SupabaseWriter,
    message_id: str,
) -> str:
    """Copy a message's attachment into mirror storage and return its public URL.

    Raises ``LookupError`` when the message has no attachment. Download
    failures raise ``TransportError``; upload failures raise ``MirrorError``.
    """

    msg = store.get_message_by_id(message_id)
    ref = store.media_ref(message_id)
    if msg is None or ref is None or not ref.media_id:
        raise LookupError(f"no media for message {message_id}")
    data = client.download_media(ref.media_id, ref.decryption_key)
    path = media_object_path(msg.conversation_id, message_id, ref.mime_type)
    url = writer.upload_media(path, data, ref.mime_type)
    logger.info(
        "mirrored media for %s",
        message_id,
        extra={"message_id": message_id, "size": len(data)},
    )
    return url
