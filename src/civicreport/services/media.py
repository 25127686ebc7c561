"""
Media collaborators.

Picking an image or recording a voice note happens outside the core. Either
may return None ("user declined") or raise `PermissionDenied`; both simply mean
nothing is attached.
"""

from __future__ import annotations

import logging
from typing import Callable

from civicreport.domain.errors import PermissionDenied

logger = logging.getLogger(__name__)

MediaSource = Callable[[], str | None]


def _capture(source: MediaSource | None, what: str) -> str | None:
    if source is None:
        return None
    try:
        return source()
    except PermissionDenied as exc:
        logger.info("%s unavailable: %s", what, exc)
        return None


def collect_media(
    *,
    pick_image: MediaSource | None = None,
    record_voice_note: MediaSource | None = None,
    existing_images: list[str] | None = None,
) -> dict[str, object]:
    """Return draft fields (`images`, `voice_note`) from the media collaborators."""
    images = list(existing_images or [])
    image = _capture(pick_image, "Image")
    if image:
        images.append(image)
    return {"images": images, "voice_note": _capture(record_voice_note, "Voice note")}
