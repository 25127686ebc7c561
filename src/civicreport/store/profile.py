"""
Local user profile store.

The profile is a single `user` blob. "Login" just records the profile locally;
this is not an authentication boundary.
"""

from __future__ import annotations

import logging
import threading

from pydantic import ValidationError as PydanticValidationError

from civicreport.core.storage import JsonBlobStore
from civicreport.domain.errors import ValidationError
from civicreport.domain.models import UserProfile

logger = logging.getLogger(__name__)

USER_KEY = "user"


class ProfileStore:
    def __init__(self, blobs: JsonBlobStore):
        self._blobs = blobs
        self._lock = threading.Lock()
        self._user: UserProfile | None = None

    @property
    def user(self) -> UserProfile | None:
        return self._user

    @property
    def is_authenticated(self) -> bool:
        return self._user is not None

    def author_tag(self) -> str | None:
        """Name used to tag new reports, or None when nobody is logged in."""
        return self._user.name if self._user else None

    def initialize(self) -> UserProfile | None:
        """Load the persisted profile; an unreadable shape is treated as logged out."""
        with self._lock:
            raw = self._blobs.read(USER_KEY)
            user = None
            if raw is not None:
                try:
                    user = UserProfile.model_validate(raw)
                except PydanticValidationError:
                    logger.warning("Stored user profile has an incompatible shape; ignoring it.")
            self._user = user
            return user

    def login(self, profile: UserProfile) -> UserProfile:
        if not profile.name.strip() or not profile.phone.strip():
            raise ValidationError("Name and phone are required")
        with self._lock:
            self._blobs.write(USER_KEY, profile.model_dump(mode="json", by_alias=True, exclude_none=True))
            self._user = profile
        logger.info("Profile saved for %s", profile.name)
        return profile

    def logout(self) -> None:
        with self._lock:
            self._blobs.remove(USER_KEY)
            self._user = None
