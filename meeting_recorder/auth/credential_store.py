"""
Cookie file credential store.

Reads a browser cookie export (a JSON list of cookies, or an object with a
"cookies" list) and hands it to sessions as an opaque CredentialBundle.
"""

import json
import os
from typing import Optional

from meeting_recorder.config import get_logger
from meeting_recorder.core.exceptions import AuthenticationError
from meeting_recorder.models import CredentialBundle, MeetingDescriptor


logger = get_logger("credential_store")

# Playwright's add_cookies needs at least these
REQUIRED_COOKIE_KEYS = ("name", "value")

ALLOWED_COOKIE_KEYS = ("name", "value", "url", "domain", "path", "expires", "httpOnly", "secure", "sameSite")

# Browser-extension exports use lower-case or Chrome-internal sameSite values
SAME_SITE_VALUES = {"lax": "Lax", "strict": "Strict", "none": "None", "no_restriction": "None"}


def normalize_cookie(cookie: dict) -> dict:
    """Map a cookie export entry onto the fields Playwright accepts."""
    normalized = dict(cookie)
    if "expirationDate" in normalized and "expires" not in normalized:
        normalized["expires"] = normalized["expirationDate"]
    same_site = normalized.pop("sameSite", None)
    if isinstance(same_site, str) and same_site.lower() in SAME_SITE_VALUES:
        normalized["sameSite"] = SAME_SITE_VALUES[same_site.lower()]
    return {k: v for k, v in normalized.items() if k in ALLOWED_COOKIE_KEYS}


class CookieFileStore:
    """Loads cookies from disk for every session."""

    def __init__(self, cookies_file: str):
        self.cookies_file = cookies_file

    def exists(self) -> bool:
        return os.path.exists(self.cookies_file)

    def load(self) -> Optional[CredentialBundle]:
        """
        Load the cookie bundle.

        Returns:
            CredentialBundle, or None if no cookie file exists

        Raises:
            AuthenticationError: if the file can't be parsed or has no usable cookies
        """
        if not self.exists():
            logger.debug(f"No cookie file at {self.cookies_file}")
            return None

        try:
            with open(self.cookies_file, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise AuthenticationError(f"Could not read cookie file {self.cookies_file}: {e}") from e

        cookies = data.get("cookies") if isinstance(data, dict) else data
        if not isinstance(cookies, list) or not cookies:
            raise AuthenticationError(f"Cookie file {self.cookies_file} contains no cookies")

        for cookie in cookies:
            if not isinstance(cookie, dict) or any(k not in cookie for k in REQUIRED_COOKIE_KEYS):
                raise AuthenticationError(f"Malformed cookie entry in {self.cookies_file}")
            if "url" not in cookie and not ("domain" in cookie and "path" in cookie):
                raise AuthenticationError(
                    f"Cookie '{cookie['name']}' needs either 'url' or 'domain' and 'path'"
                )

        return CredentialBundle(cookies=[normalize_cookie(c) for c in cookies])

    async def for_meeting(self, meeting: MeetingDescriptor) -> Optional[CredentialBundle]:
        """Credential provider hook used by ConferenceController."""
        return self.load()
