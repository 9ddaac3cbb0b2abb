"""
Cookie Normalization

Turns a cookie export (the JSON produced by browser cookie extensions)
into entries the Playwright cookie store will accept.

Extension exports carry fields Playwright rejects (storeId, id), session
cookies with a stale expirationDate, and sameSite values such as
"no_restriction" or "unspecified" that are not valid engine values.
"""

import json
import logging
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ..errors import InvalidCredentialFormat

logger = logging.getLogger(__name__)


SameSite = Literal["Strict", "Lax", "None"]

# Extension-only identity fields
ENGINE_INCOMPATIBLE_FIELDS = ("storeId", "id")

_SAME_SITE_VALUES: dict[str, SameSite] = {
    "strict": "Strict",
    "lax": "Lax",
    "none": "None",
    "no_restriction": "None",
}


class CredentialEntry(BaseModel):
    """One normalized session cookie.

    Validation Rules:
    - storeId/id are never present
    - expiration_date is None whenever session is True
    - same_site is Strict, Lax, None or unset
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)

    name: str
    value: str
    domain: Optional[str] = None
    path: str = "/"
    expiration_date: Optional[float] = Field(default=None, alias="expirationDate")
    session: bool = False
    same_site: Optional[SameSite] = Field(default=None, alias="sameSite")
    http_only: bool = Field(default=False, alias="httpOnly")
    secure: bool = False

    def to_engine_cookie(self) -> dict[str, Any]:
        """
        Build the cookie dict passed to ``BrowserContext.add_cookies``.

        Unset optional fields are omitted so the engine applies its defaults.
        """
        cookie: dict[str, Any] = {
            "name": self.name,
            "value": self.value,
            "path": self.path,
            "httpOnly": self.http_only,
            "secure": self.secure,
        }
        if self.domain:
            cookie["domain"] = self.domain
        if self.expiration_date is not None:
            cookie["expires"] = self.expiration_date
        if self.same_site is not None:
            cookie["sameSite"] = self.same_site
        return cookie


def normalize_same_site(value: Any) -> Optional[SameSite]:
    """
    Map a raw sameSite value onto an engine value.

    Matching is case-insensitive; "no_restriction" becomes "None".
    Anything unrecognized (including null) maps to None, meaning unset.
    """
    if not isinstance(value, str):
        return None
    return _SAME_SITE_VALUES.get(value.lower())


def normalize_record(record: dict[str, Any]) -> dict[str, Any]:
    """Apply the normalization steps to one raw cookie record."""
    cleaned = dict(record)

    for field_name in ENGINE_INCOMPATIBLE_FIELDS:
        cleaned.pop(field_name, None)

    if cleaned.get("session"):
        cleaned.pop("expirationDate", None)

    same_site = normalize_same_site(cleaned.pop("sameSite", None))
    if same_site is not None:
        cleaned["sameSite"] = same_site

    return cleaned


def parse_credentials(raw: Optional[str]) -> list[dict[str, Any]]:
    """
    Deserialize a raw cookie blob into a list of records.

    Raises:
        InvalidCredentialFormat: blob missing, not JSON, or not a list of objects
    """
    if not raw:
        raise InvalidCredentialFormat(
            "User authentication failed: Cookies were not provided."
        )

    try:
        records = json.loads(raw)
    except (TypeError, ValueError):
        raise InvalidCredentialFormat(
            "User authentication failed: Cookies format is invalid JSON."
        )

    if not isinstance(records, list) or not all(isinstance(r, dict) for r in records):
        raise InvalidCredentialFormat(
            "User authentication failed: Cookies must be a JSON array of cookie objects."
        )

    return records


def normalize_credentials(raw: Optional[str]) -> list[CredentialEntry]:
    """
    Parse and normalize a serialized cookie export.

    Order is preserved. Once the blob parses into cookie records this
    never fails.

    Args:
        raw: JSON string holding an array of cookie objects

    Returns:
        Normalized CredentialEntry list

    Raises:
        InvalidCredentialFormat: blob missing or not a list of cookie records
    """
    records = parse_credentials(raw)

    entries = []
    for index, record in enumerate(records):
        try:
            entries.append(CredentialEntry.model_validate(normalize_record(record)))
        except ValidationError as e:
            raise InvalidCredentialFormat(
                f"User authentication failed: cookie #{index + 1} is not a valid "
                f"cookie record ({e.error_count()} invalid field(s))."
            )

    logger.debug(f"Normalized {len(entries)} cookies")
    return entries
