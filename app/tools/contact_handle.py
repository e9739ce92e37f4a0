"""Discord contact handle parsing.

Applicants type their Discord handle however they like: ``toxarica``,
``@toxarica``, ``Toxarica#1234`` from before the username migration, or a
copied mention token such as ``<@123456789012345678>``. The parser turns that
free text into one of three variants, and everything downstream (display
normalization, directory resolution) is a plain function over the variant.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Iterable, Optional, Union

MENTION_RE = re.compile(r"^<@!?(\d+)>$")
SNOWFLAKE_RE = re.compile(r"^\d{15,21}$")
PLACEHOLDER = "—"

USERNAME_RE = re.compile(r"^([\w.]{2,32})(?:#(\d{4}))?$")


@dataclass(frozen=True)
class Mention:
    """An already-resolved mention token; passed through untouched."""

    id: str
    token: str


@dataclass(frozen=True)
class Username:
    name: str
    discriminator: Optional[str] = None

    @property
    def tag(self) -> str:
        if self.discriminator:
            return f"{self.name}#{self.discriminator}"
        return self.name


@dataclass(frozen=True)
class Raw:
    """Text that does not look like a Discord username."""

    text: str


ContactHandle = Union[Mention, Username, Raw]


def parse_handle(value: Optional[str]) -> Optional[ContactHandle]:
    """Parse free-form contact text. Returns None for blank input."""
    if value is None:
        return None
    text = value.strip()
    if not text:
        return None

    mention = MENTION_RE.match(text)
    if mention:
        return Mention(id=mention.group(1), token=text)

    collapsed = re.sub(r"\s+", "", text).lstrip("@")
    if not collapsed:
        return None

    match = USERNAME_RE.match(collapsed)
    if match:
        return Username(name=match.group(1), discriminator=match.group(2))
    return Raw(text=collapsed)


def normalize_handle(handle: ContactHandle) -> str:
    """Canonical display form: ``@name``, or the mention token unchanged."""
    if isinstance(handle, Mention):
        return handle.token
    if isinstance(handle, Username):
        return f"@{handle.tag}"
    # Role / channel tokens and other markup keep their leading "<@".
    if handle.text.startswith("<@"):
        return handle.text
    return f"@{handle.text}"


def normalize_contact(value: Optional[str]) -> str:
    """Parse and normalize in one go; blank input gives an empty string."""
    handle = parse_handle(value)
    return normalize_handle(handle) if handle is not None else ""


def format_contact(handle: Optional[ContactHandle], resolved_id: Optional[str] = None) -> str:
    """Value shown in the embed's Discord field."""
    if handle is None:
        return f"<@{resolved_id}>" if resolved_id else PLACEHOLDER
    display = normalize_handle(handle)
    if isinstance(handle, Mention) or not resolved_id:
        return display
    return f"<@{resolved_id}> ({display})"


def is_snowflake(value: Optional[str]) -> bool:
    return bool(value) and bool(SNOWFLAKE_RE.match(value.strip()))


# ── Directory matching ───────────────────────────────────────────────────────


def _member_names(member: dict[str, Any]) -> list[str]:
    user = member.get("user") or {}
    names = [user.get("username"), user.get("global_name"), member.get("nick")]
    return [n.lower() for n in names if isinstance(n, str) and n]


def pick_member_id(handle: Username, members: Iterable[dict[str, Any]]) -> Optional[str]:
    """Choose the best directory match for a username.

    Preference: exact name, then prefix, then substring, then the legacy
    ``#discriminator`` of a ``name#1234`` handle. Usernames, global display
    names and guild nicknames are all considered. Returns the member's id or
    None.
    """
    members = [m for m in members if isinstance(m, dict) and (m.get("user") or {}).get("id")]
    query = handle.name.lower()

    tiers = (
        lambda name: name == query,
        lambda name: name.startswith(query),
        lambda name: query in name,
    )
    for matches in tiers:
        for member in members:
            if any(matches(name) for name in _member_names(member)):
                return str(member["user"]["id"])

    # Pre-migration accounts: the name may have changed, the tag number not.
    if handle.discriminator and handle.discriminator != "0000":
        for member in members:
            user = member["user"]
            if str(user.get("discriminator", "")) == handle.discriminator:
                return str(user["id"])
    return None
