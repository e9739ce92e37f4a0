"""Discord guild member directory lookup.

Best-effort enrichment: resolves a typed username to a member id so the
officer reading the application can click straight through to the user.
Any failure here is logged and ignored.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import httpx

from app.tools.contact_handle import ContactHandle, Username, pick_member_id

logger = logging.getLogger(__name__)

SEARCH_PATH = "/guilds/{guild_id}/members/search"


class MemberDirectory:
    """Searches guild members through the Discord REST API with a bot token."""

    def __init__(
        self,
        bot_token: str,
        guild_id: str,
        api_base: str = "https://discord.com/api/v10",
        timeout: float = 5.0,
        limit: int = 10,
    ) -> None:
        self.bot_token = bot_token
        self.guild_id = guild_id
        self.api_base = api_base.rstrip("/")
        self.timeout = timeout
        self.limit = limit

    async def search(self, query: str) -> list[dict[str, Any]]:
        """Return raw member records whose name starts with ``query``."""
        url = self.api_base + SEARCH_PATH.format(guild_id=self.guild_id)
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            resp = await client.get(
                url,
                params={"query": query, "limit": self.limit},
                headers={"Authorization": f"Bot {self.bot_token}"},
            )
            resp.raise_for_status()
            data = resp.json()
        return data if isinstance(data, list) else []

    async def resolve(self, handle: Optional[ContactHandle]) -> Optional[str]:
        """Resolve a username to a member id, or None."""
        if not isinstance(handle, Username):
            return None
        try:
            members = await self.search(handle.name)
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("Member directory lookup failed for %s: %s", handle.tag, exc)
            return None

        member_id = pick_member_id(handle, members)
        if member_id:
            logger.info("Resolved Discord handle %s to member %s", handle.tag, member_id)
        else:
            logger.info("No directory match for Discord handle %s (%d candidates)",
                        handle.tag, len(members))
        return member_id
