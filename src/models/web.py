"""Collectibles Appraiser — Web Snippet Model"""

from __future__ import annotations

from urllib.parse import urlsplit

from pydantic import BaseModel


class WebSnippet(BaseModel):
    """One general web-search hit."""
    title: str = ""
    url: str
    snippet: str = ""

    @property
    def host(self) -> str | None:
        """Lowercased hostname with a leading "www." stripped, or None if unparsable."""
        try:
            hostname = urlsplit(self.url).hostname
        except ValueError:
            return None
        if not hostname:
            return None
        return hostname.removeprefix("www.")
