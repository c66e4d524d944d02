"""Best-effort IPO type lookup against the NSE and BSE upcoming-issue pages."""

from __future__ import annotations

import logging
from typing import Dict, Optional, Sequence

import requests

from gmp_pipeline import config

logger = logging.getLogger(__name__)


class ExchangeTypeLookup:
    """Report an IPO as mainboard when an exchange's issue page mentions it.

    Each exchange page is downloaded at most once per lookup instance; a page
    that fails to load is remembered as empty.
    """

    def __init__(
        self,
        urls: Sequence[str] = (config.NSE_UPCOMING_URL, config.BSE_UPCOMING_URL),
        label: str = config.EXCHANGE_TYPE_LABEL,
        session: Optional[requests.Session] = None,
    ):
        self.urls = list(urls)
        self.label = label
        self.session = session or requests.Session()
        self.session.headers["User-Agent"] = config.REQUEST_USER_AGENT
        self._pages: Dict[str, str] = {}

    def _page_text(self, url: str) -> str:
        if url not in self._pages:
            try:
                response = self.session.get(url, timeout=config.REQUEST_TIMEOUT)
                response.raise_for_status()
                self._pages[url] = response.text.lower()
            except requests.RequestException as exc:
                logger.warning(f"Exchange page unavailable: {url} ({exc})")
                self._pages[url] = ""
        return self._pages[url]

    def lookup(self, ipo_name: str) -> Optional[str]:
        name = (ipo_name or "").strip().lower()
        if not name:
            return None
        for url in self.urls:
            if name in self._page_text(url):
                return self.label
        return None
