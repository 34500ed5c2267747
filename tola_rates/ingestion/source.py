"""Rate sources for FENEGOSIDA gold and silver prices."""

from __future__ import annotations

import re
from typing import Any
from urllib.parse import urlparse

import requests
from bs4 import BeautifulSoup

from tola_rates.errors import InvalidPayload, UpstreamUnavailable
from tola_rates.ingestion.models import RawReading
from tola_rates.utils.bs_date import format_bs_date
from tola_rates.utils.logger import get_logger

LOGGER = get_logger(__name__)

DEFAULT_SOURCE_URL = "https://calendar-event.pages.dev/data/gold.json"
FENEGOSIDA_URL = "https://www.fenegosida.org/"
DEFAULT_TIMEOUT = 15.0
USER_AGENT = "tola-rates/1.0"

_GOLD_KEYWORDS = ("fine gold", "hallmark", "छापावाल")
_SILVER_KEYWORDS = ("silver", "चाँदी")
_TOLA_KEYWORDS = ("tola", "तोला")
_CURRENCY_PRICE = re.compile(r"(?:nrs|rs|रु)\.?\s*([\d,]+)", re.IGNORECASE)
_ANY_PRICE = re.compile(r"\d[\d,]{2,}")
_BS_DATE_TEXT = re.compile(r"\d{1,2}\s+[A-Za-z]+\s*,?\s+\d{4}|[A-Za-z]+\s+\d{1,2}\s*,?\s+\d{4}")


def source_tag(url: str) -> str:
    """Short label for ``url`` used as the ``source`` field of responses."""

    return urlparse(url).netloc or url


class _HttpSource:
    def __init__(
        self,
        url: str,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        session: requests.Session | None = None,
    ) -> None:
        self.url = url
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.setdefault("User-Agent", USER_AGENT)

    @property
    def name(self) -> str:
        return source_tag(self.url)

    def _get(self) -> requests.Response:
        try:
            response = self.session.get(self.url, timeout=self.timeout)
            response.raise_for_status()
        except requests.Timeout as exc:
            raise UpstreamUnavailable(f"Timed out after {self.timeout}s fetching {self.url}") from exc
        except requests.RequestException as exc:
            raise UpstreamUnavailable(f"Failed to fetch {self.url}: {exc}") from exc
        LOGGER.info("Fetched rates from %s", self.url)
        return response


class JsonRateSource(_HttpSource):
    """Reads the ``{date, rates: [{id, price}, ...]}`` JSON feed."""

    def __init__(self, url: str = DEFAULT_SOURCE_URL, **kwargs: Any) -> None:
        super().__init__(url, **kwargs)

    def fetch(self) -> RawReading:
        response = self._get()
        try:
            payload = response.json()
        except ValueError as exc:
            raise InvalidPayload(f"Response from {self.url} is not JSON") from exc
        return parse_rates_json(payload)


class HtmlRateSource(_HttpSource):
    """Scrapes the FENEGOSIDA landing page."""

    def __init__(self, url: str = FENEGOSIDA_URL, **kwargs: Any) -> None:
        super().__init__(url, **kwargs)

    def fetch(self) -> RawReading:
        return parse_rates_html(self._get().text)


def parse_rates_json(payload: Any) -> RawReading:
    if not isinstance(payload, dict) or not isinstance(payload.get("rates"), list):
        raise InvalidPayload("Invalid JSON structure")
    prices: dict[str, Any] = {}
    for item in payload["rates"]:
        if isinstance(item, dict) and item.get("id") in {"gold", "silver"}:
            prices.setdefault(item["id"], item.get("price"))
    return RawReading(date=payload.get("date"), gold=prices.get("gold"), silver=prices.get("silver"))


def _extract_price(text: str) -> str | None:
    match = _CURRENCY_PRICE.search(text)
    if match:
        return match.group(1)
    numbers = _ANY_PRICE.findall(text)
    return numbers[-1] if numbers else None


def _find_row_price(blocks: list[str], keywords: tuple[str, ...]) -> str | None:
    for text in blocks:
        lower = text.lower()
        if any(keyword in lower for keyword in keywords) and any(
            unit in lower for unit in _TOLA_KEYWORDS
        ):
            price = _extract_price(text)
            if price:
                return price
    return None


def parse_rates_html(html: str) -> RawReading:
    """Extract the per-tola gold and silver prices from FENEGOSIDA markup.

    The page lists one block per rate ("FINE GOLD (9999) per 1 tola Nrs
    152400") next to a date banner such as "5 Magh 2081". The innermost
    block mentioning both the metal and the tola unit wins.
    """

    soup = BeautifulSoup(html, "html.parser")
    blocks: list[str] = []
    for element in soup.find_all(["tr", "li", "p", "div"]):
        if element.find(["tr", "li", "p", "div"]):
            continue
        text = " ".join(element.stripped_strings)
        if text:
            blocks.append(text)

    date: str | None = None
    for candidate in _BS_DATE_TEXT.findall(soup.get_text(" ")):
        date = format_bs_date(candidate)
        if date:
            break

    gold = _find_row_price(blocks, _GOLD_KEYWORDS)
    silver = _find_row_price(blocks, _SILVER_KEYWORDS)
    if gold is None and silver is None:
        raise InvalidPayload("No gold/silver rows found in supplied HTML")
    return RawReading(date=date, gold=gold, silver=silver)


__all__ = [
    "DEFAULT_SOURCE_URL",
    "DEFAULT_TIMEOUT",
    "FENEGOSIDA_URL",
    "HtmlRateSource",
    "JsonRateSource",
    "parse_rates_html",
    "parse_rates_json",
    "source_tag",
]
