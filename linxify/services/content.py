from __future__ import annotations

import re
import warnings
from dataclasses import dataclass
from urllib.parse import urlparse

import httpx
import trafilatura
from bs4 import BeautifulSoup, XMLParsedAsHTMLWarning


DEFAULT_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0 Safari/537.36 LinxifyBot/1.0"
    ),
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
}

_UNSAFE_TAGS = ("script", "style", "iframe", "object", "embed", "form", "noscript")
_URL_ATTRIBUTES = (
    "href",
    "src",
    "action",
    "formaction",
    "xlink:href",
    "poster",
    "cite",
    "background",
)
_SAFE_URL_SCHEMES = {"http", "https", "mailto"}
# Browsers drop tab, CR and LF anywhere in a URL and trim C0 controls and
# spaces at either end before reading the scheme.
_URL_IGNORED_CHARS = re.compile(r"[\t\r\n]")
_URL_TRIMMED_CHARS = "".join(chr(code) for code in range(0x21))


def _is_safe_url(value) -> bool:
    cleaned = _URL_IGNORED_CHARS.sub("", str(value)).strip(_URL_TRIMMED_CHARS)
    try:
        scheme = urlparse(cleaned).scheme
    except ValueError:
        return False
    return not scheme or scheme.lower() in _SAFE_URL_SCHEMES


@dataclass
class FetchedPage:
    html: str
    final_url: str
    status_code: int

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300


def fetch_html(url: str, timeout: float, max_bytes: int) -> FetchedPage:
    with httpx.Client(
        follow_redirects=True, timeout=timeout, headers=DEFAULT_HEADERS
    ) as client:
        with client.stream("GET", url) as response:
            chunks = []
            total = 0
            for chunk in response.iter_bytes():
                total += len(chunk)
                if total > max_bytes:
                    break
                chunks.append(chunk)
            data = b"".join(chunks)
            encoding = response.encoding or "utf-8"
            return FetchedPage(
                html=data.decode(encoding, errors="ignore"),
                final_url=str(response.url),
                status_code=response.status_code,
            )


def build_soup(html: str) -> BeautifulSoup:
    with warnings.catch_warnings():
        warnings.filterwarnings("ignore", category=XMLParsedAsHTMLWarning)
        return BeautifulSoup(html, "lxml")


def sanitize_html(html: str) -> str:
    """Strip active content from extracted article HTML.

    Removes script-like elements and inline event handlers. URL attributes
    survive only when relative or using an http, https or mailto scheme, so
    the result can be rendered in the reader view as-is.
    """
    soup = build_soup(html)
    for element in soup.find_all(_UNSAFE_TAGS):
        element.decompose()

    for element in soup.find_all(True):
        for attribute in list(element.attrs):
            name = attribute.lower()
            if name.startswith("on") or name == "srcdoc":
                del element.attrs[attribute]
                continue
            if name in _URL_ATTRIBUTES and not _is_safe_url(element.attrs[attribute]):
                del element.attrs[attribute]

    root = soup.body or soup
    return "".join(str(child) for child in root.children).strip()


def extract_article_html(html: str, url: str | None = None) -> str | None:
    extracted = trafilatura.extract(
        html,
        url=url,
        output_format="html",
        include_comments=False,
        include_tables=True,
        include_images=True,
        include_links=True,
        include_formatting=True,
        favor_precision=True,
    )
    if not extracted:
        return None
    cleaned = sanitize_html(extracted)
    return cleaned or None


def fetch_and_archive(url: str, timeout: float, max_bytes: int, logger=None):
    """Fetch ``url`` and return sanitized reader-mode HTML, or None."""
    try:
        page = fetch_html(url, timeout=timeout, max_bytes=max_bytes)
    except (httpx.HTTPError, httpx.InvalidURL) as exc:
        if logger:
            logger.warning("Archiving failed for %s: %s", url, exc)
        return None

    if not page.ok:
        if logger:
            logger.warning(
                "Archiving failed for %s: HTTP %s", url, page.status_code
            )
        return None

    try:
        return extract_article_html(page.html, page.final_url)
    except Exception as exc:
        if logger:
            logger.warning("Archiving error for %s: %s", url, exc)
        return None
