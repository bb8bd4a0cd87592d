from __future__ import annotations

from dataclasses import asdict, dataclass

import httpx

from linxify.services.common import resolve_url
from linxify.services.content import build_soup, fetch_html


DEFAULT_FAVICON_PATH = "/favicon.ico"


class ScrapeError(Exception):
    pass


@dataclass
class PageMetadata:
    title: str
    description: str
    favicon: str | None
    image: str | None

    def as_dict(self):
        return asdict(self)


def _meta_content(soup, **attrs) -> str:
    tag = soup.find("meta", attrs=attrs)
    if not tag:
        return ""
    return (tag.get("content") or "").strip()


def _favicon_href(soup) -> str | None:
    for tag in soup.find_all("link", href=True):
        rel = tag.get("rel") or []
        if isinstance(rel, str):
            rel = rel.split()
        if "icon" in {value.lower() for value in rel}:
            return tag["href"].strip() or None
    return None


def parse_metadata(html: str, base_url: str) -> PageMetadata:
    soup = build_soup(html)

    title = _meta_content(soup, property="og:title")
    if not title and soup.title and soup.title.string:
        title = soup.title.string.strip()

    description = _meta_content(soup, name="description") or _meta_content(
        soup, property="og:description"
    )
    favicon = _favicon_href(soup) or DEFAULT_FAVICON_PATH
    image = _meta_content(soup, property="og:image") or None

    return PageMetadata(
        title=title,
        description=description,
        favicon=resolve_url(base_url, favicon),
        image=resolve_url(base_url, image) if image else None,
    )


def scrape_metadata(url: str, timeout: float, max_bytes: int) -> PageMetadata:
    try:
        page = fetch_html(url, timeout=timeout, max_bytes=max_bytes)
    except (httpx.HTTPError, httpx.InvalidURL) as exc:
        raise ScrapeError("Scraping failed") from exc
    if not page.ok:
        raise ScrapeError("Failed to fetch URL")
    try:
        return parse_metadata(page.html, page.final_url or url)
    except Exception as exc:
        raise ScrapeError("Scraping failed") from exc
