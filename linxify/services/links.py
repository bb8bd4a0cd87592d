from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy import func

from linxify.extensions import db
from linxify.models import Category, Link, link_categories
from linxify.services.common import (
    ValidationError,
    clean_text,
    parse_id_list,
    parse_tags,
    require_http_url,
)
from linxify.services.search import search_links


SORT_NEWEST = "newest"
SORT_OLDEST = "oldest"
SORT_TITLE_ASC = "az"
SORT_TITLE_DESC = "za"
LINK_SORTS = (SORT_NEWEST, SORT_OLDEST, SORT_TITLE_ASC, SORT_TITLE_DESC)

_EDITABLE_TEXT_FIELDS = ("description", "favicon_url", "image_url")


@dataclass
class LinkPage:
    items: list[Link]
    total: int
    page: int
    page_size: int

    def as_dict(self):
        return {
            "links": [item.as_dict() for item in self.items],
            "total": self.total,
            "page": self.page,
            "pageSize": self.page_size,
        }


def get_user_link(user_id: int, link_id: int) -> Link | None:
    return Link.query.filter_by(id=link_id, user_id=user_id).first()


def get_user_category(user_id: int, category_id: int) -> Category | None:
    return Category.query.filter_by(id=category_id, user_id=user_id).first()


def normalize_sort(raw: str | None) -> str:
    sort = (raw or "").strip().lower()
    return sort if sort in LINK_SORTS else SORT_NEWEST


def _ordered(query, sort: str):
    if sort == SORT_OLDEST:
        return query.order_by(Link.created_at.asc(), Link.id.asc())
    if sort == SORT_TITLE_ASC:
        return query.order_by(func.lower(Link.title).asc(), Link.id.asc())
    if sort == SORT_TITLE_DESC:
        return query.order_by(func.lower(Link.title).desc(), Link.id.desc())
    return query.order_by(Link.created_at.desc(), Link.id.desc())


def _has_tag(link: Link, tag: str) -> bool:
    wanted = tag.lower()
    return any((value or "").lower() == wanted for value in link.tags or [])


def list_links(
    user_id: int,
    page: int = 1,
    page_size: int = 9,
    category_id: int | None = None,
    tag: str | None = None,
    q: str | None = None,
    sort: str | None = None,
) -> LinkPage:
    page = max(1, page)
    page_size = max(1, page_size)
    sort = normalize_sort(sort)
    tag = clean_text(tag)
    q = clean_text(q)

    query = Link.query.filter_by(user_id=user_id)
    if category_id:
        query = query.join(link_categories).filter(
            link_categories.c.category_id == category_id
        )
    query = _ordered(query, sort)
    offset = (page - 1) * page_size

    if not tag and not q:
        total = query.order_by(None).count()
        items = query.offset(offset).limit(page_size).all()
        return LinkPage(items=items, total=total, page=page, page_size=page_size)

    # Tags live in a JSON column and search is fuzzy, so both filter in Python.
    rows = query.all()
    if tag:
        rows = [row for row in rows if _has_tag(row, tag)]
    if q:
        rows = search_links(rows, q)
    return LinkPage(
        items=rows[offset : offset + page_size],
        total=len(rows),
        page=page,
        page_size=page_size,
    )


def user_tags(user_id: int) -> list[str]:
    names: dict[str, str] = {}
    for (tags,) in db.session.query(Link.tags).filter_by(user_id=user_id).all():
        for tag in tags or []:
            names.setdefault(tag.lower(), tag)
    return sorted(names.values(), key=str.lower)


def _assign_categories(user_id: int, link: Link, raw_ids) -> None:
    category_ids = parse_id_list(raw_ids, "category_ids")
    if not category_ids:
        link.categories = []
        return
    categories = Category.query.filter(Category.id.in_(category_ids)).all()
    found = {category.id: category for category in categories}
    if len(found) != len(category_ids):
        raise ValidationError("category not found", 404)
    if any(category.user_id != user_id for category in categories):
        raise ValidationError("category belongs to another user", 403)
    link.categories = [found[category_id] for category_id in category_ids]


def apply_link_payload(
    user_id: int, link: Link, payload: dict, partial: bool = False
) -> bool:
    """Copy validated fields from ``payload`` onto ``link``.

    With ``partial`` only keys present in the payload are touched. Returns
    True when the URL changed, which invalidates any archived content.
    """
    url_changed = False
    if not partial or "url" in payload:
        url = require_http_url(payload.get("url"))
        url_changed = url != link.url
        link.url = url
    if not partial or "title" in payload:
        title = clean_text(payload.get("title"))
        if not title:
            raise ValidationError("title is required")
        link.title = title[:512]
    for field in _EDITABLE_TEXT_FIELDS:
        if not partial or field in payload:
            setattr(link, field, clean_text(payload.get(field)) or None)
    if not partial or "tags" in payload:
        link.tags = parse_tags(payload.get("tags"))
    if not partial or "category_ids" in payload:
        _assign_categories(user_id, link, payload.get("category_ids"))

    if url_changed:
        link.archived_content = None
        link.archived_at = None
    return url_changed


def create_link(user_id: int, payload: dict) -> Link:
    link = Link(user_id=user_id)
    apply_link_payload(user_id, link, payload)
    db.session.add(link)
    db.session.commit()
    return link


def create_category(user_id: int, description) -> Category:
    description = clean_text(description)
    if not description:
        raise ValidationError("category name required")
    category = Category(user_id=user_id, description=description[:255])
    db.session.add(category)
    db.session.commit()
    return category


def rename_category(category: Category, description) -> Category:
    description = clean_text(description)
    if not description:
        raise ValidationError("category name required")
    category.description = description[:255]
    db.session.commit()
    return category


def delete_link(link: Link) -> None:
    link.categories = []
    db.session.delete(link)
    db.session.commit()


def delete_category(category: Category) -> None:
    for link in list(category.links):
        link.categories.remove(category)
    db.session.delete(category)
    db.session.commit()
