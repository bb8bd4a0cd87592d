from __future__ import annotations

import math

from flask import (
    abort,
    current_app,
    flash,
    redirect,
    render_template,
    request,
    url_for,
)
from flask_login import current_user, login_required

from linxify.extensions import db
from linxify.jobs.archiver import start_archive_job
from linxify.models import Category, Highlight
from linxify.services.common import (
    ValidationError,
    as_sentence,
    clean_text,
    is_http_url,
    safe_redirect_target,
)
from linxify.services.links import (
    LINK_SORTS,
    apply_link_payload,
    create_category,
    create_link,
    delete_category,
    delete_link,
    get_user_category,
    get_user_link,
    list_links,
    normalize_sort,
    rename_category,
    user_tags,
)
from linxify.services.metadata import ScrapeError, scrape_metadata
from linxify.web import web_bp


def _prefill_from_url(url: str) -> dict:
    prefill = {
        "url": url,
        "title": "",
        "description": "",
        "favicon_url": "",
        "image_url": "",
    }
    if not is_http_url(url):
        return prefill
    try:
        metadata = scrape_metadata(
            url,
            timeout=current_app.config["CONTENT_FETCH_TIMEOUT"],
            max_bytes=current_app.config["CONTENT_MAX_BYTES"],
        )
    except ScrapeError as exc:
        current_app.logger.warning("Prefill scrape failed for %s: %s", url, exc)
        return prefill
    prefill.update(
        title=metadata.title,
        description=metadata.description,
        favicon_url=metadata.favicon or "",
        image_url=metadata.image or "",
    )
    return prefill


def _user_categories():
    return (
        Category.query.filter_by(user_id=current_user.id)
        .order_by(Category.description.asc())
        .all()
    )


@web_bp.route("/")
def index():
    if current_user.is_authenticated:
        return redirect(url_for("web.dashboard"))
    return redirect(url_for("auth.login"))


@web_bp.route("/add")
@login_required
def quick_save():
    url = (request.args.get("url") or "").strip()
    if url:
        return redirect(url_for("web.dashboard", addUrl=url))
    return redirect(url_for("web.dashboard"))


@web_bp.route("/dashboard")
@login_required
def dashboard():
    page = max(request.args.get("page", 1, type=int) or 1, 1)
    category_id = request.args.get("categoryId", type=int)
    tag = clean_text(request.args.get("tag")) or None
    q = clean_text(request.args.get("q"))
    sort = normalize_sort(request.args.get("sort"))
    page_size = current_app.config["LINKS_PAGE_SIZE"]

    result = list_links(
        current_user.id,
        page=page,
        page_size=page_size,
        category_id=category_id,
        tag=tag,
        q=q,
        sort=sort,
    )
    add_url = (request.args.get("addUrl") or "").strip()
    prefill = _prefill_from_url(add_url) if add_url else None

    return render_template(
        "dashboard.html",
        links=result.items,
        total=result.total,
        page=result.page,
        page_count=max(1, math.ceil(result.total / page_size)),
        categories=_user_categories(),
        tags=user_tags(current_user.id),
        sorts=LINK_SORTS,
        active_category_id=category_id,
        active_tag=tag,
        active_sort=sort,
        q=q,
        prefill=prefill,
    )


@web_bp.route("/links", methods=["POST"])
@login_required
def links_create_web():
    payload = {
        "url": request.form.get("url"),
        "title": request.form.get("title"),
        "description": request.form.get("description"),
        "tags": request.form.get("tags") or "",
        "favicon_url": request.form.get("favicon_url"),
        "image_url": request.form.get("image_url"),
        "category_ids": request.form.getlist("category_ids"),
    }
    try:
        link = create_link(current_user.id, payload)
    except ValidationError as exc:
        db.session.rollback()
        flash(as_sentence(exc.message), "error")
        return redirect(url_for("web.dashboard"))

    start_archive_job(
        current_app._get_current_object(), current_user.id, link.id, link.url
    )
    flash("Link saved.", "success")
    return redirect(url_for("web.dashboard"))


@web_bp.route("/links/<int:link_id>/edit", methods=["GET", "POST"])
@login_required
def links_edit_web(link_id: int):
    link = get_user_link(current_user.id, link_id)
    if not link:
        abort(404)

    if request.method == "POST":
        payload = {
            "url": request.form.get("url"),
            "title": request.form.get("title"),
            "description": request.form.get("description"),
            "tags": request.form.get("tags") or "",
            "category_ids": request.form.getlist("category_ids"),
        }
        try:
            url_changed = apply_link_payload(
                current_user.id, link, payload, partial=True
            )
            db.session.commit()
        except ValidationError as exc:
            db.session.rollback()
            flash(as_sentence(exc.message), "error")
            return redirect(url_for("web.links_edit_web", link_id=link_id))

        if url_changed:
            start_archive_job(
                current_app._get_current_object(), current_user.id, link.id, link.url
            )
        flash("Link updated.", "success")
        return redirect(url_for("web.dashboard"))

    return render_template(
        "link_edit.html", link=link, categories=_user_categories()
    )


@web_bp.route("/links/<int:link_id>/delete", methods=["POST"])
@login_required
def links_delete_web(link_id: int):
    link = get_user_link(current_user.id, link_id)
    if not link:
        abort(404)
    delete_link(link)
    flash("Link deleted.", "success")
    return redirect(
        safe_redirect_target(request.form.get("next"), url_for("web.dashboard"))
    )


@web_bp.route("/categories", methods=["POST"])
@login_required
def categories_create_web():
    try:
        create_category(current_user.id, request.form.get("description"))
    except ValidationError as exc:
        flash(as_sentence(exc.message), "error")
    return redirect(url_for("web.dashboard"))


@web_bp.route("/categories/<int:category_id>/edit", methods=["POST"])
@login_required
def categories_edit_web(category_id: int):
    category = get_user_category(current_user.id, category_id)
    if not category:
        abort(404)
    try:
        rename_category(category, request.form.get("description"))
    except ValidationError as exc:
        flash(as_sentence(exc.message), "error")
    return redirect(url_for("web.dashboard", categoryId=category_id))


@web_bp.route("/categories/<int:category_id>/delete", methods=["POST"])
@login_required
def categories_delete_web(category_id: int):
    category = get_user_category(current_user.id, category_id)
    if not category:
        abort(404)
    delete_category(category)
    flash("Category deleted.", "success")
    return redirect(url_for("web.dashboard"))


@web_bp.route("/read/<int:link_id>")
@login_required
def reader(link_id: int):
    link = get_user_link(current_user.id, link_id)
    if not link:
        abort(404)
    return render_template("reader.html", link=link, highlights=link.highlights)


@web_bp.route("/read/<int:link_id>/highlights", methods=["POST"])
@login_required
def highlights_create_web(link_id: int):
    link = get_user_link(current_user.id, link_id)
    if not link:
        abort(404)

    text = clean_text(request.form.get("text"))
    if not text:
        flash("Select some text to highlight.", "error")
    else:
        db.session.add(
            Highlight(
                link_id=link.id,
                user_id=current_user.id,
                text=text,
                note=clean_text(request.form.get("note")) or None,
            )
        )
        db.session.commit()
    return redirect(url_for("web.reader", link_id=link.id))


@web_bp.route("/highlights/<int:highlight_id>/edit", methods=["POST"])
@login_required
def highlights_edit_web(highlight_id: int):
    highlight = Highlight.query.filter_by(
        id=highlight_id, user_id=current_user.id
    ).first_or_404()
    highlight.note = clean_text(request.form.get("note")) or None
    db.session.commit()
    return redirect(url_for("web.reader", link_id=highlight.link_id))


@web_bp.route("/highlights/<int:highlight_id>/delete", methods=["POST"])
@login_required
def highlights_delete_web(highlight_id: int):
    highlight = Highlight.query.filter_by(
        id=highlight_id, user_id=current_user.id
    ).first_or_404()
    link_id = highlight.link_id
    db.session.delete(highlight)
    db.session.commit()
    return redirect(url_for("web.reader", link_id=link_id))
