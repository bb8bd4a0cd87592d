from __future__ import annotations

from flask import current_app, g, jsonify, request
from flask_login import login_user, logout_user

from linxify.api import api_bp
from linxify.extensions import db
from linxify.jobs.archiver import start_archive_job
from linxify.models import Category, Highlight
from linxify.services.accounts import (
    RESET_REQUESTED_MESSAGE,
    authenticate,
    register_user,
    request_password_reset,
    reset_password,
)
from linxify.services.common import (
    ValidationError,
    clean_text,
    require_http_url,
    to_bool,
)
from linxify.services.links import (
    apply_link_payload,
    create_category,
    create_link,
    delete_category,
    delete_link,
    get_user_category,
    get_user_link,
    list_links,
    rename_category,
    user_tags,
)
from linxify.services.metadata import ScrapeError, scrape_metadata
from linxify.services.security import api_auth_required


def _json_payload() -> dict:
    payload = request.get_json(silent=True)
    return payload if isinstance(payload, dict) else {}


def _queue_archive(link) -> None:
    start_archive_job(
        current_app._get_current_object(), link.user_id, link.id, link.url
    )


def _get_user_link_or_404(user_id: int, link_id: int):
    link = get_user_link(user_id, link_id)
    if not link:
        return None, (jsonify({"error": "link not found"}), 404)
    return link, None


def _get_user_category_or_404(user_id: int, category_id: int):
    category = get_user_category(user_id, category_id)
    if not category:
        return None, (jsonify({"error": "category not found"}), 404)
    return category, None


def _get_user_highlight_or_404(user_id: int, highlight_id: int):
    highlight = Highlight.query.filter_by(id=highlight_id, user_id=user_id).first()
    if not highlight:
        return None, (jsonify({"error": "highlight not found"}), 404)
    return highlight, None


@api_bp.route("/health")
def health():
    return jsonify({"status": "ok", "service": "Linxify"})


@api_bp.route("/auth/register", methods=["POST"])
def auth_register():
    payload = _json_payload()
    user = register_user(
        payload.get("email"), payload.get("password"), payload.get("name")
    )
    return jsonify({"message": "user created successfully", "user": user.as_dict()}), 201


@api_bp.route("/auth/login", methods=["POST"])
def auth_login():
    payload = _json_payload()
    if not clean_text(payload.get("email")) or not payload.get("password"):
        return jsonify({"error": "email and password are required"}), 400

    user = authenticate(payload.get("email"), payload.get("password"))
    if not user:
        return jsonify({"error": "invalid credentials"}), 401
    login_user(user, remember=to_bool(payload.get("remember"), default=False))
    return jsonify({"user": user.as_dict()})


@api_bp.route("/auth/logout", methods=["POST"])
def auth_logout():
    logout_user()
    return jsonify({"status": "logged out"})


@api_bp.route("/auth/session", methods=["GET"])
@api_auth_required
def auth_session():
    return jsonify({"user": g.api_user.as_dict()})


@api_bp.route("/auth/forgot-password", methods=["POST"])
def auth_forgot_password():
    payload = _json_payload()
    request_password_reset(payload.get("email"))
    return jsonify({"message": RESET_REQUESTED_MESSAGE})


@api_bp.route("/auth/reset-password", methods=["POST"])
def auth_reset_password():
    payload = _json_payload()
    reset_password(payload.get("token"), payload.get("password"))
    return jsonify({"message": "password has been reset successfully"})


@api_bp.route("/links", methods=["GET"])
@api_auth_required
def links_list():
    user = g.api_user
    config = current_app.config
    page_size = (
        request.args.get("pageSize", type=int)
        or request.args.get("page_size", type=int)
        or config["LINKS_PAGE_SIZE"]
    )
    page_size = min(max(page_size, 1), config["LINKS_MAX_PAGE_SIZE"])
    result = list_links(
        user.id,
        page=request.args.get("page", 1, type=int) or 1,
        page_size=page_size,
        category_id=request.args.get("categoryId", type=int)
        or request.args.get("category_id", type=int),
        tag=request.args.get("tag"),
        q=request.args.get("q"),
        sort=request.args.get("sort"),
    )
    return jsonify(result.as_dict())


@api_bp.route("/links", methods=["POST"])
@api_auth_required
def links_create():
    user = g.api_user
    link = create_link(user.id, _json_payload())
    _queue_archive(link)
    return jsonify(link.as_dict()), 201


@api_bp.route("/links/<int:link_id>", methods=["GET"])
@api_auth_required
def links_get(link_id: int):
    user = g.api_user
    link, error = _get_user_link_or_404(user.id, link_id)
    if error:
        return error
    return jsonify(link.as_dict(include_content=True, include_highlights=True))


@api_bp.route("/links/<int:link_id>", methods=["PUT", "PATCH"])
@api_auth_required
def links_update(link_id: int):
    user = g.api_user
    link, error = _get_user_link_or_404(user.id, link_id)
    if error:
        return error

    url_changed = apply_link_payload(
        user.id, link, _json_payload(), partial=request.method == "PATCH"
    )
    db.session.commit()
    if url_changed:
        _queue_archive(link)
    return jsonify(link.as_dict(include_content=True))


@api_bp.route("/links/<int:link_id>", methods=["DELETE"])
@api_auth_required
def links_delete(link_id: int):
    user = g.api_user
    link, error = _get_user_link_or_404(user.id, link_id)
    if error:
        return error
    delete_link(link)
    return jsonify({"success": True})


@api_bp.route("/links/<int:link_id>/archive", methods=["POST"])
@api_auth_required
def links_archive(link_id: int):
    user = g.api_user
    link, error = _get_user_link_or_404(user.id, link_id)
    if error:
        return error
    _queue_archive(link)
    return jsonify({"status": "queued", "link_id": link.id}), 202


@api_bp.route("/tags", methods=["GET"])
@api_auth_required
def tags_list():
    return jsonify({"items": user_tags(g.api_user.id)})


@api_bp.route("/categories", methods=["GET"])
@api_auth_required
def categories_list():
    user = g.api_user
    items = (
        Category.query.filter_by(user_id=user.id)
        .order_by(Category.created_at.desc(), Category.id.desc())
        .all()
    )
    return jsonify({"items": [item.as_dict() for item in items]})


@api_bp.route("/categories", methods=["POST"])
@api_auth_required
def categories_create():
    user = g.api_user
    category = create_category(user.id, _json_payload().get("description"))
    return jsonify(category.as_dict()), 201


@api_bp.route("/categories/<int:category_id>", methods=["GET"])
@api_auth_required
def categories_get(category_id: int):
    user = g.api_user
    category, error = _get_user_category_or_404(user.id, category_id)
    if error:
        return error
    return jsonify(category.as_dict())


@api_bp.route("/categories/<int:category_id>", methods=["PUT", "PATCH"])
@api_auth_required
def categories_update(category_id: int):
    user = g.api_user
    category, error = _get_user_category_or_404(user.id, category_id)
    if error:
        return error

    rename_category(category, _json_payload().get("description"))
    return jsonify(category.as_dict())


@api_bp.route("/categories/<int:category_id>", methods=["DELETE"])
@api_auth_required
def categories_delete(category_id: int):
    user = g.api_user
    category, error = _get_user_category_or_404(user.id, category_id)
    if error:
        return error
    delete_category(category)
    return jsonify({"success": True})


@api_bp.route("/highlights", methods=["GET"])
@api_auth_required
def highlights_list():
    user = g.api_user
    query = Highlight.query.filter_by(user_id=user.id)
    link_id = request.args.get("linkId", type=int) or request.args.get(
        "link_id", type=int
    )
    if link_id:
        query = query.filter_by(link_id=link_id)
    items = query.order_by(Highlight.created_at.asc(), Highlight.id.asc()).all()
    return jsonify({"items": [item.as_dict() for item in items]})


@api_bp.route("/highlights", methods=["POST"])
@api_auth_required
def highlights_create():
    user = g.api_user
    payload = _json_payload()
    try:
        link_id = int(payload.get("link_id"))
    except (TypeError, ValueError):
        return jsonify({"error": "link_id is required"}), 400
    text = clean_text(payload.get("text"))
    if not text:
        return jsonify({"error": "highlight text is required"}), 400

    link, error = _get_user_link_or_404(user.id, link_id)
    if error:
        return error

    highlight = Highlight(
        link_id=link.id,
        user_id=user.id,
        text=text,
        note=clean_text(payload.get("note")) or None,
    )
    db.session.add(highlight)
    db.session.commit()
    return jsonify(highlight.as_dict()), 201


@api_bp.route("/highlights/<int:highlight_id>", methods=["GET"])
@api_auth_required
def highlights_get(highlight_id: int):
    user = g.api_user
    highlight, error = _get_user_highlight_or_404(user.id, highlight_id)
    if error:
        return error
    return jsonify(highlight.as_dict())


@api_bp.route("/highlights/<int:highlight_id>", methods=["PUT", "PATCH"])
@api_auth_required
def highlights_update(highlight_id: int):
    user = g.api_user
    highlight, error = _get_user_highlight_or_404(user.id, highlight_id)
    if error:
        return error

    payload = _json_payload()
    if "note" not in payload:
        return jsonify({"error": "only the note can be edited"}), 400
    highlight.note = clean_text(payload.get("note")) or None
    db.session.commit()
    return jsonify(highlight.as_dict())


@api_bp.route("/highlights/<int:highlight_id>", methods=["DELETE"])
@api_auth_required
def highlights_delete(highlight_id: int):
    user = g.api_user
    highlight, error = _get_user_highlight_or_404(user.id, highlight_id)
    if error:
        return error
    db.session.delete(highlight)
    db.session.commit()
    return jsonify({"success": True})


@api_bp.route("/scrape", methods=["POST"])
@api_auth_required
def scrape():
    payload = _json_payload()
    try:
        url = require_http_url(payload.get("url"))
    except ValidationError as exc:
        return jsonify({"error": exc.message}), 400

    try:
        metadata = scrape_metadata(
            url,
            timeout=current_app.config["CONTENT_FETCH_TIMEOUT"],
            max_bytes=current_app.config["CONTENT_MAX_BYTES"],
        )
    except ScrapeError as exc:
        current_app.logger.warning(
            "Scrape failed for %s: %s", url, exc.__cause__ or exc
        )
        return jsonify({"error": str(exc)}), 400
    return jsonify(metadata.as_dict())
