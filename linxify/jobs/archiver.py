from __future__ import annotations

import threading

from flask import Flask

from linxify.extensions import db
from linxify.models import Link, utcnow
from linxify.services.content import fetch_and_archive


def start_archive_job(app: Flask, user_id: int, link_id: int, url: str) -> None:
    if not app.config.get("ARCHIVER_ENABLED", True):
        return

    worker = threading.Thread(
        target=run_archive_job,
        args=(app, user_id, link_id, url),
        daemon=True,
        name=f"archive-link-{link_id}",
    )
    worker.start()


def run_archive_job(app: Flask, user_id: int, link_id: int, url: str) -> bool:
    with app.app_context():
        db.session.remove()
        content = fetch_and_archive(
            url,
            timeout=float(app.config["CONTENT_FETCH_TIMEOUT"]),
            max_bytes=int(app.config["CONTENT_MAX_BYTES"]),
            logger=app.logger,
        )
        if content is None:
            return False

        try:
            link = Link.query.filter_by(id=link_id, user_id=user_id).first()
            if not link:
                app.logger.warning("Link %s was deleted before archiving", link_id)
                return False
            if link.url != url:
                app.logger.warning(
                    "Link %s changed URL while archiving; dropping result", link_id
                )
                return False

            link.archived_content = content
            link.archived_at = utcnow()
            db.session.commit()
            return True
        except Exception as exc:
            db.session.rollback()
            app.logger.warning(
                "Failed to store archive for link %s (user %s): %s",
                link_id,
                user_id,
                exc,
            )
            return False
        finally:
            db.session.remove()
