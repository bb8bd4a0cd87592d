from urllib.parse import urljoin, urlparse


class ValidationError(ValueError):
    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


def to_bool(value, default=False):
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in {"1", "true", "yes", "on"}


def clean_text(value) -> str:
    if value is None:
        return ""
    return str(value).strip()


def is_http_url(url: str) -> bool:
    parsed = urlparse(url or "")
    return parsed.scheme.lower() in {"http", "https"} and bool(parsed.netloc)


def require_http_url(raw) -> str:
    url = clean_text(raw)
    if not url:
        raise ValidationError("url is required")
    if not is_http_url(url):
        raise ValidationError("url must be an absolute http(s) URL")
    return url


def resolve_url(base: str, relative: str | None) -> str | None:
    if not relative:
        return None
    try:
        return urljoin(base, relative.strip())
    except ValueError:
        return relative


def parse_tags(raw) -> list[str]:
    if not raw:
        return []
    if isinstance(raw, str):
        tokens = raw.replace(";", ",").split(",")
    elif isinstance(raw, (list, tuple)):
        tokens = [str(item) for item in raw if item is not None]
    else:
        raise ValidationError("tags must be a list of strings")

    seen: set[str] = set()
    tags: list[str] = []
    for token in tokens:
        tag = token.strip()
        key = tag.lower()
        if not tag or key in seen:
            continue
        seen.add(key)
        tags.append(tag[:64])
    return tags


def parse_id_list(raw, field: str) -> list[int]:
    if raw is None:
        return []
    if not isinstance(raw, (list, tuple)):
        raise ValidationError(f"{field} must be a list of ids")
    ids: list[int] = []
    for value in raw:
        try:
            parsed = int(value)
        except (TypeError, ValueError):
            raise ValidationError(f"{field} must be a list of ids") from None
        if parsed not in ids:
            ids.append(parsed)
    return ids


def safe_redirect_target(raw_next: str | None, fallback: str) -> str:
    candidate = (raw_next or "").strip()
    if candidate.startswith("/") and not candidate.startswith("//"):
        return candidate
    return fallback


def as_sentence(message: str) -> str:
    text = (message or "").strip()
    if not text:
        return text
    text = text[0].upper() + text[1:]
    return text if text.endswith(".") else f"{text}."
