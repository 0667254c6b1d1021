from slugify import slugify


def make_slug(name: str) -> str:
    """URL-safe, lowercase, hyphenated form of a display name."""
    return slugify(name or "")
