import re


def create_slug(name: str) -> str:
    """
    URL slug from a display name.
    E.g., "Music & Arts" -> "music-arts", "  Self_Help  " -> "self-help"
    """
    slug = str(name).lower().strip()
    slug = re.sub(r"[^\w\s-]", "", slug)
    slug = re.sub(r"[\s_-]+", "-", slug)
    return slug.strip("-")
