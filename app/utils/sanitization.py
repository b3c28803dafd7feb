import re
from typing import Optional

CONTROL_CHARS = re.compile(r"[\x00-\x08\x0B\x0C\x0E-\x1F\x7F]")


def clean_text(value: Optional[str]) -> str:
    """
    Strip surrounding whitespace and control characters from free text
    (booking descriptions, review feedback). Returns "" for None.
    """
    if not value:
        return ""
    return CONTROL_CHARS.sub("", str(value)).strip()


def sanitize_filename(filename: Optional[str], default: str = "image") -> str:
    """
    Make a client-supplied filename safe to use as the last segment of an
    object key: drops any directory part, removes control characters and
    replaces each whitespace run with "_".

    "../My Photo 1.png" -> "My_Photo_1.png"
    """
    name = CONTROL_CHARS.sub("", filename or "")
    name = re.split(r"[\\/]", name)[-1].strip()
    name = name.lstrip(".")
    name = re.sub(r"\s+", "_", name)
    return name or default
