"""Input checks shared by the relational and legacy stores."""

from liftlog.core.errors import ValidationError


def require_text(value: str | None, label: str, max_length: int | None = None) -> str:
    """Return the trimmed value, or raise ValidationError when it is blank or too long."""
    cleaned = (value or "").strip()
    if not cleaned:
        raise ValidationError(f"{label} is required")
    if max_length is not None and len(cleaned) > max_length:
        raise ValidationError(f"{label} must be at most {max_length} characters")
    return cleaned


def same_name(a: str, b: str) -> bool:
    """Exercise names are unique case-insensitively."""
    return a.strip().casefold() == b.strip().casefold()
