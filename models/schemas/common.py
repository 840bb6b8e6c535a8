from marshmallow import ValidationError


def norm_identifier(v):
    """Trim and lowercase usernames/emails; other values pass through."""
    return v.strip().lower() if isinstance(v, str) else v


def validate_not_blank(value: str) -> None:
    if value is None or not str(value).strip():
        raise ValidationError("Field cannot be blank.")
