from services.errors import ValidationError


def parse_id(value, field: str) -> int:
    """Positive integer id from a JSON value or a digit string."""
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be an integer")
    if isinstance(value, int):
        number = value
    elif isinstance(value, str) and value.strip().isdigit():
        number = int(value.strip())
    else:
        raise ValidationError(f"{field} must be an integer")

    if number < 1:
        raise ValidationError(f"{field} must be a positive integer")
    return number
