from typing import Any

from bson import ObjectId

from messenger.exceptions import ValidationError


def require_object_id(value: Any, name: str) -> ObjectId:
    """Coerce a required reference to ``ObjectId`` or raise a 400."""
    if not value:
        raise ValidationError(f"Please enter {name} id!")
    if isinstance(value, ObjectId):
        return value
    if not ObjectId.is_valid(value):
        raise ValidationError(f"Please enter valid {name} id!")
    return ObjectId(value)


def optional_object_id(value: Any, name: str) -> ObjectId | None:
    if value is None:
        return None
    return require_object_id(value, name)
