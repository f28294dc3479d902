import logging
from typing import Any

from pydantic import BaseModel

logger = logging.getLogger(__name__)

_FALLBACKS = {dict: dict, str: str, bool: bool, int: int, float: float}


class CustomBaseModel(BaseModel):
    """Custom base model for response schemas.
    - coerce simple-typed values before init
    - fall back to the field default (or the type's zero value) when a value cannot be coerced
    """

    def __init__(self, **data: Any) -> None:
        fields = self.__class__.model_fields
        for attr, value in data.items():
            if attr not in fields or value is None:
                continue
            attr_type = fields[attr].annotation
            if attr_type not in _FALLBACKS:
                continue
            try:  # try to convert the value to the type of the attribute
                data[attr] = attr_type(value)
            except (TypeError, ValueError):
                logger.debug("invalid value for key %s, using default", attr)
                field = fields[attr]
                data[attr] = field.default if not field.is_required() else _FALLBACKS[attr_type]()
        super().__init__(**data)


class Message(CustomBaseModel):
    success: bool = True
    message: str = ""
