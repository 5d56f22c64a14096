# task_manager/schemas/base.py
from typing import Any, Dict, Mapping, Type, TypeVar

import pydantic
from pydantic import BaseModel, ConfigDict, model_validator
from pydantic.alias_generators import to_camel

from task_manager.errors import ValidationError

FormT = TypeVar("FormT", bound="FormModel")


class FormModel(BaseModel):
    """
    Base for submitted forms.

    Fields are bound from camelCase form names (``dueDate``, ``assignedToId``)
    and blank inputs count as missing, the way a browser posts an empty box.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
        extra="ignore",
    )

    @model_validator(mode="before")
    @classmethod
    def _drop_blank(cls, data: Any) -> Any:
        if isinstance(data, Mapping):
            return {k: v for k, v in data.items() if v is not None and not (isinstance(v, str) and not v.strip())}
        return data


def _error_field(loc) -> str:
    parts = [str(p) for p in loc if not isinstance(p, int)]
    return parts[0] if parts else "__all__"


def _error_message(err: Dict[str, Any]) -> str:
    if err.get("type") == "missing":
        return "This field is required."
    msg = err.get("msg", "Invalid value.")
    # pydantic prefixes custom ValueErrors with "Value error, "
    if msg.startswith("Value error, "):
        msg = msg[len("Value error, "):]
    return msg


def bind_form(schema: Type[FormT], data: Mapping[str, Any]) -> FormT:
    """Validate submitted data into ``schema`` or raise our ValidationError."""
    try:
        return schema.model_validate(dict(data))
    except pydantic.ValidationError as exc:
        errors: Dict[str, list] = {}
        for err in exc.errors():
            errors.setdefault(_error_field(err.get("loc", ())), []).append(_error_message(err))
        raise ValidationError(errors)
