"""Recomputation of derived fields before encoding."""

from __future__ import annotations

from pydantic import ValidationError
from structlog import get_logger

from ..exceptions import HookError, StructbitsError
from ..models.base import BitStruct
from .field import call_hook
from .schema import container_for

logger = get_logger()


def update(message: BitStruct) -> None:
    """Recompute every field that declares an ``update`` hook, in place.

    Nested values are updated first, so an outer field such as a total length
    sees the already updated inner state. The stream is never touched and the
    pass is idempotent.

    Raises:
        HookError: If an update hook fails or its result is rejected by the model
    """
    spec = container_for(type(message))

    for field_spec in spec.fields:
        if field_spec.nested is None:
            continue
        current = getattr(message, field_spec.name)
        children = (current or []) if field_spec.is_list else [current]
        for child in children:
            if not isinstance(child, BitStruct):
                continue
            try:
                update(child)
            except StructbitsError as err:
                raise err.at(field_spec.name)

    for field_spec in spec.fields:
        if field_spec.update is None:
            continue
        try:
            value = call_hook(field_spec.update, message, what="update")
            setattr(message, field_spec.name, value)
        except ValidationError as err:
            raise HookError(f"update produced an invalid value: {err}").at(field_spec.name) from err
        except StructbitsError as err:
            raise err.at(field_spec.name)
        logger.debug("field updated", schema=spec.name, field=field_spec.name, value=value)
