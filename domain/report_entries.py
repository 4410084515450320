"""
Tolerant decoding of report sub-entries.

Entry lists are stored as JSON text and may have been written by an older or
incompatible client. Every read path runs them through ``parse_entries``:
invalid elements are dropped (never repaired), valid ones keep their order.
"""

from __future__ import annotations

import json
from typing import Any, List, Type, TypeVar

import pydantic

from shared_utils.constants import LogScope
from shared_utils.logging_utils import ContextualLogger


logger = ContextualLogger(scope=LogScope.DOMAIN)

EntryT = TypeVar("EntryT", bound=pydantic.BaseModel)


def decode_document(raw: Any) -> Any:
    """JSON text -> Python value; anything undecodable becomes ``None``."""
    if isinstance(raw, (bytes, bytearray)):
        raw = raw.decode("utf-8", errors="replace")
    if isinstance(raw, str):
        try:
            return json.loads(raw)
        except ValueError:
            logger.warning("report_document_undecodable", length=len(raw))
            return None
    return raw


def parse_entries(raw: Any, model: Type[EntryT]) -> List[EntryT]:
    """Validate each element of ``raw`` against ``model``.

    Args:
        raw: JSON text, a list, or anything else read from storage.
        model: Strict entry model (``AhUmEntry``, ``TimerEntry``, ...).

    Returns:
        The elements that validate, in original order. Non-list input
        yields an empty list.
    """
    data = decode_document(raw)
    if not isinstance(data, list):
        if data is not None:
            logger.warning(
                "report_entries_not_a_list",
                entry_model=model.__name__,
                found=type(data).__name__,
            )
        return []

    entries: List[EntryT] = []
    for index, item in enumerate(data):
        if not isinstance(item, dict):
            logger.debug("report_entry_dropped", entry_model=model.__name__, index=index, reason="not an object")
            continue
        try:
            entries.append(model.model_validate(item))
        except pydantic.ValidationError as e:
            logger.debug(
                "report_entry_dropped",
                entry_model=model.__name__,
                index=index,
                reason=e.errors()[0].get("msg", "invalid"),
            )
    return entries


def parse_string_list(raw: Any) -> List[str]:
    """Decode a stored tag list, keeping only string elements."""
    data = decode_document(raw)
    if not isinstance(data, list):
        return []
    return [item for item in data if isinstance(item, str)]
