"""JSON shapes exchanged with the external calendar API.

Request bodies go out camelCase; responses are decamelized before they
reach ``OccurrenceRecord.from_api_response``.
"""

from __future__ import annotations

import re
from typing import Any

from .models import OccurrenceMutation, OccurrenceRecord

_CAMEL_TO_SNAKE = re.compile(r"(?<=[a-z0-9])([A-Z])")
_SNAKE_TO_CAMEL = re.compile(r"_([a-z0-9])")


def _to_snake(name: str) -> str:
    return _CAMEL_TO_SNAKE.sub(r"_\1", name).lower()


def _to_camel(name: str) -> str:
    return _SNAKE_TO_CAMEL.sub(lambda m: m.group(1).upper(), name)


def decamelize(data: Any) -> Any:
    """Recursively convert dict keys from camelCase to snake_case."""
    if isinstance(data, dict):
        return {_to_snake(k): decamelize(v) for k, v in data.items()}
    if isinstance(data, list):
        return [decamelize(item) for item in data]
    return data


def camelize(data: Any) -> Any:
    """Recursively convert dict keys from snake_case to camelCase."""
    if isinstance(data, dict):
        return {_to_camel(k): camelize(v) for k, v in data.items()}
    if isinstance(data, list):
        return [camelize(item) for item in data]
    return data


def record_to_payload(record: OccurrenceRecord) -> dict[str, Any]:
    """camelCase body describing a freshly persisted occurrence."""
    body: dict[str, Any] = {
        "id": record.id,
        "title": record.title,
        "start_at": record.start_at,
        "end_at": record.end_at,
        "origin": record.origin.value,
        "series_id": record.series_id,
        "recurrence_rule": record.recurrence_rule,
        "calendar_id": record.calendar_id,
        "color": record.color,
    }
    return camelize({key: value for key, value in body.items() if value is not None})


def mutation_to_payload(mutation: OccurrenceMutation) -> dict[str, Any]:
    """camelCase patch body holding only the fields being changed."""
    return camelize(mutation.to_api_dict())
