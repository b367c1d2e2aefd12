import json
from typing import Any, Mapping, Optional

from scimpatch.data.scim_data import Missing, ScimData


def is_empty(value: Any) -> bool:
    return value is Missing or value is None or value == "" or value == [] or value == {}


def to_dict(value: Mapping) -> dict[str, Any]:
    """
    Converts the mapping, including nested mappings, to ordinary dictionary.
    """
    if isinstance(value, ScimData):
        return value.to_dict()
    return {key: _to_plain(item) for key, item in value.items()}


def _to_plain(value: Any) -> Any:
    if isinstance(value, Mapping):
        return to_dict(value)
    if isinstance(value, list):
        return [_to_plain(item) for item in value]
    return value


def load_json(value: Any) -> Any:
    """
    Returns the value parsed from JSON text, or the value itself if it is not a string.

    Raises:
        ValueError: If the value is a string, but not a valid JSON document.
    """
    if not isinstance(value, str):
        return value
    return json.loads(value)


def load_object(value: Any) -> Optional[dict[str, Any]]:
    """
    Returns the value as a dictionary, if it is a mapping or a string containing JSON object.
    Returns `None` otherwise.
    """
    if isinstance(value, Mapping):
        return to_dict(value)
    try:
        loaded = load_json(value)
    except ValueError:
        return None
    if isinstance(loaded, dict):
        return loaded
    return None


def get_key(data: Mapping, key: str) -> Optional[str]:
    """
    Returns the key of the mapping that matches the provided `key` case-insensitively.
    """
    for data_key in data:
        if isinstance(data_key, str) and data_key.lower() == key.lower():
            return data_key
    return None
