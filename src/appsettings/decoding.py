"""
Document decoding.

Parses a settings document and writes it into an existing settings value in
place. Parsing is delegated to the standard JSON decoder or PyYAML; the
field mapping follows the document key convention described in
``appsettings.fields``.
"""

import copy
import json
from pathlib import Path
from typing import Any, Callable, MutableMapping, Mapping, Union

import yaml

from .fields import accepts_none, coerce, is_structured, match_key, nested_type, settings_fields

Decoder = Callable[[Union[bytes, str]], Any]


def _as_text(data: Union[bytes, str]) -> str:
    if isinstance(data, (bytes, bytearray)):
        return bytes(data).decode("utf-8")
    return data


def decode_json(data: Union[bytes, str]) -> Any:
    """Parse a JSON document. Empty input yields None."""
    text = _as_text(data)
    if not text.strip():
        return None
    return json.loads(text)


def decode_yaml(data: Union[bytes, str]) -> Any:
    """Parse a YAML document. Empty input yields None."""
    text = _as_text(data)
    if not text.strip():
        return None
    return yaml.safe_load(text)


def decoder_for(path: Union[str, Path]) -> Decoder:
    """Pick a decoder from the file suffix, defaulting to JSON."""
    if Path(path).suffix.lower() in {".yaml", ".yml"}:
        return decode_yaml
    return decode_json


def _merge_mapping(target: MutableMapping[str, Any], document: Mapping[str, Any]) -> None:
    for key, value in document.items():
        current = target.get(key)
        if isinstance(current, MutableMapping) and isinstance(value, Mapping):
            _merge_mapping(current, value)
        else:
            target[key] = copy.deepcopy(value)


def populate(settings: Any, document: Any) -> None:
    """
    Write a parsed document into a settings value in place.

    Fields are matched to document keys exactly first, then
    case-insensitively. Nested models and dataclasses are populated
    recursively; every other value is converted to the field annotation.
    Unknown keys are ignored and ``null`` only clears fields that accept
    None. Mapping settings are deep-merged.

    Args:
        settings: Pydantic model, dataclass instance or mutable mapping
        document: Parsed document; None means an empty document

    Raises:
        TypeError: If the document shape does not fit the settings value
        pydantic.ValidationError: If a value cannot be converted
    """
    if document is None:
        return

    if isinstance(settings, MutableMapping):
        if not isinstance(document, Mapping):
            raise TypeError(
                f"cannot unmarshal {type(document).__name__} into settings of type {type(settings).__name__}"
            )
        _merge_mapping(settings, document)
        return

    if not is_structured(settings):
        raise TypeError(f"unsupported settings type: {type(settings).__name__}")

    if not isinstance(document, Mapping):
        raise TypeError(
            f"cannot unmarshal {type(document).__name__} into settings of type {type(settings).__name__}"
        )

    for field in settings_fields(settings):
        key = match_key(document, field.key)
        if key is None:
            continue

        value = document[key]
        if value is None:
            if accepts_none(field.annotation):
                setattr(settings, field.name, None)
            continue

        current = getattr(settings, field.name, None)
        if nested_type(field.annotation) is not None and isinstance(value, Mapping) and is_structured(current):
            populate(current, value)
        else:
            setattr(settings, field.name, coerce(field.annotation, value))
