import re
from typing import Any, Optional
from uuid import uuid4

OP_REGEX = re.compile(r"\s+", flags=re.DOTALL)
PLACEHOLDER_REGEX = re.compile(r"\|&PLACE_HOLDER_(\w+)&\|")
STRING_VALUES_REGEX = re.compile(r"'(.*?)'|\"(.*?)\"", flags=re.DOTALL)


def get_placeholder() -> tuple[str, str]:
    id_ = uuid4().hex
    return id_, f"|&PLACE_HOLDER_{id_}&|"


def deserialize_placeholder(exp: str) -> Optional[str]:
    match = PLACEHOLDER_REGEX.fullmatch(exp)
    if match:
        return match.group(1)
    return None


def encode_strings(exp: str) -> tuple[str, dict[str, Any]]:
    """
    Replaces quoted string values in the expression with placeholders, so the expression
    can be split by whitespaces and keywords safely.
    """
    placeholders = {}
    for match in STRING_VALUES_REGEX.finditer(exp):
        start, stop = match.span()
        string_value = match.string[start:stop]
        id_, placeholder = get_placeholder()
        placeholders[id_] = string_value
        exp = exp.replace(string_value, placeholder, 1)
    return exp, placeholders


def decode_placeholders(exp: str, placeholders: dict[str, Any]) -> str:
    decoded = exp
    for match in PLACEHOLDER_REGEX.finditer(exp):
        id_ = match.group(1)
        if id_ in placeholders:
            decoded = decoded.replace(match.group(0), str(placeholders[id_]))
    return decoded


def deserialize_comparison_value(value: str) -> Any:
    if (value.startswith('"') and value.endswith('"')) or (
        value.startswith("'") and value.endswith("'")
    ):
        return value[1:-1]
    if value == "false":
        return False
    if value == "true":
        return True
    if value == "null":
        return None
    deserialized = float(value)
    deserialized_int = int(deserialized)
    if deserialized == deserialized_int:
        return deserialized_int
    return deserialized


def serialize_comparison_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return "null"
    if isinstance(value, str):
        return f'"{value}"'
    return str(value)
