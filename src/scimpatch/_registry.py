from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from scimpatch.data.operator import BinaryAttributeOperator, UnaryAttributeOperator


unary_operators: dict[str, type["UnaryAttributeOperator"]] = {}
binary_operators: dict[str, type["BinaryAttributeOperator"]] = {}


def register_unary_operator(operator: type["UnaryAttributeOperator"]):
    op = operator.op.lower()
    existing_operator = unary_operators.get(op)
    if existing_operator is not None and existing_operator != operator:
        raise RuntimeError(f"different implementation for unary operator {op!r} already provided")
    unary_operators[op] = operator


def register_binary_operator(operator: type["BinaryAttributeOperator"]):
    op = operator.op.lower()
    existing_operator = binary_operators.get(op)
    if existing_operator is not None and existing_operator != operator:
        raise RuntimeError(f"different implementation for binary operator {op!r} already provided")
    binary_operators[op] = operator
