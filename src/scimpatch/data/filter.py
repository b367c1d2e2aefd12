import re
from typing import Any, Generic, Iterable, Mapping, Type, TypeVar, Union, cast

from scimpatch._registry import (
    binary_operators,
    register_binary_operator,
    register_unary_operator,
    unary_operators,
)
from scimpatch.data import operator as op
from scimpatch.data.identifiers import AttrRep, AttrRepFactory
from scimpatch.data.scim_data import ScimData
from scimpatch.data.utils import (
    OP_REGEX,
    decode_placeholders,
    deserialize_comparison_value,
    deserialize_placeholder,
    encode_strings,
    get_placeholder,
    serialize_comparison_value,
)

OR_LOGICAL_OPERATOR_SPLIT_REGEX = re.compile(r"\s*\bor\b\s*", flags=re.DOTALL | re.IGNORECASE)
AND_LOGICAL_OPERATOR_SPLIT_REGEX = re.compile(r"\s*\band\b\s*", flags=re.DOTALL | re.IGNORECASE)
NOT_LOGICAL_OPERATOR_REGEX = re.compile(r"\s*\bnot\b\s*(.*)", flags=re.DOTALL | re.IGNORECASE)
COMPLEX_OPERATOR_REGEX = re.compile(r"([\w:.$-]+)\[(.*?)]", flags=re.DOTALL)
GROUP_OPERATOR_REGEX = re.compile(r"\((?:[^()]|\([^()]*\))*\)", flags=re.DOTALL)


TOperator = TypeVar("TOperator", bound=op.Operator)


class Filter(Generic[TOperator]):
    """
    Data filter supporting SCIM and custom operators.

    Args:
        operator: Underlying filter operator, used for data filtering.

    Examples:
        >>> type_filter = Filter.deserialize('type eq "work"')
        >>> type_filter({"type": "work"}, emails_attr)
        True
        >>> type_filter({"type": "home"}, emails_attr)
        False
    """

    def __init__(self, operator: TOperator):
        self._operator = operator

    def __repr__(self) -> str:
        return f"Filter({self.serialize()})"

    @property
    def operator(self) -> TOperator:
        return self._operator

    @property
    def attr_reps(self) -> list[AttrRep]:
        """
        Attribute representations used in the filter, in order of appearance.
        """
        return self._get_attr_reps(self._operator)

    @staticmethod
    def _get_attr_reps(operator: op.Operator) -> list[AttrRep]:
        if isinstance(operator, op.AttributeOperator):
            return [operator.attr_rep]
        if isinstance(operator, op.ComplexAttributeOperator):
            return [
                AttrRep(attr=operator.attr_rep.attr, sub_attr=sub_rep.attr)
                for sub_rep in Filter._get_attr_reps(operator.sub_operator)
            ]
        output: list[AttrRep] = []
        if isinstance(operator, op.LogicalOperator):
            for sub_operator in operator.sub_operators:
                for attr_rep in Filter._get_attr_reps(sub_operator):
                    if attr_rep not in output:
                        output.append(attr_rep)
        return output

    def serialize(self) -> str:
        """
        Serializes `Filter` to string filter expression.
        """
        output = self._serialize(self._operator)
        if output.startswith("(") and output.endswith(")"):
            output = output[1:-1]
        return output

    @staticmethod
    def _serialize(operator: op.Operator) -> str:
        if isinstance(operator, op.AttributeOperator):
            output = f"{operator.attr_rep} {operator.op}"
            if isinstance(operator, op.BinaryAttributeOperator):
                output += f" {serialize_comparison_value(operator.value)}"
            return output

        if isinstance(operator, op.ComplexAttributeOperator):
            return f"{operator.attr_rep}[{Filter._serialize(operator.sub_operator)}]"

        if isinstance(operator, op.Not):
            return f"{operator.op} ({Filter._serialize(operator.sub_operators[0])})"

        if isinstance(operator, (op.And, op.Or)):
            output = f" {operator.op} ".join(
                [Filter._serialize(sub_operator) for sub_operator in operator.sub_operators]
            )
            return f"({output})"

        raise TypeError(f"unsupported filter type {type(operator).__name__!r}")

    @classmethod
    def deserialize(cls, filter_exp: str) -> "Filter":
        """
        Deserializes the filter expression. Attribute names in the expression are
        kept as they are, so the filter can be matched against data described by
        a schema or a complex attribute.

        Raises:
            ValueError: If provided filter expression is invalid.
        """
        try:
            return cls._deserialize(filter_exp)
        except (AssertionError, KeyError, TypeError, ValueError, IndexError):
            raise ValueError(f"invalid filter expression {filter_exp!r}")

    @classmethod
    def _deserialize(cls, filter_exp: str) -> "Filter":
        filter_exp, placeholders = encode_strings(filter_exp.strip())
        assert filter_exp
        for match in COMPLEX_OPERATOR_REGEX.finditer(filter_exp):
            attr_rep = AttrRepFactory.deserialize(match.group(1))
            if attr_rep.is_sub_attr:
                raise ValueError("complex attribute can not be a sub-attribute")
            deserialized_sub_op = cast(
                Union[op.AttributeOperator, op.LogicalOperator],
                cls._deserialize_operator(match.group(2), placeholders, in_complex_group=True),
            )
            id_, placeholder = get_placeholder()
            placeholders[id_] = op.ComplexAttributeOperator(
                attr_rep=attr_rep,
                sub_operator=deserialized_sub_op,
            )
            filter_exp = filter_exp.replace(match.group(0), placeholder, 1)

        deserialized_op = cls._deserialize_operator(
            filter_exp, placeholders, in_complex_group=False
        )
        return cls(cast(TOperator, deserialized_op))

    @staticmethod
    def _deserialize_operator(
        exp: str, placeholders: dict[str, Any], in_complex_group: bool
    ) -> op.Operator:
        for match in GROUP_OPERATOR_REGEX.finditer(exp):
            sub_op_exp = match.group(0)
            deserialized_op = Filter._deserialize_operator(
                exp=sub_op_exp[1:-1],  # without enclosing brackets
                placeholders=placeholders,
                in_complex_group=in_complex_group,
            )
            id_, placeholder = get_placeholder()
            placeholders[id_] = deserialized_op
            exp = exp.replace(sub_op_exp, placeholder, 1)
        return Filter._deserialize_op_or_exp(exp, placeholders, in_complex_group)

    @staticmethod
    def _deserialize_op_or_exp(
        exp: str, placeholders: dict[str, Any], in_complex_group: bool
    ) -> op.Operator:
        or_operands = Filter._split_exp_to_logical_operands(exp, OR_LOGICAL_OPERATOR_SPLIT_REGEX)
        deserialized_or_operands = [
            Filter._deserialize_op_and_exp(or_operand, placeholders, in_complex_group)
            for or_operand in or_operands
        ]
        if len(deserialized_or_operands) == 1:
            return deserialized_or_operands[0]
        return op.Or(*deserialized_or_operands)

    @staticmethod
    def _deserialize_op_and_exp(
        exp: str, placeholders: dict[str, Any], in_complex_group: bool
    ) -> op.Operator:
        and_operands = Filter._split_exp_to_logical_operands(
            exp, AND_LOGICAL_OPERATOR_SPLIT_REGEX
        )
        deserialized_and_operands: list[op.Operator] = []
        for and_operand in and_operands:
            match = NOT_LOGICAL_OPERATOR_REGEX.match(and_operand)
            if match:
                deserialized_and_operands.append(
                    op.Not(
                        Filter._deserialize_op_attr_exp(
                            match.group(1), placeholders, in_complex_group
                        )
                    )
                )
            else:
                deserialized_and_operands.append(
                    Filter._deserialize_op_attr_exp(and_operand, placeholders, in_complex_group)
                )
        if len(deserialized_and_operands) == 1:
            return deserialized_and_operands[0]
        return op.And(*deserialized_and_operands)

    @staticmethod
    def _split_exp_to_logical_operands(exp: str, regexp: re.Pattern[str]) -> list[str]:
        operands = []
        current_position = 0
        matches = list(regexp.finditer(exp))
        for i, match in enumerate(matches):
            if i == 0:
                operands.append(exp[current_position : match.start()])
            if i == len(matches) - 1:
                right_operand = exp[match.end() :]
            else:
                right_operand = exp[match.end() : matches[i + 1].start()]
            operands.append(right_operand)
            current_position = match.end()
        if not matches:
            operands = [exp]

        assert "" not in operands
        return operands

    @staticmethod
    def _deserialize_op_attr_exp(
        exp: str, placeholders: dict[str, Any], in_complex_group: bool
    ) -> op.Operator:
        exp = exp.strip()
        if (placeholder := deserialize_placeholder(exp)) and (
            sub_or_complex := placeholders.get(placeholder)
        ) is not None:
            if isinstance(sub_or_complex, op.Operator):
                return sub_or_complex
        components = OP_REGEX.split(exp)
        assert len(components) in [2, 3]

        attr_rep = AttrRepFactory.deserialize(components[0])
        if in_complex_group:
            attr_rep = AttrRep(attr=attr_rep.sub_attr if attr_rep.is_sub_attr else attr_rep.attr)

        op_: Union[Type[op.UnaryAttributeOperator], Type[op.BinaryAttributeOperator]]
        if len(components) == 2:
            op_ = unary_operators[components[1].lower()]
            return op_(attr_rep)

        op_ = binary_operators[components[1].lower()]
        value = deserialize_comparison_value(decode_placeholders(components[2], placeholders))
        return op_(attr_rep, value)

    def __call__(self, data: Mapping[str, Any], schema_or_complex: op.SchemaOrComplex) -> bool:
        """
        Matches the data against the filter.

        Args:
            data: Data to be matched.
            schema_or_complex: Schema or `Complex` attribute, which describes
                the provided data.

        Returns:
            Flag indicating whether the data matches the filter.
        """
        return self._operator.match(ScimData(data), schema_or_complex)

    def __eq__(self, other: Any) -> bool:
        if not isinstance(other, Filter):
            return False
        return ScimData(self.to_dict()) == ScimData(other.to_dict())

    def to_dict(self) -> dict:
        """
        Converts the filter to a dictionary.
        """
        return self._to_dict(self._operator)

    @staticmethod
    def _to_dict(operator: op.Operator) -> dict[str, Any]:
        if isinstance(operator, op.AttributeOperator):
            filter_dict: dict[str, Any] = {"op": operator.op, "attr": str(operator.attr_rep)}
            if isinstance(operator, op.BinaryAttributeOperator):
                filter_dict["value"] = operator.value
            return filter_dict

        if isinstance(operator, op.ComplexAttributeOperator):
            return {
                "op": "complex",
                "attr": str(operator.attr_rep),
                "sub_op": Filter._to_dict(operator.sub_operator),
            }

        if isinstance(operator, op.Not):
            return {"op": operator.op, "sub_op": Filter._to_dict(operator.sub_operators[0])}

        if isinstance(operator, (op.And, op.Or)):
            return {
                "op": operator.op,
                "sub_ops": [
                    Filter._to_dict(sub_operator) for sub_operator in operator.sub_operators
                ],
            }
        raise TypeError(f"unsupported filter type {type(operator).__name__!r}")


def _register_operators(operators: Iterable[type[op.AttributeOperator]]) -> None:
    for operator in operators:
        if issubclass(operator, op.UnaryAttributeOperator):
            register_unary_operator(operator)
        elif issubclass(operator, op.BinaryAttributeOperator):
            register_binary_operator(operator)


_register_operators(
    [
        op.Present,
        op.Equal,
        op.NotEqual,
        op.Contains,
        op.StartsWith,
        op.EndsWith,
        op.GreaterThan,
        op.GreaterThanOrEqual,
        op.LesserThan,
        op.LesserThanOrEqual,
    ]
)
