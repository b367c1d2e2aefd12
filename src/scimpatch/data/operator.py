import abc
import operator
from typing import TYPE_CHECKING, Any, Generator, Optional, Union

from scimpatch.data.attrs import Attribute, AttributeWithCaseExact, Complex, SCIMType, String
from scimpatch.data.identifiers import AttrRep
from scimpatch.data.scim_data import Missing, ScimData

if TYPE_CHECKING:
    from scimpatch.data.schemas import ResourceSchema


SchemaOrComplex = Union["ResourceSchema", Complex]


class Operator(abc.ABC):
    @abc.abstractmethod
    def match(self, value: Optional[ScimData], schema_or_complex: SchemaOrComplex) -> bool:
        """
        Tests a given `value` against the operator and returns `True`
        if it matches, `False` otherwise.

        Args:
            value: The value to test.
            schema_or_complex: Schema or `Complex` attribute that describes the value.
        """


class LogicalOperator(Operator, abc.ABC):
    op: str

    def __init__(self, *sub_operators: Operator):
        self._sub_operators = list(sub_operators)

    @property
    def sub_operators(self) -> list[Operator]:
        return self._sub_operators

    def _collect_matches(
        self, value: Optional[ScimData], schema_or_complex: SchemaOrComplex
    ) -> Generator[bool, None, None]:
        for sub_operator in self._sub_operators:
            yield sub_operator.match(value, schema_or_complex)


class And(LogicalOperator):
    op = "and"

    def match(self, value: Optional[ScimData], schema_or_complex: SchemaOrComplex) -> bool:
        return all(self._collect_matches(value or ScimData(), schema_or_complex))


class Or(LogicalOperator):
    op = "or"

    def match(self, value: Optional[ScimData], schema_or_complex: SchemaOrComplex) -> bool:
        return any(self._collect_matches(value or ScimData(), schema_or_complex))


class Not(LogicalOperator):
    op = "not"

    def __init__(self, sub_operator: Operator):
        super().__init__(sub_operator)

    def match(self, value: Optional[ScimData], schema_or_complex: SchemaOrComplex) -> bool:
        return not next(self._collect_matches(value, schema_or_complex))


class AttributeOperator(Operator, abc.ABC):
    """
    Base class for all operators that involve attributes directly.
    Every subclass which is not an abstract must specify `op`,
    `supported_scim_types`, and `supported_types` class attributes.
    """

    op: str
    supported_scim_types: set[str]
    supported_types: set[type]

    def __init__(self, attr_rep: AttrRep):
        self._attr_rep = attr_rep

    @property
    def attr_rep(self) -> AttrRep:
        return self._attr_rep


class UnaryAttributeOperator(AttributeOperator, abc.ABC):
    @staticmethod
    @abc.abstractmethod
    def operator(value: Any) -> bool:
        """Implements operator's logic for matching the provided value."""

    def match(self, value: Optional[ScimData], schema_or_complex: SchemaOrComplex) -> bool:
        attr = schema_or_complex.attrs.get(self.attr_rep)
        if attr is None or attr.scim_type() not in self.supported_scim_types or not value:
            return False

        attr_value = value.get(self.attr_rep)
        if attr.multi_valued:
            if not isinstance(attr_value, list):
                return False
            return any(
                self.operator(item) for item in attr_value if type(item) in self.supported_types
            )
        return self.operator(attr_value)


class Present(UnaryAttributeOperator):
    op = "pr"
    supported_scim_types = {
        "string",
        "decimal",
        "dateTime",
        "reference",
        "boolean",
        "binary",
        "integer",
        "complex",
    }
    supported_types = {str, bool, int, dict, float, ScimData}

    @staticmethod
    def operator(value: Any) -> bool:
        if isinstance(value, (dict, ScimData)):
            return any(Present.operator(val) for val in value.values())
        if isinstance(value, str):
            return value != ""
        return value not in [None, Missing]


class BinaryAttributeOperator(AttributeOperator, abc.ABC):
    """
    Base class for all binary operators. The operator's value is the right operand,
    compared to the attribute's value (left operand).

    Raises:
        TypeError: If the type of the operator's value is not supported by the operator.
    """

    def __init__(self, attr_rep: AttrRep, value: Any):
        super().__init__(attr_rep=attr_rep)
        if type(value) not in self.supported_types:
            raise TypeError(
                f"value type {type(value).__name__!r} is not supported by {self.op!r} operator"
            )
        self._value = value

    @property
    def value(self) -> Any:
        return self._value

    @staticmethod
    @abc.abstractmethod
    def operator(attr_value: Any, op_value: Any) -> bool:
        """Implements operator's logic for matching the provided value."""

    def _get_values_for_comparison(
        self, value: Any, attr: Attribute
    ) -> Optional[list[tuple[Any, Any]]]:
        if attr.scim_type() not in self.supported_scim_types:
            return None

        op_value = self.value
        if isinstance(attr, Complex):
            value_sub_attr = attr.attrs.get("value")
            if value_sub_attr is None or not attr.multi_valued:
                return None
            attr = value_sub_attr
            value = [item.get("value") for item in value if isinstance(item, ScimData)]
        elif not isinstance(value, list):
            value = [value]

        if not isinstance(attr, AttributeWithCaseExact):
            return [(item, op_value) for item in value]

        if isinstance(attr, String):
            try:
                value = [
                    attr.precis.enforce(item) if isinstance(item, str) else item for item in value
                ]
                if isinstance(op_value, str):
                    op_value = attr.precis.enforce(op_value)
            except UnicodeEncodeError:
                return None

        if attr.case_exact:
            return [(item, op_value) for item in value]

        if isinstance(op_value, str):
            op_value = op_value.lower()
        return [(item.lower() if isinstance(item, str) else item, op_value) for item in value]

    def match(self, value: Optional[ScimData], schema_or_complex: SchemaOrComplex) -> bool:
        attr = schema_or_complex.attrs.get(self.attr_rep)
        if attr is None:
            return False

        attr_value = None if not value else value.get(self.attr_rep)
        if attr_value in [None, Missing]:
            return False

        values = self._get_values_for_comparison(attr_value, attr)
        if values is None:
            return False

        for item, op_value in values:
            try:
                if self.operator(item, op_value):
                    return True
            except (AttributeError, TypeError):
                pass
        return False


_ALL_SCIM_TYPES = {
    SCIMType.STRING,
    SCIMType.DECIMAL,
    SCIMType.DATETIME,
    SCIMType.REFERENCE,
    SCIMType.BOOLEAN,
    SCIMType.BINARY,
    SCIMType.INTEGER,
    SCIMType.COMPLEX,
}
_ORDERED_SCIM_TYPES = {
    SCIMType.STRING,
    SCIMType.DATETIME,
    SCIMType.INTEGER,
    SCIMType.DECIMAL,
    SCIMType.COMPLEX,
}
_TEXT_SCIM_TYPES = {SCIMType.STRING, SCIMType.REFERENCE, SCIMType.COMPLEX}


class Equal(BinaryAttributeOperator):
    op = "eq"
    supported_scim_types = _ALL_SCIM_TYPES
    supported_types = {str, bool, int, float, type(None)}

    @staticmethod
    def operator(attr_value: Any, op_value: Any) -> bool:
        return operator.eq(attr_value, op_value)


class NotEqual(BinaryAttributeOperator):
    op = "ne"
    supported_scim_types = _ALL_SCIM_TYPES
    supported_types = {str, bool, int, float, type(None)}

    @staticmethod
    def operator(attr_value: Any, op_value: Any) -> bool:
        return operator.ne(attr_value, op_value)


class Contains(BinaryAttributeOperator):
    op = "co"
    supported_scim_types = _TEXT_SCIM_TYPES
    supported_types = {str}

    @staticmethod
    def operator(attr_value: Any, op_value: Any) -> bool:
        return operator.contains(attr_value, op_value)


class StartsWith(BinaryAttributeOperator):
    op = "sw"
    supported_scim_types = _TEXT_SCIM_TYPES
    supported_types = {str}

    @staticmethod
    def operator(attr_value: Any, op_value: Any) -> bool:
        return attr_value.startswith(op_value)


class EndsWith(BinaryAttributeOperator):
    op = "ew"
    supported_scim_types = _TEXT_SCIM_TYPES
    supported_types = {str}

    @staticmethod
    def operator(attr_value: Any, op_value: Any) -> bool:
        return attr_value.endswith(op_value)


class GreaterThan(BinaryAttributeOperator):
    op = "gt"
    supported_scim_types = _ORDERED_SCIM_TYPES
    supported_types = {str, float, int}

    @staticmethod
    def operator(attr_value: Any, op_value: Any) -> bool:
        return operator.gt(attr_value, op_value)


class GreaterThanOrEqual(BinaryAttributeOperator):
    op = "ge"
    supported_scim_types = _ORDERED_SCIM_TYPES
    supported_types = {str, float, int}

    @staticmethod
    def operator(attr_value: Any, op_value: Any) -> bool:
        return operator.ge(attr_value, op_value)


class LesserThan(BinaryAttributeOperator):
    op = "lt"
    supported_scim_types = _ORDERED_SCIM_TYPES
    supported_types = {str, float, int}

    @staticmethod
    def operator(attr_value: Any, op_value: Any) -> bool:
        return operator.lt(attr_value, op_value)


class LesserThanOrEqual(BinaryAttributeOperator):
    op = "le"
    supported_scim_types = _ORDERED_SCIM_TYPES
    supported_types = {str, float, int}

    @staticmethod
    def operator(attr_value: Any, op_value: Any) -> bool:
        return operator.le(attr_value, op_value)


class ComplexAttributeOperator(Operator):
    """
    Represents complex attribute grouping operator, e.g. `emails[type eq "work"]`. Can be used
    for single-valued and multi-valued complex attributes.

    Args:
        attr_rep: A representation of a complex attribute which value should be matched.
        sub_operator: A sub-operator used to test complex attribute's sub-attribute values.
    """

    def __init__(self, attr_rep: AttrRep, sub_operator: Union[LogicalOperator, AttributeOperator]):
        self._attr_rep = attr_rep
        self._sub_operator = sub_operator

    @property
    def attr_rep(self) -> AttrRep:
        return self._attr_rep

    @property
    def sub_operator(self) -> Union[LogicalOperator, AttributeOperator]:
        return self._sub_operator

    def match(self, value: Optional[ScimData], schema_or_complex: SchemaOrComplex) -> bool:
        attr = schema_or_complex.attrs.get(self._attr_rep)
        if attr is None or not value or not isinstance(attr, Complex):
            return False

        attr_value = value.get(self._attr_rep)
        if attr.multi_valued != isinstance(attr_value, list):
            return False

        items = attr_value if isinstance(attr_value, list) else [attr_value]
        return any(
            self._sub_operator.match(ScimData(item), attr)
            for item in items
            if isinstance(item, (dict, ScimData))
        )
