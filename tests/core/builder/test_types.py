"""
Unit tests for type expression handling.

Tests optional-container detection, type expression validation and the
literal-vs-type check used for default expressions.
"""

import pytest

from recbuilder.core.builder.errors import UnresolvableType
from recbuilder.core.builder.types import (
    TypeRules,
    literal_fits,
    optional_shape,
    parse_type,
    type_names,
)

# ==============================================================================
# Optional Shape Tests
# ==============================================================================


class TestOptionalShape:
    """Test detection of the optional-container shape."""

    @pytest.mark.parametrize(
        "text,inner",
        [
            ("Optional[str]", "str"),
            ("typing.Optional[int]", "int"),
            ("t.Optional[list[int]]", "list[int]"),
            ("Union[str, None]", "str"),
            ("Union[None, str]", "str"),
            ("str | None", "str"),
            ("None | str", "str"),
            ("int | str | None", "int | str"),
            ("Union[int, str, None]", "Union[int, str]"),
            ("Optional['Node']", "Node"),
            ("'Optional[str]'", "str"),
        ],
    )
    def test_optional_forms(self, text, inner):
        """Test every spelling of an optional container."""
        shape = optional_shape(text)
        assert shape.is_optional is True
        assert shape.inner_type == inner

    @pytest.mark.parametrize(
        "text",
        ["int", "str", "list[Optional[int]]", "dict[str, int]", "Union[int, str]", "int | str"],
    )
    def test_plain_types(self, text):
        """Test that types without a None arm are not optional."""
        shape = optional_shape(text)
        assert shape.is_optional is False
        assert shape.inner_type == text

    def test_nested_optional_only_unwraps_outer(self):
        """Test that only the outermost optional wrapper is removed."""
        shape = optional_shape("Optional[Optional[int]]")
        assert shape.is_optional is True
        assert shape.inner_type == "Optional[int]"

    def test_user_alias_named_optional_is_structural(self):
        """Test that the decision is made on the name, not on resolved types."""
        assert optional_shape("MyOptional[int]").is_optional is False

    def test_custom_aliases(self):
        """Test extra optional aliases from type rules."""
        rules = TypeRules(optional_aliases=("Optional", "Maybe"))
        shape = optional_shape("Maybe[int]", rules)
        assert shape.is_optional is True
        assert shape.inner_type == "int"

    @pytest.mark.parametrize(
        "text",
        [
            "None",
            "Optional",
            "Union",
            "Optional[int, str]",
            "Optional[None]",
            "Union[None]",
            "None | None",
        ],
    )
    def test_unresolvable(self, text):
        """Test annotations that are neither plain nor optional."""
        with pytest.raises(UnresolvableType):
            optional_shape(text)


class TestParseType:
    """Test type expression validation."""

    @pytest.mark.parametrize(
        "text",
        ["", "   ", "1 +", "42", "f()", "x[]", "lambda: int", "[int]", "a.b()"],
    )
    def test_rejects_non_types(self, text):
        """Test that values and malformed text are not type expressions."""
        with pytest.raises(UnresolvableType):
            parse_type(text)

    @pytest.mark.parametrize(
        "text",
        [
            "int",
            "collections.abc.Mapping[str, int]",
            "Callable[[int, str], bool]",
            "tuple[int, ...]",
            "Literal['a', 'b']",
            "Annotated[int, 'meta']",
            "'Forward'",
        ],
    )
    def test_accepts_types(self, text):
        """Test common type expressions."""
        parse_type(text)

    def test_value_forms_under_configured_module_alias(self):
        """Test that Literal and Annotated are recognized through a configured module."""
        rules = TypeRules(typing_modules=("tx",))
        parse_type("tx.Literal[1, 2]", rules)
        parse_type("tx.Annotated[int, 42]", rules)
        with pytest.raises(UnresolvableType):
            parse_type("tx.Literal[1, 2]")

    def test_bad_forward_reference(self):
        """Test that a string annotation must itself be a type."""
        with pytest.raises(UnresolvableType):
            parse_type("'1 +'")


class TestTypeNames:
    """Test collection of names referenced by an annotation."""

    def test_names(self):
        """Test names inside subscripts and forward references."""
        assert type_names("dict[K, list['V']]") == {"dict", "K", "list", "V"}


# ==============================================================================
# Literal Fit Tests
# ==============================================================================


class TestLiteralFits:
    """Test checking literal defaults against declared types."""

    @pytest.mark.parametrize(
        "value,text",
        [
            (10, "int"),
            (1.5, "float"),
            (1, "float"),
            ("x", "str"),
            (True, "bool"),
            (b"x", "bytes"),
            ([], "list[int]"),
            ([1, 2], "list[int]"),
            ((1, "a"), "tuple[int, str]"),
            ((1, 2, 3), "tuple[int, ...]"),
            ({"a": 1}, "dict[str, int]"),
            (None, "Optional[int]"),
            (3, "Optional[int]"),
            ("a", "Union[int, str]"),
            (None, "int | None"),
            ("a", "Literal['a', 'b']"),
            (5, "Annotated[int, 'meta']"),
            ("anything", "Any"),
        ],
    )
    def test_fits(self, value, text):
        """Test literals that fit their declared type."""
        assert literal_fits(value, text) is True

    @pytest.mark.parametrize(
        "value,text",
        [
            ("abc", "int"),
            (True, "int"),
            (1.5, "int"),
            (None, "str"),
            ([1, "a"], "list[int]"),
            ((1,), "tuple[int, str]"),
            ({"a": "b"}, "dict[str, int]"),
            ("x", "Optional[int]"),
            ("c", "Literal['a', 'b']"),
        ],
    )
    def test_does_not_fit(self, value, text):
        """Test literals that definitely do not fit."""
        assert literal_fits(value, text) is False

    @pytest.mark.parametrize("text", ["Color", "T", "mymodule.Thing", "Sequence[int]"])
    def test_unknown_types(self, text):
        """Test that user types give no verdict."""
        assert literal_fits(1, text) is None
