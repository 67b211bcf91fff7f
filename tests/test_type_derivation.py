"""
Unit tests for the Type Derivation Engine

Tests:
- Scalars, arrays and nullable unions
- Object registration, deduplication and self-reference
- Depth ceiling for unbounded nesting
- Eviction of types whose properties fail to derive
- Unsupported forms
"""

import pytest

from functions_sdk.checker.diagnostics import SchemaDerivationError
from functions_sdk.checker.types import AwaitableType, IntrinsicKind, IntrinsicType
from functions_sdk.inference.type_classifier import TypeForm, classify_type
from functions_sdk.inference.type_derivation import (
    MAX_TYPE_DERIVATION_RECURSION,
    TypeDerivationFailure,
    TypeDerivationSuccess,
    derive_schema_type,
)
from functions_sdk.inference.type_path import FunctionParameter, FunctionReturn
from functions_sdk.schema.models import (
    ArrayType,
    NamedType,
    NullableType,
    NullOrUndefinability,
    ObjectPropertyDefinition,
    TypeKind,
)


def derive_parameter(context, checker, source_file, function_name="f", index=0):
    """Derive the type of one parameter of an exported function"""
    function = next(f for f in checker.get_exported_functions(source_file) if f.name == function_name)
    parameter = checker.get_signature(function).parameters[index]
    return derive_schema_type(parameter.type, (FunctionParameter(function_name, parameter.name),), context)


def derive_return(context, checker, source_file, function_name="f"):
    """Derive the return type of an exported function"""
    function = next(f for f in checker.get_exported_functions(source_file) if f.name == function_name)
    return derive_schema_type(checker.get_signature(function).return_type, (FunctionReturn(function_name),), context)


# ============================================================================
# SCALARS, ARRAYS, NULLABLES
# ============================================================================


class TestScalarDerivation:
    """Test scalar derivation"""

    @pytest.mark.parametrize(
        "annotation,scalar",
        [("bool", "Boolean"), ("str", "String"), ("int", "Int"), ("float", "Float")],
    )
    def test_scalar_registers_fixed_name(self, derivation_context, annotation, scalar):
        """Each scalar form registers exactly its scalar name"""
        context, checker, source_file = derivation_context(
            f"""
            def f(value: {annotation}) -> int:
                return 0
            """
        )

        result = derive_parameter(context, checker, source_file)

        assert isinstance(result, TypeDerivationSuccess)
        assert result.type_definition == NamedType(scalar, TypeKind.SCALAR)
        assert result.warnings == []
        assert list(context.scalar_type_definitions) == [scalar]
        assert context.object_type_definitions == {}


class TestArrayAndNullableDerivation:
    """Test array and nullable derivation"""

    def test_array_of_scalars(self, derivation_context):
        """list[str] is an array of String"""
        context, checker, source_file = derivation_context(
            """
            def f(tags: list[str]) -> int:
                return 0
            """
        )

        result = derive_parameter(context, checker, source_file)

        assert result.type_definition == ArrayType(NamedType("String", TypeKind.SCALAR))

    def test_optional_parameter_with_default(self, derivation_context):
        """A nullable parameter with a default accepts either"""
        context, checker, source_file = derivation_context(
            """
            def f(limit: int | None = None) -> int:
                return 0
            """
        )

        result = derive_parameter(context, checker, source_file)

        assert result.type_definition == NullableType(
            NamedType("Int", TypeKind.SCALAR), NullOrUndefinability.ACCEPTS_EITHER
        )

    def test_default_only_is_undefined_only(self, derivation_context):
        """A parameter with a default but no None accepts undefined only"""
        context, checker, source_file = derivation_context(
            """
            def f(limit: int = 10) -> int:
                return 0
            """
        )

        result = derive_parameter(context, checker, source_file)

        assert result.type_definition.null_or_undefinability == NullOrUndefinability.ACCEPTS_UNDEFINED_ONLY

    def test_list_of_optional(self, derivation_context):
        """Nullability inside an array is kept on the element"""
        context, checker, source_file = derivation_context(
            """
            from typing import Optional

            def f(values: list[Optional[float]]) -> int:
                return 0
            """
        )

        result = derive_parameter(context, checker, source_file)

        assert result.type_definition == ArrayType(
            NullableType(NamedType("Float", TypeKind.SCALAR), NullOrUndefinability.ACCEPTS_NULL_ONLY)
        )


# ============================================================================
# OBJECT TYPES
# ============================================================================


class TestObjectDerivation:
    """Test structured type derivation"""

    def test_object_registered_with_properties(self, derivation_context):
        """A TypedDict registers its properties in declaration order"""
        context, checker, source_file = derivation_context(
            """
            from typing import NotRequired, TypedDict

            class Movie(TypedDict):
                title: str
                year: int
                rating: NotRequired[float]

            def f(movie: Movie) -> int:
                return 0
            """
        )

        result = derive_parameter(context, checker, source_file)

        assert result.type_definition == NamedType("Movie", TypeKind.OBJECT)
        movie = context.object_type_definitions["Movie"]
        assert [p.name for p in movie.properties] == ["title", "year", "rating"]
        assert movie.get_property("rating").type == NullableType(
            NamedType("Float", TypeKind.SCALAR), NullOrUndefinability.ACCEPTS_UNDEFINED_ONLY
        )
        assert set(context.scalar_type_definitions) == {"String", "Int", "Float"}

    def test_repeated_reference_deduplicated(self, derivation_context):
        """Reaching the same type twice yields one registry entry"""
        context, checker, source_file = derivation_context(
            """
            from typing import TypedDict

            class Point(TypedDict):
                x: float
                y: float

            class Line(TypedDict):
                start: Point
                end: Point

            def f(line: Line) -> Point:
                return line["start"]
            """
        )

        param_result = derive_parameter(context, checker, source_file)
        return_result = derive_return(context, checker, source_file)

        assert list(context.object_type_definitions) == ["Line", "Point"]
        assert return_result.type_definition == NamedType("Point", TypeKind.OBJECT)
        line = context.object_type_definitions["Line"]
        assert line.get_property("start").type == line.get_property("end").type == return_result.type_definition
        assert isinstance(param_result, TypeDerivationSuccess)

    def test_self_referencing_type(self, derivation_context):
        """A type referencing itself through a nullable and an array terminates"""
        context, checker, source_file = derivation_context(
            """
            from typing import Optional, TypedDict

            class TreeNode(TypedDict):
                value: int
                parent: Optional["TreeNode"]
                children: list["TreeNode"]

            def f(node: TreeNode) -> int:
                return 0
            """
        )

        result = derive_parameter(context, checker, source_file)

        assert isinstance(result, TypeDerivationSuccess)
        assert list(context.object_type_definitions) == ["TreeNode"]
        node = context.object_type_definitions["TreeNode"]
        self_ref = NamedType("TreeNode", TypeKind.OBJECT)
        assert node.properties == [
            ObjectPropertyDefinition("value", NamedType("Int", TypeKind.SCALAR)),
            ObjectPropertyDefinition("parent", NullableType(self_ref, NullOrUndefinability.ACCEPTS_NULL_ONLY)),
            ObjectPropertyDefinition("children", ArrayType(self_ref)),
        ]

    def test_generic_instantiation_named_by_arguments(self, derivation_context):
        """Each instantiation of a generic type is its own entry"""
        context, checker, source_file = derivation_context(
            """
            from typing import Generic, TypedDict, TypeVar

            T = TypeVar("T")

            class Page(TypedDict, Generic[T]):
                items: list[T]
                total: int

            def f(users: Page[str], scores: Page[float]) -> int:
                return 0
            """
        )

        derive_parameter(context, checker, source_file, index=0)
        derive_parameter(context, checker, source_file, index=1)

        assert list(context.object_type_definitions) == ["Page_str_", "Page_float_"]
        items = context.object_type_definitions["Page_float_"].get_property("items")
        assert items.type == ArrayType(NamedType("Float", TypeKind.SCALAR))

    def test_anonymous_type_named_from_path(self, derivation_context):
        """Inline TypedDicts nested in properties get path-based names"""
        context, checker, source_file = derivation_context(
            """
            from typing import TypedDict

            class Order(TypedDict):
                address: TypedDict[{"street": str}]

            def f() -> list[TypedDict[{"order": Order}]]:
                return []
            """
        )

        result = derive_return(context, checker, source_file)

        assert result.type_definition == ArrayType(NamedType("f_output_array", TypeKind.OBJECT))
        assert list(context.object_type_definitions) == [
            "f_output_array",
            "Order",
            "f_output_array_field_order_field_address",
        ]

    def test_empty_object_warns(self, derivation_context):
        """A type with no properties derives with a warning"""
        context, checker, source_file = derivation_context(
            """
            from typing import TypedDict

            class Empty(TypedDict):
                pass

            def f(empty: Empty) -> int:
                return 0
            """
        )

        result = derive_parameter(context, checker, source_file)

        assert isinstance(result, TypeDerivationSuccess)
        assert result.warnings == [
            "Type 'Empty' has no properties, encountered in function 'f' parameter 'empty'"
        ]
        assert context.object_type_definitions["Empty"].properties == []


# ============================================================================
# FAILURES
# ============================================================================


class TestDerivationFailures:
    """Test unsupported forms and error handling"""

    def test_unsupported_property_evicts_type(self, derivation_context):
        """A type with a failing property is removed from the registry"""
        context, checker, source_file = derivation_context(
            """
            from typing import TypedDict

            class Settings(TypedDict):
                name: str
                extra: dict[str, int]

            def f(settings: Settings) -> int:
                return 0
            """
        )

        result = derive_parameter(context, checker, source_file)

        assert isinstance(result, TypeDerivationFailure)
        assert result.errors == [
            "The type 'dict[str, int]' is not supported, but it was encountered in "
            "function 'f' parameter 'settings', type 'Settings' property 'extra'"
        ]
        assert "Settings" not in context.object_type_definitions
        assert "String" in context.scalar_type_definitions

    def test_eviction_removes_dependents(self, derivation_context):
        """Types registered while deriving a failed type are removed with it"""
        context, checker, source_file = derivation_context(
            """
            from typing import TypedDict

            class Child(TypedDict):
                parent: "Parent"

            class Parent(TypedDict):
                child: Child
                broken: dict[str, int]

            def f(parent: Parent) -> int:
                return 0
            """
        )

        result = derive_parameter(context, checker, source_file)

        assert isinstance(result, TypeDerivationFailure)
        assert context.object_type_definitions == {}

    def test_all_property_errors_collected(self, derivation_context):
        """Every failing property is reported"""
        context, checker, source_file = derivation_context(
            """
            from typing import Any, TypedDict

            class Loose(TypedDict):
                a: Any
                b: dict[str, str]

            def f(loose: Loose) -> int:
                return 0
            """
        )

        result = derive_parameter(context, checker, source_file)

        assert len(result.errors) == 2
        assert "'Any'" in result.errors[0]

    def test_awaitable(self, derivation_context):
        """Awaitables are rejected with the path"""
        context, checker, source_file = derivation_context(
            """
            from typing import Awaitable

            def f(pending: Awaitable[int]) -> int:
                return 0
            """
        )

        result = derive_parameter(context, checker, source_file)

        assert result.errors == [
            "Awaitable types are not supported, but 'Awaitable[int]' was encountered in function 'f' parameter 'pending'"
        ]

    def test_class_instance(self, derivation_context):
        """Plain classes are rejected"""
        context, checker, source_file = derivation_context(
            """
            class Service:
                pass

            def f(service: Service) -> int:
                return 0
            """
        )

        result = derive_parameter(context, checker, source_file)

        assert result.errors == [
            "Class types are not supported, but 'Service' was encountered in function 'f' parameter 'service'"
        ]

    def test_void_return(self, derivation_context):
        """None returns are rejected"""
        context, checker, source_file = derivation_context(
            """
            def f() -> None:
                pass
            """
        )

        result = derive_return(context, checker, source_file)

        assert result.errors == [
            "The void type is not supported, but 'None' was encountered in function 'f' return value"
        ]

    def test_union_of_scalars_unsupported(self, derivation_context):
        """Unions that are not nullable wrappers are rejected"""
        context, checker, source_file = derivation_context(
            """
            def f(value: int | str) -> int:
                return 0
            """
        )

        result = derive_parameter(context, checker, source_file)

        assert result.errors == [
            "The type 'int | str' is not supported, but it was encountered in function 'f' parameter 'value'"
        ]

    def test_same_named_types_stay_distinct_in_union(self, write_source, derivation_context):
        """Two declarations rendered alike are separate union members"""
        for module in ("accounts", "staff"):
            write_source(
                f"{module}.py",
                """
                from typing import TypedDict

                class User(TypedDict):
                    id: int
                """,
            )
        context, checker, source_file = derivation_context(
            """
            import accounts
            import staff

            def f(user: accounts.User | staff.User | None) -> int:
                return 0
            """
        )
        parameter_type = checker.get_signature(checker.get_exported_functions(source_file)[0]).parameters[0].type

        result = derive_parameter(context, checker, source_file)

        assert len(parameter_type.members) == 3
        assert isinstance(result, TypeDerivationFailure)
        assert result.errors == [
            "The type 'User | User | None' is not supported, but it was encountered in function 'f' parameter 'user'"
        ]
        assert context.object_type_definitions == {}

    def test_engine_follows_classifier(self, derivation_context):
        """Handles the classifier calls unsupported fail with the generic message"""
        context, checker, source_file = derivation_context("")
        handle = AwaitableType("Awaitable", ())

        result = derive_schema_type(handle, (FunctionReturn("f"),), context)

        assert classify_type(handle, checker) == TypeForm.UNSUPPORTED
        assert result.errors == [
            "The type 'Awaitable' is not supported, but it was encountered in function 'f' return value"
        ]


# ============================================================================
# DEPTH CEILING
# ============================================================================


class TestDepthCeiling:
    """Test the recursion ceiling"""

    def test_nesting_at_ceiling_succeeds(self, derivation_context):
        """Nesting up to the ceiling derives"""
        annotation = "list[" * MAX_TYPE_DERIVATION_RECURSION + "int" + "]" * MAX_TYPE_DERIVATION_RECURSION
        context, checker, source_file = derivation_context(
            f"""
            def f(value: {annotation}) -> int:
                return 0
            """
        )

        result = derive_parameter(context, checker, source_file)

        assert isinstance(result, TypeDerivationSuccess)

    def test_nesting_beyond_ceiling_raises(self, derivation_context):
        """One more level raises instead of recursing"""
        depth = MAX_TYPE_DERIVATION_RECURSION + 1
        annotation = "list[" * depth + "int" + "]" * depth
        context, checker, source_file = derivation_context(
            f"""
            def f(value: {annotation}) -> int:
                return 0
            """
        )

        with pytest.raises(SchemaDerivationError, match="exceeded depth 20"):
            derive_parameter(context, checker, source_file)

    def test_recursive_alias_without_object_raises(self, derivation_context):
        """A recursive alias with no structured type to break the cycle raises"""
        context, checker, source_file = derivation_context(
            """
            Nested = list["Nested"]

            def f(value: Nested) -> int:
                return 0
            """
        )

        with pytest.raises(SchemaDerivationError, match="exceeded depth"):
            derive_parameter(context, checker, source_file)

    def test_explicit_depth_argument(self, derivation_context):
        """The ceiling applies to the depth passed in"""
        context, _, _ = derivation_context("")

        with pytest.raises(SchemaDerivationError):
            derive_schema_type(
                IntrinsicType(IntrinsicKind.INT),
                (FunctionReturn("f"),),
                context,
                recursion_depth=MAX_TYPE_DERIVATION_RECURSION + 1,
            )
