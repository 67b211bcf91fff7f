"""Models describing a derived functions schema."""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Union


class FunctionKind(str, Enum):
    """Side-effect classification of a function."""

    QUERY = "query"  # marked pure
    MUTATION = "mutation"


class TypeKind(str, Enum):
    """Kind of a named type reference."""

    SCALAR = "scalar"
    OBJECT = "object"


class NullOrUndefinability(str, Enum):
    """How the absence of a value was expressed in the source type."""

    ACCEPTS_NULL_ONLY = "accepts_null_only"
    ACCEPTS_UNDEFINED_ONLY = "accepts_undefined_only"
    ACCEPTS_EITHER = "accepts_either"


@dataclass(frozen=True)
class NamedType:
    """Reference to a scalar or object type by name."""

    name: str
    kind: TypeKind

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {"type": "named", "name": self.name, "kind": self.kind.value}


@dataclass(frozen=True)
class NullableType:
    """A type that also accepts an absent value."""

    underlying_type: "TypeDefinition"
    null_or_undefinability: NullOrUndefinability

    def __post_init__(self):
        if isinstance(self.underlying_type, NullableType):
            raise ValueError("A nullable type cannot directly wrap another nullable type")

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "type": "nullable",
            "underlying_type": self.underlying_type.to_dict(),
            "null_or_undefinability": self.null_or_undefinability.value,
        }


@dataclass(frozen=True)
class ArrayType:
    """A list of elements of one type."""

    element_type: "TypeDefinition"

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {"type": "array", "element_type": self.element_type.to_dict()}


TypeDefinition = Union[NamedType, NullableType, ArrayType]


def type_definition_from_dict(data: Dict[str, Any]) -> TypeDefinition:
    """Rebuild a type definition from its dictionary form."""
    type_tag = data.get("type")
    if type_tag == "named":
        return NamedType(name=data["name"], kind=TypeKind(data["kind"]))
    if type_tag == "nullable":
        return NullableType(
            underlying_type=type_definition_from_dict(data["underlying_type"]),
            null_or_undefinability=NullOrUndefinability(data["null_or_undefinability"]),
        )
    if type_tag == "array":
        return ArrayType(element_type=type_definition_from_dict(data["element_type"]))
    raise ValueError(f"Unknown type definition tag: {type_tag!r}")


@dataclass
class ArgumentDefinition:
    """A single function argument."""

    name: str
    type: TypeDefinition
    description: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "name": self.name,
            "description": self.description,
            "type": self.type.to_dict(),
        }


@dataclass
class FunctionDefinition:
    """Schema of one usable function."""

    kind: FunctionKind
    result_type: TypeDefinition
    arguments: List[ArgumentDefinition] = field(default_factory=list)
    description: Optional[str] = None

    def get_argument(self, name: str) -> Optional[ArgumentDefinition]:
        """Return argument by name."""
        for argument in self.arguments:
            if argument.name == name:
                return argument
        return None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "description": self.description,
            "kind": self.kind.value,
            "arguments": [arg.to_dict() for arg in self.arguments],
            "result_type": self.result_type.to_dict(),
        }


@dataclass
class ObjectPropertyDefinition:
    """A named, typed property of an object type."""

    name: str
    type: TypeDefinition

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {"name": self.name, "type": self.type.to_dict()}


@dataclass
class ObjectTypeDefinition:
    """A structured type with an ordered list of properties."""

    properties: List[ObjectPropertyDefinition] = field(default_factory=list)

    def get_property(self, name: str) -> Optional[ObjectPropertyDefinition]:
        """Return property by name."""
        for prop in self.properties:
            if prop.name == name:
                return prop
        return None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {"properties": [prop.to_dict() for prop in self.properties]}


@dataclass
class ScalarTypeDefinition:
    """A primitive type with no internal structure."""

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {}


@dataclass
class FunctionsSchema:
    """Complete schema derived from one functions file."""

    functions: Dict[str, FunctionDefinition] = field(default_factory=dict)
    object_types: Dict[str, ObjectTypeDefinition] = field(default_factory=dict)
    scalar_types: Dict[str, ScalarTypeDefinition] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "functions": {name: fn.to_dict() for name, fn in self.functions.items()},
            "object_types": {name: ot.to_dict() for name, ot in self.object_types.items()},
            "scalar_types": {name: st.to_dict() for name, st in self.scalar_types.items()},
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FunctionsSchema":
        """Rebuild a schema from the output of `to_dict`."""
        functions = {}
        for name, fn in data.get("functions", {}).items():
            functions[name] = FunctionDefinition(
                description=fn.get("description"),
                kind=FunctionKind(fn["kind"]),
                arguments=[
                    ArgumentDefinition(
                        name=arg["name"],
                        description=arg.get("description"),
                        type=type_definition_from_dict(arg["type"]),
                    )
                    for arg in fn.get("arguments", [])
                ],
                result_type=type_definition_from_dict(fn["result_type"]),
            )

        object_types = {
            name: ObjectTypeDefinition(
                properties=[
                    ObjectPropertyDefinition(
                        name=prop["name"],
                        type=type_definition_from_dict(prop["type"]),
                    )
                    for prop in ot.get("properties", [])
                ]
            )
            for name, ot in data.get("object_types", {}).items()
        }

        scalar_types = {name: ScalarTypeDefinition() for name in data.get("scalar_types", {})}

        return cls(functions=functions, object_types=object_types, scalar_types=scalar_types)
