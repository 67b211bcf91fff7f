"""
Type handles produced by the type checker.

The inference engine treats these as opaque: it only asks the checker
(or the predicates in `functions_sdk.inference.type_classifier`) what a
handle is. Handles never hold resolved properties, so recursive types
can be represented without being expanded.
"""

import ast
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional, Tuple


@dataclass(frozen=True)
class Declaration:
    """Where a symbol is declared."""

    file_name: str
    line: int = 0
    column: int = 0


@dataclass(frozen=True)
class Symbol:
    """A named entity with its declarations."""

    name: str
    declarations: Tuple[Declaration, ...] = ()


ANONYMOUS_SYMBOL_NAME = "__type"


class IntrinsicKind(str, Enum):
    """Built-in primitive and marker types."""

    BOOL = "bool"
    STR = "str"
    INT = "int"
    FLOAT = "float"
    NONE = "None"
    MISSING = "Missing"  # value may be omitted entirely
    ANY = "Any"


class StructureKind(str, Enum):
    """Declaration forms that produce structured (object-shaped) types."""

    TYPED_DICT = "typed_dict"
    DATACLASS = "dataclass"
    NAMED_TUPLE = "named_tuple"
    INLINE_TYPED_DICT = "inline_typed_dict"


class TypeHandle:
    """Base class of every type handle."""

    def get_symbol(self) -> Optional[Symbol]:
        return None

    def is_union(self) -> bool:
        return False


@dataclass(frozen=True)
class IntrinsicType(TypeHandle):
    kind: IntrinsicKind


@dataclass(frozen=True)
class VoidType(TypeHandle):
    display: str = "None"


@dataclass(frozen=True)
class UnionType(TypeHandle):
    members: Tuple[TypeHandle, ...]

    def is_union(self) -> bool:
        return True


@dataclass(frozen=True)
class ListType(TypeHandle):
    """`list[T]` and the sequence aliases that behave like it."""

    name: str
    element_type: TypeHandle


@dataclass(frozen=True)
class AwaitableType(TypeHandle):
    """Asynchronous wrappers: awaitables, coroutines, futures."""

    name: str
    type_arguments: Tuple[TypeHandle, ...] = ()


@dataclass(frozen=True)
class ClassInstanceType(TypeHandle):
    """Instance of a class that is not a structured record."""

    symbol: Symbol
    type_arguments: Tuple[TypeHandle, ...] = ()

    def get_symbol(self) -> Optional[Symbol]:
        return self.symbol


@dataclass(eq=False)
class StructuredSource:
    """The declaration a structured type's properties are read from."""

    kind: StructureKind
    source_file: Any  # functions_sdk.checker.program.SourceFile
    node: ast.AST  # ClassDef, or the Dict/Call of an inline/functional TypedDict
    name: Optional[str] = None
    type_parameters: Tuple[str, ...] = ()
    total: bool = True


@dataclass(eq=False)
class ObjectType(TypeHandle):
    """Record-shaped type whose properties the checker can enumerate."""

    symbol: Symbol
    source: StructuredSource
    type_arguments: Tuple[TypeHandle, ...] = ()
    alias_name: Optional[str] = None

    def get_symbol(self) -> Optional[Symbol]:
        return self.symbol

    def is_anonymous(self) -> bool:
        return self.symbol.name == ANONYMOUS_SYMBOL_NAME


@dataclass(frozen=True)
class TypeParameterType(TypeHandle):
    """A type variable with no substitution in scope."""

    name: str


@dataclass(frozen=True)
class OpaqueType(TypeHandle):
    """Anything the checker recognizes but the schema cannot express."""

    display: str
    symbol: Optional[Symbol] = None

    def get_symbol(self) -> Optional[Symbol]:
        return self.symbol


@dataclass(eq=False)
class DeferredType(TypeHandle):
    """Re-entrant reference to a type alias, expanded on demand."""

    alias_name: str
    binding: Any
    type_arguments: Tuple[TypeHandle, ...] = field(default_factory=tuple)
