"""
Type Checker - resolves Python type annotations into type handles.

Supports:
- Builtin scalars, `list[T]`, `Optional`/`Union`/`X | None`
- TypedDict (class, functional and inline `TypedDict[{...}]` forms),
  dataclasses and NamedTuples, including generic ones
- Type aliases (`X = ...`, `X: TypeAlias = ...`, `type X = ...`)
- Imports from local modules, packages and the search path
- String (forward reference) annotations
"""

import ast
import builtins
import logging
from dataclasses import dataclass, field, replace
from typing import Dict, List, Mapping, Optional, Sequence, Set, Tuple

from .diagnostics import Diagnostic
from .docstrings import ParsedDocstring, parse_docstring
from .program import SourceFile
from .types import (
    ANONYMOUS_SYMBOL_NAME,
    AwaitableType,
    ClassInstanceType,
    Declaration,
    DeferredType,
    IntrinsicKind,
    IntrinsicType,
    ListType,
    ObjectType,
    OpaqueType,
    StructureKind,
    StructuredSource,
    Symbol,
    TypeHandle,
    TypeParameterType,
    UnionType,
    VoidType,
)

logger = logging.getLogger(__name__)

# Modules whose names are understood symbolically instead of being parsed
SPECIAL_MODULES = {
    "typing",
    "typing_extensions",
    "collections",
    "collections.abc",
    "asyncio",
    "dataclasses",
    "builtins",
    "abc",
    "enum",
    "types",
}

_CANONICAL_NAMES = {
    "collections.abc.Sequence": "typing.Sequence",
    "collections.abc.MutableSequence": "typing.MutableSequence",
    "collections.abc.Awaitable": "typing.Awaitable",
    "collections.abc.Coroutine": "typing.Coroutine",
    "asyncio.Task": "asyncio.Future",
}

SCALAR_BUILTINS = {
    "builtins.bool": IntrinsicKind.BOOL,
    "builtins.str": IntrinsicKind.STR,
    "builtins.int": IntrinsicKind.INT,
    "builtins.float": IntrinsicKind.FLOAT,
}

LIST_FORMS = {"builtins.list", "typing.List", "typing.Sequence", "typing.MutableSequence"}
AWAITABLE_FORMS = {"typing.Awaitable", "asyncio.Future"}
VOID_FORMS = {"typing.NoReturn", "typing.Never"}
TYPE_VAR_FORMS = {"typing.TypeVar", "typing.ParamSpec", "typing.TypeVarTuple"}
# Wrappers that only qualify a TypedDict key or attach metadata
FIELD_QUALIFIERS = {"typing.Required", "typing.NotRequired", "typing.ReadOnly"}
IGNORED_FIELD_FORMS = {"typing.ClassVar", "dataclasses.InitVar", "dataclasses.KW_ONLY"}


def canonical_name(qualname: str) -> str:
    """Map equivalent spellings of a special form onto one name."""
    if qualname.startswith("typing_extensions."):
        qualname = "typing." + qualname[len("typing_extensions."):]
    return _CANONICAL_NAMES.get(qualname, qualname)


def dotted_name(expr: ast.expr) -> Optional[str]:
    """Return "a.b.c" for a Name/Attribute chain."""
    parts: List[str] = []
    current = expr
    while isinstance(current, ast.Attribute):
        parts.append(current.attr)
        current = current.value
    if isinstance(current, ast.Name):
        parts.append(current.id)
        return ".".join(reversed(parts))
    return None


# ============================================================================
# BINDINGS
# ============================================================================


@dataclass(frozen=True)
class SpecialForm:
    qualname: str


@dataclass(eq=False)
class ClassBinding:
    source_file: SourceFile
    node: ast.ClassDef


@dataclass(eq=False)
class AliasBinding:
    source_file: SourceFile
    name: str
    value: ast.expr
    type_parameters: Tuple[str, ...] = ()


@dataclass(frozen=True)
class TypeVarBinding:
    name: str


@dataclass(eq=False)
class FunctionalTypedDictBinding:
    source_file: SourceFile
    name: str
    call: ast.Call


@dataclass(eq=False)
class ModuleBinding:
    module_name: str
    source_file: Optional[SourceFile] = None  # None for special modules


@dataclass(frozen=True)
class ValueBinding:
    name: str


@dataclass(frozen=True)
class UnresolvedBinding:
    message: str


Binding = object


# Raw, unresolved bindings as they appear in a module's statements


@dataclass(eq=False)
class _ImportedName:
    module: Optional[str]
    level: int
    name: str


@dataclass(frozen=True)
class _ModuleImport:
    module: str


@dataclass(eq=False)
class _ModuleScope:
    names: Dict[str, List[object]] = field(default_factory=dict)
    star_imports: List[Tuple[Optional[str], int]] = field(default_factory=list)
    exports: Optional[List[str]] = None


# ============================================================================
# SIGNATURES
# ============================================================================


class ParameterKind:
    POSITIONAL_ONLY = "positional_only"
    POSITIONAL_OR_KEYWORD = "positional_or_keyword"
    KEYWORD_ONLY = "keyword_only"
    VAR_POSITIONAL = "var_positional"
    VAR_KEYWORD = "var_keyword"


@dataclass
class FunctionDeclaration:
    """A top-level function declared in a source file."""

    name: str
    node: ast.AST  # FunctionDef or AsyncFunctionDef
    source_file: SourceFile

    @property
    def is_async(self) -> bool:
        return isinstance(self.node, ast.AsyncFunctionDef)


@dataclass
class Parameter:
    name: str
    type: TypeHandle
    kind: str = ParameterKind.POSITIONAL_OR_KEYWORD
    has_default: bool = False


@dataclass
class Signature:
    parameters: List[Parameter]
    return_type: TypeHandle


class TypeChecker:
    """Answers type questions about a Program."""

    def __init__(self, program):
        self.program = program
        self._scopes: Dict[str, _ModuleScope] = {}
        self._structures: Dict[int, Optional[StructuredSource]] = {}
        self._docstrings: Dict[int, ParsedDocstring] = {}

    # ------------------------------------------------------------------
    # Module scopes and name lookup
    # ------------------------------------------------------------------

    def _scope(self, source_file: SourceFile) -> _ModuleScope:
        scope = self._scopes.get(source_file.file_name)
        if scope is None:
            scope = _ModuleScope()
            if source_file.tree is not None:
                self._collect_bindings(source_file, source_file.tree.body, scope)
            self._scopes[source_file.file_name] = scope
        return scope

    def _collect_bindings(self, source_file: SourceFile, statements: Sequence[ast.stmt], scope: _ModuleScope) -> None:
        def bind(name: str, binding: object) -> None:
            scope.names.setdefault(name, []).append(binding)

        for stmt in statements:
            if isinstance(stmt, ast.ClassDef):
                bind(stmt.name, ClassBinding(source_file, stmt))
            elif isinstance(stmt, (ast.FunctionDef, ast.AsyncFunctionDef)):
                bind(stmt.name, ValueBinding(stmt.name))
            elif isinstance(stmt, ast.Import):
                for alias in stmt.names:
                    if alias.asname:
                        bind(alias.asname, _ModuleImport(alias.name))
                    else:
                        top = alias.name.split(".")[0]
                        bind(top, _ModuleImport(top))
            elif isinstance(stmt, ast.ImportFrom):
                for alias in stmt.names:
                    if alias.name == "*":
                        scope.star_imports.append((stmt.module, stmt.level))
                    else:
                        bind(alias.asname or alias.name, _ImportedName(stmt.module, stmt.level, alias.name))
            elif isinstance(stmt, ast.Assign) and len(stmt.targets) == 1 and isinstance(stmt.targets[0], ast.Name):
                name = stmt.targets[0].id
                if name == "__all__":
                    scope.exports = _literal_strings(stmt.value)
                bind(name, self._assignment_binding(source_file, name, stmt.value))
            elif isinstance(stmt, ast.AnnAssign) and isinstance(stmt.target, ast.Name):
                name = stmt.target.id
                if stmt.value is None:
                    bind(name, ValueBinding(name))
                elif dotted_name(stmt.annotation) in ("TypeAlias", "typing.TypeAlias", "typing_extensions.TypeAlias"):
                    bind(name, AliasBinding(source_file, name, stmt.value))
                else:
                    if name == "__all__":
                        scope.exports = _literal_strings(stmt.value)
                    bind(name, ValueBinding(name))
            elif type(stmt).__name__ == "TypeAlias":
                # `type X[T] = ...` (Python 3.12+)
                params = tuple(p.name for p in getattr(stmt, "type_params", []))
                bind(stmt.name.id, AliasBinding(source_file, stmt.name.id, stmt.value, params))
            elif isinstance(stmt, ast.If):
                self._collect_bindings(source_file, stmt.body, scope)
                self._collect_bindings(source_file, stmt.orelse, scope)
            elif isinstance(stmt, ast.Try):
                self._collect_bindings(source_file, stmt.body, scope)
                for handler in stmt.handlers:
                    self._collect_bindings(source_file, handler.body, scope)
                self._collect_bindings(source_file, stmt.orelse, scope)
                self._collect_bindings(source_file, stmt.finalbody, scope)

    def _assignment_binding(self, source_file: SourceFile, name: str, value: ast.expr) -> object:
        if isinstance(value, ast.Call):
            callee = dotted_name(value.func) or ""
            short = callee.rsplit(".", 1)[-1]
            if short in ("TypeVar", "ParamSpec", "TypeVarTuple"):
                return TypeVarBinding(name)
            if short == "TypedDict" and len(value.args) >= 2 and isinstance(value.args[1], ast.Dict):
                return FunctionalTypedDictBinding(source_file, name, value)
            return ValueBinding(name)
        if isinstance(value, (ast.Name, ast.Attribute, ast.Subscript, ast.BinOp, ast.Constant)):
            return AliasBinding(source_file, name, value)
        return ValueBinding(name)

    def lookup_name(self, source_file: SourceFile, name: str, _seen: Optional[Set[Tuple[str, str]]] = None) -> Binding:
        """Resolve a module-level name to a binding."""
        seen = _seen if _seen is not None else set()
        key = (source_file.file_name, name)
        if key in seen:
            return UnresolvedBinding(f"Cannot find name '{name}'")
        seen.add(key)

        scope = self._scope(source_file)
        unresolved: Optional[UnresolvedBinding] = None
        for raw in reversed(scope.names.get(name, [])):
            resolved = self._resolve_raw(source_file, raw, seen)
            if not isinstance(resolved, UnresolvedBinding):
                return resolved
            unresolved = unresolved or resolved
        if unresolved is not None:
            return unresolved

        for module, level in scope.star_imports:
            if level == 0 and module and _is_special_module(module):
                return SpecialForm(canonical_name(f"{module}.{name}"))
            target = self.program.resolve_import(source_file, module, level)
            if target is not None:
                resolved = self.lookup_name(target, name, seen)
                if not isinstance(resolved, UnresolvedBinding):
                    return resolved

        if hasattr(builtins, name):
            return SpecialForm(f"builtins.{name}")
        return UnresolvedBinding(f"Cannot find name '{name}'")

    def _resolve_raw(self, source_file: SourceFile, raw: object, seen: Set[Tuple[str, str]]) -> Binding:
        if isinstance(raw, _ModuleImport):
            return self._module_binding(source_file, raw.module)
        if isinstance(raw, _ImportedName):
            if raw.level == 0 and raw.module and _is_special_module(raw.module):
                qualname = f"{raw.module}.{raw.name}"
                if qualname in SPECIAL_MODULES:
                    return ModuleBinding(qualname)
                return SpecialForm(canonical_name(qualname))
            target = self.program.resolve_import(source_file, raw.module, raw.level)
            if target is None:
                return UnresolvedBinding(f"Cannot find module '{'.' * raw.level}{raw.module or ''}'")
            resolved = self.lookup_name(target, raw.name, seen)
            if isinstance(resolved, UnresolvedBinding):
                submodule = self.program.resolve_submodule(target, raw.name)
                if submodule is not None:
                    return ModuleBinding(submodule.module_name, submodule)
            return resolved
        return raw

    def _module_binding(self, source_file: SourceFile, module_name: str) -> Binding:
        if _is_special_module(module_name):
            return ModuleBinding(module_name)
        target = self.program.resolve_import(source_file, module_name, 0)
        if target is None:
            return UnresolvedBinding(f"Cannot find module '{module_name}'")
        return ModuleBinding(module_name, target)

    def lookup_expr(self, expr: ast.expr, source_file: SourceFile) -> Binding:
        """Resolve a Name or Attribute chain to a binding."""
        if isinstance(expr, ast.Name):
            return self.lookup_name(source_file, expr.id)
        if isinstance(expr, ast.Attribute):
            base = self.lookup_expr(expr.value, source_file)
            if isinstance(base, UnresolvedBinding):
                return base
            if isinstance(base, ModuleBinding):
                if base.source_file is None:
                    qualname = f"{base.module_name}.{expr.attr}"
                    if qualname in SPECIAL_MODULES:
                        return ModuleBinding(qualname)
                    return SpecialForm(canonical_name(qualname))
                resolved = self.lookup_name(base.source_file, expr.attr)
                if isinstance(resolved, UnresolvedBinding):
                    submodule = self.program.resolve_submodule(base.source_file, expr.attr)
                    if submodule is not None:
                        return ModuleBinding(submodule.module_name, submodule)
                return resolved
            return UnresolvedBinding(f"Cannot find name '{dotted_name(expr) or expr.attr}'")
        return UnresolvedBinding(f"Cannot resolve '{ast.unparse(expr)}'")

    # ------------------------------------------------------------------
    # Annotation resolution
    # ------------------------------------------------------------------

    def resolve_annotation(
        self,
        expr: Optional[ast.expr],
        source_file: SourceFile,
        type_vars: Optional[Mapping[str, TypeHandle]] = None,
        _aliases: Tuple[str, ...] = (),
    ) -> TypeHandle:
        """
        Convert an annotation expression into a type handle

        Args:
            expr: Annotation expression (None means unannotated)
            source_file: File whose scope the names are looked up in
            type_vars: Substitutions for type variables in scope

        Returns:
            TypeHandle; unsupported or unresolvable forms become OpaqueType
        """
        type_vars = type_vars or {}
        if expr is None:
            return IntrinsicType(IntrinsicKind.ANY)

        if isinstance(expr, ast.Constant):
            if expr.value is None:
                return IntrinsicType(IntrinsicKind.NONE)
            if isinstance(expr.value, str):
                parsed = _parse_forward_reference(expr.value)
                if parsed is None:
                    return OpaqueType(repr(expr.value))
                return self.resolve_annotation(parsed, source_file, type_vars, _aliases)
            return OpaqueType(repr(expr.value))

        if isinstance(expr, ast.BinOp) and isinstance(expr.op, ast.BitOr):
            return self.make_union(
                [
                    self.resolve_annotation(expr.left, source_file, type_vars, _aliases),
                    self.resolve_annotation(expr.right, source_file, type_vars, _aliases),
                ]
            )

        if isinstance(expr, ast.Name) and expr.id in type_vars:
            return type_vars[expr.id]

        if isinstance(expr, (ast.Name, ast.Attribute)):
            binding = self.lookup_expr(expr, source_file)
            return self._type_from_binding(binding, None, source_file, type_vars, _aliases, expr)

        if isinstance(expr, ast.Subscript):
            binding = self.lookup_expr(expr.value, source_file)
            args = list(expr.slice.elts) if isinstance(expr.slice, ast.Tuple) else [expr.slice]
            return self._type_from_binding(binding, args, source_file, type_vars, _aliases, expr)

        return OpaqueType(ast.unparse(expr))

    def _type_from_binding(
        self,
        binding: Binding,
        args: Optional[List[ast.expr]],
        source_file: SourceFile,
        type_vars: Mapping[str, TypeHandle],
        aliases: Tuple[str, ...],
        expr: ast.expr,
    ) -> TypeHandle:
        def resolve(arg: ast.expr) -> TypeHandle:
            return self.resolve_annotation(arg, source_file, type_vars, aliases)

        def resolve_all() -> Tuple[TypeHandle, ...]:
            return tuple(resolve(a) for a in (args or []))

        if isinstance(binding, SpecialForm):
            return self._type_from_special_form(binding.qualname, args, source_file, resolve, resolve_all, expr)

        if isinstance(binding, ClassBinding):
            symbol = self._class_symbol(binding)
            structure = self.get_structure(binding)
            if structure is None:
                return ClassInstanceType(symbol, resolve_all())
            return ObjectType(symbol, structure, resolve_all())

        if isinstance(binding, FunctionalTypedDictBinding):
            structure = self._functional_structure(binding)
            return ObjectType(self._node_symbol(binding.name, binding.source_file, binding.call), structure)

        if isinstance(binding, AliasBinding):
            alias_key = f"{binding.source_file.file_name}:{binding.name}"
            alias_args = resolve_all()
            if alias_key in aliases:
                return DeferredType(binding.name, binding, alias_args)
            return self.expand_alias(binding, alias_args, aliases)

        if isinstance(binding, TypeVarBinding):
            return type_vars.get(binding.name, TypeParameterType(binding.name))

        if isinstance(binding, UnresolvedBinding):
            name = dotted_name(expr) or ast.unparse(expr)
            if name in type_vars:
                return type_vars[name]
            return OpaqueType(ast.unparse(expr))

        return OpaqueType(ast.unparse(expr))

    def _type_from_special_form(self, qualname, args, source_file, resolve, resolve_all, expr) -> TypeHandle:
        if qualname in SCALAR_BUILTINS:
            return IntrinsicType(SCALAR_BUILTINS[qualname])
        if qualname in LIST_FORMS:
            short = qualname.rsplit(".", 1)[-1]
            element = resolve(args[0]) if args else IntrinsicType(IntrinsicKind.ANY)
            return ListType(short, element)
        if qualname == "typing.Optional" and args:
            return self.make_union([resolve(args[0]), IntrinsicType(IntrinsicKind.NONE)])
        if qualname == "typing.Union" and args:
            return self.make_union([resolve(a) for a in args])
        if qualname == "typing.Annotated" and args:
            return resolve(args[0])
        if qualname in FIELD_QUALIFIERS and args:
            return resolve(args[0])
        if qualname in AWAITABLE_FORMS:
            return AwaitableType(qualname.rsplit(".", 1)[-1], resolve_all())
        if qualname == "typing.Coroutine":
            result = (resolve(args[-1]),) if args else ()
            return AwaitableType("Coroutine", result)
        if qualname == "typing.Any":
            return IntrinsicType(IntrinsicKind.ANY)
        if qualname in VOID_FORMS:
            return VoidType(qualname.rsplit(".", 1)[-1])
        if qualname == "typing.TypedDict" and args and isinstance(args[0], ast.Dict):
            structure = StructuredSource(
                kind=StructureKind.INLINE_TYPED_DICT,
                source_file=source_file,
                node=args[0],
            )
            return ObjectType(self._node_symbol(ANONYMOUS_SYMBOL_NAME, source_file, args[0]), structure)
        return OpaqueType(ast.unparse(expr))

    def expand_alias(self, binding: AliasBinding, type_arguments: Tuple[TypeHandle, ...] = (), _aliases: Tuple[str, ...] = ()) -> TypeHandle:
        """Resolve the value of a type alias."""
        alias_key = f"{binding.source_file.file_name}:{binding.name}"
        type_vars = dict(zip(binding.type_parameters, type_arguments))
        if not binding.type_parameters:
            # Old-style generic alias: `Pair = list[T]` then `Pair[int]`
            free = self._free_type_variables(binding.value, binding.source_file)
            type_vars = dict(zip(free, type_arguments))
        resolved = self.resolve_annotation(binding.value, binding.source_file, type_vars, (*_aliases, alias_key))
        if isinstance(resolved, ObjectType) and resolved.is_anonymous() and resolved.alias_name is None:
            alias_name = binding.name
            if type_arguments:
                alias_name = f"{alias_name}[{', '.join(self.type_to_string(t) for t in type_arguments)}]"
            return replace(resolved, alias_name=alias_name)
        return resolved

    def _free_type_variables(self, expr: ast.expr, source_file: SourceFile) -> List[str]:
        names: List[str] = []
        for node in ast.walk(expr):
            if isinstance(node, ast.Name) and node.id not in names:
                if isinstance(self.lookup_name(source_file, node.id), TypeVarBinding):
                    names.append(node.id)
        return names

    def make_union(self, members: Sequence[TypeHandle]) -> TypeHandle:
        """Build a flattened, de-duplicated union."""
        flat: List[TypeHandle] = []
        seen: Set[tuple] = set()
        for member in members:
            for inner in member.members if isinstance(member, UnionType) else (member,):
                key = self.type_identity(inner)
                if key not in seen:
                    seen.add(key)
                    flat.append(inner)
        if len(flat) == 1:
            return flat[0]
        return UnionType(tuple(flat))

    def type_identity(self, type_handle: TypeHandle) -> tuple:
        """
        Hashable key that is equal only for the same type

        Declared types are keyed by where they are declared, so two
        classes that render the same (`a.User`, `b.User`) stay distinct.
        """
        if isinstance(type_handle, (ObjectType, ClassInstanceType)):
            symbol = type_handle.symbol
            location = tuple((d.file_name, d.line, d.column) for d in symbol.declarations) or (symbol.name,)
            arguments = tuple(self.type_identity(t) for t in type_handle.type_arguments)
            return ("declared", location, arguments)
        if isinstance(type_handle, ListType):
            return ("list", self.type_identity(type_handle.element_type))
        if isinstance(type_handle, UnionType):
            return ("union", tuple(self.type_identity(m) for m in type_handle.members))
        if isinstance(type_handle, AwaitableType):
            return ("awaitable", type_handle.name, tuple(self.type_identity(t) for t in type_handle.type_arguments))
        if isinstance(type_handle, DeferredType):
            binding = type_handle.binding
            arguments = tuple(self.type_identity(t) for t in type_handle.type_arguments)
            return ("alias", binding.source_file.file_name, binding.name, arguments)
        return (type(type_handle).__name__, self.type_to_string(type_handle))

    def get_apparent_type(self, type_handle: TypeHandle) -> TypeHandle:
        """Expand a deferred alias reference; other handles are returned as is."""
        if isinstance(type_handle, DeferredType):
            return self.expand_alias(type_handle.binding, type_handle.type_arguments)
        return type_handle

    # ------------------------------------------------------------------
    # Structured types
    # ------------------------------------------------------------------

    @staticmethod
    def _node_symbol(name: str, source_file: SourceFile, node: ast.AST) -> Symbol:
        declaration = Declaration(source_file.file_name, getattr(node, "lineno", 0), getattr(node, "col_offset", 0))
        return Symbol(name, (declaration,))

    def _class_symbol(self, binding: ClassBinding) -> Symbol:
        return self._node_symbol(binding.node.name, binding.source_file, binding.node)

    def get_structure(self, binding: ClassBinding) -> Optional[StructuredSource]:
        """Return how a class declares its fields, or None for plain classes."""
        key = id(binding.node)
        if key in self._structures:
            return self._structures[key]
        self._structures[key] = None  # guards against cyclic inheritance

        node = binding.node
        kind: Optional[StructureKind] = None
        total = True
        type_parameters: List[str] = [p.name for p in getattr(node, "type_params", [])]

        for decorator in node.decorator_list:
            target = decorator.func if isinstance(decorator, ast.Call) else decorator
            resolved = self.lookup_expr(target, binding.source_file)
            if isinstance(resolved, SpecialForm) and resolved.qualname == "dataclasses.dataclass":
                kind = StructureKind.DATACLASS

        for base in node.bases:
            base_expr = base.value if isinstance(base, ast.Subscript) else base
            resolved = self.lookup_expr(base_expr, binding.source_file)
            if isinstance(base, ast.Subscript):
                for arg in ast.walk(base.slice):
                    if isinstance(arg, ast.Name) and arg.id not in type_parameters:
                        if isinstance(self.lookup_name(binding.source_file, arg.id), TypeVarBinding):
                            type_parameters.append(arg.id)
            if isinstance(resolved, SpecialForm):
                if resolved.qualname == "typing.TypedDict":
                    kind = StructureKind.TYPED_DICT
                elif resolved.qualname == "typing.NamedTuple":
                    kind = StructureKind.NAMED_TUPLE
            elif isinstance(resolved, ClassBinding) and kind is None:
                base_structure = self.get_structure(resolved)
                if base_structure is not None and base_structure.kind == StructureKind.TYPED_DICT:
                    kind = StructureKind.TYPED_DICT

        for keyword in node.keywords:
            if keyword.arg == "total" and isinstance(keyword.value, ast.Constant):
                total = bool(keyword.value.value)

        structure = None
        if kind is not None:
            structure = StructuredSource(
                kind=kind,
                source_file=binding.source_file,
                node=node,
                name=node.name,
                type_parameters=tuple(type_parameters),
                total=total,
            )
        self._structures[key] = structure
        return structure

    def _functional_structure(self, binding: FunctionalTypedDictBinding) -> StructuredSource:
        total = True
        for keyword in binding.call.keywords:
            if keyword.arg == "total" and isinstance(keyword.value, ast.Constant):
                total = bool(keyword.value.value)
        return StructuredSource(
            kind=StructureKind.INLINE_TYPED_DICT,
            source_file=binding.source_file,
            node=binding.call.args[1],
            name=binding.name,
            total=total,
        )

    def get_properties(self, object_type: ObjectType, _seen: Optional[Set[int]] = None) -> Dict[str, TypeHandle]:
        """
        Return the properties of a structured type in declaration order

        Generic parameters are substituted with the type's arguments.
        Keys that may be omitted are unions with the Missing marker.
        """
        source = object_type.source
        seen = _seen if _seen is not None else set()
        seen.add(id(source.node))
        type_vars = dict(zip(source.type_parameters, object_type.type_arguments))
        properties: Dict[str, TypeHandle] = {}

        if isinstance(source.node, ast.Dict):
            for key, value in zip(source.node.keys, source.node.values):
                if isinstance(key, ast.Constant) and isinstance(key.value, str):
                    properties[key.value] = self._field_type(value, source.source_file, type_vars, source)
            return properties

        node: ast.ClassDef = source.node
        for base in node.bases:
            base_expr = base.value if isinstance(base, ast.Subscript) else base
            resolved = self.lookup_expr(base_expr, source.source_file)
            if not isinstance(resolved, ClassBinding):
                continue
            base_structure = self.get_structure(resolved)
            if base_structure is None or id(resolved.node) in seen:
                continue
            base_args: Tuple[TypeHandle, ...] = ()
            if isinstance(base, ast.Subscript):
                elts = base.slice.elts if isinstance(base.slice, ast.Tuple) else [base.slice]
                base_args = tuple(self.resolve_annotation(e, source.source_file, type_vars) for e in elts)
            base_type = ObjectType(self._class_symbol(resolved), base_structure, base_args)
            properties.update(self.get_properties(base_type, seen))

        for stmt in node.body:
            if not isinstance(stmt, ast.AnnAssign) or not isinstance(stmt.target, ast.Name):
                continue
            if self._is_ignored_field(stmt.annotation, source.source_file):
                continue
            properties[stmt.target.id] = self._field_type(stmt.annotation, source.source_file, type_vars, source)
        return properties

    def _is_ignored_field(self, annotation: ast.expr, source_file: SourceFile) -> bool:
        target = annotation.value if isinstance(annotation, ast.Subscript) else annotation
        if isinstance(target, ast.Constant) and isinstance(target.value, str):
            parsed = _parse_forward_reference(target.value)
            if parsed is None:
                return False
            target = parsed.value if isinstance(parsed, ast.Subscript) else parsed
        if not isinstance(target, (ast.Name, ast.Attribute)):
            return False
        resolved = self.lookup_expr(target, source_file)
        return isinstance(resolved, SpecialForm) and resolved.qualname in IGNORED_FIELD_FORMS

    def _field_type(self, annotation: ast.expr, source_file: SourceFile, type_vars, source: StructuredSource) -> TypeHandle:
        if source.kind not in (StructureKind.TYPED_DICT, StructureKind.INLINE_TYPED_DICT):
            return self.resolve_annotation(annotation, source_file, type_vars)

        required = source.total
        inner = annotation
        # Peel Required/NotRequired/ReadOnly/Annotated off the outside
        while True:
            if isinstance(inner, ast.Constant) and isinstance(inner.value, str):
                parsed = _parse_forward_reference(inner.value)
                if parsed is None:
                    break
                inner = parsed
                continue
            if not isinstance(inner, ast.Subscript):
                break
            resolved = self.lookup_expr(inner.value, source_file)
            if not isinstance(resolved, SpecialForm):
                break
            first = inner.slice.elts[0] if isinstance(inner.slice, ast.Tuple) else inner.slice
            if resolved.qualname == "typing.Required":
                required = True
            elif resolved.qualname == "typing.NotRequired":
                required = False
            elif resolved.qualname not in ("typing.ReadOnly", "typing.Annotated"):
                break
            inner = first

        field_type = self.resolve_annotation(inner, source_file, type_vars)
        if not required:
            field_type = self.make_union([field_type, IntrinsicType(IntrinsicKind.MISSING)])
        return field_type

    # ------------------------------------------------------------------
    # Type queries
    # ------------------------------------------------------------------

    def is_array_type(self, type_handle: TypeHandle) -> bool:
        return isinstance(type_handle, ListType)

    def get_type_arguments(self, type_handle: TypeHandle) -> Tuple[TypeHandle, ...]:
        if isinstance(type_handle, ListType):
            return (type_handle.element_type,)
        if isinstance(type_handle, (AwaitableType, ClassInstanceType, ObjectType, DeferredType)):
            return tuple(type_handle.type_arguments)
        return ()

    def get_symbol(self, type_handle: TypeHandle) -> Optional[Symbol]:
        return type_handle.get_symbol()

    def type_to_string(self, type_handle: TypeHandle) -> str:
        """Render a type handle the way it would be written in an annotation."""
        if isinstance(type_handle, IntrinsicType):
            return type_handle.kind.value
        if isinstance(type_handle, VoidType):
            return type_handle.display
        if isinstance(type_handle, UnionType):
            return " | ".join(self.type_to_string(m) for m in type_handle.members)
        if isinstance(type_handle, ListType):
            return f"{type_handle.name}[{self.type_to_string(type_handle.element_type)}]"
        if isinstance(type_handle, (AwaitableType, ClassInstanceType, ObjectType, DeferredType)):
            if isinstance(type_handle, ObjectType):
                if type_handle.alias_name:
                    return type_handle.alias_name
                if type_handle.is_anonymous():
                    return f"TypedDict[{ast.unparse(type_handle.source.node)}]"
                base = type_handle.source.name or type_handle.symbol.name
            elif isinstance(type_handle, ClassInstanceType):
                base = type_handle.symbol.name
            elif isinstance(type_handle, DeferredType):
                base = type_handle.alias_name
            else:
                base = type_handle.name
            if type_handle.type_arguments:
                rendered = ", ".join(self.type_to_string(t) for t in type_handle.type_arguments)
                return f"{base}[{rendered}]"
            return base
        if isinstance(type_handle, TypeParameterType):
            return type_handle.name
        if isinstance(type_handle, OpaqueType):
            return type_handle.display
        return repr(type_handle)

    # ------------------------------------------------------------------
    # Functions
    # ------------------------------------------------------------------

    def get_exported_functions(self, source_file: SourceFile) -> List[FunctionDeclaration]:
        """
        Top-level public functions, honouring `__all__` when present

        A redefined name is reported with its last definition, the one
        bound when the module runs.
        """
        if source_file.tree is None:
            return []
        exports = self._scope(source_file).exports
        functions: Dict[str, FunctionDeclaration] = {}
        for stmt in source_file.tree.body:
            if not isinstance(stmt, (ast.FunctionDef, ast.AsyncFunctionDef)):
                continue
            if stmt.name.startswith("_"):
                continue
            if exports is not None and stmt.name not in exports:
                continue
            if any((dotted_name(d) or "").rsplit(".", 1)[-1] == "overload" for d in stmt.decorator_list):
                continue
            functions[stmt.name] = FunctionDeclaration(stmt.name, stmt, source_file)
        return list(functions.values())

    def _docstring(self, function: FunctionDeclaration) -> ParsedDocstring:
        key = id(function.node)
        if key not in self._docstrings:
            self._docstrings[key] = parse_docstring(ast.get_docstring(function.node))
        return self._docstrings[key]

    def get_documentation(self, function: FunctionDeclaration) -> str:
        return self._docstring(function).description

    def get_parameter_documentation(self, function: FunctionDeclaration) -> Dict[str, str]:
        return dict(self._docstring(function).params)

    def get_tags(self, function: FunctionDeclaration) -> Dict[str, str]:
        """Decorator names and docstring field tags attached to a function."""
        tags: Dict[str, str] = {}
        for decorator in function.node.decorator_list:
            target = decorator.func if isinstance(decorator, ast.Call) else decorator
            name = dotted_name(target)
            if name:
                tags[name.rsplit(".", 1)[-1]] = ""
        tags.update(self._docstring(function).tags)
        return tags

    def get_signature(self, function: FunctionDeclaration) -> Signature:
        """Ordered parameters and return type of a function."""
        node = function.node
        source_file = function.source_file
        args = node.args
        type_vars = {p.name: TypeParameterType(p.name) for p in getattr(node, "type_params", [])}

        positional = [*args.posonlyargs, *args.args]
        first_default = len(positional) - len(args.defaults)
        parameters: List[Parameter] = []

        def make(arg: ast.arg, kind: str, has_default: bool) -> Parameter:
            param_type = self.resolve_annotation(arg.annotation, source_file, type_vars)
            if has_default:
                param_type = self.make_union([param_type, IntrinsicType(IntrinsicKind.MISSING)])
            return Parameter(arg.arg, param_type, kind, has_default)

        for index, arg in enumerate(positional):
            kind = ParameterKind.POSITIONAL_ONLY if index < len(args.posonlyargs) else ParameterKind.POSITIONAL_OR_KEYWORD
            parameters.append(make(arg, kind, index >= first_default))
        if args.vararg is not None:
            parameters.append(make(args.vararg, ParameterKind.VAR_POSITIONAL, False))
        for arg, default in zip(args.kwonlyargs, args.kw_defaults):
            parameters.append(make(arg, ParameterKind.KEYWORD_ONLY, default is not None))
        if args.kwarg is not None:
            parameters.append(make(args.kwarg, ParameterKind.VAR_KEYWORD, False))

        returns = node.returns
        if isinstance(returns, ast.Constant) and returns.value is None:
            return_type: TypeHandle = VoidType()
        elif isinstance(returns, ast.Constant) and returns.value == "None":
            return_type = VoidType()
        else:
            return_type = self.resolve_annotation(returns, source_file, type_vars)
        if function.is_async:
            return_type = AwaitableType("Coroutine", (return_type,))
        return Signature(parameters, return_type)

    # ------------------------------------------------------------------
    # Diagnostics
    # ------------------------------------------------------------------

    def check_source_file(self, source_file: SourceFile) -> List[Diagnostic]:
        """Report unresolvable names in the annotations of a source file."""
        diagnostics: List[Diagnostic] = []
        if source_file.tree is None:
            return diagnostics

        for stmt in ast.walk(source_file.tree):
            if isinstance(stmt, ast.ImportFrom) and stmt.level > 0:
                if self.program.resolve_import(source_file, stmt.module, stmt.level) is None:
                    diagnostics.append(
                        self._diagnostic(source_file, stmt, f"Cannot find module '{'.' * stmt.level}{stmt.module or ''}'")
                    )

        for stmt in source_file.tree.body:
            if isinstance(stmt, (ast.FunctionDef, ast.AsyncFunctionDef)):
                local = {p.name for p in getattr(stmt, "type_params", [])}
                all_args = [*stmt.args.posonlyargs, *stmt.args.args, *stmt.args.kwonlyargs]
                all_args += [a for a in (stmt.args.vararg, stmt.args.kwarg) if a is not None]
                for arg in all_args:
                    self._check_annotation(arg.annotation, source_file, local, diagnostics)
                self._check_annotation(stmt.returns, source_file, local, diagnostics)
            elif isinstance(stmt, ast.ClassDef):
                local = {p.name for p in getattr(stmt, "type_params", [])}
                for item in stmt.body:
                    if isinstance(item, ast.AnnAssign):
                        self._check_annotation(item.annotation, source_file, local, diagnostics)
            elif type(stmt).__name__ == "TypeAlias":
                local = {p.name for p in getattr(stmt, "type_params", [])}
                self._check_annotation(stmt.value, source_file, local, diagnostics)
        return diagnostics

    def _check_annotation(self, expr, source_file, local_names, diagnostics) -> None:
        if expr is None:
            return
        if isinstance(expr, ast.Constant):
            if isinstance(expr.value, str):
                parsed = _parse_forward_reference(expr.value)
                if parsed is None:
                    diagnostics.append(self._diagnostic(source_file, expr, f"Invalid forward reference {expr.value!r}"))
                else:
                    ast.copy_location(parsed, expr)
                    for child in ast.walk(parsed):
                        ast.copy_location(child, expr)
                    self._check_annotation(parsed, source_file, local_names, diagnostics)
            return
        if isinstance(expr, (ast.Name, ast.Attribute)):
            root = dotted_name(expr)
            if root is not None and root.split(".")[0] in local_names:
                return
            binding = self.lookup_expr(expr, source_file)
            if isinstance(binding, UnresolvedBinding):
                diagnostics.append(self._diagnostic(source_file, expr, binding.message))
            return
        if isinstance(expr, ast.Subscript):
            self._check_annotation(expr.value, source_file, local_names, diagnostics)
            base = self.lookup_expr(expr.value, source_file)
            if isinstance(base, SpecialForm) and base.qualname == "typing.Literal":
                return
            elts = list(expr.slice.elts) if isinstance(expr.slice, ast.Tuple) else [expr.slice]
            if isinstance(base, SpecialForm) and base.qualname == "typing.Annotated":
                elts = elts[:1]
            for elt in elts:
                self._check_annotation(elt, source_file, local_names, diagnostics)
            return
        if isinstance(expr, ast.BinOp):
            self._check_annotation(expr.left, source_file, local_names, diagnostics)
            self._check_annotation(expr.right, source_file, local_names, diagnostics)
            return
        if isinstance(expr, (ast.Tuple, ast.List)):
            for elt in expr.elts:
                self._check_annotation(elt, source_file, local_names, diagnostics)
            return
        if isinstance(expr, ast.Dict):
            for value in expr.values:
                self._check_annotation(value, source_file, local_names, diagnostics)

    @staticmethod
    def _diagnostic(source_file: SourceFile, node: ast.AST, message: str) -> Diagnostic:
        return Diagnostic(
            message=message,
            file_name=source_file.file_name,
            line=getattr(node, "lineno", None),
            column=(node.col_offset + 1) if hasattr(node, "col_offset") else None,
        )


def _is_special_module(module_name: str) -> bool:
    return module_name in SPECIAL_MODULES


def _literal_strings(value: ast.expr) -> Optional[List[str]]:
    if isinstance(value, (ast.List, ast.Tuple)):
        return [e.value for e in value.elts if isinstance(e, ast.Constant) and isinstance(e.value, str)]
    return None


def _parse_forward_reference(text: str) -> Optional[ast.expr]:
    try:
        return ast.parse(text.strip(), mode="eval").body
    except SyntaxError:
        return None
