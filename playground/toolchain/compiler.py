"""
playground/toolchain/compiler.py

Front-end and back-end for submitted programs.

Parsing produces an AST, the compilation unit binds that tree to the
reference set, and emission marshals the resulting code object into an
in-memory buffer. Parse errors and compile-stage errors are reported
through the same diagnostic list; callers cannot tell them apart.
"""

from __future__ import annotations

import ast
import io
import logging
import marshal
from dataclasses import dataclass
from types import CodeType

from playground.domain.execution import CompiledModule, Diagnostic
from playground.toolchain.errors import EmitError
from playground.toolchain.reference_set import REFERENCE_MODULES, top_level_name

logger = logging.getLogger(__name__)

SUBMISSION_FILENAME = "submission.py"
ENTRY_POINT_NAME = "main"
OUTPUT_KIND_CONSOLE = "console"


@dataclass(frozen=True)
class CompilationUnit:
    """
    A parsed program tagged with its output kind and resolvable modules.
    """

    tree: ast.Module
    output_kind: str
    references: frozenset[str]
    filename: str = SUBMISSION_FILENAME


def _diagnostic_from_syntax_error(exc: SyntaxError) -> Diagnostic:
    return Diagnostic(
        code=type(exc).__name__,
        message=exc.msg or "invalid syntax",
        line=exc.lineno,
        column=exc.offset,
    )


def parse_source(source: str) -> tuple[ast.Module | None, list[Diagnostic]]:
    """
    Parse ``source`` into a module AST, returning diagnostics instead of raising.
    """

    try:
        tree = ast.parse(source, filename=SUBMISSION_FILENAME, mode="exec")
    except SyntaxError as exc:
        return None, [_diagnostic_from_syntax_error(exc)]
    except ValueError as exc:
        return None, [Diagnostic(code="SourceError", message=str(exc))]
    except RecursionError:
        return None, [Diagnostic(code="SourceError", message="source is nested too deeply to compile")]
    return tree, []


def build_compilation_unit(
    tree: ast.Module,
    references: frozenset[str] = REFERENCE_MODULES,
) -> CompilationUnit:
    return CompilationUnit(tree=tree, output_kind=OUTPUT_KIND_CONSOLE, references=references)


def check_references(unit: CompilationUnit) -> list[Diagnostic]:
    """
    Report every import that does not resolve against the unit's references.
    """

    diagnostics: list[Diagnostic] = []
    for node in ast.walk(unit.tree):
        if isinstance(node, ast.Import):
            names = [alias.name for alias in node.names]
        elif isinstance(node, ast.ImportFrom):
            if node.level:
                diagnostics.append(
                    Diagnostic(
                        code="ImportError",
                        message="relative imports are not supported",
                        line=node.lineno,
                        column=node.col_offset + 1,
                    )
                )
                continue
            names = [node.module or ""]
        else:
            continue

        for name in names:
            if top_level_name(name) not in unit.references:
                diagnostics.append(
                    Diagnostic(
                        code="ImportError",
                        message=f"module '{name}' could not be resolved",
                        line=node.lineno,
                        column=node.col_offset + 1,
                    )
                )
    return diagnostics


def _accepts_no_arguments(function: ast.FunctionDef) -> bool:
    args = function.args
    positional = len(args.posonlyargs) + len(args.args)
    if positional > len(args.defaults):
        return False
    return all(default is not None for default in args.kw_defaults)


def find_entry_point(tree: ast.Module, name: str = ENTRY_POINT_NAME) -> str | None:
    """
    Return ``name`` if the module defines it at top level as a no-argument function.

    The last top-level definition wins, matching what the module namespace
    holds once its body has run.
    """

    entry_point: str | None = None
    for node in tree.body:
        if isinstance(node, ast.FunctionDef) and node.name == name:
            entry_point = name if _accepts_no_arguments(node) else None
    return entry_point


def emit(unit: CompilationUnit) -> bytes:
    """
    Compile ``unit`` and marshal the code object into an in-memory buffer.

    Raises SyntaxError for compile-stage errors and EmitError when the code
    object cannot be serialized.
    """

    code: CodeType = compile(unit.tree, unit.filename, "exec", dont_inherit=True)
    buffer = io.BytesIO()
    try:
        marshal.dump(code, buffer)
    except ValueError as exc:
        raise EmitError(f"could not emit binary module: {exc}") from exc
    return buffer.getvalue()


def load_code(image: bytes) -> CodeType:
    """
    Read a code object back from an emitted binary module.
    """

    try:
        code = marshal.loads(image)
    except (EOFError, ValueError, TypeError) as exc:
        raise EmitError(f"binary module is unreadable: {exc}") from exc
    if not isinstance(code, CodeType):
        raise EmitError("binary module does not contain a code object")
    return code


class Compiler:
    """
    Stateless compiler bound to a reference set and entry point name.
    """

    def __init__(
        self,
        *,
        references: frozenset[str] = REFERENCE_MODULES,
        entry_point_name: str = ENTRY_POINT_NAME,
    ) -> None:
        self._references = references
        self._entry_point_name = entry_point_name

    @property
    def entry_point_name(self) -> str:
        return self._entry_point_name

    def compile(self, source: str) -> CompiledModule:
        """
        Parse, check and emit ``source`` into a fresh CompiledModule.
        """

        tree, diagnostics = parse_source(source)
        if tree is None:
            return CompiledModule(image=b"", diagnostics=tuple(diagnostics))

        unit = build_compilation_unit(tree, self._references)
        diagnostics.extend(check_references(unit))
        if diagnostics:
            return CompiledModule(image=b"", diagnostics=tuple(diagnostics))

        try:
            image = emit(unit)
        except SyntaxError as exc:
            return CompiledModule(image=b"", diagnostics=(_diagnostic_from_syntax_error(exc),))
        except RecursionError:
            return CompiledModule(
                image=b"",
                diagnostics=(Diagnostic(code="SourceError", message="source is nested too deeply to compile"),),
            )

        logger.debug("Emitted binary module size_bytes=%d", len(image))
        return CompiledModule(
            image=image,
            entry_point=find_entry_point(unit.tree, self._entry_point_name),
        )
