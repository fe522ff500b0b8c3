"""Pieces of a constructor-function class collected before conversion."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
import re

from es6port.conversion.classes.doc import DocComment

__all__ = [
    "ClassDefinition",
    "ClassMember",
    "ConstructorDeclaration",
    "MemberKind",
]

_FUNCTION_LITERAL = re.compile(r"^\s*=\s*function\b")
_DELEGATION = re.compile(r"^\s*=\s*([\w$.\s]+\.[\w$]+)\s*;?\s*$")
_UNDEFINED_TYPE = re.compile(r"@type\s*\{[^}]*\bundefined\b")


class MemberKind(StrEnum):
    METHOD = "method"
    ABSTRACT_METHOD = "abstract-method"
    DELEGATED_METHOD = "delegated-method"
    FIELD = "field"
    UNINITIALIZED_FIELD = "uninitialized-field"

    @property
    def is_method(self) -> bool:
        return self in (
            MemberKind.METHOD,
            MemberKind.ABSTRACT_METHOD,
            MemberKind.DELEGATED_METHOD,
        )


@dataclass(frozen=True, slots=True)
class ClassMember:
    """A ``Ns.prototype.name`` declaration.

    ``body`` is the definition text from the assignment operator onwards (or a
    bare ``;``); the kind is derived from it together with the doc comment.
    """

    name: str
    body: str
    span: tuple[int, int]
    doc: DocComment = field(default_factory=DocComment)
    root: str = "goog"

    @property
    def declares_method(self) -> bool:
        return self.doc.has_tag("param", "return", "abstract")

    @property
    def explicitly_abstract(self) -> bool:
        pattern = rf"^\s*=\s*{re.escape(self.root)}\.abstractMethod\s*;?\s*$"
        return re.match(pattern, self.body) is not None

    @property
    def null_function(self) -> bool:
        pattern = rf"^\s*=\s*{re.escape(self.root)}\.nullFunction\s*;?\s*$"
        return re.match(pattern, self.body) is not None

    @property
    def delegate(self) -> str | None:
        """Return the function a delegated method forwards to."""

        match = _DELEGATION.match(self.body)
        if match is None:
            return None
        return re.sub(r"\s+", "", match.group(1))

    @property
    def kind(self) -> MemberKind:
        if self.body == ";":
            if self.declares_method:
                return MemberKind.ABSTRACT_METHOD
            return MemberKind.UNINITIALIZED_FIELD
        if self.explicitly_abstract:
            return MemberKind.ABSTRACT_METHOD
        if _FUNCTION_LITERAL.match(self.body):
            return MemberKind.METHOD
        if self.null_function and not self.doc.mentions("{Function}"):
            return MemberKind.DELEGATED_METHOD
        if self.delegate is not None and self.declares_method:
            return MemberKind.DELEGATED_METHOD
        return MemberKind.FIELD

    @property
    def initializes_undefined(self) -> bool:
        return any(_UNDEFINED_TYPE.search(line) for line in self.doc.lines())


@dataclass(frozen=True, slots=True)
class ConstructorDeclaration:
    """The ``Ns = function(...) {...}`` declaration that starts a class.

    ``definition`` holds the text following the ``function`` keyword, i.e. the
    parameter list and body, with any trailing semicolon removed.
    """

    namespace: str
    definition: str
    span: tuple[int, int]
    doc: DocComment = field(default_factory=DocComment)
    binding: str = ""

    @property
    def is_interface(self) -> bool:
        return self.doc.has_tag("interface", "record")


@dataclass(slots=True)
class ClassDefinition:
    """Everything collected for one class in a file."""

    constructor: ConstructorDeclaration
    members: list[ClassMember] = field(default_factory=list)
    superclass: str | None = None
    inherits_span: tuple[int, int] | None = None

    @property
    def namespace(self) -> str:
        return self.constructor.namespace

    @property
    def is_abstract(self) -> bool:
        return any(
            member.kind is MemberKind.ABSTRACT_METHOD
            or member.doc.has_tag("abstract")
            for member in self.members
        )
