"""Class Converter: rewrite constructor functions as ``class`` expressions.

A documented ``Ns = function(...) {...}`` constructor, the ``Ns.prototype``
members assigned to it and its ``inherits`` call are collected and replaced by
a single ``Ns = class [extends Base] {...};`` statement placed where the
constructor was. Prototype fields move into the constructor, after the call to
the parent constructor when the class inherits.
"""

from __future__ import annotations

from pathlib import Path
import re
import textwrap
from typing import Iterable

from es6port.conversion.classes.doc import DocComment
from es6port.conversion.classes.models import (
    ClassDefinition,
    ClassMember,
    ConstructorDeclaration,
    MemberKind,
)
from es6port.conversion.errors import ConversionError
from es6port.conversion.reader import read_source
from es6port.conversion.scanner import (
    get_definition,
    scan_group_end,
    scan_statement_end,
)
from es6port.conversion.syntax import indent_code, inferred_parameters
from es6port.core.logging import get_logger

__all__ = [
    "ClassConverter",
    "collect_classes",
    "convert_classes",
    "render_class",
]

_CONSTRUCTOR = re.compile(
    r"^(?P<doc>/\*\*(?:(?!\*/).)*?@(?:constructor|interface|record)\b"
    r"(?:(?!\*/).)*\*/\s*)"
    r"(?P<binding>(?:const|let|var)\s+)?"
    r"(?P<namespace>[\w$.]+)\s*=\s*function\b",
    re.DOTALL | re.MULTILINE,
)
_MEMBER = re.compile(
    r"^(?P<doc>/\*\*(?:(?!\*/).)*\*/[ \t]*\n)?"
    r"(?P<namespace>[\w$.]+)\.prototype\.(?P<name>[\w$]+)"
    r"(?P<assign>;|\s*=(?!=)\s*)",
    re.DOTALL | re.MULTILINE,
)
_FUNCTION_PREFIX = re.compile(r"^\s*=\s*function\b")
_ASSIGNMENT_PREFIX = re.compile(r"^\s*=\s*")
_SUPER_CALL = re.compile(r"(?<![\w$.])super\s*\(")
_STATEMENT_TAIL = re.compile(r"[ \t]*;")
_PROTOTYPE_DELEGATE = re.compile(r"^(?P<owner>.+)\.prototype\.[\w$]+$")
_TRAILING_BLANK_LINES = re.compile(r"[ \t]*(?:\n[ \t]*(?=\n))*\n?")


def _guarded(name: str) -> str:
    dotted = r"\s*\.\s*".join(re.escape(part) for part in name.split("."))
    return rf"(?<![\w$.]){dotted}"


def _inherits_pattern(root: str) -> re.Pattern[str]:
    return re.compile(
        rf"^{re.escape(root)}\.inherits\(\s*([\w$.]+)\s*,\s*([\w$.]+)\s*\)"
        r"[ \t]*;?",
        re.MULTILINE,
    )


def _split_function(name: str, definition: str) -> tuple[str, str]:
    """Split ``(params) {body}`` into the parameter text and dedented body."""

    open_paren = definition.find("(")
    if open_paren == -1:
        raise ConversionError(f"Malformed function definition for {name!r}")
    close_paren = scan_group_end(definition, open_paren) - 1
    open_brace = definition.find("{", close_paren + 1)
    if open_brace == -1:
        raise ConversionError(f"Malformed function definition for {name!r}")
    close_brace = scan_group_end(definition, open_brace) - 1
    params = definition[open_paren + 1 : close_paren].strip()
    body = definition[open_brace + 1 : close_brace]
    return params, textwrap.dedent(body.strip("\n")).strip()


def _block(signature: str, body: str) -> str:
    if not body:
        return f"{signature} {{}}"
    return f"{signature} {{\n{indent_code(body)}\n}}"


def collect_classes(text: str, *, root: str = "goog") -> list[ClassDefinition]:
    """Find every constructor in ``text`` with its members and parent."""

    classes: dict[str, ClassDefinition] = {}
    for match in _CONSTRUCTOR.finditer(text):
        end = scan_statement_end(text, match.end())
        definition = text[match.end() : end].rstrip().rstrip(";")
        binding = match.group("binding")
        constructor = ConstructorDeclaration(
            namespace=match.group("namespace"),
            definition=definition,
            span=(match.start(), end),
            doc=DocComment.parse(match.group("doc")),
            binding=f"{binding.strip()} " if binding else "",
        )
        classes.setdefault(
            constructor.namespace, ClassDefinition(constructor=constructor)
        )

    if not classes:
        return []

    spans = [definition.constructor.span for definition in classes.values()]
    for match in _MEMBER.finditer(text):
        owner = classes.get(match.group("namespace"))
        if owner is None:
            continue
        if any(start <= match.start() < end for start, end in spans):
            continue
        body = get_definition(text, match, "assign")
        owner.members.append(
            ClassMember(
                name=match.group("name"),
                body=body,
                span=(match.start(), match.start("assign") + len(body)),
                doc=DocComment.parse(match.group("doc")),
                root=root,
            )
        )

    for match in _inherits_pattern(root).finditer(text):
        owner = classes.get(match.group(1))
        if owner is not None:
            owner.superclass = match.group(2)
            owner.inherits_span = match.span()

    return list(classes.values())


def _rewrite_super_calls(
    body: str,
    definition: ClassDefinition,
    *,
    root: str,
    in_constructor: bool,
) -> str:
    namespace = _guarded(definition.namespace)
    base = _guarded(root)
    if in_constructor:
        rewrites = [
            (
                rf"{namespace}\s*\.\s*base\s*\(\s*this\s*,\s*"
                r"['\"]constructor['\"]\s*,?\s*",
                "super(",
            ),
            (
                rf"{namespace}\s*\.\s*superClass_\s*\.\s*constructor\s*\.\s*"
                r"call\s*\(\s*this\s*,?\s*",
                "super(",
            ),
            (rf"{base}\.base\(\s*this\s*,?\s*", "super("),
        ]
        if definition.superclass:
            parent = _guarded(definition.superclass)
            rewrites.append(
                (rf"{parent}\s*\.\s*call\s*\(\s*this\s*,?\s*", "super(")
            )
    else:
        rewrites = [
            (
                rf"{namespace}\s*\.\s*base\s*\(\s*this\s*,\s*"
                r"['\"]([\w$]+)['\"]\s*,?\s*",
                r"super.\1(",
            ),
            (
                rf"{base}\.base\(\s*this\s*,\s*['\"]([\w$]+)['\"]\s*,?\s*",
                r"super.\1(",
            ),
            (
                rf"{namespace}\s*\.\s*superClass_\s*\.\s*([\w$]+)\s*\.\s*"
                r"call\s*\(\s*this\s*,?\s*",
                r"super.\1(",
            ),
            (
                rf"{namespace}\s*\.\s*superClass_\s*\.\s*([\w$]+)\s*\.\s*"
                r"apply\s*\(\s*this\s*,\s*",
                r"super.\1(...",
            ),
        ]
        if definition.superclass:
            parent = _guarded(definition.superclass)
            rewrites.extend(
                [
                    (
                        rf"{parent}\s*\.\s*prototype\s*\.\s*([\w$]+)\s*\.\s*"
                        r"call\s*\(\s*this\s*,?\s*",
                        r"super.\1(",
                    ),
                    (
                        rf"{parent}\s*\.\s*prototype\s*\.\s*([\w$]+)\s*\.\s*"
                        r"apply\s*\(\s*this\s*,\s*",
                        r"super.\1(...",
                    ),
                ]
            )
    for pattern, replacement in rewrites:
        body = re.sub(pattern, replacement, body)
    return body


def _field_statement(member: ClassMember) -> str:
    doc = member.doc.split_visibility_types()
    if member.kind is MemberKind.UNINITIALIZED_FIELD:
        if member.initializes_undefined:
            value = "undefined;"
        else:
            value = "null;"
            doc = doc.nullable_primitive_type()
    else:
        value = _ASSIGNMENT_PREFIX.sub("", member.body, count=1).rstrip()
        if not value.endswith(";"):
            value += ";"
    return f"{doc.render()}this.{member.name} = {value}"


def _insert_fields(body: str, fields: list[str], inherits: bool) -> str:
    if not fields and not inherits:
        return body
    block = "\n".join(fields)
    match = _SUPER_CALL.search(body)
    if match is None:
        head = ["super();"] if inherits else []
        return "\n".join(head + fields + ([body] if body else []))
    if not fields:
        return body
    # The call may omit its semicolon; the statement ends with the argument
    # list, plus a directly following `;` when present.
    end = scan_group_end(body, match.end() - 1)
    semicolon = _STATEMENT_TAIL.match(body, end)
    if semicolon is not None:
        end = semicolon.end()
    return f"{body[:end]}\n{block}{body[end:]}"


def _constructor_text(definition: ClassDefinition, *, root: str) -> str:
    constructor = definition.constructor
    params, body = _split_function(
        constructor.namespace, constructor.definition
    )
    fields = [
        _field_statement(member)
        for member in definition.members
        if not member.kind.is_method
    ]
    if not (params or body or fields or definition.superclass):
        return ""
    body = _rewrite_super_calls(body, definition, root=root, in_constructor=True)
    body = _insert_fields(body, fields, definition.superclass is not None)
    doc = constructor.doc.only("param").render()
    return doc + _block(f"constructor({params})", body)


def _method_text(
    member: ClassMember,
    definition: ClassDefinition,
    *,
    root: str,
) -> str:
    doc = member.doc
    kind = member.kind
    if kind is MemberKind.METHOD:
        params, body = _split_function(
            member.name, _FUNCTION_PREFIX.sub("", member.body, count=1)
        )
        body = _rewrite_super_calls(
            body, definition, root=root, in_constructor=False
        )
        return doc.render() + _block(f"{member.name}({params})", body)

    params = ", ".join(inferred_parameters(doc.render()))
    signature = f"{member.name}({params})"
    if kind is MemberKind.ABSTRACT_METHOD:
        if member.explicitly_abstract:
            doc = doc.drop_function_type()
        if not (
            definition.constructor.is_interface or doc.has_tag("abstract")
        ):
            doc = doc.with_tag("@abstract")
        return doc.render() + _block(signature, "")

    delegate = member.delegate
    if member.null_function or delegate is None:
        return doc.render() + _block(signature, "")
    owner = _PROTOTYPE_DELEGATE.match(delegate)
    if owner is not None:
        arguments = ", ".join(["this", *filter(None, [params])])
        call = f"{delegate}.call({arguments})"
    else:
        call = f"{delegate}({params})"
    statement = f"return {call};" if doc.has_tag("return") else f"{call};"
    return doc.render() + _block(signature, statement)


def _class_doc(definition: ClassDefinition) -> DocComment:
    doc = definition.constructor.doc.without("param", "constructor")
    if definition.superclass:
        doc = doc.without("extends", "extend")
    if definition.is_abstract and not doc.has_tag(
        "abstract", "interface", "record"
    ):
        doc = doc.with_tag("@abstract")
    return doc


def render_class(definition: ClassDefinition, *, root: str = "goog") -> str:
    """Return the class statement that replaces ``definition``.

    Example:
        >>> text = "/** @constructor */\\na.B = function(x) {\\n  this.x = x;\\n};\\n"
        >>> print(render_class(collect_classes(text)[0]))
        a.B = class {
          constructor(x) {
            this.x = x;
          }
        };
    """

    parts: list[str] = []
    constructor = _constructor_text(definition, root=root)
    if constructor:
        parts.append(constructor)
    for member in definition.members:
        if member.kind.is_method:
            parts.append(_method_text(member, definition, root=root))

    extends = ""
    if definition.superclass:
        extends = f" extends {definition.superclass}"
    header = (
        f"{_class_doc(definition).render()}{definition.constructor.binding}"
        f"{definition.namespace} = class{extends} {{"
    )
    if not parts:
        return f"{header}}};"
    body = "\n\n".join(indent_code(part) for part in parts)
    return f"{header}\n{body}\n}};"


def _removal_end(text: str, end: int) -> int:
    match = _TRAILING_BLANK_LINES.match(text, end)
    return match.end() if match else end


def convert_classes(text: str, *, root: str = "goog") -> str:
    """Return ``text`` with every constructor function turned into a class."""

    edits: list[tuple[int, int, str]] = []
    for definition in collect_classes(text, root=root):
        start, end = definition.constructor.span
        edits.append((start, end, render_class(definition, root=root)))
        for member in definition.members:
            edits.append((*member.span, ""))
        if definition.inherits_span is not None:
            edits.append((*definition.inherits_span, ""))

    accepted: list[tuple[int, int, str]] = []
    cursor = -1
    for start, end, replacement in sorted(edits):
        if start < cursor:
            continue
        accepted.append((start, end, replacement))
        cursor = end

    for start, end, replacement in reversed(accepted):
        if not replacement:
            end = _removal_end(text, end)
        text = text[:start] + replacement + text[end:]
    return text


class ClassConverter:
    """Convert constructor functions to classes in a set of files."""

    def __init__(self, *, root_namespace: str = "goog") -> None:
        self._root = root_namespace
        self._logger = get_logger(__name__, stage="classes")

    def convert_text(self, text: str) -> str:
        return convert_classes(text, root=self._root)

    def convert_file(self, path: Path) -> bool:
        """Rewrite ``path`` in place; return ``True`` if it changed."""

        original = read_source(path)
        converted = self.convert_text(original)
        if converted == original:
            return False
        path.write_text(converted, encoding="utf-8")
        self._logger.debug("class-file-converted", path=str(path))
        return True

    def run(self, paths: Iterable[Path]) -> list[Path]:
        converted = [path for path in paths if self.convert_file(path)]
        self._logger.info("classes-converted", files=len(converted))
        return converted
