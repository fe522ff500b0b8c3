"""Conversion of constructor functions and prototypes into classes."""

from __future__ import annotations

from es6port.conversion.classes.converter import (
    ClassConverter,
    collect_classes,
    convert_classes,
    render_class,
)
from es6port.conversion.classes.doc import DocComment
from es6port.conversion.classes.models import (
    ClassDefinition,
    ClassMember,
    ConstructorDeclaration,
    MemberKind,
)

__all__ = [
    "ClassConverter",
    "ClassDefinition",
    "ClassMember",
    "ConstructorDeclaration",
    "DocComment",
    "MemberKind",
    "collect_classes",
    "convert_classes",
    "render_class",
]
