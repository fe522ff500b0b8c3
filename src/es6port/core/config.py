"""Configuration models and loaders for :mod:`es6port`."""

from __future__ import annotations

from collections.abc import Mapping as MappingABC
from pathlib import Path
from typing import Any, Iterable, Mapping

import tomllib
import tomlkit
from pydantic import BaseModel, Field, field_validator, model_validator

from es6port.resources import get_resource

USER_CONFIG_FILENAME = "es6port.toml"
DEFAULTS_RESOURCE_NAME = "es6port.defaults.toml"

DEFAULT_EXCLUDE_PATTERNS: tuple[str, ...] = (
    "less/",
    "js-cache/",
    "testing/",
    "*_perf.js",
    "*tester.js",
    "alltests.js",
    "testhelpers.js",
    "testing.js",
    "relativecommontests.js",
    "mockiframeio.js",
)

DEFAULT_TEST_PATTERNS: tuple[str, ...] = ("*_test.js",)

DEFAULT_RESERVED_NAMES: tuple[str, ...] = (
    "Array",
    "Date",
    "Error",
    "File",
    "LogRecord",
    "Logger",
    "Map",
    "Notification",
    "Object",
    "ServiceWorker",
    "Set",
    "array",
    "console",
    "document",
    "localStorage",
    "number",
    "parseInt",
    "string",
    "window",
)

DEFAULT_ROOT_ALLOWLIST: tuple[str, ...] = (
    "global",
    "require",
    "isString",
    "isBoolean",
    "isNumber",
    "define",
    "DEBUG",
    "LOCALE",
    "TRUSTED_SITE",
    "STRICT_MODE_COMPATIBLE",
    "DISALLOW_TEST_ONLY_CODE",
    "module.get",
    "setTestOnly",
    "forwardDeclare",
    "getObjectByName",
    "basePath",
    "addSingletonGetter",
    "typeOf",
    "isArray",
    "isArrayLike",
    "isDateLike",
    "isFunction",
    "isObject",
    "getUid",
    "hasUid",
    "removeUid",
    "mixin",
    "now",
    "globalEval",
    "getCssName",
    "setCssNameMapping",
    "getMsg",
    "getMsgWithFallback",
    "exportSymbol",
    "exportProperty",
    "isDef",
    "isNull",
    "isDefAndNotNull",
    "globalize",
    "nullFunction",
    "abstractMethod",
    "removeHashCode",
    "getHashCode",
    "cloneObject",
    "bind",
    "partial",
    "inherits",
    "base",
    "scope",
    "defineClass",
    "declareModuleId",
    "tagUnsealableClass",
)

_BASE_MODEL_CONFIG = {
    "str_strip_whitespace": True,
    "validate_assignment": True,
}


def _dedupe(values: Iterable[str]) -> tuple[str, ...]:
    """Drop blanks and duplicates while keeping first-seen order."""

    return tuple(dict.fromkeys(value for value in values if value))


class ReaderSettings(BaseModel):
    """Settings controlling which files the Source Reader indexes."""

    extensions: tuple[str, ...] = Field(
        default=(".js",),
        description="File suffixes considered JavaScript sources.",
    )
    exclude_patterns: tuple[str, ...] = Field(
        default=DEFAULT_EXCLUDE_PATTERNS,
        description="gitwildmatch patterns excluded from every traversal.",
    )
    test_patterns: tuple[str, ...] = Field(
        default=DEFAULT_TEST_PATTERNS,
        description=(
            "gitwildmatch patterns for test files; excluded unless tests are "
            "selected."
        ),
    )
    test_only_marker: str = Field(
        default="goog.setTestOnly(",
        description="Text marking a file as test-only; such files are skipped.",
    )
    implicit_root_require: bool = Field(
        default=False,
        description=(
            "Add an implicit dependency on the root namespace to every file "
            "except the root files."
        ),
    )
    root_files: tuple[str, ...] = Field(
        default=("base.js", "goog.js"),
        description="File names that define the root namespace itself.",
    )
    respect_gitignore: bool = Field(
        default=False,
        description="Also skip files ignored by `.gitignore` files in the tree.",
    )

    model_config = {**_BASE_MODEL_CONFIG, "frozen": True}

    @field_validator("extensions")
    @classmethod
    def _normalize_extensions(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        normalized: list[str] = []
        for raw in value:
            item = raw.strip().lower()
            if not item:
                continue
            if not item.startswith("."):
                item = f".{item}"
            normalized.append(item)
        if not normalized:
            raise ValueError("At least one source extension is required.")
        return _dedupe(normalized)

    @field_validator("exclude_patterns", "test_patterns", "root_files")
    @classmethod
    def _normalize_lists(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        return _dedupe(item.strip() for item in value)


class SelectionSettings(BaseModel):
    """Settings for the optional Dependency Selector stage."""

    required_namespaces_file: Path | None = Field(
        default=None,
        description=(
            "File listing externally required root namespaces; enables "
            "subsetting when set."
        ),
    )
    include_tests: bool = Field(
        default=False,
        description="Also select test companions of every selected namespace.",
    )
    test_suffix: str = Field(
        default="Test",
        min_length=1,
        description="Suffix appended to a namespace to name its test companion.",
    )

    model_config = {**_BASE_MODEL_CONFIG, "frozen": True}


class RewriteSettings(BaseModel):
    """Settings for the Namespace Rewriter and alias allocation."""

    root_namespace: str = Field(
        default="goog",
        min_length=1,
        description="Shared root namespace of the legacy library.",
    )
    root_allowlist: tuple[str, ...] = Field(
        default=DEFAULT_ROOT_ALLOWLIST,
        description=(
            "Root-level members (relative to the root namespace) that stay "
            "fully qualified."
        ),
    )
    reserved_names: tuple[str, ...] = Field(
        default=DEFAULT_RESERVED_NAMES,
        description="Names never used as local aliases or bindings.",
    )
    max_alias_attempts: int = Field(
        default=64,
        ge=1,
        description="Iteration cap for each phase of alias allocation.",
    )

    model_config = {**_BASE_MODEL_CONFIG, "frozen": True}

    @field_validator("root_allowlist", "reserved_names")
    @classmethod
    def _normalize_lists(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        return _dedupe(item.strip() for item in value)


class PatchRule(BaseModel):
    """One textual substitution scoped to files ending with ``file``."""

    file: str = Field(
        description="Path suffix (POSIX separators) selecting target files.",
    )
    search: str = Field(description="Literal text or regular expression.")
    replace: str = Field(
        default="",
        description="Replacement text; regex rules may use group references.",
    )
    regex: bool = Field(
        default=False,
        description="Treat ``search`` as a regular expression.",
    )
    strict: bool = Field(
        default=False,
        description="Fail when ``search`` does not occur in a targeted file.",
    )

    model_config = {"frozen": True}

    @field_validator("file")
    @classmethod
    def _normalize_file(cls, value: str) -> str:
        normalized = value.strip().replace("\\", "/").lstrip("/")
        if not normalized:
            raise ValueError("Patch rules require a non-empty file suffix.")
        return normalized


class PatchSettings(BaseModel):
    """Ordered patch lists applied around the core pipeline."""

    source: tuple[PatchRule, ...] = Field(
        default_factory=tuple,
        description="Patches applied to the output tree before conversion.",
    )
    declaration: tuple[PatchRule, ...] = Field(
        default_factory=tuple,
        description="Patches applied to generated ``.d.ts`` declarations.",
    )

    model_config = {"frozen": True}


class VerifySettings(BaseModel):
    """External verification command settings."""

    command: tuple[str, ...] = Field(
        default_factory=tuple,
        description=(
            "argv of the verification command; ``{output}`` is replaced with "
            "the output root. Empty disables verification."
        ),
    )

    model_config = {"frozen": True}

    @property
    def enabled(self) -> bool:
        return bool(self.command)


class AppConfig(BaseModel):
    """Root configuration for the :mod:`es6port` application."""

    input_dir: Path | None = Field(
        default=None,
        description="Root of the legacy source tree.",
    )
    output_dir: Path | None = Field(
        default=None,
        description="Root of the converted tree; cleared before each run.",
    )
    log_level: str = Field(
        default="INFO",
        description="Default logging level for the application runtime.",
    )
    log_dir: Path | None = Field(
        default=None,
        description="Optional directory receiving the rotating JSON log file.",
    )
    reader: ReaderSettings = Field(default_factory=ReaderSettings)
    selection: SelectionSettings = Field(default_factory=SelectionSettings)
    rewrite: RewriteSettings = Field(default_factory=RewriteSettings)
    cycle_groups: dict[str, tuple[str, ...]] = Field(
        default_factory=dict,
        description=(
            "Merge target (relative to the output root) mapped to its "
            "constituent files in concatenation order."
        ),
    )
    patches: PatchSettings = Field(default_factory=PatchSettings)
    verify: VerifySettings = Field(default_factory=VerifySettings)

    model_config = _BASE_MODEL_CONFIG

    @field_validator("cycle_groups")
    @classmethod
    def _validate_cycle_groups(
        cls,
        value: dict[str, tuple[str, ...]],
    ) -> dict[str, tuple[str, ...]]:
        normalized: dict[str, tuple[str, ...]] = {}
        for target, members in value.items():
            key = target.strip()
            if not key:
                raise ValueError("Cycle group targets cannot be blank.")
            files = _dedupe(member.strip() for member in members)
            if not files:
                raise ValueError(f"Cycle group {key!r} lists no files.")
            normalized[key] = files
        return normalized

    @model_validator(mode="after")
    def _post_process(self) -> "AppConfig":
        """Normalize fields after validation."""

        object.__setattr__(self, "log_level", self.log_level.upper())
        for name in ("input_dir", "output_dir", "log_dir"):
            value = getattr(self, name)
            if value is not None:
                object.__setattr__(self, name, value.expanduser())
        return self

    def iter_cycle_groups(self) -> Iterable[tuple[str, tuple[str, ...]]]:
        """Iterate over cycle groups in declaration order."""

        return self.cycle_groups.items()


def read_packaged_defaults_text() -> str:
    """Return the raw packaged defaults TOML content.

    Example:
        >>> text = read_packaged_defaults_text()
        >>> text.startswith("#")
        True
    """

    resource = get_resource(DEFAULTS_RESOURCE_NAME)
    return resource.read_text(encoding="utf-8")


def load_packaged_defaults() -> dict[str, Any]:
    """Load the packaged defaults as a plain dictionary.

    Example:
        >>> defaults = load_packaged_defaults()
        >>> defaults["log_level"]
        'INFO'
    """

    text = read_packaged_defaults_text()
    data: dict[str, Any] = tomllib.loads(text)
    return data


def load_user_config(path: Path) -> dict[str, Any]:
    """Parse a user ``es6port.toml`` file.

    Relative ``input_dir``/``output_dir``/``log_dir`` and
    ``selection.required_namespaces_file`` values are resolved against the
    directory containing the file.
    """

    with path.open("rb") as handle:
        data: dict[str, Any] = tomllib.load(handle)

    base = path.parent
    for key in ("input_dir", "output_dir", "log_dir"):
        if isinstance(data.get(key), str):
            data[key] = str(base / Path(data[key]).expanduser())
    selection = data.get("selection")
    if isinstance(selection, MappingABC):
        raw = selection.get("required_namespaces_file")
        if isinstance(raw, str):
            selection = dict(selection)
            selection["required_namespaces_file"] = str(
                base / Path(raw).expanduser()
            )
            data["selection"] = selection
    return data


def _deep_merge(
    base: Mapping[str, Any],
    overlay: Mapping[str, Any],
) -> dict[str, Any]:
    """Recursively merge ``overlay`` into ``base`` returning a new dict."""

    merged: dict[str, Any] = dict(base)
    for key, value in overlay.items():
        if (
            key in merged
            and isinstance(merged[key], MappingABC)
            and isinstance(value, MappingABC)
        ):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_config(
    *,
    defaults: Mapping[str, Any],
    user_config: Mapping[str, Any] | None = None,
    cli_overrides: Mapping[str, Any] | None = None,
) -> AppConfig:
    """Load configuration according to the precedence stack.

    Cycle groups are replaced wholesale by a higher layer rather than merged
    so a user file can drop packaged groups.

    Args:
        defaults: Packaged defaults shipped with the application.
        user_config: Parsed user ``es6port.toml`` content.
        cli_overrides: Settings supplied via CLI flags.

    Returns:
        A validated :class:`AppConfig` instance.
    """

    stack = dict(defaults)
    for layer in (user_config, cli_overrides):
        if not layer:
            continue
        layer = dict(layer)
        groups = layer.pop("cycle_groups", None)
        stack = _deep_merge(stack, layer)
        if groups is not None:
            stack["cycle_groups"] = dict(groups)
    return AppConfig(**stack)


def _render_patch_rules(rules: Iterable[PatchRule]) -> tomlkit.items.AoT:
    array = tomlkit.aot()
    for rule in rules:
        entry = tomlkit.table()
        entry["file"] = rule.file
        entry["search"] = rule.search
        entry["replace"] = rule.replace
        entry["regex"] = rule.regex
        entry["strict"] = rule.strict
        array.append(entry)
    return array


def render_user_config(
    config: AppConfig,
    *,
    include_defaults: bool = True,
) -> str:
    """Render an ``es6port.toml`` template for users to customize.

    Args:
        config: Configuration instance to serialize.
        include_defaults: Whether to inline commentary.

    Returns:
        A TOML-formatted string ready to persist for the user.
    """

    document = tomlkit.document()

    if include_defaults:
        document.add(tomlkit.comment("Generated by es6port init"))
        document.add(
            tomlkit.comment("Precedence: CLI flags > es6port.toml > defaults")
        )
        document.add(
            tomlkit.comment("Relative paths resolve against this file.")
        )
        document.add(tomlkit.nl())

    if config.input_dir is not None:
        document["input_dir"] = str(config.input_dir)
    if config.output_dir is not None:
        document["output_dir"] = str(config.output_dir)
    document["log_level"] = config.log_level
    if config.log_dir is not None:
        document["log_dir"] = str(config.log_dir)

    reader_table = tomlkit.table()
    reader_table["extensions"] = list(config.reader.extensions)
    reader_table["exclude_patterns"] = list(config.reader.exclude_patterns)
    reader_table["test_patterns"] = list(config.reader.test_patterns)
    reader_table["test_only_marker"] = config.reader.test_only_marker
    reader_table["implicit_root_require"] = config.reader.implicit_root_require
    reader_table["root_files"] = list(config.reader.root_files)
    reader_table["respect_gitignore"] = config.reader.respect_gitignore
    document["reader"] = reader_table

    selection_table = tomlkit.table()
    if include_defaults:
        selection_table.add(
            tomlkit.comment(
                "required_namespaces_file = \"namespaces.txt\" enables "
                "subsetting"
            )
        )
    if config.selection.required_namespaces_file is not None:
        selection_table["required_namespaces_file"] = str(
            config.selection.required_namespaces_file
        )
    selection_table["include_tests"] = config.selection.include_tests
    selection_table["test_suffix"] = config.selection.test_suffix
    document["selection"] = selection_table

    rewrite_table = tomlkit.table()
    rewrite_table["root_namespace"] = config.rewrite.root_namespace
    rewrite_table["max_alias_attempts"] = config.rewrite.max_alias_attempts
    rewrite_table["reserved_names"] = list(config.rewrite.reserved_names)
    rewrite_table["root_allowlist"] = list(config.rewrite.root_allowlist)
    document["rewrite"] = rewrite_table

    groups_table = tomlkit.table()
    for target, members in config.iter_cycle_groups():
        groups_table[target] = list(members)
    document["cycle_groups"] = groups_table

    patches_table = tomlkit.table()
    if config.patches.source:
        patches_table["source"] = _render_patch_rules(config.patches.source)
    if config.patches.declaration:
        patches_table["declaration"] = _render_patch_rules(
            config.patches.declaration
        )
    if include_defaults and not (
        config.patches.source or config.patches.declaration
    ):
        patches_table.add(
            tomlkit.comment(
                "[[patches.source]] file = \"a/b.js\" search = \"x\" "
                "replace = \"y\""
            )
        )
    document["patches"] = patches_table

    verify_table = tomlkit.table()
    verify_table["command"] = list(config.verify.command)
    document["verify"] = verify_table

    return tomlkit.dumps(document)


__all__ = [
    "AppConfig",
    "DEFAULT_EXCLUDE_PATTERNS",
    "DEFAULT_RESERVED_NAMES",
    "DEFAULT_ROOT_ALLOWLIST",
    "DEFAULT_TEST_PATTERNS",
    "DEFAULTS_RESOURCE_NAME",
    "PatchRule",
    "PatchSettings",
    "ReaderSettings",
    "RewriteSettings",
    "SelectionSettings",
    "USER_CONFIG_FILENAME",
    "VerifySettings",
    "load_config",
    "load_packaged_defaults",
    "load_user_config",
    "read_packaged_defaults_text",
    "render_user_config",
]
