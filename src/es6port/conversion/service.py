"""Service layer running the full conversion pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from es6port.conversion.classes import ClassConverter
from es6port.conversion.cycles import CycleBreaker, MergeResult
from es6port.conversion.errors import ConversionError
from es6port.conversion.fileops import clear_directory, copy_files, copy_tree
from es6port.conversion.models import DependencyGraph
from es6port.conversion.patches import PatchApplier
from es6port.conversion.reader import SourceReader
from es6port.conversion.rewriter import (
    NamespaceRewriter,
    RewriteOutcome,
    RewriteStatus,
)
from es6port.conversion.selection import load_root_namespaces, select
from es6port.conversion.verify import VerificationResult, run_verification
from es6port.core.config import AppConfig
from es6port.core.logging import Logger, get_logger

__all__ = ["ConversionReport", "ConversionService"]


@dataclass(slots=True)
class ConversionReport:
    """Summary of one pipeline run."""

    output_dir: Path
    selected: tuple[Path, ...] | None = None
    merged: list[MergeResult] = field(default_factory=list)
    classes_converted: list[Path] = field(default_factory=list)
    outcomes: list[RewriteOutcome] = field(default_factory=list)
    verification: VerificationResult | None = None

    @property
    def rewritten(self) -> list[Path]:
        return [
            outcome.path
            for outcome in self.outcomes
            if outcome.status is RewriteStatus.CONVERTED
        ]

    @property
    def skipped(self) -> list[RewriteOutcome]:
        return [
            outcome
            for outcome in self.outcomes
            if outcome.status is RewriteStatus.SKIPPED
        ]


class ConversionService:
    """Coordinate reading, selecting, copying and converting a source tree."""

    def __init__(
        self,
        config: AppConfig,
        *,
        logger: Logger | None = None,
    ) -> None:
        self._config = config
        self._root = config.rewrite.root_namespace
        self._logger = logger or get_logger(
            __name__,
            component="conversion-service",
        )

    @property
    def config(self) -> AppConfig:
        return self._config

    def _reader(self) -> SourceReader:
        return SourceReader(
            self._config.reader,
            root_namespace=self._root,
            include_tests=self._config.selection.include_tests,
        )

    def _require_dir(self, name: str) -> Path:
        value = getattr(self._config, name)
        if value is None:
            raise ConversionError(
                f"{name} is not configured; set it in the config file or "
                "pass it on the command line"
            )
        return Path(value)

    def _input_dir(self) -> Path:
        source = self._require_dir("input_dir").resolve()
        if not source.is_dir():
            raise ConversionError(f"Input directory {source} does not exist")
        return source

    def _directories(self) -> tuple[Path, Path]:
        source = self._input_dir()
        output = self._require_dir("output_dir").resolve()
        if output == source or output.is_relative_to(source):
            raise ConversionError(
                f"Output directory {output} must not be inside the input "
                f"directory {source}"
            )
        if source.is_relative_to(output):
            raise ConversionError(
                f"Input directory {source} must not be inside the output "
                f"directory {output}"
            )
        return source, output

    def read(self, root: Path | None = None) -> DependencyGraph:
        """Index ``root`` (the input directory by default)."""

        if root is None:
            root = self._input_dir()
        return self._reader().read_tree(root)

    def select(
        self,
        graph: DependencyGraph | None = None,
    ) -> tuple[Path, ...] | None:
        """Return the files needed by the configured root namespaces.

        Returns ``None`` when no required-namespaces file is configured, which
        means the whole tree is converted.

        Raises:
            UnresolvedDependencyError: If a reachable namespace is missing.
        """

        settings = self._config.selection
        if settings.required_namespaces_file is None:
            return None
        namespaces_file = settings.required_namespaces_file
        if not namespaces_file.is_file():
            raise ConversionError(
                f"Required namespaces file {namespaces_file} does not exist"
            )
        roots = load_root_namespaces(namespaces_file)
        if graph is None:
            graph = self.read()
        selected = select(
            graph,
            roots,
            include_tests=settings.include_tests,
            test_suffix=settings.test_suffix,
        )
        return tuple(sorted(selected))

    def run(self, *, verify: bool = True) -> ConversionReport:
        """Convert the input tree into the cleared output directory.

        Raises:
            ConversionError: For any fatal pipeline failure, including an
                unresolved dependency after the structural passes and a
                failing verification command.
        """

        source, output = self._directories()
        self._logger.info(
            "conversion-start", input=str(source), output=str(output)
        )
        report = ConversionReport(output_dir=output)

        if self._config.selection.required_namespaces_file is not None:
            report.selected = self.select(self.read(source))

        clear_directory(output)
        if report.selected is None:
            copy_tree(source, output)
        else:
            copy_files(report.selected, source_root=source, output_root=output)

        PatchApplier(self._config.patches.source, extension=".js").run(output)
        report.merged = CycleBreaker(
            self._config.cycle_groups, root_namespace=self._root
        ).run(output)

        reader = self._reader()
        report.classes_converted = ClassConverter(
            root_namespace=self._root
        ).run(list(reader.iter_paths(output)))

        graph = reader.read_tree(output)
        graph.validate()
        report.outcomes = NamespaceRewriter(graph, self._config.rewrite).run()

        if verify and self._config.verify.enabled:
            report.verification = run_verification(
                self._config.verify.command, output
            )

        self._logger.info(
            "conversion-complete",
            output=str(output),
            merged=len(report.merged),
            classes=len(report.classes_converted),
            rewritten=len(report.rewritten),
            skipped=len(report.skipped),
        )
        return report

    def patch_declarations(self, root: Path | None = None) -> list[Path]:
        """Apply declaration patches to ``.d.ts`` files under ``root``."""

        if root is None:
            root = self._require_dir("output_dir")
        if not root.is_dir():
            raise ConversionError(
                f"Declaration directory {root} does not exist"
            )
        return PatchApplier(
            self._config.patches.declaration, extension=".d.ts"
        ).run(root)
