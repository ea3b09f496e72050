"""Pipeline coordination: module setup, catalog loading and file scanning."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Optional, Protocol, Sequence

from .analyzers.imports import SwiftImportParser
from .analyzers.matcher import ComponentMatcher
from .analyzers.structure import flatten_structure
from .build_graph import BuildTrigger, manifest_is_stale, module_for_path, resolve_modules
from .catalog_builder import CatalogBuilder
from .config import CompscanConfig
from .errors import BuildError, CompscanError, FileAccessError, ManifestMalformed, ManifestUnavailable
from .logging import get_logger
from .models import Catalog, FileReport, Module, ScanReport, StructureNode
from .oracles import SourceKitten
from .stores.catalog import CatalogStore
from .stores.metadata import MetadataStore
from .walker import FileWalker

_PACKAGE_FILE = "Package.swift"


class StructureOracle(Protocol):
    def structure(self, path: Path) -> StructureNode:
        ...


class ImportParser(Protocol):
    def parse(self, source: bytes) -> List[str]:
        ...


@dataclass
class ScanContext:
    """Everything the per-file pipeline reads or mutates during one scan."""

    modules: List[Module]
    catalog: Catalog
    store: MetadataStore
    oracle: StructureOracle
    import_parser: ImportParser
    kind_namespace: str
    matcher: ComponentMatcher = field(init=False)

    def __post_init__(self) -> None:
        self.matcher = ComponentMatcher(self.catalog)


def process_file(path: Path, context: ScanContext) -> FileReport:
    """Run import extraction, structure flattening, matching and aggregation."""
    try:
        content = path.read_bytes()
    except OSError as exc:
        raise FileAccessError(path, f"cannot read: {exc}") from exc

    imports = context.import_parser.parse(content)
    root = context.oracle.structure(path)
    candidates = flatten_structure(root, namespace=context.kind_namespace)
    resolved = context.matcher.match_all(candidates)

    file_key = str(path)
    for candidate, entry in resolved:
        context.store.record(candidate, entry, file_key, content)

    module = module_for_path(path, context.modules)
    return FileReport(
        path=file_key,
        module=module.name if module is not None else None,
        imports=imports,
        candidates=len(candidates),
        matches=len(resolved),
    )


class Scanner:
    """Coordinates setup, catalog generation and scanning for one project."""

    def __init__(
        self,
        config: CompscanConfig,
        *,
        oracle: SourceKitten | None = None,
        import_parser: ImportParser | None = None,
        build_trigger: BuildTrigger | None = None,
        catalog_builder: CatalogBuilder | None = None,
        catalog_store: CatalogStore | None = None,
    ) -> None:
        self.config = config
        self.oracle = oracle or SourceKitten(
            executable=config.oracle.executable, timeout=config.oracle.timeout
        )
        self.import_parser = import_parser or SwiftImportParser()
        self.build_trigger = build_trigger or BuildTrigger(
            config.root, config.build.command, timeout=config.build.timeout
        )
        self.catalog_builder = catalog_builder or CatalogBuilder(
            self.oracle, max_concurrency=config.max_concurrency
        )
        self.catalog_store = catalog_store or CatalogStore(config.catalog_file)
        self.logger = get_logger("scanner")
        self.modules: List[Module] = []
        self.setup_failures: List[CompscanError] = []

    def initialize(self, *, allow_build: bool = True) -> List[Module]:
        """Refresh the manifest if stale and resolve the module topology.

        Setup failures are recorded in ``setup_failures``; the module list is
        left empty so every directory scan is rejected with guidance.
        """
        manifest = self.config.manifest_file
        if allow_build and manifest_is_stale(manifest, self.config.root / _PACKAGE_FILE):
            try:
                self.build_trigger.run()
            except BuildError as exc:
                self._setup_failed(exc)

        try:
            self.modules = resolve_modules(manifest)
        except (ManifestUnavailable, ManifestMalformed) as exc:
            self._setup_failed(exc)
            self.modules = []
        else:
            self.logger.info("Resolved %d modules from %s", len(self.modules), manifest)
        return self.modules

    def load_or_build_catalog(self, *, rebuild: bool = False) -> Catalog:
        """Return the saved catalog, building and saving a new one when needed.

        An empty catalog is neither reused nor saved.
        """
        if not rebuild:
            catalog = self.catalog_store.load()
            if catalog:
                self.logger.info("Loading catalog from %s", self.catalog_store.path)
                return catalog
        self.logger.info("Creating catalog at %s", self.catalog_store.path)
        catalog = self.catalog_builder.build(self.modules)
        if not catalog:
            self.logger.warning(
                "Catalog is empty (%d modules); not saving %s",
                len(self.modules),
                self.catalog_store.path,
            )
            return catalog
        self.catalog_store.persist(catalog)
        return catalog

    def new_context(
        self,
        catalog: Catalog,
        *,
        design_systems: Optional[Sequence[str]] = None,
    ) -> ScanContext:
        systems = list(design_systems) if design_systems is not None else self.config.design_systems
        if systems:
            self.logger.info("Using design systems: %s", ", ".join(systems))
        store = MetadataStore(
            self.modules, systems, kind_namespace=self.config.kind_namespace
        )
        return ScanContext(
            modules=list(self.modules),
            catalog=catalog,
            store=store,
            oracle=self.oracle,
            import_parser=self.import_parser,
            kind_namespace=self.config.kind_namespace,
        )

    def scan(
        self,
        paths: Iterable[Path],
        context: ScanContext,
        *,
        exclude: Iterable[str] = (),
    ) -> ScanReport:
        """Scan each root path; failures are collected and never abort the run."""
        excluded = set(exclude) | set(self.config.exclude)
        walker = FileWalker(context.modules, source_suffix=self.config.source_suffix)
        report = ScanReport()
        for root in paths:
            for file_path in walker.walk(Path(root), excluded, report.failures):
                self.logger.info("Scanning file: %s", file_path)
                try:
                    file_report = process_file(file_path, context)
                except CompscanError as exc:
                    self.logger.error("Error scanning %s: %s", file_path, exc)
                    report.failures.append(exc)
                    continue
                self.logger.debug(
                    "%s: %d candidates, %d matches, imports %s",
                    file_path,
                    file_report.candidates,
                    file_report.matches,
                    ", ".join(file_report.imports) or "(none)",
                )
                report.files.append(file_report)
        return report

    def save(self, context: ScanContext, output: Path | None = None) -> Path:
        target = output or self.config.output_file
        context.store.persist(target)
        return target

    def _setup_failed(self, exc: CompscanError) -> None:
        self.logger.error("%s", exc)
        self.setup_failures.append(exc)


__all__ = ["ImportParser", "ScanContext", "Scanner", "StructureOracle", "process_file"]
