"""End-to-end tests for the scan pipeline using scripted oracles."""

from __future__ import annotations

import json
import sys
from pathlib import Path

import pytest

from compscan.errors import BuildError, InvalidScanPath, ManifestUnavailable, StructuralOracleError
from compscan.models import CatalogEntry
from compscan.oracles import SourceKitten
from compscan.scanner import Scanner
from compscan.stores import CatalogStore
from tests._fixtures.package_builder import (
    DECL_STRUCT,
    EXPR_CALL,
    FUNC_FREE,
    FakeSourceKitten,
    PackageBuilder,
    StaticImportParser,
    file_root,
    node,
    write_script,
)


class _RecordingTrigger:
    def __init__(self, on_run=None, error: Exception | None = None) -> None:
        self.calls = 0
        self._on_run = on_run
        self._error = error

    def run(self) -> None:
        self.calls += 1
        if self._error is not None:
            raise self._error
        if self._on_run is not None:
            self._on_run()


@pytest.fixture
def app_package(package_builder: PackageBuilder, fake_oracle: FakeSourceKitten) -> PackageBuilder:
    package_builder.write(
        {
            "Package.swift": "// swift-tools-version:5.9\n",
            "Sources/App/main.swift": "import Lib\nlet b = Button()\n",
            ".build/checkouts/Lib/Sources/Lib/Lib.swift": "public func Button() {}\n",
        }
    )
    package_builder.add_module("App", ["Sources/App/main.swift"])
    package_builder.add_module("Lib", [".build/checkouts/Lib/Sources/Lib/Lib.swift"])
    package_builder.write_manifest()

    fake_oracle.completions = {
        "App": [CatalogEntry("Button()", FUNC_FREE, "Lib", "Draws a button.")],
    }
    fake_oracle.structures = {
        str(package_builder.path("Sources/App/main.swift")): file_root(
            node(
                "source.lang.swift.decl.var.global",
                "b",
                11,
                [node(EXPR_CALL, "Button()", 19)],
            )
        )
    }
    return package_builder


def _scanner(package: PackageBuilder, oracle: FakeSourceKitten, **kwargs) -> Scanner:
    kwargs.setdefault("build_trigger", _RecordingTrigger())
    return Scanner(
        package.config(),
        oracle=oracle,
        import_parser=StaticImportParser(["Lib"]),
        **kwargs,
    )


def test_scan_records_third_party_usage(
    app_package: PackageBuilder, fake_oracle: FakeSourceKitten
) -> None:
    scanner = _scanner(app_package, fake_oracle)
    scanner.initialize()
    catalog = scanner.load_or_build_catalog()
    context = scanner.new_context(catalog)

    report = scanner.scan([app_package.path("Sources/App")], context)
    output = scanner.save(context)

    assert report.failures == []
    assert [(item.module, item.imports, item.matches) for item in report.files] == [
        ("App", ["Lib"], 1)
    ]
    main_swift = str(app_package.path("Sources/App/main.swift"))
    records = json.loads(output.read_text(encoding="utf-8"))
    assert records == [
        {
            "id": "Lib/Button()/expr.call",
            "name": "Button()",
            "type": "expr.call",
            "libraryName": "Lib",
            "thirdParty": True,
            "isSelfDeclared": False,
            "designSystems": [],
            "designDocs": "Draws a button.",
            "totalOccurrences": 1,
            "filewiseOccurrences": {main_swift: 1},
            "filewiseLocations": {main_swift: [{"line": 2, "column": 9, "offset": 19}]},
            "tags": [],
            "stories": [],
            "overriddenComponents": {},
        }
    ]
    assert output == app_package.path("codebase_components.json")


def test_rescanning_accumulates_occurrences(
    app_package: PackageBuilder, fake_oracle: FakeSourceKitten
) -> None:
    scanner = _scanner(app_package, fake_oracle)
    scanner.initialize()
    context = scanner.new_context(scanner.load_or_build_catalog(), design_systems=["lib"])

    scanner.scan([app_package.path("Sources/App")], context)
    scanner.scan([app_package.path("Sources/App/main.swift")], context)

    (record,) = context.store.records()
    assert record.total_occurrences == 2
    assert record.design_systems == ["lib"]
    assert len(record.filewise_locations[str(app_package.path("Sources/App/main.swift"))]) == 2


def test_structure_failure_does_not_abort_scan(
    app_package: PackageBuilder, fake_oracle: FakeSourceKitten
) -> None:
    app_package.write(
        {
            "Sources/App/Broken.swift": "let = \n",
            "Tests/AppTests/AppTests.swift": "import XCTest\n",
        }
    )
    fake_oracle.failing_files = {str(app_package.path("Sources/App/Broken.swift"))}
    scanner = _scanner(app_package, fake_oracle)
    scanner.initialize()
    context = scanner.new_context(scanner.load_or_build_catalog())

    report = scanner.scan(
        [app_package.path("Sources/App"), app_package.path("Tests")], context
    )

    assert [Path(item.path).name for item in report.files] == ["main.swift"]
    assert [type(failure) for failure in report.failures] == [
        StructuralOracleError,
        InvalidScanPath,
    ]
    assert len(context.store) == 1


def test_scan_honours_configured_exclusions(
    app_package: PackageBuilder, fake_oracle: FakeSourceKitten
) -> None:
    app_package.write({"Sources/App/Generated/Assets.swift": "enum Assets {}\n"})
    config = app_package.config(exclude=["Generated"])
    scanner = Scanner(
        config,
        oracle=fake_oracle,
        import_parser=StaticImportParser(),
        build_trigger=_RecordingTrigger(),
    )
    scanner.initialize()
    context = scanner.new_context({})

    report = scanner.scan([app_package.path("Sources/App")], context, exclude=["main.swift"])

    assert report.files == []
    assert fake_oracle.structure_calls == []


def test_initialize_builds_when_manifest_missing(
    package_builder: PackageBuilder, fake_oracle: FakeSourceKitten
) -> None:
    package_builder.add_module("App", ["Sources/App/main.swift"])
    trigger = _RecordingTrigger(on_run=package_builder.write_manifest)
    scanner = _scanner(package_builder, fake_oracle, build_trigger=trigger)

    modules = scanner.initialize()

    assert trigger.calls == 1
    assert [module.name for module in modules] == ["App"]
    assert scanner.setup_failures == []


def test_initialize_skips_build_for_fresh_manifest(
    app_package: PackageBuilder, fake_oracle: FakeSourceKitten
) -> None:
    trigger = _RecordingTrigger()
    scanner = _scanner(app_package, fake_oracle, build_trigger=trigger)

    scanner.initialize()

    assert trigger.calls == 0
    assert [module.name for module in scanner.modules] == ["App", "Lib"]


def test_initialize_records_setup_failures(
    package_builder: PackageBuilder, fake_oracle: FakeSourceKitten
) -> None:
    trigger = _RecordingTrigger(error=BuildError("swift not found"))
    scanner = _scanner(package_builder, fake_oracle, build_trigger=trigger)

    assert scanner.initialize() == []
    assert [type(failure) for failure in scanner.setup_failures] == [
        BuildError,
        ManifestUnavailable,
    ]

    context = scanner.new_context({})
    report = scanner.scan([package_builder.path()], context)
    assert isinstance(report.failures[0], InvalidScanPath)


def test_initialize_without_build(
    package_builder: PackageBuilder, fake_oracle: FakeSourceKitten
) -> None:
    trigger = _RecordingTrigger()
    scanner = _scanner(package_builder, fake_oracle, build_trigger=trigger)

    scanner.initialize(allow_build=False)

    assert trigger.calls == 0
    assert isinstance(scanner.setup_failures[0], ManifestUnavailable)


def test_catalog_is_persisted_and_reused(
    app_package: PackageBuilder, fake_oracle: FakeSourceKitten
) -> None:
    scanner = _scanner(app_package, fake_oracle)
    scanner.initialize()

    built = scanner.load_or_build_catalog()
    assert len(fake_oracle.complete_calls) == 2
    stored = CatalogStore(app_package.path("components_dataset.json")).load()
    assert stored == built

    reused = _scanner(app_package, fake_oracle)
    reused.initialize()
    assert reused.load_or_build_catalog() == built
    assert len(fake_oracle.complete_calls) == 2

    fake_oracle.completions["Lib"] = [CatalogEntry("Card", DECL_STRUCT, "Lib")]
    rebuilt = reused.load_or_build_catalog(rebuild=True)
    assert [entry.name for entry in rebuilt["Lib"]] == ["Button()", "Card"]


@pytest.mark.skipif(sys.platform == "win32", reason="uses /bin/sh scripts")
def test_undecodable_oracle_output_fails_only_that_file(
    app_package: PackageBuilder, tmp_path: Path
) -> None:
    app_package.write({"Sources/App/View.swift": "struct View {}\n"})
    script = write_script(tmp_path / "bin" / "sourcekitten", "printf '\\377\\376'\n")
    scanner = Scanner(
        app_package.config(),
        oracle=SourceKitten(executable=str(script)),
        import_parser=StaticImportParser(),
        build_trigger=_RecordingTrigger(),
    )
    scanner.initialize()

    report = scanner.scan([app_package.path("Sources/App")], scanner.new_context({}))

    assert report.files == []
    assert [type(failure) for failure in report.failures] == [
        StructuralOracleError,
        StructuralOracleError,
    ]


def test_empty_catalog_is_not_saved_or_reused(
    package_builder: PackageBuilder, fake_oracle: FakeSourceKitten
) -> None:
    catalog_file = package_builder.path("components_dataset.json")
    without_manifest = _scanner(package_builder, fake_oracle)
    without_manifest.initialize(allow_build=False)

    assert without_manifest.load_or_build_catalog() == {}
    assert not catalog_file.exists()

    package_builder.write({"Sources/App/main.swift": "import Foundation\n"})
    package_builder.add_module("App", ["Sources/App/main.swift"])
    package_builder.write_manifest()
    catalog_file.write_text("{}", encoding="utf-8")
    fake_oracle.completions = {"App": [CatalogEntry("Card", DECL_STRUCT, "App")]}
    built = _scanner(package_builder, fake_oracle)
    built.initialize()

    assert built.load_or_build_catalog() == {"App": [CatalogEntry("Card", DECL_STRUCT, "App")]}
    assert CatalogStore(catalog_file).load() == {"App": [CatalogEntry("Card", DECL_STRUCT, "App")]}
