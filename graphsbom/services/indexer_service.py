from dataclasses import dataclass
from dataclasses import field

import structlog

from graphsbom.core.purl import purl_to_package
from graphsbom.models.assertions import IdentifierStrings
from graphsbom.models.bom import Bom
from graphsbom.models.bom import BomComponent
from graphsbom.models.bom import ComponentKind
from graphsbom.models.package import ArtifactRecord
from graphsbom.models.package import PackageRecord
from graphsbom.services.identifier_service import synthesize_purl

logger = structlog.get_logger('indexer_service')


@dataclass
class ElementIndex:
    """Element id -> packages and element id -> artifacts, in insertion order."""
    packages: dict[str, list[PackageRecord]] = field(default_factory=dict)
    artifacts: dict[str, list[ArtifactRecord]] = field(default_factory=dict)
    top_level_ref: str | None = None

    def add_package(self, element_id: str, package: PackageRecord) -> None:
        self.packages.setdefault(element_id, []).append(package)

    def add_artifact(self, element_id: str, artifact: ArtifactRecord) -> None:
        self.artifacts.setdefault(element_id, []).append(artifact)

    def get_packages(self, element_id: str) -> list[PackageRecord] | None:
        return self.packages.get(element_id)

    def top_level_packages(self) -> list[PackageRecord] | None:
        if self.top_level_ref is None:
            return None
        return self.get_packages(self.top_level_ref)

    def top_level(self) -> PackageRecord | None:
        packages = self.top_level_packages()
        return packages[0] if packages else None

    def iter_packages(self):
        for element_id, packages in self.packages.items():
            for package in packages:
                yield element_id, package

    def __contains__(self, element_id: str) -> bool:
        return element_id in self.packages


class ComponentIndexer:
    """Builds an ElementIndex for one BOM; use a fresh instance per document."""

    def __init__(self, identifiers: IdentifierStrings | None = None):
        self.identifiers = identifiers if identifiers is not None else IdentifierStrings()
        self.index = ElementIndex()

    def index_bom(self, bom: Bom) -> ElementIndex:
        """
        Index the top-level component, then the component list.

        Operating-system components are skipped. A purl that cannot be parsed
        raises IdentifierError and aborts the document.
        """
        skipped = 0
        top = bom.metadata.component
        if top is not None:
            self._index_component(top, top_level=True)
            self.index.top_level_ref = top.bom_ref

        for component in bom.components:
            if component.kind is ComponentKind.OPERATING_SYSTEM:
                skipped += 1
                continue
            self._index_component(component)

        logger.debug(
            'Indexed BOM components',
            elements=len(self.index.packages),
            artifacts=sum(len(a) for a in self.index.artifacts.values()),
            skipped=skipped,
        )
        return self.index

    def _index_component(self, component: BomComponent, top_level: bool = False) -> None:
        purl = synthesize_purl(component, top_level=top_level)

        # Collected before parsing so identity resolution still sees it
        self.identifiers.add(purl)

        package = purl_to_package(purl)
        self.index.add_package(component.bom_ref, package)

        for checksum in component.hashes:
            self.index.add_artifact(
                component.bom_ref,
                ArtifactRecord(algorithm=checksum.alg, digest=checksum.content),
            )
