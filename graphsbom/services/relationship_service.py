"""Turn an ElementIndex plus the BOM dependency section into graph assertions."""
import structlog

from graphsbom.core.config import ParserConfig
from graphsbom.models.assertions import GraphAssertions
from graphsbom.models.assertions import HasSBOM
from graphsbom.models.assertions import IsDependency
from graphsbom.models.assertions import IsOccurrence
from graphsbom.models.assertions import MatchFlag
from graphsbom.models.bom import DependencyEntry
from graphsbom.models.document import SourceDocument
from graphsbom.models.package import PackageRecord
from graphsbom.services.indexer_service import ElementIndex

logger = structlog.get_logger('relationship_service')


def match_flag_for(package: PackageRecord) -> MatchFlag:
    if package.version:
        return MatchFlag.SPECIFIC_VERSION
    return MatchFlag.ALL_VERSIONS


def dependency_assertion(
    package: PackageRecord,
    dependencies: list[PackageRecord],
    justification: str,
) -> list[IsDependency]:
    """One is-dependency per dependency package, skipping self-edges."""
    if not dependencies:
        raise ValueError(
            f"no related packages found for dependency of {package}",
        )
    return [
        IsDependency(
            pkg=package,
            dep_pkg=dep,
            dep_pkg_match_flag=match_flag_for(dep),
            justification=justification,
            version_range=dep.version or '',
        )
        for dep in dependencies
        if dep != package
    ]


class RelationshipBuilder:
    def __init__(self, document: SourceDocument, index: ElementIndex, config: ParserConfig):
        self.document = document
        self.index = index
        self.config = config

    def build(self, dependencies: list[DependencyEntry]) -> GraphAssertions:
        assertions = GraphAssertions()
        top_level = self.index.top_level()

        if top_level is not None:
            assertions.has_sbom.append(self.has_sbom(top_level))
            if self.config.top_level_heuristic:
                assertions.is_dependency.extend(self.top_level_dependencies(top_level))

        assertions.is_occurrence.extend(self.occurrences())
        assertions.is_dependency.extend(self.explicit_dependencies(dependencies))

        logger.debug('Built graph assertions', **assertions.count())
        return assertions

    def has_sbom(self, top_level: PackageRecord) -> HasSBOM:
        source = self.document.source_information.source
        return HasSBOM(
            pkg=top_level,
            uri=source,
            algorithm=self.config.has_sbom_algorithm,
            digest=self.document.digest(self.config.has_sbom_algorithm),
            download_location=source,
        )

    def top_level_dependencies(self, top_level: PackageRecord) -> list[IsDependency]:
        """
        Heuristic edges from the top-level package to every other package.

        This does not come from the BOM's relationship data, so it can cover
        both direct and indirect dependencies; it exists because many BOMs ship
        without a usable dependency section.
        """
        return [
            IsDependency(
                pkg=top_level,
                dep_pkg=package,
                dep_pkg_match_flag=match_flag_for(package),
                justification=self.config.heuristic_justification,
                version_range=package.version or '',
            )
            for _, package in self.index.iter_packages()
            if package != top_level
        ]

    def occurrences(self) -> list[IsOccurrence]:
        return [
            IsOccurrence(
                pkg=package,
                artifact=artifact,
                justification=self.config.occurrence_justification,
            )
            for element_id, package in self.index.iter_packages()
            for artifact in self.index.artifacts.get(element_id, [])
        ]

    def explicit_dependencies(self, dependencies: list[DependencyEntry]) -> list[IsDependency]:
        top_level_identity = set()
        if self.config.top_level_heuristic:
            top_level_identity = set(self.index.top_level_packages() or [])
        edges: list[IsDependency] = []

        for entry in dependencies:
            current = self.index.get_packages(entry.ref)
            if current is None:
                logger.debug('Skipping dependency of unindexed element', ref=entry.ref)
                continue
            # Top-level edges are already covered by the heuristic
            if top_level_identity and set(current) == top_level_identity:
                continue

            for target_ref in entry.depends_on:
                targets = self.index.get_packages(target_ref)
                if targets is None:
                    logger.debug(
                        'Skipping dependency on unindexed element',
                        ref=entry.ref, depends_on=target_ref,
                    )
                    continue
                for package in current:
                    try:
                        edges.extend(
                            dependency_assertion(
                                package, targets, self.config.dependency_justification,
                            ),
                        )
                    except ValueError as e:
                        logger.error(
                            'Error generating CycloneDX edge',
                            ref=entry.ref, depends_on=target_ref, error=str(e),
                        )
        return edges
