from enum import Enum

from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field

from graphsbom.models.package import ArtifactRecord
from graphsbom.models.package import PackageRecord


class MatchFlag(str, Enum):
    SPECIFIC_VERSION = 'SPECIFIC_VERSION'
    ALL_VERSIONS = 'ALL_VERSIONS'


class DependencyType(str, Enum):
    DIRECT = 'DIRECT'
    INDIRECT = 'INDIRECT'
    UNKNOWN = 'UNKNOWN'


class HasSBOM(BaseModel):
    pkg: PackageRecord
    uri: str
    algorithm: str
    digest: str
    download_location: str

    model_config = ConfigDict(frozen=True)


class IsOccurrence(BaseModel):
    pkg: PackageRecord
    artifact: ArtifactRecord
    justification: str

    model_config = ConfigDict(frozen=True)


class IsDependency(BaseModel):
    pkg: PackageRecord
    dep_pkg: PackageRecord
    dep_pkg_match_flag: MatchFlag
    dependency_type: DependencyType = DependencyType.UNKNOWN
    justification: str
    version_range: str = ''

    model_config = ConfigDict(frozen=True)


class GraphAssertions(BaseModel):
    """Everything one document contributes to the knowledge graph."""
    has_sbom: list[HasSBOM] = Field(default_factory=list)
    is_occurrence: list[IsOccurrence] = Field(default_factory=list)
    is_dependency: list[IsDependency] = Field(default_factory=list)

    def count(self) -> dict[str, int]:
        return {
            'has_sbom': len(self.has_sbom),
            'is_occurrence': len(self.is_occurrence),
            'is_dependency': len(self.is_dependency),
        }


class IdentifierStrings(BaseModel):
    """Raw package identifiers seen while indexing, in encounter order."""
    purl_strings: list[str] = Field(default_factory=list)

    def add(self, purl: str) -> None:
        if purl:
            self.purl_strings.append(purl)
