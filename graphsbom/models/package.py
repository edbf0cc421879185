from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import field_validator


class PackageRecord(BaseModel):
    """Structured form of a package URL; compared and hashed by value."""
    type: str
    namespace: str | None = None
    name: str
    version: str | None = None
    qualifiers: tuple[tuple[str, str], ...] = ()
    subpath: str | None = None

    model_config = ConfigDict(frozen=True)

    def to_purl(self) -> str:
        purl = f"pkg:{self.type}/"
        if self.namespace:
            purl += f"{self.namespace}/"
        purl += self.name
        if self.version:
            purl += f"@{self.version}"
        if self.qualifiers:
            purl += '?' + '&'.join(f"{k}={v}" for k, v in self.qualifiers)
        if self.subpath:
            purl += f"#{self.subpath}"
        return purl

    def __str__(self) -> str:
        return self.to_purl()


class ArtifactRecord(BaseModel):
    """A content-addressed artifact, one per declared checksum."""
    algorithm: str
    digest: str

    model_config = ConfigDict(frozen=True)

    @field_validator('algorithm', mode='before')
    @classmethod
    def lower_algorithm(cls, v: str) -> str:
        return v.lower() if isinstance(v, str) else v
