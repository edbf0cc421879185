import hashlib
from enum import Enum

from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field
from pydantic import field_validator


class DocumentFormat(str, Enum):
    JSON = 'json'
    XML = 'xml'

    def __str__(self) -> str:
        return self.value

    def __repr__(self) -> str:
        return self.value


class SourceInformation(BaseModel):
    """Where a document came from, used for provenance in has-SBOM."""
    collector: str = ''
    source: str = ''
    document_ref: str = ''

    model_config = ConfigDict(frozen=True)


class SourceDocument(BaseModel):
    """Raw BOM bytes plus the serialization tag they were collected with."""
    blob: bytes
    format: str
    source_information: SourceInformation = Field(
        default_factory=SourceInformation,
    )

    model_config = ConfigDict(frozen=True)

    @field_validator('format', mode='before')
    @classmethod
    def format_value(cls, v):
        return v.value if isinstance(v, Enum) else v

    def digest(self, algorithm: str = 'sha256') -> str:
        return hashlib.new(algorithm, self.blob).hexdigest()
