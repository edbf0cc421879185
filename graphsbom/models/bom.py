"""In-memory CycloneDX BOM, decoded from either JSON or XML."""
from enum import Enum
from typing import Any

from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field
from pydantic import field_validator


class ComponentType(str, Enum):
    APPLICATION = 'application'
    FRAMEWORK = 'framework'
    LIBRARY = 'library'
    CONTAINER = 'container'
    PLATFORM = 'platform'
    OPERATING_SYSTEM = 'operating-system'
    DEVICE = 'device'
    DEVICE_DRIVER = 'device-driver'
    FIRMWARE = 'firmware'
    FILE = 'file'
    MACHINE_LEARNING_MODEL = 'machine-learning-model'
    DATA = 'data'
    CRYPTOGRAPHIC_ASSET = 'cryptographic-asset'

    def __str__(self) -> str:
        return self.value


class ComponentKind(Enum):
    """How a component is projected into the graph."""
    PACKAGE = 'package'
    CONTAINER = 'container'
    FILE = 'file'
    OPERATING_SYSTEM = 'operating-system'


_KIND_BY_TYPE = {
    ComponentType.APPLICATION: ComponentKind.PACKAGE,
    ComponentType.FRAMEWORK: ComponentKind.PACKAGE,
    ComponentType.LIBRARY: ComponentKind.PACKAGE,
    ComponentType.CONTAINER: ComponentKind.CONTAINER,
    ComponentType.PLATFORM: ComponentKind.PACKAGE,
    ComponentType.OPERATING_SYSTEM: ComponentKind.OPERATING_SYSTEM,
    ComponentType.DEVICE: ComponentKind.PACKAGE,
    ComponentType.DEVICE_DRIVER: ComponentKind.PACKAGE,
    ComponentType.FIRMWARE: ComponentKind.PACKAGE,
    ComponentType.FILE: ComponentKind.FILE,
    ComponentType.MACHINE_LEARNING_MODEL: ComponentKind.PACKAGE,
    ComponentType.DATA: ComponentKind.PACKAGE,
    ComponentType.CRYPTOGRAPHIC_ASSET: ComponentKind.PACKAGE,
}


class Hash(BaseModel):
    alg: str
    content: str = ''

    model_config = ConfigDict(extra='ignore', frozen=True)


class BomComponent(BaseModel):
    """A single component; only the fields the graph projection needs."""
    bom_ref: str = Field(alias='bom-ref', default='')
    type: str = ComponentType.LIBRARY.value
    name: str = ''
    version: str = ''
    purl: str | None = None
    hashes: list[Hash] = Field(default_factory=list)

    model_config = ConfigDict(
        extra='ignore',
        frozen=True,
        populate_by_name=True,
    )

    @field_validator('hashes', mode='before')
    @classmethod
    def none_as_empty(cls, v: Any) -> Any:
        return v or []

    @property
    def kind(self) -> ComponentKind:
        try:
            return _KIND_BY_TYPE[ComponentType(self.type)]
        except ValueError:
            # Types newer than this enum are projected like plain packages
            return ComponentKind.PACKAGE


class Metadata(BaseModel):
    timestamp: str | None = None
    component: BomComponent | None = None

    model_config = ConfigDict(extra='ignore', frozen=True)


class DependencyEntry(BaseModel):
    ref: str
    depends_on: list[str] = Field(alias='dependsOn', default_factory=list)

    model_config = ConfigDict(
        extra='ignore',
        frozen=True,
        populate_by_name=True,
    )

    @field_validator('depends_on', mode='before')
    @classmethod
    def none_as_empty(cls, v: Any) -> Any:
        return v or []


class Bom(BaseModel):
    bom_format: str = Field(alias='bomFormat', default='CycloneDX')
    spec_version: str | None = Field(alias='specVersion', default=None)
    serial_number: str | None = Field(alias='serialNumber', default=None)
    version: int = 1
    metadata: Metadata = Field(default_factory=Metadata)
    components: list[BomComponent] = Field(default_factory=list)
    dependencies: list[DependencyEntry] = Field(default_factory=list)

    model_config = ConfigDict(
        extra='ignore',
        frozen=True,
        populate_by_name=True,
    )

    @field_validator('metadata', mode='before')
    @classmethod
    def none_metadata(cls, v: Any) -> Any:
        return {} if v is None else v

    @field_validator('components', 'dependencies', mode='before')
    @classmethod
    def none_as_empty(cls, v: Any) -> Any:
        return v or []
