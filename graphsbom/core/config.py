"""Configuration management for GraphSBOM."""
import os
from dataclasses import dataclass
from dataclasses import field


def _env_flag(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() not in ('0', 'false', 'no', 'off', '')


@dataclass
class LoggingConfig:
    level: str = field(
        default_factory=lambda: os.getenv('GRAPHSBOM_LOG_LEVEL', 'INFO').upper(),
    )
    json: bool = field(
        default_factory=lambda: os.getenv('GRAPHSBOM_ENV') == 'production',
    )


@dataclass
class ParserConfig:
    """Knobs for turning a decoded BOM into graph assertions."""
    top_level_heuristic: bool = field(
        default_factory=lambda: _env_flag(
            'GRAPHSBOM_TOP_LEVEL_HEURISTIC', True,
        ),
    )
    heuristic_justification: str = 'top-level package heuristic connecting to each file/package'
    occurrence_justification: str = 'cdx package with checksum'
    dependency_justification: str = 'CDX BOM Dependency'

    # Algorithm used to fingerprint the source document for has-SBOM
    has_sbom_algorithm: str = 'sha256'


@dataclass
class GraphSBOMConfig:
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    parser: ParserConfig = field(default_factory=ParserConfig)

    @classmethod
    def load(cls) -> 'GraphSBOMConfig':
        return cls()


_config: GraphSBOMConfig | None = None


def get_config() -> GraphSBOMConfig:
    global _config
    if _config is None:
        _config = GraphSBOMConfig.load()
    return _config
