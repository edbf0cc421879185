"""Dependency Injection Container."""
from typing import Optional

from graphsbom.core.config import get_config
from graphsbom.core.config import GraphSBOMConfig


class Container:
    """Process-wide holder of the configuration the CLI runs with."""

    _instance: Optional['Container'] = None

    def __init__(self) -> None:
        self.config: GraphSBOMConfig = get_config()

    @classmethod
    def get_instance(cls) -> 'Container':
        if cls._instance is None:
            cls._instance = Container()
        return cls._instance


# Global Accessor


def get_container() -> Container:
    return Container.get_instance()
