"""Heuristic package identifiers for components that do not declare a purl."""
import structlog

from graphsbom.core import purl as purl_helpers
from graphsbom.core.errors import IdentifierError
from graphsbom.models.bom import BomComponent
from graphsbom.models.bom import ComponentKind

logger = structlog.get_logger('identifier_service')


def container_purl(image_name: str, version: str = '') -> str:
    """
    Build an identifier for a container image such as
    "registry.example/org/app:v1", keeping the tag as a qualifier.
    """
    split_image = image_name.split('/')
    split_tag = split_image[-1].split(':')

    tag = split_tag[1] if len(split_tag) == 2 else ''

    if len(split_image) == 3:
        repository = '/'.join([split_image[0], split_image[1], split_tag[0]])
    elif len(split_image) == 2:
        repository = '/'.join([split_image[0], split_tag[0]])
    elif len(split_image) == 1:
        repository = split_image[0]
    else:
        repository = image_name

    return purl_helpers.cdx_purl(repository, version, tag)


def file_purl(file_name: str, version: str = '') -> str:
    """
    Build an identifier for a filesystem path. The version, when present, is
    expected to be an "algorithm:digest" pair.
    """
    if not version:
        return purl_helpers.PURL_FILES_GUAC + file_name
    if ':' not in version:
        logger.debug(
            'File version is not a digest', name=file_name, version=version,
        )
        return purl_helpers.package_purl(file_name, version)
    algorithm, digest = version.split(':', 1)
    return purl_helpers.file_purl(algorithm, digest, file_name)


def synthesize_purl(component: BomComponent, top_level: bool = False) -> str:
    """Return the component's declared purl, or synthesize one from its kind."""
    if component.purl:
        return component.purl

    kind = component.kind
    if kind is ComponentKind.CONTAINER:
        purl = container_purl(component.name, component.version)
    elif kind is ComponentKind.FILE:
        purl = file_purl(component.name, component.version)
    elif top_level:
        # The document subject always gets an identity, whatever its kind
        purl = purl_helpers.cdx_purl(component.name, component.version)
    elif kind is ComponentKind.PACKAGE:
        purl = purl_helpers.package_purl(component.name, component.version)
    elif kind is ComponentKind.OPERATING_SYSTEM:
        raise IdentifierError(
            '', f"operating-system component {component.name!r} has no package identity",
        )
    else:
        raise AssertionError(f"unhandled component kind {kind!r}")

    logger.debug(
        'Synthesized purl', bom_ref=component.bom_ref,
        type=component.type, purl=purl,
    )
    return purl
