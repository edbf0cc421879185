"""Decode CycloneDX JSON or XML payloads into a Bom."""
import re
import xml.etree.ElementTree as ET
from typing import Any

import structlog
from pydantic import ValidationError

from graphsbom.core.errors import BomDecodeError
from graphsbom.core.errors import UnrecognizedFormatError
from graphsbom.models.bom import Bom
from graphsbom.models.document import DocumentFormat
from graphsbom.models.document import SourceDocument

logger = structlog.get_logger('decoder_service')

_SCHEMA_VERSION_RE = re.compile(r'cyclonedx\.org/schema/bom/(\d+\.\d+)')


def _local_name(tag: str) -> str:
    return tag.rsplit('}', 1)[-1] if '}' in tag else tag


def _children(element: ET.Element, name: str) -> list[ET.Element]:
    return [child for child in element if _local_name(child.tag) == name]


def _child(element: ET.Element, name: str) -> ET.Element | None:
    for child in element:
        if _local_name(child.tag) == name:
            return child
    return None


def _child_text(element: ET.Element, name: str) -> str | None:
    child = _child(element, name)
    if child is None or child.text is None:
        return None
    return child.text.strip()


def _xml_component(element: ET.Element) -> dict[str, Any]:
    component: dict[str, Any] = {
        'bom-ref': element.get('bom-ref', ''),
        'type': element.get('type', 'library'),
        'name': _child_text(element, 'name') or '',
        'version': _child_text(element, 'version') or '',
        'purl': _child_text(element, 'purl'),
    }
    hashes = _child(element, 'hashes')
    if hashes is not None:
        component['hashes'] = [
            {'alg': h.get('alg', ''), 'content': (h.text or '').strip()}
            for h in _children(hashes, 'hash')
        ]
    return component


def _xml_to_dict(root: ET.Element) -> dict[str, Any]:
    if _local_name(root.tag) != 'bom':
        raise ValueError(
            f"root element is {_local_name(root.tag)!r}, expected 'bom'",
        )

    data: dict[str, Any] = {
        'serialNumber': root.get('serialNumber'),
        'version': root.get('version', '1'),
    }
    match = _SCHEMA_VERSION_RE.search(root.tag)
    if match:
        data['specVersion'] = match.group(1)

    metadata = _child(root, 'metadata')
    if metadata is not None:
        meta: dict[str, Any] = {'timestamp': _child_text(metadata, 'timestamp')}
        top = _child(metadata, 'component')
        if top is not None:
            meta['component'] = _xml_component(top)
        data['metadata'] = meta

    components = _child(root, 'components')
    if components is not None:
        data['components'] = [
            _xml_component(c) for c in _children(components, 'component')
        ]

    dependencies = _child(root, 'dependencies')
    if dependencies is not None:
        data['dependencies'] = [
            {
                'ref': d.get('ref', ''),
                'dependsOn': [
                    nested.get('ref', '')
                    for nested in _children(d, 'dependency')
                ],
            }
            for d in _children(dependencies, 'dependency')
        ]

    return data


def _decode_json(blob: bytes) -> Bom:
    return Bom.model_validate_json(blob)


def _decode_xml(blob: bytes) -> Bom:
    root = ET.fromstring(blob)
    return Bom.model_validate(_xml_to_dict(root))


_DECODERS = {
    DocumentFormat.JSON: (_decode_json, (ValidationError, ValueError)),
    DocumentFormat.XML: (
        _decode_xml, (ET.ParseError, ValidationError, ValueError),
    ),
}


def decode_bom(document: SourceDocument) -> Bom:
    """
    Decode the document strictly according to its declared format.

    Raises:
        UnrecognizedFormatError: format tag is neither json nor xml.
        BomDecodeError: payload is malformed for the declared format.
    """
    try:
        doc_format = DocumentFormat(document.format)
    except ValueError:
        raise UnrecognizedFormatError(str(document.format)) from None

    decoder, errors = _DECODERS[doc_format]
    try:
        bom = decoder(document.blob)
    except errors as e:
        raise BomDecodeError(str(doc_format), e) from e

    logger.debug(
        'Decoded BOM',
        format=str(doc_format),
        spec_version=bom.spec_version,
        serial_number=bom.serial_number,
        components=len(bom.components),
        dependencies=len(bom.dependencies),
    )
    return bom
