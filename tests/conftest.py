import json

import pytest

from graphsbom.core.config import ParserConfig
from graphsbom.models.document import SourceDocument
from graphsbom.models.document import SourceInformation

SOURCE = 'https://example.com/sboms/demo.cdx.json'

SAMPLE_XML = b'''<?xml version="1.0" encoding="UTF-8"?>
<bom xmlns="http://cyclonedx.org/schema/bom/1.5" serialNumber="urn:uuid:3e671687-395b-41f5-a30f-a58921a69b79" version="1">
  <metadata>
    <timestamp>2024-01-01T00:00:00Z</timestamp>
    <component type="application" bom-ref="root">
      <name>demo</name>
      <version>1.0.0</version>
      <purl>pkg:generic/demo@1.0.0</purl>
    </component>
  </metadata>
  <components>
    <component type="library" bom-ref="requests">
      <name>requests</name>
      <version>2.31.0</version>
      <hashes>
        <hash alg="SHA-256">abc123</hash>
        <hash alg="MD5">def456</hash>
      </hashes>
      <purl>pkg:pypi/requests@2.31.0</purl>
    </component>
    <component type="operating-system" bom-ref="os">
      <name>debian</name>
      <version>12</version>
    </component>
  </components>
  <dependencies>
    <dependency ref="root">
      <dependency ref="requests"/>
    </dependency>
    <dependency ref="requests"/>
  </dependencies>
</bom>
'''


def _make_bom(top=None, components=None, dependencies=None) -> dict:
    bom = {
        'bomFormat': 'CycloneDX',
        'specVersion': '1.5',
        'serialNumber': 'urn:uuid:3e671687-395b-41f5-a30f-a58921a69b79',
        'version': 1,
        'metadata': {'timestamp': '2024-01-01T00:00:00Z'},
    }
    if top is not None:
        bom['metadata']['component'] = top
    if components is not None:
        bom['components'] = components
    if dependencies is not None:
        bom['dependencies'] = dependencies
    return bom


def _make_document(bom: dict | bytes, doc_format: str = 'json') -> SourceDocument:
    blob = bom if isinstance(bom, bytes) else json.dumps(bom).encode()
    return SourceDocument(
        blob=blob,
        format=doc_format,
        source_information=SourceInformation(
            collector='test', source=SOURCE, document_ref='demo.cdx.json',
        ),
    )


@pytest.fixture
def parser_config():
    return ParserConfig(top_level_heuristic=True)


@pytest.fixture
def sample_bom():
    """Top-level app, two libraries with a dependency between them, one OS."""
    return _make_bom(
        top={
            'type': 'application',
            'bom-ref': 'root',
            'name': 'demo',
            'version': '1.0.0',
            'purl': 'pkg:generic/demo@1.0.0',
        },
        components=[
            {
                'type': 'library',
                'bom-ref': 'flask',
                'name': 'flask',
                'version': '3.0.0',
                'purl': 'pkg:pypi/flask@3.0.0',
                'hashes': [
                    {'alg': 'SHA-256', 'content': 'aaa111'},
                    {'alg': 'SHA-1', 'content': 'bbb222'},
                ],
            },
            {
                'type': 'library',
                'bom-ref': 'werkzeug',
                'name': 'werkzeug',
                'version': '3.0.1',
                'purl': 'pkg:pypi/werkzeug@3.0.1',
            },
            {
                'type': 'operating-system',
                'bom-ref': 'os',
                'name': 'debian',
                'version': '12',
            },
        ],
        dependencies=[
            {'ref': 'root', 'dependsOn': ['flask']},
            {'ref': 'flask', 'dependsOn': ['werkzeug', 'os']},
            {'ref': 'werkzeug', 'dependsOn': []},
        ],
    )


@pytest.fixture
def make_bom():
    return _make_bom


@pytest.fixture
def make_document():
    return _make_document


@pytest.fixture
def sample_xml():
    return SAMPLE_XML
