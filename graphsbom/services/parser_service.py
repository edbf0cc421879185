import threading
from dataclasses import dataclass

import structlog

from graphsbom.core.config import get_config
from graphsbom.core.config import ParserConfig
from graphsbom.core.errors import ParseCancelledError
from graphsbom.models.assertions import GraphAssertions
from graphsbom.models.assertions import IdentifierStrings
from graphsbom.models.bom import Bom
from graphsbom.models.document import SourceDocument
from graphsbom.services.decoder_service import decode_bom
from graphsbom.services.indexer_service import ComponentIndexer
from graphsbom.services.indexer_service import ElementIndex
from graphsbom.services.relationship_service import RelationshipBuilder

logger = structlog.get_logger('parser_service')


@dataclass
class ParseResult:
    document: SourceDocument
    assertions: GraphAssertions
    identifiers: IdentifierStrings


class CycloneDXParser:
    """
    Breaks a CycloneDX document into graph assertions.

    A parser holds the state of the last document it parsed; every parse()
    starts from scratch. Separate instances share nothing and can run in
    parallel.
    """

    def __init__(self, config: ParserConfig | None = None):
        self.config = config or get_config().parser
        self.document: SourceDocument | None = None
        self.bom: Bom | None = None
        self.index: ElementIndex | None = None
        self.identifiers = IdentifierStrings()
        self._cancel_event: threading.Event | None = None

    def parse(self, document: SourceDocument, cancel_event: threading.Event | None = None) -> None:
        """
        Decode and index the document.

        State left by an earlier document is dropped first, so a failed
        parse leaves nothing for get_predicates() to build from.

        Raises:
            BomParseError: the document cannot be turned into a graph.
        """
        self.document = None
        self.bom = None
        self.index = None
        self.identifiers = IdentifierStrings()
        self._cancel_event = cancel_event

        log = logger.bind(
            source=document.source_information.source,
            format=str(document.format),
        )

        self._check_cancelled('decode')
        bom = decode_bom(document)

        self._check_cancelled('index')
        indexer = ComponentIndexer(self.identifiers)
        index = indexer.index_bom(bom)

        self.document = document
        self.bom = bom
        self.index = index
        log.info(
            'Parsed CycloneDX BOM',
            elements=len(index.packages),
            identifiers=len(self.identifiers.purl_strings),
        )

    def _check_cancelled(self, stage: str) -> None:
        if self._cancel_event is not None and self._cancel_event.is_set():
            self.document = None
            self.bom = None
            self.index = None
            logger.warning('Parse cancelled', stage=stage, _style='yellow')
            raise ParseCancelledError(f"parse cancelled before {stage}")

    def get_identities(self) -> list:
        """CycloneDX documents carry no trust information."""
        return []

    def get_identifiers(self) -> IdentifierStrings:
        return self.identifiers

    def get_predicates(self) -> GraphAssertions:
        if self.document is None or self.bom is None or self.index is None:
            raise RuntimeError('parse() must succeed before get_predicates()')
        self._check_cancelled('relationships')
        builder = RelationshipBuilder(self.document, self.index, self.config)
        return builder.build(self.bom.dependencies)


def parse_document(
    document: SourceDocument,
    config: ParserConfig | None = None,
    cancel_event: threading.Event | None = None,
) -> ParseResult:
    """Parse one document with a fresh parser and return everything it yields."""
    parser = CycloneDXParser(config)
    parser.parse(document, cancel_event=cancel_event)
    return ParseResult(
        document=document,
        assertions=parser.get_predicates(),
        identifiers=parser.get_identifiers(),
    )
