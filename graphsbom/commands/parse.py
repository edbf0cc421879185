from concurrent.futures import as_completed
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

import structlog
import typer
from rich.table import Table

from graphsbom.core.container import get_container
from graphsbom.core.decorators import describe_parse_error
from graphsbom.core.decorators import handle_errors
from graphsbom.core.errors import BomParseError
from graphsbom.core.logging import console
from graphsbom.core.stats import ParseStats
from graphsbom.core.storage import AssertionStorage
from graphsbom.models.document import DocumentFormat
from graphsbom.models.document import SourceDocument
from graphsbom.models.document import SourceInformation
from graphsbom.services.parser_service import parse_document
from graphsbom.services.parser_service import ParseResult

logger = structlog.get_logger('parse_command')


def infer_format(path: Path) -> DocumentFormat:
    if path.suffix.lower() == '.xml':
        return DocumentFormat.XML
    return DocumentFormat.JSON


def load_document(path: Path, doc_format: DocumentFormat | None = None, source: str | None = None) -> SourceDocument:
    return SourceDocument(
        blob=path.read_bytes(),
        format=(doc_format or infer_format(path)).value,
        source_information=SourceInformation(
            collector='file',
            source=source or f"file://{path.absolute()}",
            document_ref=path.name,
        ),
    )


def parse_file(path: Path, doc_format: DocumentFormat | None, source: str | None) -> ParseResult:
    document = load_document(path, doc_format, source)
    return parse_document(document, get_container().config.parser)


def render_result(path: Path, result: ParseResult, show_identifiers: bool) -> None:
    table = Table(title=f"Graph assertions for {path.name}")
    table.add_column('Assertion', style='cyan')
    table.add_column('Subject', style='green')
    table.add_column('Object', style='magenta')
    table.add_column('Justification', style='dim')

    for item in result.assertions.has_sbom:
        table.add_row('has-SBOM', str(item.pkg), item.uri, f"{item.algorithm}:{item.digest[:12]}")
    for item in result.assertions.is_occurrence:
        table.add_row(
            'is-occurrence', str(item.pkg),
            f"{item.artifact.algorithm}:{item.artifact.digest}", item.justification,
        )
    for item in result.assertions.is_dependency:
        table.add_row('is-dependency', str(item.pkg), str(item.dep_pkg), item.justification)
    console.print(table)

    if show_identifiers:
        id_table = Table(title='Collected identifiers')
        id_table.add_column('No.', style='cyan', justify='right')
        id_table.add_column('Package URL', style='green')
        for idx, purl in enumerate(result.identifiers.purl_strings, 1):
            id_table.add_row(str(idx), purl)
        console.print(id_table)


@handle_errors
def main(
    paths: list[Path] = typer.Argument(
        ..., exists=True, dir_okay=False, readable=True,
        help='CycloneDX documents to parse',
    ),
    doc_format: DocumentFormat | None = typer.Option(
        None, '--format', help='Serialization of the documents (default: from file suffix)',
    ),
    source: str | None = typer.Option(
        None, help='Source URI recorded for has-SBOM (default: file URI)',
    ),
    output: Path | None = typer.Option(
        None, help='Append assertions to this JSONL file',
    ),
    heuristic: bool = typer.Option(
        True, help='Emit top-level heuristic dependency edges',
    ),
    identifiers: bool = typer.Option(
        False, '--identifiers', help='Print collected package identifiers',
    ),
    workers: int = typer.Option(4, help='Number of concurrent workers'),
):
    """
    Convert CycloneDX documents into graph assertions.
    """
    container = get_container()
    container.config.parser.top_level_heuristic = heuristic

    storage = AssertionStorage(output) if output else None
    stats = ParseStats(total=len(paths))

    with ThreadPoolExecutor(max_workers=workers) as executor:
        futures = {
            executor.submit(parse_file, path, doc_format, source): path
            for path in paths
        }
        for future in as_completed(futures):
            path = futures[future]
            try:
                result = future.result()
            except BomParseError as e:
                stats.inc_failed()
                logger.error('Failed to parse document', path=str(path), error=describe_parse_error(e))
                continue

            counts = result.assertions.count()
            stats.inc_parsed(
                assertions=sum(counts.values()),
                identifiers=len(result.identifiers.purl_strings),
            )
            logger.info('Parsed document', path=str(path), **counts)
            render_result(path, result, identifiers)
            if storage:
                storage.save(result.document, result.assertions, result.identifiers)

    logger.info(
        'Parse Complete', parsed=stats.parsed, failed=stats.failed,
        assertions=stats.assertions, identifiers=stats.identifiers,
        elapsed=f"{stats.elapsed_time:.2f}s",
    )
    if stats.failed:
        raise typer.Exit(1)
