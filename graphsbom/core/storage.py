import json
import os
from pathlib import Path

import structlog

from graphsbom.models.assertions import GraphAssertions
from graphsbom.models.assertions import IdentifierStrings
from graphsbom.models.document import SourceDocument

logger = structlog.get_logger('storage')


class AssertionStorage:
    """Appends graph assertions to a JSONL file, one record per line."""

    def __init__(self, filepath: str | Path):
        self.filepath = Path(filepath)
        os.makedirs(self.filepath.parent, exist_ok=True)

    def save(self, document: SourceDocument, assertions: GraphAssertions, identifiers: IdentifierStrings) -> int:
        """Write every assertion of one document. Returns the number of lines written."""
        source = document.source_information.source
        count = 0
        with open(self.filepath, 'a', encoding='utf-8') as f:
            for kind in ('has_sbom', 'is_occurrence', 'is_dependency'):
                for item in getattr(assertions, kind):
                    record = {
                        'kind': kind,
                        'source': source,
                        **item.model_dump(mode='json'),
                    }
                    f.write(json.dumps(record) + '\n')
                    count += 1
            if identifiers.purl_strings:
                f.write(
                    json.dumps({
                        'kind': 'identifiers',
                        'source': source,
                        'purl_strings': identifiers.purl_strings,
                    }) + '\n',
                )
                count += 1
            f.flush()
        logger.debug('Saved assertions', path=str(self.filepath), lines=count)
        return count


def load_jsonl(filepath: str | Path) -> list[dict]:
    """Loads records from a JSONL file, skipping lines that are not JSON."""
    path = Path(filepath)
    if not path.exists():
        return []

    records = []
    with path.open(encoding='utf-8') as f:
        for line in f:
            if line.strip():
                try:
                    records.append(json.loads(line))
                except json.JSONDecodeError:
                    logger.warning('Skipping malformed line', path=str(path))
    return records
