import hashlib
import threading

import pytest
from structlog.testing import capture_logs

from graphsbom.core.config import ParserConfig
from graphsbom.core.errors import BomDecodeError
from graphsbom.core.errors import IdentifierError
from graphsbom.core.errors import ParseCancelledError
from graphsbom.core.errors import UnrecognizedFormatError
from graphsbom.models.assertions import DependencyType
from graphsbom.models.assertions import MatchFlag
from graphsbom.models.bom import DependencyEntry
from graphsbom.models.package import PackageRecord
from graphsbom.services.indexer_service import ElementIndex
from graphsbom.services.parser_service import CycloneDXParser
from graphsbom.services.parser_service import parse_document
from graphsbom.services.relationship_service import RelationshipBuilder

HEURISTIC = ParserConfig.heuristic_justification
EXPLICIT = ParserConfig.dependency_justification


def edges(assertions, justification):
    return [
        (d.pkg.name, d.dep_pkg.name)
        for d in assertions.is_dependency
        if d.justification == justification
    ]


class TestHasSBOM:
    """has-SBOM links the top-level package to the document."""

    def test_container_example(self, make_bom, make_document, parser_config):
        document = make_document(make_bom(
            top={'type': 'container', 'bom-ref': 'img', 'name': 'registry.example/org/app:v1', 'version': 'v1'},
        ))
        result = parse_document(document, parser_config)

        assert result.identifiers.purl_strings == ['pkg:guac/cdx/registry.example/org/app@v1?tag=v1']
        assert len(result.assertions.has_sbom) == 1
        has_sbom = result.assertions.has_sbom[0]
        assert has_sbom.pkg.namespace == 'cdx/registry.example/org'
        assert has_sbom.pkg.name == 'app'
        assert has_sbom.pkg.qualifiers == (('tag', 'v1'),)
        assert has_sbom.uri == document.source_information.source
        assert has_sbom.download_location == document.source_information.source
        assert has_sbom.algorithm == 'sha256'
        assert has_sbom.digest == hashlib.sha256(document.blob).hexdigest()

    def test_no_top_level_no_has_sbom(self, make_bom, make_document, parser_config):
        bom = make_bom(components=[{'bom-ref': 'a', 'name': 'a', 'purl': 'pkg:npm/a@1'}])
        result = parse_document(make_document(bom), parser_config)
        assert result.assertions.has_sbom == []
        assert result.assertions.is_dependency == []


class TestTopLevelHeuristic:
    """The top-level package depends on every other indexed package."""

    def test_single_other_component(self, make_bom, make_document, parser_config):
        bom = make_bom(
            top={'bom-ref': 'root', 'name': 'demo', 'purl': 'pkg:generic/demo@1.0.0'},
            components=[{'bom-ref': 'a', 'name': 'a', 'purl': 'pkg:npm/a@1.0.0'}],
            dependencies=[{'ref': 'root', 'dependsOn': ['a']}],
        )
        result = parse_document(make_document(bom), parser_config)

        assert len(result.assertions.is_dependency) == 1
        dep = result.assertions.is_dependency[0]
        assert (dep.pkg.name, dep.dep_pkg.name) == ('demo', 'a')
        assert dep.justification == HEURISTIC
        assert dep.dependency_type is DependencyType.UNKNOWN
        assert dep.dep_pkg_match_flag is MatchFlag.SPECIFIC_VERSION
        assert dep.version_range == '1.0.0'

    def test_top_level_listed_again_is_not_self_dependency(self, make_bom, make_document, parser_config):
        bom = make_bom(
            top={'bom-ref': 'root', 'name': 'demo', 'purl': 'pkg:generic/demo@1.0.0'},
            components=[
                {'bom-ref': 'root-again', 'name': 'demo', 'purl': 'pkg:generic/demo@1.0.0'},
                {'bom-ref': 'a', 'name': 'a', 'purl': 'pkg:npm/a'},
            ],
        )
        result = parse_document(make_document(bom), parser_config)

        assert edges(result.assertions, HEURISTIC) == [('demo', 'a')]
        assert all(d.pkg != d.dep_pkg for d in result.assertions.is_dependency)
        assert result.assertions.is_dependency[0].dep_pkg_match_flag is MatchFlag.ALL_VERSIONS

    def test_heuristic_disabled(self, sample_bom, make_document):
        config = ParserConfig(top_level_heuristic=False)
        result = parse_document(make_document(sample_bom), config)

        assert edges(result.assertions, HEURISTIC) == []
        # root's own dependency section is used instead
        assert edges(result.assertions, EXPLICIT) == [('demo', 'flask'), ('flask', 'werkzeug')]


class TestOccurrences:
    def test_two_checksums_two_occurrences(self, sample_bom, make_document, parser_config):
        result = parse_document(make_document(sample_bom), parser_config)

        occurrences = result.assertions.is_occurrence
        assert len(occurrences) == 2
        assert {o.artifact.algorithm for o in occurrences} == {'sha-256', 'sha-1'}
        assert all(o.pkg.name == 'flask' for o in occurrences)
        assert all(o.justification == 'cdx package with checksum' for o in occurrences)

    def test_each_package_of_an_element_gets_each_artifact(self, make_bom, make_document, parser_config):
        bom = make_bom(components=[
            {'bom-ref': 'dup', 'name': 'a', 'purl': 'pkg:npm/a@1', 'hashes': [{'alg': 'SHA-256', 'content': '01'}]},
            {'bom-ref': 'dup', 'name': 'b', 'purl': 'pkg:npm/b@1', 'hashes': [{'alg': 'MD5', 'content': '02'}]},
        ])
        result = parse_document(make_document(bom), parser_config)
        pairs = {(o.pkg.name, o.artifact.digest) for o in result.assertions.is_occurrence}
        assert pairs == {('a', '01'), ('a', '02'), ('b', '01'), ('b', '02')}


class TestExplicitDependencies:
    def test_sample_edges(self, sample_bom, make_document, parser_config):
        result = parse_document(make_document(sample_bom), parser_config)

        assert edges(result.assertions, HEURISTIC) == [('demo', 'flask'), ('demo', 'werkzeug')]
        # root entry is skipped, the os target is not indexed
        assert edges(result.assertions, EXPLICIT) == [('flask', 'werkzeug')]

    def test_unknown_refs_skipped_without_aborting(self, make_bom, make_document, parser_config):
        bom = make_bom(
            components=[
                {'bom-ref': 'a', 'name': 'a', 'purl': 'pkg:npm/a@1'},
                {'bom-ref': 'b', 'name': 'b', 'purl': 'pkg:npm/b@1'},
            ],
            dependencies=[
                {'ref': 'ghost', 'dependsOn': ['a']},
                {'ref': 'a', 'dependsOn': ['missing', 'b']},
                {'ref': 'b'},
            ],
        )
        result = parse_document(make_document(bom), parser_config)
        assert edges(result.assertions, EXPLICIT) == [('a', 'b')]

    def test_self_dependency_skipped(self, make_bom, make_document, parser_config):
        bom = make_bom(
            components=[
                {'bom-ref': 'a', 'name': 'a', 'purl': 'pkg:npm/a@1'},
                {'bom-ref': 'a2', 'name': 'a', 'purl': 'pkg:npm/a@1'},
            ],
            dependencies=[{'ref': 'a', 'dependsOn': ['a2', 'a']}],
        )
        result = parse_document(make_document(bom), parser_config)
        assert result.assertions.is_dependency == []

    def test_top_level_under_second_element_id_skipped(self, make_bom, make_document, parser_config):
        bom = make_bom(
            top={'bom-ref': 'root', 'name': 'demo', 'purl': 'pkg:generic/demo@1'},
            components=[
                {'bom-ref': 'alias', 'name': 'demo', 'purl': 'pkg:generic/demo@1'},
                {'bom-ref': 'a', 'name': 'a', 'purl': 'pkg:npm/a@1'},
            ],
            dependencies=[{'ref': 'alias', 'dependsOn': ['a']}],
        )
        result = parse_document(make_document(bom), parser_config)
        assert edges(result.assertions, EXPLICIT) == []

    def test_edge_build_failure_is_logged_and_skipped(self, make_document, sample_bom, parser_config):
        index = ElementIndex()
        a = PackageRecord(type='npm', name='a', version='1')
        c = PackageRecord(type='npm', name='c', version='1')
        index.add_package('a', a)
        index.add_package('c', c)
        index.packages['empty'] = []
        builder = RelationshipBuilder(make_document(sample_bom), index, parser_config)

        with capture_logs() as captured:
            result = builder.explicit_dependencies([
                DependencyEntry(ref='a', depends_on=['empty', 'c']),
            ])

        assert [(d.pkg.name, d.dep_pkg.name) for d in result] == [('a', 'c')]
        errors = [e for e in captured if e['log_level'] == 'error']
        assert len(errors) == 1
        assert errors[0]['event'] == 'Error generating CycloneDX edge'
        assert errors[0]['depends_on'] == 'empty'


class TestCycloneDXParser:
    """Tests for the parser facade."""

    def test_idempotent(self, sample_bom, make_document, parser_config):
        document = make_document(sample_bom)
        first = parse_document(document, parser_config)
        second = parse_document(document, parser_config)

        assert first.assertions == second.assertions
        assert set(first.assertions.is_dependency) == set(second.assertions.is_dependency)
        assert first.identifiers == second.identifiers

    def test_xml_and_json_agree(self, make_document, sample_xml, parser_config):
        result = parse_document(make_document(sample_xml, 'xml'), parser_config)
        counts = result.assertions.count()
        assert counts == {'has_sbom': 1, 'is_occurrence': 2, 'is_dependency': 1}
        assert result.identifiers.purl_strings == ['pkg:generic/demo@1.0.0', 'pkg:pypi/requests@2.31.0']

    def test_operating_system_contributes_nothing(self, sample_bom, make_document, parser_config):
        parser = CycloneDXParser(parser_config)
        parser.parse(make_document(sample_bom))
        predicates = parser.get_predicates()

        assert 'os' not in parser.index
        names = {d.dep_pkg.name for d in predicates.is_dependency}
        names |= {o.pkg.name for o in predicates.is_occurrence}
        assert 'debian' not in names

    def test_get_identities_empty(self, parser_config):
        assert CycloneDXParser(parser_config).get_identities() == []

    def test_get_predicates_before_parse(self, parser_config):
        with pytest.raises(RuntimeError):
            CycloneDXParser(parser_config).get_predicates()

    @pytest.mark.parametrize(
        'payload,doc_format,error', [
            (b'{}', 'yaml', UnrecognizedFormatError),
            (b'{not json', 'json', BomDecodeError),
            (b'{"components": [{"bom-ref": "x", "name": "x", "purl": "nope"}]}', 'json', IdentifierError),
        ],
    )
    def test_stage_errors_abort_document(self, make_document, parser_config, payload, doc_format, error):
        parser = CycloneDXParser(parser_config)
        with pytest.raises(error):
            parser.parse(make_document(payload, doc_format))
        with pytest.raises(RuntimeError):
            parser.get_predicates()

    def test_cancelled_before_decode(self, sample_bom, make_document, parser_config):
        cancel = threading.Event()
        cancel.set()
        parser = CycloneDXParser(parser_config)
        with pytest.raises(ParseCancelledError):
            parser.parse(make_document(sample_bom), cancel_event=cancel)
        assert parser.index is None
        assert parser.identifiers.purl_strings == []

    def test_cancelled_before_relationships(self, sample_bom, make_document, parser_config):
        cancel = threading.Event()
        parser = CycloneDXParser(parser_config)
        parser.parse(make_document(sample_bom), cancel_event=cancel)

        cancel.set()
        with pytest.raises(ParseCancelledError, match='relationships'):
            parser.get_predicates()
        assert parser.index is None

    def test_failed_parse_drops_previous_document(self, sample_bom, make_document, parser_config):
        parser = CycloneDXParser(parser_config)
        parser.parse(make_document(sample_bom))

        with pytest.raises(BomDecodeError):
            parser.parse(make_document(b'{not json', 'json'))

        assert parser.document is None
        assert parser.get_identifiers().purl_strings == []
        with pytest.raises(RuntimeError):
            parser.get_predicates()

    def test_reparse_collects_fresh_identifiers(self, sample_bom, make_bom, make_document, parser_config):
        parser = CycloneDXParser(parser_config)
        parser.parse(make_document(sample_bom))
        parser.parse(make_document(sample_bom))
        assert parser.get_identifiers().purl_strings == [
            'pkg:generic/demo@1.0.0',
            'pkg:pypi/flask@3.0.0',
            'pkg:pypi/werkzeug@3.0.1',
        ]

        other = make_bom(components=[{'bom-ref': 'z', 'name': 'z', 'purl': 'pkg:npm/z@1'}])
        parser.parse(make_document(other))
        assert parser.get_identifiers().purl_strings == ['pkg:npm/z@1']
        assert parser.get_predicates().has_sbom == []

    def test_unset_cancel_event_does_not_interfere(self, sample_bom, make_document, parser_config):
        result = parse_document(make_document(sample_bom), parser_config, cancel_event=threading.Event())
        assert result.assertions.count()['has_sbom'] == 1

    def test_parallel_documents_do_not_share_state(self, sample_bom, make_bom, make_document, parser_config):
        other = make_bom(components=[{'bom-ref': 'z', 'name': 'z', 'purl': 'pkg:npm/z@1'}])
        results = {}

        def run(name, bom):
            results[name] = parse_document(make_document(bom), parser_config)

        threads = [
            threading.Thread(target=run, args=('sample', sample_bom)),
            threading.Thread(target=run, args=('other', other)),
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert results['other'].identifiers.purl_strings == ['pkg:npm/z@1']
        assert len(results['sample'].identifiers.purl_strings) == 3
