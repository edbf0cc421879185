"""
Package URL (purl) construction and parsing.

Format: pkg:type/namespace/name@version?qualifiers#subpath
See: https://github.com/package-url/purl-spec
"""
import re
from urllib.parse import unquote

from graphsbom.core.errors import IdentifierError
from graphsbom.models.package import PackageRecord

PURL_SCHEME = 'pkg:'
PURL_TYPE_GUAC = 'guac'

# Prefixes for identifiers synthesized when a BOM does not declare one
PURL_PKG_GUAC = 'pkg:guac/pkg/'
PURL_CDX_GUAC = 'pkg:guac/cdx/'
PURL_FILES_GUAC = 'pkg:guac/files/'

# Types listed in the purl-spec registry, plus our own synthesized type.
# Anything else is rejected so new types get reviewed before ingestion.
KNOWN_PURL_TYPES = frozenset({
    'alpm', 'apk', 'bitbucket', 'bitnami', 'cargo', 'cocoapods', 'composer',
    'conan', 'conda', 'cpan', 'cran', 'deb', 'docker', 'gem', 'generic',
    'github', 'golang', 'hackage', 'hex', 'huggingface', 'luarocks', 'maven',
    'mlflow', 'npm', 'nuget', 'oci', 'pub', 'pypi', 'qpkg', 'rpm', 'swid',
    'swift', PURL_TYPE_GUAC,
})

_TYPE_RE = re.compile(r'^[a-z.+-][a-z0-9.+-]*$')


def package_purl(name: str, version: str = '') -> str:
    """Generic identifier for a component with no better hint."""
    if version:
        return f"{PURL_PKG_GUAC}{name}@{version}"
    return f"{PURL_PKG_GUAC}{name}"


def cdx_purl(name: str, version: str = '', tag: str = '') -> str:
    purl = PURL_CDX_GUAC + name
    if version:
        purl += f"@{version}"
    if tag:
        purl += f"?tag={tag}"
    return purl


def file_purl(algorithm: str, digest: str, filename: str | None = None) -> str:
    purl = f"{PURL_FILES_GUAC}{algorithm.lower()}:{digest}"
    if filename is not None:
        purl += f"#{filename}"
    return purl


def _parse_subpath(subpath: str) -> str | None:
    segments = [
        unquote(s) for s in subpath.strip('/').split('/')
        if s and s not in ('.', '..')
    ]
    return '/'.join(segments) or None


def _parse_qualifiers(purl: str, raw: str) -> dict[str, str]:
    qualifiers = {}
    for pair in raw.split('&'):
        if not pair:
            continue
        if '=' not in pair:
            raise IdentifierError(purl, f"qualifier {pair!r} has no value")
        key, value = pair.split('=', 1)
        key = key.lower()
        if not key:
            raise IdentifierError(purl, 'empty qualifier key')
        value = unquote(value)
        if value:
            qualifiers[key] = value
    return qualifiers


def _fold_repository_url(name: str, namespace: str | None, qualifiers: dict[str, str]) -> str | None:
    """docker/oci carry the registry in repository_url; make it the namespace."""
    repository_url = qualifiers.pop('repository_url', None)
    if not repository_url:
        return namespace
    repository_url = repository_url.rstrip('/')
    suffix = f"/{name}"
    if repository_url.endswith(suffix):
        repository_url = repository_url[:-len(suffix)]
    if namespace and not repository_url.endswith(f"/{namespace}"):
        return f"{repository_url}/{namespace}"
    return repository_url or namespace


def purl_to_package(purl: str) -> PackageRecord:
    """
    Parse a package URL into a PackageRecord.

    Raises:
        IdentifierError: if the string is not a well-formed purl of a known type.
    """
    if not purl:
        raise IdentifierError(purl, 'empty purl')
    if purl[:len(PURL_SCHEME)].lower() != PURL_SCHEME:
        raise IdentifierError(purl, 'scheme is not "pkg"')

    rest = purl[len(PURL_SCHEME):].lstrip('/')

    subpath = None
    if '#' in rest:
        rest, raw_subpath = rest.split('#', 1)
        subpath = _parse_subpath(raw_subpath)

    qualifiers: dict[str, str] = {}
    if '?' in rest:
        rest, raw_qualifiers = rest.split('?', 1)
        qualifiers = _parse_qualifiers(purl, raw_qualifiers)

    # Version follows the last '@' and may itself contain '/'
    version = None
    if '@' in rest:
        rest, version = rest.rsplit('@', 1)
        version = unquote(version) or None

    segments = [s for s in rest.split('/') if s]
    if len(segments) < 2:
        raise IdentifierError(purl, 'missing type or name')

    purl_type = segments[0].lower()
    if not _TYPE_RE.match(purl_type):
        raise IdentifierError(purl, f"invalid type {purl_type!r}")
    if purl_type not in KNOWN_PURL_TYPES:
        raise IdentifierError(purl, f"unhandled purl type {purl_type!r}")

    name = unquote(segments[-1])
    if not name:
        raise IdentifierError(purl, 'missing name')

    namespace = '/'.join(unquote(s) for s in segments[1:-1]) or None

    if purl_type in ('docker', 'oci'):
        namespace = _fold_repository_url(name, namespace, qualifiers)

    return PackageRecord(
        type=purl_type,
        namespace=namespace,
        name=name,
        version=version,
        qualifiers=tuple(sorted(qualifiers.items())),
        subpath=subpath,
    )
