"""Error taxonomy for BOM parsing."""


class BomParseError(Exception):
    """Base class for failures that abort processing of a whole document."""


class UnrecognizedFormatError(BomParseError):
    """The declared serialization tag is not one the decoder understands."""

    def __init__(self, format_tag: str):
        self.format_tag = format_tag
        super().__init__(f"unrecognized CycloneDX format {format_tag!r}")


class BomDecodeError(BomParseError):
    """The payload does not decode under the declared serialization."""

    def __init__(self, format_tag: str, cause: Exception):
        self.format_tag = format_tag
        self.cause = cause
        super().__init__(f"failed to decode CycloneDX {format_tag} BOM: {cause}")


class IdentifierError(BomParseError):
    """A package identifier string cannot be turned into a package record."""

    def __init__(self, purl: str, reason: str):
        self.purl = purl
        self.reason = reason
        super().__init__(f"unable to parse purl {purl!r}: {reason}")


class ParseCancelledError(BomParseError):
    """Processing was cancelled between stages; partial results are discarded."""
