"""Exception types raised by the priznanie package."""


class PriznanieError(Exception):
    """Base class for all errors raised by this package."""


class DeclarationShapeError(PriznanieError, ValueError):
    """A declaration payload does not have the structure of a Declaration.

    Malformed amounts never raise; only wrong record shapes do (a section
    that is not a mapping, entries that are not a list, and so on).
    """

    def __init__(self, message: str, errors: list[dict] | None = None) -> None:
        super().__init__(message)
        self.errors = errors or []


class XmlImportError(PriznanieError):
    """An XML filing cannot be parsed into a Declaration."""


class DocumentImportError(PriznanieError):
    """An uploaded document cannot be read."""
