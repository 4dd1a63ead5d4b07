"""Exceptions raised while reading and analyzing a KNX project."""


class KNXProjectError(Exception):
    """Base class for all fatal project errors."""
    pass


class MalformedDocumentError(KNXProjectError):
    """Raised when a project document is truncated, invalid or misses required data.

    Args:
        message: What went wrong
        location: Where in the document it went wrong (optional)
    """

    def __init__(self, message: str, location: str = None):
        self.location = location
        if location:
            message = f"{message} (at {location})"
        super().__init__(message)


class MultipleProjectsExportedError(KNXProjectError):
    """Raised when an archive contains more than one exported project."""
    pass


class ProjectNotFoundError(KNXProjectError):
    """Raised when an archive does not contain any exported project."""
    pass


class EmptyProjectError(KNXProjectError):
    """Raised when a project does not contain any group address."""
    pass
