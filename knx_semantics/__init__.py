"""KNX Semantics - detect lights in exported ETS projects"""

__version__ = "1.0.0"

import logging

from .exceptions import (
    EmptyProjectError,
    KNXProjectError,
    MalformedDocumentError,
    MultipleProjectsExportedError,
    ProjectNotFoundError,
)

logger = logging.getLogger(__name__)


def analyze_project(knxproj_path, characteristics=None):
    """
    Parse a .knxproj file and find its lights.

    Args:
        knxproj_path: Path to the .knxproj file
        characteristics: Characteristics to use (default: GenericGermanyCharacteristics)

    Returns:
        Tuple of (parser, lights)

    Raises:
        KNXProjectError: If the project cannot be read or is empty
    """
    from .analyzer import ProjectAnalyzer
    from .characteristics.german_characteristics import GenericGermanyCharacteristics
    from .parsers.knx_parser import KNXParser

    parser = KNXParser(knxproj_path).parse()
    if characteristics is None:
        characteristics = GenericGermanyCharacteristics()
    lights = ProjectAnalyzer(parser, characteristics).analyze()
    return parser, lights


__all__ = [
    'analyze_project',
    'KNXProjectError',
    'MalformedDocumentError',
    'MultipleProjectsExportedError',
    'ProjectNotFoundError',
    'EmptyProjectError',
    '__version__',
]
