"""Forward-only traversal of large XML documents.

ETS project documents can be big, so they are never loaded as a whole.
``ElementCursor`` walks start/end events of ``xml.etree.ElementTree.iterparse``
and drops every element once its end event has been passed.
``read_children`` adds recursive-descent semantics on top of the flat
event feed.
"""
import logging
import xml.etree.ElementTree as ET
from typing import BinaryIO, Callable, Dict, List, Optional

from knx_semantics.exceptions import MalformedDocumentError

logger = logging.getLogger(__name__)

START = 'start'
END = 'end'


def local_name(tag: str) -> str:
    """Strip the ``{namespace}`` part of an ElementTree tag."""
    if tag and tag[0] == '{':
        return tag.rsplit('}', 1)[1]
    return tag


class ElementCursor:
    """Cursor over the start/end events of an XML stream."""

    def __init__(self, stream: BinaryIO, source: str = '<stream>'):
        """
        Args:
            stream: Binary file-like object positioned at the document start
            source: Name of the document, used in error locations
        """
        self.source = source
        self._events = ET.iterparse(stream, events=(START, END))
        self._event_count = 0
        self._open: List[ET.Element] = []
        self._path: List[str] = []
        self._pending_close = False
        self.event: Optional[str] = None
        self.element: Optional[ET.Element] = None
        self.name: Optional[str] = None

    @property
    def depth(self) -> int:
        """Nesting depth of the current element, the root element is 1."""
        return len(self._path)

    @property
    def attrs(self) -> Dict[str, str]:
        return self.element.attrib if self.element is not None else {}

    @property
    def location(self) -> str:
        return f"{self.source}, event {self._event_count}, /{'/'.join(self._path)}"

    def get(self, attribute: str, default: Optional[str] = None) -> Optional[str]:
        return self.attrs.get(attribute, default)

    def require(self, attribute: str) -> str:
        """
        Get a mandatory attribute of the current element.

        Raises:
            MalformedDocumentError: If the attribute is missing
        """
        value = self.attrs.get(attribute)
        if value is None:
            raise MalformedDocumentError(
                f"Missing required attribute '{attribute}' on element '{self.name}'", self.location)
        return value

    def require_int(self, attribute: str) -> int:
        """Like :meth:`require` but converts the value to ``int``."""
        value = self.require(attribute)
        try:
            return int(value)
        except ValueError as e:
            raise MalformedDocumentError(
                f"Attribute '{attribute}' of element '{self.name}' is not an integer: '{value}'",
                self.location) from e

    def advance(self) -> bool:
        """
        Move to the next start or end event.

        Returns:
            False once the document is exhausted, True otherwise

        Raises:
            MalformedDocumentError: If the document is not well-formed or truncated
        """
        if self._pending_close:
            self._release()

        try:
            event, element = next(self._events)
        except StopIteration:
            if self._open:
                raise MalformedDocumentError("Unexpected end of document", self.location)
            if logger.isEnabledFor(logging.DEBUG):
                logger.debug(f"Finished {self.source} after {self._event_count} events")
            self.event = None
            self.element = None
            self.name = None
            return False
        except ET.ParseError as e:
            raise MalformedDocumentError(f"Invalid XML: {e}", self.location) from e

        self._event_count += 1
        self.event = event
        self.element = element
        self.name = local_name(element.tag)
        if event == START:
            self._open.append(element)
            self._path.append(self.name)
        else:
            self._pending_close = True
        return True

    def advance_to_start(self, name: Optional[str] = None) -> bool:
        """
        Move forward to the next start event (of an element called ``name``).

        Returns:
            False if the document ended before such an element was found
        """
        while self.advance():
            if self.event == START and (name is None or self.name == name):
                return True
        return False

    def _release(self):
        # the element just ended, drop it so the tree never grows
        element = self._open.pop()
        self._path.pop()
        element.clear()
        if self._open:
            # iterparse may already have appended later siblings, remove by identity
            self._open[-1].remove(element)
        self._pending_close = False


def read_children(cursor: ElementCursor, on_child: Callable[[str], None]) -> None:
    """
    Visit the immediate children of the element the cursor is positioned on.

    ``on_child`` is called with the local name of every immediate child, with
    the cursor on the child's start event. It may ignore the child, in which
    case its subtree is skipped here, or consume the subtree itself and leave
    the cursor on the child's end event.

    On return the cursor sits on the parent's end event.

    Args:
        cursor: Cursor positioned on the parent's start event
        on_child: Callback receiving the child element name

    Raises:
        MalformedDocumentError: On unbalanced or truncated input
    """
    if cursor.event != START:
        raise MalformedDocumentError("Expected to be positioned on an element start", cursor.location)

    parent = cursor.name
    level = 0
    while True:
        if not cursor.advance():
            raise MalformedDocumentError(f"Unexpected end of document inside '{parent}'", cursor.location)

        if cursor.event == START:
            if level == 0:
                child = cursor.element
                on_child(cursor.name)
                if cursor.event == END and cursor.element is child:
                    # subtree consumed by the callback
                    continue
            level += 1
        else:
            level -= 1
            if level < 0:
                if cursor.name != parent:
                    raise MalformedDocumentError(
                        f"Unbalanced end of '{cursor.name}' while reading children of '{parent}'",
                        cursor.location)
                return
