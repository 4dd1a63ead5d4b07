import io

import pytest

from knx_semantics.exceptions import MalformedDocumentError
from knx_semantics.parsers.element_reader import END, START, ElementCursor, local_name, read_children


def cursor_for(xml, source="test.xml"):
    return ElementCursor(io.BytesIO(xml.encode("utf-8")), source)


def start_at_root(cursor):
    assert cursor.advance_to_start()
    return cursor


class TestElementCursor:

    def test_local_name(self):
        assert local_name("{http://knx.org/xml/project/20}Project") == "Project"
        assert local_name("Project") == "Project"

    def test_events_and_attributes(self):
        cursor = cursor_for('<a xmlns="urn:x"><b Id="1" /></a>')
        assert cursor.advance() and (cursor.event, cursor.name) == (START, "a")
        assert cursor.advance() and (cursor.event, cursor.name) == (START, "b")
        assert cursor.get("Id") == "1"
        assert cursor.depth == 2
        assert cursor.advance() and (cursor.event, cursor.name) == (END, "b")
        assert cursor.advance() and (cursor.event, cursor.name) == (END, "a")
        assert not cursor.advance()

    def test_location_contains_path(self):
        cursor = cursor_for("<a><b /></a>", "doc.xml")
        cursor.advance()
        cursor.advance()
        assert "doc.xml" in cursor.location
        assert "/a/b" in cursor.location

    def test_require_missing_attribute(self):
        cursor = start_at_root(cursor_for("<a />"))
        with pytest.raises(MalformedDocumentError) as excinfo:
            cursor.require("Id")
        assert excinfo.value.location is not None

    def test_require_int(self):
        cursor = start_at_root(cursor_for('<a Address="12" Bad="x" />'))
        assert cursor.require_int("Address") == 12
        with pytest.raises(MalformedDocumentError):
            cursor.require_int("Bad")

    def test_truncated_document(self):
        cursor = cursor_for("<a><b></b>")
        with pytest.raises(MalformedDocumentError):
            while cursor.advance():
                pass

    def test_ended_elements_are_released(self):
        cursor = start_at_root(cursor_for("<a><b /><c /><d /></a>"))
        root = cursor.element
        while cursor.advance():
            if cursor.event == START:
                assert len(root) <= 1

    def test_nested_siblings_are_released(self):
        cursor = start_at_root(cursor_for("<a><b><x /><y /><z /></b><c><w /></c></a>"))
        root = cursor.element
        sizes = []
        while cursor.advance():
            if cursor.event == END and cursor.name in ("b", "c"):
                sizes.append(len(cursor.element))
        assert sizes == [0, 0]
        assert len(root) == 0


class TestReadChildren:

    def test_visits_immediate_children_only(self):
        cursor = start_at_root(cursor_for("<a><b><x /></b><c /><d><e><f /></e></d></a>"))
        seen = []
        read_children(cursor, seen.append)
        assert seen == ["b", "c", "d"]
        assert (cursor.event, cursor.name) == (END, "a")

    def test_callback_may_consume_subtree(self):
        cursor = start_at_root(cursor_for("<a><b><x /><y /></b><c><z /></c></a>"))
        seen = []
        nested = []

        def on_child(name):
            seen.append(name)
            if name == "b":
                read_children(cursor, nested.append)
                assert (cursor.event, cursor.name) == (END, "b")

        read_children(cursor, on_child)
        assert seen == ["b", "c"]
        assert nested == ["x", "y"]
        assert (cursor.event, cursor.name) == (END, "a")

    def test_consumed_empty_child(self):
        cursor = start_at_root(cursor_for("<a><b /><b /><c /></a>"))
        seen = []

        def on_child(name):
            seen.append(name)
            if name == "b":
                read_children(cursor, lambda _: None)

        read_children(cursor, on_child)
        assert seen == ["b", "b", "c"]
        assert (cursor.event, cursor.name) == (END, "a")

    def test_recursive_descent(self):
        cursor = start_at_root(cursor_for(
            '<r><g n="1"><g n="2"><a n="3" /></g><a n="4" /></g><g n="5" /></r>'))
        found = []

        def read_group(depth):
            found.append(("g", cursor.get("n"), depth))

            def on_child(name):
                if name == "g":
                    read_group(depth + 1)
                elif name == "a":
                    found.append(("a", cursor.get("n"), depth))

            read_children(cursor, on_child)

        read_children(cursor, lambda name: read_group(0) if name == "g" else None)
        assert found == [("g", "1", 0), ("g", "2", 1), ("a", "3", 1), ("a", "4", 0), ("g", "5", 0)]

    def test_must_start_on_element_start(self):
        cursor = cursor_for("<a><b /></a>")
        cursor.advance()
        cursor.advance()
        cursor.advance()
        assert cursor.event == END
        with pytest.raises(MalformedDocumentError):
            read_children(cursor, lambda _: None)

    def test_truncated_children(self):
        cursor = start_at_root(cursor_for("<a><b><c /></b>"))
        with pytest.raises(MalformedDocumentError) as excinfo:
            read_children(cursor, lambda _: None)
        assert "test.xml" in str(excinfo.value)
