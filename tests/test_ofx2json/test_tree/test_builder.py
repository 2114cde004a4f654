"""Tests for the container stack and close resolution."""

import pytest

from ofx2json.schema import SchemaNode, SerializeMode, ValueKind, load_schema
from ofx2json.shared import (
    CloseMismatchError,
    DiagnosticSeverity,
    LeafDecodeError,
    UnbalancedStackError,
)
from ofx2json.tokenization import iter_events
from ofx2json.tree.builder import OpenContainer, TreeBuilder, attach, json_key


def nested_schema():
    """ROOT > A > B with a string leaf X under B."""
    return load_schema({
        "root": "root",
        "nodes": {
            "root": {"serialize": "suppressed", "children": {"A": "a"}},
            "a": {"children": {"B": "b"}},
            "b": {"leaves": {"X": "string"}},
        },
    })


def typed_schema():
    """A container with one leaf of each kind plus array containers."""
    return load_schema({
        "root": "root",
        "nodes": {
            "root": {
                "serialize": "suppressed",
                "children": {"REC": "rec", "LIST": "list", "WRAP": "wrap"},
            },
            "rec": {
                "leaves": {
                    "NAME": "string",
                    "AMT": "number",
                    "FLAG": "boolean",
                    "WHEN": "datetime",
                },
            },
            "list": {
                "serialize": "array",
                "children": {"ITEM": "item", "NAMED": "named"},
                "leaves": {"NOTE": "string"},
            },
            "item": {"serialize": "array_element", "leaves": {"NAME": "string"}},
            "named": {"serialize": "named_array_element", "leaves": {"NAME": "string"}},
            "wrap": {"serialize": "suppressed", "leaves": {"INNER": "string"}},
        },
    })


def build(schema, text, root_name="ROOT", quiet=False):
    """Feed ``text`` through a fresh builder and return it with its tree."""
    builder = TreeBuilder(schema, root_name=root_name, quiet=quiet)
    builder.push_root()
    for event in iter_events(text, stop_tag=root_name):
        builder.handle_event(event)
    return builder, builder.finish()


class TestHelpers:
    """Test key and attachment helpers."""

    def test_json_key(self):
        """Test keys are lower-cased tag names."""
        assert json_key("DTSERVER") == "dtserver"

    def test_attach_to_object(self):
        """Test attaching to an object adds a member."""
        target = {}
        attach(target, "code", "0")
        assert target == {"code": "0"}

    def test_attach_to_array(self):
        """Test attaching to an array appends a single-key object."""
        target = []
        attach(target, "code", "0")
        assert target == [{"code": "0"}]


class TestOpenContainer:
    """Test frame storage and the backward close scan."""

    def test_storage_follows_mode(self):
        """Test object, array and aliased storage."""
        enclosing = {"x": 1}
        assert OpenContainer.open("A", SchemaNode(), enclosing).value == {}
        array = SchemaNode(serialize=SerializeMode.ARRAY)
        assert OpenContainer.open("A", array, enclosing).value == []
        suppressed = SchemaNode(serialize=SerializeMode.SUPPRESSED)
        assert OpenContainer.open("A", suppressed, enclosing).value is enclosing

    def test_close_scans_backward_removing_entries(self):
        """Test entries are discarded newest first up to and including the match."""
        container = OpenContainer("S", SchemaNode(), {})
        for tag in ("A", "B", "C"):
            container.record(tag, "")
        assert container.resolve_close("B") == (True, False)
        assert container.pending == [("A", "")]

    def test_close_of_most_recent_entry(self):
        """Test ordinary leaf close."""
        container = OpenContainer("S", SchemaNode(), {})
        container.record("A", "1")
        assert container.resolve_close("A") == (True, False)
        assert container.pending == []

    def test_own_close_empties_pending(self):
        """Test the container's own close discards all pending tags."""
        container = OpenContainer("S", SchemaNode(), {})
        container.record("A", "1")
        container.record("B", "2")
        assert container.resolve_close("S") == (True, True)
        assert container.pending == []

    def test_unmatched_close(self):
        """Test an unknown close empties the list and is not accepted."""
        container = OpenContainer("S", SchemaNode(), {})
        container.record("A", "1")
        assert container.resolve_close("Z") == (False, False)
        assert container.pending == []

    def test_own_name_pending_leaves_container_open(self):
        """Test a pending tag named like the container, with entries before it."""
        container = OpenContainer("S", SchemaNode(), {})
        container.record("A", "1")
        container.record("S", "2")
        assert container.resolve_close("S") == (True, False)
        assert container.pending == [("A", "1")]

    def test_fold_modes(self):
        """Test each serialize mode's attachment to an object parent."""
        parent = {}
        OpenContainer("OBJ", SchemaNode(), {"a": 1}).fold_into(parent)
        OpenContainer(
            "ARR", SchemaNode(serialize=SerializeMode.ARRAY), [1]
        ).fold_into(parent)
        element = SchemaNode(serialize=SerializeMode.ARRAY_ELEMENT)
        OpenContainer("EL", element, {"b": 2}).fold_into(parent)
        OpenContainer("EL", element, {"b": 3}).fold_into(parent)
        suppressed = SchemaNode(serialize=SerializeMode.SUPPRESSED)
        OpenContainer("SUP", suppressed, parent).fold_into(parent)
        assert parent == {
            "obj": {"a": 1},
            "arr": [1],
            "el": [{"b": 2}, {"b": 3}],
        }

    def test_fold_into_array_parent(self):
        """Test array elements append, named elements are wrapped."""
        parent = []
        element = SchemaNode(serialize=SerializeMode.ARRAY_ELEMENT)
        named = SchemaNode(serialize=SerializeMode.NAMED_ARRAY_ELEMENT)
        OpenContainer("EL", element, {"b": 2}).fold_into(parent)
        OpenContainer("NAMED", named, {"c": 3}).fold_into(parent)
        OpenContainer("OBJ", SchemaNode(), {"d": 4}).fold_into(parent)
        assert parent == [{"b": 2}, {"named": {"c": 3}}, {"obj": {"d": 4}}]


class TestTreeBuilder:
    """Test event handling against a schema."""

    def test_close_does_not_bubble_to_ancestor(self):
        """Test that A's close cannot close an unclosed B."""
        builder = TreeBuilder(nested_schema(), root_name="ROOT")
        builder.push_root()
        with pytest.raises(CloseMismatchError) as exc_info:
            for event in iter_events("<A><B><X>hi</X></A>", stop_tag="ROOT"):
                builder.handle_event(event)
        assert exc_info.value.close_tag == "A"
        assert exc_info.value.container == "B"
        assert str(exc_info.value) == "mismatch for </A>, expecting </B>"
        assert builder.current.name == "B"

    def test_well_formed_and_implicit_closes_agree(self):
        """Test explicit leaf closes give the same tree as omitted ones."""
        explicit = (
            "<REC><NAME>Fund</NAME><AMT>-12.50</AMT><FLAG>Y</FLAG>"
            "<WHEN>20210115120000[-5:EST]</WHEN></REC>"
        )
        implicit = (
            "<REC>\n<NAME>Fund\n<AMT>-12.50\n<FLAG>Y\n"
            "<WHEN>20210115120000[-5:EST]\n</REC>"
        )
        _, tree_explicit = build(typed_schema(), explicit)
        _, tree_implicit = build(typed_schema(), implicit)
        assert tree_explicit == tree_implicit == {
            "rec": {
                "name": "Fund",
                "amt": -12.5,
                "flag": True,
                "when": "2021-01-15T12:00:00-05:00",
            }
        }

    def test_datetime_failure_kept_as_text(self):
        """Test an undecodable datetime degrades to its raw text."""
        _, tree = build(typed_schema(), "<REC><WHEN>2021-01-15</REC>")
        assert tree == {"rec": {"when": "2021-01-15"}}

    @pytest.mark.parametrize("leaf,text,kind", [
        ("AMT", "12.5.3", "number"),
        ("FLAG", "yes", "boolean"),
    ])
    def test_number_and_boolean_failures_are_fatal(self, leaf, text, kind):
        """Test decode failures propagate with the tag attached."""
        with pytest.raises(LeafDecodeError) as exc_info:
            build(typed_schema(), f"<REC><{leaf}>{text}</REC>")
        assert exc_info.value.tag == leaf
        assert exc_info.value.kind == kind
        assert str(exc_info.value) == f"<{leaf}> failed to parse '{text}' as a {kind}"

    def test_unknown_tag_reported_not_stored(self):
        """Test unknown tags become diagnostics and stay out of the tree."""
        builder, tree = build(typed_schema(), "<REC><NAME>a<EXTRA>b</EXTRA></REC>")
        assert tree == {"rec": {"name": "a"}}
        assert builder.unrecognized_elements == 1
        [notice] = builder.diagnostics
        assert notice.severity is DiagnosticSeverity.WARNING
        assert notice.message == "unrecognized element <EXTRA> under container <REC>"
        assert notice.details == {"tag": "EXTRA", "text": "b", "container": "REC"}

    def test_unknown_tag_is_pending(self):
        """Test unknown tags still take part in close resolution."""
        builder = TreeBuilder(typed_schema(), root_name="ROOT")
        builder.push_root()
        builder.handle_open("REC")
        builder.handle_open("EXTRA", "b")
        assert builder.current.pending == [("EXTRA", "b")]
        builder.handle_close("EXTRA")
        assert builder.current.pending == []

    def test_quiet_suppresses_notices(self):
        """Test quiet mode records nothing but builds the same tree."""
        builder, tree = build(typed_schema(), "<REC><EXTRA>b</REC>", quiet=True)
        assert tree == {"rec": {}}
        assert builder.diagnostics == []
        assert builder.unrecognized_elements == 1

    def test_array_elements(self):
        """Test array containers collect their elements in order."""
        text = (
            "<LIST><ITEM><NAME>a</ITEM><NAMED><NAME>b</NAMED>"
            "<ITEM><NAME>c</ITEM></LIST>"
        )
        _, tree = build(typed_schema(), text)
        assert tree == {
            "list": [{"name": "a"}, {"named": {"name": "b"}}, {"name": "c"}]
        }

    def test_leaf_in_array_container(self):
        """Test leaves of an array container append single-key objects."""
        _, tree = build(typed_schema(), "<LIST><NOTE>n</LIST>")
        assert tree == {"list": [{"note": "n"}]}

    def test_suppressed_container_splices(self):
        """Test a suppressed container's members land in its parent."""
        _, tree = build(typed_schema(), "<WRAP><INNER>x</WRAP><REC><NAME>y</REC>")
        assert tree == {"inner": "x", "rec": {"name": "y"}}

    def test_duplicate_member_last_wins(self):
        """Test a repeated leaf overwrites the earlier value."""
        _, tree = build(typed_schema(), "<REC><NAME>a<NAME>b</REC>")
        assert tree == {"rec": {"name": "b"}}

    def test_self_closing_container(self):
        """Test a self-closing container folds as empty."""
        _, tree = build(typed_schema(), "<REC/>")
        assert tree == {"rec": {}}

    def test_non_suppressed_root_is_wrapped(self):
        """Test an object root becomes a named member of the document."""
        schema = load_schema({
            "root": "doc",
            "nodes": {"doc": {"leaves": {"ID": "string"}}},
        })
        _, tree = build(schema, "<ID>7</DOC>", root_name="DOC")
        assert tree == {"doc": {"id": "7"}}

    def test_counters(self):
        """Test event and container counters."""
        builder, _ = build(typed_schema(), "<REC><NAME>a</NAME></REC>")
        assert builder.events_processed == 4
        assert builder.containers_opened == 2
        assert builder.depth == 0


class TestStackErrors:
    """Test unbalanced stacks and closes with nothing open."""

    def test_close_with_empty_stack(self):
        """Test a close tag after the root closed."""
        builder = TreeBuilder(typed_schema(), root_name="ROOT")
        with pytest.raises(CloseMismatchError, match="unexpected tag found: </REC>"):
            builder.handle_close("REC")

    def test_open_with_empty_stack(self):
        """Test an open tag with no container to receive it."""
        builder = TreeBuilder(typed_schema(), root_name="ROOT")
        with pytest.raises(UnbalancedStackError):
            builder.handle_open("REC")

    def test_containers_left_open(self):
        """Test unclosed containers at end of input."""
        builder = TreeBuilder(nested_schema(), root_name="ROOT")
        builder.push_root()
        builder.handle_open("A")
        builder.handle_open("B")
        with pytest.raises(UnbalancedStackError, match="Stack not empty") as exc_info:
            builder.finish()
        assert exc_info.value.depth == 3

    def test_root_not_closing_cleanly(self):
        """Test a pending tag named like the root blocks the final close."""
        builder = TreeBuilder(typed_schema(), root_name="ROOT", quiet=True)
        builder.push_root()
        builder.handle_open("OTHER", "1")
        builder.handle_open("ROOT", "2")
        with pytest.raises(UnbalancedStackError, match="did not close cleanly"):
            builder.finish()

    def test_finish_with_only_root(self):
        """Test an empty document."""
        builder = TreeBuilder(typed_schema(), root_name="ROOT")
        builder.push_root()
        assert builder.finish() == {}
