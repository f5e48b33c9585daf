"""Stream assembler and tree building tests."""

import pytest
from hypothesis import given, strategies as st

from genui.catalog import ElementStatus
from genui.models import UIElement
from genui.streaming import StreamAssembler, flat_to_tree, load_tree, merge_record, merge_records
from genui.core import JSONParseError


# ============================================================================
# Merge
# ============================================================================

@pytest.mark.unit
def test_merge_props_shallowly():
    elements = {}
    merge_record(elements, {"key": "c", "type": "Card", "props": {"title": "A"}})
    merge_record(elements, {"key": "c", "props": {"subtitle": "B"}})
    merge_record(elements, {"key": "c", "props": {"title": "C"}})

    assert elements["c"].type == "Card"
    assert elements["c"].props == {"title": "C", "subtitle": "B"}


@pytest.mark.unit
def test_merge_overwrites_children_and_visible():
    elements = merge_records(
        [
            {"key": "c", "children": ["a", "b"], "visible": {"path": "/x"}},
            {"key": "c", "children": ["b"]},
            {"key": "c", "visible": True},
        ]
    )
    assert elements["c"].children == ["b"]
    assert elements["c"].visible is True


@pytest.mark.unit
def test_merge_ignores_records_without_key():
    elements = merge_records([{"type": "Text"}, {"key": "", "type": "Text"}, {"key": 3}])
    assert elements == {}


@pytest.mark.unit
def test_unchanged_merge_keeps_identity():
    elements = merge_records([{"key": "t", "type": "Text", "props": {"content": "x"}}])
    before = elements["t"]
    merge_record(elements, {"key": "t", "props": {"content": "x"}})
    assert elements["t"] is before


@pytest.mark.unit
def test_merge_accepts_elements():
    elements = merge_records([UIElement(key="t", type="Text"), UIElement(key="t", props={"content": "y"})])
    assert elements["t"].type == "Text"
    assert elements["t"].props == {"content": "y"}


record_strategy = st.fixed_dictionaries(
    {"key": st.sampled_from(["a", "b", "c"])},
    optional={
        "type": st.sampled_from(["Card", "Text"]),
        "props": st.dictionaries(st.sampled_from(["x", "y"]), st.integers(), max_size=2),
        "children": st.lists(st.sampled_from(["a", "b", "c", "d"]), max_size=3),
    },
)


@given(st.lists(record_strategy, max_size=12), st.integers(min_value=0, max_value=12))
def test_incremental_equals_at_once(records, cut):
    """Property test: merging in two batches equals merging all at once."""
    at_once = merge_records(records)
    incremental = merge_records(records[cut:], merge_records(records[:cut]))
    assert incremental == at_once


@given(st.lists(record_strategy, min_size=1, max_size=12))
def test_flat_to_tree_is_idempotent(records):
    """Property test: building twice from the same map gives equal trees."""
    elements = merge_records(records)
    root = records[0]["key"]
    assert flat_to_tree(elements, root) == flat_to_tree(elements, root)


# ============================================================================
# flat_to_tree
# ============================================================================

@pytest.mark.unit
def test_missing_children_become_placeholders(catalog):
    elements = merge_records([{"key": "r", "type": "Card", "props": {"title": "t"}, "children": ["a"]}])
    tree = flat_to_tree(elements, "r", catalog)

    assert tree.root.status is ElementStatus.VALID
    assert tree.root.children[0].is_placeholder
    assert tree.keys_with("placeholder") == ["a"]


@pytest.mark.unit
def test_cycles_and_duplicates_cut():
    elements = merge_records(
        [
            {"key": "r", "type": "Card", "children": ["a", "b"]},
            {"key": "a", "type": "Card", "children": ["r", "b"]},
            {"key": "b", "type": "Text"},
        ]
    )
    tree = flat_to_tree(elements, "r")

    assert [node.key for node in tree.walk()] == ["r", "a", "b"]
    assert tree.keys_with("cycle") == ["r"]
    assert tree.keys_with("duplicate") == ["b"]


@pytest.mark.unit
def test_self_reference_is_a_cycle():
    tree = flat_to_tree(merge_records([{"key": "r", "type": "Card", "children": ["r"]}]), "r")
    assert tree.root.children == ()
    assert tree.keys_with("cycle") == ["r"]


@pytest.mark.unit
def test_deep_chain_builds_without_recursion_limit():
    depth = 1200
    records = [{"key": f"n{i}", "type": "Card", "children": [f"n{i + 1}"]} for i in range(depth)]
    assembler = StreamAssembler()

    assert assembler.push_many(records) == depth

    nodes = list(assembler.tree.walk())
    assert len(nodes) == depth + 1
    assert nodes[0].key == "n0"
    assert nodes[-1].is_placeholder
    assert assembler.tree.keys_with("placeholder") == [f"n{depth}"]


@pytest.mark.unit
def test_failed_push_leaves_map_and_tree_unchanged(catalog, sample_records):
    assembler = StreamAssembler(catalog)
    assembler.push_many(sample_records[:1])
    tree = assembler.tree

    def broken_batch():
        yield sample_records[1]
        raise ValueError("connection dropped")

    with pytest.raises(ValueError):
        assembler.push_many(broken_batch())

    assert set(assembler.elements) == {"root"}
    assert assembler.tree is tree
    assert assembler.push_many(sample_records[1:]) == 2
    assert [node.key for node in assembler.tree.walk()] == ["root", "btn", "txt"]


@pytest.mark.unit
def test_no_root_gives_empty_tree():
    tree = flat_to_tree({}, None)
    assert tree.root is None
    assert list(tree.walk()) == []


@pytest.mark.unit
def test_find():
    elements = merge_records([{"key": "r", "type": "Card", "children": ["x"]}, {"key": "x", "type": "Text"}])
    assert flat_to_tree(elements, "r").find("x").element.type == "Text"


# ============================================================================
# StreamAssembler
# ============================================================================

@pytest.mark.unit
def test_root_is_first_record(catalog, sample_records):
    assembler = StreamAssembler(catalog)
    assembler.push_many(sample_records)
    assert assembler.root == "root"
    assert [n.key for n in assembler.tree.walk()] == ["root", "btn", "txt"]


@pytest.mark.unit
def test_explicit_root_wins(catalog):
    assembler = StreamAssembler(catalog)
    assembler.push({"key": "child", "type": "Text", "props": {"content": "x"}})
    assembler.set_root("main")
    assert assembler.tree.root.key == "main"
    assert assembler.tree.root.is_placeholder


@pytest.mark.unit
def test_push_many_notifies_once(catalog, sample_records):
    assembler = StreamAssembler(catalog)
    seen = []
    assembler.subscribe(seen.append)

    assembler.push_many(sample_records)
    assert len(seen) == 1
    assert seen[0] is assembler.tree


@pytest.mark.unit
def test_unchanged_subtrees_keep_identity(catalog, sample_records):
    assembler = StreamAssembler(catalog)
    assembler.push_many(sample_records)
    first = assembler.tree
    assembler.push({"key": "txt", "props": {"content": "Changed"}})
    second = assembler.tree

    assert second.find("btn") is first.find("btn")
    assert second.find("txt") is not first.find("txt")
    assert second.root is not first.root


@pytest.mark.unit
def test_incomplete_then_valid(catalog):
    assembler = StreamAssembler(catalog)
    assembler.push({"key": "f", "type": "TextField", "props": {"label": "Email"}})
    assert assembler.tree.root.status is ElementStatus.INCOMPLETE

    assembler.push({"key": "f", "props": {"path": "/form/email"}})
    assert assembler.tree.root.status is ElementStatus.VALID


@pytest.mark.unit
def test_finish_report(catalog):
    assembler = StreamAssembler(catalog)
    assembler.push_many(
        [
            {"key": "r", "type": "Card", "props": {"title": "t"}, "children": ["a", "b", "c"]},
            {"key": "b", "type": "Video"},
            {"key": "c", "type": "Text"},
        ]
    )
    report = assembler.finish(trailing='{"key": "d"')

    assert not report.complete
    assert report.records == 3
    assert report.placeholders == ("a",)
    assert report.invalid == ("b",)
    assert report.incomplete == ("c",)
    assert report.trailing == '{"key": "d"'

    assert assembler.push({"key": "a", "type": "Text"}) is False
    assert assembler.tree.root.key == "r"


@pytest.mark.unit
def test_finish_complete(catalog, sample_records):
    assembler = StreamAssembler(catalog)
    assembler.push_many(sample_records)
    assert assembler.finish().complete
    assert assembler.closed


@pytest.mark.unit
def test_to_ui_tree(sample_records):
    assembler = StreamAssembler()
    assembler.push_many(sample_records)
    flat = assembler.to_ui_tree()
    assert flat.root == "root"
    assert set(flat.elements) == {"root", "btn", "txt"}


@pytest.mark.unit
@pytest.mark.benchmark
def test_assembler_performance(benchmark, catalog):
    """Benchmark record-by-record assembly of a wide tree."""
    records = [{"key": "r", "type": "Card", "props": {"title": "t"}, "children": [f"t{i}" for i in range(150)]}]
    records += [{"key": f"t{i}", "type": "Text", "props": {"content": str(i)}} for i in range(150)]

    def assemble():
        assembler = StreamAssembler(catalog)
        for record in records:
            assembler.push(record)
        return assembler.finish()

    assert benchmark(assemble).complete


# ============================================================================
# load_tree
# ============================================================================

@pytest.mark.unit
def test_load_tree_jsonl(sample_jsonl):
    tree = load_tree(sample_jsonl)
    assert tree.root == "root"
    assert tree.elements["btn"].type == "Button"


@pytest.mark.unit
def test_load_tree_object_with_repair():
    text = '```json\n{"root": "a", "elements": {"a": {"type": "Text", "props": {"content": "x",},},},}\n```'
    tree = load_tree(text)
    assert tree.root == "a"
    assert tree.elements["a"].props == {"content": "x"}


@pytest.mark.unit
def test_load_tree_without_records():
    with pytest.raises(JSONParseError):
        load_tree("no json here")
