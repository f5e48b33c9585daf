"""Stream assembler - flat element records to a stable tree."""

from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Callable, Literal

from ..catalog import Catalog, ElementStatus, ValidElement, classify_element
from ..core import ElementValidationError, get_logger
from ..models import UIElement, UITree

logger = get_logger(__name__)

IssueKind = Literal["placeholder", "incomplete", "invalid", "cycle", "duplicate"]


# ============================================================================
# Tree types
# ============================================================================

@dataclass(frozen=True)
class TreeNode:
    """One node of the assembled tree."""

    key: str
    status: ElementStatus
    element: UIElement | None
    children: tuple["TreeNode", ...] = ()
    valid: ValidElement | None = None
    error: ElementValidationError | None = field(default=None, compare=False)

    @property
    def is_placeholder(self) -> bool:
        return self.status is ElementStatus.PLACEHOLDER

    @property
    def renderable(self) -> bool:
        return self.status is ElementStatus.VALID


@dataclass(frozen=True)
class TreeIssue:
    """Something that keeps part of the tree from rendering."""

    key: str
    kind: IssueKind
    message: str = ""


@dataclass(frozen=True)
class AssembledTree:
    """Rooted tree plus the problems found while building it."""

    root: TreeNode | None = None
    issues: tuple[TreeIssue, ...] = ()

    def walk(self) -> Iterator[TreeNode]:
        """Depth-first, pre-order."""
        stack = [self.root] if self.root is not None else []
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))

    def find(self, key: str) -> TreeNode | None:
        return next((node for node in self.walk() if node.key == key), None)

    def keys_with(self, kind: IssueKind) -> list[str]:
        return [issue.key for issue in self.issues if issue.kind == kind]


@dataclass(frozen=True)
class StreamReport:
    """End-of-stream summary."""

    records: int
    placeholders: tuple[str, ...] = ()
    incomplete: tuple[str, ...] = ()
    invalid: tuple[str, ...] = ()
    cut: tuple[str, ...] = ()  # cycles and repeated references
    trailing: str = ""
    aborted: bool = False

    @property
    def complete(self) -> bool:
        return not (self.placeholders or self.incomplete or self.invalid or self.cut or self.trailing)


# ============================================================================
# Merge
# ============================================================================

def merge_record(elements: dict[str, UIElement], record: Mapping[str, Any] | UIElement) -> UIElement | None:
    """
    Merge one record into the flat map by key.

    type, children and visible overwrite when present; props merge by prop
    name; fields absent from the record keep their previous value. An
    unchanged element keeps its identity.

    Returns:
        The stored element, or None if the record has no usable key
    """
    if isinstance(record, UIElement):
        record = record.model_dump(exclude_unset=True)

    key = record.get("key")
    if not isinstance(key, str) or not key:
        logger.warning("record_without_key", fields=sorted(record)[:5])
        return None

    existing = elements.get(key)
    updates: dict[str, Any] = {}

    if "type" in record:
        if isinstance(record["type"], str) and record["type"]:
            updates["type"] = record["type"]
        else:
            logger.warning("record_bad_field", key=key, field="type")

    if "props" in record:
        if isinstance(record["props"], dict):
            base = existing.props if existing is not None else {}
            updates["props"] = {**base, **record["props"]}
        else:
            logger.warning("record_bad_field", key=key, field="props")

    if "children" in record:
        if isinstance(record["children"], list):
            updates["children"] = [c for c in record["children"] if isinstance(c, str) and c]
        else:
            logger.warning("record_bad_field", key=key, field="children")

    if "visible" in record:
        updates["visible"] = record["visible"]

    if existing is None:
        element = UIElement(key=key, **updates)
    elif all(getattr(existing, name) == value for name, value in updates.items()):
        return existing
    else:
        element = existing.model_copy(update=updates)

    elements[key] = element
    return element


def merge_records(
    records: Iterable[Mapping[str, Any] | UIElement], elements: dict[str, UIElement] | None = None
) -> dict[str, UIElement]:
    """Merge records in order into a (new or given) flat map."""
    elements = {} if elements is None else elements
    for record in records:
        merge_record(elements, record)
    return elements


# ============================================================================
# Tree building
# ============================================================================

@dataclass
class _BuildFrame:
    key: str
    element: UIElement | None
    pending: Iterator[str]
    children: list[TreeNode] = field(default_factory=list)


def flat_to_tree(
    elements: Mapping[str, UIElement],
    root: str | None,
    catalog: Catalog | None = None,
    cache: dict[str, TreeNode] | None = None,
) -> AssembledTree:
    """
    Build the rooted tree reachable from root.

    Pure and idempotent for a given flat map. Children that have not
    arrived become placeholder nodes. A key reachable a second time (cycle
    or repeated reference) is cut and reported. Depth is not limited.

    Args:
        elements: Flat element map
        root: Root key
        catalog: Catalog used to classify elements; without one every
            typed element counts as valid
        cache: Previous nodes by key; reused when nothing below them changed

    Returns:
        AssembledTree
    """
    if root is None:
        return AssembledTree()

    issues: list[TreeIssue] = []
    seen: set[str] = set()
    path: set[str] = set()
    fresh: dict[str, TreeNode] = {}
    previous = cache if cache is not None else {}

    def enter(key: str) -> _BuildFrame:
        seen.add(key)
        path.add(key)
        element = elements.get(key)
        return _BuildFrame(key, element, iter(element.children if element is not None else ()))

    def leave(frame: _BuildFrame) -> TreeNode:
        path.discard(frame.key)
        cached = previous.get(frame.key)
        if (
            cached is not None
            and cached.element is frame.element
            and len(cached.children) == len(frame.children)
            and all(a is b for a, b in zip(cached.children, frame.children))
        ):
            node = cached
        else:
            node = _make_node(frame.key, frame.element, tuple(frame.children), catalog)

        if node.status is not ElementStatus.VALID:
            message = str(node.error) if node.error is not None else ""
            issues.append(TreeIssue(frame.key, node.status.value, message))
        fresh[frame.key] = node
        return node

    stack = [enter(root)]
    root_node: TreeNode | None = None
    while stack:
        frame = stack[-1]
        for child_key in frame.pending:
            if child_key in path:
                issues.append(TreeIssue(child_key, "cycle", f"'{frame.key}' refers back to '{child_key}'"))
                continue
            if child_key in seen:
                issues.append(TreeIssue(child_key, "duplicate", f"'{child_key}' already placed"))
                continue
            stack.append(enter(child_key))
            break
        else:
            stack.pop()
            node = leave(frame)
            if stack:
                stack[-1].children.append(node)
            else:
                root_node = node

    if cache is not None:
        cache.clear()
        cache.update(fresh)

    return AssembledTree(root_node, tuple(issues))


def _make_node(
    key: str, element: UIElement | None, children: tuple[TreeNode, ...], catalog: Catalog | None
) -> TreeNode:
    if element is None:
        return TreeNode(key, ElementStatus.PLACEHOLDER, None, children)
    if catalog is None:
        status = ElementStatus.VALID if element.type else ElementStatus.INCOMPLETE
        return TreeNode(key, status, element, children)

    result = classify_element(catalog, element)
    return TreeNode(key, result.status, element, children, result.valid, result.error)


# ============================================================================
# Assembler
# ============================================================================

TreeSubscriber = Callable[[AssembledTree], None]


class StreamAssembler:
    """
    Maintains the flat element map for one generation and its tree.

    Each push merges, rebuilds and notifies subscribers as a single step,
    so observers never see a half-merged element.
    """

    def __init__(self, catalog: Catalog | None = None, root: str | None = None) -> None:
        self.catalog = catalog
        self._root = root
        self._elements: dict[str, UIElement] = {}
        self._cache: dict[str, TreeNode] = {}
        self._tree = AssembledTree()
        self._subscribers: list[TreeSubscriber] = []
        self._records = 0
        self._closed = False

    @property
    def root(self) -> str | None:
        return self._root

    @property
    def elements(self) -> Mapping[str, UIElement]:
        return MappingProxyType(self._elements)

    @property
    def tree(self) -> AssembledTree:
        return self._tree

    @property
    def closed(self) -> bool:
        return self._closed

    def subscribe(self, callback: TreeSubscriber) -> Callable[[], None]:
        """Register callback(tree) for every rebuild."""
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def set_root(self, key: str) -> None:
        """Declare the root key explicitly."""
        if self._closed or key == self._root:
            return
        tree = flat_to_tree(self._elements, key, self.catalog, self._cache)
        self._root = key
        self._publish(tree)

    def push(self, record: Mapping[str, Any] | UIElement) -> bool:
        """Merge one record and rebuild. Returns False if it was ignored."""
        return self.push_many([record]) == 1

    def push_many(
        self, records: Iterable[Mapping[str, Any] | UIElement], root: str | None = None
    ) -> int:
        """
        Merge records in order, then rebuild once.

        Args:
            records: Element records in arrival order
            root: Root key announced alongside these records, if any

        Returns:
            Number of records merged
        """
        if self._closed:
            logger.warning("push_after_close")
            return 0

        # Merge into a copy; the map and tree are swapped in together
        elements = dict(self._elements)
        root_key = root if root is not None else self._root
        rooted = root_key != self._root

        merged = 0
        for record in records:
            element = merge_record(elements, record)
            if element is None:
                continue
            merged += 1
            if root_key is None:
                root_key = element.key

        if merged or rooted:
            tree = flat_to_tree(elements, root_key, self.catalog, self._cache)
            self._elements, self._root = elements, root_key
            self._records += merged
            self._publish(tree)
        return merged

    def rebuild(self) -> AssembledTree:
        """Recompute the tree from the current flat map."""
        return self._rebuild()

    def finish(self, trailing: str = "", aborted: bool = False) -> StreamReport:
        """
        Close the generation and report what is still not renderable.

        The tree stays readable after finishing; further pushes are ignored.
        """
        self._closed = True
        tree = self._tree
        cut = tree.keys_with("cycle") + tree.keys_with("duplicate")
        report = StreamReport(
            records=self._records,
            placeholders=tuple(tree.keys_with("placeholder")),
            incomplete=tuple(tree.keys_with("incomplete")),
            invalid=tuple(tree.keys_with("invalid")),
            cut=tuple(cut),
            trailing=trailing,
            aborted=aborted,
        )
        if report.complete:
            logger.info("stream_finished", records=report.records)
        else:
            logger.warning(
                "stream_finished_incomplete",
                records=report.records,
                placeholders=list(report.placeholders),
                incomplete=list(report.incomplete),
                invalid=list(report.invalid),
                aborted=aborted,
            )
        return report

    def to_ui_tree(self) -> UITree:
        """Flat snapshot (root + elements)."""
        return UITree(root=self._root, elements=dict(self._elements))

    def _rebuild(self) -> AssembledTree:
        return self._publish(flat_to_tree(self._elements, self._root, self.catalog, self._cache))

    def _publish(self, tree: AssembledTree) -> AssembledTree:
        self._tree = tree
        for callback in list(self._subscribers):
            try:
                callback(self._tree)
            except Exception as e:
                logger.warning("tree_subscriber_failed", error=str(e))
        return self._tree
