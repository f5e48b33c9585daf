"""
Rendering contract.

Walks an assembled tree and hands each renderable node to the host's
component registry. What a component returns (widgets, HTML strings, dicts)
is up to the host.
"""

from collections.abc import Awaitable, Iterator, Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable

from .actions import Outcome
from .catalog import ElementStatus, ValidElement
from .core import get_logger
from .models import Action
from .streaming import AssembledTree, TreeNode
from .visibility import evaluate

if TYPE_CHECKING:
    from .session import Session

logger = get_logger(__name__)

ActionCallback = Callable[[Action | dict[str, Any]], Awaitable[Outcome]]


@dataclass(frozen=True)
class RenderProps:
    """What a registry component receives."""

    element: ValidElement
    children: list[Any] = field(default_factory=list)
    loading: bool = False
    on_action: ActionCallback | None = None

    @property
    def props(self) -> Any:
        return self.element.props


Component = Callable[[RenderProps], Any]
Fallback = Callable[[TreeNode], Any]


@dataclass
class _RenderFrame:
    node: TreeNode
    component: Component
    pending: Iterator[TreeNode]
    children: list[Any] = field(default_factory=list)


def render(
    tree: AssembledTree | TreeNode | None,
    registry: Mapping[str, Component],
    session: "Session",
    loading: bool = False,
    fallback: Fallback | None = None,
) -> Any:
    """
    Render a tree through the registry.

    Children render before their parent, in order. Invalid, hidden and
    unregistered nodes drop out together with their subtree.

    Args:
        tree: Assembled tree (or a subtree node)
        registry: Component type -> render function
        session: Session supplying data, auth and action dispatch
        loading: Passed through to every component (e.g. while streaming)
        fallback: Called for placeholder and incomplete nodes; skipped if None

    Returns:
        Whatever the root component returned, or None
    """
    root = tree.root if isinstance(tree, AssembledTree) else tree
    if root is None:
        return None

    context = session.visibility_context()

    def on_action(action: Action | dict[str, Any]) -> Awaitable[Outcome]:
        return session.dispatcher.dispatch(action, snapshot=session.store.snapshot())

    def expand(node: TreeNode) -> tuple[Any, Component | None]:
        """Output of a node that renders no component, or the component to render it with."""
        if node.status is ElementStatus.INVALID:
            return None, None
        if node.status is not ElementStatus.VALID:
            return (fallback(node) if fallback is not None else None), None

        valid = node.valid
        if valid is None:
            # assembled without a catalog: props were never validated
            logger.debug("render_unvalidated", key=node.key)
            return None, None
        if valid.visible is not None and not evaluate(valid.visible, context):
            return None, None

        component = registry.get(valid.type)
        if component is None:
            logger.warning("component_not_registered", key=node.key, type=valid.type)
        return None, component

    output, component = expand(root)
    if component is None:
        return output

    frames = [_RenderFrame(root, component, iter(root.children))]
    while True:
        frame = frames[-1]
        for child in frame.pending:
            output, component = expand(child)
            if component is not None:
                frames.append(_RenderFrame(child, component, iter(child.children)))
                break
            if output is not None:
                frame.children.append(output)
        else:
            frames.pop()
            output = frame.component(RenderProps(frame.node.valid, frame.children, loading, on_action))
            if not frames:
                return output
            if output is not None:
                frames[-1].children.append(output)
