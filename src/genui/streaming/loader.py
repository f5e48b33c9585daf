"""Non-streaming loading of a complete model response."""

from typing import Any

from ..core import JSONParseError, extract_json, get_logger
from ..models import UITree
from .assembler import merge_records
from .parser import RecordParser

logger = get_logger(__name__)


def load_tree(text: str, repair: bool = True) -> UITree:
    """
    Parse a whole response into a flat tree.

    The incremental parser is tried first so JSON Lines, record arrays and
    tree objects all load the same way they stream. If it finds nothing, the
    text is extracted and (optionally) repaired as a single JSON value.

    Args:
        text: Full response text, possibly wrapped in markdown fences
        repair: Attempt to repair slightly malformed JSON

    Returns:
        UITree with merged elements and the root key

    Raises:
        JSONParseError: If no element records can be recovered
    """
    parser = RecordParser()
    records = parser.feed(text)
    root = parser.root

    if not records:
        value = extract_json(text, repair=repair)
        records, root = _records_from_value(value)
        logger.debug("tree_loaded_with_fallback", records=len(records))

    if not records:
        raise JSONParseError("No element records found in response")

    elements = merge_records(records)
    if root is None and elements:
        root = next(iter(elements))
    return UITree(root=root, elements=elements)


def _records_from_value(value: Any) -> tuple[list[dict[str, Any]], str | None]:
    if isinstance(value, list):
        return [item for item in value if isinstance(item, dict)], None

    if not isinstance(value, dict):
        return [], None

    if "elements" in value:
        root = value.get("root") if isinstance(value.get("root"), str) else None
        elements = value["elements"]
        if isinstance(elements, dict):
            records = [
                {"key": key, **element} if "key" not in element else element
                for key, element in elements.items()
                if isinstance(element, dict)
            ]
        elif isinstance(elements, list):
            records = [item for item in elements if isinstance(item, dict)]
        else:
            records = []
        return records, root

    return [value], None
