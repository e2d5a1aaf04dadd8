"""
Conversion between nested records and flat dot-path maps.

Lists are sampled by their first element only: ``{"tags": ["a", "b"]}``
flattens to ``{"tags.0": "a"}``. Records whose lists hold more than one
element therefore do not survive a flatten/unflatten round trip.
"""

from typing import Dict, Any, List, Union

Container = Union[Dict[str, Any], List[Any]]


def _join(prefix: str, key: Any) -> str:
    return f"{prefix}.{key}" if prefix else str(key)


def flatten_object(record: Any, prefix: str = "") -> Dict[str, Any]:
    """
    Flatten a nested record into an ordered map of dot-paths to leaf values.

    Args:
        record: Nested dict to flatten (anything else yields no entries)
        prefix: Path prepended to every key

    Returns:
        Dict keyed by dot-path, in the record's key order
    """
    result: Dict[str, Any] = {}
    if not isinstance(record, dict):
        return result

    for key, value in record.items():
        path = _join(prefix, key)

        if isinstance(value, dict):
            result.update(flatten_object(value, path))
        elif isinstance(value, list):
            if not value:
                continue
            first = value[0]
            if isinstance(first, dict):
                result.update(flatten_object(first, f"{path}.0"))
            else:
                result[f"{path}.0"] = first
        else:
            result[path] = value

    return result


def is_index(segment: str) -> bool:
    """True when a path segment addresses a list slot."""
    return segment.isascii() and segment.isdigit()


def _descend(container: Container, segment: str, next_segment: str, path: str) -> Container:
    child_factory = list if is_index(next_segment) else dict

    if isinstance(container, list):
        if not is_index(segment):
            raise ValueError(f"Path {path!r} uses key {segment!r} on a list")
        index = int(segment)
        while len(container) <= index:
            container.append(None)
        if container[index] is None:
            container[index] = child_factory()
        child = container[index]
    else:
        if segment not in container:
            container[segment] = child_factory()
        child = container[segment]

    if not isinstance(child, (dict, list)):
        raise ValueError(f"Path {path!r} descends through scalar value at {segment!r}")
    return child


def _assign(container: Container, segment: str, value: Any, path: str) -> None:
    if isinstance(container, list):
        if not is_index(segment):
            raise ValueError(f"Path {path!r} uses key {segment!r} on a list")
        index = int(segment)
        while len(container) <= index:
            container.append(None)
        container[index] = value
    else:
        container[segment] = value


def unflatten_object(flat: Dict[str, Any]) -> Dict[str, Any]:
    """
    Rebuild a nested record from a flat dot-path map.

    A segment that is a non-negative integer makes its parent a list,
    any other segment makes it a dict.
    """
    row: Dict[str, Any] = {}
    for path, value in flat.items():
        parts = path.split(".")
        current: Container = row
        for position, part in enumerate(parts[:-1]):
            current = _descend(current, part, parts[position + 1], path)
        _assign(current, parts[-1], value, path)
    return row


def get_nested_value(record: Any, path: str) -> Any:
    """Look up a dot-path inside a nested record; None when absent."""
    current = record
    for part in path.split("."):
        if isinstance(current, list) and is_index(part):
            index = int(part)
            current = current[index] if index < len(current) else None
        elif isinstance(current, dict):
            current = current.get(part)
        else:
            return None
        if current is None:
            return None
    return current
