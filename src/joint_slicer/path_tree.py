"""
Sparse hierarchical container keyed by integer-tuple paths.

Each path maps to an ordered list of items. Counts of joints, members or
layers are derived by scanning the stored keys, so they always reflect what
has actually been appended.
"""

from __future__ import annotations

from typing import Dict, Generic, Iterable, Iterator, List, Sequence, Tuple, TypeVar

from joint_slicer.errors import PathIndexError

T = TypeVar("T")

Path = Tuple[int, ...]


def as_path(path: Sequence[int]) -> Path:
    """Normalise a sequence of indices into a Path tuple."""
    result = tuple(int(i) for i in path)
    if any(i < 0 for i in result):
        raise ValueError(f"Path indices must be non-negative: {result}")
    return result


class PathTree(Generic[T]):
    """Mapping from Path to an ordered, non-empty list of items."""

    def __init__(self) -> None:
        self._branches: Dict[Path, List[T]] = {}

    def append(self, path: Sequence[int], item: T) -> None:
        self._branches.setdefault(as_path(path), []).append(item)

    def append_range(self, path: Sequence[int], items: Iterable[T]) -> None:
        items = list(items)
        if not items:
            return
        self._branches.setdefault(as_path(path), []).extend(items)

    def branch(self, path: Sequence[int]) -> List[T]:
        """Items stored at *path*, or an empty list when the path is absent."""
        return list(self._branches.get(as_path(path), ()))

    def item_at(self, path: Sequence[int], index: int) -> T:
        key = as_path(path)
        items = self._branches.get(key, [])
        if index < 0 or index >= len(items):
            raise PathIndexError(
                f"Index {index} out of range for path {key} ({len(items)} items)"
            )
        return items[index]

    def values_at_depth(self, prefix: Sequence[int], depth: int) -> List[int]:
        """Sorted distinct indices at *depth* among paths starting with *prefix*."""
        prefix = as_path(prefix)
        n = len(prefix)
        found = {
            key[depth]
            for key in self._branches
            if len(key) > depth and key[:n] == prefix
        }
        return sorted(found)

    def count_at_depth(self, prefix: Sequence[int], depth: int) -> int:
        return len(self.values_at_depth(prefix, depth))

    def paths(self) -> List[Path]:
        return sorted(self._branches)

    def items(self) -> Iterator[Tuple[Path, List[T]]]:
        for key in self.paths():
            yield key, list(self._branches[key])

    def item_count(self) -> int:
        return sum(len(items) for items in self._branches.values())

    def merge(self, other: "PathTree[T]") -> None:
        """Append every branch of *other* onto this tree, in path order."""
        for key, items in other.items():
            self.append_range(key, items)

    def __contains__(self, path: object) -> bool:
        try:
            return as_path(path) in self._branches  # type: ignore[arg-type]
        except (TypeError, ValueError):
            return False

    def __len__(self) -> int:
        return len(self._branches)

    def __repr__(self) -> str:
        return f"PathTree(paths={len(self._branches)}, items={self.item_count()})"
