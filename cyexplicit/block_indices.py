"""
Block index sets over flat vectors.

A :class:`BlockIndices` is an ordered set of disjoint ``(start, length)``
intervals. Intervals are merged on insertion so that no two stored intervals
overlap or touch, which keeps every set operation linear in the number of
intervals.

Example:
    >>> b = BlockIndices([(0, 2)]).add(2, 1).add(5, 2)
    >>> list(b)
    [(0, 3), (5, 2)]
    >>> b.nb_indices()
    5
"""

from __future__ import annotations

import numpy as np
from beartype import beartype
from beartype.typing import Iterable, Iterator, List, Tuple, Union

__all__ = ["BlockIndices", "BlockView", "MatrixBlocks", "MatrixBlockView"]

INDEX_TYPE = Union[int, np.integer]


@beartype
class BlockIndices:
    """Ordered set of disjoint, non-adjacent ``(start, length)`` intervals."""

    def __init__(self, intervals: Iterable[Tuple[INDEX_TYPE, INDEX_TYPE]] = ()):
        self._blocks: List[Tuple[int, int]] = []
        for start, length in intervals:
            self.add(start, length)

    def add(self, start: INDEX_TYPE, length: INDEX_TYPE) -> BlockIndices:
        """Insert ``[start, start + length)``, merging touching intervals.

        Returns self so that calls can be chained. A zero length is a no-op.
        """
        start = int(start)
        length = int(length)
        if start < 0 or length < 0:
            raise ValueError(f"invalid interval start={start}, length={length}")
        if length == 0:
            return self

        end = start + length
        merged: List[Tuple[int, int]] = []
        inserted = False
        for s, l in self._blocks:
            e = s + l
            if e < start:
                merged.append((s, l))
            elif end < s:
                if not inserted:
                    merged.append((start, end - start))
                    inserted = True
                merged.append((s, l))
            else:
                start = min(start, s)
                end = max(end, e)
        if not inserted:
            merged.append((start, end - start))
        self._blocks = merged
        return self

    def copy(self) -> BlockIndices:
        other = BlockIndices()
        other._blocks = list(self._blocks)
        return other

    def nb_indices(self) -> int:
        """total number of covered indices"""
        return sum(l for _, l in self._blocks)

    def nb_blocks(self) -> int:
        return len(self._blocks)

    def end(self) -> int:
        """one past the largest covered index, 0 when empty"""
        if not self._blocks:
            return 0
        s, l = self._blocks[-1]
        return s + l

    def indices(self) -> np.ndarray:
        """flat array of covered indices in interval order"""
        if not self._blocks:
            return np.zeros(0, dtype=int)
        return np.concatenate([np.arange(s, s + l) for s, l in self._blocks])

    def __len__(self) -> int:
        return self.nb_indices()

    def __iter__(self) -> Iterator[Tuple[int, int]]:
        return iter(self._blocks)

    def __contains__(self, index: INDEX_TYPE) -> bool:
        return any(s <= index < s + l for s, l in self._blocks)

    def __eq__(self, other: object):
        if not isinstance(other, BlockIndices):
            return NotImplemented
        return self._blocks == other._blocks

    __hash__ = None

    def __repr__(self) -> str:
        return "BlockIndices({:s})".format(repr(self._blocks))

    # set operations

    def overlaps(self, other: BlockIndices) -> bool:
        i = j = 0
        a, b = self._blocks, other._blocks
        while i < len(a) and j < len(b):
            s1, l1 = a[i]
            s2, l2 = b[j]
            if s1 < s2 + l2 and s2 < s1 + l1:
                return True
            if s1 + l1 <= s2 + l2:
                i += 1
            else:
                j += 1
        return False

    def intersection(self, other: BlockIndices) -> BlockIndices:
        result = BlockIndices()
        i = j = 0
        a, b = self._blocks, other._blocks
        while i < len(a) and j < len(b):
            s1, l1 = a[i]
            s2, l2 = b[j]
            start = max(s1, s2)
            end = min(s1 + l1, s2 + l2)
            if start < end:
                result._blocks.append((start, end - start))
            if s1 + l1 <= s2 + l2:
                i += 1
            else:
                j += 1
        return result

    def union(self, other: BlockIndices) -> BlockIndices:
        result = self.copy()
        for s, l in other:
            result.add(s, l)
        return result

    def difference(self, other: BlockIndices) -> BlockIndices:
        """indices of self that are not in other"""
        result = BlockIndices()
        j = 0
        b = other._blocks
        for s, l in self._blocks:
            start, end = s, s + l
            # skip intervals of other entirely to the left
            while j < len(b) and b[j][0] + b[j][1] <= start:
                j += 1
            k = j
            while k < len(b) and b[k][0] < end:
                s2, l2 = b[k]
                if s2 > start:
                    result._blocks.append((start, s2 - start))
                start = max(start, s2 + l2)
                if start >= end:
                    break
                k += 1
            if start < end:
                result._blocks.append((start, end - start))
        return result

    def complement(self, size: INDEX_TYPE) -> BlockIndices:
        """indices of [0, size) not covered by self"""
        return BlockIndices([(0, size)]).difference(self)

    def contains(self, other: BlockIndices) -> bool:
        return other.difference(self).nb_indices() == 0

    # views

    def rview(self, array: np.ndarray) -> BlockView:
        """view restricted to the covered rows of a vector or matrix"""
        return BlockView(self, array, axis=0)

    def cview(self, array: np.ndarray) -> BlockView:
        """view restricted to the covered columns of a matrix"""
        if array.ndim != 2:
            raise ValueError(f"cview requires a matrix, got {array.ndim} dimensions")
        return BlockView(self, array, axis=1)


@beartype
class BlockView:
    """Rows (axis 0) or columns (axis 1) of an array selected by a BlockIndices."""

    def __init__(self, blocks: BlockIndices, array: np.ndarray, axis: int):
        if blocks.end() > array.shape[axis]:
            raise ValueError(
                f"{blocks} out of range for axis {axis} of size {array.shape[axis]}"
            )
        self.blocks = blocks
        self.array = array
        self.axis = axis

    @property
    def shape(self) -> Tuple[int, ...]:
        shape = list(self.array.shape)
        shape[self.axis] = self.blocks.nb_indices()
        return tuple(shape)

    def eval(self) -> np.ndarray:
        """gathered copy of the viewed entries"""
        return np.take(self.array, self.blocks.indices(), axis=self.axis)

    def write_to(self, out: np.ndarray) -> None:
        out[...] = self.eval()

    def assign(self, values) -> None:
        """scatter values into the viewed entries of the underlying array"""
        idx = self.blocks.indices()
        if self.axis == 0:
            self.array[idx] = values
        else:
            self.array[:, idx] = values

    def __array__(self, dtype=None, copy=None):
        return self.eval() if dtype is None else self.eval().astype(dtype)

    def __repr__(self) -> str:
        return "BlockView({:s}, axis={:d})".format(repr(self.blocks), self.axis)


@beartype
class MatrixBlocks:
    """A pair of row and column BlockIndices selecting a sub-matrix."""

    def __init__(self, rows: BlockIndices, cols: BlockIndices):
        self.rows = rows
        self.cols = cols

    def view(self, matrix: np.ndarray) -> MatrixBlockView:
        return MatrixBlockView(self, matrix)

    def __repr__(self) -> str:
        return "MatrixBlocks(rows={:s}, cols={:s})".format(
            repr(self.rows), repr(self.cols)
        )


@beartype
class MatrixBlockView:
    def __init__(self, blocks: MatrixBlocks, matrix: np.ndarray):
        if matrix.ndim != 2:
            raise ValueError(f"expected a matrix, got {matrix.ndim} dimensions")
        if blocks.rows.end() > matrix.shape[0] or blocks.cols.end() > matrix.shape[1]:
            raise ValueError(f"{blocks} out of range for matrix of shape {matrix.shape}")
        self.blocks = blocks
        self.matrix = matrix

    @property
    def shape(self) -> Tuple[int, int]:
        return (self.blocks.rows.nb_indices(), self.blocks.cols.nb_indices())

    def _ix(self):
        return np.ix_(self.blocks.rows.indices(), self.blocks.cols.indices())

    def eval(self) -> np.ndarray:
        return self.matrix[self._ix()]

    def write_to(self, out: np.ndarray) -> None:
        out[...] = self.eval()

    def assign(self, values) -> None:
        self.matrix[self._ix()] = values

    def __array__(self, dtype=None, copy=None):
        return self.eval() if dtype is None else self.eval().astype(dtype)
