import logging

import numpy as np

logger = logging.getLogger(__name__)


class Tape:
    """Byte cells backed by a numpy uint8 array.

    Grows to the right in chunks of growth_chunk cells when growable is set.
    """

    def __init__(self, length: int, growable: bool = True, growth_chunk: int = 1024):
        self.cells = np.zeros(length, dtype=np.uint8)
        self.growable = growable
        self.growth_chunk = growth_chunk

    def __len__(self) -> int:
        return len(self.cells)

    def __getitem__(self, index: int) -> int:
        return int(self.cells[index])

    def __setitem__(self, index: int, value: int) -> None:
        self.cells[index] = value

    def grow(self, min_length: int) -> None:
        """Extend with zero cells until the tape holds at least min_length cells."""
        old = len(self.cells)
        if min_length <= old:
            return
        extra = max(self.growth_chunk, min_length - old)
        self.cells = np.concatenate([self.cells, np.zeros(extra, dtype=np.uint8)])
        logger.debug("tape grown from %d to %d cells", old, len(self.cells))

    def snapshot(self) -> np.ndarray:
        return self.cells.copy()


def used_length(cells: np.ndarray) -> int:
    """Index one past the last nonzero cell."""
    nz = np.flatnonzero(cells)
    return int(nz[-1]) + 1 if len(nz) else 0
