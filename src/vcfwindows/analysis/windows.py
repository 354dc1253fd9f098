"""Fixed-size window partitioning for vcfwindows.

Each contig is split into consecutive, non-overlapping windows
``[1, W], [W+1, 2W], ...``; the last window is clipped to the contig
length and may be as small as 1 bp.
"""

from __future__ import annotations

import math
from typing import TYPE_CHECKING

from vcfwindows.core.models import Contig, Window
from vcfwindows.utils.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator

logger = get_logger(__name__)


def count_windows(length_bp: int, window_size: int) -> int:
    """Number of windows covering a contig.

    Examples:
        >>> count_windows(50_000, 20_000)
        3
        >>> count_windows(40_000, 20_000)
        2
    """
    return math.ceil(length_bp / window_size)


def contig_windows(contig: Contig, window_size: int) -> Iterator[Window]:
    """Yield the windows of a single contig in ascending order.

    Args:
        contig: Contig to partition.
        window_size: Window size in base pairs.

    Yields:
        Window objects; the last one is clipped to the contig length.

    Examples:
        >>> [w.region for w in contig_windows(Contig("chr1", 50_000), 20_000)]
        ['chr1:1-20000', 'chr1:20001-40000', 'chr1:40001-50000']
    """
    for start in range(1, contig.length_bp + 1, window_size):
        end = min(start + window_size - 1, contig.length_bp)
        yield Window(contig=contig.name, start_bp=start, end_bp=end)


class WindowIterator:
    """Restartable sequence of windows over an ordered list of contigs.

    Iterating the object always starts again from the first window of
    the first contig, so the same instance can drive several passes.

    Args:
        contigs: Contigs in output order, as Contig objects or
            ``(name, length_bp)`` pairs.
        window_size: Window size in base pairs.

    Raises:
        ValueError: If the window size or a contig length is not positive.

    Example:
        >>> windows = WindowIterator([("chr1", 50_000)], window_size=20_000)
        >>> len(windows)
        3
    """

    def __init__(
        self,
        contigs: Iterable[Contig | tuple[str, int]],
        window_size: int,
    ) -> None:
        if window_size <= 0:
            raise ValueError(f"window_size must be positive, got {window_size}")

        self.window_size = window_size
        self.contigs: list[Contig] = []
        for contig in contigs:
            if not isinstance(contig, Contig):
                name, length = contig
                contig = Contig(name=name, length_bp=int(length))
            if contig.length_bp <= 0:
                raise ValueError(
                    f"Contig {contig.name} has non-positive length {contig.length_bp}"
                )
            self.contigs.append(contig)

    def __iter__(self) -> Iterator[Window]:
        for contig in self.contigs:
            yield from contig_windows(contig, self.window_size)

    def __len__(self) -> int:
        return sum(count_windows(c.length_bp, self.window_size) for c in self.contigs)

    def windows_for(self, contig_name: str) -> list[Window]:
        """All windows of one contig.

        Raises:
            KeyError: If the contig is not part of this iterator.
        """
        for contig in self.contigs:
            if contig.name == contig_name:
                return list(contig_windows(contig, self.window_size))
        raise KeyError(contig_name)

    def describe(self) -> None:
        """Log the number of windows per contig."""
        logger.info(
            f"Window size {self.window_size:,} bp over {len(self.contigs)} contig(s), "
            f"{len(self):,} windows"
        )
        for contig in self.contigs:
            logger.debug(
                f"  {contig.name}: {contig.length_bp:,} bp, "
                f"{count_windows(contig.length_bp, self.window_size):,} windows"
            )
