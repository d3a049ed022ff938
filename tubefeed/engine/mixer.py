"""
Proportional interleaving of two ranked pools.
"""
from typing import Callable, Optional, Sequence, TypeVar

T = TypeVar("T")


def _video_key(item) -> str:
    return item.video_id


def mix_pools(
    pool_a: Sequence[T],
    pool_b: Sequence[T],
    ratio: float,
    limit: Optional[int] = None,
    key: Callable[[T], str] = _video_key,
) -> list[T]:
    """Interleave two ranked pools so pool A approximates `ratio` at every
    prefix.

    At each step an item is taken from A while A's share of the output,
    counted as emitted_a / (emitted + 1), is below the ratio; otherwise from
    B. When one pool runs dry the other is drained. Items whose key was
    already emitted are skipped. Each pool's internal order is preserved.

    Args:
        pool_a: Ranked "discovery" candidates.
        pool_b: Ranked "comfort" candidates.
        ratio: Target share of pool A, clamped to [0, 1].
        limit: Optional cap on the output length.
        key: Identity function for cross-pool dedup.

    Returns:
        The interleaved list.
    """
    ratio = min(max(ratio, 0.0), 1.0)
    out: list[T] = []
    emitted: set[str] = set()
    i = j = 0
    count_a = 0

    def next_unseen(pool: Sequence[T], idx: int) -> int:
        while idx < len(pool) and key(pool[idx]) in emitted:
            idx += 1
        return idx

    while limit is None or len(out) < limit:
        i = next_unseen(pool_a, i)
        j = next_unseen(pool_b, j)
        has_a = i < len(pool_a)
        has_b = j < len(pool_b)
        if not has_a and not has_b:
            break

        want_a = count_a / (len(out) + 1) < ratio
        if has_a and (want_a or not has_b):
            item = pool_a[i]
            i += 1
            count_a += 1
        else:
            item = pool_b[j]
            j += 1

        emitted.add(key(item))
        out.append(item)

    return out
