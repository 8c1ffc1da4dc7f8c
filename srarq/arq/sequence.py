"""
Modular sequence number arithmetic.

All sequence numbers live in a finite space of ``space`` values and wrap
from ``space - 1`` back to zero.
"""


def seq_add(seq_num: int, n: int, space: int) -> int:
    """Advance a sequence number by ``n`` positions."""
    return (seq_num + n) % space


def seq_offset(base: int, seq_num: int, space: int) -> int:
    """
    Distance from ``base`` forward to ``seq_num``.

    Args:
        base: Reference sequence number
        seq_num: Target sequence number
        space: Sequence space size

    Returns:
        Offset in ``[0, space)``
    """
    return (seq_num - base) % space


def in_window(seq_num: int, base: int, size: int, space: int) -> bool:
    """
    Check whether ``seq_num`` lies in ``[base, base + size)`` modulo ``space``.

    This is a true modular interval test: the interval is measured forward
    from ``base``, so it stays correct when ``base + size`` reaches or passes
    ``space``.
    """
    return seq_offset(base, seq_num, space) < size


def window_range(base: int, count: int, space: int) -> list:
    """Get the ``count`` sequence numbers starting at ``base``, in order."""
    return [(base + i) % space for i in range(count)]
