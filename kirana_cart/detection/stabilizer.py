# stabilizer.py
"""
Mode filter over the history window.

A class is trusted once it shows up in at least ``min_frames`` tallies of the
window. Its quantity is the count value seen most often across those tallies;
on a tie the value met first while scanning oldest to newest wins.
"""
from typing import Dict, Sequence

from ..models.cart import StableCart
from ..models.detection import FrameTally


def presence_frames(window: Sequence[FrameTally]) -> Dict[str, int]:
    """Number of tallies each class appears in, regardless of its count"""
    presence: Dict[str, int] = {}
    for tally in window:
        for class_name in tally:
            presence[class_name] = presence.get(class_name, 0) + 1
    return presence


def most_common_quantity(window: Sequence[FrameTally], class_name: str) -> int:
    """
    Most frequent count value for one class

    Args:
        window: Tallies ordered oldest to newest
        class_name: Class to vote on

    Returns:
        The winning quantity; ties go to the value encountered first
    """
    # dicts keep insertion order, so iteration below follows first-seen order
    frequencies: Dict[int, int] = {}
    for tally in window:
        if class_name in tally:
            quantity = tally[class_name]
            frequencies[quantity] = frequencies.get(quantity, 0) + 1

    best_quantity = 0
    best_count = 0
    for quantity, count in frequencies.items():
        if count > best_count:
            best_quantity, best_count = quantity, count
    return best_quantity


def stabilize(window: Sequence[FrameTally], min_frames: int = 3) -> StableCart:
    """
    Reduce a window of noisy tallies to a stable class -> quantity mapping

    Args:
        window: Tallies ordered oldest to newest
        min_frames: Minimum number of tallies a class must appear in

    Returns:
        Stable cart. Classes below the presence threshold are absent.
    """
    window = tuple(window)
    stable: Dict[str, int] = {}
    for class_name, frames in presence_frames(window).items():
        if frames >= min_frames:
            stable[class_name] = most_common_quantity(window, class_name)
    return stable
