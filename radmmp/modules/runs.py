import numpy as np


def predominant_direction(vec: np.ndarray):
    """
    Direction of travel of a record, +1 if the global maximum occurs after the global minimum (ascending values),
    -1 if before, 0 for a constant or all NaN record.  First occurrences of the extrema are used.

    Parameters
    ----------
    vec
        1d array

    Returns
    -------
    int
        +1, -1 or 0
    """

    vec = np.asarray(vec, dtype=np.float64)
    if vec.size == 0 or np.isnan(vec).all():
        return 0
    return int(np.sign(np.nanargmax(vec) - np.nanargmin(vec)))


def select_longest_monotonic_run_mask(vec: np.ndarray):
    """
    Select the longest contiguous run of strictly monotonic values, in the predominant direction of travel.

    The record is padded at both ends with alternating extreme values [min, max, min, max] so that runs starting at the
    first sample or ending at the last sample need no special case.  The first maximum run length wins ties.  A run
    boundary that sits on a plateau (its neighbor outside the run has the same value) is excluded from the run.
    Otherwise both end points of the run are kept.  Trimming one sample from each end of every run would give [5, 6]
    instead of [4, 5, 6, 7] below, and so shift the pressures used to tie the ctd to the engineering record.

    >>> np.flatnonzero(select_longest_monotonic_run_mask(np.array([5, 4, 3, 2, 1, 2, 3, 6, 5, 4, 9, 8, 7])))
    array([4, 5, 6, 7])

    Parameters
    ----------
    vec
        1d array, ex: a pressure record

    Returns
    -------
    np.ndarray
        boolean mask, same length as vec, True for the samples of the longest monotonic run
    """

    vec = np.asarray(vec, dtype=np.float64).ravel()
    npts = vec.shape[0]
    mask = np.zeros(npts, dtype=bool)
    direction = predominant_direction(vec)
    if direction == 0:
        return mask

    minval = np.nanmin(vec)
    maxval = np.nanmax(vec)
    pad = np.array([minval, maxval, minval, maxval])
    padded = np.concatenate([pad, vec, pad])

    # a run of True in stepping holds the steps between consecutive points of a monotonic run
    stepping = direction * np.diff(padded) > 0
    idx_false = np.flatnonzero(~stepping)
    gaps = np.diff(idx_false)
    if gaps.size == 0:
        return mask
    k = int(np.argmax(gaps))
    run_points = int(gaps[k])

    # run covers padded[idx_false[k] + 1: idx_false[k] + run_points + 1], shift back by the pad length
    start = max(int(idx_false[k]) + 1 - pad.size, 0)
    end = min(int(idx_false[k]) + run_points - pad.size, npts - 1)

    if start > 0 and vec[start - 1] == vec[start]:
        start += 1
    if end < npts - 1 and vec[end + 1] == vec[end]:
        end -= 1
    if end >= start:
        mask[start:end + 1] = True
    return mask


def discard_degeneracy(vec: np.ndarray):
    """
    Keep only the values that occur exactly once, in their original order.  Values occurring two or more times are
    removed entirely, not reduced to one instance.  NaNs are never kept.

    >>> vals, mask = discard_degeneracy(np.array([1, 3, 3, 5, 6, 7, 2, 6, 9, 3, 9]))
    >>> vals
    array([1., 5., 7., 2.])

    Parameters
    ----------
    vec
        1d array

    Returns
    -------
    np.ndarray
        the singleton values in original order
    np.ndarray
        boolean mask over vec selecting the singleton occurrences
    """

    vec = np.asarray(vec, dtype=np.float64).ravel()
    if vec.size == 0:
        return vec.copy(), np.zeros(0, dtype=bool)
    _, inverse, counts = np.unique(vec, return_inverse=True, return_counts=True)
    mask = (counts[inverse.ravel()] == 1) & ~np.isnan(vec)
    return vec[mask], mask
