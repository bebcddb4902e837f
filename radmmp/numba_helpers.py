import numba
import numpy as np


@numba.njit(nogil=True)
def forward_backward_filter(y: np.ndarray, a: float, b: float):
    """
    First order recursive low pass filter run forward over y and then backward over the forward result, giving a
    zero phase lag output.  y must not contain NaNs.

    forward:  yf[i] = a * (y[i] + y[i-1]) - b * yf[i-1], yf[0] = y[0]
    backward: ys[i] = a * (yf[i] + yf[i+1]) - b * ys[i+1], ys[-1] = yf[-1]

    Parameters
    ----------
    y
        1d float64 array without NaNs
    a
        filter coefficient A
    b
        filter coefficient B

    Returns
    -------
    np.ndarray
        filtered 1d array, same length as y
    """

    n = y.shape[0]
    yf = np.empty(n, dtype=np.float64)
    ys = np.empty(n, dtype=np.float64)
    if n == 0:
        return ys
    yf[0] = y[0]
    for i in range(1, n):
        yf[i] = a * (y[i] + y[i - 1]) - b * yf[i - 1]
    ys[n - 1] = yf[n - 1]
    for i in range(n - 2, -1, -1):
        ys[i] = a * (yf[i] + yf[i + 1]) - b * ys[i + 1]
    return ys


@numba.njit(nogil=True)
def thermal_mass_recursion(dtemp: np.ndarray, dcdt: np.ndarray, a: float, b: float):
    """
    Conductivity cell thermal mass correction term, ctm[i] = -b * ctm[i-1] + a * dtemp[i] * dcdt[i], ctm[0] = 0

    Parameters
    ----------
    dtemp
        first difference of temperature, dtemp[0] is ignored
    dcdt
        sensitivity of conductivity to temperature at each sample
    a
        thermal mass coefficient a
    b
        thermal mass coefficient b

    Returns
    -------
    np.ndarray
        correction term to add to conductivity
    """

    n = dtemp.shape[0]
    ctm = np.zeros(n, dtype=np.float64)
    for i in range(1, n):
        ctm[i] = -b * ctm[i - 1] + a * dtemp[i] * dcdt[i]
    return ctm


@numba.njit(nogil=True)
def _digitize(x: float, bins: np.ndarray):
    # bins are monotonically increasing, return i such that bins[i-1] <= x < bins[i], NaNs end up in len(bins)
    n = len(bins)
    if np.isnan(x):
        return n
    lo = 0
    hi = n
    while hi > lo:
        mid = (lo + hi) >> 1
        if bins[mid] <= x:
            lo = mid + 1
        else:
            hi = mid
    return lo


@numba.njit(nogil=True)
def discretize(x: np.ndarray, edges: np.ndarray):
    """
    Assign each value of x to a bin defined by the monotonically increasing edges.  Bin k (0 based) holds
    edges[k] <= x < edges[k+1], the last bin also includes its right edge.  Values outside the edges or NaN get -1.

    Parameters
    ----------
    x
        1d array of values to bin
    edges
        1d array of bin edges, len(edges) = number of bins + 1

    Returns
    -------
    np.ndarray
        int64 bin index for each value of x, -1 where the value is not in any bin
    """

    nedges = len(edges)
    ans = np.full(x.shape[0], -1, dtype=np.int64)
    for i in range(x.shape[0]):
        idx = _digitize(x[i], edges)
        if idx > 0 and idx < nedges:
            ans[i] = idx - 1
        elif idx == nedges and x[i] == edges[nedges - 1]:
            ans[i] = nedges - 2
    return ans


@numba.njit(nogil=True)
def bin_count_and_sum(bin_idx: np.ndarray, values: np.ndarray, valid: np.ndarray, nbins: int):
    """
    Accumulate the count and the sum of the valid values in each bin, in sample order.

    Parameters
    ----------
    bin_idx
        int64 bin index for each sample, samples with a negative index are skipped
    values
        float64 value for each sample
    valid
        boolean, True where the sample contributes to its bin
    nbins
        number of bins

    Returns
    -------
    np.ndarray
        int64 count of contributing samples for each bin
    np.ndarray
        float64 sum of contributing samples for each bin
    """

    counts = np.zeros(nbins, dtype=np.int64)
    sums = np.zeros(nbins, dtype=np.float64)
    for i in range(bin_idx.shape[0]):
        k = bin_idx[i]
        if k >= 0 and valid[i]:
            counts[k] += 1
            sums[k] += values[i]
    return counts, sums
