import numpy as np

from radmmp.numba_helpers import forward_backward_filter


def sbefilter(x: np.ndarray, acqrate: float, gamma: float):
    """
    Zero phase lag low pass filter (Sea-Bird style).  A first order recursive filter is run forward over each column
    and then backward over the forward result.

    A = 1 / (1 + 2 * gamma * acqrate), B = (1 - 2 * gamma * acqrate) * A

    NaNs are stripped from each column before filtering and restored afterwards, so columns may have different numbers
    of leading/trailing NaNs.  Columns without any valid value pass through unchanged.  If gamma is 0 or x is empty, x
    is returned unchanged.

    Parameters
    ----------
    x
        1d array (single channel, ex: heading) or 2d array (samples, channels)
    acqrate
        sample rate in Hz
    gamma
        filter time constant in seconds

    Returns
    -------
    np.ndarray
        filtered array, same shape as x
    """

    x = np.asarray(x, dtype=np.float64)
    if x.size == 0 or gamma == 0:
        return x

    a = 1 / (1 + 2 * gamma * acqrate)
    b = (1 - 2 * gamma * acqrate) * a

    one_dim = x.ndim == 1
    cols = x.reshape(-1, 1) if one_dim else x
    filtered = cols.copy()
    for j in range(cols.shape[1]):
        valid = ~np.isnan(cols[:, j])
        if not valid.any():
            continue
        filtered[valid, j] = forward_backward_filter(np.ascontiguousarray(cols[valid, j]), a, b)

    if one_dim:
        return filtered.ravel()
    return filtered


def index_shift(x: np.ndarray, shift: float):
    """
    Shift a record by a (possibly fractional) number of samples, used to align the conductivity and pressure
    records with temperature.  A positive shift delays the record.  The integer part moves samples and pads the
    vacated end with the nearest original value, the fractional part is a linear interpolation between neighbors.

    Parameters
    ----------
    x
        1d array to shift
    shift
        number of samples to shift by, shift seconds * sample rate

    Returns
    -------
    np.ndarray
        shifted array, same length as x
    """

    x = np.asarray(x, dtype=np.float64)
    y = x.copy()
    npts = y.shape[0]
    if shift == 0 or npts == 0:
        return y

    int_shift = int(np.floor(shift))
    part_shift = shift - int_shift
    if abs(int_shift) >= npts:
        raise ValueError('index_shift: shift of {} samples exceeds the record length {}'.format(shift, npts))

    if int_shift > 0:
        y[int_shift:] = x[:npts - int_shift]
        y[:int_shift] = x[0]
    elif int_shift < 0:
        y[:npts + int_shift] = x[-int_shift:]
        y[npts + int_shift:] = x[-1]

    if part_shift > 0:
        y[1:] = (1 - part_shift) * np.diff(y) + y[:-1]
        if shift < 0:
            y[0] = x[-int_shift - 1] + (1 - part_shift) * (x[-int_shift] - x[-int_shift - 1])
    return y


def centered_derivative(x: np.ndarray, rate: float):
    """
    Time derivative as the average of the forward and backward first differences, scaled by the sample rate.  The
    end points use the single available difference.

    Parameters
    ----------
    x
        1d array sampled at a constant rate
    rate
        sample rate in Hz

    Returns
    -------
    np.ndarray
        derivative, same length as x, NaN filled if x has fewer than 2 samples
    """

    x = np.asarray(x, dtype=np.float64)
    if x.shape[0] < 2:
        return np.full(x.shape[0], np.nan)
    dx = np.diff(x)
    dxa = np.concatenate([dx[:1], dx])
    dxb = np.concatenate([dx, dx[-1:]])
    return (dxa + dxb) * rate / 2
