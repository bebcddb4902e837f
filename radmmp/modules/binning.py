import logging
from typing import Union

import numpy as np

from radmmp.profile import Profile, empty_channel
from radmmp.numba_helpers import discretize, bin_count_and_sum
from radmmp.modules.currentmeter import unwrap_heading, rewrap_heading
from radmmp.radmmp_variables import circular_channels, status_binned, status_binned_nan

logger = logging.getLogger('radmmp')


def _valid_binsize(binsize):
    return binsize is not None and np.isfinite(binsize) and binsize > 0


def determine_binning_parameters(profiles: list, fieldname: str = 'pressure'):
    """
    Derive one set of binning parameters for a collection of profiles from the median of the per profile
    binning_parameters.

    If only a bin size was given, the bin min and max are taken from the pooled fieldname values,
    floor(min + binsize / 2) and ceil(max - binsize / 2).  An invalid bin size (NaN, zero or negative) defaults to 1.
    In every case the bin max is snapped so that (max - min) is an integer multiple of the bin size.

    Parameters
    ----------
    profiles
        list of Profile, profiles without binning_parameters are ignored
    fieldname
        name of the channel used to derive the bin min/max

    Returns
    -------
    float
        bin min
    float
        bin size
    float
        bin max
    """

    params = [np.atleast_1d(np.asarray(p.binning_parameters, dtype=np.float64)) for p in profiles
              if p.binning_parameters is not None]
    sizes = set(prm.size for prm in params)
    if len(sizes) > 1:
        raise ValueError('determine_binning_parameters: profiles mix size only and min/size/max binning parameters')
    if params:
        binparms = np.median(np.vstack(params), axis=0)
    else:
        binparms = np.array([np.nan])

    if binparms.size == 1:
        binsize = float(binparms[0])
        if not _valid_binsize(binsize):
            logger.warning('determine_binning_parameters: could not determine the bin size, using default = 1')
            binsize = 1.0
        pooled = np.concatenate([np.ravel(p[fieldname]) for p in profiles]) if profiles else np.array([])
        pooled = pooled[~np.isnan(pooled)]
        if pooled.size:
            binmin = float(np.floor(pooled.min() + binsize / 2))
            binmax = float(np.ceil(pooled.max() - binsize / 2))
        else:
            binmin = 0.0
            binmax = 0.0
    elif binparms.size == 3:
        binmin, binsize, binmax = [float(val) for val in binparms]
        if not _valid_binsize(binsize):
            logger.warning('determine_binning_parameters: invalid bin size {}, using default = 1'.format(binsize))
            binsize = 1.0
    else:
        raise ValueError('determine_binning_parameters: expected a bin size or [min, size, max], found '
                         '{}'.format(binparms))

    binmax = max(binmax, binmin)
    binmax = binmin + binsize * np.ceil((binmax - binmin) / binsize)
    return binmin, binsize, float(binmax)


def bin_edges(binmin: float, binsize: float, binmax: float):
    """
    Edges of the pressure bins centered on binmin, binmin + binsize ... binmax, plus one sentinel bin centered on
    binmax + binsize

    Returns
    -------
    np.ndarray
        bin centers (nbins,)
    np.ndarray
        bin edges (nbins + 2,)
    """

    nbins = int(round((binmax - binmin) / binsize)) + 1
    centers = binmin + binsize * np.arange(nbins)
    edges = binmin - binsize / 2 + binsize * np.arange(nbins + 2)
    return centers, edges


def bin_channel(bin_idx: np.ndarray, pressure: np.ndarray, data: np.ndarray, nbins: int):
    """
    Mean of each column of data in each pressure bin.  Samples with NaN value or NaN pressure do not contribute,
    bins without contributing samples are NaN.

    Parameters
    ----------
    bin_idx
        bin index of each sample, from discretize, including the sentinel sample
    pressure
        pressure of each sample including the sentinel sample
    data
        (npts,) or (npts, ncol) values, without the sentinel row
    nbins
        number of output bins, the sentinel bin is dropped

    Returns
    -------
    np.ndarray
        (nbins,) or (nbins, ncol) binned means
    """

    one_dim = data.ndim == 1
    cols = data.reshape(data.shape[0], -1)
    # sentinel row, always counted, never kept
    cols = np.vstack([cols, np.full((1, cols.shape[1]), np.nan)])
    binned = np.full((nbins, cols.shape[1]), np.nan)
    for j in range(cols.shape[1]):
        values = np.ascontiguousarray(cols[:, j])
        valid = ~np.isnan(pressure + values)
        valid[-1] = True
        counts, sums = bin_count_and_sum(bin_idx, values, valid, nbins + 1)
        with np.errstate(invalid='ignore', divide='ignore'):
            means = np.where(counts > 0, sums / np.where(counts > 0, counts, 1), np.nan)
        binned[:, j] = means[:nbins]
    if one_dim:
        return binned.ravel()
    return binned


def pressure_bin_profile(profile: Profile, binmin: float, binsize: float, binmax: float,
                         fields: Union[list, None] = None):
    """
    Bin the active channels of a profile onto the pressure grid binmin:binsize:binmax.  Bin k holds the mean of the
    samples with pressure in [center_k - binsize / 2, center_k + binsize / 2).  Heading is unwrapped before binning and
    rewrapped to [0, 360) after.

    An empty (voided) profile gets all NaN channels of shape (nbins,) or (nbins, ncol) so that binned profiles always
    stack.  Channels that are not binned are emptied in the returned profile.

    Parameters
    ----------
    profile
        profile to bin, masked samples should already be NaN (see nan_bad_profile_sections)
    binmin
        center of the first bin
    binsize
        bin size, (binmax - binmin) must be an integer multiple of binsize
    binmax
        center of the last bin
    fields
        channels to bin, defaults to profile.sensor_fields

    Returns
    -------
    Profile
        new binned profile, binning_parameters and pressure_bin_values set
    """

    if not _valid_binsize(binsize):
        raise ValueError('pressure_bin_profile: bin size must be positive, found {}'.format(binsize))
    fields = list(profile.sensor_fields if fields is None else fields)
    centers, edges = bin_edges(binmin, binsize, binmax)
    nbins = centers.shape[0]

    binned = profile.copy()
    binned.log_code('pressure_bin_profile')
    binned.binning_parameters = [binmin, binsize, binmax]
    binned.pressure_bin_values = centers
    binned.sensor_fields = fields

    results = {}
    pressure = profile['pressure']
    if pressure.size == 0:
        for name in fields:
            ncol = profile.schema[name]
            results[name] = np.full((nbins, ncol) if ncol else (nbins,), np.nan)
        status = status_binned_nan
    else:
        pr = np.append(pressure, binmax + binsize)
        bin_idx = discretize(pr, edges)
        for name in fields:
            data = profile[name]
            ncol = profile.schema[name]
            if data.shape[0] != pressure.shape[0]:
                # channel emptied by a failed processing step
                results[name] = np.full((nbins, ncol) if ncol else (nbins,), np.nan)
            elif name in circular_channels:
                results[name] = rewrap_heading(bin_channel(bin_idx, pr, unwrap_heading(data), nbins))
            else:
                results[name] = bin_channel(bin_idx, pr, data, nbins)
        status = status_binned

    for name, ncol in profile.schema.items():
        binned.data[name] = results.get(name, empty_channel(ncol))
    binned.profile_mask = np.ones(nbins, dtype=bool)
    binned.log_status(status)
    return binned
