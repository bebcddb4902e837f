import logging

import numpy as np
from scipy.interpolate import interp1d

from radmmp.profile import Profile
from radmmp.modules.runs import select_longest_monotonic_run_mask, discard_degeneracy
from radmmp.modules.smoothing import sbefilter
from radmmp.radmmp_variables import min_common_pressure_values, status_no_timestamps, status_nan_timestamps, \
    status_timestamps_added

logger = logging.getLogger('radmmp')


def _pruned_reference_pressure(ref_pressure: np.ndarray):
    """
    Prune the time stamped (engineering) pressure record before matching.  Zero pressure samples (sensor not yet in
    the water) and the first non zero sample (unreliable timestamp) are dropped, then repeated values are removed.

    Returns the pruned values and their row indices in the original record.
    """

    idx = np.flatnonzero(ref_pressure != 0)[1:]
    vals, singleton = discard_degeneracy(ref_pressure[idx])
    return vals, idx[singleton]


def match_pressure_extrema(untimed_pressure: np.ndarray, ref_pressure: np.ndarray, gamma: float = 0.0,
                           acqrate: float = 1.0):
    """
    Find the two pressure values used to tie the untimed record to the reference record.

    The longest monotonic run of the (optionally smoothed) untimed record with its repeated values removed is
    intersected with the pruned reference record.  The lowest common value is dropped and the extrema of what is left
    are returned with their unique row indices in both original records.

    Parameters
    ----------
    untimed_pressure
        1d pressure record of the instrument without timestamps (ctd)
    ref_pressure
        1d pressure record of the time stamped instrument (engineering)
    gamma
        filter time constant in seconds used to smooth the untimed record before run detection, 0 for no smoothing
    acqrate
        sample rate of the untimed record in Hz, used by the smoothing filter

    Returns
    -------
    np.ndarray
        row indices of [Pmin, Pmax] in untimed_pressure, empty if fewer than min_common_pressure_values values are in
        common
    np.ndarray
        row indices of [Pmin, Pmax] in ref_pressure, empty on failure
    """

    mask_run = select_longest_monotonic_run_mask(sbefilter(untimed_pressure, acqrate, gamma))
    _, mask_singleton = discard_degeneracy(untimed_pressure)
    idx_untimed = np.flatnonzero(mask_run & mask_singleton)
    vals_untimed = untimed_pressure[idx_untimed]

    vals_ref, idx_ref = _pruned_reference_pressure(ref_pressure)

    common = np.intersect1d(vals_untimed, vals_ref)
    if common.size < min_common_pressure_values:
        return np.array([], dtype=int), np.array([], dtype=int)
    common = common[1:]
    extrema = np.array([common[0], common[-1]])

    rows_untimed = np.array([idx_untimed[vals_untimed == val][0] for val in extrema])
    rows_ref = np.array([idx_ref[vals_ref == val][0] for val in extrema])
    return rows_untimed, rows_ref


def add_ctd_timestamps(ctd: Profile, eng: Profile, gamma: float = 0.0, acqrate: float = 1.0):
    """
    Derive a timestamp for every ctd sample.  The ctd records no time, the engineering record does, so the two
    pressure records are matched at two common pressure values (see match_pressure_extrema) and time is linearly
    interpolated (and extrapolated) over the ctd row index through those two points.

    On success the effective ctd acquisition rate is recomputed from the new timestamps.  If the ctd record is empty,
    time is left empty.  If the engineering record is empty or there are fewer than 4 common pressure values, time is
    all NaN.  Processing of the profile continues in every case.

    Parameters
    ----------
    ctd
        ctd Profile, modified in place
    eng
        engineering Profile with time and pressure
    gamma
        filter time constant in seconds applied to the ctd pressure before run detection, 0 for coastal
        deployments, 0.25 for global deployments
    acqrate
        nominal ctd sample rate in Hz

    Returns
    -------
    Profile
        the ctd profile with time populated
    """

    ctd.log_code('add_ctd_timestamps')
    ctd_pressure = ctd['pressure']
    npts = ctd_pressure.shape[0]

    if npts == 0:
        ctd['time'] = np.array([])
        ctd.log_status(status_no_timestamps)
        return ctd
    if eng.is_empty:
        ctd['time'] = np.full(npts, np.nan)
        ctd.log_status(status_nan_timestamps)
        return ctd
    if eng.backtrack:
        logger.warning('add_ctd_timestamps: profile {} has backtrack sections, timestamps may be '
                       'unreliable'.format(ctd.profile_number))

    rows_ctd, rows_eng = match_pressure_extrema(ctd_pressure, eng['pressure'], gamma=gamma, acqrate=acqrate)
    if rows_ctd.size == 0 or rows_ctd[0] == rows_ctd[1]:
        ctd['time'] = np.full(npts, np.nan)
        ctd.log_status(status_nan_timestamps)
        return ctd

    to_time = interp1d(rows_ctd.astype(np.float64), eng['time'][rows_eng], kind='linear', fill_value='extrapolate',
                       assume_sorted=False)
    ctd['time'] = to_time(np.arange(npts, dtype=np.float64))

    elapsed = ctd['time'][-1] - ctd['time'][0]
    if npts > 1 and elapsed != 0:
        ctd.acquisition_rate_hz = (npts - 1) / elapsed
    ctd.log_status(status_timestamps_added)
    return ctd


def estimate_acquisition_rate(profile: Profile):
    """
    Set the acquisition rate of a timestamped profile from its time record, (N - 1) / (T[-1] - T[0]).  Profiles with
    fewer than two finite timestamps, or no elapsed time, keep their current rate.

    Parameters
    ----------
    profile
        Profile with time populated, modified in place

    Returns
    -------
    float
        the acquisition rate in Hz
    """

    time = profile['time']
    if time.shape[0] > 1 and np.isfinite(time[[0, -1]]).all() and time[-1] != time[0]:
        profile.acquisition_rate_hz = float((time.shape[0] - 1) / (time[-1] - time[0]))
    return profile.acquisition_rate_hz
