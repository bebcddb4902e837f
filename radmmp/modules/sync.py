import logging

import numpy as np
from scipy.interpolate import Akima1DInterpolator, interp1d

from radmmp.profile import Profile
from radmmp.modules.smoothing import centered_derivative
from radmmp.radmmp_variables import min_sync_points, status_no_pressure_record, status_nan_pressure_record, \
    status_pressure_record_added, status_all_flagged_bad, status_synced

logger = logging.getLogger('radmmp')


def interp_mask(reference_time: np.ndarray, reference_mask: np.ndarray, new_time: np.ndarray):
    """
    Carry a boolean mask onto a new time base.  The mask is linearly interpolated as 0/1 with 0 (bad) outside the
    reference time range, only samples that interpolate to exactly 1 are good.

    Parameters
    ----------
    reference_time
        1d increasing time of the reference record
    reference_mask
        boolean mask of the reference record
    new_time
        1d time to carry the mask onto

    Returns
    -------
    np.ndarray
        boolean mask, same length as new_time
    """

    if reference_time.size == 0:
        return np.zeros(new_time.shape[0], dtype=bool)
    ntrp = np.interp(new_time, reference_time, reference_mask.astype(np.float32), left=0, right=0)
    return ntrp == 1


def sync_ctd_eng(ctd: Profile, eng: Profile):
    """
    Synchronize a timestamped, processed ctd profile with its engineering profile.  The ctd and engineering masks are
    each carried onto the other time base and intersected, the engineering profile gets the ctd profile direction and
    the ctd pressure and dP/dt interpolated onto the engineering time base.

    If the ctd time record is missing, every ctd sample is flagged bad.

    Parameters
    ----------
    ctd
        processed ctd Profile, modified in place
    eng
        engineering Profile, modified in place

    Returns
    -------
    Profile
        ctd profile
    Profile
        engineering profile
    """

    ctd.log_code('sync_ctd_eng')
    eng.log_code('sync_ctd_eng')
    if ctd['pressure'].size == 0 or eng['pressure'].size == 0:
        ctd.log_status("NOT SYNC'ED")
        eng.log_status("NOT SYNC'ED")
        return ctd, eng

    eng.profile_direction = ctd.profile_direction
    ctd_time = ctd['time']
    if ctd_time.size == 0 or np.isnan(ctd_time).any():
        logger.warning('sync_ctd_eng: no timestamps found for ctd profile {}, all samples flagged '
                       'bad'.format(ctd.profile_number))
        ctd.profile_mask = np.zeros(ctd.npts, dtype=bool)
        ctd['time'] = np.full(ctd.npts, np.nan)
        ctd.log_status(status_all_flagged_bad)
        eng.log_status("NOT SYNC'ED")
        return ctd, eng

    eng_time = eng['time']
    ctd_mask_from_eng = interp_mask(eng_time, eng.profile_mask, ctd_time)
    eng_mask_from_ctd = interp_mask(ctd_time, ctd.profile_mask, eng_time)
    ctd.profile_mask = ctd.profile_mask & ctd_mask_from_eng
    eng.profile_mask = eng.profile_mask & eng_mask_from_ctd

    eng['pressure'] = np.interp(eng_time, ctd_time, ctd['pressure'], left=np.nan, right=np.nan)
    eng['dpdt'] = np.interp(eng_time, ctd_time, ctd['dpdt'], left=np.nan, right=np.nan)
    ctd.log_status(status_synced)
    eng.log_status(status_synced)
    return ctd, eng


def sync_to_ctd(acm: Profile, ctd: Profile, depth_offset_m: float = 0.0):
    """
    Give a current meter profile a pressure record by interpolating the synchronized ctd pressure onto the current
    meter time base (modified Akima, extrapolated at the profile ends).  dP/dt is the centered difference of the
    interpolated pressure at the current meter sample rate.  The ctd mask is carried onto the current meter time base
    and intersected with its own mask, and the fixed depth offset of the current meter is added to the pressure.

    Failures never raise:

     - no current meter time: pressure and dpdt are left empty
     - ctd time missing or NaN, fewer than 10 samples in either record, or no time overlap: pressure and dpdt are NaN

    Parameters
    ----------
    acm
        current meter Profile (ad2cp or fsi) with time, modified in place
    ctd
        processed, synchronized ctd Profile of the same profile number
    depth_offset_m
        depth offset of the current meter relative to the ctd in meters, added to the interpolated pressure

    Returns
    -------
    Profile
        current meter profile with pressure and dpdt
    """

    if acm.profile_number != ctd.profile_number:
        raise ValueError('sync_to_ctd: current meter profile {} and ctd profile {} do not '
                         'match'.format(acm.profile_number, ctd.profile_number))
    acm.log_code('sync_to_ctd')
    acm.attrs['ctd_data_status'] = list(ctd.data_status)
    acm.backtrack = ctd.backtrack

    acm_time = acm['time']
    ctd_time = ctd['time']
    if acm_time.size == 0:
        logger.warning('sync_to_ctd: {} profile {} has no time data'.format(acm.instrument, acm.profile_number))
        acm['pressure'] = np.array([])
        acm['dpdt'] = np.array([])
        acm.log_status(status_no_pressure_record)
        return acm

    valid_ctd = ctd_time.size > 0 and ctd['pressure'].size > 0 and not np.isnan(ctd_time).any()
    enough = ctd_time.size >= min_sync_points and acm_time.size >= min_sync_points
    if valid_ctd and enough and not (acm_time.max() < ctd_time.min() or acm_time.min() > ctd_time.max()) and \
            (np.diff(ctd_time) > 0).all():
        pressure = Akima1DInterpolator(ctd_time, ctd['pressure'], method='makima', extrapolate=True)(acm_time)
        acm['pressure'] = pressure + depth_offset_m
        acm['dpdt'] = centered_derivative(pressure, acm.acquisition_rate_hz)
        acm.profile_mask = acm.profile_mask & interp_mask(ctd_time, ctd.profile_mask, acm_time)
        acm.profile_direction = ctd.profile_direction
        acm.log_status(status_pressure_record_added)
    else:
        logger.warning('sync_to_ctd: {} profile {}, interpolation to find ctd pressure '
                       'failed'.format(acm.instrument, acm.profile_number))
        acm['pressure'] = np.full(acm_time.shape[0], np.nan)
        acm['dpdt'] = np.full(acm_time.shape[0], np.nan)
        acm.log_status(status_nan_pressure_record)
    return acm


def ctd_properties_on_pressure(ctd: Profile, pressure: np.ndarray, names: list):
    """
    Interpolate ctd channels onto another pressure record, ex: temperature and salinity for the engineering
    sensors.  Only samples with a valid ctd pressure are used and repeated pressures keep their first occurrence.
    Linear interpolation, NaN outside the ctd pressure range.

    Parameters
    ----------
    ctd
        processed ctd Profile
    pressure
        1d pressure record to interpolate onto
    names
        ctd channel names

    Returns
    -------
    list
        list of np.ndarray, one per name, same length as pressure
    """

    pressure = np.asarray(pressure, dtype=np.float64)
    ctd_pressure = ctd['pressure']
    valid = ~np.isnan(ctd_pressure)
    for name in names:
        if ctd[name].shape[0] != ctd_pressure.shape[0]:
            valid[:] = False
        else:
            valid &= ~np.isnan(ctd[name])
    _, first = np.unique(ctd_pressure[valid], return_index=True)
    keep = np.sort(first)
    if keep.size < 2:
        return [np.full(pressure.shape[0], np.nan) for _ in names]

    ctd_pressure = ctd_pressure[valid][keep]
    interpolated = []
    for name in names:
        func = interp1d(ctd_pressure, ctd[name][valid][keep], bounds_error=False, fill_value=np.nan)
        interpolated.append(func(pressure))
    return interpolated
