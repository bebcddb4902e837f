import numpy as np

from radmmp.config import DeploymentConfig
from radmmp.profile import Profile
from radmmp.modules.smoothing import centered_derivative
from radmmp.radmmp_variables import backtrack_codes, backtrack_timeshift_sec, par_volts_per_count, \
    par_quanta_per_umol, status_backtrack_not_flagged, status_no_pressure_data, status_eng_processed, \
    status_eng_not_processed


def find_eng_backtrack_sections(eng: Profile, pressure_minimum: float):
    """
    Detect profiler backtracking in the engineering pressure record.  The pressure recorded by the engineering stream
    drops to zero while the profiler reverses, so a transition from above pressure_minimum to below it marks a
    backtrack.  The profile mask is set True where the pressure is above the minimum and dP/dt is computed with the
    below minimum samples set to NaN.

    Parameters
    ----------
    eng
        engineering Profile, modified in place
    pressure_minimum
        pressure in dbar below which the engineering pressure is treated as zero

    Returns
    -------
    Profile
        the engineering profile with backtrack, profile_mask and dpdt set
    """

    eng.log_code('find_eng_backtrack_sections')
    if eng.is_empty:
        eng.log_status(status_eng_not_processed)
        return eng

    pressure = eng['pressure']
    above = np.where(pressure < pressure_minimum, 0.0, np.where(pressure > pressure_minimum, 1.0, pressure))
    eng.backtrack = bool((np.diff(above) < 0).any())
    eng.profile_mask = above.astype(bool)

    eng['dpdt'] = centered_derivative(np.where(pressure < pressure_minimum, np.nan, pressure),
                                      eng.acquisition_rate_hz)
    eng.log_status('pressure processed')
    return eng


def flag_eng_backtrack_sections(eng: Profile, code: int):
    """
    Apply the backtrack policy to the engineering profile mask.

     - code 1: the whole profile is flagged bad
     - code 2: data from 75 seconds before the first reversal to the end of the profile is flagged bad
     - code 3: only the reversal sections (zero engineering pressure) are flagged bad

    Any other code leaves the mask untouched.

    Parameters
    ----------
    eng
        engineering Profile with the mask from find_eng_backtrack_sections, modified in place
    code
        backtrack processing code

    Returns
    -------
    Profile
        the engineering profile with the backtrack sections flagged in profile_mask
    """

    eng.log_code('flag_eng_backtrack_sections')
    if eng.is_empty:
        eng.log_status(status_no_pressure_data)
        return eng
    if code not in backtrack_codes:
        eng.log_status(status_backtrack_not_flagged)
        return eng

    if code == 1:
        eng.profile_mask = np.zeros(eng.npts, dtype=bool)
    elif code == 2:
        mask = eng.profile_mask.copy()
        drops = np.flatnonzero(np.diff(mask.astype(np.int8)) < 0)
        if drops.size:
            if np.isfinite(eng.acquisition_rate_hz):
                margin = int(np.ceil(eng.acquisition_rate_hz * backtrack_timeshift_sec))
            else:
                margin = 0
            mask[max(drops[0] + 1 - margin, 0):] = False
        eng.profile_mask = mask
    else:
        eng.profile_mask = eng['pressure'] != 0
    eng.log_status('backtrack FLAGGED: code {}'.format(code))
    return eng


def apply_eng_calibrations(eng: Profile, config: DeploymentConfig):
    """
    Convert the optical sensor counts in the engineering stream to physical units.

     - par [umol photons m-2 s-1]: (counts - dark) / 1000 / scale_wet / 6.02e13
     - cdom [ppb], chl [ug/l], bback [m-1 sr-1]: scale * (counts - dark)

    Parameters
    ----------
    eng
        engineering Profile, modified in place
    config
        deployment configuration holding the par/cdom/chl/bback scale and dark values

    Returns
    -------
    Profile
        the calibrated engineering profile
    """

    eng.log_code('apply_eng_calibrations')
    eng.deployment_id = config.deployment_id
    if eng.is_empty:
        eng.log_status(status_eng_not_processed)
        return eng

    par_volts = (eng['par'] - config.par_dark) * par_volts_per_count
    eng['par'] = par_volts / config.par_scale_wet / par_quanta_per_umol
    for sensor in ['cdom', 'chl', 'bback']:
        if eng[sensor].size:
            eng[sensor] = config[sensor + '_scale'] * (eng[sensor] - config[sensor + '_dark'])
    eng.binning_parameters = config.eng_binning_parameters
    eng.log_status(status_eng_processed)
    return eng
