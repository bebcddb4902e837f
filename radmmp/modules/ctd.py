import logging

import numpy as np
import gsw

from radmmp.config import DeploymentConfig
from radmmp.profile import Profile
from radmmp.numba_helpers import thermal_mass_recursion
from radmmp.modules.smoothing import sbefilter, index_shift, centered_derivative
from radmmp.radmmp_variables import stationary_pressure_range_db, thermal_mass_temperature_reference, \
    thermal_mass_conductivity_slope, status_ctd_processed, status_ctd_not_processed, status_celltm_not_applied, \
    status_ctd_rate_invalid

logger = logging.getLogger('radmmp')


def celltm_parameters_valid(acqrate: float, alpha: float, inverse_beta: float):
    """
    True if the thermal mass correction can be computed, a positive sample rate and time constant and a non negative
    amplitude
    """
    return bool(np.isfinite(acqrate) and acqrate > 0 and np.isfinite(alpha) and alpha >= 0 and
                np.isfinite(inverse_beta) and inverse_beta > 0)


def celltm(conductivity: np.ndarray, temperature: np.ndarray, acqrate: float, alpha: float, inverse_beta: float):
    """
    Conductivity cell thermal mass correction.  The recursion runs over the samples where both conductivity and
    temperature are valid, other samples are NaN in the output.

    a = 2 * alpha / (2 + 1 / (acqrate * inverse_beta)), b = 1 - 2 * a / alpha
    ctm[i] = -b * ctm[i-1] + a * dT[i] * (1 + 0.006 * (T[i] - 20))

    Parameters
    ----------
    conductivity
        1d conductivity record
    temperature
        1d temperature record
    acqrate
        sample rate in Hz
    alpha
        thermal anomaly amplitude
    inverse_beta
        thermal anomaly time constant in seconds

    Returns
    -------
    np.ndarray
        corrected conductivity, conductivity + ctm
    """

    if not celltm_parameters_valid(acqrate, alpha, inverse_beta):
        raise ValueError('celltm: acqrate must be positive, alpha must not be negative, inverse_beta must be positive')
    conductivity = np.asarray(conductivity, dtype=np.float64)
    temperature = np.asarray(temperature, dtype=np.float64)
    if conductivity.shape != temperature.shape:
        raise ValueError('celltm: conductivity and temperature records must have the same shape')
    if alpha == 0:
        return conductivity.copy()

    a = 2 * alpha / (2 + 1 / (acqrate * inverse_beta))
    b = 1 - 2 * a / alpha

    corrected = np.full(conductivity.shape, np.nan)
    valid = ~(np.isnan(conductivity) | np.isnan(temperature))
    cond = conductivity[valid]
    temp = temperature[valid]
    if cond.size == 0:
        return corrected
    dcdt = 1 + thermal_mass_conductivity_slope * (temp - thermal_mass_temperature_reference)
    dtemp = np.zeros(temp.shape[0])
    dtemp[1:] = np.diff(temp)
    corrected[valid] = cond + thermal_mass_recursion(dtemp, dcdt, a, b)
    return corrected


def moving_sum(tf: np.ndarray, window: int):
    """
    Moving sum over window samples.  Odd windows are centered on the sample, even windows are centered on the sample
    and its predecessor.  The window is truncated at the record ends.  window must be at least 1.
    """

    if window < 1:
        raise ValueError('moving_sum: window must be at least 1, found {}'.format(window))
    before = window // 2
    after = window - 1 - before
    padded = np.concatenate([np.zeros(before), np.asarray(tf, dtype=np.float64), np.zeros(after)])
    return np.convolve(padded, np.ones(window), mode='valid')


def speed_mask(pressure: np.ndarray, acqrate: float, min_speed: float, window: int):
    """
    Mask of the samples where the profiler moves faster than min_speed in the predominant direction for a full window
    of samples.

    Parameters
    ----------
    pressure
        1d pressure record
    acqrate
        sample rate in Hz
    min_speed
        minimum profiling speed in dbar/s
    window
        number of samples that must all pass the speed test, values below 1 are taken as 1

    Returns
    -------
    np.ndarray
        boolean mask, True where the profiler speed is good
    """

    if not np.isfinite(window) or window < 1:
        logger.warning('speed_mask: window of {} samples is not valid, using 1'.format(window))
        window = 1
    window = int(window)
    if np.isnan(pressure).all():
        return np.zeros(pressure.shape[0], dtype=bool)
    direction = np.sign(np.nanargmax(pressure) - np.nanargmin(pressure))
    speed = direction * np.append(np.diff(pressure), 0) * acqrate
    return moving_sum(speed > min_speed, window) == window


def profile_direction(pressure: np.ndarray):
    """
    'stationary' if the pressure range is at most 5 dbar, else 'descending' if the maximum comes after the minimum,
    else 'ascending'
    """

    if np.isnan(pressure).all():
        return 'unknown'
    if np.nanmax(pressure) - np.nanmin(pressure) <= stationary_pressure_range_db:
        return 'stationary'
    elif np.nanargmax(pressure) > np.nanargmin(pressure):
        return 'descending'
    return 'ascending'


def process_ctd_profile(ctd: Profile, config: DeploymentConfig):
    """
    Process one timestamped SBE52MP ctd profile.

    Conductivity, temperature and pressure are low pass filtered, conductivity and pressure are aligned with
    temperature, the conductivity cell thermal mass correction is applied and the derived products (dP/dt, practical
    salinity, potential temperature and potential density anomaly) are computed with TEOS-10.  The profile mask is set
    by the minimum profiling speed test and the profile direction is assigned.

    Parameters
    ----------
    ctd
        ctd Profile with time, pressure, temperature and conductivity, modified in place
    config
        deployment configuration

    Returns
    -------
    Profile
        processed ctd profile
    """

    ctd.log_code('process_ctd_profile')
    ctd.deployment_id = config.deployment_id
    if ctd.is_empty:
        ctd.log_status(status_ctd_not_processed)
        return ctd

    rate = config.ctd_acquisition_rate_hz
    cond = ctd['conductivity']
    temp = ctd['temperature']
    pres = ctd['pressure']
    if np.isfinite(rate) and rate > 0:
        cond = sbefilter(cond, rate, config.ctd_filter_tc_conductivity_sec)
        temp = sbefilter(temp, rate, config.ctd_filter_tc_temperature_sec)
        pres = sbefilter(pres, rate, config.ctd_filter_tc_pressure_sec)
        cond = index_shift(cond, config.ctd_shift_conductivity_sec * rate)
        pres = index_shift(pres, config.ctd_shift_pressure_sec * rate)
    else:
        logger.warning('process_ctd_profile: ctd acquisition rate {} Hz is not valid, profile {} is not filtered or '
                       'aligned'.format(rate, ctd.profile_number))
        ctd.log_status(status_ctd_rate_invalid)

    ctd.log_code('celltm')
    alpha = config.ctd_thermal_mass_alpha
    inverse_beta = config.ctd_thermal_mass_inverse_beta
    if celltm_parameters_valid(rate, alpha, inverse_beta):
        cond = celltm(cond, temp, rate, alpha, inverse_beta)
    else:
        logger.warning('process_ctd_profile: thermal mass correction skipped for profile {}, acquisition rate={}, '
                       'alpha={}, inverse beta={}'.format(ctd.profile_number, rate, alpha, inverse_beta))
        ctd.log_status(status_celltm_not_applied)

    ctd['conductivity'] = cond
    ctd['temperature'] = temp
    ctd['pressure'] = pres
    ctd['dpdt'] = centered_derivative(pres, ctd.acquisition_rate_hz)

    ctd['salinity'] = gsw.SP_from_C(cond, temp, pres)
    absolute_salinity = gsw.SA_from_SP(ctd['salinity'], pres, config.longitude, config.latitude)
    ctd['theta'] = gsw.pt0_from_t(absolute_salinity, temp, pres)
    conservative_temperature = gsw.CT_from_t(absolute_salinity, temp, pres)
    ctd['sigma_theta'] = gsw.sigma0(absolute_salinity, conservative_temperature)

    ctd.profile_mask = speed_mask(pres, ctd.acquisition_rate_hz, config.ctd_speed_min_dbps,
                                  config.ctd_speed_window_npts)
    ctd.profile_direction = profile_direction(pres)
    ctd.binning_parameters = config.ctd_binning_parameters
    ctd.log_status(status_ctd_processed)
    return ctd
