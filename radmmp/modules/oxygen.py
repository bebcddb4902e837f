import logging

import numpy as np
import gsw

from radmmp.config import DeploymentConfig
from radmmp.profile import Profile
from radmmp.modules.smoothing import sbefilter, index_shift
from radmmp.modules.sync import ctd_properties_on_pressure
from radmmp.radmmp_variables import garcia_gordon_ml_a, garcia_gordon_ml_b, garcia_gordon_ml_c0, \
    garcia_gordon_umol_b, garcia_gordon_umol_c0, oxygen_umol_per_ml, optode_pressure_coefficient, \
    status_oxygen_processed, status_oxygen_not_processed

logger = logging.getLogger('radmmp')


def _polynomial(coeffs: tuple, x: np.ndarray):
    # coeffs in increasing order
    return np.polyval(coeffs[::-1], x)


def _scaled_temperature(temperature: np.ndarray):
    return np.log((298.15 - temperature) / (273.15 + temperature))


def oxygen_solubility(salinity: np.ndarray, temperature: np.ndarray):
    """
    Oxygen solubility of seawater in equilibrium with air, Garcia and Gordon (1992) in ml/l.

    Parameters
    ----------
    salinity
        practical salinity
    temperature
        in situ temperature, ITS-90 degrees C

    Returns
    -------
    np.ndarray
        oxygen solubility in ml/l
    """

    # the fit is in ITS-68
    ts = _scaled_temperature(np.asarray(temperature, dtype=np.float64) * 1.00024)
    salinity = np.asarray(salinity, dtype=np.float64)
    lnc = _polynomial(garcia_gordon_ml_a, ts) + salinity * _polynomial(garcia_gordon_ml_b, ts) + \
        garcia_gordon_ml_c0 * salinity ** 2
    return np.exp(lnc)


def sbe43f_oxygen(frequency: np.ndarray, pressure: np.ndarray, temperature: np.ndarray, salinity: np.ndarray,
                  soc: float, foffset: float, a: float, b: float, c: float, e: float):
    """
    SBE43F dissolved oxygen from the sensor output frequency (Sea-Bird application note 64-2 without the tau and
    hysteresis terms)

    ox = soc * (f + foffset) * (1 + A*T + B*T^2 + C*T^3) * oxsol(S, T) * exp(E * P / (T + 273.15))

    Returns
    -------
    np.ndarray
        dissolved oxygen in ml/l
    """

    temperature = np.asarray(temperature, dtype=np.float64)
    tcorr = 1 + temperature * (a + temperature * (b + temperature * c))
    pcorr = np.exp(e * np.asarray(pressure, dtype=np.float64) / (temperature + 273.15))
    return soc * (np.asarray(frequency, dtype=np.float64) + foffset) * tcorr * \
        oxygen_solubility(salinity, temperature) * pcorr


def process_sbe43f(ctd: Profile, config: DeploymentConfig):
    """
    Convert the SBE43F oxygen frequency recorded with the ctd to dissolved oxygen in umol/kg.  The frequency is low
    pass filtered and shifted with the ctd acquisition rate, converted to ml/l with the calibration coefficients
    (sbe43f_* keys) and the processed ctd temperature, salinity and pressure, and scaled to umol/kg with the
    potential density.  Run after process_ctd_profile.

    Parameters
    ----------
    ctd
        processed ctd Profile, modified in place
    config
        deployment configuration

    Returns
    -------
    Profile
        the ctd profile with oxygen in umol/kg
    """

    ctd.log_code('process_sbe43f')
    if ctd['pressure'].size == 0 or ctd['oxygen'].shape[0] != ctd['pressure'].shape[0]:
        ctd.log_status(status_oxygen_not_processed)
        return ctd

    frequency = ctd['oxygen']
    rate = config.ctd_acquisition_rate_hz
    if np.isfinite(rate) and rate > 0:
        frequency = sbefilter(frequency, rate, config.oxygen_filter_tc_sec)
        frequency = index_shift(frequency, config.oxygen_shift_sec * rate)
    ox_mll = sbe43f_oxygen(frequency, ctd['pressure'], ctd['temperature'], ctd['salinity'], config.sbe43f_soc,
                           config.sbe43f_foffset, config.sbe43f_a, config.sbe43f_b, config.sbe43f_c,
                           config.sbe43f_e)
    if np.isnan(ox_mll).all():
        logger.warning('process_sbe43f: no valid oxygen for profile {}, check the sbe43f calibration '
                       'coefficients'.format(ctd.profile_number))
    ctd['oxygen'] = oxygen_umol_per_ml * ox_mll / (ctd['sigma_theta'] + 1000)
    ctd.log_status(status_oxygen_processed)
    return ctd


def optode_salinity_correction(oxygen: np.ndarray, pressure: np.ndarray, temperature: np.ndarray,
                               salinity: np.ndarray, latitude: float, longitude: float):
    """
    Salinity and pressure compensation of Aanderaa optode oxygen, which is reported for fresh water at the surface.
    Converts umol/l to umol/kg with the potential density, applies the 3.2% per 1000 dbar pressure response and the
    Garcia and Gordon (1992) salinity term.

    Parameters
    ----------
    oxygen
        optode oxygen in umol/l
    pressure
        sea pressure in dbar
    temperature
        in situ temperature, degrees C
    salinity
        practical salinity
    latitude
        decimal degrees
    longitude
        decimal degrees

    Returns
    -------
    np.ndarray
        oxygen in umol/kg
    """

    pressure = np.asarray(pressure, dtype=np.float64)
    salinity = np.asarray(salinity, dtype=np.float64)
    absolute_salinity = gsw.SA_from_SP(salinity, pressure, longitude, latitude)
    conservative_temperature = gsw.CT_from_t(absolute_salinity, temperature, pressure)
    potential_density = gsw.rho(absolute_salinity, conservative_temperature, 0)

    oxygen = 1000 * np.asarray(oxygen, dtype=np.float64) / potential_density
    oxygen = oxygen * (1 + optode_pressure_coefficient * pressure / 1000)
    ts = _scaled_temperature(np.asarray(temperature, dtype=np.float64))
    return np.exp(salinity * _polynomial(garcia_gordon_umol_b, ts) + garcia_gordon_umol_c0 * salinity ** 2) * oxygen


def process_eng_aanderaa_optode(eng: Profile, ctd: Profile, config: DeploymentConfig):
    """
    Correct the Aanderaa optode oxygen of the engineering stream for salinity and pressure, with the ctd temperature
    and salinity interpolated onto the engineering pressure.  Run after sync_ctd_eng.

    Parameters
    ----------
    eng
        synced engineering Profile, modified in place
    ctd
        processed ctd Profile
    config
        deployment configuration

    Returns
    -------
    Profile
        the engineering profile with oxygen in umol/kg
    """

    eng.log_code('process_eng_aanderaa_optode')
    if ctd['pressure'].size == 0 or eng['oxygen'].size == 0 or \
            eng['oxygen'].shape[0] != eng['pressure'].shape[0]:
        eng.log_status(status_oxygen_not_processed)
        return eng

    temperature, salinity = ctd_properties_on_pressure(ctd, eng['pressure'], ['temperature', 'salinity'])
    eng['oxygen'] = optode_salinity_correction(eng['oxygen'], eng['pressure'], temperature, salinity,
                                               config.latitude, config.longitude)
    eng.log_status(status_oxygen_processed)
    return eng
