import logging

import numpy as np

from radmmp.config import DeploymentConfig
from radmmp.profile import Profile
from radmmp.modules.sync import ctd_properties_on_pressure
from radmmp.radmmp_variables import seawater_depolarization_ratio, status_bback_processed, status_bback_nan

logger = logging.getLogger('radmmp')

avogadro = 6.0221417930e23
boltzmann = 1.3806503e-23
water_molecular_weight = 0.018  # kg/mol


def density_seawater(temperature: np.ndarray, salinity: np.ndarray):
    """
    Density of seawater at atmospheric pressure in kg/m3, UNESCO 1981 (EOS-80)
    """

    t = np.asarray(temperature, dtype=np.float64)
    s = np.asarray(salinity, dtype=np.float64)
    rho_w = 999.842594 + t * (6.793952e-2 + t * (-9.09529e-3 + t * (1.001685e-4 + t * (-1.120083e-6 +
                                                                                      t * 6.536332e-9))))
    a = 8.24493e-1 + t * (-4.0899e-3 + t * (7.6438e-5 + t * (-8.2467e-7 + t * 5.3875e-9)))
    b = -5.72466e-3 + t * (1.0227e-4 + t * -1.6546e-6)
    return rho_w + a * s + b * s ** 1.5 + 4.8314e-4 * s ** 2


def isotherm_compress(temperature: np.ndarray, salinity: np.ndarray):
    """
    Isothermal compressibility of seawater at atmospheric pressure in 1/Pa, from the secant bulk modulus of Millero
    et al. (1980)
    """

    t = np.asarray(temperature, dtype=np.float64)
    s = np.asarray(salinity, dtype=np.float64)
    kw = 19652.21 + 148.4206 * t - 2.327105 * t ** 2 + 1.360477e-2 * t ** 3 - 5.155288e-5 * t ** 4
    a0 = 54.6746 - 0.603459 * t + 1.09987e-2 * t ** 2 - 6.167e-5 * t ** 3
    b0 = 7.944e-2 + 1.6483e-2 * t - 5.3009e-4 * t ** 2
    ks = kw + a0 * s + b0 * s ** 1.5
    # bar to Pa
    return 1 / ks * 1e-5


def refractive_index(wavelength: float, temperature: np.ndarray, salinity: np.ndarray):
    """
    Absolute refractive index of seawater and its salinity derivative, Quan and Fry (1995) scaled by the refractive
    index of air (Ciddor 1996)

    Parameters
    ----------
    wavelength
        light wavelength in nm
    temperature
        degrees C
    salinity
        practical salinity

    Returns
    -------
    np.ndarray
        refractive index of seawater
    np.ndarray
        partial derivative of the refractive index with salinity
    """

    t = np.asarray(temperature, dtype=np.float64)
    s = np.asarray(salinity, dtype=np.float64)
    wl_um2 = (wavelength / 1e3) ** -2
    n_air = 1.0 + (5792105.0 / (238.0185 - wl_um2) + 167917.0 / (57.362 - wl_um2)) / 1e8

    n0, n1, n2, n3, n4 = 1.31405, 1.779e-4, -1.05e-6, 1.6e-8, -2.02e-6
    n5, n6, n7, n8, n9 = 15.868, 0.01155, -0.00423, -4382.0, 1.1455e6
    nsw = n0 + (n1 + n2 * t + n3 * t ** 2) * s + n4 * t ** 2 + (n5 + n6 * s + n7 * t) / wavelength + \
        n8 / wavelength ** 2 + n9 / wavelength ** 3
    dnds = (n1 + n2 * t + n3 * t ** 2 + n6 / wavelength) * n_air
    return nsw * n_air, dnds


def seawater_scattering(temperature: np.ndarray, salinity: np.ndarray, theta: float, wavelength: float,
                        delta: float = seawater_depolarization_ratio):
    """
    Volume scattering function and total scattering coefficient of seawater, Zhang et al. (2009), as the sum of the
    density fluctuation and concentration fluctuation terms.

    Parameters
    ----------
    temperature
        degrees C
    salinity
        practical salinity
    theta
        scattering angle in degrees
    wavelength
        light wavelength in nm
    delta
        depolarization ratio

    Returns
    -------
    np.ndarray
        volume scattering function of seawater at theta, m-1 sr-1
    np.ndarray
        total scattering coefficient of seawater, m-1
    """

    t = np.asarray(temperature, dtype=np.float64)
    s = np.asarray(salinity, dtype=np.float64)
    deg_k = t + 273.15
    nsw, dnds = refractive_index(wavelength, t, s)
    icomp = isotherm_compress(t, s)
    rho = density_seawater(t, s)

    # derivative of the natural log of the water activity with salinity
    dlnawds = (-5.58651e-4 + 2.40452e-7 * t - 3.12165e-9 * t ** 2 + 2.40808e-11 * t ** 3) + \
        1.5 * (1.79613e-5 - 9.9422e-8 * t + 2.08919e-9 * t ** 2 - 1.39872e-11 * t ** 3) * s ** 0.5 + \
        2 * (-2.31065e-6 - 1.37674e-9 * t - 1.93316e-11 * t ** 2) * s
    # density derivative of the refractive index
    dfri = (nsw ** 2 - 1) * (1 + 2 / 3 * (nsw ** 2 + 2) * (nsw / 3 - 1 / 3 / nsw) ** 2)

    wl_m = wavelength * 1e-9
    cabannes = (6 + 6 * delta) / (6 - 7 * delta)
    beta_df = np.pi ** 2 / 2 * wl_m ** -4 * boltzmann * deg_k * icomp * dfri ** 2 * cabannes
    flu_con = s * water_molecular_weight * dnds ** 2 / rho / -dlnawds / avogadro
    beta_cf = 2 * np.pi ** 2 * wl_m ** -4 * nsw ** 2 * flu_con * cabannes

    beta90 = beta_df + beta_cf
    bsw = 8 * np.pi / 3 * beta90 * (2 + delta) / (1 + delta)
    betasw = beta90 * (1 + ((1 - delta) / (1 + delta)) * np.cos(np.deg2rad(theta)) ** 2)
    return betasw, bsw


def bback_total(beta: np.ndarray, temperature: np.ndarray, salinity: np.ndarray, theta: float, wavelength: float,
                chi: float):
    """
    Total optical backscatter coefficient from the measured volume scattering function.  The seawater contribution
    is removed, the particulate part is extrapolated to the backward hemisphere with the chi factor (Boss and
    Pegau 2001) and the seawater backscatter (half the seawater total scattering) is added back.

    Parameters
    ----------
    beta
        volume scattering function at theta, m-1 sr-1
    temperature
        degrees C
    salinity
        practical salinity
    theta
        scattering angle of the sensor, degrees
    wavelength
        sensor wavelength, nm
    chi
        conversion factor from the particulate volume scattering function at theta to particulate backscatter

    Returns
    -------
    np.ndarray
        total backscatter coefficient, m-1
    """

    betasw, bsw = seawater_scattering(temperature, salinity, theta, wavelength)
    betap = np.asarray(beta, dtype=np.float64) - betasw
    return chi * 2 * np.pi * betap + bsw / 2


def process_bback(eng: Profile, ctd: Profile, config: DeploymentConfig):
    """
    Convert the calibrated backscatter volume scattering function of the engineering stream to the total optical
    backscatter coefficient, with the ctd temperature and salinity interpolated onto the engineering pressure.  Run
    after apply_eng_calibrations and sync_ctd_eng.  Without a usable pressure record the backscatter is set to NaN.

    Parameters
    ----------
    eng
        synced engineering Profile, modified in place
    ctd
        processed ctd Profile
    config
        deployment configuration, bback_scattering_angle_deg, bback_wavelength_nm and bback_chi_factor

    Returns
    -------
    Profile
        the engineering profile with the backscatter coefficient
    """

    eng.log_code('process_bback')
    bback = eng['bback']
    if bback.size == 0:
        return eng
    if ctd['pressure'].size == 0 or eng['pressure'].size == 0 or np.isnan(eng['pressure']).all() or \
            bback.shape[0] != eng['pressure'].shape[0]:
        logger.warning('process_bback: no pressure record for profile {}, backscatter set to '
                       'NaN'.format(eng.profile_number))
        eng['bback'] = np.full(bback.shape[0], np.nan)
        eng.log_status(status_bback_nan)
        return eng

    temperature, salinity = ctd_properties_on_pressure(ctd, eng['pressure'], ['temperature', 'salinity'])
    eng['bback'] = bback_total(bback, temperature, salinity, config.bback_scattering_angle_deg,
                               config.bback_wavelength_nm, config.bback_chi_factor)
    eng.log_status(status_bback_processed)
    return eng
