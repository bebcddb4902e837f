import logging

import numpy as np

from radmmp.profile import Profile
from radmmp.radmmp_variables import status_voided, status_not_voided, status_nan_bad_sections

logger = logging.getLogger('radmmp')


def profile_is_short(profile: Profile, fieldname: str, npts_min: float, range_min: float):
    """
    Decide whether a profile should be voided.  Using the masked values of fieldname, the profile is short if the
    number of samples is at most npts_min, or the value range is at most range_min, or every value is NaN.  A
    threshold of -1 disables that test.

    Parameters
    ----------
    profile
        Profile to examine
    fieldname
        channel used for the test, ex: 'pressure' or 'heading'
    npts_min
        minimum number of samples, the profile is short at or below this
    range_min
        minimum range of values, the profile is short at or below this

    Returns
    -------
    bool
        True if the profile should be voided
    """

    data = profile[fieldname]
    if profile.profile_mask.shape[0] == data.shape[0]:
        data = data[profile.profile_mask]
    npts = data.shape[0]
    finite = data[~np.isnan(data)]

    if finite.size == 0:
        return True
    if npts_min >= 0 and npts <= npts_min:
        return True
    if range_min >= 0 and finite.max() - finite.min() <= range_min:
        return True
    return False


def void_short_profiles(profiles: list, fieldname: str, npts_min: float = -1, range_min: float = -1):
    """
    Void every profile failing the minimum length/range test (see profile_is_short).  A voided profile has every
    active channel reset to its canonical empty array, so it remains homogeneous with the rest of the collection.
    Voiding an already voided profile leaves it voided and only adds one more status entry.

    Parameters
    ----------
    profiles
        list of Profile, modified in place
    fieldname
        channel used for the test
    npts_min
        minimum number of samples, -1 to disable
    range_min
        minimum range of values, -1 to disable

    Returns
    -------
    list
        the profile numbers that were voided
    """

    voided = []
    for prof in profiles:
        prof.log_code('void_short_profiles')
        if profile_is_short(prof, fieldname, npts_min, range_min):
            prof.void(status_voided)
            voided.append(prof.profile_number)
        else:
            prof.log_status(status_not_voided)
    if voided:
        logger.info('void_short_profiles: {} of {} profiles with {} records set to empty: '
                    '{}'.format(len(voided), len(profiles), fieldname, voided))
    else:
        logger.info('void_short_profiles: no profiles with {} records set to empty'.format(fieldname))
    return voided


def nan_bad_profile_sections(profile: Profile):
    """
    Set every active channel to NaN where the profile mask is False

    Parameters
    ----------
    profile
        Profile, modified in place

    Returns
    -------
    Profile
        the profile with the bad sections set to NaN
    """

    profile.log_code('nan_bad_profile_sections')
    if profile['pressure'].size == 0:
        profile.log_status('pressure empty, no action taken')
        return profile

    bad = ~profile.profile_mask
    for name in profile.sensor_fields:
        data = profile[name]
        if data.shape[0] == bad.shape[0] and bad.any():
            data = data.copy()
            data[bad] = np.nan
            profile[name] = data
    profile.log_status(status_nan_bad_sections)
    return profile
