import logging

import numpy as np
import xarray as xr

from radmmp.radmmp_variables import channel_component_dims

logger = logging.getLogger('radmmp')


def stack_ragged_arrays(arrays: list, ncol: int = 0, npts_max: int = None):
    """
    Stack per profile arrays of different lengths into one array, right padded with NaN.  Empty arrays (voided
    profiles) contribute only padding.

    Parameters
    ----------
    arrays
        list of (npts,) arrays, or (npts, ncol) arrays for multi column channels
    ncol
        number of columns, 0 for one dimensional channels
    npts_max
        length to pad to, defaults to the longest array

    Returns
    -------
    np.ndarray
        (npts_max, len(arrays)) array, or (npts_max, len(arrays), ncol) for multi column channels
    """

    if npts_max is None:
        npts_max = max([arr.shape[0] for arr in arrays], default=0)
    shape = (npts_max, len(arrays), ncol) if ncol else (npts_max, len(arrays))
    stacked = np.full(shape, np.nan)
    for cnt, arr in enumerate(arrays):
        arr = np.asarray(arr, dtype=np.float64)
        if arr.shape[0] == 0:
            continue
        if ncol:
            stacked[:arr.shape[0], cnt, :] = arr.reshape(arr.shape[0], ncol)
        else:
            stacked[:arr.shape[0], cnt] = arr.ravel()
    return stacked


def _select_profiles(profiles: list, profile_numbers: list = None):
    if profile_numbers is None:
        return list(profiles)
    lookup = {prof.profile_number: prof for prof in profiles}
    try:
        return [lookup[int(pnum)] for pnum in profile_numbers]
    except KeyError as e:
        raise KeyError('profile number {} is not in the collection'.format(e))


def _active_fields(profiles: list, fields: list = None):
    if fields is not None:
        return list(fields)
    for prof in profiles:
        if prof.sensor_fields:
            return list(prof.sensor_fields)
    return []


def write_field_arrays_to_dataset(profiles: list, prefix: str = '', profile_numbers: list = None,
                                  fields: list = None, row_dim: str = 'sample'):
    """
    Build the NaN padded product of a profile collection, one variable per active channel with dims
    (row, profile) or (row, profile, component).  The row dimension is as long as the longest profile.

    Parameters
    ----------
    profiles
        list of Profile
    prefix
        prefix added to every variable and row dimension name, ex: 'nan_processed_ctd_'
    profile_numbers
        profile numbers to include, in order, defaults to every profile
    fields
        channels to include, defaults to the sensor_fields of the first profile that has any
    row_dim
        name of the row dimension (prefixed)

    Returns
    -------
    xr.Dataset
        padded dataset with a 'profile' coordinate of profile numbers
    """

    profiles = _select_profiles(profiles, profile_numbers)
    fields = _active_fields(profiles, fields)
    if not profiles:
        return xr.Dataset()

    schema = profiles[0].schema
    rowname = prefix + row_dim
    npts_max = max([prof[name].shape[0] for prof in profiles for name in fields], default=0)
    dvars = {}
    for name in fields:
        ncol = schema[name]
        stacked = stack_ragged_arrays([prof[name] for prof in profiles], ncol=ncol, npts_max=npts_max)
        if ncol:
            dvars[prefix + name] = ([rowname, 'profile', channel_component_dims[name]], stacked)
        else:
            dvars[prefix + name] = ([rowname, 'profile'], stacked)
    return xr.Dataset(dvars, coords={'profile': [prof.profile_number for prof in profiles]})


def binned_grid(profiles: list, prefix: str = 'binned_', profile_numbers: list = None, fields: list = None):
    """
    Build the binned grid deliverable from pressure binned profiles (see pressure_bin_profile), one variable per
    binned channel with dims (bin, profile) or (bin, profile, component).  The bin coordinate holds the pressure bin
    centers and the binning_parameters attribute holds [bin min, bin size, bin max].

    Parameters
    ----------
    profiles
        list of binned Profile, all binned with the same parameters
    prefix
        prefix added to every variable and to the bin dimension name, ex: 'binned_acm_'
    profile_numbers
        profile numbers to include, in order, defaults to every profile
    fields
        channels to include, defaults to the sensor_fields of the first profile

    Returns
    -------
    xr.Dataset
        binned grid
    """

    profiles = _select_profiles(profiles, profile_numbers)
    if not profiles:
        return xr.Dataset()
    params = [tuple(prof.binning_parameters) for prof in profiles if prof.binning_parameters is not None]
    if len(params) != len(profiles) or len(set(params)) != 1:
        raise ValueError('binned_grid: all profiles must be binned with the same binning parameters')

    dset = write_field_arrays_to_dataset(profiles, prefix=prefix, fields=fields, row_dim='bin')
    dset = dset.assign_coords({prefix + 'bin': profiles[0].pressure_bin_values})
    dset.attrs[prefix + 'binning_parameters'] = list(params[0])
    return dset


def assign_profile_numbers_to_indices(profiles: list, fieldname: str = 'pressure'):
    """
    Profile number of every sample of the flat concatenation of fieldname over the profiles

    Parameters
    ----------
    profiles
        list of Profile
    fieldname
        channel whose length gives the number of samples of each profile

    Returns
    -------
    np.ndarray
        int profile number per sample
    """

    counts = [prof[fieldname].shape[0] for prof in profiles]
    numbers = [prof.profile_number for prof in profiles]
    return np.repeat(np.array(numbers, dtype=int), np.array(counts, dtype=int))


def concatenate_sensor_fields(profiles: list, prefix: str = '', profile_numbers: list = None, fields: list = None):
    """
    Build the flat product of a profile collection, every active channel concatenated over the profiles along one
    observation dimension, plus a parallel profile_indices variable holding the profile number of each observation.
    Voided profiles contribute no observations.

    Parameters
    ----------
    profiles
        list of Profile
    prefix
        prefix added to every variable and to the observation dimension name, ex: 'rawvec_ctd_'
    profile_numbers
        profile numbers to include, in order, defaults to every profile
    fields
        channels to include, defaults to the sensor_fields of the first profile that has any

    Returns
    -------
    xr.Dataset
        flat dataset
    """

    profiles = _select_profiles(profiles, profile_numbers)
    fields = _active_fields(profiles, fields)
    if not profiles:
        return xr.Dataset()

    schema = profiles[0].schema
    obsname = prefix + 'obs'
    indexfield = 'pressure' if 'pressure' in fields else fields[0]
    counts = [prof[indexfield].shape[0] for prof in profiles]
    dvars = {}
    for name in fields:
        ncol = schema[name]
        arrays = []
        for prof, count in zip(profiles, counts):
            arr = prof[name]
            if arr.shape[0] != count:
                # a sensor that did not report in this profile, nan over the profile samples
                logger.debug('concatenate_sensor_fields: {}{} of profile {} has {} samples, expected {}, filling with '
                             'NaN'.format(prefix, name, prof.profile_number, arr.shape[0], count))
                arr = np.full((count, ncol) if ncol else (count,), np.nan)
            arrays.append(arr)
        if ncol:
            dvars[prefix + name] = ([obsname, channel_component_dims[name]],
                                    np.concatenate([arr.reshape(-1, ncol) for arr in arrays], axis=0))
        else:
            dvars[prefix + name] = ([obsname], np.concatenate([arr.ravel() for arr in arrays]))
    dvars[prefix + 'profile_indices'] = ([obsname], assign_profile_numbers_to_indices(profiles, indexfield))
    dset = xr.Dataset(dvars)
    lengths = set(dset[var].shape[0] for var in dset.data_vars)
    if len(lengths) > 1:
        raise ValueError('concatenate_sensor_fields: channels of {} have different lengths'.format(prefix))
    return dset


def profile_status_dataset(profiles: list, prefix: str = ''):
    """
    Per profile metadata (direction, acquisition rate, last data status entry) as variables along 'profile'
    """

    numbers = [prof.profile_number for prof in profiles]
    return xr.Dataset({prefix + 'profile_direction': (['profile'], [prof.profile_direction for prof in profiles]),
                       prefix + 'acquisition_rate_hz': (['profile'], [prof.acquisition_rate_hz for prof in profiles]),
                       prefix + 'data_status': (['profile'], [prof.data_status[-1] if prof.data_status else ''
                                                              for prof in profiles])},
                      coords={'profile': numbers})


def amalgamate_datasets(datasets: list, attrs: dict = None):
    """
    Merge the product datasets into one deliverable.  Datasets must agree on any shared dimension, the attributes of
    every dataset are kept.

    Parameters
    ----------
    datasets
        list of xr.Dataset
    attrs
        additional attributes for the merged dataset

    Returns
    -------
    xr.Dataset
        merged dataset
    """

    merged = xr.merge(datasets, combine_attrs='drop_conflicts')
    if attrs:
        merged.attrs.update(attrs)
    return merged
