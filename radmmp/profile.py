import copy
from enum import Enum
from typing import Union

import numpy as np

from radmmp.radmmp_variables import supported_instruments, instrument_channels, stage_fields, profile_directions, \
    status_voided, status_not_selected


class ProcessingStage(Enum):
    """
    Processing stages of a profile, the value is the product level label used in the deliverables
    """
    RAW = 'L0'
    PROCESSED = 'L1'
    BINNED = 'L2'


def empty_channel(ncol: int = 0):
    """
    Canonical empty array for a channel, (0,) for one dimensional channels and (0, ncol) for multi column channels

    Parameters
    ----------
    ncol
        number of columns, 0 for a one dimensional channel

    Returns
    -------
    np.ndarray
        empty float64 array
    """

    if ncol:
        return np.empty((0, ncol), dtype=np.float64)
    return np.empty((0,), dtype=np.float64)


class Profile:
    """
    One ascent or descent of the profiler as recorded by one instrument.

    Every channel in the instrument schema (radmmp_variables.instrument_channels) is always present as a float64 numpy
    array, possibly empty.  sensor_fields holds the ordered list of channels that take part in the current stage
    operations (voiding, masking, binning, aggregation), see set_stage.

    Channels are accessed by item, profile['pressure'], profile['vel_beam'] = arr.
    """

    def __init__(self, instrument: str, profile_number: int, deployment_id: str = '',
                 acquisition_rate_hz: float = np.nan, beam_mapping: Union[list, np.ndarray] = None,
                 profile_direction: str = 'unknown', **channels):
        if instrument not in supported_instruments:
            raise ValueError('Profile: instrument must be one of {}, found {}'.format(supported_instruments, instrument))
        if int(profile_number) < 0:
            raise ValueError('Profile: profile_number must be a non-negative integer, found {}'.format(profile_number))
        self.instrument = instrument
        self.profile_number = int(profile_number)
        self.deployment_id = deployment_id
        self.profile_direction = profile_direction
        self.acquisition_rate_hz = float(acquisition_rate_hz)
        self.data_status = []
        self.code_history = []
        self.backtrack = False
        self.beam_mapping = np.array([], dtype=int) if beam_mapping is None else np.asarray(beam_mapping, dtype=int)
        self.binning_parameters = None
        self.pressure_bin_values = np.empty((0,), dtype=np.float64)
        self.ambiguous_points = np.empty((0, 2), dtype=np.float64)
        self.attrs = {}

        self.data = {name: empty_channel(ncol) for name, ncol in self.schema.items()}
        for name, value in channels.items():
            self[name] = value
        self.profile_mask = np.ones(self.npts, dtype=bool)
        self.sensor_fields = list(stage_fields[instrument][ProcessingStage.RAW.value])

    @property
    def schema(self):
        return instrument_channels[self.instrument]

    @property
    def profile_direction(self):
        return self._profile_direction

    @profile_direction.setter
    def profile_direction(self, direction: str):
        if direction not in profile_directions:
            raise ValueError('Profile: direction must be one of {}, found {}'.format(profile_directions, direction))
        self._profile_direction = direction

    @property
    def npts(self):
        """
        number of samples in the profile, taken from the pressure record, or from time for a current meter profile
        that has not been given a pressure record yet
        """
        if self.data['pressure'].shape[0]:
            return self.data['pressure'].shape[0]
        return self.data['time'].shape[0]

    @property
    def is_empty(self):
        return self.npts == 0

    def __getitem__(self, name: str):
        try:
            return self.data[name]
        except KeyError:
            raise KeyError('{} profile has no channel named {}'.format(self.instrument, name))

    def __setitem__(self, name: str, value):
        if name not in self.schema:
            raise KeyError('{} profile has no channel named {}'.format(self.instrument, name))
        ncol = self.schema[name]
        arr = np.array(value, dtype=np.float64)
        if ncol:
            if arr.size == 0:
                arr = empty_channel(ncol)
            elif arr.ndim != 2 or arr.shape[1] != ncol:
                raise ValueError('{}: expected {} columns, found shape {}'.format(name, ncol, arr.shape))
        else:
            if arr.ndim > 1 and arr.size != arr.shape[0]:
                raise ValueError('{}: expected a one dimensional channel, found shape {}'.format(name, arr.shape))
            arr = arr.ravel()
        self.data[name] = arr

    def __contains__(self, name: str):
        return name in self.data

    def __repr__(self):
        return 'Profile({}, {}, npts={}, direction={})'.format(self.instrument, self.profile_number, self.npts,
                                                               self.profile_direction)

    def set_stage(self, stage: ProcessingStage):
        """
        Set the active channel list to the static table entry for this instrument and stage

        Parameters
        ----------
        stage
            ProcessingStage enum value
        """

        if not isinstance(stage, ProcessingStage):
            raise TypeError('set_stage: expected a ProcessingStage, found {}'.format(stage))
        self.sensor_fields = list(stage_fields[self.instrument][stage.value])

    def log_status(self, msg: str):
        self.data_status.append(msg)

    def log_code(self, name: str):
        self.code_history.append(name)

    def void(self, status: str = status_voided):
        """
        Reset every active channel to its canonical empty array (keeping the column count of multi column channels)
        and empty the profile mask.  The profile stays structurally identical to its siblings.

        Parameters
        ----------
        status
            data status entry recorded for the voided profile
        """

        for name in self.sensor_fields:
            self.data[name] = empty_channel(self.schema[name])
        self.profile_mask = np.zeros(self.npts, dtype=bool)
        self.log_status(status)

    def copy(self):
        return copy.deepcopy(self)


def initialize_unselected_profiles(profiles: dict, selected: list, instrument: str, deployment_id: str = ''):
    """
    Build the full profile collection, numbered 1 to the largest profile number in either profiles or selected.
    Selected profiles are taken from profiles, every other number gets an empty placeholder profile with a
    'notSelectedToBeImported' status so that index equals profile number throughout processing.  Profile 0 is never
    included.

    Parameters
    ----------
    profiles
        dict of profile number: Profile for the imported profiles
    selected
        list of the profile numbers selected for processing
    instrument
        instrument name, used to build the placeholder profiles
    deployment_id
        deployment identifier given to the placeholder profiles

    Returns
    -------
    dict
        profile number: Profile for every profile number from 1 to the maximum, in ascending order
    """

    numbers = [int(n) for n in list(profiles.keys()) + list(selected) if int(n) > 0]
    if not numbers:
        return {}
    selected = set(int(n) for n in selected)
    collection = {}
    for pnum in range(1, max(numbers) + 1):
        if pnum in selected and pnum in profiles:
            collection[pnum] = profiles[pnum]
        else:
            placeholder = Profile(instrument, pnum, deployment_id=deployment_id)
            placeholder.log_code('initialize_unselected_profiles')
            placeholder.void(status_not_selected)
            collection[pnum] = placeholder
    return collection
