import unittest

import numpy as np

from radmmp.profile import Profile
from radmmp.modules.voiding import profile_is_short, void_short_profiles, nan_bad_profile_sections
from radmmp.radmmp_variables import status_voided, status_not_voided, status_nan_bad_sections


class TestVoiding(unittest.TestCase):

    def setUp(self) -> None:
        self.long = Profile('eng', 1, time=np.arange(20.0), pressure=np.linspace(10.0, 60.0, 20))
        self.short = Profile('eng', 2, time=np.arange(3.0), pressure=np.array([10.0, 11.0, 12.0]))
        self.shallow = Profile('eng', 3, time=np.arange(20.0), pressure=np.linspace(10.0, 11.0, 20))
        self.nans = Profile('eng', 4, time=np.arange(5.0), pressure=np.full(5, np.nan))

    def test_profile_is_short(self):
        assert not profile_is_short(self.long, 'pressure', 10, 5)
        assert profile_is_short(self.short, 'pressure', 10, 5)
        assert profile_is_short(self.shallow, 'pressure', 10, 5)
        assert not profile_is_short(self.shallow, 'pressure', 10, -1)
        assert profile_is_short(self.nans, 'pressure', -1, -1)

    def test_profile_is_short_masked(self):
        self.long.profile_mask[5:] = False
        assert profile_is_short(self.long, 'pressure', 10, -1)

    def test_void_short_profiles(self):
        profiles = [self.long, self.short, self.shallow, self.nans]
        voided = void_short_profiles(profiles, 'pressure', 10, 5)
        assert voided == [2, 3, 4]
        assert self.long.data_status[-1] == status_not_voided
        for prof in [self.short, self.shallow, self.nans]:
            assert prof.is_empty
            assert prof['time'].shape == (0,)
            assert prof.data_status[-1] == status_voided

    def test_void_short_profiles_idempotent(self):
        profiles = [self.long, self.short]
        void_short_profiles(profiles, 'pressure', 10, 5)
        first = [prof.copy() for prof in profiles]
        void_short_profiles(profiles, 'pressure', 10, 5)
        for before, after in zip(first, profiles):
            for name in before.schema:
                assert np.array_equal(before[name], after[name], equal_nan=True)
            assert np.array_equal(before.profile_mask, after.profile_mask)
        assert self.short.data_status == [status_voided, status_voided]

    def test_void_short_profiles_disabled(self):
        voided = void_short_profiles([self.long, self.short], 'pressure', -1, -1)
        assert voided == []

    def test_nan_bad_profile_sections(self):
        self.long.profile_mask[:4] = False
        nan_bad_profile_sections(self.long)
        assert np.isnan(self.long['pressure'][:4]).all()
        assert np.isnan(self.long['time'][:4]).all()
        assert not np.isnan(self.long['pressure'][4:]).any()
        assert self.long.data_status[-1] == status_nan_bad_sections

    def test_nan_bad_profile_sections_empty(self):
        prof = Profile('eng', 1)
        nan_bad_profile_sections(prof)
        assert prof.data_status[-1] == 'pressure empty, no action taken'
