import unittest

import numpy as np

from radmmp.profile import Profile, ProcessingStage, empty_channel, initialize_unselected_profiles
from radmmp.radmmp_variables import instrument_channels, stage_fields, status_not_selected, status_voided


class TestProfile(unittest.TestCase):

    @classmethod
    def setUpClass(cls) -> None:
        cls.pressure = np.arange(10.0, 20.0)
        cls.velbeam = np.ones((10, 4))

    def test_empty_channel(self):
        assert empty_channel().shape == (0,)
        assert empty_channel(4).shape == (0, 4)

    def test_profile_channels(self):
        prof = Profile('ad2cp', 3, pressure=self.pressure, vel_beam=self.velbeam, beam_mapping=[2, 3, 4])
        assert set(prof.data.keys()) == set(instrument_channels['ad2cp'].keys())
        assert prof.npts == 10
        assert prof['vel_enu'].shape == (0, 3)
        assert prof['heading'].shape == (0,)
        assert prof.profile_mask.all()
        assert prof.profile_mask.shape == (10,)
        assert np.array_equal(prof.beam_mapping, np.array([2, 3, 4]))
        assert prof.sensor_fields == stage_fields['ad2cp']['L0']
        assert 'vel_beam' in prof

    def test_npts_from_time(self):
        prof = Profile('fsi', 1, time=np.arange(5.0))
        assert prof.npts == 5
        assert not prof.is_empty
        assert Profile('fsi', 1).is_empty

    def test_bad_construction(self):
        with self.assertRaises(ValueError):
            Profile('sbe37', 1)
        with self.assertRaises(ValueError):
            Profile('ctd', -1)
        with self.assertRaises(ValueError):
            Profile('ctd', 1, profile_direction='sideways')

    def test_bad_channel(self):
        prof = Profile('ctd', 1, pressure=self.pressure)
        with self.assertRaises(KeyError):
            prof['vel_beam']
        with self.assertRaises(KeyError):
            prof['vel_beam'] = self.velbeam
        with self.assertRaises(ValueError):
            prof['temperature'] = np.ones((10, 2))
        ad2cp = Profile('ad2cp', 1)
        with self.assertRaises(ValueError):
            ad2cp['vel_beam'] = np.ones((10, 3))

    def test_one_dimensional_channel_ravel(self):
        prof = Profile('ctd', 1)
        prof['pressure'] = self.pressure.reshape(-1, 1)
        assert prof['pressure'].shape == (10,)
        assert prof['pressure'].dtype == np.float64

    def test_set_stage(self):
        prof = Profile('eng', 1, pressure=self.pressure)
        prof.set_stage(ProcessingStage.BINNED)
        assert prof.sensor_fields == stage_fields['eng']['L2']
        with self.assertRaises(TypeError):
            prof.set_stage('L2')

    def test_void(self):
        prof = Profile('ad2cp', 1, time=np.arange(10.0), pressure=self.pressure, vel_beam=self.velbeam)
        prof.void()
        assert prof['pressure'].shape == (0,)
        assert prof['vel_beam'].shape == (0, 4)
        assert prof.profile_mask.shape == (0,)
        assert prof.data_status[-1] == status_voided
        prof.void()
        assert prof['vel_beam'].shape == (0, 4)
        assert prof.data_status == [status_voided, status_voided]

    def test_copy(self):
        prof = Profile('ctd', 1, pressure=self.pressure)
        newprof = prof.copy()
        newprof['pressure'][0] = -99
        newprof.log_status('changed')
        assert prof['pressure'][0] == 10.0
        assert prof.data_status == []

    def test_initialize_unselected_profiles(self):
        profiles = {1: Profile('ctd', 1, pressure=self.pressure), 3: Profile('ctd', 3, pressure=self.pressure),
                    4: Profile('ctd', 4, pressure=self.pressure)}
        collection = initialize_unselected_profiles(profiles, [1, 3, 5], 'ctd', deployment_id='dep')
        assert list(collection.keys()) == [1, 2, 3, 4, 5]
        assert collection[1] is profiles[1]
        assert collection[3] is profiles[3]
        for pnum in [2, 4, 5]:
            assert collection[pnum].is_empty
            assert collection[pnum].profile_number == pnum
            assert collection[pnum].deployment_id == 'dep'
            assert collection[pnum].data_status == [status_not_selected]

    def test_initialize_unselected_profiles_empty(self):
        assert initialize_unselected_profiles({}, [], 'ctd') == {}
