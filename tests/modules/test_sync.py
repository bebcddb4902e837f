import unittest

import numpy as np
import pytest

from radmmp.profile import Profile
from radmmp.modules.sync import interp_mask, sync_ctd_eng, sync_to_ctd, ctd_properties_on_pressure
from radmmp.radmmp_variables import status_synced, status_all_flagged_bad, status_pressure_record_added, \
    status_nan_pressure_record, status_no_pressure_record
from tests.test_datasets import SyntheticDeployment


class TestSync(unittest.TestCase):

    @classmethod
    def setUpClass(cls) -> None:
        cls.deployment = SyntheticDeployment()

    def test_interp_mask(self):
        ref_time = np.arange(10.0)
        ref_mask = np.ones(10, dtype=bool)
        ref_mask[4] = False
        new_time = np.array([-1.0, 0.0, 2.5, 3.5, 4.0, 6.0, 9.0, 9.5])
        assert np.array_equal(interp_mask(ref_time, ref_mask, new_time),
                              np.array([False, True, True, False, False, True, True, False]))

    def test_sync_ctd_eng(self):
        ctd = self.deployment.timed_ctd_profile(1)
        eng = self.deployment.eng_profile(1)
        eng.profile_mask[:5] = False
        ctd.profile_mask[-10:] = False
        sync_ctd_eng(ctd, eng)
        assert ctd.data_status[-1] == status_synced
        assert eng.data_status[-1] == status_synced
        assert eng.profile_direction == 'descending'
        # engineering samples before the ctd record get no pressure and are flagged
        assert np.isnan(eng['pressure'][:5]).all()
        assert not eng.profile_mask[:5].any()
        assert eng['pressure'][5:100] == pytest.approx(10.0 + 0.5 * np.arange(95))
        assert eng['dpdt'][5:100] == pytest.approx(np.full(95, 0.5))
        assert not ctd.profile_mask[-10:].any()
        assert ctd.profile_mask[:150].all()

    def test_sync_ctd_eng_no_time(self):
        ctd = self.deployment.ctd_profile(1)
        ctd['time'] = np.full(ctd.npts, np.nan)
        eng = self.deployment.eng_profile(1)
        sync_ctd_eng(ctd, eng)
        assert not ctd.profile_mask.any()
        assert ctd.data_status[-1] == status_all_flagged_bad
        assert eng.data_status[-1] == "NOT SYNC'ED"

    def test_sync_ctd_eng_empty(self):
        ctd = Profile('ctd', 1)
        eng = self.deployment.eng_profile(1)
        sync_ctd_eng(ctd, eng)
        assert ctd.data_status[-1] == "NOT SYNC'ED"

    def test_sync_to_ctd(self):
        ctd = self.deployment.timed_ctd_profile(1)
        acm = self.deployment.ad2cp_profile(1)
        acm.acquisition_rate_hz = 2.0
        sync_to_ctd(acm, ctd, depth_offset_m=0.5)
        assert acm.data_status[-1] == status_pressure_record_added
        assert acm['pressure'] == pytest.approx(ctd['pressure'] + 0.5)
        assert acm['dpdt'] == pytest.approx(np.full(acm.npts, 0.5))
        assert acm.profile_direction == 'descending'
        assert acm.attrs['ctd_data_status'] == ctd.data_status

    def test_sync_to_ctd_mismatch(self):
        with self.assertRaises(ValueError):
            sync_to_ctd(self.deployment.ad2cp_profile(1), self.deployment.timed_ctd_profile(2))

    def test_sync_to_ctd_failures(self):
        ctd = self.deployment.ctd_profile(1)
        ctd['time'] = np.full(ctd.npts, np.nan)
        acm = sync_to_ctd(self.deployment.ad2cp_profile(1), ctd)
        assert np.isnan(acm['pressure']).all()
        assert acm['pressure'].shape == (acm.npts,)
        assert acm.data_status[-1] == status_nan_pressure_record

        acm = Profile('ad2cp', 1)
        sync_to_ctd(acm, self.deployment.timed_ctd_profile(1))
        assert acm['pressure'].size == 0
        assert acm.data_status[-1] == status_no_pressure_record

    def test_ctd_properties_on_pressure(self):
        ctd = Profile('ctd', 1, pressure=np.array([10.0, 11.0, np.nan, 12.0, 12.0, 14.0]),
                      temperature=np.array([10.0, 9.0, 0.0, 8.0, 1.0, 6.0]),
                      salinity=np.array([33.0, 33.5, 0.0, 34.0, 0.0, np.nan]))
        temperature, salinity = ctd_properties_on_pressure(ctd, np.array([9.0, 10.5, 12.0, 13.0]),
                                                           ['temperature', 'salinity'])
        # first of the repeated pressures is kept, samples with any nan dropped
        assert np.isnan(temperature[0])
        assert temperature[1:3] == pytest.approx(np.array([9.5, 8.0]))
        assert np.isnan(temperature[3])
        assert salinity[1:3] == pytest.approx(np.array([33.25, 34.0]))

    def test_ctd_properties_on_pressure_no_ctd(self):
        ctd = Profile('ctd', 1, pressure=np.array([10.0, 11.0]), temperature=np.array([10.0, 9.0]))
        temperature, salinity = ctd_properties_on_pressure(ctd, np.array([10.5, 11.0]), ['temperature', 'salinity'])
        assert np.isnan(temperature).all()
        assert np.isnan(salinity).all()
