import unittest

import numpy as np
import pytest

from radmmp.config import DeploymentConfig
from radmmp.profile import Profile
from radmmp.modules.ctd import celltm, celltm_parameters_valid, moving_sum, speed_mask, profile_direction, \
    process_ctd_profile
from radmmp.radmmp_variables import status_ctd_processed, status_ctd_not_processed, status_celltm_not_applied, \
    status_ctd_rate_invalid
from tests.test_datasets import SyntheticDeployment


class TestCtd(unittest.TestCase):

    @classmethod
    def setUpClass(cls) -> None:
        cls.deployment = SyntheticDeployment()
        cls.config = DeploymentConfig(deployment_id='TEST0001', ctd_acquisition_rate_hz=2.0, latitude=46.9,
                                      longitude=-124.9)

    def test_celltm_constant_temperature(self):
        cond = np.linspace(35.0, 36.0, 20)
        corrected = celltm(cond, np.full(20, 10.0), 2.0, 0.04, 8.0)
        assert corrected == pytest.approx(cond)

    def test_celltm_temperature_step(self):
        cond = np.full(20, 35.0)
        temp = np.full(20, 10.0)
        temp[10:] = 11.0
        corrected = celltm(cond, temp, 2.0, 0.04, 8.0)
        assert corrected[:10] == pytest.approx(cond[:10])
        assert corrected[10] != pytest.approx(35.0)
        # the correction decays after the step
        assert abs(corrected[19] - 35.0) < abs(corrected[10] - 35.0)

    def test_celltm_nan(self):
        cond = np.full(6, 35.0)
        cond[2] = np.nan
        corrected = celltm(cond, np.full(6, 10.0), 2.0, 0.04, 8.0)
        assert np.isnan(corrected[2])
        assert not np.isnan(np.delete(corrected, 2)).any()

    def test_celltm_bad_beta(self):
        with self.assertRaises(ValueError):
            celltm(np.full(6, 35.0), np.full(6, 10.0), 2.0, 0.04, 0.0)

    def test_moving_sum(self):
        tf = np.array([1, 1, 1, 0, 1, 1])
        assert np.array_equal(moving_sum(tf, 3), np.array([2.0, 3.0, 2.0, 2.0, 2.0, 2.0]))
        assert moving_sum(tf, 4).shape == (6,)

    def test_speed_mask(self):
        pressure = np.concatenate([10.0 + 0.25 * np.arange(40), np.full(20, 19.75)])
        mask = speed_mask(pressure, 2.0, 0.05, 4)
        assert mask[5:35].all()
        assert not mask[42:].any()
        assert not speed_mask(np.full(5, np.nan), 2.0, 0.05, 4).any()

    def test_profile_direction(self):
        assert profile_direction(np.arange(10.0, 50.0)) == 'descending'
        assert profile_direction(np.arange(50.0, 10.0, -1)) == 'ascending'
        assert profile_direction(np.array([10.0, 12.0, 11.0])) == 'stationary'
        assert profile_direction(np.full(3, np.nan)) == 'unknown'

    def test_process_ctd_profile(self):
        ctd = self.deployment.ctd_profile(1)
        ctd['time'] = self.deployment.ctd_true_time(1)
        ctd.acquisition_rate_hz = 2.0
        process_ctd_profile(ctd, self.config)
        assert ctd.data_status[-1] == status_ctd_processed
        assert ctd.deployment_id == 'TEST0001'
        assert ctd.profile_direction == 'descending'
        assert ctd.binning_parameters == 1.0
        for name in ['salinity', 'theta', 'sigma_theta', 'dpdt']:
            assert ctd[name].shape == ctd['pressure'].shape
        assert np.nanmedian(ctd['dpdt']) == pytest.approx(0.5, abs=1e-3)
        # realistic seawater values for 38 mS/cm at 12 degC
        assert 30 < np.nanmedian(ctd['salinity']) < 38
        assert 20 < np.nanmedian(ctd['sigma_theta']) < 30
        assert ctd.profile_mask[20:180].all()
        assert not ctd.profile_mask[-1]

    def test_process_ctd_profile_empty(self):
        ctd = Profile('ctd', 1)
        process_ctd_profile(ctd, self.config)
        assert ctd.data_status[-1] == status_ctd_not_processed
        assert ctd['salinity'].size == 0

    def test_celltm_parameters_valid(self):
        assert celltm_parameters_valid(2.0, 0.04, 8.0)
        assert celltm_parameters_valid(2.0, 0.0, 8.0)
        assert not celltm_parameters_valid(2.0, 0.04, 0.0)
        assert not celltm_parameters_valid(2.0, 0.04, -8.0)
        assert not celltm_parameters_valid(0.0, 0.04, 8.0)
        assert not celltm_parameters_valid(2.0, np.nan, 8.0)

    def test_moving_sum_bad_window(self):
        with self.assertRaises(ValueError):
            moving_sum(np.ones(5), 0)

    def test_speed_mask_zero_window(self):
        pressure = 10.0 + 0.25 * np.arange(40)
        assert np.array_equal(speed_mask(pressure, 2.0, 0.05, 0), speed_mask(pressure, 2.0, 0.05, 1))
        assert speed_mask(pressure, 2.0, 0.05, np.nan)[:-1].all()

    def _timed_profile(self):
        ctd = self.deployment.ctd_profile(1)
        ctd['time'] = self.deployment.ctd_true_time(1)
        ctd.acquisition_rate_hz = 2.0
        return ctd

    def test_process_ctd_profile_zero_speed_window(self):
        cfg = self.config.replace(ctd_speed_window_npts=0, ctd_filter_tc_pressure_sec=0.0)
        ctd = process_ctd_profile(self._timed_profile(), cfg)
        assert ctd.data_status[-1] == status_ctd_processed
        assert ctd.profile_mask[:-1].all()
        assert not ctd.profile_mask[-1]

    def test_process_ctd_profile_bad_thermal_mass(self):
        cfg = self.config.replace(ctd_thermal_mass_inverse_beta=0.0)
        ctd = process_ctd_profile(self._timed_profile(), cfg)
        assert status_celltm_not_applied in ctd.data_status
        assert ctd.data_status[-1] == status_ctd_processed
        assert 'celltm' in ctd.code_history
        # conductivity is left as filtered, without the thermal mass term
        uncorrected = process_ctd_profile(self._timed_profile(), self.config.replace(ctd_thermal_mass_alpha=0.0))
        assert ctd['conductivity'] == pytest.approx(uncorrected['conductivity'])
        assert status_celltm_not_applied not in uncorrected.data_status

    def test_process_ctd_profile_zero_rate(self):
        raw = self._timed_profile()
        ctd = process_ctd_profile(self._timed_profile(), self.config.replace(ctd_acquisition_rate_hz=0.0))
        assert status_ctd_rate_invalid in ctd.data_status
        assert status_celltm_not_applied in ctd.data_status
        assert ctd.data_status[-1] == status_ctd_processed
        # no filtering, no alignment, no thermal mass correction
        assert ctd['pressure'] == pytest.approx(raw['pressure'])
        assert ctd['conductivity'] == pytest.approx(raw['conductivity'])
        assert not np.isnan(ctd['salinity']).any()
        assert ctd.profile_direction == 'descending'

    def test_process_ctd_profile_warnings(self):
        with self.assertLogs('radmmp', level='WARNING') as captured:
            process_ctd_profile(self._timed_profile(), self.config.replace(ctd_acquisition_rate_hz=0.0))
        assert any('acquisition rate' in msg for msg in captured.output)
        assert any('thermal mass correction skipped' in msg for msg in captured.output)
