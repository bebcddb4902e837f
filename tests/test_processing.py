import logging
import unittest

import numpy as np
import pytest

from radmmp.config import DeploymentConfig
from radmmp.logging_conf import return_logger
from radmmp.processing import DeploymentProcessor, process_ctd_eng_deployment, process_acm_deployment
from radmmp.radmmp_variables import stage_fields, status_not_selected, status_celltm_not_applied, \
    status_ctd_rate_invalid, status_ctd_processed, status_oxygen_processed, status_bback_processed
from tests.test_datasets import SyntheticDeployment


class TestProcessing(unittest.TestCase):

    @classmethod
    def setUpClass(cls) -> None:
        cls.deployment = SyntheticDeployment()
        cls.config = DeploymentConfig(deployment_id='TEST0001', ctd_acquisition_rate_hz=2.0, latitude=46.9,
                                      longitude=-124.9)
        cls.processor = DeploymentProcessor(cls.config, silent=True)
        cls.dset = cls.processor.process_ctd_eng(cls.deployment.ctd_profiles(), cls.deployment.eng_profiles())

    def test_collections(self):
        for key in ['ctd_L0', 'ctd_L1', 'ctd_L2', 'eng_L0', 'eng_L1', 'eng_L2']:
            assert list(self.processor.collections[key].keys()) == [1, 2]
        assert self.processor.collections['ctd_L1'][1].sensor_fields == stage_fields['ctd']['L1']
        assert self.processor.collections['ctd_L2'][1].sensor_fields == stage_fields['ctd']['L2']

    def test_ctd_timestamps(self):
        for pnum in [1, 2]:
            ctd = self.processor.collections['ctd_L1'][pnum]
            assert ctd['time'] == pytest.approx(self.deployment.ctd_true_time(pnum), abs=1e-5)
            assert ctd.acquisition_rate_hz == pytest.approx(2.0)
        assert self.processor.collections['ctd_L1'][1].profile_direction == 'descending'
        assert self.processor.collections['ctd_L1'][2].profile_direction == 'ascending'

    def test_eng_synced(self):
        eng = self.processor.collections['eng_L1'][1]
        assert eng.profile_direction == 'descending'
        assert not eng.profile_mask[:5].any()
        assert np.isnan(eng['pressure'][:5]).all()

    def test_binned_ctd(self):
        temp = self.dset['binned_ctd_temperature']
        assert temp.dims == ('binned_ctd_bin', 'profile')
        assert np.array_equal(self.dset.profile.values, np.array([1, 2]))
        assert np.allclose(np.diff(self.dset.binned_ctd_bin.values), 1.0)
        assert self.dset.attrs['binned_ctd_binning_parameters'][1] == 1.0
        for pnum in [1, 2]:
            assert not np.isnan(temp.sel(profile=pnum).values).all()
        binned = self.processor.collections['ctd_L2'][1]
        valid = ~np.isnan(binned['pressure'])
        assert binned['pressure'][valid] == pytest.approx(binned.pressure_bin_values[valid], abs=0.5)

    def test_binned_eng(self):
        assert self.dset['binned_eng_par'].dims == ('binned_eng_bin', 'profile')
        assert 'binned_eng_current' not in self.dset

    def test_flat_and_padded_products(self):
        assert self.dset['rawvec_ctd_pressure'].shape == (2 * self.deployment.ctd_npts,)
        assert np.array_equal(np.unique(self.dset['rawvec_ctd_profile_indices'].values), np.array([1, 2]))
        assert self.dset['rawvec_eng_par'].shape == (2 * self.deployment.eng_npts,)
        assert self.dset['nan_processed_ctd_salinity'].dims == ('nan_processed_ctd_sample', 'profile')

    def test_attributes(self):
        assert self.dset.attrs['deployment_id'] == 'TEST0001'
        assert self.dset.attrs['profiles_selected'] == [1, 2]
        assert self.dset.attrs['first_selected_profile_number'] == 1
        assert list(self.dset['ctd_profile_direction'].values) == ['descending', 'ascending']

    def test_process_ad2cp(self):
        acm_profiles = {pnum: self.deployment.ad2cp_profile(pnum) for pnum in [1, 2]}
        dset = self.processor.process_acm(acm_profiles, instrument='ad2cp')
        velenu = dset['binned_acm_vel_enu']
        assert velenu.dims == ('binned_acm_bin', 'profile', 'enu')
        speed = np.hypot(velenu.values[..., 0], velenu.values[..., 1])
        valid = ~np.isnan(speed)
        assert valid.any()
        assert speed[valid] == pytest.approx(np.full(valid.sum(), np.hypot(0.1, 0.2)))
        assert dset.attrs['instrument'] == 'ad2cp'
        assert dset['nan_processed_acm_vel_beam'].dims == ('nan_processed_acm_sample', 'profile', 'beam')
        l1 = self.processor.collections['ad2cp_L1'][1]
        assert l1['pressure'] == pytest.approx(self.processor.collections['ctd_L1'][1]['pressure'], abs=1e-5)
        assert 'ad2cp_L0' in self.processor.collections

    def test_process_fsi(self):
        fsi_profiles = {pnum: self.deployment.fsi_profile(pnum) for pnum in [1, 2]}
        dset, processor = process_acm_deployment(fsi_profiles, self.processor.collections['ctd_L1'],
                                                 instrument='fsi', config=self.config,
                                                 logger=return_logger('test_fsi'))
        fsi = processor.collections['fsi_L1'][1]
        assert fsi['time'] == pytest.approx(self.deployment.ctd_true_time(1))
        assert fsi.acquisition_rate_hz == pytest.approx(2.0)
        assert 'smooth_acm_profile' in fsi.code_history
        assert 'nan_extreme_tilt' in fsi.code_history
        assert dset['binned_acm_wag_signal'].dims == ('binned_acm_bin', 'profile')
        # zero path velocities and no rotation leave only the profiler motion in the vertical velocity
        velenu = processor.collections['fsi_L1'][1]['vel_enu']
        assert np.nanmax(np.abs(velenu[:, :2])) == pytest.approx(0.0, abs=1e-12)

    def test_unselected_profiles(self):
        dset, processor = process_ctd_eng_deployment(self.deployment.ctd_profiles(), self.deployment.eng_profiles(),
                                                     config=self.config, profiles_to_process=[1, 3],
                                                     logger=return_logger('test_unselected'))
        assert list(processor.collections['ctd_L1'].keys()) == [1, 2, 3]
        assert processor.collections['ctd_L1'][2].data_status[0] == status_not_selected
        assert np.array_equal(dset.profile.values, np.array([1, 3]))
        assert np.isnan(dset['binned_ctd_temperature'].sel(profile=3).values).all()
        assert dset['rawvec_ctd_pressure'].shape == (self.deployment.ctd_npts,)

    def test_logging(self):
        logger = return_logger('test_processing')
        with self.assertLogs(logger, level=logging.INFO) as captured:
            process_ctd_eng_deployment(self.deployment.ctd_profiles([1]), self.deployment.eng_profiles([1]),
                                       config=self.config, logger=logger)
        assert any('ctd/engineering processing complete' in msg for msg in captured.output)

    def test_bad_arguments(self):
        with self.assertRaises(TypeError):
            DeploymentProcessor({'deployment_id': 'abc'})
        processor = DeploymentProcessor(self.config, silent=True)
        with self.assertRaises(ValueError):
            processor.process_acm({1: self.deployment.fsi_profile(1)}, instrument='fsi')
        with self.assertRaises(ValueError):
            processor.process_acm({}, {}, instrument='adcp')
        with self.assertRaises(ValueError):
            processor.process_ctd_eng({}, {})


class TestProcessingSensors(unittest.TestCase):

    @classmethod
    def setUpClass(cls) -> None:
        cls.deployment = SyntheticDeployment()
        cls.config = DeploymentConfig(deployment_id='TEST0001', ctd_acquisition_rate_hz=2.0, latitude=46.9,
                                      longitude=-124.9, sbe43f_soc=2.5e-4, sbe43f_foffset=-830.0, sbe43f_a=-4.1e-3,
                                      sbe43f_b=2.0e-4, sbe43f_c=-3.0e-6, sbe43f_e=0.036)
        cls.ctd_profiles = cls.deployment.ctd_profiles()
        for ctd in cls.ctd_profiles.values():
            ctd['oxygen'] = np.full(ctd.npts, 4500.0)
        # no par or cdom sensor on this deployment, an optode on the engineering stream
        cls.eng_profiles = cls.deployment.eng_profiles()
        for eng in cls.eng_profiles.values():
            eng['par'] = np.array([])
            eng['cdom'] = np.array([])
            eng['oxygen'] = np.full(eng.npts, 250.0)

    def test_missing_eng_sensors(self):
        dset, processor = process_ctd_eng_deployment(self.ctd_profiles, self.eng_profiles, config=self.config,
                                                     logger=return_logger('test_missing_sensors'))
        assert dset['rawvec_eng_par'].shape == (2 * self.deployment.eng_npts,)
        assert np.isnan(dset['rawvec_eng_par'].values).all()
        assert np.isnan(dset['rawvec_eng_cdom'].values).all()
        assert not np.isnan(dset['rawvec_eng_chl'].values).any()
        assert np.isnan(dset['binned_eng_par'].values).all()
        assert not np.isnan(dset['binned_eng_chl'].values).all()
        assert processor.collections['eng_L1'][1]['par'].size == 0

    def test_oxygen_and_backscatter(self):
        dset, processor = process_ctd_eng_deployment(self.ctd_profiles, self.eng_profiles, config=self.config,
                                                     logger=return_logger('test_oxygen'))
        ctd = processor.collections['ctd_L1'][1]
        eng = processor.collections['eng_L1'][1]
        assert 'process_sbe43f' in ctd.code_history
        assert status_oxygen_processed in ctd.data_status
        assert status_oxygen_processed in eng.data_status
        assert status_bback_processed in eng.data_status
        assert 150 < np.nanmedian(ctd['oxygen']) < 350
        # optode oxygen in umol/kg is below the umol/l value in seawater
        assert np.nanmax(eng['oxygen']) < 250.0
        # calibrated backscatter of 70 scaled counts is far above the seawater contribution
        assert np.nanmedian(eng['bback']) > 100.0
        assert dset['binned_ctd_oxygen'].dims == ('binned_ctd_bin', 'profile')
        assert not np.isnan(dset['binned_ctd_oxygen'].values).all()
        assert not np.isnan(dset['binned_eng_oxygen'].values).all()
        # the raw record keeps the sensor frequency
        assert np.nanmax(dset['rawvec_ctd_oxygen'].values) == pytest.approx(4500.0)

    def test_degenerate_ctd_settings(self):
        cfg = self.config.replace(ctd_speed_window_npts=0, ctd_thermal_mass_inverse_beta=0.0)
        dset, processor = process_ctd_eng_deployment(self.deployment.ctd_profiles(), self.deployment.eng_profiles(),
                                                     config=cfg, logger=return_logger('test_degenerate'))
        for pnum in [1, 2]:
            ctd = processor.collections['ctd_L1'][pnum]
            assert status_celltm_not_applied in ctd.data_status
            assert status_ctd_processed in ctd.data_status
            assert ctd.profile_mask.any()
        assert not np.isnan(dset['binned_ctd_salinity'].values).all()

    def test_zero_ctd_rate(self):
        cfg = self.config.replace(ctd_acquisition_rate_hz=0.0)
        dset, processor = process_ctd_eng_deployment(self.deployment.ctd_profiles(), self.deployment.eng_profiles(),
                                                     config=cfg, logger=return_logger('test_zero_rate'))
        ctd = processor.collections['ctd_L1'][1]
        assert status_ctd_rate_invalid in ctd.data_status
        assert status_celltm_not_applied in ctd.data_status
        # the rate from the timestamps still drives dP/dt
        assert ctd.acquisition_rate_hz == pytest.approx(2.0)
        assert np.nanmedian(ctd['dpdt']) == pytest.approx(0.5, abs=1e-3)
        assert not np.isnan(dset['binned_ctd_temperature'].values).all()
