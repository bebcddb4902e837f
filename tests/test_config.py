import json
import os
import tempfile
import unittest

import pytest

from radmmp.config import DeploymentConfig
from radmmp.radmmp_variables import default_deployment_config, wag_radius_m


class TestDeploymentConfig(unittest.TestCase):

    @classmethod
    def setUpClass(cls) -> None:
        cls.testfile = os.path.join(tempfile.gettempdir(), 'radmmp_test_config.json')

    @classmethod
    def tearDownClass(cls) -> None:
        if os.path.exists(cls.testfile):
            os.remove(cls.testfile)

    def test_defaults(self):
        cfg = DeploymentConfig()
        for key, val in default_deployment_config.items():
            if val == val:  # skip the nan defaults
                assert cfg[key] == val
        assert cfg.wag_radius_m == pytest.approx(wag_radius_m)
        assert cfg.backtrack_processing_flag == 3

    def test_override(self):
        cfg = DeploymentConfig(deployment_id='CE09OSPM-00012', correct_wag=False, custom_setting=5)
        assert cfg.deployment_id == 'CE09OSPM-00012'
        assert not cfg.correct_wag
        assert cfg['custom_setting'] == 5
        assert 'custom_setting' in cfg
        assert cfg.get('not_a_setting', 'default') == 'default'

    def test_immutable(self):
        cfg = DeploymentConfig()
        with self.assertRaises(AttributeError):
            cfg.correct_wag = False
        with self.assertRaises(TypeError):
            cfg._settings['correct_wag'] = False

    def test_replace(self):
        cfg = DeploymentConfig(latitude=44.6)
        newcfg = cfg.replace(latitude=46.9, longitude=-124.9)
        assert cfg.latitude == 44.6
        assert newcfg.latitude == 46.9
        assert newcfg.longitude == -124.9

    def test_unknown_attribute(self):
        cfg = DeploymentConfig()
        with self.assertRaises(AttributeError):
            cfg.not_a_setting
        with self.assertRaises(KeyError):
            cfg['not_a_setting']

    def test_from_dict(self):
        cfg = DeploymentConfig.from_dict({'deployment_id': 'abc', 'ctd_binning_parameters': [10, 2, 50]})
        assert cfg.deployment_id == 'abc'
        assert cfg.ctd_binning_parameters == [10, 2, 50]
        with self.assertRaises(TypeError):
            DeploymentConfig.from_dict([('deployment_id', 'abc')])

    def test_from_json(self):
        with open(self.testfile, 'w') as jf:
            json.dump({'deployment_id': 'fromjson', 'magnetic_declination_deg': 15.2}, jf)
        cfg = DeploymentConfig.from_json(self.testfile)
        assert cfg.deployment_id == 'fromjson'
        assert cfg.magnetic_declination_deg == 15.2
        assert cfg.correct_wag is True

    def test_to_dict(self):
        cfg = DeploymentConfig(deployment_id='abc')
        settings = cfg.to_dict()
        settings['deployment_id'] = 'changed'
        assert cfg.deployment_id == 'abc'
