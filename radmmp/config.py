import json
from types import MappingProxyType

from radmmp.radmmp_variables import default_deployment_config


class DeploymentConfig:
    """
    Immutable per deployment configuration.  Holds binning parameters, correction switches, physical constants,
    thresholds and the backtrack policy code, keyed by name.  Every key in
    radmmp_variables.default_deployment_config has a default, any other key is carried along untouched.

    Access by attribute or by item, config.wag_radius_m or config['wag_radius_m'].  Use replace to build a modified
    copy.

    >>> cfg = DeploymentConfig(deployment_id='CE09OSPM-00012', correct_wag=False)
    >>> cfg.correct_wag
    False
    >>> cfg.replace(correct_wag=True).correct_wag
    True
    """

    def __init__(self, **kwargs):
        settings = dict(default_deployment_config)
        settings.update(kwargs)
        object.__setattr__(self, '_settings', MappingProxyType(settings))

    @classmethod
    def from_dict(cls, settings: dict):
        """
        Build the configuration from a dict of settings

        Parameters
        ----------
        settings
            dict of setting name: value

        Returns
        -------
        DeploymentConfig
        """

        if not isinstance(settings, dict):
            raise TypeError('DeploymentConfig: expected a dict of settings, found {}'.format(type(settings)))
        return cls(**settings)

    @classmethod
    def from_json(cls, filepath: str):
        """
        Build the configuration from a json file containing one object of setting name: value

        Parameters
        ----------
        filepath
            path to the json file

        Returns
        -------
        DeploymentConfig
        """

        with open(filepath, 'r') as jf:
            settings = json.load(jf)
        return cls.from_dict(settings)

    def replace(self, **kwargs):
        """
        Return a new configuration with the provided settings replaced

        Returns
        -------
        DeploymentConfig
        """

        settings = dict(self._settings)
        settings.update(kwargs)
        return DeploymentConfig(**settings)

    def to_dict(self):
        return dict(self._settings)

    def get(self, key: str, default=None):
        return self._settings.get(key, default)

    def __getattr__(self, key: str):
        if key.startswith('__') or key == '_settings':
            raise AttributeError(key)
        try:
            return self._settings[key]
        except KeyError:
            raise AttributeError('DeploymentConfig: no setting named {}'.format(key))

    def __getitem__(self, key: str):
        return self._settings[key]

    def __contains__(self, key: str):
        return key in self._settings

    def __setattr__(self, key, value):
        raise AttributeError('DeploymentConfig is immutable, use replace to build a modified copy')

    def __repr__(self):
        return 'DeploymentConfig({})'.format(self._settings.get('deployment_id', ''))
