import logging
from datetime import datetime, timezone

from radmmp.__version__ import __version__ as radmmp_version
from radmmp.config import DeploymentConfig
from radmmp.logging_conf import LoggerClass, return_logger
from radmmp.profile import ProcessingStage, initialize_unselected_profiles
from radmmp.modules.timestamps import add_ctd_timestamps, estimate_acquisition_rate
from radmmp.modules.ctd import process_ctd_profile
from radmmp.modules.engineering import find_eng_backtrack_sections, flag_eng_backtrack_sections, \
    apply_eng_calibrations
from radmmp.modules.sync import sync_ctd_eng, sync_to_ctd
from radmmp.modules.oxygen import process_sbe43f, process_eng_aanderaa_optode
from radmmp.modules.backscatter import process_bback
from radmmp.modules.currentmeter import assign_fractional_seconds, hpr_interpolation, smooth_acm_profile, \
    phase_ambiguity_correction, beam_to_xyz, wag_correction, ad2cp_xyz_to_enu, fsi_xyz_to_enu, nan_extreme_tilt
from radmmp.modules.binning import determine_binning_parameters, pressure_bin_profile
from radmmp.modules.voiding import void_short_profiles, nan_bad_profile_sections
from radmmp.xarray_helpers import write_field_arrays_to_dataset, binned_grid, concatenate_sensor_fields, \
    profile_status_dataset, amalgamate_datasets
from radmmp.radmmp_variables import current_meters


def _snapshot(collection: dict):
    return {pnum: prof.copy() for pnum, prof in collection.items()}


def _set_stage(collection: dict, stage: ProcessingStage):
    for prof in collection.values():
        prof.set_stage(stage)


class DeploymentProcessor(LoggerClass):
    """
    Runs the processing chain of one McLane Moored Profiler deployment, the ctd/engineering pair first (the ctd gets
    its timestamps from the engineering stream), then either current meter against the processed ctd.

    Every stage keeps a copy of its profile collection (dict of profile number: Profile) in the collections attribute,
    ex: collections['ctd_L1'].  The deliverables are xarray Datasets, see process_ctd_eng and process_acm.

    Parameters
    ----------
    config
        DeploymentConfig for this deployment
    profiles_to_process
        profile numbers selected for processing, defaults to every imported profile
    logger
        logging.Logger to route messages through, a new one is built (see return_logger) if not provided
    logfile
        path to a log file, only used when a new logger is built
    silent
        if True and no logger, suppress messages
    """

    def __init__(self, config: DeploymentConfig = None, profiles_to_process: list = None,
                 logger: logging.Logger = None, logfile: str = None, silent: bool = False):
        if config is None:
            config = DeploymentConfig()
        if not isinstance(config, DeploymentConfig):
            raise TypeError('DeploymentProcessor: expected a DeploymentConfig, found {}'.format(type(config)))
        if logger is None and not silent:
            logger = return_logger('radmmp_deployment', logfile)
        super().__init__(silent=silent, logger=logger)
        self.config = config
        self.profiles_to_process = None if profiles_to_process is None else sorted(int(p) for p in
                                                                                  profiles_to_process)
        self.collections = {}
        self.products = {}

    def _selected(self, profiles: dict):
        if self.profiles_to_process is not None:
            return list(self.profiles_to_process)
        return sorted(int(pnum) for pnum in profiles.keys() if int(pnum) > 0)

    def _processing_attrs(self, selected: list):
        return {'deployment_id': self.config.deployment_id,
                'date_of_processing': datetime.now(timezone.utc).strftime('%Y-%m-%dT%H:%M:%SZ'),
                'radmmp_version': radmmp_version,
                'profiles_selected': list(selected),
                'first_selected_profile_number': selected[0] if selected else -1}

    def _bin_collection(self, collection: dict, selected: list, label: str):
        binmin, binsize, binmax = determine_binning_parameters([collection[pnum] for pnum in selected], 'pressure')
        self.print_msg('{} binning parameters: min={}, size={}, max={}'.format(label, binmin, binsize, binmax))
        binned = {}
        for pnum, prof in collection.items():
            prof = prof.copy()
            prof.set_stage(ProcessingStage.BINNED)
            binned[pnum] = pressure_bin_profile(prof, binmin, binsize, binmax)
        return binned

    def process_ctd_eng(self, ctd_profiles: dict, eng_profiles: dict):
        """
        Process the ctd and engineering profiles of a deployment.

        engineering: void short profiles, find and flag the backtrack sections, apply the sensor calibrations
        ctd: void short profiles, add the timestamps from the engineering pressure record, filter/align/correct and
        derive the seawater properties, convert the SBE43F oxygen
        both: synchronize the masks and the engineering pressure with the ctd, backscatter coefficient and optode
        oxygen from the ctd temperature and salinity, NaN the bad sections, pressure bin

        Parameters
        ----------
        ctd_profiles
            dict of profile number: ctd Profile as imported (pressure, temperature, conductivity, no time)
        eng_profiles
            dict of profile number: eng Profile as imported

        Returns
        -------
        xr.Dataset
            the binned ctd and engineering grids, the NaN padded processed ctd data, the flat raw ctd and
            engineering records and the per profile status
        """

        cfg = self.config
        selected = self._selected(ctd_profiles)
        if not selected:
            raise ValueError('process_ctd_eng: no profiles selected for processing')
        self.print_msg('processing ctd/engineering data for deployment {}, {} profiles '
                       'selected'.format(cfg.deployment_id, len(selected)))

        eng = initialize_unselected_profiles(eng_profiles, selected, 'eng', deployment_id=cfg.deployment_id)
        ctd = initialize_unselected_profiles(ctd_profiles, selected, 'ctd', deployment_id=cfg.deployment_id)
        missing = [pnum for pnum in selected if pnum not in ctd_profiles or pnum not in eng_profiles]
        if missing:
            self.print_msg('profiles selected but not imported for both ctd and engineering: {}'.format(missing),
                           logging.WARNING)

        # engineering
        void_short_profiles(list(eng.values()), 'pressure', cfg.eng_pressure_npts_min, cfg.eng_pressure_range_min_db)
        for pnum in selected:
            estimate_acquisition_rate(eng[pnum])
        self.collections['eng_L0'] = _snapshot(eng)
        backtracked = []
        for pnum in selected:
            find_eng_backtrack_sections(eng[pnum], cfg.eng_pressure_value_min_db)
            if eng[pnum].backtrack:
                backtracked.append(pnum)
                flag_eng_backtrack_sections(eng[pnum], cfg.backtrack_processing_flag)
            apply_eng_calibrations(eng[pnum], cfg)
        if backtracked:
            self.print_msg('backtracking found in profiles {}, flagged with code '
                           '{}'.format(backtracked, cfg.backtrack_processing_flag), logging.WARNING)
        else:
            self.print_msg('no backtracking found')

        # ctd
        void_short_profiles(list(ctd.values()), 'pressure', cfg.ctd_pressure_npts_min, cfg.ctd_pressure_range_min_db)
        for pnum in selected:
            add_ctd_timestamps(ctd[pnum], eng[pnum], gamma=cfg.ctd_timestamp_gamma_sec,
                               acqrate=cfg.ctd_acquisition_rate_hz)
        self.collections['ctd_L0'] = _snapshot(ctd)
        for pnum in selected:
            process_ctd_profile(ctd[pnum], cfg)
            process_sbe43f(ctd[pnum], cfg)
            sync_ctd_eng(ctd[pnum], eng[pnum])
            process_bback(eng[pnum], ctd[pnum], cfg)
            process_eng_aanderaa_optode(eng[pnum], ctd[pnum], cfg)

        _set_stage(ctd, ProcessingStage.PROCESSED)
        _set_stage(eng, ProcessingStage.PROCESSED)
        self.collections['ctd_L1'] = ctd
        self.collections['eng_L1'] = eng

        ctd_nand = _snapshot(ctd)
        eng_nand = _snapshot(eng)
        for pnum in selected:
            nan_bad_profile_sections(ctd_nand[pnum])
            nan_bad_profile_sections(eng_nand[pnum])
        self.collections['ctd_L2'] = self._bin_collection(ctd_nand, selected, 'ctd')
        self.collections['eng_L2'] = self._bin_collection(eng_nand, selected, 'engineering')

        attrs = self._processing_attrs(selected)
        attrs['L2_section'] = 'L2: BINNED DATA'
        datasets = [binned_grid(list(self.collections['ctd_L2'].values()), prefix='binned_ctd_',
                                profile_numbers=selected),
                    binned_grid(list(self.collections['eng_L2'].values()), prefix='binned_eng_',
                                profile_numbers=selected),
                    write_field_arrays_to_dataset(list(ctd_nand.values()), prefix='nan_processed_ctd_',
                                                  profile_numbers=selected),
                    concatenate_sensor_fields(list(self.collections['ctd_L0'].values()), prefix='rawvec_ctd_',
                                              profile_numbers=selected),
                    concatenate_sensor_fields(list(self.collections['eng_L0'].values()), prefix='rawvec_eng_',
                                              profile_numbers=selected),
                    profile_status_dataset([ctd[pnum] for pnum in selected], prefix='ctd_'),
                    profile_status_dataset([eng[pnum] for pnum in selected], prefix='eng_')]
        dset = amalgamate_datasets(datasets, attrs=attrs)
        self.products['ctd_eng'] = dset
        self.print_msg('ctd/engineering processing complete for deployment {}'.format(cfg.deployment_id))
        return dset

    def process_acm(self, acm_profiles: dict, ctd_profiles: dict = None, instrument: str = 'ad2cp'):
        """
        Process the current meter profiles of a deployment against the processed ctd.

        ad2cp: void short profiles, add the ctd pressure record, interpolate heading/pitch/roll, correct the phase
        ambiguity, beam to XYZ, wag correction, XYZ to ENU
        fsi: void short profiles, spread the whole second timestamps, add the ctd pressure record, beam to XYZ, wag
        correction, XYZ to ENU, smooth, NaN the extreme tilt samples

        both: NaN the bad sections and pressure bin

        Parameters
        ----------
        acm_profiles
            dict of profile number: current meter Profile as imported
        ctd_profiles
            dict of profile number: processed ctd Profile, defaults to collections['ctd_L1'] from process_ctd_eng
        instrument
            one of 'ad2cp', 'fsi'

        Returns
        -------
        xr.Dataset
            the binned current meter grid, the NaN padded processed data and the per profile status
        """

        if instrument not in current_meters:
            raise ValueError('process_acm: instrument must be one of {}, found {}'.format(current_meters, instrument))
        if ctd_profiles is None:
            if 'ctd_L1' not in self.collections:
                raise ValueError('process_acm: no processed ctd profiles, run process_ctd_eng first or provide them')
            ctd_profiles = self.collections['ctd_L1']

        cfg = self.config
        selected = self._selected(acm_profiles)
        if not selected:
            raise ValueError('process_acm: no profiles selected for processing')
        missing_ctd = [pnum for pnum in selected if pnum not in ctd_profiles]
        if missing_ctd:
            raise ValueError('process_acm: no processed ctd profile for profiles {}'.format(missing_ctd))
        self.print_msg('processing {} current meter data for deployment {}, {} profiles '
                       'selected'.format(instrument, cfg.deployment_id, len(selected)))

        acm = initialize_unselected_profiles(acm_profiles, selected, instrument, deployment_id=cfg.deployment_id)
        voided = void_short_profiles(list(acm.values()), 'heading', cfg.acm_npts_min, -1)
        if len(voided) == len(acm):
            self.print_msg('{} heading data not found in any profile'.format(instrument), logging.WARNING)

        for pnum in selected:
            prof = acm[pnum]
            if instrument == 'fsi':
                assign_fractional_seconds(prof)
            estimate_acquisition_rate(prof)
            sync_to_ctd(prof, ctd_profiles[pnum], depth_offset_m=cfg.acm_depth_offset_m)
            if prof['heading'].size:
                prof.binning_parameters = cfg.acm_binning_parameters

        if instrument == 'ad2cp':
            self.collections['ad2cp_L0'] = _snapshot(acm)
            for pnum in selected:
                prof = acm[pnum]
                hpr_interpolation(prof)
                phase_ambiguity_correction(prof, cfg.acm_ambiguity_velocity_ms, correct=cfg.correct_phase_ambiguity,
                                           fraction=cfg.acm_ambiguity_fraction, nwraps=cfg.acm_ambiguity_nwraps)
                beam_to_xyz(prof)
                wag_correction(prof, cfg.wag_radius_m, correct=cfg.correct_wag,
                               geometry_factor=cfg.wag_geometry_factor_ad2cp)
                ad2cp_xyz_to_enu(prof, declination=cfg.magnetic_declination_deg,
                                 correct_pitch_and_roll=cfg.correct_velxyz_for_pitch_and_roll,
                                 correct_dpdt=cfg.correct_velu_for_dpdt)
            ambiguous = sum(acm[pnum].ambiguous_points.shape[0] for pnum in selected)
            if ambiguous:
                self.print_msg('{} phase ambiguous vertical beam velocities found, correction '
                               '{}'.format(ambiguous, 'applied' if cfg.correct_phase_ambiguity else 'NOT applied'),
                               logging.WARNING)
        else:
            for pnum in selected:
                prof = acm[pnum]
                beam_to_xyz(prof)
                wag_correction(prof, cfg.wag_radius_m, correct=cfg.correct_wag)
                fsi_xyz_to_enu(prof, declination=cfg.magnetic_declination_deg,
                               correct_dpdt=cfg.correct_velu_for_dpdt)
            self.collections['fsi_L0'] = _snapshot(acm)
            if cfg.smooth_acm:
                for pnum in selected:
                    smooth_acm_profile(acm[pnum], cfg.acm_filter_time_constant_sec)

        _set_stage(acm, ProcessingStage.PROCESSED)
        if instrument == 'fsi' and cfg.nan_extreme_tilt:
            for pnum in selected:
                nan_extreme_tilt(acm[pnum], threshold=cfg.tilt_threshold_deg)
        self.collections[instrument + '_L1'] = acm

        acm_nand = _snapshot(acm)
        for pnum in selected:
            nan_bad_profile_sections(acm_nand[pnum])
        self.collections[instrument + '_L2'] = self._bin_collection(acm_nand, selected, instrument)

        attrs = self._processing_attrs(selected)
        attrs['L2_section'] = 'L2: BINNED DATA'
        attrs['instrument'] = instrument
        datasets = [binned_grid(list(self.collections[instrument + '_L2'].values()), prefix='binned_acm_',
                                profile_numbers=selected),
                    write_field_arrays_to_dataset(list(acm_nand.values()), prefix='nan_processed_acm_',
                                                  profile_numbers=selected),
                    profile_status_dataset([acm[pnum] for pnum in selected], prefix='acm_')]
        dset = amalgamate_datasets(datasets, attrs=attrs)
        self.products['acm'] = dset
        self.print_msg('{} processing complete for deployment {}'.format(instrument, cfg.deployment_id))
        return dset


def process_ctd_eng_deployment(ctd_profiles: dict, eng_profiles: dict, config: DeploymentConfig = None,
                               profiles_to_process: list = None, logger: logging.Logger = None):
    """
    Convenience function for processing the ctd and engineering profiles of a deployment, see
    DeploymentProcessor.process_ctd_eng

    Returns
    -------
    xr.Dataset
        ctd/engineering deliverable
    DeploymentProcessor
        the processor, holding the profile collections of every stage
    """

    processor = DeploymentProcessor(config, profiles_to_process=profiles_to_process, logger=logger)
    dset = processor.process_ctd_eng(ctd_profiles, eng_profiles)
    return dset, processor


def process_acm_deployment(acm_profiles: dict, ctd_profiles: dict, instrument: str = 'ad2cp',
                           config: DeploymentConfig = None, profiles_to_process: list = None,
                           logger: logging.Logger = None):
    """
    Convenience function for processing the current meter profiles of a deployment against the processed ctd
    profiles, see DeploymentProcessor.process_acm

    Returns
    -------
    xr.Dataset
        current meter deliverable
    DeploymentProcessor
        the processor, holding the profile collections of every stage
    """

    processor = DeploymentProcessor(config, profiles_to_process=profiles_to_process, logger=logger)
    dset = processor.process_acm(acm_profiles, ctd_profiles, instrument=instrument)
    return dset, processor
