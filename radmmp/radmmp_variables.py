import numpy as np


# supported instruments
#  ctd - SBE52MP, eng - engineering/bio-optical stream, ad2cp - Nortek AD2CP (coastal), fsi - FSI 3DMP (global)
supported_instruments = ['ctd', 'eng', 'ad2cp', 'fsi']
current_meters = ['ad2cp', 'fsi']

# channel schema for each instrument, channel name: number of columns (0 for a one dimensional channel)
#  every channel is always present in a profile, empty channels are (0,) or (0, ncol) arrays
instrument_channels = {'ctd': {'time': 0, 'pressure': 0, 'temperature': 0, 'conductivity': 0, 'salinity': 0,
                               'theta': 0, 'sigma_theta': 0, 'dpdt': 0, 'oxygen': 0},
                       'eng': {'time': 0, 'pressure': 0, 'dpdt': 0, 'current': 0, 'voltage': 0, 'par': 0,
                               'cdom': 0, 'chl': 0, 'bback': 0, 'oxygen': 0},
                       'ad2cp': {'time': 0, 'pressure': 0, 'dpdt': 0, 'aqd_temperature': 0, 'aqd_pressure': 0,
                                 'heading': 0, 'pitch': 0, 'roll': 0, 'magnetometer': 3, 'vel_beam': 4,
                                 'amplitude': 4, 'correlation': 4, 'vel_xyz': 3, 'vel_enu': 3, 'wag_signal': 0},
                       'fsi': {'time': 0, 'pressure': 0, 'dpdt': 0, 'heading': 0, 'tx': 0, 'ty': 0,
                               'magnetometer': 3, 'vel_beam': 4, 'vel_xyz': 3, 'vel_enu': 3, 'wag_signal': 0}}

# name of the component dimension for multi column channels in the aggregated products
channel_component_dims = {'magnetometer': 'xyz', 'vel_beam': 'beam', 'amplitude': 'beam', 'correlation': 'beam',
                          'vel_xyz': 'xyz', 'vel_enu': 'enu'}

# active channels at each processing stage (L0 raw, L1 processed, L2 binned)
stage_fields = {'ctd': {'L0': ['time', 'pressure', 'temperature', 'conductivity', 'oxygen'],
                        'L1': ['time', 'pressure', 'temperature', 'conductivity', 'salinity', 'theta',
                               'sigma_theta', 'dpdt', 'oxygen'],
                        'L2': ['time', 'pressure', 'temperature', 'conductivity', 'salinity', 'theta',
                               'sigma_theta', 'dpdt', 'oxygen']},
                'eng': {'L0': ['time', 'pressure', 'current', 'voltage', 'par', 'cdom', 'chl', 'bback', 'oxygen'],
                        'L1': ['time', 'pressure', 'dpdt', 'current', 'voltage', 'par', 'cdom', 'chl', 'bback',
                               'oxygen'],
                        'L2': ['time', 'pressure', 'dpdt', 'par', 'cdom', 'chl', 'bback', 'oxygen']},
                'ad2cp': {'L0': ['time', 'pressure', 'aqd_temperature', 'aqd_pressure', 'heading', 'pitch', 'roll',
                                 'magnetometer', 'vel_beam', 'amplitude', 'correlation'],
                          'L1': ['time', 'pressure', 'dpdt', 'aqd_temperature', 'aqd_pressure', 'heading', 'pitch',
                                 'roll', 'vel_beam', 'vel_xyz', 'vel_enu', 'wag_signal'],
                          'L2': ['time', 'pressure', 'dpdt', 'aqd_temperature', 'aqd_pressure', 'heading',
                                 'vel_enu']},
                'fsi': {'L0': ['time', 'pressure', 'heading', 'tx', 'ty', 'magnetometer', 'vel_beam'],
                        'L1': ['time', 'pressure', 'dpdt', 'heading', 'tx', 'ty', 'vel_beam', 'vel_xyz', 'vel_enu',
                               'wag_signal'],
                        'L2': ['time', 'pressure', 'dpdt', 'heading', 'tx', 'ty', 'vel_enu', 'wag_signal']}}

# channels that hold angles in degrees, unwrapped before filtering/interpolation/binning and rewrapped after
circular_channels = ['heading']

profile_directions = ['ascending', 'descending', 'stationary', 'unknown']

# timestamp synchronization
min_common_pressure_values = 4  # fewer common ctd/eng pressure values than this and the sync fails

# cross instrument sync, fewer points than this in either record and the sync degrades to nan
min_sync_points = 10

# ctd
stationary_pressure_range_db = 5.0  # pressure range at or below this is a stationary profile
thermal_mass_temperature_reference = 20.0
thermal_mass_conductivity_slope = 0.006  # dc/dT scale in the celltm recursion

# engineering
backtrack_timeshift_sec = 75  # seconds of data removed before the first reversal with backtrack code 2
backtrack_codes = {1: 'void entire profile', 2: 'keep data before first reversal', 3: 'flag reversal sections'}
par_volts_per_count = 1.0 / 1000
par_quanta_per_umol = 6.02 * 10 ** 13

# dissolved oxygen
#  Garcia and Gordon (1992) oxygen solubility, ml/l fit (table 1, Benson and Krause coefficients)
garcia_gordon_ml_a = (2.00907, 3.22014, 4.05010, 4.94457, -2.56847e-1, 3.88767)
garcia_gordon_ml_b = (-6.24523e-3, -7.37614e-3, -1.03410e-2, -8.17083e-3)
garcia_gordon_ml_c0 = -4.88682e-7
#  salinity compensation of optode oxygen, Garcia and Gordon (1992) umol/kg coefficients
garcia_gordon_umol_b = (-6.24097e-3, -6.93498e-3, -6.90358e-3, -4.29155e-3)
garcia_gordon_umol_c0 = -3.11680e-7
oxygen_umol_per_ml = 44660.0  # ml/l to umol/m3, divided by density for umol/kg
optode_pressure_coefficient = 0.032  # fractional increase per 1000 dbar

# optical backscatter
seawater_depolarization_ratio = 0.039
bback_scattering_angle_deg = 124.0
bback_wavelength_nm = 700.0
bback_chi_factor = 1.076

# current meter geometry
ad2cp_beam_angle_a = 25.0  # degrees, beams 2 and 4
ad2cp_beam_angle_b = 47.5  # degrees, beams 1 and 3
ad2cp_supported_beam_mappings = [[2, 3, 4], [1, 2, 4], [1, 2, 3, 4]]
ad2cp_horizontal_beams = [2, 4]
fsi_cm_per_m = 100.0

# current meter corrections
ambiguity_fraction = 0.25  # fractional threshold in ambiguity velocity units
ambiguity_nwraps = 5  # maximum number of ambiguity velocity wraps that are unwound
wag_radius_m = 0.43  # effective radius for the fsi 3dmp
wag_geometry_factor_ad2cp = float(np.sin(np.deg2rad(5.0)) / np.sin(np.deg2rad(25.0)))
tilt_threshold_deg = 10.0
acm_filter_time_constant_sec = 12.0

# data status strings
status_no_timestamps = 'NO TIMESTAMPS ADDED'
status_nan_timestamps = 'NaN TIMESTAMPS ADDED'
status_timestamps_added = 'timestamps added'
status_no_pressure_record = 'no pressure record added'
status_nan_pressure_record = 'NaN PRESSURE RECORD ADDED'
status_pressure_record_added = 'pressure record added'
status_all_flagged_bad = 'ALL FLAGGED BAD'
status_synced = 'synced to ctd'
status_binned_nan = 'BINNED ENTRIES SET TO NaN'
status_binned = 'binned'
status_voided = 'allDataSetToEMPTY'
status_not_voided = 'noChange'
status_not_selected = 'notSelectedToBeImported'
status_no_action = '[]: no action taken'
status_backtrack_not_flagged = 'backtrack NOT FLAGGED'
status_no_pressure_data = 'no pressure data'
status_ctd_processed = 'ctd processed'
status_ctd_not_processed = 'ctd not processed'
status_celltm_not_applied = 'thermal mass correction NOT applied'
status_ctd_rate_invalid = 'INVALID ACQUISITION RATE: ctd not filtered or aligned'
status_oxygen_processed = 'oxygen processed [umole/kg]'
status_oxygen_not_processed = 'oxygen not processed'
status_bback_processed = 'bback processed'
status_bback_nan = 'BBACK SET TO NAN'
status_eng_processed = 'sensors processed'
status_eng_not_processed = 'not processed'
status_beam2xyz_applied = 'beam2XYZ transformation applied'
status_beam2xyz_not_applied = 'beam2XYZ NOT APPLIED'
status_ambiguity_corrected = 'phase ambiguity correction applied'
status_ambiguity_not_corrected = 'phase ambiguity NOT corrected'
status_wag_applied = 'wag correction applied'
status_wag_not_applied = 'wag correction NOT applied'
status_velu_not_corrected = 'velU CANNOT be corrected'
status_xyz2enu_applied = 'XYZ2ENU transformation applied'
status_extreme_tilt = "extreme tilt velENU nan'd"
status_no_extreme_tilt = 'no extreme tilt'
status_monotonic_time = 'monotonicTime'
status_fractional_seconds_failed = 'FrctSecFail: heading set to []'
status_hpr_interpolated = 'hpr interpolated'
status_hpr_not_interpolated = 'hpr NOT interpolated'
status_smoothed = 'smoothed'
status_nan_bad_sections = 'bad sections NaNd'

# default deployment configuration, see radmmp.config.DeploymentConfig
default_deployment_config = {'deployment_id': '',
                             'latitude': 0.0,
                             'longitude': 0.0,
                             'ctd_acquisition_rate_hz': 1.0,
                             'ctd_timestamp_gamma_sec': 0.0,
                             'ctd_pressure_npts_min': -1,
                             'ctd_pressure_range_min_db': -1,
                             'eng_pressure_npts_min': -1,
                             'eng_pressure_range_min_db': -1,
                             'eng_pressure_value_min_db': 1.0,
                             'backtrack_processing_flag': 3,
                             'ctd_filter_tc_conductivity_sec': 0.0,
                             'ctd_filter_tc_temperature_sec': 0.0,
                             'ctd_filter_tc_pressure_sec': 1.0,
                             'ctd_shift_conductivity_sec': 0.0,
                             'ctd_shift_pressure_sec': 0.0,
                             'ctd_thermal_mass_alpha': 0.04,
                             'ctd_thermal_mass_inverse_beta': 8.0,
                             'ctd_speed_min_dbps': 0.05,
                             'ctd_speed_window_npts': 8,
                             'ctd_binning_parameters': 1.0,
                             'eng_binning_parameters': 1.0,
                             'acm_binning_parameters': 1.0,
                             'acm_npts_min': -1,
                             'acm_depth_offset_m': 0.0,
                             'acm_filter_time_constant_sec': acm_filter_time_constant_sec,
                             'acm_ambiguity_velocity_ms': float('nan'),
                             'acm_ambiguity_fraction': ambiguity_fraction,
                             'acm_ambiguity_nwraps': ambiguity_nwraps,
                             'correct_phase_ambiguity': False,
                             'correct_wag': True,
                             'wag_radius_m': wag_radius_m,
                             'wag_geometry_factor_ad2cp': wag_geometry_factor_ad2cp,
                             'correct_velxyz_for_pitch_and_roll': True,
                             'correct_velu_for_dpdt': True,
                             'magnetic_declination_deg': 0.0,
                             'nan_extreme_tilt': True,
                             'tilt_threshold_deg': tilt_threshold_deg,
                             'smooth_acm': True,
                             'par_dark': 0.0,
                             'par_scale_wet': 1.0,
                             'cdom_dark': 0.0,
                             'cdom_scale': 1.0,
                             'chl_dark': 0.0,
                             'chl_scale': 1.0,
                             'bback_dark': 0.0,
                             'bback_scale': 1.0,
                             'bback_scattering_angle_deg': bback_scattering_angle_deg,
                             'bback_wavelength_nm': bback_wavelength_nm,
                             'bback_chi_factor': bback_chi_factor,
                             'oxygen_filter_tc_sec': 0.0,
                             'oxygen_shift_sec': 0.0,
                             'sbe43f_foffset': float('nan'),
                             'sbe43f_soc': float('nan'),
                             'sbe43f_a': float('nan'),
                             'sbe43f_b': float('nan'),
                             'sbe43f_c': float('nan'),
                             'sbe43f_e': float('nan')}
