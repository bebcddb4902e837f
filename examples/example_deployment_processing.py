# Examples related to processing one profiler deployment, radMMP 0.4.1
# uses profile data already unpacked to numpy archives, one archive per instrument per profile, ex:
#   C:\data_dir\C0000001.npz (ctd), E0000001.npz (engineering), A0000001.npz (AD2CP)
# unpacking the raw profiler files is done outside of radmmp

import os
from glob import glob

import numpy as np

from radmmp.config import DeploymentConfig
from radmmp.profile import Profile
from radmmp.processing import DeploymentProcessor, process_ctd_eng_deployment, process_acm_deployment

data_dir = r"C:\data_dir"


def load_profiles(prefix: str, instrument: str, deployment_id: str):
    # every array in the archive is a channel, ex: pressure, temperature, conductivity for the ctd
    profiles = {}
    for fil in sorted(glob(os.path.join(data_dir, prefix + '*.npz'))):
        pnum = int(os.path.splitext(os.path.basename(fil))[0][1:])
        with np.load(fil) as archive:
            channels = {ky: archive[ky] for ky in archive.files if ky != 'beam_mapping'}
            beam_mapping = list(archive['beam_mapping']) if 'beam_mapping' in archive.files else None
        profiles[pnum] = Profile(instrument, pnum, deployment_id=deployment_id, beam_mapping=beam_mapping, **channels)
    return profiles


#####################################
# 1. the deployment configuration
#####################################

# every key has a default (see radmmp.radmmp_variables.default_deployment_config), only set what differs
cfg = DeploymentConfig(deployment_id='ML12345-01', latitude=47.6, longitude=-122.3, ctd_acquisition_rate_hz=1.92,
                       ctd_binning_parameters=[10, 2, 500], acm_binning_parameters=[10, 2, 500],
                       magnetic_declination_deg=15.8)
# or keep it alongside the data as json
# cfg = DeploymentConfig.from_json(os.path.join(data_dir, 'ML12345-01.json'))

# the configuration is immutable, replace returns a new one
cfg = cfg.replace(correct_phase_ambiguity=True, acm_ambiguity_velocity_ms=0.7)
# SBE43F oxygen on the ctd stream needs its calibration coefficients, oxygen stays NaN without them
cfg = cfg.replace(sbe43f_soc=2.5e-4, sbe43f_foffset=-830.0, sbe43f_a=-4.1e-3, sbe43f_b=2.0e-4, sbe43f_c=-3.0e-6,
                  sbe43f_e=0.036)

ctd = load_profiles('C', 'ctd', cfg.deployment_id)
eng = load_profiles('E', 'eng', cfg.deployment_id)
ad2cp = load_profiles('A', 'ad2cp', cfg.deployment_id)

#####################################
# 2. convenience functions
#####################################

# ctd and engineering first, the ctd gets its timestamps from the engineering stream
ctd_eng_dset, processor = process_ctd_eng_deployment(ctd, eng, config=cfg)

# the binned grids are (bin, profile) variables
ctd_eng_dset.binned_ctd_temperature
# the pressure bin centers are the bin coordinate
ctd_eng_dset.binned_ctd_bin.values
# status of every profile, voided profiles are still there with empty (all NaN) records
ctd_eng_dset.ctd_data_status.values
# SBE43F oxygen in umol/kg, an optode on the engineering stream ends up in binned_eng_oxygen
ctd_eng_dset.binned_ctd_oxygen

# then the current meter, synchronized to the processed ctd
acm_dset, acm_processor = process_acm_deployment(ad2cp, processor.collections['ctd_L1'], instrument='ad2cp',
                                                 config=cfg)
# east velocity
acm_dset.binned_acm_vel_enu.isel(enu=0)

#####################################
# 3. one processor, a subset of profiles
#####################################

processor = DeploymentProcessor(cfg, profiles_to_process=list(range(1, 51)),
                                logfile=os.path.join(data_dir, 'ML12345-01_processing.log'))
ctd_eng_dset = processor.process_ctd_eng(ctd, eng)
acm_dset = processor.process_acm(ad2cp)  # uses processor.collections['ctd_L1']

# every stage keeps its collection, ex: the raw and processed ctd records of profile 7
processor.collections['ctd_L0'][7]
processor.collections['ctd_L1'][7].data_status
processor.collections['ad2cp_L2'][7].code_history

# merge and save the deliverables
ctd_eng_dset.merge(acm_dset, compat='override').to_netcdf(os.path.join(data_dir, 'ML12345-01.nc'))
