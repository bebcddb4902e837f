import logging

import numpy as np
from scipy.interpolate import CubicSpline

from radmmp.profile import Profile
from radmmp.rotations import return_attitude_rotation_matrix, rotate_vectors
from radmmp.modules.smoothing import sbefilter
from radmmp.radmmp_variables import ad2cp_beam_angle_a, ad2cp_beam_angle_b, ad2cp_horizontal_beams, fsi_cm_per_m, \
    ambiguity_fraction, ambiguity_nwraps, tilt_threshold_deg, status_no_action, status_beam2xyz_applied, \
    status_beam2xyz_not_applied, status_ambiguity_corrected, status_ambiguity_not_corrected, status_wag_applied, \
    status_wag_not_applied, status_velu_not_corrected, status_extreme_tilt, status_monotonic_time, \
    status_fractional_seconds_failed, status_hpr_interpolated, status_hpr_not_interpolated, status_smoothed

logger = logging.getLogger('radmmp')

# instrument xyz to profiler XYZ, X up the wire, Z along the instrument axis
xyz_to_profiler_xyz = np.array([[0.0, 0.0, 1.0],
                                [0.0, -1.0, 0.0],
                                [1.0, 0.0, 0.0]])

# channels low pass filtered by smooth_acm_profile
smoothed_channels = ['heading', 'tx', 'ty', 'magnetometer', 'vel_beam', 'vel_xyz', 'vel_enu', 'wag_signal']


def _has_heading(acm: Profile):
    return acm['heading'].size > 0


def unwrap_heading(heading: np.ndarray):
    """
    Continuous heading in radians, no jumps at 0/360 degrees.  NaNs are skipped over and kept in place.
    """
    hdg = np.deg2rad(np.asarray(heading, dtype=np.float64))
    valid = ~np.isnan(hdg)
    hdg[valid] = np.unwrap(hdg[valid])
    return hdg


def rewrap_heading(heading_rad: np.ndarray):
    """
    Heading in radians (possibly unwrapped) back to degrees in [0, 360)
    """
    return np.mod(np.rad2deg(heading_rad), 360)


def assign_fractional_seconds(acm: Profile):
    """
    The FSI 3DMP records whole second timestamps at a higher sample rate.  Spread each group of n identical timestamps
    evenly within its second, adding j / n seconds to the j-th sample of the group.

    If the result is not strictly increasing the profile is voided, which disables all further current meter
    processing for it.

    Parameters
    ----------
    acm
        fsi Profile, modified in place

    Returns
    -------
    Profile
        the profile with strictly increasing time
    """

    acm.log_code('assign_fractional_seconds')
    if not _has_heading(acm):
        acm.log_status(status_no_action)
        return acm

    time = acm['time']
    group_start = np.concatenate([[0], np.flatnonzero(np.diff(time)) + 1])
    group_size = np.diff(np.append(group_start, time.shape[0]))
    position = np.arange(time.shape[0]) - np.repeat(group_start, group_size)
    trial = time + position / np.repeat(group_size, group_size)

    if (np.diff(trial) <= 0).any():
        logger.warning('assign_fractional_seconds: failed to assign fractional seconds to the degenerate timestamps '
                       'of {} profile {}'.format(acm.instrument, acm.profile_number))
        acm.void(status_fractional_seconds_failed)
    else:
        acm['time'] = trial
        acm.log_status(status_monotonic_time)
    return acm


def hpr_interpolation(acm: Profile):
    """
    The AD2CP updates heading, pitch and roll every k-th sample and repeats the last value in between.  Find the
    update stride from the sample indices where heading changes and fill the in between samples with a cubic spline
    (not-a-knot) through the update samples.  Heading is unwrapped before the fit and rewrapped to [0, 360) after.

    Parameters
    ----------
    acm
        ad2cp Profile, modified in place

    Returns
    -------
    Profile
        the profile with interpolated heading, pitch and roll
    """

    acm.log_code('hpr_interpolation')
    if not _has_heading(acm):
        acm.log_status(status_no_action)
        return acm

    heading = acm['heading']
    npts = heading.shape[0]
    idx_diffs = np.flatnonzero(np.diff(heading))
    if idx_diffs.size < 2:
        acm.log_status(status_hpr_not_interpolated)
        return acm
    stride = int(np.min(np.diff(idx_diffs)))
    first_update = int(np.mod(idx_diffs[0] + 1, stride))
    idx_updates = np.arange(first_update, npts, stride)
    idx_fills = np.setdiff1d(np.arange(npts), idx_updates)
    if idx_updates.size < 2 or idx_fills.size == 0:
        acm.log_status(status_hpr_not_interpolated)
        return acm

    hdg = unwrap_heading(heading)
    hdg[idx_fills] = CubicSpline(idx_updates, hdg[idx_updates], bc_type='not-a-knot', extrapolate=True)(idx_fills)
    acm['heading'] = rewrap_heading(hdg)
    for chnl in ['pitch', 'roll']:
        if acm[chnl].size:
            vals = acm[chnl].copy()
            vals[idx_fills] = CubicSpline(idx_updates, vals[idx_updates], bc_type='not-a-knot',
                                          extrapolate=True)(idx_fills)
            acm[chnl] = vals
    acm.log_status(status_hpr_interpolated)
    return acm


def smooth_acm_profile(acm: Profile, time_constant: float):
    """
    Low pass filter the attitude and velocity channels of a current meter profile (see smoothed_channels) at the
    rounded acquisition rate.  Heading is unwrapped before filtering and rewrapped to [0, 360) after.

    Parameters
    ----------
    acm
        current meter Profile, modified in place
    time_constant
        filter time constant in seconds

    Returns
    -------
    Profile
        the smoothed profile
    """

    acm.log_code('smooth_acm_profile')
    if not _has_heading(acm) or not np.isfinite(acm.acquisition_rate_hz):
        acm.log_status(status_no_action)
        return acm

    rate = round(acm.acquisition_rate_hz)
    for chnl in smoothed_channels:
        if chnl not in acm.schema:
            continue
        if chnl == 'heading':
            acm[chnl] = rewrap_heading(sbefilter(unwrap_heading(acm[chnl]), rate, time_constant))
        else:
            acm[chnl] = sbefilter(acm[chnl], rate, time_constant)
    acm.log_status(status_smoothed)
    return acm


def phase_ambiguity_correction(acm: Profile, ambiguity_velocity: float, correct: bool = False,
                               fraction: float = ambiguity_fraction, nwraps: int = ambiguity_nwraps):
    """
    Unwind the phase ambiguity of the AD2CP vertical beam.  For n from nwraps down to 1, raw values below
    -(n - fraction) * ambiguity_velocity are raised by n * ambiguity_velocity and values above
    (n - fraction) * ambiguity_velocity are lowered by n * ambiguity_velocity.

    Every flagged point is recorded in ambiguous_points as (time, original vertical beam velocity) whether or not the
    correction is applied to vel_beam.

    Parameters
    ----------
    acm
        ad2cp Profile with vel_beam and beam_mapping, modified in place
    ambiguity_velocity
        ambiguity velocity of the vertical beam in m/s
    correct
        if True, the corrected values replace the vertical beam velocities
    fraction
        fractional threshold in ambiguity velocity units
    nwraps
        largest number of wraps to unwind

    Returns
    -------
    Profile
        the profile with ambiguous_points set and, if correct, the vertical beam corrected
    """

    acm.log_code('phase_ambiguity_correction')
    if not _has_heading(acm):
        acm.log_status(status_no_action)
        return acm

    velbeam = acm['vel_beam'].copy()
    points = []
    for beam in np.setdiff1d(acm.beam_mapping, ad2cp_horizontal_beams):
        col = int(beam) - 1
        original = acm['vel_beam'][:, col]
        rawbeam = original.copy()
        flagged = np.zeros(rawbeam.shape[0], dtype=bool)
        for nwrap in range(nwraps, 0, -1):
            threshold = (nwrap - fraction) * ambiguity_velocity
            tf_lo = rawbeam < -threshold
            rawbeam[tf_lo] += nwrap * ambiguity_velocity
            tf_hi = rawbeam > threshold
            rawbeam[tf_hi] -= nwrap * ambiguity_velocity
            flagged |= tf_lo | tf_hi
        points.append(np.column_stack([acm['time'][flagged], original[flagged]]))
        velbeam[:, col] = rawbeam

    acm.ambiguous_points = np.vstack(points) if points else np.empty((0, 2))
    if correct:
        acm['vel_beam'] = velbeam
        acm.log_status(status_ambiguity_corrected)
    else:
        acm.log_status(status_ambiguity_not_corrected)
    return acm


def ad2cp_beam_to_xyz_matrix(beam_mapping: np.ndarray):
    """
    Beam to profiler XYZ transformation for the AD2CP on the McLane profiler.  Three beam mappings use the exact 3x3
    inverse of the beam geometry, [2, 3, 4] (usually descending) and [1, 2, 4] (usually ascending).  The four beam
    mapping uses the pseudo-inverse of the 4x3 geometry.

    Parameters
    ----------
    beam_mapping
        active beam numbers

    Returns
    -------
    np.ndarray
        (3, nbeams) matrix taking the mapped beam velocities to X, Y, Z
    """

    ca = np.cos(np.deg2rad(ad2cp_beam_angle_a))
    sa = np.sin(np.deg2rad(ad2cp_beam_angle_a))
    cb = np.cos(np.deg2rad(ad2cp_beam_angle_b))
    sb = np.sin(np.deg2rad(ad2cp_beam_angle_b))
    qq = cb / sb / ca / 2.0

    mapping = list(np.asarray(beam_mapping).ravel())
    if mapping == [2, 3, 4]:
        beam_to_xyz = np.array([[qq, -1.0 / sb, qq],
                                [-0.5 / sa, 0.0, 0.5 / sa],
                                [0.5 / ca, 0.0, 0.5 / ca]])
    elif mapping == [1, 2, 4]:
        beam_to_xyz = np.array([[1.0 / sb, -qq, -qq],
                                [0.0, -0.5 / sa, 0.5 / sa],
                                [0.0, 0.5 / ca, 0.5 / ca]])
    elif mapping == [1, 2, 3, 4]:
        # unit vector of each beam in instrument xyz
        xyz_to_beam = np.array([[sb, 0.0, cb],
                                [0.0, -sa, ca],
                                [-sb, 0.0, cb],
                                [0.0, sa, ca]])
        beam_to_xyz = np.linalg.pinv(xyz_to_beam)
    else:
        raise ValueError('Beam configuration not supported: {}'.format(mapping))
    return xyz_to_profiler_xyz @ beam_to_xyz


def ad2cp_beam_to_xyz(acm: Profile):
    """
    Transform the AD2CP radial beam velocities of the active beams to profiler XYZ velocities.  An unsupported beam
    mapping raises ValueError.

    Parameters
    ----------
    acm
        ad2cp Profile with vel_beam and beam_mapping, modified in place

    Returns
    -------
    Profile
        the profile with vel_xyz
    """

    acm.log_code('ad2cp_beam_to_xyz')
    if not _has_heading(acm):
        acm.log_status(status_beam2xyz_not_applied)
        return acm

    tmat = ad2cp_beam_to_xyz_matrix(acm.beam_mapping)
    acm['vel_xyz'] = (tmat @ acm['vel_beam'][:, acm.beam_mapping - 1].T).T
    acm.log_status(status_beam2xyz_applied)
    return acm


def fsi_beam_to_xyz(acm: Profile):
    """
    Transform the FSI 3DMP acoustic path velocities (cm/s) to XYZ velocities (m/s).  Vertical velocity uses the upward
    looking path 4 on ascending profiles and the downward looking path 2 on descending profiles, it is NaN for any
    other profile direction.

    Parameters
    ----------
    acm
        fsi Profile with vel_beam and profile_direction, modified in place

    Returns
    -------
    Profile
        the profile with vel_xyz
    """

    acm.log_code('fsi_beam_to_xyz')
    if not _has_heading(acm):
        acm.log_status(status_beam2xyz_not_applied)
        return acm

    velbeam = acm['vel_beam']
    vx = (-velbeam[:, 0] - velbeam[:, 2]) / np.sqrt(2.0) / fsi_cm_per_m
    vy = (velbeam[:, 0] - velbeam[:, 2]) / np.sqrt(2.0) / fsi_cm_per_m
    if acm.profile_direction == 'ascending':
        vz = vx - np.sqrt(2.0) * velbeam[:, 3] / fsi_cm_per_m
    elif acm.profile_direction == 'descending':
        vz = -vx + np.sqrt(2.0) * velbeam[:, 1] / fsi_cm_per_m
    else:
        logger.warning('fsi_beam_to_xyz: profile {} was neither ascending nor descending'.format(acm.profile_number))
        vz = vx * np.nan
    acm['vel_xyz'] = np.column_stack([vx, vy, vz])
    acm.log_status(status_beam2xyz_applied)
    return acm


def beam_to_xyz(acm: Profile):
    """
    Beam to XYZ transformation for either current meter
    """

    if acm.instrument == 'ad2cp':
        return ad2cp_beam_to_xyz(acm)
    elif acm.instrument == 'fsi':
        return fsi_beam_to_xyz(acm)
    raise ValueError('beam_to_xyz: {} is not a current meter'.format(acm.instrument))


def wag_velocity(heading: np.ndarray, rate: float, radius: float, geometry_factor: float = 1.0):
    """
    Spurious Y velocity induced by the profiler rotating about the mooring wire, Ywag = R * dH/dt * geometry_factor.
    dH/dt is the average of the forward and backward differences of the unwrapped heading (radians) times the sample
    rate.

    Parameters
    ----------
    heading
        1d heading in degrees
    rate
        sample rate in Hz
    radius
        effective wag radius in meters
    geometry_factor
        projection of the wag motion onto the measured Y velocity, 1 for the FSI 3DMP, sin(5)/sin(25) for the AD2CP

    Returns
    -------
    np.ndarray
        wag velocity in m/s, same length as heading
    """

    if heading.shape[0] < 2:
        return np.full(heading.shape[0], np.nan)
    dh = np.diff(unwrap_heading(heading))
    dha = np.concatenate([dh[:1], dh])
    dhb = np.concatenate([dh, dh[-1:]])
    dh_dt = (dha + dhb) * rate / 2
    return radius * dh_dt * geometry_factor


def wag_correction(acm: Profile, radius: float, correct: bool = True, geometry_factor: float = 1.0):
    """
    Compute the wag signal, store it as the wag_signal diagnostic channel and, if correct, subtract it from the Y
    velocity.

    Parameters
    ----------
    acm
        current meter Profile with heading and vel_xyz, modified in place
    radius
        effective wag radius in meters
    correct
        if True, subtract the wag signal from vel_xyz Y
    geometry_factor
        see wag_velocity

    Returns
    -------
    Profile
        the profile with wag_signal and, if correct, corrected vel_xyz
    """

    acm.log_code('wag_correction')
    if not _has_heading(acm):
        acm.log_status(status_no_action)
        return acm

    ywag = wag_velocity(acm['heading'], acm.acquisition_rate_hz, radius, geometry_factor)
    acm['wag_signal'] = ywag
    if correct:
        velxyz = acm['vel_xyz'].copy()
        velxyz[:, 1] = velxyz[:, 1] - ywag
        acm['vel_xyz'] = velxyz
        acm.log_status(status_wag_applied)
    else:
        acm.log_status(status_wag_not_applied)
    return acm


def _vertical_velocity(acm: Profile, velw: np.ndarray, correct_dpdt: bool):
    # the profiler motion shows up as vertical velocity, remove it with the ctd dP/dt
    dpdt = acm['dpdt']
    if dpdt.size == 0 or np.isnan(dpdt).all():
        logger.warning('xyz_to_enu: vertical velocity of {} profile {} cannot be corrected for '
                       'dP/dt'.format(acm.instrument, acm.profile_number))
        return velw, status_velu_not_corrected
    elif correct_dpdt:
        return velw - dpdt, 'velU corrected for dp/dt'
    return velw, 'velU NOT corrected'


def ad2cp_xyz_to_enu(acm: Profile, declination: float = 0.0, correct_pitch_and_roll: bool = True,
                     correct_dpdt: bool = True):
    """
    Rotate AD2CP profiler XYZ velocities to true East-North-Up with the full heading, pitch and roll attitude (pitch and
    roll are zeroed if correct_pitch_and_roll is False) and the magnetic declination.  The profiler vertical motion is
    removed from Up with dP/dt if requested and available.

    Parameters
    ----------
    acm
        ad2cp Profile with heading, pitch, roll, vel_xyz and dpdt, modified in place
    declination
        magnetic declination in degrees, positive east
    correct_pitch_and_roll
        if False, only heading is used
    correct_dpdt
        if True, Up = W - dP/dt

    Returns
    -------
    Profile
        the profile with vel_enu
    """

    acm.log_code('ad2cp_xyz_to_enu')
    if not _has_heading(acm):
        acm.log_status(status_no_action)
        return acm

    scale = 1.0 if correct_pitch_and_roll else 0.0
    rotmat = return_attitude_rotation_matrix(acm['heading'], acm['pitch'] * scale, acm['roll'] * scale,
                                             declination=declination)
    velenu = rotate_vectors(rotmat, acm['vel_xyz'])
    velenu[:, 2], dpdt_status = _vertical_velocity(acm, velenu[:, 2], correct_dpdt)
    acm['vel_enu'] = velenu

    if correct_pitch_and_roll:
        pr_status = 'corrected for pitch and roll; '
    else:
        pr_status = 'NOT corrected for pitch and roll; '
    acm.log_status(pr_status + dpdt_status)
    return acm


def fsi_xyz_to_enu(acm: Profile, declination: float = 0.0, correct_dpdt: bool = True):
    """
    Rotate FSI 3DMP XYZ velocities to true East-North-Up using heading only (small tilt assumption).  The horizontal
    velocity direction is atan2(vy, vx) + (90 - heading) - declination, Up is vz, minus dP/dt if requested and
    available.

    Parameters
    ----------
    acm
        fsi Profile with heading, vel_xyz and dpdt, modified in place
    declination
        magnetic declination in degrees, positive east
    correct_dpdt
        if True, Up = vz - dP/dt

    Returns
    -------
    Profile
        the profile with vel_enu
    """

    acm.log_code('fsi_xyz_to_enu')
    if not _has_heading(acm):
        acm.log_status(status_no_action)
        return acm

    velxyz = acm['vel_xyz']
    speed = np.hypot(velxyz[:, 0], velxyz[:, 1])
    theta = np.rad2deg(np.arctan2(velxyz[:, 1], velxyz[:, 0])) + (90 - acm['heading']) - declination
    vel_east = speed * np.cos(np.deg2rad(theta))
    vel_north = speed * np.sin(np.deg2rad(theta))
    vel_up, dpdt_status = _vertical_velocity(acm, velxyz[:, 2], correct_dpdt)
    acm['vel_enu'] = np.column_stack([vel_east, vel_north, vel_up])
    acm.log_status(dpdt_status)
    return acm


def nan_extreme_tilt(acm: Profile, threshold: float = tilt_threshold_deg):
    """
    The heading only rotation of the FSI 3DMP assumes small tilt.  Set vel_enu to NaN where the tilt,
    sqrt(tx^2 + ty^2), exceeds threshold degrees (ex: blow-down events).

    Parameters
    ----------
    acm
        fsi Profile with tx, ty and vel_enu, modified in place
    threshold
        tilt threshold in degrees

    Returns
    -------
    Profile
        the profile with extreme tilt samples of vel_enu set to NaN
    """

    acm.log_code('nan_extreme_tilt')
    if not _has_heading(acm):
        acm.log_status(status_no_action)
        return acm

    tilt = np.hypot(acm['tx'], acm['ty'])
    velenu = acm['vel_enu'].copy()
    velenu[tilt > threshold, :] = np.nan
    acm['vel_enu'] = velenu
    acm.log_status(status_extreme_tilt)
    return acm
