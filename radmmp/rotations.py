import xarray as xr
import numpy as np


def build_attitude_rot_mat(heading: xr.DataArray, pitch: xr.DataArray, roll: xr.DataArray, degrees: bool = True):
    """
    Make the instrument XYZ to magnetic East-North-Up rotation matrix for each sample of a current meter attitude
    record (Nortek convention, X axis pointing up the profiler, heading referenced to the X axis rotated by 90
    degrees).

    With h = heading - 90:

    E = [cos(h)cos(p),   sin(h)cos(r) - cos(h)sin(p)sin(r),   -(sin(h)sin(r) + cos(h)sin(p)cos(r))]
    N = [-sin(h)cos(p),  cos(h)cos(r) + sin(h)sin(p)sin(r),   -cos(h)sin(r) + sin(h)sin(p)cos(r)]
    U = [sin(p),         cos(p)sin(r),                         cos(p)cos(r)]

    Parameters
    ----------
    heading
        heading at each sample, dims ('sample',)
    pitch
        pitch at each sample, dims ('sample',)
    roll
        roll at each sample, dims ('sample',)
    degrees
        True if incoming angles are in degrees, False if radians

    Returns
    -------
    xr.DataArray
        rotation matrix (sample, x, y)
    """

    if type(heading) != xr.DataArray or type(pitch) != xr.DataArray or type(roll) != xr.DataArray:
        raise TypeError('Expected xarray DataArray object')

    if degrees:
        h = np.deg2rad(heading - 90.0)
        p = np.deg2rad(pitch)
        r = np.deg2rad(roll)
    else:
        h = heading - np.pi / 2
        p = pitch
        r = roll

    hcos = np.cos(h)
    pcos = np.cos(p)
    rcos = np.cos(r)
    hsin = np.sin(h)
    psin = np.sin(p)
    rsin = np.sin(r)

    r00 = (hcos * pcos).assign_coords({'x': 0, 'y': 0})
    r01 = (hsin * rcos - hcos * psin * rsin).assign_coords({'x': 0, 'y': 1})
    r02 = (-(hsin * rsin + hcos * psin * rcos)).assign_coords({'x': 0, 'y': 2})
    r0 = xr.concat([r00, r01, r02], dim='y')
    r10 = (-hsin * pcos).assign_coords({'x': 1, 'y': 0})
    r11 = (hcos * rcos + hsin * psin * rsin).assign_coords({'x': 1, 'y': 1})
    r12 = (-hcos * rsin + hsin * psin * rcos).assign_coords({'x': 1, 'y': 2})
    r1 = xr.concat([r10, r11, r12], dim='y')
    r20 = psin.assign_coords({'x': 2, 'y': 0})
    r21 = (pcos * rsin).assign_coords({'x': 2, 'y': 1})
    r22 = (pcos * rcos).assign_coords({'x': 2, 'y': 2})
    r2 = xr.concat([r20, r21, r22], dim='y')

    rmat = xr.concat([r0, r1, r2], dim='x').transpose('sample', 'x', 'y')
    return rmat


def build_declination_rot_mat(declination: float, degrees: bool = True):
    """
    Rotation about the vertical axis that takes magnetic East-North-Up to true East-North-Up for a magnetic
    declination (positive east).

    Parameters
    ----------
    declination
        magnetic declination
    degrees
        True if declination is in degrees, False if radians

    Returns
    -------
    xr.DataArray
        3x3 rotation matrix (x, y)
    """

    theta = np.deg2rad(declination) if degrees else declination
    mat = np.array([[np.cos(theta), np.sin(theta), 0.0],
                    [-np.sin(theta), np.cos(theta), 0.0],
                    [0.0, 0.0, 1.0]])
    return xr.DataArray(mat, dims=['x', 'y'], coords={'x': [0, 1, 2], 'y': [0, 1, 2]})


def combine_rotation_matrix(fixed_mat: xr.DataArray, sample_mat: xr.DataArray):
    """
    Compose a fixed 3x3 rotation (x, y) with a per sample rotation (sample, x, y), fixed_mat applied last

    Parameters
    ----------
    fixed_mat
        2dim rotation matrix (x, y)
    sample_mat
        3dim rotation matrix (sample, x, y)

    Returns
    -------
    xr.DataArray
        3dim rotation matrix (sample, x, y)
    """

    combined = np.einsum('ij,tjk->tik', fixed_mat.values, sample_mat.values)
    return xr.DataArray(combined, dims=['sample', 'x', 'y'], coords=sample_mat.coords)


def rotate_vectors(rotmat: xr.DataArray, vectors: np.ndarray):
    """
    Apply the per sample rotation to a (sample, 3) array of vectors

    Parameters
    ----------
    rotmat
        3dim rotation matrix (sample, x, y)
    vectors
        2dim array (sample, 3)

    Returns
    -------
    np.ndarray
        rotated vectors (sample, 3)
    """

    vectors = np.asarray(vectors, dtype=np.float64)
    if vectors.shape != (rotmat.shape[0], 3):
        raise ValueError('rotate_vectors: expected vectors of shape ({}, 3), found {}'.format(rotmat.shape[0],
                                                                                              vectors.shape))
    return np.einsum('tij,tj->ti', rotmat.values, vectors)


def return_attitude_rotation_matrix(heading: np.ndarray, pitch: np.ndarray, roll: np.ndarray,
                                    declination: float = 0.0):
    """
    Build the instrument XYZ to true East-North-Up rotation matrix for each sample of an attitude record

    Parameters
    ----------
    heading
        1d heading in degrees
    pitch
        1d pitch in degrees
    roll
        1d roll in degrees
    declination
        magnetic declination in degrees

    Returns
    -------
    xr.DataArray
        3dim rotation matrix (sample, x, y)
    """

    coords = {'sample': np.arange(len(heading))}
    heading = xr.DataArray(np.asarray(heading, dtype=np.float64), dims=['sample'], coords=coords)
    pitch = xr.DataArray(np.asarray(pitch, dtype=np.float64), dims=['sample'], coords=coords)
    roll = xr.DataArray(np.asarray(roll, dtype=np.float64), dims=['sample'], coords=coords)
    attitude = build_attitude_rot_mat(heading, pitch, roll)
    if declination == 0:
        return attitude
    return combine_rotation_matrix(build_declination_rot_mat(declination), attitude)
