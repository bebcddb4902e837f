import io
import os

from setuptools import find_namespace_packages, setup

# see https://github.com/navdeep-G/setup.py/blob/master/setup.py

# Package meta-data.
NAME = 'radmmp'
DESCRIPTION = 'Processing of McLane Moored Profiler ctd, engineering and current meter data'
URL = ''
EMAIL = ''
AUTHOR = 'radMMP developers'
REQUIRES_PYTHON = '>=3.9'
VERSION = ''

# What packages are required for this module to be executed?
REQUIRED = [
            'gsw>=3.6',  # TEOS-10 seawater properties
            'numba>=0.59.0',
            'numpy>=1.23.5',
            'scipy>=1.13.0',  # Akima1DInterpolator method='makima' added in 1.13
            'xarray>=2024.2.0',
            ]

# What packages are optional?
EXTRAS = {
          'test': ['pytest'],
          }

# The rest you shouldn't have to touch too much :)
# ------------------------------------------------
# Except, perhaps the License and Trove Classifiers!
# If you do change the License, remember to change the Trove Classifier for that!

here = os.path.abspath(os.path.dirname(__file__))

# Import the README and use it as the long-description.
# Note: this will only work if 'README.md' is present in your MANIFEST.in file!
try:
    with io.open(os.path.join(here, 'README.md'), encoding='utf-8') as f:
        long_description = '\n' + f.read()
except FileNotFoundError:
    long_description = DESCRIPTION

# Load the package's __version__.py module as a dictionary.
about = {}
if not VERSION:
    with open(os.path.join(here, 'radmmp', '__version__.py')) as f:
        exec(f.read(), about)
else:
    about['__version__'] = VERSION


# Where the magic happens:
setup(
    name=NAME,
    version=about['__version__'],
    description=DESCRIPTION,
    long_description=long_description,
    long_description_content_type='text/markdown',
    author=AUTHOR,
    author_email=EMAIL,
    python_requires=REQUIRES_PYTHON,
    url=URL,
    packages=find_namespace_packages(include=["radmmp", "radmmp.*"]),
    # If your package is a single module, use this instead of 'packages':
    # py_modules=['mypackage'],

    # entry_points={
    #     'console_scripts': ['mycli=mymodule:cli'],
    # },
    install_requires=REQUIRED,
    extras_require=EXTRAS,
    include_package_data=True,
    license='CC0-1.0',
    classifiers=[
        # Trove classifiers
        # Full list: https://pypi.python.org/pypi?%3Aaction=list_classifiers
        'Programming Language :: Python',
        'Programming Language :: Python :: 3',
        'Programming Language :: Python :: 3.9',
        'Programming Language :: Python :: Implementation :: CPython'
    ]
)
