from radmmp.__version__ import __version__
