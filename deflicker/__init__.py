"""Linear luminance deflickering for image sequences, with a command line front end."""

__version__ = "0.1.0"