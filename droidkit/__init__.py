"""Tools for building, packaging and deploying native Android libraries and apps."""

__version__ = "0.1.0"