"""libpower: internal power models for Liberty standard-cell libraries"""

try:
    from importlib.metadata import PackageNotFoundError, version

    __version__ = version("libpower")
except (ImportError, PackageNotFoundError):
    __version__ = "0.0.0"
