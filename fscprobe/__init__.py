"""fscprobe - report the F# compiler arguments MSBuild computes for a project graph."""

__version__ = "0.1.0"
