"""utils – run output folders."""

from .run_directory import RunDirectory

__all__ = ["RunDirectory"]
