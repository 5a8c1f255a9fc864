"""Models package for the spreadsheet import system."""
from backend.models.schema import Base, Record
from backend.models.job import JobRun, JobProgress, JobStatus, JobType

__all__ = ['Base', 'Record', 'JobRun', 'JobProgress', 'JobStatus', 'JobType']
