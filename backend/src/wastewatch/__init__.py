"""WasteWatch - municipal waste reporting and field-worker dispatch.

Citizens submit geotagged waste reports, administrators triage and assign
them to zone workers, and workers move each job through to resolution.
"""

__version__ = "0.1.0"
