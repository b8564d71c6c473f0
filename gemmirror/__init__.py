"""
Incremental, verifiable mirror of a compact-index gem registry.

The package is split the same way the rest of the tooling is:
* ``domain`` holds the data model, the integrity type and the pure parsing/merge rules.
* ``storage`` persists index metadata and content-addressed blobs.
* ``services`` talks to the remote registry and drives a sync run.
"""

__version__ = "0.1.0"
