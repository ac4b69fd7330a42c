"""phoenix: verify that a versioned service survives a full-restart upgrade.

Each process invocation runs one phase. The pre-upgrade phase seeds state
on the originating cluster; the post-upgrade phase, run after the cluster
restarts on the new version, migrates what needs migrating and checks that
the state survived.
"""

__version__ = "0.1.0"
