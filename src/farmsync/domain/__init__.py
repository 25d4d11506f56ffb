"""Domain layer for farmsync application.

Services are imported from their modules (``farmsync.domain.sync_engine``,
``farmsync.domain.records``, ...) rather than re-exported here, because the
storage layer imports ``farmsync.domain.entities`` and would otherwise cycle
back through this package.
"""
