"""Built-in CLI sub-commands for typedcache.

* :mod:`~typedcache.commands.entries` -- read-only inspection of a cache
  file (``info``, ``get``, ``keys``, ``tags``, ``check``).
* :mod:`~typedcache.commands.maintenance` -- mutations (``delete``,
  ``delete-tag``, ``purge``, ``clear``).
* :mod:`~typedcache.commands.config` -- view and modify user settings.

Single commands are plain callback functions registered directly on the
root app; multi-command groups (``config``) export a :class:`typer.Typer`.
"""
