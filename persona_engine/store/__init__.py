"""Read-only persona store adapters.

Modules
-------
base         — PersonaStore protocol + InMemoryPersonaStore (JSON seed file)
sqlite_store — SqlitePersonaStore over the ``personas`` table
http_store   — HttpPersonaStore over a persona REST service
"""
