"""
The `core` package holds the transactional service operations built on the
DAOs: the session store and directory (`funcs`), the persona registry,
accounts and invite codes, and admin statistics. `db` owns the shared engine.
"""
