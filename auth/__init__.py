"""auth/ -- Authentication and authorization package for Keeper.

Layer rule: auth/ imports only stdlib, third-party libraries, and core/.
It does NOT import from api/ or items/.
api/ imports from auth/, not the other way around. The access guard learns
about resource ownership through an injected lookup callable, never by
importing a resource store.
"""
