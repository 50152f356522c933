"""auth/ -- Account registration and credential checks for the Alliance portal.

Layer rule: auth/ imports only stdlib, third-party libraries and core/.
It does NOT import from web/ or session/.
web/ imports from auth/, not the other way around.
"""
