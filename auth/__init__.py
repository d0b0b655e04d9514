"""auth/ -- Authentication and authorization package for Postboard.

Layer rule: auth/ imports only stdlib, third-party libraries, and core/.
It does NOT import from api/, web/, or social/.
api/, web/, and social/ import from auth/, not the other way around.
"""
