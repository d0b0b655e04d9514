"""core/ -- Kernel: configuration, schema, and the error taxonomy.

Layer rule: core/ imports nothing from api/, web/, auth/, or social/.
"""
