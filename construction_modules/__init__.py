"""
Construction Modules.

Lookup services (``rates``, ``wages``) and the two read-side aggregators
(``payroll``, ``project``) of the construction financial core.
"""
