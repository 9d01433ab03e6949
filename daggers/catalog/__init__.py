"""Ready-made pipeline steps.

Access via daggers.catalog.precommit and daggers.catalog.svu.
"""
