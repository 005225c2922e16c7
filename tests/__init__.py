"""
Test suite for schemerge.

Unit tests for the schema model, reconciliation engine, integrity checks,
configuration, document loading and the command line.
"""
