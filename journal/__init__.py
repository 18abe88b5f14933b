"""Core logic of the health journal.

This package holds the reading models, validation, storage access,
classification and statistics, isolated from concrete storage backends
for easy testing and reasoning.
"""
