"""Concrete backends the journal engine runs on."""
