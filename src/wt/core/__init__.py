"""Topology engine: classification, naming, bare conversion and relocation."""
