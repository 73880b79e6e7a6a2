"""Packaged reference data: engine defaults and the starter variety catalog."""
