"""Output — review document assembly, terminal and JSON reports."""
