"""
Module tree generation.

Turns flat, dotted compiler output file names into nested module
declarations, one file per version, plus an aggregator that declares every
version and re-exports the latest.
"""
