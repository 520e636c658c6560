"""Acquisition, caching and scoring pipeline for the multibagger screener."""
