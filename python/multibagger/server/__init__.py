"""HTTP surface for the multibagger screener."""
