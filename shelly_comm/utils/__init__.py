"""
Utility Module

- serialization: JSON encoding of parameters and raw member slicing of replies
"""
