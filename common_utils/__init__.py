"""
Common utilities for the Fleet Admin application
"""
