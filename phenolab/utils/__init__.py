"""
Utility modules for phenolab
"""
