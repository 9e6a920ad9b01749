"""
Command line interface for filtext.
"""
