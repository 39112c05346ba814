"""
Core - domain models and the project library.
"""
