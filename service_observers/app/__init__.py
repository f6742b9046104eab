"""
Application package for the Observers service.
"""
