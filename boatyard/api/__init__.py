"""
REST API for the Boatyard lifecycle engine.
"""
