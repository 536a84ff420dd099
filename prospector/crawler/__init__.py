"""
Browser automation for Prospector.
"""
