"""
Dataset export: CSV, JSON and a run summary.
"""
