"""
playground/api package marker.
"""
