"""
Live auction recovery engine.
"""
