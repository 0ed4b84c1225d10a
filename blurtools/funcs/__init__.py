"""
Numerical building blocks of the blurred clustering pipeline.
"""
