"""
Value transforms shared by generated message types.
"""
