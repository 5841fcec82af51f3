"""
Engines for designchain
"""
