"""
API routers for designchain
"""
