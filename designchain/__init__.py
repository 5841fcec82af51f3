"""
designchain: interior design generation chain over Gemini
"""
__version__ = "1.0.0"
