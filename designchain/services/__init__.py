"""
Services wrapping the generative model, web search and image downloads
"""
