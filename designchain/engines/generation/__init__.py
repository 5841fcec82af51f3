"""
Generation Engine

Runs the image generation chain: reference description, prompt composition,
image transformation, inventory extraction and product resolution.

Import the chain from ``designchain.engines.generation.chain``; services
depend on ``schemas`` in this package, so nothing is imported eagerly here.
"""
